#!/usr/bin/env python3
"""
Types module for the decompiled type model.
Centralized type definitions organized by domain.
"""

from .kinds import (
    EntityId, TypeName, QualifiedName, BaseTypePath,
    TypeKind, TypedefKind, ReferenceKind, NameRole, MergeAction
)

from .cpp import (
    CALLING_CONVENTIONS, CALLING_CONVENTION_PATTERN,
    CPP_TYPE_KEYWORDS, TYPE_QUALIFIERS, BUILTIN_TYPE_WORDS
)

__all__ = [
    # Model types
    'EntityId', 'TypeName', 'QualifiedName', 'BaseTypePath',
    'TypeKind', 'TypedefKind', 'ReferenceKind', 'NameRole', 'MergeAction',
    # C++ vocabulary
    'CALLING_CONVENTIONS', 'CALLING_CONVENTION_PATTERN',
    'CPP_TYPE_KEYWORDS', 'TYPE_QUALIFIERS', 'BUILTIN_TYPE_WORDS',
]
