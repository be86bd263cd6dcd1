#!/usr/bin/env python3
"""
Core module initialization with centralized path management.

This module handles project-wide path configuration so that the top-level
modules (CppParser, decomp_types, types_profiles) import from any entry point.
"""

import sys
from pathlib import Path

# Single point of path configuration
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

# Re-export the data model
from .type_model import (
    TypeDescriptor, Parameter, FunctionSignature, Member, EnumMember,
    Entity, FunctionBody, EntityStore, VTABLE_SUFFIX
)

__all__ = [
    'TypeDescriptor', 'Parameter', 'FunctionSignature', 'Member', 'EnumMember',
    'Entity', 'FunctionBody', 'EntityStore', 'VTABLE_SUFFIX'
]
