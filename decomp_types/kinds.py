#!/usr/bin/env python3
"""
Model-level types and enums for the decompiled type model.
"""

from typing import NewType
from enum import Enum

# ---------- Type aliases for model elements ----------
EntityId = NewType('EntityId', int)
TypeName = NewType('TypeName', str)
QualifiedName = NewType('QualifiedName', str)
BaseTypePath = NewType('BaseTypePath', str)

# ---------- Enums for model elements ----------
class TypeKind(Enum):
    STRUCT = "struct"
    UNION = "union"
    ENUM = "enum"
    TYPEDEF = "typedef"

class TypedefKind(Enum):
    SIMPLE = "simple"
    FUNCTION_POINTER = "function_pointer"
    FUNCTION_SIGNATURE = "function_signature"

class ReferenceKind(Enum):
    """How a type reference string was classified during resolution."""
    UNRESOLVED = "unresolved"
    ENTITY = "entity"
    PRIMITIVE = "primitive"
    EXTERNAL = "external"
    FUNCTION_POINTER = "function_pointer"

class NameRole(Enum):
    """Role of the rightmost identifier of a declarator."""
    NAME = "name"
    TYPE = "type"

class MergeAction(Enum):
    REPLACED_STUB = "replaced_stub"
    IGNORED_STUB = "ignored_stub"
    DUPLICATE_STUB = "duplicate_stub"
    DUPLICATE_DEFINITION = "duplicate_definition"
    KIND_CONFLICT = "kind_conflict"
