#!/usr/bin/env python3
"""
Decompiled Type Model

In-memory model reconstructed from decompiler pseudo-C++: recursive type
descriptors and function signatures, members, entities and the id-based
arena (EntityStore) that every later pass mutates in place.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional
import logging
import re

from decomp_types import TypeKind, TypedefKind, ReferenceKind, EntityId, QualifiedName

logger = logging.getLogger(__name__)

VTABLE_SUFFIX = "_vtbl"

# ===============================================
# TYPE REFERENCES
# ===============================================

@dataclass
class TypeDescriptor:
    """Structured form of one free-standing type expression"""
    base_name: str = ""
    namespace_path: List[str] = field(default_factory=list)
    is_const: bool = False
    is_volatile: bool = False
    is_pointer: bool = False
    pointer_depth: int = 0
    is_reference: bool = False
    is_array: bool = False
    array_size: Optional[int] = None
    is_function_pointer: bool = False
    template_arguments: List["TypeDescriptor"] = field(default_factory=list)
    text: str = ""

    # Filled by the resolver
    resolved_id: Optional[EntityId] = None
    reference_kind: ReferenceKind = ReferenceKind.UNRESOLVED

    @property
    def is_generic(self) -> bool:
        return bool(self.template_arguments)

    @property
    def namespace(self) -> str:
        return "::".join(self.namespace_path)

    @property
    def fully_qualified_name(self) -> str:
        if self.is_function_pointer:
            return self.base_name
        return "::".join(self.namespace_path + [self.base_name])

    @property
    def name_with_templates(self) -> str:
        if not self.template_arguments:
            return self.base_name
        args = ",".join(arg.text for arg in self.template_arguments)
        return f"{self.base_name}<{args}>"

    @property
    def qualified_name(self) -> str:
        if self.is_function_pointer:
            return self.base_name
        return "::".join(self.namespace_path + [self.name_with_templates])

    @property
    def is_by_value(self) -> bool:
        return not (self.is_pointer or self.is_reference or self.is_function_pointer)

    def walk(self) -> Iterator["TypeDescriptor"]:
        yield self
        for arg in self.template_arguments:
            yield from arg.walk()


# ===============================================
# FUNCTION SIGNATURES
# ===============================================

@dataclass
class Parameter:
    name: str
    type_reference: TypeDescriptor
    position: int
    is_function_pointer_type: bool = False
    nested_function_signature: Optional["FunctionSignature"] = None


@dataclass
class FunctionSignature:
    """Calling convention, return type and parameters of a function or function pointer"""
    name: str
    return_type: TypeDescriptor = field(default_factory=TypeDescriptor)
    calling_convention: str = ""
    parameters: List[Parameter] = field(default_factory=list)
    # Present only when the return type is itself a function pointer
    return_function_signature: Optional["FunctionSignature"] = None

    def normalized(self) -> str:
        cc = f"{self.calling_convention} " if self.calling_convention else ""
        params = ",".join(p.type_reference.text for p in self.parameters)
        return f"{self.return_type.text} {cc}{self.name}({params})"

    def type_references(self) -> Iterator[TypeDescriptor]:
        yield self.return_type
        for param in self.parameters:
            yield param.type_reference
            if param.nested_function_signature is not None:
                yield from param.nested_function_signature.type_references()
        if self.return_function_signature is not None:
            yield from self.return_function_signature.type_references()


# ===============================================
# MEMBERS
# ===============================================

@dataclass
class Member:
    name: str
    type_reference: TypeDescriptor
    declaration_order: int = 0
    offset: Optional[int] = None
    source_offset: Optional[int] = None  # value of the /* 0xNN */ comment
    alignment: Optional[int] = None
    bit_field_width: Optional[int] = None
    is_function_pointer: bool = False
    function_signature: Optional[FunctionSignature] = None
    overload_index: int = 0
    line_number: Optional[int] = None
    source: str = ""

    @property
    def is_bit_field(self) -> bool:
        return self.bit_field_width is not None

    def type_references(self) -> Iterator[TypeDescriptor]:
        yield self.type_reference
        if self.function_signature is not None:
            yield from self.function_signature.type_references()


_INT_SUFFIX_RE = re.compile(r'[uUlL]+$')


@dataclass
class EnumMember:
    name: str
    value: str = ""
    line_number: Optional[int] = None

    @property
    def int_value(self) -> Optional[int]:
        text = _INT_SUFFIX_RE.sub('', self.value.strip())
        if not text:
            return None
        try:
            return int(text, 0)
        except ValueError:
            return None


# ===============================================
# ENTITIES
# ===============================================

@dataclass
class Entity:
    """A parsed struct, union, enum or typedef"""
    kind: TypeKind
    base_name: str
    namespace: str = ""
    id: Optional[EntityId] = None
    template_arguments: List[TypeDescriptor] = field(default_factory=list)
    base_types: List[TypeDescriptor] = field(default_factory=list)
    is_bitmask: bool = False
    is_const: bool = False
    is_volatile: bool = False
    alignment: Optional[int] = None
    members: List[Member] = field(default_factory=list)
    enum_members: List[EnumMember] = field(default_factory=list)
    underlying_type: Optional[TypeDescriptor] = None
    typedef_kind: Optional[TypedefKind] = None
    aliased_type: Optional[TypeDescriptor] = None
    typedef_signature: Optional[FunctionSignature] = None
    base_type_path: str = ""
    is_ignored: bool = False
    size: Optional[int] = None
    file: str = ""
    line_number: Optional[int] = None
    source: str = ""

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.namespace}::{self.base_name}" if self.namespace else self.base_name

    @property
    def name_with_templates(self) -> str:
        if not self.template_arguments:
            return self.base_name
        args = ",".join(arg.text for arg in self.template_arguments)
        return f"{self.base_name}<{args}>"

    @property
    def qualified_name(self) -> QualifiedName:
        name = self.name_with_templates
        return QualifiedName(f"{self.namespace}::{name}" if self.namespace else name)

    @property
    def is_vtable(self) -> bool:
        return self.base_name.endswith(VTABLE_SUFFIX)

    @property
    def is_stub(self) -> bool:
        return not self.members and not self.enum_members

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line_number}" if self.line_number is not None else self.file

    def type_references(self) -> Iterator[TypeDescriptor]:
        yield from self.base_types
        yield from self.template_arguments
        for member in self.members:
            yield from member.type_references()
        if self.underlying_type is not None:
            yield self.underlying_type
        if self.aliased_type is not None:
            yield self.aliased_type
        if self.typedef_signature is not None:
            yield from self.typedef_signature.type_references()


@dataclass
class FunctionBody:
    name: str
    signature: FunctionSignature
    address: Optional[int] = None
    body_text: str = ""
    file: str = ""
    line_number: Optional[int] = None
    parent_name: str = ""
    parent_id: Optional[EntityId] = None


@dataclass
class StaticVariable:
    """A static or global variable from a symbol listing, e.g. `int CBaseObject::m_cObjects`"""
    name: str
    type_reference: TypeDescriptor
    address: Optional[int] = None
    declaration: str = ""
    size: Optional[int] = None
    value: Optional[str] = None
    file: str = ""
    line_number: Optional[int] = None
    parent_name: str = ""
    parent_id: Optional[EntityId] = None

    @property
    def short_name(self) -> str:
        return self.name[len(self.parent_name) + 2:] if self.parent_name else self.name


# ===============================================
# ENTITY ARENA
# ===============================================

class EntityStore:
    """Owns every entity; entities are addressed by integer id"""

    def __init__(self) -> None:
        self._entities: List[Entity] = []
        self._by_name: Dict[str, EntityId] = {}
        self.function_bodies: List[FunctionBody] = []
        self.static_variables: List[StaticVariable] = []

    def add(self, entity: Entity) -> EntityId:
        entity_id = EntityId(len(self._entities))
        entity.id = entity_id
        self._entities.append(entity)
        self._by_name.setdefault(entity.qualified_name, entity_id)
        return entity_id

    def replace(self, entity_id: EntityId, entity: Entity) -> None:
        """Install `entity` in the slot of a superseded declaration."""
        old = self._entities[entity_id]
        entity.id = entity_id
        self._entities[entity_id] = entity
        if self._by_name.get(old.qualified_name) == entity_id:
            del self._by_name[old.qualified_name]
        self._by_name[entity.qualified_name] = entity_id

    def get(self, entity_id: EntityId) -> Entity:
        return self._entities[entity_id]

    def find(self, qualified_name: str) -> Optional[Entity]:
        entity_id = self._by_name.get(qualified_name)
        return None if entity_id is None else self._entities[entity_id]

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities)

    def __len__(self) -> int:
        return len(self._entities)

    def of_kind(self, kind: TypeKind) -> List[Entity]:
        return [e for e in self._entities if e.kind is kind]

    def group(self, base_type_path: str) -> List[Entity]:
        return [e for e in self._entities if e.base_type_path == base_type_path]

    def parent_of(self, entity: Entity) -> Optional[Entity]:
        if not entity.namespace:
            return None
        return self.find(entity.namespace)

    def nested_types(self, entity: Entity) -> List[Entity]:
        return [e for e in self._entities if e.namespace and e.namespace == entity.qualified_name]


__all__ = [
    "TypeDescriptor",
    "Parameter",
    "FunctionSignature",
    "Member",
    "EnumMember",
    "Entity",
    "FunctionBody",
    "StaticVariable",
    "EntityStore",
    "VTABLE_SUFFIX",
]
