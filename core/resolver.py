#!/usr/bin/env python3
"""
Symbol Resolution Engine

Second pass over the aggregated corpus. Links every type reference to the
entity it names (or classifies it as primitive, external or function pointer)
and computes the baseTypePath grouping key that clusters a root type with
its nested types and vtable satellites.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Iterator, Optional, Set
import logging

from CppParser import CppTypeParser
from core.signature import FunctionSignatureParser
from core.type_model import Entity, EntityStore, TypeDescriptor, VTABLE_SUFFIX
from decomp_types import BUILTIN_TYPE_WORDS, EntityId, ReferenceKind
from types_profiles.registry import TypeSizeRegistry, load_profiles
from utils.text import strip_templates

logger = logging.getLogger(__name__)


@dataclass
class ResolutionStats:
    resolved: int = 0
    primitive: int = 0
    external: int = 0
    function_pointer: int = 0

    @property
    def total(self) -> int:
        return self.resolved + self.primitive + self.external + self.function_pointer

    def count(self, kind: ReferenceKind) -> None:
        if kind is ReferenceKind.ENTITY:
            self.resolved += 1
        elif kind is ReferenceKind.PRIMITIVE:
            self.primitive += 1
        elif kind is ReferenceKind.FUNCTION_POINTER:
            self.function_pointer += 1
        else:
            self.external += 1

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


class SymbolResolver:
    def __init__(self, store: EntityStore, registry: Optional[TypeSizeRegistry] = None) -> None:
        self.store = store
        self.registry = registry if registry is not None else load_profiles()
        self.stats = ResolutionStats()
        self._index: Dict[str, EntityId] = {}
        self._by_fqn: Dict[str, Entity] = {}
        self._paths: Dict[EntityId, str] = {}

    # ===============================================
    # INDEX
    # ===============================================

    def build_index(self) -> Dict[str, EntityId]:
        self._index.clear()
        self._by_fqn.clear()
        for entity in self.store:
            for key in (entity.qualified_name, entity.fully_qualified_name):
                self._index.setdefault(CppTypeParser.normalize(key), entity.id)
            self._by_fqn.setdefault(entity.fully_qualified_name, entity)
        logger.debug(f"Symbol index built: {len(self._index)} keys for {len(self.store)} entities")
        return self._index

    def lookup(self, name: str) -> Optional[Entity]:
        entity_id = self._index.get(CppTypeParser.normalize(name))
        return None if entity_id is None else self.store.get(entity_id)

    def is_primitive(self, name: str) -> bool:
        if name in self.registry:
            return True
        words = name.split()
        return bool(words) and all(word in BUILTIN_TYPE_WORDS for word in words)

    # ===============================================
    # REFERENCES
    # ===============================================

    def resolve_descriptor(self, desc: TypeDescriptor) -> ReferenceKind:
        for arg in desc.template_arguments:
            self.resolve_descriptor(arg)

        desc.resolved_id = None
        if desc.is_function_pointer:
            kind = ReferenceKind.FUNCTION_POINTER
        else:
            entity_id = self._index.get(CppTypeParser.normalize(desc.qualified_name))
            # An instantiation missing from the corpus never borrows a sibling instantiation
            if entity_id is None and not desc.template_arguments:
                entity_id = self._index.get(CppTypeParser.normalize(desc.fully_qualified_name))
            if entity_id is not None:
                desc.resolved_id = entity_id
                kind = ReferenceKind.ENTITY
            elif desc.base_name and self.is_primitive(desc.fully_qualified_name):
                kind = ReferenceKind.PRIMITIVE
            else:
                kind = ReferenceKind.EXTERNAL

        desc.reference_kind = kind
        self.stats.count(kind)
        return kind

    def resolve_references(self) -> ResolutionStats:
        self.stats = ResolutionStats()
        for entity in self.store:
            for desc in entity.type_references():
                self.resolve_descriptor(desc)

        for body in self.store.function_bodies:
            for desc in body.signature.type_references():
                self.resolve_descriptor(desc)
            if body.parent_name:
                parent = self.lookup(body.parent_name)
                body.parent_id = parent.id if parent is not None else None

        for var in self.store.static_variables:
            self.resolve_descriptor(var.type_reference)
            if var.parent_name:
                parent = self.lookup(var.parent_name)
                var.parent_id = parent.id if parent is not None else None

        logger.info(
            f"Resolved references: {self.stats.resolved} entity, {self.stats.primitive} primitive, "
            f"{self.stats.external} external, {self.stats.function_pointer} function pointer"
        )
        return self.stats

    # ===============================================
    # BASE TYPE PATHS
    # ===============================================

    @staticmethod
    def owner_candidates(entity: Entity) -> Iterator[str]:
        """Names that may own `entity`, closest first."""
        if entity.is_vtable:
            yield entity.fully_qualified_name[:-len(VTABLE_SUFFIX)]
        scope = entity.namespace
        while scope:
            yield scope
            scope = FunctionSignatureParser.scope_of(scope)

    def find_owner(self, entity: Entity) -> Optional[Entity]:
        for candidate in self.owner_candidates(entity):
            for name in (candidate, strip_templates(candidate)):
                owner = self._by_fqn.get(name)
                if owner is not None and owner.id != entity.id:
                    return owner
        return None

    def base_type_path(self, entity: Entity, visiting: Optional[Set[EntityId]] = None) -> str:
        if entity.id in self._paths:
            return self._paths[entity.id]
        visiting = visiting if visiting is not None else set()
        if entity.id in visiting:
            logger.warning(f"Ownership cycle through '{entity.fully_qualified_name}'")
            return entity.fully_qualified_name

        visiting.add(entity.id)
        owner = self.find_owner(entity)
        path = self.base_type_path(owner, visiting) if owner is not None else entity.fully_qualified_name
        visiting.discard(entity.id)

        self._paths[entity.id] = path
        entity.base_type_path = path
        return path

    def compute_base_type_paths(self) -> None:
        self._paths.clear()
        if not self._by_fqn:
            self.build_index()
        for entity in self.store:
            self.base_type_path(entity)

    def run(self) -> ResolutionStats:
        self.build_index()
        stats = self.resolve_references()
        self.compute_base_type_paths()
        return stats


__all__ = ["ResolutionStats", "SymbolResolver"]
