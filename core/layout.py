#!/usr/bin/env python3
"""
Layout Calculator

Third pass: assigns byte offsets to struct and union members and computes
entity sizes, emulating 32-bit MSVC layout as observed in decompiler output.
Offsets found in `/* 0xNN */` comments are only cross-checked; the computed
values are authoritative.

Open rounding rules (mixed-width bit-field runs, arrays of structs) follow
observed output, not a published ABI.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set
import logging

from app.config import LayoutConfig
from core.type_model import Entity, EntityStore, Member, TypeDescriptor
from decomp_types import EntityId, TypeKind, TypedefKind
from types_profiles.registry import TypeSizeRegistry, load_profiles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OffsetMismatch:
    entity: str
    member: str
    computed: int
    source: int


@dataclass
class LayoutReport:
    laid_out: int = 0
    mismatches: List[OffsetMismatch] = field(default_factory=list)


def align_up(value: int, alignment: int) -> int:
    if alignment <= 1:
        return value
    return (value + alignment - 1) // alignment * alignment


class LayoutCalculator:
    def __init__(
        self,
        store: EntityStore,
        registry: Optional[TypeSizeRegistry] = None,
        config: Optional[LayoutConfig] = None,
    ) -> None:
        self.store = store
        self.registry = registry if registry is not None else load_profiles()
        self.config = config or LayoutConfig()
        self._sizes: Dict[EntityId, int] = {}
        self._alignments: Dict[EntityId, int] = {}
        self._in_progress: Set[EntityId] = set()

    @property
    def pointer_size(self) -> int:
        """Explicit LayoutConfig value, else the profiles' pointer_size, else 4."""
        if self.config.pointer_size is not None:
            return self.config.pointer_size
        return self.registry.pointer_size or 4

    # ===============================================
    # ORDERING
    # ===============================================

    def _dependencies(self, entity: Entity) -> List[EntityId]:
        refs: List[TypeDescriptor] = list(entity.base_types)
        refs.extend(m.type_reference for m in entity.members if m.type_reference.is_by_value)
        if entity.kind is TypeKind.TYPEDEF and entity.aliased_type is not None and entity.aliased_type.is_by_value:
            refs.append(entity.aliased_type)
        return [ref.resolved_id for ref in refs if ref.resolved_id is not None]

    def dependency_order(self) -> List[Entity]:
        """Post-order DFS: an entity comes after its bases and by-value member types."""
        order: List[Entity] = []
        visited: Set[EntityId] = set()

        def visit(entity: Entity) -> None:
            visited.add(entity.id)
            for dep_id in self._dependencies(entity):
                if dep_id not in visited:
                    visit(self.store.get(dep_id))
            order.append(entity)

        for entity in self.store:
            if entity.id not in visited:
                visit(entity)
        return order

    # ===============================================
    # SIZES AND ALIGNMENT
    # ===============================================

    def natural_alignment(self, size: int) -> int:
        alignment = 1
        while alignment < size and alignment < self.config.max_natural_alignment:
            alignment *= 2
        return alignment

    def _element_size(self, desc: TypeDescriptor) -> int:
        if desc.is_pointer or desc.is_reference or desc.is_function_pointer:
            return self.pointer_size
        if desc.resolved_id is not None:
            return self.size_of_entity(self.store.get(desc.resolved_id))
        size = self.registry.size_of(desc.fully_qualified_name)
        return self.config.default_type_size if size is None else size

    def size_of_type(self, desc: TypeDescriptor) -> int:
        size = self._element_size(desc)
        if desc.is_array:
            return max(size, 1) * (desc.array_size or 1)
        return size

    def alignment_of_type(self, desc: TypeDescriptor) -> int:
        if desc.is_pointer or desc.is_reference or desc.is_function_pointer:
            return self.natural_alignment(self.pointer_size)
        if desc.resolved_id is not None:
            return self.alignment_of_entity(self.store.get(desc.resolved_id))
        return self.natural_alignment(self._element_size(desc))

    def member_alignment(self, member: Member) -> int:
        if member.alignment:
            return member.alignment
        return self.alignment_of_type(member.type_reference)

    def size_of_entity(self, entity: Entity) -> int:
        if entity.id in self._sizes:
            return self._sizes[entity.id]
        if entity.id in self._in_progress:
            logger.warning(f"Layout cycle through '{entity.qualified_name}', assuming size {self.config.default_type_size}")
            return self.config.default_type_size

        self._in_progress.add(entity.id)
        try:
            if entity.kind in (TypeKind.STRUCT, TypeKind.UNION):
                size = self.layout_entity(entity)
            elif entity.kind is TypeKind.ENUM:
                size = self.size_of_type(entity.underlying_type) if entity.underlying_type else 4
            elif entity.typedef_kind is TypedefKind.SIMPLE and entity.aliased_type is not None:
                size = self.size_of_type(entity.aliased_type)
            else:
                size = self.pointer_size
        finally:
            self._in_progress.discard(entity.id)

        self._sizes[entity.id] = size
        entity.size = size
        return size

    def alignment_of_entity(self, entity: Entity) -> int:
        if entity.id not in self._alignments:
            size = self.size_of_entity(entity)
            if entity.id not in self._alignments:
                if (entity.kind is TypeKind.TYPEDEF and entity.typedef_kind is TypedefKind.SIMPLE
                        and entity.aliased_type is not None and entity.id not in self._in_progress):
                    self._in_progress.add(entity.id)
                    try:
                        alignment = self.alignment_of_type(entity.aliased_type)
                    finally:
                        self._in_progress.discard(entity.id)
                else:
                    alignment = self.natural_alignment(size)
                self._alignments[entity.id] = entity.alignment or alignment
        return self._alignments[entity.id]

    # ===============================================
    # OFFSETS
    # ===============================================

    def base_prefix_size(self, entity: Entity) -> int:
        cursor = 0
        for base in entity.base_types:
            cursor = align_up(cursor, self.alignment_of_type(base))
            cursor += self.size_of_type(base)
        return cursor

    def layout_entity(self, entity: Entity) -> int:
        """Assign member offsets of a struct or union; returns its padded size."""
        max_align = max([1] + [self.alignment_of_type(base) for base in entity.base_types])
        cursor = self.base_prefix_size(entity)
        members = sorted(entity.members, key=lambda m: m.declaration_order)

        if entity.kind is TypeKind.UNION:
            for member in members:
                member.offset = 0
                cursor = max(cursor, self.size_of_type(member.type_reference))
                max_align = max(max_align, self.member_alignment(member))
        else:
            unit_start: Optional[int] = None
            unit_size = 0
            bit_cursor = 0
            for member in members:
                size = self.size_of_type(member.type_reference)
                alignment = self.member_alignment(member)
                max_align = max(max_align, alignment)

                if member.is_bit_field:
                    width = member.bit_field_width or 0
                    if unit_start is not None and unit_size == size and bit_cursor + width <= size * 8:
                        member.offset = unit_start
                        bit_cursor += width
                        continue
                    if unit_start is not None:
                        cursor = unit_start + unit_size
                    cursor = align_up(cursor, alignment)
                    unit_start, unit_size, bit_cursor = cursor, size, width
                    member.offset = cursor
                    continue

                if unit_start is not None:
                    cursor = unit_start + unit_size
                    unit_start = None
                cursor = align_up(cursor, alignment)
                member.offset = cursor
                cursor += size

            if unit_start is not None:
                cursor = unit_start + unit_size

        if entity.alignment:
            max_align = max(max_align, entity.alignment)
        self._alignments[entity.id] = max_align
        return align_up(cursor, max_align)

    def run(self) -> LayoutReport:
        report = LayoutReport()
        for entity in self.dependency_order():
            self.size_of_entity(entity)
            if entity.kind not in (TypeKind.STRUCT, TypeKind.UNION):
                continue
            report.laid_out += 1
            for member in entity.members:
                if member.source_offset is not None and member.offset != member.source_offset:
                    report.mismatches.append(OffsetMismatch(
                        entity=entity.qualified_name,
                        member=member.name,
                        computed=member.offset,
                        source=member.source_offset,
                    ))
        if report.mismatches:
            logger.info(f"Layout: {len(report.mismatches)} member offsets differ from source comments")
        return report


__all__ = ["align_up", "OffsetMismatch", "LayoutReport", "LayoutCalculator"]
