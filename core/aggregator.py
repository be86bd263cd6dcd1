#!/usr/bin/env python3
"""
Corpus Aggregator

Single-writer merge of per-file parse results into one EntityStore. Files
must be fed in input order: forward-declaration merging and duplicate
detection are first-wins and therefore order dependent.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Optional
import logging

from core.ignore_filter import IgnoreFilter
from core.source_parser import FileParseResult
from core.statics import StaticDefinition, assign_static_values
from core.type_model import Entity, EntityStore, FunctionBody, Member, StaticVariable
from decomp_types import EntityId, MergeAction, TypeKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Provenance:
    file: str
    line_number: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.file}:{self.line_number}" if self.line_number is not None else self.file


@dataclass(frozen=True)
class MergeEvent:
    action: MergeAction
    name: str
    kept: Provenance
    discarded: Provenance


def assign_overload_indices(members: List[Member]) -> None:
    """Same-named members get 0..N-1 in encounter order."""
    seen: Dict[str, int] = {}
    for member in members:
        member.overload_index = seen.get(member.name, 0)
        seen[member.name] = member.overload_index + 1


class CorpusAggregator:
    def __init__(self, store: Optional[EntityStore] = None, ignore_filter: Optional[IgnoreFilter] = None) -> None:
        self.store = store if store is not None else EntityStore()
        self.ignore_filter = ignore_filter if ignore_filter is not None else IgnoreFilter()
        self.events: List[MergeEvent] = []
        self._provenance: Dict[str, Provenance] = {}
        self.static_definitions: List[StaticDefinition] = []

    def add_file_result(self, result: FileParseResult) -> None:
        for entity in result.entities:
            self.add_entity(entity)
        for body in result.function_bodies:
            self.add_function_body(body)
        self.static_definitions.extend(result.static_definitions)

    def add_function_body(self, body: FunctionBody) -> None:
        self.store.function_bodies.append(body)

    def add_static_variables(self, statics: List[StaticVariable]) -> int:
        """Store listing variables with initializers from the collected source definitions."""
        found = assign_static_values(statics, self.static_definitions)
        self.store.static_variables.extend(statics)
        logger.info(f"Static variables: {len(statics)} listed, {found} initializers found")
        return found

    def provenance_of(self, qualified_name: str) -> Optional[Provenance]:
        return self._provenance.get(qualified_name)

    def add_entity(self, entity: Entity) -> EntityId:
        name = entity.qualified_name
        assign_overload_indices(entity.members)
        self.ignore_filter.apply(entity)
        incoming = Provenance(entity.file, entity.line_number)

        existing = self.store.find(name)
        if existing is None:
            self._provenance[name] = incoming
            return self.store.add(entity)

        first = self._provenance[name]
        kind = entity.kind.value

        if existing.kind is not entity.kind:
            logger.warning(
                f"Type '{name}' declared as {kind} in '{incoming}' but as {existing.kind.value} "
                f"in '{first}'. Keeping first declaration."
            )
            self._record(MergeAction.KIND_CONFLICT, name, first, incoming)
        elif entity.kind is TypeKind.TYPEDEF:
            logger.warning(f"Duplicate typedef '{name}' found in '{incoming}', first defined in '{first}'. Skipping duplicate.")
            self._record(MergeAction.DUPLICATE_DEFINITION, name, first, incoming)
        elif existing.is_stub and not entity.is_stub:
            logger.info(
                f"Replacing forward declaration of {kind} '{name}' from '{first}' "
                f"with full declaration from '{incoming}'."
            )
            self.store.replace(existing.id, entity)
            self._provenance[name] = incoming
            self._record(MergeAction.REPLACED_STUB, name, incoming, first)
        elif entity.is_stub and not existing.is_stub:
            logger.info(
                f"Ignoring forward declaration of {kind} '{name}' from '{incoming}', "
                f"already have full declaration from '{first}'."
            )
            self._record(MergeAction.IGNORED_STUB, name, first, incoming)
        elif entity.is_stub:
            logger.debug(f"Duplicate forward declaration of {kind} '{name}' in '{incoming}', first declared in '{first}'.")
            self._record(MergeAction.DUPLICATE_STUB, name, first, incoming)
        else:
            logger.warning(f"Duplicate {kind} type '{name}' found in '{incoming}', first defined in '{first}'. Skipping duplicate.")
            self._record(MergeAction.DUPLICATE_DEFINITION, name, first, incoming)
        return existing.id

    def _record(self, action: MergeAction, name: str, kept: Provenance, discarded: Provenance) -> None:
        self.events.append(MergeEvent(action=action, name=name, kept=kept, discarded=discarded))


__all__ = ["Provenance", "MergeEvent", "assign_overload_indices", "CorpusAggregator"]
