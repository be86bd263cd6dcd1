#!/usr/bin/env python3
"""
Decompile pipeline: parallel per-file parsing, then sequential aggregation,
symbol resolution and layout over the whole corpus.
"""

from __future__ import annotations
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
import fnmatch
import logging
import os

from app.config import PipelineConfig
from core.aggregator import CorpusAggregator, MergeEvent
from core.ignore_filter import IgnoreFilter
from core.layout import LayoutCalculator, LayoutReport
from core.resolver import ResolutionStats, SymbolResolver
from core.source_parser import FileParseResult, SourceParser
from core.statics import StaticsParser
from core.type_model import EntityStore
from decomp_types import TypeKind
from types_profiles.registry import load_profiles

logger = logging.getLogger(__name__)


def _parse_file_worker(path: str, encoding: str, collect_statics: bool = False) -> FileParseResult:
    """Worker for one input file; runs in a pool process or thread."""
    with open(path, 'r', encoding=encoding) as f:
        text = f.read()
    return SourceParser(file=path, collect_static_definitions=collect_statics).parse(text)


def collect_input_files(inputs: Iterable[str], patterns: List[str]) -> List[str]:
    """Expand directories (recursively, sorted) into files matching `patterns`."""
    files: List[str] = []
    for item in inputs:
        if os.path.isdir(item):
            for root, dirs, names in os.walk(item):
                dirs.sort()
                for name in sorted(names):
                    if any(fnmatch.fnmatch(name, pattern) for pattern in patterns):
                        files.append(os.path.join(root, name))
        elif os.path.isfile(item):
            files.append(item)
        else:
            raise FileNotFoundError(f"Input not found: {item}")
    return files


@dataclass
class PipelineResult:
    store: EntityStore
    aggregator_events: List[MergeEvent] = field(default_factory=list)
    resolution: ResolutionStats = field(default_factory=ResolutionStats)
    layout: LayoutReport = field(default_factory=LayoutReport)

    def summary(self) -> Dict[str, Any]:
        kinds = {kind.value: len(self.store.of_kind(kind)) for kind in TypeKind}
        events: Dict[str, int] = {}
        for event in self.aggregator_events:
            events[event.action.value] = events.get(event.action.value, 0) + 1
        return {
            "entities": len(self.store),
            "kinds": kinds,
            "stubs": sum(1 for e in self.store if e.is_stub and e.kind is not TypeKind.TYPEDEF),
            "ignored": sum(1 for e in self.store if e.is_ignored),
            "function_bodies": len(self.store.function_bodies),
            "static_variables": len(self.store.static_variables),
            "static_values": sum(1 for v in self.store.static_variables if v.value is not None),
            "merge_events": events,
            "resolution": self.resolution.as_dict(),
            "laid_out": self.layout.laid_out,
            "offset_mismatches": [
                {"entity": m.entity, "member": m.member, "computed": m.computed, "source": m.source}
                for m in self.layout.mismatches
            ],
        }


class DecompilePipeline:
    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self.config = config or PipelineConfig()
        self.registry = load_profiles(self.config.types_profiles or [])
        if self.config.statics_file and not os.path.isfile(self.config.statics_file):
            raise FileNotFoundError(f"Statics file not found: {self.config.statics_file}")
        self.aggregator: Optional[CorpusAggregator] = None

    @property
    def store(self) -> EntityStore:
        if self.aggregator is None:
            raise RuntimeError("No corpus aggregated yet")
        return self.aggregator.store

    # ---------- phase 1: parse ----------

    def parse_files(self, paths: Iterable[str]) -> List[FileParseResult]:
        paths = list(paths)
        encoding = self.config.encoding
        collect_statics = self.config.statics_file is not None
        results: List[Optional[FileParseResult]] = [None] * len(paths)

        if self.config.max_workers == 1 or len(paths) <= 1:
            for i, path in enumerate(paths):
                try:
                    results[i] = _parse_file_worker(path, encoding, collect_statics)
                except (OSError, UnicodeDecodeError) as e:
                    logger.error(f"Failed to read {path}: {e}")
        else:
            executor_class = ProcessPoolExecutor if self.config.use_processes else ThreadPoolExecutor
            logger.debug(f"Parsing {len(paths)} files with {executor_class.__name__}")
            with executor_class(max_workers=self.config.max_workers) as executor:
                future_to_index = {
                    executor.submit(_parse_file_worker, path, encoding, collect_statics): i
                    for i, path in enumerate(paths)
                }
                for future in as_completed(future_to_index):
                    i = future_to_index[future]
                    try:
                        results[i] = future.result()
                    except (OSError, UnicodeDecodeError) as e:
                        logger.error(f"Failed to read {paths[i]}: {e}")

        return [r for r in results if r is not None]

    def parse_sources(self, sources: Dict[str, str], collect_statics: bool = False) -> List[FileParseResult]:
        return [
            SourceParser(file=name, collect_static_definitions=collect_statics).parse(text)
            for name, text in sources.items()
        ]

    # ---------- phases 2-4: global passes ----------

    def aggregate(self, results: Iterable[FileParseResult]) -> CorpusAggregator:
        self.aggregator = CorpusAggregator(ignore_filter=IgnoreFilter(self.config.ignore))
        for result in results:
            self.aggregator.add_file_result(result)
        logger.info(f"Aggregated {len(self.aggregator.store)} entities, {len(self.aggregator.events)} merge events")
        return self.aggregator

    def resolve(self) -> ResolutionStats:
        return SymbolResolver(self.store, self.registry).run()

    def layout(self) -> LayoutReport:
        return LayoutCalculator(self.store, self.registry, self.config.layout).run()

    def load_statics(self, statics_text: Optional[str] = None) -> int:
        """Parse the statics listing (text, else the configured file) into the aggregated store."""
        if self.aggregator is None:
            raise RuntimeError("No corpus aggregated yet")
        if statics_text is not None:
            statics = StaticsParser().parse(statics_text)
        elif self.config.statics_file:
            statics = StaticsParser().parse_file(self.config.statics_file, self.config.encoding)
        else:
            return 0
        return self.aggregator.add_static_variables(statics)

    def _finish(self, results: List[FileParseResult], statics_text: Optional[str] = None) -> PipelineResult:
        aggregator = self.aggregate(results)
        self.load_statics(statics_text)
        resolution = self.resolve()
        layout = self.layout()
        return PipelineResult(
            store=aggregator.store,
            aggregator_events=list(aggregator.events),
            resolution=resolution,
            layout=layout,
        )

    def run(self, paths: Iterable[str]) -> PipelineResult:
        return self._finish(self.parse_files(paths))

    def run_sources(self, sources: Dict[str, str], statics_text: Optional[str] = None) -> PipelineResult:
        collect = statics_text is not None or self.config.statics_file is not None
        return self._finish(self.parse_sources(sources, collect), statics_text)


__all__ = ["collect_input_files", "PipelineResult", "DecompilePipeline"]
