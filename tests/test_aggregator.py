#!/usr/bin/env python3
"""
Tests for corpus aggregation: forward-declaration merging, duplicates,
overload indices and the ignore filter
"""

import logging

from app.config import IgnoreConfig
from core.aggregator import CorpusAggregator, Provenance, assign_overload_indices
from core.ignore_filter import IgnoreFilter
from core.source_parser import SourceParser
from decomp_types import MergeAction, TypeKind

STUB = "/* 1 */\nstruct Widget;\n"
FULL = "/* 2 */\nstruct Widget\n{\n  int x;\n  int y;\n};\n"


def _aggregate(*files):
    aggregator = CorpusAggregator()
    for name, text in files:
        aggregator.add_file_result(SourceParser(file=name).parse(text))
    return aggregator


class TestForwardDeclarations:
    def test_stub_then_full(self):
        agg = _aggregate(("stub.h", STUB), ("full.h", FULL))
        widget = agg.store.find("Widget")
        assert len(agg.store) == 1
        assert [m.name for m in widget.members] == ["x", "y"]
        assert widget.id == 0
        assert agg.events[0].action is MergeAction.REPLACED_STUB
        assert agg.provenance_of("Widget") == Provenance("full.h", 2)

    def test_full_then_stub(self):
        agg = _aggregate(("full.h", FULL), ("stub.h", STUB))
        widget = agg.store.find("Widget")
        assert len(agg.store) == 1
        assert [m.name for m in widget.members] == ["x", "y"]
        assert agg.events[0].action is MergeAction.IGNORED_STUB

    def test_merge_is_order_independent(self):
        a = _aggregate(("stub.h", STUB), ("full.h", FULL)).store.find("Widget")
        b = _aggregate(("full.h", FULL), ("stub.h", STUB)).store.find("Widget")
        assert [m.name for m in a.members] == [m.name for m in b.members]
        assert a.file == b.file == "full.h"

    def test_two_stubs(self):
        agg = _aggregate(("a.h", STUB), ("b.h", STUB))
        assert len(agg.store) == 1
        assert agg.store.find("Widget").is_stub
        assert agg.events[0].action is MergeAction.DUPLICATE_STUB


class TestDuplicates:
    def test_duplicate_definition_keeps_first(self, caplog):
        other = "/* 9 */\nstruct Widget\n{\n  char c;\n};\n"
        with caplog.at_level(logging.WARNING):
            agg = _aggregate(("full.h", FULL), ("other.h", other))
        widget = agg.store.find("Widget")
        assert [m.name for m in widget.members] == ["x", "y"]
        event = agg.events[0]
        assert event.action is MergeAction.DUPLICATE_DEFINITION
        assert str(event.kept) == "full.h:2"
        assert str(event.discarded) == "other.h:2"
        assert "Duplicate struct type 'Widget'" in caplog.text
        assert "other.h:2" in caplog.text

    def test_duplicate_typedef(self):
        text = "/* 1 */\ntypedef int INT32;\n"
        agg = _aggregate(("a.h", text), ("b.h", "/* 1 */\ntypedef long INT32;\n"))
        assert agg.store.find("INT32").aliased_type.base_name == "int"
        assert agg.events[0].action is MergeAction.DUPLICATE_DEFINITION

    def test_kind_conflict_keeps_first(self, caplog):
        union = "/* 3 */\nunion Widget\n{\n  int x;\n};\n"
        agg = _aggregate(("full.h", FULL), ("union.h", union))
        assert agg.store.find("Widget").kind is TypeKind.STRUCT
        assert agg.events[0].action is MergeAction.KIND_CONFLICT
        assert "declared as union" in caplog.text


class TestOverloads:
    def test_vtable_overload_indices(self, sample_sources):
        agg = _aggregate(("archive.h", sample_sources["archive.h"]))
        vtbl = agg.store.find("Archive_vtbl")
        assert [(m.name, m.overload_index) for m in vtbl.members] == [
            ("~Archive", 0),
            ("InitForPacking", 0),
            ("InitForPacking", 1),
        ]

    def test_assign_overload_indices(self):
        members = SourceParser().parse("/* 1 */\nstruct S\n{\n  int a;\n  int b;\n  int a;\n  int a;\n};\n").entities[0].members
        assign_overload_indices(members)
        assert [m.overload_index for m in members] == [0, 0, 1, 2]


class TestIgnoreFilter:
    def test_prefixes_suffixes_and_whitelist(self):
        filt = IgnoreFilter()
        assert filt.should_ignore("std::vector")
        assert filt.should_ignore("_RTL_CRITICAL_SECTION")
        assert filt.should_ignore("HWND__")
        assert not filt.should_ignore("_GUID")
        assert not filt.should_ignore("Archive")
        assert not filt.should_ignore("")

    def test_disabled(self):
        filt = IgnoreFilter(IgnoreConfig(enabled=False))
        assert not filt.should_ignore("std::vector")

    def test_aggregator_marks_ignored(self):
        text = "/* 1 */\nstruct _RTL_CRITICAL_SECTION\n{\n  int LockCount;\n};\n"
        agg = _aggregate(("win.h", text))
        assert agg.store.find("_RTL_CRITICAL_SECTION").is_ignored

    def test_function_bodies_collected(self, sample_sources):
        agg = _aggregate(("archive.h", sample_sources["archive.h"]), ("types.h", sample_sources["types.h"]))
        assert len(agg.store.function_bodies) == 1
        assert len(agg.store) == 13
