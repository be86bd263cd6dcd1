#!/usr/bin/env python3
"""
Tests for member offsets and entity sizes
"""

import pytest

from app.config import LayoutConfig
from core.aggregator import CorpusAggregator
from core.layout import LayoutCalculator, align_up
from core.resolver import SymbolResolver
from core.source_parser import SourceParser
from types_profiles.registry import load_profiles


def _layout(*texts, config=None, registry=None):
    aggregator = CorpusAggregator()
    for i, text in enumerate(texts):
        aggregator.add_file_result(SourceParser(file=f"f{i}.h").parse(text))
    store = aggregator.store
    SymbolResolver(store).run()
    report = LayoutCalculator(store, registry, config).run()
    return store, report


def _offsets(entity):
    return [(m.name, m.offset) for m in entity.members]


def _struct(name, *members, header=""):
    body = "\n".join(f"  {m}" for m in members)
    return f"/* 1 */\nstruct {header}{name}\n{{\n{body}\n}};\n"


@pytest.fixture
def sample_layout(sample_sources):
    return _layout(sample_sources["archive.h"], sample_sources["types.h"])


class TestSampleCorpus:
    def test_archive_offsets(self, sample_layout):
        store, report = sample_layout
        archive = store.find("Archive")
        assert _offsets(archive) == [("__vftable", 0), ("m_flags", 4), ("m_version", 8)]
        assert archive.size == 12
        assert report.mismatches == []

    def test_bit_fields_share_one_unit(self, sample_layout):
        store, _ = sample_layout
        flags = store.find("Flags")
        assert _offsets(flags) == [("a", 0), ("b", 0), ("c", 0), ("after", 4)]
        assert flags.size == 8

    def test_union(self, sample_layout):
        store, _ = sample_layout
        value = store.find("Value")
        assert [m.offset for m in value.members] == [0, 0, 0]
        assert value.size == 8

    def test_base_class_prefix(self, sample_layout):
        store, _ = sample_layout
        derived = store.find("DerivedArchive")
        assert _offsets(derived) == [("m_extra", 12)]
        assert derived.size == 16

    def test_baseclass_members(self, sample_layout):
        store, _ = sample_layout
        combined = store.find("Combined")
        assert _offsets(combined) == [("m_value", 20)]
        assert combined.size == 24

    def test_enum_typedef_and_function_pointer_sizes(self, sample_layout):
        store, _ = sample_layout
        assert store.find("RenderFlags").size == 1
        assert store.find("flowqueueInterval_t").size == 2
        assert store.find("FARPROC").size == 4
        holder = store.find("Holder")
        assert _offsets(holder) == [("flags", 0), ("interval", 2), ("value", 4), ("callback", 12)]
        assert holder.size == 16

    def test_vtable_layout(self, sample_layout):
        store, report = sample_layout
        vtbl = store.find("Archive_vtbl")
        assert [m.offset for m in vtbl.members] == [0, 4, 8]
        assert vtbl.size == 12
        assert report.laid_out == 9


class TestAlignment:
    def test_scalar_alignment(self):
        store, _ = _layout(_struct("S", "char a;", "short b;", "char c;", "int d;"))
        s = store.find("S")
        assert _offsets(s) == [("a", 0), ("b", 2), ("c", 4), ("d", 8)]
        assert s.size == 12

    def test_eight_byte_scalars_align_to_four(self):
        store, _ = _layout(_struct("S", "char a;", "double d;"))
        assert _offsets(store.find("S")) == [("a", 0), ("d", 4)]
        assert store.find("S").size == 12

    def test_max_natural_alignment_config(self):
        store, _ = _layout(_struct("S", "char a;", "double d;"), config=LayoutConfig(max_natural_alignment=8))
        assert _offsets(store.find("S")) == [("a", 0), ("d", 8)]
        assert store.find("S").size == 16

    def test_padding_member(self):
        store, _ = _layout(_struct("S", "char a;", "_BYTE[3];", "int b;"))
        assert _offsets(store.find("S")) == [("a", 0), ("__padding0", 1), ("b", 4)]

    def test_declspec_alignment(self):
        store, _ = _layout(_struct("S", "int a;", header="__declspec(align(16)) "))
        assert store.find("S").size == 16

    def test_member_alignment(self):
        store, _ = _layout(_struct("S", "char a;", "__declspec(align(8)) int b;"))
        assert _offsets(store.find("S")) == [("a", 0), ("b", 8)]
        assert store.find("S").size == 16

    def test_arrays(self):
        store, _ = _layout(_struct("S", "char name[5];", "int id;", "short pair[2];"))
        s = store.find("S")
        assert _offsets(s) == [("name", 0), ("id", 8), ("pair", 12)]
        assert s.size == 16

    def test_pointers_are_pointer_sized(self):
        store, _ = _layout(_struct("S", "char a;", "double *p;", "Unknown &r;"))
        assert _offsets(store.find("S")) == [("a", 0), ("p", 4), ("r", 8)]

    def test_profile_pointer_size(self, tmp_path):
        profile = tmp_path / "x64.yaml"
        profile.write_text("pointer_size: 8\n", encoding="utf-8")
        store, _ = _layout(_struct("S", "char a;", "void *p;"), registry=load_profiles([str(profile)]))
        assert _offsets(store.find("S")) == [("a", 0), ("p", 4)]
        assert store.find("S").size == 12

    def test_config_pointer_size_wins_over_profile(self, tmp_path):
        profile = tmp_path / "x64.yaml"
        profile.write_text("pointer_size: 8\n", encoding="utf-8")
        store, _ = _layout(
            _struct("S", "char a;", "void *p;"),
            config=LayoutConfig(pointer_size=4),
            registry=load_profiles([str(profile)]),
        )
        assert store.find("S").size == 8


class TestBitFields:
    def test_unit_overflow_starts_new_unit(self):
        store, _ = _layout(_struct("S", "unsigned int a : 20;", "unsigned int b : 20;"))
        assert _offsets(store.find("S")) == [("a", 0), ("b", 4)]
        assert store.find("S").size == 8

    def test_width_change_starts_new_unit(self):
        store, _ = _layout(_struct("S", "unsigned int a : 4;", "unsigned __int8 b : 2;"))
        assert _offsets(store.find("S")) == [("a", 0), ("b", 4)]
        assert store.find("S").size == 8


class TestOrderingAndDiagnostics:
    def test_member_type_declared_later(self):
        outer = _struct("Outer", "char tag;", "Inner inner;")
        inner = "/* 2 */\nstruct Inner\n{\n  double x;\n  double y;\n};\n"
        store, _ = _layout(outer, inner)
        assert _offsets(store.find("Outer")) == [("tag", 0), ("inner", 4)]
        assert store.find("Outer").size == 20

    def test_offset_mismatch_reported(self):
        store, report = _layout(_struct("S", "char a;", "int b; /* 0x2 */"))
        assert len(report.mismatches) == 1
        mismatch = report.mismatches[0]
        assert (mismatch.entity, mismatch.member, mismatch.computed, mismatch.source) == ("S", "b", 4, 2)
        assert store.find("S").members[1].offset == 4

    def test_cycle_does_not_recurse_forever(self, caplog):
        a = _struct("A", "B b;")
        b = "/* 2 */\nstruct B\n{\n  A a;\n};\n"
        store, _ = _layout(a, b)
        assert store.find("A").size is not None
        assert "Layout cycle" in caplog.text

    def test_dependency_order(self):
        outer = _struct("Outer", "Inner inner;")
        inner = "/* 2 */\nstruct Inner\n{\n  int x;\n};\n"
        aggregator = CorpusAggregator()
        aggregator.add_file_result(SourceParser().parse(outer + inner))
        SymbolResolver(aggregator.store).run()
        order = [e.qualified_name for e in LayoutCalculator(aggregator.store).dependency_order()]
        assert order.index("Inner") < order.index("Outer")


@pytest.mark.parametrize("value, alignment, expected", [
    (0, 4, 0),
    (1, 4, 4),
    (4, 4, 4),
    (5, 1, 5),
    (9, 8, 16),
])
def test_align_up(value, alignment, expected):
    assert align_up(value, alignment) == expected
