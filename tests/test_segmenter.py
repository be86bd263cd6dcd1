#!/usr/bin/env python3
"""
Tests for the declaration segmenter and brace counting
"""

from core.segmenter import BraceCounter, DeclarationSegmenter


class TestBraceCounter:
    def test_counts_real_braces(self):
        counter = BraceCounter()
        counter.feed("struct Foo {")
        assert counter.depth == 1 and not counter.closed
        counter.feed("};")
        assert counter.closed

    def test_ignores_braces_in_comments_and_literals(self):
        counter = BraceCounter()
        counter.feed('{ // }')
        counter.feed('  const char *s = "}"; char c = \'}\';')
        counter.feed('  /* } spans')
        counter.feed('     lines } */')
        assert counter.depth == 1
        counter.feed('}')
        assert counter.closed


class TestDeclarations:
    def test_anchor_and_keyword_required(self):
        text = "\n".join([
            "/* 1 */",
            "struct Foo",
            "{",
            "  int a;",
            "};",
            "struct NotAnchored { int b; };",
            "/* 2 */",
            "  struct Indented;",
        ])
        decls = DeclarationSegmenter(text).declarations()
        assert len(decls) == 1
        assert decls[0].keyword == "struct"
        assert decls[0].ordinal == 1
        assert decls[0].line_number == 2
        assert decls[0].text.endswith("};")

    def test_forward_declaration(self):
        decls = DeclarationSegmenter("/* 7 */\nstruct Widget;\n").declarations()
        assert len(decls) == 1
        assert decls[0].is_forward_declaration
        assert decls[0].text == "struct Widget;"

    def test_brace_in_comment_does_not_close(self):
        text = "\n".join([
            "/* 3 */",
            "struct Foo",
            "{",
            "  int a; // }",
            "  int b; /* } */",
            "};",
            "/* 4 */",
            "enum Bar { A, B };",
        ])
        decls = DeclarationSegmenter(text).declarations()
        assert [d.keyword for d in decls] == ["struct", "enum"]
        assert len(decls[0].lines) == 5
        assert not decls[0].is_forward_declaration

    def test_typedef_and_qualified_record(self):
        text = "/* 5 */\ntypedef int INT32;\n/* 6 */\nconst struct Frozen\n{\n  int a;\n};\n"
        decls = DeclarationSegmenter(text).declarations()
        assert [d.keyword for d in decls] == ["typedef", "struct"]

    def test_list_input(self, sample_sources):
        lines = sample_sources["archive.h"].splitlines()
        decls = DeclarationSegmenter(lines, "archive.h").declarations()
        assert [d.ordinal for d in decls] == [1, 2, 3, 4]

    def test_unterminated(self, caplog):
        decls = DeclarationSegmenter("/* 1 */\nstruct Foo\n{\n  int a;\n").declarations()
        assert len(decls) == 1
        assert "unterminated declaration" in caplog.text


class TestFunctionBodies:
    def test_collects_body_and_address(self, sample_sources):
        bodies = DeclarationSegmenter(sample_sources["archive.h"]).function_bodies()
        # the deleting destructor is skipped
        assert len(bodies) == 1
        body = bodies[0]
        assert body.address == 0x401000
        assert body.signature.startswith("int __thiscall Archive::InitForPacking(")
        assert body.body_text.rstrip().endswith("}")
        assert "return 0;" in body.body_text

    def test_multi_line_signature(self):
        text = "\n".join([
            "//----- (00402000) ----------------------------------------",
            "void __cdecl Reset(",
            "    int a,",
            "    char *b)",
            "{",
            "}",
        ])
        bodies = DeclarationSegmenter(text).function_bodies()
        assert bodies[0].signature == "void __cdecl Reset( int a, char *b)"
        assert bodies[0].line_number == 1

    def test_preprocessor_line_skipped(self):
        text = "//----- (00402000) ------\n#error \"bad\"\n"
        assert DeclarationSegmenter(text).function_bodies() == []

    def test_header_without_body(self, caplog):
        text = "\n".join([
            "//----- (00402000) ------",
            "int Broken(int a)",
            "//----- (00402010) ------",
            "int Fine(void)",
            "{",
            "  return 1;",
            "}",
        ])
        bodies = DeclarationSegmenter(text).function_bodies()
        assert [b.address for b in bodies] == [0x402010]
        assert "unterminated function body" in caplog.text
