#!/usr/bin/env python3
"""
Tests for the type-string parser (CppTypeParser)
"""

from CppParser import CppTypeParser


class TestParseType:
    """Free-standing type expressions"""

    def test_template_arguments_round_trip(self):
        desc = CppTypeParser.parse_type("IDClass<_tagVersionHandle,32,32>")
        assert desc.base_name == "IDClass"
        assert [a.text for a in desc.template_arguments] == ["_tagVersionHandle", "32", "32"]
        assert desc.name_with_templates == "IDClass<_tagVersionHandle,32,32>"
        assert desc.is_generic

    def test_function_pointer_template_argument(self):
        desc = CppTypeParser.parse_type("const HashTable<unsigned long, void (__cdecl*)(T const&), 0> *")
        assert desc.base_name == "HashTable"
        assert desc.is_const
        assert desc.is_pointer and desc.pointer_depth == 1
        args = desc.template_arguments
        assert len(args) == 3
        assert args[0].base_name == "unsigned long"
        assert args[1].text == "void (__cdecl*)(T const&)"
        assert args[1].is_function_pointer
        assert args[2].base_name == "0"

    def test_namespace_path(self):
        desc = CppTypeParser.parse_type("Archive::SetVersionRow_vtbl *")
        assert desc.namespace_path == ["Archive"]
        assert desc.base_name == "SetVersionRow_vtbl"
        assert desc.fully_qualified_name == "Archive::SetVersionRow_vtbl"
        assert desc.pointer_depth == 1

    def test_templated_scope_kept_in_namespace(self):
        desc = CppTypeParser.parse_type("SmartArray<int,1>::Node")
        assert desc.namespace_path == ["SmartArray<int,1>"]
        assert desc.base_name == "Node"
        assert desc.template_arguments == []

    def test_double_pointer_and_reference(self):
        assert CppTypeParser.parse_type("HKEY__ **").pointer_depth == 2
        ref = CppTypeParser.parse_type("const Foo &")
        assert ref.is_reference and ref.is_const and not ref.is_pointer

    def test_array_suffix(self):
        desc = CppTypeParser.parse_type("char[32]")
        assert desc.base_name == "char"
        assert desc.is_array and desc.array_size == 32

    def test_multi_dimensional_array_multiplies(self):
        desc = CppTypeParser.parse_type("int[4][8]")
        assert desc.array_size == 32

    def test_elaborated_keyword_dropped(self):
        desc = CppTypeParser.parse_type("struct _GUID *")
        assert desc.base_name == "_GUID"
        assert desc.is_pointer

    def test_trailing_const_pointer(self):
        desc = CppTypeParser.parse_type("char *const")
        assert desc.is_pointer and desc.is_const

    def test_empty_input(self):
        desc = CppTypeParser.parse_type("")
        assert desc.base_name == ""
        assert CppTypeParser.parse_type(None).text == ""

    def test_comments_removed(self):
        desc = CppTypeParser.parse_type("Archive_vtbl /*VFT*/ *")
        assert desc.base_name == "Archive_vtbl"
        assert desc.text == "Archive_vtbl*"


class TestTemplateArgs:
    def test_split_ignores_nested_commas(self):
        args = CppTypeParser.split_template_args("A<B,C>,void (*)(int,int),D")
        assert args == ["A<B,C>", "void (*)(int,int)", "D"]

    def test_parse_template_args(self):
        base, args = CppTypeParser.parse_template_args("std::map<int, std::pair<A,B>>")
        assert base == "std::map"
        assert args == ["int", "std::pair<A,B>"]

    def test_no_template(self):
        assert CppTypeParser.parse_template_args("Foo") == ("Foo", [])


class TestEatType:
    def test_stops_before_inheritance(self):
        type_str, rest = CppTypeParser.eat_type("DerivedArchive : Archive")
        assert type_str == "DerivedArchive"
        assert rest == ": Archive"

    def test_consumes_pointer_suffix(self):
        type_str, rest = CppTypeParser.eat_type("const Foo<int> * name")
        assert type_str == "const Foo<int>*"
        assert rest == "name"

    def test_unbalanced_template(self):
        type_str, _ = CppTypeParser.eat_type("Foo<int")
        assert type_str == ""
