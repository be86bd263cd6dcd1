#!/usr/bin/env python3
"""
Tests for FunctionSignatureParser
"""

import pytest

from core.signature import FunctionSignatureParser as SP


class TestParameters:
    def test_void_and_empty(self):
        assert SP.parse_parameters("") == []
        assert SP.parse_parameters("void") == []

    def test_named_and_unnamed(self):
        params = SP.parse_parameters("Archive *this, const void *, unsigned int size")
        assert [p.name for p in params] == ["this", "__param2", "size"]
        assert [p.position for p in params] == [0, 1, 2]
        assert params[1].type_reference.is_const
        assert params[1].type_reference.base_name == "void"

    def test_duplicate_names_all_suffixed(self):
        params = SP.parse_parameters("int a, int a, int b")
        assert [p.name for p in params] == ["a_1", "a_2", "b"]

    def test_varargs(self):
        params = SP.parse_parameters("const char *fmt, ...")
        assert params[1].type_reference.base_name == "..."
        assert params[1].name == "__param2"

    def test_template_argument_commas(self):
        params = SP.parse_parameters("std::map<int,float> *m, int n")
        assert len(params) == 2
        assert params[0].type_reference.base_name == "map"

    def test_function_pointer_parameter(self):
        params = SP.parse_parameters("int (__cdecl *compare)(const void *, const void *), int count")
        cb = params[0]
        assert cb.name == "compare"
        assert cb.is_function_pointer_type
        assert cb.nested_function_signature.calling_convention == "__cdecl"
        assert len(cb.nested_function_signature.parameters) == 2
        assert cb.type_reference.is_function_pointer

    def test_unnamed_function_pointer_parameter(self):
        params = SP.parse_parameters("int x, void (__stdcall *)(int)")
        assert params[1].name == "__param2"
        assert params[1].nested_function_signature.name == "__nested_funcptr2"

    def test_array_parameter(self):
        param = SP.parse_parameter("char buffer[16]", 0)
        assert param.name == "buffer"
        assert param.type_reference.array_size == 16


class TestFunctionPointers:
    def test_detection(self):
        assert SP.is_function_pointer("int (__thiscall *Foo)(Archive *this)")
        assert not SP.is_function_pointer("int Foo(int a)")
        assert SP.has_nested_function_pointer("void (__cdecl *(__thiscall *Get)(int))(int)")
        assert not SP.has_nested_function_pointer("int (__thiscall *Foo)(Archive *this)")

    def test_parse_function_pointer(self):
        name, sig = SP.parse_function_pointer("bool (__stdcall *Filter)(unsigned __int16)")
        assert name == "Filter"
        assert sig.return_type.base_name == "bool"
        assert sig.parameters[0].type_reference.base_name == "unsigned __int16"

    def test_function_pointer_type_text(self):
        _, sig = SP.parse_function_pointer("int (__thiscall *Foo)(Archive *this, int)")
        desc = SP.function_pointer_type(sig)
        assert desc.text == "int (__thiscall*)(Archive*,int)"
        assert desc.is_function_pointer

    def test_not_a_function_pointer(self):
        assert SP.parse_function_pointer("int value") is None


class TestDefinitions:
    def test_method_definition(self):
        sig = SP.parse_definition(
            "int __thiscall Archive::InitForPacking(Archive *this, const void *data, unsigned int size)"
        )
        assert sig.name == "Archive::InitForPacking"
        assert sig.calling_convention == "__thiscall"
        assert sig.return_type.base_name == "int"
        assert [p.name for p in sig.parameters] == ["this", "data", "size"]

    def test_pointer_return_and_template_scope(self):
        sig = SP.parse_definition("Node *__cdecl SmartArray<int,1>::Find(int key)")
        assert sig.name == "SmartArray<int,1>::Find"
        assert sig.return_type.is_pointer
        assert SP.scope_of(sig.name) == "SmartArray<int,1>"

    def test_operator_name(self):
        sig = SP.parse_definition("bool __thiscall Vec::operator ==(Vec *this, const Vec *other)")
        assert sig.name == "Vec::operator=="

    def test_const_method(self):
        sig = SP.parse_definition("int __thiscall Foo::Get(Foo *this) const")
        assert sig.name == "Foo::Get"

    def test_unparsable(self):
        assert SP.parse_definition("not a signature") is None

    def test_normalized(self):
        sig = SP.parse_definition("void __cdecl Reset(int a, char *b)")
        assert SP.normalized_signature(sig) == "void __cdecl Reset(int,char*)"


@pytest.mark.parametrize("name, scope", [
    ("Foo::Bar::baz", "Foo::Bar"),
    ("Foo<A::B>::baz", "Foo<A::B>"),
    ("baz", ""),
])
def test_scope_of(name, scope):
    assert SP.scope_of(name) == scope


@pytest.mark.parametrize("raw, expected", [
    ("operator ==", "operator=="),
    ("Foo::operator  new", "Foo::operator new"),
    ("Foo::Bar", "Foo::Bar"),
])
def test_normalize_operator_name(raw, expected):
    assert SP.normalize_operator_name(raw) == expected
