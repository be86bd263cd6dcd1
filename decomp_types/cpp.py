#!/usr/bin/env python3
"""
C++ dialect vocabulary shared by the parsers.
"""

from typing import FrozenSet, Tuple

# ---------- Calling conventions emitted by the decompiler ----------
CALLING_CONVENTIONS: Tuple[str, ...] = ("__thiscall", "__stdcall", "__cdecl", "__fastcall")
CALLING_CONVENTION_PATTERN = r'(?:__thiscall|__stdcall|__cdecl|__fastcall)'

# ---------- Words that can never be a declarator name ----------
CPP_TYPE_KEYWORDS: FrozenSet[str] = frozenset({
    "int", "char", "float", "double", "bool", "void", "short", "long", "signed", "unsigned",
    "wchar_t", "char16_t", "char32_t", "auto", "nullptr_t",
    "const", "volatile", "restrict", "constexpr", "consteval", "constinit",
    "static", "extern", "register", "mutable", "thread_local", "inline",
    "virtual", "explicit", "friend", "public", "private", "protected",
    "struct", "class", "union", "enum",
    "__unaligned", "__declspec", "__cppobj", "__thiscall", "__stdcall", "__cdecl", "__fastcall",
    "__inline", "__forceinline", "__restrict", "__based", "__ptr32", "__ptr64", "__w64",
    "__try", "__except", "__finally",
})

# ---------- Qualifiers that may surround a type without naming it ----------
TYPE_QUALIFIERS: FrozenSet[str] = frozenset({"const", "volatile", "struct", "enum", "union", "class"})

# ---------- Builtin words used for primitive classification ----------
BUILTIN_TYPE_WORDS: FrozenSet[str] = frozenset({
    "void", "bool", "char", "wchar_t", "char16_t", "char32_t", "int", "short", "long",
    "signed", "unsigned", "float", "double", "_BYTE", "_WORD", "_DWORD", "_QWORD", "_BOOL1",
    "_BOOL4", "__int8", "__int16", "__int32", "__int64", "nullptr_t",
})
