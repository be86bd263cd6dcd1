#!/usr/bin/env python3
"""
Function Signature Parser

Parses calling conventions, return types and parameter lists out of
decompiler declarations: function-pointer members, function-pointer
parameters, function pointers returning function pointers, and the
signature lines that head function bodies.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple
import logging
import re

from CppParser import CppTypeParser
from core.name_rules import split_declarator
from core.type_model import FunctionSignature, Parameter, TypeDescriptor
from decomp_types import CALLING_CONVENTIONS, CALLING_CONVENTION_PATTERN
from utils.text import (
    collapse_whitespace, find_matching_open, split_top_level, index_outside_angles
)

logger = logging.getLogger(__name__)

_CC = CALLING_CONVENTION_PATTERN
_CC_RE = re.compile(rf'\b({_CC})\b')
_LEADING_POINTER_RE = re.compile(rf'^\s*({_CC})?\s*\*\s*(.*)$', re.DOTALL)
_FUNCPTR_SHAPE_RE = re.compile(rf'\(\s*(?:{_CC})?\s*\*[^()]*\)\s*\(')
_NESTED_FUNCPTR_RE = re.compile(rf'\(\s*(?:{_CC})?\s*\*\s*\(\s*(?:{_CC})?\s*\*')
_ELABORATED_RE = re.compile(r'\b(?:struct|union|enum|class)\s+')
_ARRAY_SUFFIX_RE = re.compile(r'((?:\s*\[\s*\d*\s*\])+)\s*$')
_OPERATOR_NAME_RE = re.compile(r'[\w$:~]*\boperator\b.*$')
_DEFINITION_TRAILER_RE = re.compile(r'\)\s*(?:const|volatile|throw\s*\(\s*\)|noexcept)?(?:\s+(?:const|volatile))*\s*$')

# ===============================================
# SIGNATURE PARSER
# ===============================================

class FunctionSignatureParser:
    """Stateless parsing helpers for function signatures and parameter lists"""

    # ---------- text shape helpers ----------

    @staticmethod
    def split_call(text: str) -> Optional[Tuple[str, str, str]]:
        """Split `head (group)(params)` into its three parts using balanced parentheses."""
        s = text.strip()
        if not s.endswith(')'):
            return None
        params_open = find_matching_open(s, len(s) - 1)
        if params_open <= 0:
            return None
        params = s[params_open + 1:-1]
        before = s[:params_open].rstrip()
        if not before.endswith(')'):
            return None
        group_open = find_matching_open(before, len(before) - 1)
        if group_open == -1:
            return None
        return (before[:group_open].strip(), before[group_open + 1:-1].strip(), params)

    @staticmethod
    def normalize_operator_name(name: str) -> str:
        """`operator ==` -> `operator==`, `operator  new` -> `operator new`."""
        prefix, sep, op = name.partition("operator")
        if not sep:
            return name
        op = op.strip()
        if re.match(r'^[A-Za-z_]', op):
            return f"{prefix}operator {collapse_whitespace(op)}"
        return f"{prefix}operator{op.replace(' ', '')}"

    @classmethod
    def split_pointer_group(cls, group: str) -> Tuple[str, str, int]:
        """(calling_convention, name, pointer_depth) for `__thiscall *Name`."""
        cc_match = _CC_RE.search(group)
        cc = cc_match.group(1) if cc_match else ""
        pointer_part = _CC_RE.sub(' ', group).strip()
        star = index_outside_angles(pointer_part, '*', reverse=True)
        name = pointer_part[star + 1:].strip() if star != -1 else pointer_part
        if name.startswith("const "):
            name = name[len("const "):].strip()
        elif name == "const":
            name = ""
        depth = pointer_part[:star + 1].count('*') if star != -1 else 0
        return cc, cls.normalize_operator_name(name), depth

    @staticmethod
    def function_pointer_type(signature: FunctionSignature) -> TypeDescriptor:
        """Type descriptor `Ret (CC*)(T1,T2)` for a function-pointer signature."""
        cc = signature.calling_convention
        params = ",".join(p.type_reference.text for p in signature.parameters)
        pointer = f"{cc}*" if cc else "*"
        return CppTypeParser.parse_type(f"{signature.return_type.text} ({pointer})({params})")

    @staticmethod
    def is_function_pointer(decl: str) -> bool:
        return bool(_FUNCPTR_SHAPE_RE.search(decl))

    @staticmethod
    def has_nested_function_pointer(decl: str) -> bool:
        """A function pointer whose return type is itself a function pointer."""
        return decl.count('(') >= 3 and bool(_NESTED_FUNCPTR_RE.search(decl))

    # ---------- function pointers ----------

    @classmethod
    def parse_function_pointer(cls, decl: str) -> Optional[Tuple[str, FunctionSignature]]:
        """Parse `Ret (CC *Name)(Params)` into (Name, signature)."""
        parts = cls.split_call(decl)
        if parts is None:
            return None
        head, group, params = parts
        if not head or '*' not in group:
            return None
        cc, name, _ = cls.split_pointer_group(group)
        signature = FunctionSignature(
            name=f"__sig_{name}",
            return_type=CppTypeParser.parse_type(head),
            calling_convention=cc,
            parameters=cls.parse_parameters(params),
        )
        return name, signature

    @classmethod
    def parse_nested_function_pointer(cls, decl: str) -> Optional[Tuple[str, FunctionSignature]]:
        """Parse `Ret (OuterCC *(InnerCC *Name)(InnerParams))(OuterParams)`.

        The textual nesting is inverted: the inner group carries the calling
        convention and parameters of the function itself, while the outer
        parameter list belongs to the function pointer it returns.
        """
        outer = cls.split_call(decl)
        if outer is None:
            return None
        ret, group, outer_params = outer
        m = _LEADING_POINTER_RE.match(group)
        if not ret or not m:
            return None
        outer_cc = m.group(1) or ""
        inner = cls.split_call(m.group(2))
        if inner is None or inner[0]:
            return None
        _, inner_group, inner_params = inner
        inner_cc, name, _ = cls.split_pointer_group(inner_group)

        returned = FunctionSignature(
            name=f"__return_sig_{name}",
            return_type=CppTypeParser.parse_type(ret),
            calling_convention=outer_cc,
            parameters=cls.parse_parameters(outer_params),
        )
        signature = FunctionSignature(
            name=f"__sig_{name}",
            return_type=cls.function_pointer_type(returned),
            calling_convention=inner_cc,
            parameters=cls.parse_parameters(inner_params),
            return_function_signature=returned,
        )
        return name, signature

    # ---------- parameters ----------

    @staticmethod
    def split_parameters(text: str) -> List[str]:
        return [p.strip() for p in split_top_level(text, ',', '<([')]

    @classmethod
    def parse_parameter(cls, text: str, position: int) -> Parameter:
        s = _ELABORATED_RE.sub('', collapse_whitespace(text))
        fallback_name = f"__param{position + 1}"

        if s == "...":
            return Parameter(name=fallback_name, position=position,
                             type_reference=TypeDescriptor(base_name="...", text="..."))

        if cls.is_function_pointer(s):
            parts = cls.split_call(s)
            if parts is not None and parts[0] and '*' in parts[1]:
                head, group, params = parts
                cc, name, _ = cls.split_pointer_group(group)
                nested = FunctionSignature(
                    name=name or f"__nested_funcptr{position + 1}",
                    return_type=CppTypeParser.parse_type(head),
                    calling_convention=cc,
                    parameters=cls.parse_parameters(params),
                )
                return Parameter(
                    name=name or fallback_name,
                    type_reference=cls.function_pointer_type(nested),
                    position=position,
                    is_function_pointer_type=True,
                    nested_function_signature=nested,
                )
            logger.warning(f"Unable to parse function pointer parameter: {s}")

        array_suffix = ""
        m = _ARRAY_SUFFIX_RE.search(s)
        if m:
            array_suffix = m.group(1)
            s = s[:m.start()]

        type_text, name = split_declarator(s)
        descriptor = CppTypeParser.parse_type(type_text + array_suffix)
        if not descriptor.base_name:
            logger.warning(f"Parameter has empty type: '{text.strip()}'")
        return Parameter(name=name or fallback_name, type_reference=descriptor, position=position)

    @classmethod
    def parse_parameters(cls, text: str) -> List[Parameter]:
        stripped = (text or "").strip()
        if not stripped or stripped == "void":
            return []
        params = [cls.parse_parameter(p, i) for i, p in enumerate(cls.split_parameters(stripped))]
        cls.rename_duplicate_parameters(params)
        return params

    @staticmethod
    def rename_duplicate_parameters(params: List[Parameter]) -> None:
        """Every member of a group of same-named parameters gets a `_1`, `_2`, ... suffix."""
        counts: Dict[str, int] = {}
        for param in params:
            counts[param.name] = counts.get(param.name, 0) + 1
        seen: Dict[str, int] = {}
        for param in params:
            if counts[param.name] > 1:
                original = param.name
                seen[original] = seen.get(original, 0) + 1
                param.name = f"{original}_{seen[original]}"

    # ---------- function definitions ----------

    @staticmethod
    def _split_definition_name(pre: str) -> Tuple[str, str]:
        op = _OPERATOR_NAME_RE.search(pre)
        if op:
            return pre[:op.start()].strip(), op.group(0).strip()
        j = len(pre) - 1
        depth = 0
        while j >= 0:
            c = pre[j]
            if c == '>':
                depth += 1
            elif c == '<' and depth > 0:
                depth -= 1
            elif depth == 0 and not (c.isalnum() or c in "_$:~`'"):
                break
            j -= 1
        return pre[:j + 1].strip(), pre[j + 1:].strip()

    @classmethod
    def parse_definition(cls, signature_line: str) -> Optional[FunctionSignature]:
        """Parse the signature line of a function body, e.g. `int __thiscall Foo::Bar(int a)`."""
        clean = collapse_whitespace(signature_line).rstrip('{').strip()
        trailer = _DEFINITION_TRAILER_RE.search(clean)
        if trailer is None:
            return None
        close = trailer.start()
        clean = clean[:close + 1]
        open_ = find_matching_open(clean, close)
        if open_ <= 0:
            return None

        params = clean[open_ + 1:close]
        before, name = cls._split_definition_name(clean[:open_].rstrip())
        if not name:
            return None

        cc = ""
        for convention in CALLING_CONVENTIONS:
            if before.endswith(convention):
                cc = convention
                before = before[:-len(convention)].strip()
                break

        return FunctionSignature(
            name=cls.normalize_operator_name(name),
            return_type=CppTypeParser.parse_type(before),
            calling_convention=cc,
            parameters=cls.parse_parameters(params),
        )

    @staticmethod
    def scope_of(name: str) -> str:
        """`Foo<int>::Bar::baz` -> `Foo<int>::Bar`; unscoped names give ''."""
        depth = 0
        for i in range(len(name) - 1, 0, -1):
            c = name[i]
            if c == '>':
                depth += 1
            elif c == '<':
                depth -= 1
            elif c == ':' and depth == 0 and name[i - 1] == ':':
                return name[:i - 1]
        return ""

    @staticmethod
    def normalized_signature(signature: FunctionSignature) -> str:
        return signature.normalized()


__all__ = ["FunctionSignatureParser"]
