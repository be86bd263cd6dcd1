#!/usr/bin/env python3
"""
Declarator Parser

Turns one statement-terminated member line of a struct or union body into a
Member: name, type descriptor, offset annotation, alignment, bit-field width,
array shape and function-pointer signature. Unnamed members and `_BYTE[N]`
padding receive synthetic `__paddingK` names from a counter owned by the
parser instance.
"""

from __future__ import annotations
from typing import Optional
import logging
import re

from CppParser import CppTypeParser
from core.name_rules import split_declarator
from core.signature import FunctionSignatureParser
from core.type_model import Member, TypeDescriptor
from utils.text import strip_comments, collapse_whitespace

logger = logging.getLogger(__name__)

_OFFSET_COMMENT_RE = re.compile(r'/\*\s*(0[xX][0-9a-fA-F]+|[0-9]+)\s*\*/')
_PADDING_RE = re.compile(r'^_BYTE\s*\[(\d+)\]\s*;$')
_ALIGN_RE = re.compile(r'__declspec\s*\(\s*align\s*\(\s*(\d+)\s*\)\s*\)')
_ELABORATED_RE = re.compile(r'\b(?:struct|union|enum)\s+')
_BIT_FIELD_RE = re.compile(r'(?<!:):(?!:)\s*(\d+)\s*$')
_ARRAY_SUFFIX_RE = re.compile(r'((?:\s*\[\s*\d*\s*\])+)\s*$')
_BASE_CLASS_RE = re.compile(r'^baseclass_[0-9A-Fa-f]+$')


def parse_offset_comment(text: str) -> Optional[int]:
    """Value of the first `/* 0xNN */` or `/* NN */` comment in `text`, if any."""
    m = _OFFSET_COMMENT_RE.search(text)
    if not m:
        return None
    value = m.group(1)
    return int(value, 16) if value[:2].lower() == "0x" else int(value)


class DeclaratorParser:
    """Parses member declaration lines; owns the padding-name counter"""

    def __init__(self, padding_start: int = 0) -> None:
        self._padding_counter = padding_start

    # ---------- padding names ----------

    @property
    def padding_counter(self) -> int:
        return self._padding_counter

    def reset_padding_counter(self, value: int = 0) -> None:
        self._padding_counter = value

    def next_padding_name(self) -> str:
        name = f"__padding{self._padding_counter}"
        self._padding_counter += 1
        return name

    # ---------- members ----------

    @staticmethod
    def is_base_class_member(member: Member) -> bool:
        return bool(_BASE_CLASS_RE.match(member.name))

    def parse_member(self, line: str, line_number: Optional[int] = None) -> Optional[Member]:
        """Parse one member line; returns None (with a warning) for lines that are not declarations."""
        source = line.strip()
        source_offset = parse_offset_comment(source)
        text = collapse_whitespace(strip_comments(source))
        text = _ELABORATED_RE.sub('', text)

        padding = _PADDING_RE.match(text)
        if padding:
            size = int(padding.group(1))
            return Member(
                name=self.next_padding_name(),
                type_reference=TypeDescriptor(
                    base_name="_BYTE", is_array=True, array_size=size, text=f"_BYTE[{size}]"
                ),
                source_offset=source_offset,
                line_number=line_number,
                source=source,
            )

        if not text.endswith(';') or any(c in text for c in "={}"):
            logger.warning(f"Unable to parse line {line_number}: '{source}'")
            return None
        text = text[:-1].strip()

        alignment: Optional[int] = None
        align = _ALIGN_RE.search(text)
        if align:
            alignment = int(align.group(1))
            text = collapse_whitespace(_ALIGN_RE.sub(' ', text))

        if FunctionSignatureParser.is_function_pointer(text):
            return self._parse_function_pointer_member(text, source, source_offset, alignment, line_number)

        bit_field_width: Optional[int] = None
        bit_field = _BIT_FIELD_RE.search(text)
        if bit_field:
            bit_field_width = int(bit_field.group(1))
            text = text[:bit_field.start()].strip()

        array_suffix = ""
        array = _ARRAY_SUFFIX_RE.search(text)
        if array:
            array_suffix = array.group(1)
            text = text[:array.start()].strip()

        type_text, name = split_declarator(text)
        descriptor = CppTypeParser.parse_type(type_text + array_suffix)
        if not descriptor.base_name:
            logger.warning(f"Unable to parse member type on line {line_number}: '{source}'")
            return None

        return Member(
            name=name or self.next_padding_name(),
            type_reference=descriptor,
            source_offset=source_offset,
            alignment=alignment,
            bit_field_width=bit_field_width,
            line_number=line_number,
            source=source,
        )

    def _parse_function_pointer_member(
        self,
        text: str,
        source: str,
        source_offset: Optional[int],
        alignment: Optional[int],
        line_number: Optional[int],
    ) -> Optional[Member]:
        if FunctionSignatureParser.has_nested_function_pointer(text):
            parsed = FunctionSignatureParser.parse_nested_function_pointer(text)
        else:
            parsed = FunctionSignatureParser.parse_function_pointer(text)
        if parsed is None:
            logger.warning(f"Unable to parse function pointer on line {line_number}: '{source}'")
            return None

        name, signature = parsed
        if not name:
            name = self.next_padding_name()
            signature.name = f"__sig_{name}"
            if signature.return_function_signature is not None:
                signature.return_function_signature.name = f"__return_sig_{name}"

        return Member(
            name=name,
            type_reference=FunctionSignatureParser.function_pointer_type(signature),
            source_offset=source_offset,
            alignment=alignment,
            is_function_pointer=True,
            function_signature=signature,
            line_number=line_number,
            source=source,
        )


__all__ = ["DeclaratorParser", "parse_offset_comment"]
