#!/usr/bin/env python3
"""
Static variables

Parses the static/global symbol listing exported next to the decompiled
sources (one `ADDRESS declaration SIZE bytes [section]` line per symbol) and
recovers each variable's initializer from the unindented top-level
`... Name = value;` definitions of the source files.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
import logging
import re

from CppParser import CppTypeParser
from core.signature import FunctionSignatureParser
from core.type_model import StaticVariable
from utils.text import collapse_whitespace, index_outside_angles

logger = logging.getLogger(__name__)

LISTING_LINE_RE = re.compile(r'^([0-9A-Fa-f]{8,16})\s+(.+?)\s+(\d+)\s+bytes\s+\[(.+?)\]$')
_MODIFIER_RE = re.compile(r'\b(?:public|protected|private)\s*:\s*|\b(?:static|const|near|far)\b', re.IGNORECASE)
_TARGET_NAME_RE = re.compile(r'([A-Za-z0-9_]+)\s*(?:\[[^\]]*\]\s*)*$')
_VFTABLE_REF_RE = re.compile(r"&[\w:]+::`vftable'")
_OFFSET_REF_RE = re.compile(r'&off_[0-9a-fA-F]+')


# ===============================================
# SYMBOL LISTING
# ===============================================

class StaticsParser:
    def __init__(self, file: str = "") -> None:
        self.file = file

    def parse_line(self, line: str, line_number: Optional[int] = None) -> Optional[StaticVariable]:
        """One listing line; blank, vftable and unrecognised lines give None."""
        line = line.strip()
        if not line or "vftable" in line:
            return None
        m = LISTING_LINE_RE.match(line)
        if not m:
            return None

        declaration = m.group(2).strip()
        clean = collapse_whitespace(_MODIFIER_RE.sub(' ', declaration))
        split = index_outside_angles(clean, ' ', reverse=True)
        if split == -1:
            # a bare symbol without a type
            type_str, name = "int", clean
        else:
            type_str, name = clean[:split], clean[split + 1:]

        return StaticVariable(
            name=name,
            type_reference=CppTypeParser.parse_type(type_str),
            address=int(m.group(1), 16),
            declaration=declaration,
            size=int(m.group(3)),
            parent_name=FunctionSignatureParser.scope_of(name),
            file=self.file,
            line_number=line_number,
        )

    def parse(self, text: str) -> List[StaticVariable]:
        statics: List[StaticVariable] = []
        for i, line in enumerate(text.splitlines(), 1):
            var = self.parse_line(line, i)
            if var is not None:
                statics.append(var)
        logger.debug(f"Parsed {len(statics)} static variables from {self.file or '<listing>'}")
        return statics

    def parse_file(self, path: str, encoding: str = "utf-8") -> List[StaticVariable]:
        with open(path, 'r', encoding=encoding) as f:
            text = f.read()
        self.file = path
        return self.parse(text)


# ===============================================
# INITIALIZERS
# ===============================================

@dataclass
class StaticDefinition:
    """Unindented `target = value;` found in a source file"""
    target: str
    value: str
    file: str = ""
    line_number: Optional[int] = None

    @property
    def key(self) -> str:
        m = _TARGET_NAME_RE.search(self.target)
        return m.group(1) if m else ""


class _InitializerScanner:
    """Collects initializer text up to the `;` at brace depth zero, outside comments and literals."""

    def __init__(self) -> None:
        self.parts: List[str] = []
        self.braces = 0
        self.quote = ""
        self.block_comment = False
        self.escaped = False

    def feed(self, text: str) -> bool:
        """True once the terminating `;` was reached."""
        self.escaped = False
        i = 0
        n = len(text)
        while i < n:
            c = text[i]
            two = text[i:i + 2]
            if self.block_comment:
                if two == '*/':
                    self.block_comment = False
                    self.parts.append(two)
                    i += 2
                    continue
            elif self.quote:
                if self.escaped:
                    self.escaped = False
                elif c == '\\':
                    self.escaped = True
                elif c == self.quote:
                    self.quote = ""
            elif two == '/*':
                self.block_comment = True
                self.parts.append(two)
                i += 2
                continue
            elif two == '//':
                return False
            elif c == '"':
                self.quote = c
            elif c == "'":
                # `vftable' style names close with a quote after an identifier
                prev = text[i - 1] if i > 0 else ' '
                if not (prev.isalnum() or prev in '_`'):
                    self.quote = c
            elif c == '{':
                self.braces += 1
            elif c == '}':
                self.braces -= 1
            elif c == ';' and self.braces == 0:
                return True
            self.parts.append(c)
            i += 1
        return False

    @property
    def text(self) -> str:
        return ''.join(self.parts).strip()


def clean_value(value: str) -> str:
    """Replace vftable and `off_` address references by commented nullptr."""
    value = _VFTABLE_REF_RE.sub(lambda m: f"nullptr /* {m.group(0)} */", value)
    value = _OFFSET_REF_RE.sub(lambda m: f"nullptr /* {m.group(0)} */", value)
    return value.strip()


def extract_initializer(lines: List[str], start: int, first_chunk: str) -> str:
    scanner = _InitializerScanner()
    if scanner.feed(first_chunk):
        return scanner.text
    for line in lines[start + 1:]:
        scanner.parts.append(' ')
        if scanner.feed(line.strip()):
            break
    return scanner.text


def extract_static_definitions(text: str, file: str = "") -> List[StaticDefinition]:
    definitions: List[StaticDefinition] = []
    lines = text.splitlines()
    for i, line in enumerate(lines):
        if not line or line[0].isspace() or line.startswith(('//', '/*', '#')):
            continue
        eq = line.find('=')
        if eq <= 0 or line[eq + 1:eq + 2] == '=':
            continue
        target = line[:eq].rstrip()
        if not _TARGET_NAME_RE.search(target):
            continue
        value = extract_initializer(lines, i, line[eq + 1:].lstrip())
        definitions.append(StaticDefinition(target=target, value=value, file=file, line_number=i + 1))
    return definitions


def assign_static_values(statics: Iterable[StaticVariable], definitions: Iterable[StaticDefinition]) -> int:
    """First matching definition wins; returns the number of variables given a value."""
    by_key: Dict[str, List[StaticVariable]] = {}
    for var in statics:
        by_key.setdefault(var.short_name, []).append(var)

    found = 0
    for definition in definitions:
        for var in by_key.get(definition.key, []):
            if var.value is None and var.name in definition.target:
                var.value = clean_value(definition.value)
                found += 1
    return found


__all__ = [
    "StaticsParser",
    "StaticDefinition",
    "clean_value",
    "extract_initializer",
    "extract_static_definitions",
    "assign_static_values",
]
