#!/usr/bin/env python3
"""
Declaration Segmenter

Splits one decompiler output file into raw declaration blocks (anchored by a
`/* N */` ordinal comment on the preceding line) and raw function bodies
(headed by `//----- (HEXADDR) -----`). Brace matching ignores braces inside
comments and string or character literals.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional, Union
import logging
import re

from utils.text import CHAR_LITERAL_RE, strip_comments, collapse_whitespace

logger = logging.getLogger(__name__)

ANCHOR_RE = re.compile(r'/\*\s*(\d+)\s*\*/')
DECLARATION_START_RE = re.compile(r'^(?:(?:const|volatile)\s+)*(struct|union|enum|typedef)\b')
FUNCTION_HEADER_RE = re.compile(r'^//-+ \(([0-9A-Fa-f]+)\) -+')


# ===============================================
# RAW SEGMENTS
# ===============================================

@dataclass
class RawDeclaration:
    keyword: str
    text: str
    line_number: int
    ordinal: Optional[int] = None

    @property
    def is_forward_declaration(self) -> bool:
        return '{' not in strip_comments(self.text)

    @property
    def lines(self) -> List[str]:
        return self.text.split('\n')


@dataclass
class RawFunctionBody:
    address: Optional[int]
    signature: str
    body_text: str
    line_number: int


# ===============================================
# BRACE COUNTING
# ===============================================

class BraceCounter:
    """Running brace depth over successive lines, outside comments and literals"""

    def __init__(self) -> None:
        self.depth = 0
        self.seen_open = False
        self.in_block_comment = False

    def feed(self, line: str) -> int:
        i = 0
        n = len(line)
        while i < n:
            c = line[i]
            if self.in_block_comment:
                end = line.find('*/', i)
                if end == -1:
                    return self.depth
                self.in_block_comment = False
                i = end + 2
                continue
            if c == '/' and i + 1 < n:
                if line[i + 1] == '/':
                    break
                if line[i + 1] == '*':
                    self.in_block_comment = True
                    i += 2
                    continue
            if c == '"':
                i = self._skip_string(line, i)
                continue
            if c == "'":
                m = CHAR_LITERAL_RE.match(line, i)
                if m:
                    i = m.end()
                    continue
            if c == '{':
                self.depth += 1
                self.seen_open = True
            elif c == '}' and self.depth > 0:
                self.depth -= 1
            i += 1
        return self.depth

    @staticmethod
    def _skip_string(line: str, start: int) -> int:
        i = start + 1
        while i < len(line):
            if line[i] == '\\':
                i += 2
                continue
            if line[i] == '"':
                return i + 1
            i += 1
        return len(line)

    @property
    def closed(self) -> bool:
        return self.seen_open and self.depth == 0


# ===============================================
# SEGMENTER
# ===============================================

class DeclarationSegmenter:
    def __init__(self, source: Union[str, List[str]], file: str = "") -> None:
        self.lines: List[str] = source.splitlines() if isinstance(source, str) else list(source)
        self.file = file

    def declarations(self) -> List[RawDeclaration]:
        result: List[RawDeclaration] = []
        i = 0
        n = len(self.lines)
        while i < n:
            anchor = ANCHOR_RE.search(self.lines[i])
            start = DECLARATION_START_RE.match(self.lines[i + 1]) if anchor and i + 1 < n else None
            if not start:
                i += 1
                continue
            first = i + 1
            last = self._collect_declaration(first)
            result.append(RawDeclaration(
                keyword=start.group(1),
                text='\n'.join(self.lines[first:last + 1]),
                line_number=first + 1,
                ordinal=int(anchor.group(1)),
            ))
            i = last + 1
        return result

    def _collect_declaration(self, first: int) -> int:
        head = strip_comments(self.lines[first])
        if ';' in head and '{' not in head:
            return first
        counter = BraceCounter()
        for j in range(first, len(self.lines)):
            counter.feed(self.lines[j])
            if counter.closed:
                return j
            if not counter.seen_open and ';' in strip_comments(self.lines[j]):
                return j
        logger.warning(f"{self.file}:{first + 1}: unterminated declaration, collected to end of file")
        return len(self.lines) - 1

    def function_bodies(self) -> List[RawFunctionBody]:
        result: List[RawFunctionBody] = []
        i = 0
        n = len(self.lines)
        while i < n:
            header = FUNCTION_HEADER_RE.match(self.lines[i].strip())
            if not header:
                i += 1
                continue

            sig_index = i + 1
            while sig_index < n and not self.lines[sig_index].strip():
                sig_index += 1
            if sig_index >= n:
                break

            first = self.lines[sig_index].strip()
            if first.startswith('#') or "deleting destructor" in first:
                logger.debug(f"{self.file}:{sig_index + 1}: skipping unmodeled function '{first}'")
                i = sig_index + 1
                continue

            body = self._collect_body(sig_index)
            if body is None:
                logger.warning(f"{self.file}:{i + 1}: unterminated function body, skipped")
                i = sig_index
                continue

            signature, last = body
            result.append(RawFunctionBody(
                address=int(header.group(1), 16),
                signature=signature,
                body_text='\n'.join(self.lines[sig_index:last + 1]),
                line_number=i + 1,
            ))
            i = last + 1
        return result

    def _collect_body(self, sig_index: int) -> Optional[tuple]:
        parts: List[str] = []
        counter = BraceCounter()
        found_open = False
        for k in range(sig_index, len(self.lines)):
            line = self.lines[k]
            if not found_open:
                if k > sig_index and FUNCTION_HEADER_RE.match(line.strip()):
                    return None
                code = strip_comments(line)
                brace = code.find('{')
                parts.append(code if brace == -1 else code[:brace])
                found_open = brace != -1
            counter.feed(line)
            if found_open and counter.depth == 0:
                return collapse_whitespace(' '.join(parts)), k
        return None


__all__ = [
    "RawDeclaration",
    "RawFunctionBody",
    "BraceCounter",
    "DeclarationSegmenter",
    "ANCHOR_RE",
    "FUNCTION_HEADER_RE",
]
