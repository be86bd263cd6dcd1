from __future__ import annotations

import re
from typing import List

_WS_RE = re.compile(r'\s+')
CHAR_LITERAL_RE = re.compile(r"'(?:\\.|[^\\'\n])'")

_OPENERS = {'<': '>', '(': ')', '[': ']', '{': '}'}
_CLOSERS = {v: k for k, v in _OPENERS.items()}


def strip_comments(text: str) -> str:
    """Remove // and /* */ comments, leaving string and char literals untouched."""
    out: List[str] = []
    i = 0
    n = len(text)
    quote = ''
    while i < n:
        c = text[i]
        if quote:
            out.append(c)
            if c == '\\' and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if c == quote:
                quote = ''
            i += 1
            continue
        if c == '"':
            quote = c
            out.append(c)
            i += 1
            continue
        if c == "'":
            # `anonymous namespace' style names use a lone quote
            m = CHAR_LITERAL_RE.match(text, i)
            if m:
                out.append(m.group(0))
                i = m.end()
                continue
        if c == '/' and i + 1 < n and text[i + 1] == '/':
            end = text.find('\n', i)
            if end == -1:
                break
            i = end
            continue
        if c == '/' and i + 1 < n and text[i + 1] == '*':
            end = text.find('*/', i + 2)
            if end == -1:
                break
            out.append('\n' * text.count('\n', i, end) or ' ')
            i = end + 2
            continue
        out.append(c)
        i += 1
    return ''.join(out)


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(' ', text or '').strip()


def normalize_type_string(text: str) -> str:
    """Canonical spacing for a type string: single spaces, `T*`, `T&`, `A<B>`, `A,B`."""
    s = collapse_whitespace(text)
    s = re.sub(r'\s+([*&>,\]])', r'\1', s)
    s = re.sub(r'([<\[])\s+', r'\1', s)
    s = re.sub(r',\s+', ',', s)
    return s


def find_matching_close(text: str, open_index: int) -> int:
    """Index of the bracket closing text[open_index], or -1."""
    open_ch = text[open_index]
    close_ch = _OPENERS[open_ch]
    depth = 0
    for i in range(open_index, len(text)):
        c = text[i]
        if c == open_ch:
            depth += 1
        elif c == close_ch:
            depth -= 1
            if depth == 0:
                return i
    return -1


def find_matching_open(text: str, close_index: int) -> int:
    """Index of the bracket opening text[close_index], or -1."""
    close_ch = text[close_index]
    open_ch = _CLOSERS[close_ch]
    depth = 0
    for i in range(close_index, -1, -1):
        c = text[i]
        if c == close_ch:
            depth += 1
        elif c == open_ch:
            depth -= 1
            if depth == 0:
                return i
    return -1


def split_top_level(text: str, sep: str = ',', brackets: str = '<([') -> List[str]:
    """Split on `sep` only where every bracket kind in `brackets` is at depth zero.

    Each bracket kind has its own counter, so a stray `>` inside a parenthesized
    function-pointer argument cannot unbalance the angle depth of the outer list.
    """
    depths = {b: 0 for b in brackets}
    closers = {_OPENERS[b]: b for b in brackets}
    parts: List[str] = []
    start = 0
    for i, c in enumerate(text):
        if c in depths:
            depths[c] += 1
        elif c in closers:
            opener = closers[c]
            if depths[opener] > 0:
                depths[opener] -= 1
        elif c == sep and not any(depths.values()):
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def index_outside_angles(text: str, ch: str, reverse: bool = False) -> int:
    """First (or last) index of `ch` at angle depth zero, or -1."""
    depth = 0
    positions = range(len(text) - 1, -1, -1) if reverse else range(len(text))
    opener, closer = ('>', '<') if reverse else ('<', '>')
    for i in positions:
        c = text[i]
        if c == opener:
            depth += 1
        elif c == closer and depth > 0:
            depth -= 1
        elif c == ch and depth == 0:
            return i
    return -1


def strip_templates(text: str) -> str:
    """Remove every balanced `<...>` span: `A<B<C>>::D<E>` -> `A::D`."""
    out: List[str] = []
    depth = 0
    for c in text:
        if c == '<':
            depth += 1
        elif c == '>' and depth > 0:
            depth -= 1
        elif depth == 0:
            out.append(c)
    return ''.join(out).strip()


__all__ = [
    "CHAR_LITERAL_RE",
    "strip_comments",
    "collapse_whitespace",
    "normalize_type_string",
    "find_matching_close",
    "find_matching_open",
    "split_top_level",
    "index_outside_angles",
    "strip_templates",
]
