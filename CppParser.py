
import logging
import re
from typing import List, Optional, Tuple

from core.type_model import TypeDescriptor
from utils.text import (
    strip_comments, normalize_type_string, find_matching_close,
    split_top_level, index_outside_angles
)

logger = logging.getLogger(__name__)

_MULTIWORD_RE = re.compile(r'\s+(?!const\b|volatile\b)(?=[A-Za-z_$])')
_ARRAY_RE = re.compile(r'\[\s*(\d*)\s*\]')
_NUMERIC_RE = re.compile(r'-?\d[\w.]*')


class CppTypeParser:
    _LEADING_QUALIFIERS: frozenset[str] = frozenset({"const", "volatile"})
    _ELABORATED_KEYWORDS: frozenset[str] = frozenset({"struct", "union", "enum", "class"})
    _TRAILING_IGNORED: frozenset[str] = frozenset({"__ptr32", "__ptr64", "__unaligned", "__restrict"})

    @staticmethod
    def _is_ident_char(c: str) -> bool:
        return c.isalnum() or c in "_$~`'?@"

    @staticmethod
    def normalize(type_str: Optional[str]) -> str:
        return normalize_type_string(strip_comments(type_str or ""))

    @staticmethod
    def split_template_args(args_text: str) -> List[str]:
        """Split a template argument list at commas that are outside every <>, () and [] pair."""
        if not args_text or not args_text.strip():
            return []
        parts = split_top_level(args_text, ',', '<([')
        return [p.strip() for p in parts if p.strip()]

    @staticmethod
    def parse_template_args(type_str: str) -> Tuple[str, List[str]]:
        """Return the text before the first template span and its top-level arguments."""
        s: str = (type_str or "").strip()
        lt = s.find('<')
        if lt == -1:
            return (s, [])
        close = find_matching_close(s, lt)
        if close == -1:
            return (s, [])
        return (s[:lt].strip(), CppTypeParser.split_template_args(s[lt + 1:close]))

    @classmethod
    def _scan_path(cls, s: str, i: int) -> int:
        """End index of the qualified path starting at i, or -1 on an unbalanced template."""
        n = len(s)
        while i < n:
            c = s[i]
            if cls._is_ident_char(c):
                i += 1
            elif c == ':':
                if s.startswith('::', i):
                    i += 2
                else:
                    break
            elif c == '<':
                close = find_matching_close(s, i)
                if close == -1:
                    return -1
                i = close + 1
            elif c == ' ' and i > 0 and cls._is_ident_char(s[i - 1]):
                m = _MULTIWORD_RE.match(s, i)
                if not m:
                    break
                i = m.end()
            else:
                break
        return i

    @classmethod
    def _strip_leading_words(cls, s: str, desc: Optional[TypeDescriptor] = None) -> str:
        while True:
            word, _, tail = s.partition(' ')
            if not tail:
                return s
            if word in cls._LEADING_QUALIFIERS:
                if desc is not None:
                    if word == "const":
                        desc.is_const = True
                    else:
                        desc.is_volatile = True
            elif word not in cls._ELABORATED_KEYWORDS:
                return s
            s = tail.lstrip()

    @staticmethod
    def _split_segments(path: str) -> List[str]:
        segments: List[str] = []
        depth = 0
        start = 0
        i = 0
        while i < len(path):
            c = path[i]
            if c == '<':
                depth += 1
            elif c == '>':
                depth -= 1
            elif c == ':' and depth == 0 and path.startswith('::', i):
                segments.append(path[start:i])
                start = i + 2
                i += 2
                continue
            i += 1
        segments.append(path[start:])
        return [seg.strip() for seg in segments if seg.strip()]

    @classmethod
    def parse_type(cls, type_str: Optional[str]) -> TypeDescriptor:
        """Parse one type expression; never raises, an unparsable input gives an empty base_name."""
        s = cls.normalize(type_str)
        desc = TypeDescriptor(text=s)
        if not s:
            return desc

        s = cls._strip_leading_words(s, desc)

        if index_outside_angles(s, '(') != -1:
            desc.base_name = s
            desc.is_function_pointer = True
            desc.is_pointer = True
            desc.pointer_depth = 1
            return desc

        if _NUMERIC_RE.fullmatch(s):
            desc.base_name = s
            return desc

        end = cls._scan_path(s, 0)
        if end <= 0:
            logger.debug(f"Unparsable type string: '{s}'")
            return desc

        segments = cls._split_segments(s[:end])
        if not segments:
            return desc

        last = segments[-1]
        lt = last.find('<')
        if lt != -1:
            close = find_matching_close(last, lt)
            desc.base_name = (last[:lt] + last[close + 1:]).strip()
            desc.template_arguments = [
                cls.parse_type(arg) for arg in cls.split_template_args(last[lt + 1:close])
            ]
        else:
            desc.base_name = last
        desc.namespace_path = segments[:-1]

        cls._apply_trailing(desc, s[end:])
        return desc

    @classmethod
    def _apply_trailing(cls, desc: TypeDescriptor, rest: str) -> None:
        sizes = [int(m) if m else None for m in _ARRAY_RE.findall(rest)]
        if sizes:
            desc.is_array = True
            if all(size is not None for size in sizes):
                total = 1
                for size in sizes:
                    total *= size
                desc.array_size = total
            rest = _ARRAY_RE.sub(' ', rest)

        desc.pointer_depth = rest.count('*')
        desc.is_pointer = desc.pointer_depth > 0
        desc.is_reference = '&' in rest
        for word in re.findall(r'[A-Za-z_]\w*', rest):
            if word == "const":
                desc.is_const = True
            elif word == "volatile":
                desc.is_volatile = True
            elif word not in cls._TRAILING_IGNORED:
                logger.debug(f"Ignoring trailing token '{word}' in type '{desc.text}'")

    @classmethod
    def eat_type(cls, text: str) -> Tuple[str, str]:
        """Consume one type from the head of `text`; returns (type_string, remainder)."""
        s = (text or "").lstrip()
        prefix = ""
        for qualifier in ("const ", "volatile "):
            if s.startswith(qualifier):
                prefix += qualifier
                s = s[len(qualifier):].lstrip()

        end = cls._scan_path(s, 0)
        if end <= 0:
            return ("", s.strip())

        n = len(s)
        while True:
            j = end
            while j < n and s[j] == ' ':
                j += 1
            if j < n and s[j] in '*&':
                end = j + 1
                continue
            break

        return (normalize_type_string(prefix + s[:end]), s[end:].strip())


__all__ = ["CppTypeParser"]
