#!/usr/bin/env python3
"""
Declarator name heuristics

The rightmost identifier of a declaration is either its name or the tail of
its type. Each rule below is a pure predicate over (candidate, before) that
returns a NameRole when it applies and None otherwise; the first rule that
answers wins and a candidate no rule claims is a name.

follows_pointer runs before is_reserved_identifier: an identifier right after
`*` or `&` is always the name, even when it starts with `__`. Decompiler output
names members that way (`Archive_vtbl *__vftable;`), so `T *__x` declares `__x`
while `int __x` stays an unnamed `int __x` type.
"""

from __future__ import annotations
from typing import Callable, Optional, Tuple
import re

from decomp_types import NameRole, CPP_TYPE_KEYWORDS, TYPE_QUALIFIERS

NameRule = Callable[[str, str], Optional[NameRole]]

_TRAILING_MODIFIER_RE = re.compile(r'(?:\s|\*|&|\bconst\b|\bvolatile\b)+$')
_IDENTIFIER_TAIL_RE = re.compile(r'[A-Za-z0-9_$~:]+$')

# ===============================================
# RULES
# ===============================================

def follows_pointer(candidate: str, before: str) -> Optional[NameRole]:
    """Nothing after a `*` or `&` can continue the type, so it is the name."""
    if before.rstrip().endswith(('*', '&')):
        return NameRole.NAME
    return None


def is_type_keyword(candidate: str, before: str) -> Optional[NameRole]:
    if candidate in CPP_TYPE_KEYWORDS:
        return NameRole.TYPE
    return None


def is_reserved_identifier(candidate: str, before: str) -> Optional[NameRole]:
    if candidate.startswith("__"):
        return NameRole.TYPE
    return None


def is_qualified_name(candidate: str, before: str) -> Optional[NameRole]:
    if "::" in candidate:
        return NameRole.TYPE
    return None


def lacks_type_before(candidate: str, before: str) -> Optional[NameRole]:
    """Only qualifiers (or nothing) precede the candidate, so there is no separate name."""
    stripped = before.strip()
    if not stripped or stripped.endswith("::"):
        return NameRole.TYPE
    words = stripped.replace('*', ' ').replace('&', ' ').split()
    if all(word in TYPE_QUALIFIERS for word in words):
        return NameRole.TYPE
    return None


NAME_RULES: Tuple[NameRule, ...] = (
    follows_pointer,
    is_type_keyword,
    is_reserved_identifier,
    is_qualified_name,
    lacks_type_before,
)


def classify(candidate: str, before: str) -> NameRole:
    for rule in NAME_RULES:
        role = rule(candidate, before)
        if role is not None:
            return role
    return NameRole.NAME


# ===============================================
# DECLARATOR SPLITTING
# ===============================================

def split_rightmost_identifier(text: str) -> Tuple[str, str, str]:
    """Split into (before, identifier, after) where `after` holds trailing `*`, `&` and qualifiers."""
    text = text.strip()
    m = _TRAILING_MODIFIER_RE.search(text)
    end = m.start() if m else len(text)
    ident = _IDENTIFIER_TAIL_RE.search(text[:end])
    if not ident:
        return (text[:end], "", text[end:])
    return (text[:ident.start()], ident.group(0), text[end:])


def split_declarator(text: str) -> Tuple[str, Optional[str]]:
    """Return (type_text, name); name is None when the declaration is unnamed."""
    before, candidate, after = split_rightmost_identifier(text)
    if not candidate:
        return (text.strip(), None)
    if classify(candidate, before) is NameRole.TYPE:
        return (text.strip(), None)
    return ((before + after).strip(), candidate)


__all__ = [
    "NAME_RULES",
    "follows_pointer",
    "is_type_keyword",
    "is_reserved_identifier",
    "is_qualified_name",
    "lacks_type_before",
    "classify",
    "split_rightmost_identifier",
    "split_declarator",
]
