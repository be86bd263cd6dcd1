
from typing import Dict, List, Optional, Any
import json
import os

import yaml

from utils.text import collapse_whitespace

DEFAULT_PROFILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "x86.yaml")

_SIGN_PREFIXES = ("unsigned ", "signed ")


class TypeSizeRegistry:
    def __init__(self, profiles: Optional[List[Dict[str, Any]]] = None) -> None:
        self.sizes: Dict[str, int] = {}
        self.aliases: Dict[str, str] = {}
        self.pointer_size: Optional[int] = None
        if profiles:
            for prof in profiles:
                self._merge_profile(prof)

    def _merge_profile(self, profile: Dict[str, Any]) -> None:
        self.sizes.update({collapse_whitespace(k): int(v) for k, v in (profile.get("sizes") or {}).items()})
        self.aliases.update({collapse_whitespace(k): collapse_whitespace(v)
                             for k, v in (profile.get("aliases") or {}).items()})
        if profile.get("pointer_size") is not None:
            self.pointer_size = int(profile["pointer_size"])

    def resolve_base(self, base: str) -> str:
        """Follow aliases, then drop a sign prefix the size table does not know."""
        name = collapse_whitespace(base)
        seen = set()
        while name in self.aliases and name not in seen:
            seen.add(name)
            name = self.aliases[name]
        if name not in self.sizes:
            for prefix in _SIGN_PREFIXES:
                if name.startswith(prefix):
                    return self.resolve_base(name[len(prefix):])
        return name

    def size_of(self, base: str) -> Optional[int]:
        return self.sizes.get(self.resolve_base(base))

    def __contains__(self, base: str) -> bool:
        return self.resolve_base(base) in self.sizes


def _load_single_profile(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        if path.lower().endswith(('.yml', '.yaml')):
            try:
                return yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise RuntimeError(f"Failed to load YAML profile: {path}") from e
        return json.load(f)


def load_profiles(paths: Optional[List[str]] = None, include_default: bool = True) -> TypeSizeRegistry:
    profiles: List[Dict[str, Any]] = []
    all_paths = ([DEFAULT_PROFILE] if include_default else []) + list(paths or [])
    for p in all_paths:
        if not p:
            continue
        if not os.path.isfile(p):
            raise FileNotFoundError(f"Type profile file not found: {p}")
        profiles.append(_load_single_profile(p))
    return TypeSizeRegistry(profiles)
