from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional
import json
import os

import yaml


class ConfigError(ValueError):
    """Malformed configuration file or value"""


@dataclass
class IgnoreConfig:
    enabled: bool = True
    prefixes: List[str] = field(default_factory=lambda: [
        "_", "tag", "ATL", "std", "Windows", "RPC", "IOle", "IPersist", "IDirect",
        "type_info", "exception",
    ])
    suffixes: List[str] = field(default_factory=lambda: ["_", "_tag"])
    # Never ignored, even when a prefix or suffix matches
    whitelist: List[str] = field(default_factory=lambda: [
        "_GUID", "_IDClass", "_tagDataID", "_tagVersionHandle", "tagPOINT", "tagRECT",
    ])


@dataclass
class LayoutConfig:
    pointer_size: Optional[int] = None         # None = pointer_size of the type profiles
    max_natural_alignment: int = 4             # 8-byte scalars align to 4 on x86
    default_type_size: int = 4                 # size assumed for unknown types


@dataclass
class PipelineConfig:
    # Phase 1 worker pool
    max_workers: Optional[int] = None          # None = executor default, 1 = inline
    use_processes: bool = True                 # False = thread pool
    encoding: str = "utf-8"
    file_patterns: List[str] = field(default_factory=lambda: ["*.h", "*.c", "*.cpp", "*.txt"])
    # Static/global symbol listing (`ADDRESS declaration SIZE bytes [section]` lines)
    statics_file: Optional[str] = None

    # Primitive size profiles, applied after the bundled x86 profile
    types_profiles: Optional[List[str]] = None
    log_level: str = "INFO"

    ignore: IgnoreConfig = field(default_factory=IgnoreConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PipelineConfig":
        data = dict(data or {})
        ignore = _build(IgnoreConfig, data.pop("ignore", None) or {}, "ignore")
        layout = _build(LayoutConfig, data.pop("layout", None) or {}, "layout")
        config = _build(cls, data, "pipeline")
        config.ignore = ignore
        config.layout = layout
        return config


def _build(cls: type, data: Dict[str, Any], section: str) -> Any:
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{section}' must be a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown key(s) in '{section}': {', '.join(unknown)}")
    return cls(**data)


def load_config(path: str) -> PipelineConfig:
    """Load a PipelineConfig from a YAML or JSON file."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        try:
            if path.lower().endswith(('.yml', '.yaml')):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to parse config file {path}: {e}") from e
    return PipelineConfig.from_dict(data)


DEFAULT_CONFIG = PipelineConfig()

__all__ = [
    "ConfigError",
    "IgnoreConfig",
    "LayoutConfig",
    "PipelineConfig",
    "DEFAULT_CONFIG",
    "load_config",
]
