"""
Configuration loaded from `.ispy.yml`.

    isolate_listeners: true     # failing listeners don't stop delivery
    registry_enabled: true      # retain every Spy in the process registry
    prune_missing: false        # universe trackers drop vanished subjects
    poll_interval: 0.5          # seconds between watch cycles
    include_hash: false         # hash file contents in file snapshots
    patterns: ["*.py", "*.md"]  # file patterns to watch (empty = all)
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from . import bus, spy

CONFIG_FILENAME = ".ispy.yml"


@dataclass
class SpyConfig:
    isolate_listeners: bool = True
    registry_enabled: bool = True
    prune_missing: bool = False
    poll_interval: float = 0.5
    include_hash: bool = False
    patterns: list[str] = field(default_factory=list)


def _coerce(key: str, value: Any, default: Any) -> Any:
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be true or false, got {value!r}")
        return value
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number, got {value!r}")
        if value <= 0:
            raise ValueError(f"{key} must be positive, got {value!r}")
        return float(value)
    if isinstance(default, list):
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"{key} must be a list of strings, got {value!r}")
        return [v.strip() for v in value if v.strip()]
    return value


def parse_config(data: Any) -> SpyConfig:
    """Build a SpyConfig from parsed YAML, rejecting unknown keys."""
    if data is None:
        return SpyConfig()
    if not isinstance(data, dict):
        raise ValueError("config must be a mapping")

    defaults = SpyConfig()
    known = {f.name for f in fields(SpyConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(map(str, unknown))}")

    values = {key: _coerce(key, value, getattr(defaults, key)) for key, value in data.items()}
    return SpyConfig(**values)


def load_config(path: Path) -> SpyConfig:
    """Load config from a YAML file; a missing file yields the defaults."""
    if not path.exists():
        return SpyConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"{path}: invalid YAML: {exc}") from exc
    try:
        return parse_config(data)
    except ValueError as exc:
        raise ValueError(f"{path}: {exc}") from exc


def find_config(start: Path) -> Path | None:
    """Find `.ispy.yml` by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def apply_config(config: SpyConfig) -> None:
    """Apply the process-wide settings (listener isolation, Spy registry)."""
    bus.set_default_isolation(config.isolate_listeners)
    if config.registry_enabled:
        if spy.get_spy_registry() is None:
            spy.set_spy_registry(spy.SpyRegistry())
    else:
        spy.set_spy_registry(None)
