"""Configuration loading for callergen (.callergen.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".callergen.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class AggregatorConfig:
    """Location and crate name of the generated stub-aggregator project."""

    name: str = "caller-utils"
    path: str = "caller-utils"


@dataclass
class CallerGenConfig:
    """Represents the settings defined in .callergen.yml."""

    root: Path
    api_dir: str = "api"
    component_marker: str = "hyperware:process"
    wit_package: str = "hyperware:process@1.0.0"
    world: Optional[str] = None
    include_worlds: List[str] = field(default_factory=lambda: ["process-v1"])
    send_timeout: int = 30
    exclude_paths: List[str] = field(default_factory=list)
    wire_all_processes: bool = False
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)

    @property
    def api_path(self) -> Path:
        return self.root / self.api_dir

    @property
    def aggregator_path(self) -> Path:
        return self.root / self.aggregator.path


def load_config(config_path: Path) -> CallerGenConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CallerGenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = CallerGenConfig(root=root)

    api_dir = _as_str(data.get("api_dir"))
    if api_dir:
        config.api_dir = api_dir
    marker = _as_str(data.get("component_marker"))
    if marker:
        config.component_marker = marker
    wit_package = _as_str(data.get("wit_package"))
    if wit_package:
        if ":" not in wit_package:
            raise ConfigError("wit_package must look like 'namespace:name[@version]'")
        config.wit_package = wit_package
    config.world = _as_str(data.get("world"))
    if "include_worlds" in data:
        config.include_worlds = _as_str_list(data.get("include_worlds"))

    if "send_timeout" in data:
        timeout = _as_int(data.get("send_timeout"))
        if timeout is None or timeout <= 0:
            raise ConfigError("send_timeout must be a positive integer")
        config.send_timeout = timeout

    config.exclude_paths = _as_str_list(data.get("exclude_paths"))
    config.wire_all_processes = _as_bool(data.get("wire_all_processes")) or False

    aggregator_data = _as_dict(data.get("aggregator"))
    if aggregator_data:
        name = _as_str(aggregator_data.get("name"))
        path = _as_str(aggregator_data.get("path"))
        if name:
            config.aggregator.name = name
            config.aggregator.path = name
        if path:
            config.aggregator.path = path

    return config


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "AggregatorConfig",
    "CONFIG_FILENAME",
    "CallerGenConfig",
    "ConfigError",
    "load_config",
]
