"""Configuration for flowmap analyses, loaded from ``~/.flowmap/config.toml``."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import toml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("FLOWMAP_HOME", str(Path.home() / ".flowmap"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
CONFIG_SECTION = "analysis"


@dataclass(frozen=True)
class FlowMapConfig:
    """Thresholds and conventions shared by the extractor, diff engine and analyzer.

    Instances are immutable; pass one into each component rather than
    mutating a shared copy.
    """

    # Complexity analyzer
    god_object_threshold: int = 10
    relationship_warning_threshold: int = 15
    fat_controller_threshold: int = 7
    service_layer_controller_threshold: int = 5
    top_n: int = 5

    # Diff engine
    large_changeset_threshold: int = 10
    complexity_increase_threshold: float = 20.0
    edge_to_node_ratio: int = 2
    breaking_node_types: Tuple[str, ...] = ("controller", "action", "route")
    breaking_edge_types: Tuple[str, ...] = ("belongs_to",)

    # Subgraph extractor
    path_attribute: str = "path"

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["breaking_node_types"] = list(self.breaking_node_types)
        payload["breaking_edge_types"] = list(self.breaking_edge_types)
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FlowMapConfig":
        known = {f.name: f for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in payload.items():
            if key not in known:
                logger.warning("Ignoring unknown config key '%s'", key)
                continue
            default = known[key].default
            values[key] = _coerce(key, value, default)
        return cls(**values)


def _coerce(key: str, value: Any, default: Any) -> Any:
    if isinstance(default, tuple):
        if isinstance(value, str) or not isinstance(value, (list, tuple)):
            raise ConfigurationError(
                f"Config key '{key}' must be a list of strings",
                context={"key": key, "value": value},
            )
        return tuple(str(item) for item in value)
    if isinstance(default, bool) or isinstance(value, bool):
        raise ConfigurationError(f"Config key '{key}' has an invalid value", context={"key": key})
    if isinstance(default, int):
        if not isinstance(value, int):
            raise ConfigurationError(
                f"Config key '{key}' must be an integer",
                context={"key": key, "value": value},
            )
        return value
    if isinstance(default, float):
        if not isinstance(value, (int, float)):
            raise ConfigurationError(
                f"Config key '{key}' must be a number",
                context={"key": key, "value": value},
            )
        return float(value)
    if not isinstance(value, str):
        raise ConfigurationError(
            f"Config key '{key}' must be a string",
            context={"key": key, "value": value},
        )
    return value


def load_config(path: Optional[Path] = None) -> FlowMapConfig:
    """Load the ``[analysis]`` section of a TOML config file.

    Falls back to defaults when the file does not exist.
    """
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return FlowMapConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        raise ConfigurationError(
            f"Cannot read config file {config_path}: {exc}",
            context={"path": str(config_path)},
        ) from exc

    section = data.get(CONFIG_SECTION, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[{CONFIG_SECTION}] must be a table", context={"path": str(config_path)})
    return FlowMapConfig.from_dict(section)


def save_config(config: FlowMapConfig, path: Optional[Path] = None) -> Path:
    """Write *config* to the ``[analysis]`` section, preserving other sections."""
    config_path = path or CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)

    full: Dict[str, Any] = {}
    if config_path.exists():
        try:
            full = toml.loads(config_path.read_text(encoding="utf-8"))
        except toml.TomlDecodeError as exc:
            raise ConfigurationError(
                f"Cannot update config file {config_path}: {exc}",
                context={"path": str(config_path)},
            ) from exc

    full[CONFIG_SECTION] = config.to_dict()
    config_path.write_text(toml.dumps(full), encoding="utf-8")
    return config_path
