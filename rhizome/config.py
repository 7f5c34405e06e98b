"""Configuration loading for context and layout tunables."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .context import ContextOptions
from .layout import LayoutConfig

CONFIG_FILENAME = "rhizome.toml"


class ConfigError(ValueError):
    """Raised when a configuration file has invalid values."""


@dataclass(frozen=True)
class RhizomeConfig:
    context: ContextOptions = field(default_factory=ContextOptions)
    layout: LayoutConfig = field(default_factory=LayoutConfig)


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _number(section: dict[str, Any], key: str, default: float, *, integer: bool = False) -> Any:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{key} must be a number, got {value!r}")
    if integer:
        if isinstance(value, float) and not value.is_integer():
            raise ConfigError(f"{key} must be an integer, got {value!r}")
        value = int(value)
    return value


def parse_config(data: dict[str, Any]) -> RhizomeConfig:
    """Build a config from parsed TOML data; missing keys keep their defaults."""
    defaults_ctx = ContextOptions()
    defaults_layout = LayoutConfig()

    ctx_raw = _coerce_dict(data.get("context"))
    recently_connected_limit = _number(
        ctx_raw, "recently_connected_limit", defaults_ctx.recently_connected_limit, integer=True
    )
    suggestion_limit = _number(ctx_raw, "suggestion_limit", defaults_ctx.suggestion_limit, integer=True)
    min_suggestion_score = float(_number(ctx_raw, "min_suggestion_score", defaults_ctx.min_suggestion_score))

    if recently_connected_limit < 0:
        raise ConfigError("recently_connected_limit must not be negative")
    if suggestion_limit < 0:
        raise ConfigError("suggestion_limit must not be negative")
    if not 0.0 <= min_suggestion_score <= 1.0:
        raise ConfigError("min_suggestion_score must be between 0 and 1")

    layout_raw = _coerce_dict(data.get("layout"))
    try:
        layout = LayoutConfig(
            hierarchy_vertical_gap=float(
                _number(layout_raw, "hierarchy_vertical_gap", defaults_layout.hierarchy_vertical_gap)
            ),
            child_horizontal_spacing=float(
                _number(layout_raw, "child_horizontal_spacing", defaults_layout.child_horizontal_spacing)
            ),
            relation_radial_distance=float(
                _number(layout_raw, "relation_radial_distance", defaults_layout.relation_radial_distance)
            ),
            min_node_distance=float(_number(layout_raw, "min_node_distance", defaults_layout.min_node_distance)),
            node_radius=float(_number(layout_raw, "node_radius", defaults_layout.node_radius)),
        )
    except ConfigError:
        raise
    except ValueError as e:
        raise ConfigError(str(e)) from e

    return RhizomeConfig(
        context=ContextOptions(
            recently_connected_limit=recently_connected_limit,
            suggestion_limit=suggestion_limit,
            min_suggestion_score=min_suggestion_score,
        ),
        layout=layout,
    )


def load_config(path: Path) -> RhizomeConfig:
    """
    Load configuration from TOML.

    Only the [context] and [layout] tables are read.
    """
    import tomllib

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e

    return parse_config(data)


def find_config(start: Path) -> Path | None:
    """Find rhizome.toml by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        candidate = p / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None
