"""Runtime configuration model for h5cell.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os

from core.constants import DEFAULT_DIMENSION_LAYERS, LAYER_KINDS
from core.errors import H5CellConfigError

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")
_LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass(frozen=True)
class H5CellConfig:
    """Validated runtime configuration.

    Attributes:
        dimension_layers: Layer kinds allowed to define an assay's shape.
        check_dimensions: Whether dependents are validated against owners.
        log_level: Minimum level of emitted log events.
    """

    dimension_layers: tuple[str, ...] = DEFAULT_DIMENSION_LAYERS
    check_dimensions: bool = True
    log_level: str = "info"

    @classmethod
    def from_env(cls) -> "H5CellConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            H5CellConfigError: If environment values are invalid.
        """
        layers_value = os.getenv("H5CELL_DIMENSION_LAYERS", ",".join(DEFAULT_DIMENSION_LAYERS))
        check_value = os.getenv("H5CELL_CHECK_DIMENSIONS", "true")
        return cls(
            dimension_layers=_parse_dimension_layers(layers_value),
            check_dimensions=_parse_bool("H5CELL_CHECK_DIMENSIONS", check_value),
            log_level=log_level_from_env(),
        )


def _parse_dimension_layers(raw_value: str) -> tuple[str, ...]:
    """Parse the comma-separated dimension layer list.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Ordered tuple of layer kinds.

    Raises:
        H5CellConfigError: If the list is empty or names unknown layers.
    """
    layers = tuple(item.strip() for item in raw_value.split(",") if item.strip())
    if not layers:
        raise H5CellConfigError(
            "Invalid H5CELL_DIMENSION_LAYERS value: expected at least one layer kind. "
            f"Choose from {', '.join(LAYER_KINDS)}."
        )
    unknown = [layer for layer in layers if layer not in LAYER_KINDS]
    if unknown:
        raise H5CellConfigError(
            "Invalid H5CELL_DIMENSION_LAYERS value: "
            f"unknown layer kinds {', '.join(unknown)}. "
            f"Choose from {', '.join(LAYER_KINDS)}."
        )
    return layers


def _parse_bool(name: str, raw_value: str) -> bool:
    lowered = raw_value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise H5CellConfigError(
        f"Invalid {name} value: expected true/false, got '{raw_value}'. "
        f"Set {name} to one of {', '.join(_TRUE_VALUES + _FALSE_VALUES)}."
    )


def log_level_from_env() -> str:
    """Read the minimum log level from H5CELL_LOG_LEVEL.

    Raises:
        H5CellConfigError: If the level is not a known level name.
    """
    raw_value = os.getenv("H5CELL_LOG_LEVEL", "info")
    level = raw_value.strip().lower()
    if level not in _LOG_LEVELS:
        raise H5CellConfigError(
            f"Invalid H5CELL_LOG_LEVEL value '{raw_value}'. "
            f"Set it to one of {', '.join(_LOG_LEVELS)}."
        )
    return level
