"""Load request parsing from plain mappings and YAML files.

This module converts the loose request surface (null for everything,
"NA" for global-only, false for nothing, names for explicit picks)
into the typed ``LoadRequest`` consumed by the normalizer.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence, cast

from core.constants import GLOBAL_ONLY_TOKEN
from core.errors import H5CellDependencyError, InvalidRequestError
from core.request_types import LoadRequest, Selection

_SELECTION_FIELDS = ("assays", "reductions", "graphs", "images")
_FLAG_FIELDS = ("meta_data", "commands", "misc", "tools")
_FIELD_ALIASES = {"meta.data": "meta_data"}
_GLOBAL_ONLY_FAMILIES = ("reductions", "images")


def parse_load_request(payload: Mapping[str, object] | None) -> LoadRequest:
    """Parse a request mapping into a typed load request.

    Args:
        payload: Request mapping; ``None`` requests everything. The string
            ``"NA"`` is the only reserved selector; any other string is one
            identifier, so a reduction named ``NA`` must be given in a list.

    Returns:
        Validated load request.

    Raises:
        InvalidRequestError: If a field is unknown or has an invalid value.
    """
    if payload is None:
        return LoadRequest()
    fields = _normalize_keys(payload)
    selections = {
        name: _parse_selection(fields[name], name) for name in _SELECTION_FIELDS if name in fields
    }
    flags = {name: _parse_flag(fields[name], name) for name in _FLAG_FIELDS if name in fields}
    return LoadRequest(**selections, **flags)


def load_request_file(request_path: str) -> LoadRequest:
    """Load and parse a YAML request file.

    Args:
        request_path: File path to a YAML mapping.

    Returns:
        Validated load request.

    Raises:
        H5CellDependencyError: If PyYAML is unavailable.
        InvalidRequestError: If the file is missing or malformed.
    """
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise H5CellDependencyError(
            "YAML request files require PyYAML. Install with 'pip install pyyaml'."
        ) from error
    request_file = Path(request_path).expanduser().resolve()
    if not request_file.exists():
        raise InvalidRequestError(
            f"Request file does not exist at {request_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(request_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise InvalidRequestError(
            f"Failed to read request file at {request_file}: {error}. Check file permissions."
        ) from error
    except yaml.YAMLError as error:
        raise InvalidRequestError(
            f"Failed to parse YAML request at {request_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        return LoadRequest()
    if not isinstance(payload, Mapping):
        raise InvalidRequestError(
            f"Invalid request at {request_file}: expected a mapping, got {type(payload).__name__}."
        )
    return parse_load_request(payload)


def _normalize_keys(payload: Mapping[str, object]) -> dict[str, object]:
    fields: dict[str, object] = {}
    for key, value in payload.items():
        if not isinstance(key, str):
            raise InvalidRequestError(
                f"Invalid request: expected string keys, got {type(key).__name__}."
            )
        name = _FIELD_ALIASES.get(key, key)
        if name not in _SELECTION_FIELDS and name not in _FLAG_FIELDS:
            supported = ", ".join(_SELECTION_FIELDS + _FLAG_FIELDS)
            raise InvalidRequestError(
                f"Unsupported request field '{key}'. Supported fields: {supported}."
            )
        fields[name] = value
    return fields


def _parse_selection(value: object, family: str) -> Selection:
    """Map one loose selector value onto a tagged selection.

    Args:
        value: Raw selector value.
        family: Component family name for error messages.

    Returns:
        Typed selection.

    Raises:
        InvalidRequestError: If the selector cannot be interpreted.
    """
    if value is None or value is True:
        return Selection.all()
    if value is False:
        return Selection.none()
    if isinstance(value, str):
        if value == GLOBAL_ONLY_TOKEN:
            if family not in _GLOBAL_ONLY_FAMILIES:
                raise InvalidRequestError(
                    f"Request field '{family}' does not support global-only selection. "
                    "Use null, false, or explicit names."
                )
            return Selection.global_only()
        return Selection.explicit(value)
    if isinstance(value, Mapping):
        if family != "assays":
            raise InvalidRequestError(
                f"Request field '{family}' accepts names only, not a mapping of layers."
            )
        return Selection.explicit_layers(_parse_layer_mapping(value))
    return Selection.explicit(_expect_names(value, family))


def _parse_layer_mapping(value: Mapping[object, object]) -> dict[str, tuple[str, ...]]:
    layers: dict[str, tuple[str, ...]] = {}
    for assay_name, kinds in value.items():
        if not isinstance(assay_name, str):
            raise InvalidRequestError(
                f"Invalid assay name in request: expected string, got {type(assay_name).__name__}."
            )
        if kinds is None:
            layers[assay_name] = ()
        elif isinstance(kinds, str):
            layers[assay_name] = (kinds,)
        else:
            layers[assay_name] = _expect_names(kinds, f"assays.{assay_name}")
    return layers


def _expect_names(value: object, context: str) -> tuple[str, ...]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        names = tuple(value)
        if all(isinstance(name, str) for name in names):
            return cast(tuple[str, ...], names)
    raise InvalidRequestError(
        f"Invalid request field '{context}': expected a name or list of names, "
        f"got {type(value).__name__}."
    )


def _parse_flag(value: object, name: str) -> bool:
    if isinstance(value, bool):
        return value
    raise InvalidRequestError(f"Request field '{name}' must be true or false.")
