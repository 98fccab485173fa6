"""Typed component readers over the store adapter.

Each reader loads one stored component into its in-memory entity and
validates its cell dimension against the expected cell count. Passing
``expected_cells=None`` skips the dimension check.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from scipy import sparse

from core.constants import (
    ASSAYS_ROOT,
    CELL_EMBEDDINGS_NAME,
    CELL_NAMES_PATH,
    COMMANDS_ROOT,
    COORDINATES_NAME,
    FEATURE_LOADINGS_NAME,
    FEATURES_NAME,
    GRAPHS_ROOT,
    IMAGE_NAME,
    IMAGES_ROOT,
    KEY_ATTR,
    META_DATA_ROOT,
    REDUCTIONS_ROOT,
    SCALE_DATA_LAYER,
    SCALED_FEATURES_NAME,
    STDEV_NAME,
)
from core.errors import DimensionMismatchError
from core.types import (
    Command,
    DerivedSummary,
    Matrix,
    MeasurementSet,
    Overlay,
    RelationshipGraph,
    matrix_shape,
)
from store.catalog_reader import DependentEntry
from store.store_adapter import StoreAdapter, ValueKind, guarded_read


def read_cell_names(store: StoreAdapter) -> tuple[str, ...]:
    """Read the shared cell axis of the container."""
    return tuple(_read(store, CELL_NAMES_PATH, "string"))


def read_assay_shell(store: StoreAdapter, name: str, cell_count: int) -> MeasurementSet:
    """Read an assay's features and key without any layer.

    Args:
        store: Open store adapter.
        name: Assay identifier.
        cell_count: Container cell count.

    Returns:
        Measurement set with no layers loaded.
    """
    path = f"{ASSAYS_ROOT}/{name}"
    features = tuple(_read(store, f"{path}/{FEATURES_NAME}", "string"))
    key = _read_attribute(store, path, KEY_ATTR)
    return MeasurementSet(
        name=name,
        features=features,
        cell_count=cell_count,
        key=str(key) if key is not None else "",
    )


def read_layer(
    store: StoreAdapter,
    assay: MeasurementSet,
    kind: str,
    check_dimensions: bool = True,
) -> tuple[Matrix, tuple[str, ...] | None]:
    """Read one layer of an assay.

    Args:
        store: Open store adapter.
        assay: Assay the layer belongs to; fixes the expected shape.
        kind: Layer kind.
        check_dimensions: Whether to validate the layer shape.

    Returns:
        Pair of layer matrix and, for ``scale.data``, its feature subset.

    Raises:
        DimensionMismatchError: If the layer shape disagrees with the assay.
    """
    path = f"{ASSAYS_ROOT}/{assay.name}"
    matrix = _read(store, f"{path}/{kind}", "matrix")
    scaled_features: tuple[str, ...] | None = None
    expected = assay.dims
    if kind == SCALE_DATA_LAYER:
        scaled_path = f"{path}/{SCALED_FEATURES_NAME}"
        if _exists(store, scaled_path):
            scaled_features = tuple(_read(store, scaled_path, "string"))
        else:
            scaled_features = assay.features
        expected = (len(scaled_features), assay.cell_count)
    if check_dimensions and matrix_shape(matrix) != expected:
        raise DimensionMismatchError(
            f"Layer '{kind}' of assay '{assay.name}' has shape {matrix_shape(matrix)}, "
            f"expected {expected}."
        )
    return matrix, scaled_features


def read_reduction(
    store: StoreAdapter, entry: DependentEntry, expected_cells: int | None
) -> DerivedSummary:
    path = f"{REDUCTIONS_ROOT}/{entry.name}"
    embeddings = _read(store, f"{path}/{CELL_EMBEDDINGS_NAME}", "numeric")
    _check_rows(f"reduction '{entry.name}'", embeddings, expected_cells)
    key = _read_attribute(store, path, KEY_ATTR)
    return DerivedSummary(
        name=entry.name,
        owner=entry.owner,
        is_global=entry.is_global,
        embeddings=embeddings,
        loadings=_read_optional(store, f"{path}/{FEATURE_LOADINGS_NAME}"),
        stdev=_read_optional(store, f"{path}/{STDEV_NAME}"),
        key=str(key) if key is not None else "",
    )


def read_graph(
    store: StoreAdapter, entry: DependentEntry, expected_cells: int | None
) -> RelationshipGraph:
    matrix: sparse.csc_matrix = _read(store, f"{GRAPHS_ROOT}/{entry.name}", "sparse")
    if expected_cells is not None and matrix.shape != (expected_cells, expected_cells):
        raise DimensionMismatchError(
            f"Graph '{entry.name}' has shape {matrix.shape}, "
            f"expected ({expected_cells}, {expected_cells})."
        )
    return RelationshipGraph(name=entry.name, owner=entry.owner, matrix=matrix)


def read_image(store: StoreAdapter, entry: DependentEntry, expected_cells: int | None) -> Overlay:
    path = f"{IMAGES_ROOT}/{entry.name}"
    coordinates = _read(store, f"{path}/{COORDINATES_NAME}", "numeric")
    _check_rows(f"image '{entry.name}'", coordinates, expected_cells)
    return Overlay(
        name=entry.name,
        owner=entry.owner,
        is_global=entry.is_global,
        coordinates=coordinates,
        image=_read_optional(store, f"{path}/{IMAGE_NAME}"),
    )


def read_command(store: StoreAdapter, entry: DependentEntry) -> Command:
    path = f"{COMMANDS_ROOT}/{entry.name}"
    params = {name: _read(store, f"{path}/{name}", "auto") for name in _list_children(store, path)}
    return Command(name=entry.name, owner=entry.owner, params=params)


def read_meta_data(store: StoreAdapter, cell_count: int | None) -> dict[str, Any]:
    """Read every cell annotation column.

    Raises:
        DimensionMismatchError: If a column does not span every cell.
    """
    columns: dict[str, Any] = {}
    for column in _list_children(store, META_DATA_ROOT):
        values = _read(store, f"{META_DATA_ROOT}/{column}", "auto")
        if cell_count is not None:
            _check_column(column, values, cell_count)
        columns[column] = values
    return columns


def read_entry(store: StoreAdapter, root: str, key: str) -> Any:
    """Read one misc or tools entry."""
    return _read(store, f"{root}/{key}", "auto")


def _check_rows(label: str, values: np.ndarray, expected_cells: int | None) -> None:
    if expected_cells is None:
        return
    if values.ndim != 2 or values.shape[0] != expected_cells:
        raise DimensionMismatchError(
            f"Stored {label} has shape {values.shape}, expected {expected_cells} cell rows."
        )


def _read_optional(store: StoreAdapter, path: str) -> np.ndarray | None:
    if not _exists(store, path):
        return None
    return _read(store, path, "numeric")


def _check_column(column: str, values: Any, cell_count: int) -> None:
    if not isinstance(values, (np.ndarray, tuple)):
        raise DimensionMismatchError(
            f"Cell annotation '{column}' holds a single value, expected {cell_count} values."
        )
    if len(values) != cell_count:
        raise DimensionMismatchError(
            f"Cell annotation '{column}' has {len(values)} values, expected {cell_count}."
        )


def _read(store: StoreAdapter, path: str, kind: ValueKind) -> Any:
    return guarded_read(path, lambda: store.read_typed(path, kind))


def _read_attribute(store: StoreAdapter, path: str, name: str) -> Any | None:
    return guarded_read(f"{path}@{name}", lambda: store.read_attribute(path, name))


def _exists(store: StoreAdapter, path: str) -> bool:
    return guarded_read(path, lambda: store.exists(path))


def _list_children(store: StoreAdapter, path: str) -> list[str]:
    return guarded_read(path, lambda: store.list_children(path))
