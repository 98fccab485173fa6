"""Container writer for in-memory cell datasets.

This module writes a ``CellDataset`` through the store adapter using
the same logical hierarchy the catalog reader enumerates, so any saved
object can later be loaded selectively.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
from scipy import sparse

from core.constants import (
    ACTIVE_ASSAY_ATTR,
    ASSAY_USED_ATTR,
    ASSAYS_ROOT,
    CELL_EMBEDDINGS_NAME,
    CELL_NAMES_PATH,
    COMMANDS_ROOT,
    COORDINATES_NAME,
    FEATURE_LOADINGS_NAME,
    FEATURES_NAME,
    GLOBAL_ATTR,
    GRAPHS_ROOT,
    IMAGE_ASSAY_ATTR,
    IMAGE_NAME,
    IMAGES_ROOT,
    KEY_ATTR,
    META_DATA_ROOT,
    MISC_ROOT,
    REDUCTIONS_ROOT,
    SCALED_FEATURES_NAME,
    STDEV_NAME,
    TOOLS_ROOT,
)
from core.logging_config import get_logger
from core.types import (
    CellDataset,
    Command,
    DerivedSummary,
    MeasurementSet,
    Overlay,
    RelationshipGraph,
)
from store.h5_store import H5Store
from store.store_adapter import StoreAdapter

_LOGGER = get_logger(__name__)


def save_container(file_path: str | Path, dataset: CellDataset) -> None:
    """Write a dataset to a new HDF5 container, replacing any existing file.

    Args:
        file_path: Destination container path.
        dataset: Dataset to persist.
    """
    with H5Store(file_path, mode="w") as store:
        write_cell_dataset(store, dataset)


def write_cell_dataset(store: StoreAdapter, dataset: CellDataset) -> None:
    """Write every component of a dataset into an empty store.

    Args:
        store: Writable store adapter.
        dataset: Dataset to persist.
    """
    store.write_array(CELL_NAMES_PATH, list(dataset.cell_names))
    if dataset.active_assay is not None:
        store.write_attribute("", ACTIVE_ASSAY_ATTR, dataset.active_assay)
    for assay in dataset.assays.values():
        _write_assay(store, assay)
    for reduction in dataset.reductions.values():
        _write_reduction(store, reduction)
    for graph in dataset.graphs.values():
        _write_graph(store, graph)
    for image in dataset.images.values():
        _write_image(store, image)
    for command in dataset.commands.values():
        _write_command(store, command)
    if dataset.meta_data is not None:
        store.create_group(META_DATA_ROOT)
        for column, values in dataset.meta_data.items():
            _write_value(store, f"{META_DATA_ROOT}/{column}", values)
    for root, entries in ((MISC_ROOT, dataset.misc), (TOOLS_ROOT, dataset.tools)):
        for key, value in entries.items():
            _write_value(store, f"{root}/{key}", value)
    _LOGGER.info(
        "container_written",
        cells=dataset.cell_count,
        assays=sorted(dataset.assays),
        reductions=sorted(dataset.reductions),
        graphs=sorted(dataset.graphs),
        images=sorted(dataset.images),
    )


def _write_assay(store: StoreAdapter, assay: MeasurementSet) -> None:
    path = f"{ASSAYS_ROOT}/{assay.name}"
    store.create_group(path)
    store.write_attribute(path, KEY_ATTR, assay.key)
    store.write_array(f"{path}/{FEATURES_NAME}", list(assay.features))
    if assay.scaled_features is not None:
        store.write_array(f"{path}/{SCALED_FEATURES_NAME}", list(assay.scaled_features))
    for kind, matrix in assay.layers.items():
        _write_value(store, f"{path}/{kind}", matrix)


def _write_reduction(store: StoreAdapter, reduction: DerivedSummary) -> None:
    path = f"{REDUCTIONS_ROOT}/{reduction.name}"
    store.create_group(path)
    if reduction.owner is not None:
        store.write_attribute(path, ACTIVE_ASSAY_ATTR, reduction.owner)
    store.write_attribute(path, GLOBAL_ATTR, reduction.is_global)
    store.write_attribute(path, KEY_ATTR, reduction.key)
    store.write_array(f"{path}/{CELL_EMBEDDINGS_NAME}", reduction.embeddings)
    if reduction.loadings is not None:
        store.write_array(f"{path}/{FEATURE_LOADINGS_NAME}", reduction.loadings)
    if reduction.stdev is not None:
        store.write_array(f"{path}/{STDEV_NAME}", reduction.stdev)


def _write_graph(store: StoreAdapter, graph: RelationshipGraph) -> None:
    path = f"{GRAPHS_ROOT}/{graph.name}"
    store.write_sparse(path, graph.matrix)
    if graph.owner is not None:
        store.write_attribute(path, ASSAY_USED_ATTR, graph.owner)


def _write_image(store: StoreAdapter, image: Overlay) -> None:
    path = f"{IMAGES_ROOT}/{image.name}"
    store.create_group(path)
    if image.owner is not None:
        store.write_attribute(path, IMAGE_ASSAY_ATTR, image.owner)
    store.write_attribute(path, GLOBAL_ATTR, image.is_global)
    store.write_array(f"{path}/{COORDINATES_NAME}", image.coordinates)
    if image.image is not None:
        store.write_array(f"{path}/{IMAGE_NAME}", image.image)


def _write_command(store: StoreAdapter, command: Command) -> None:
    path = f"{COMMANDS_ROOT}/{command.name}"
    store.create_group(path)
    if command.owner is not None:
        store.write_attribute(path, ASSAY_USED_ATTR, command.owner)
    for name, value in command.params.items():
        _write_value(store, f"{path}/{name}", value)


def _write_value(store: StoreAdapter, path: str, value: Any) -> None:
    if sparse.issparse(value):
        store.write_sparse(path, value)
    elif isinstance(value, (str, bool, int, float)):
        store.write_scalar(path, value)
    else:
        store.write_array(path, np.asarray(value))
