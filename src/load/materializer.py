"""Selective materializer for fresh loads.

This module reads the components of a materialization set and splices
them into a cell dataset. Assays are read first so every dependent can
be checked against its owner's shape, then reductions, graphs, images
and finally scalar metadata.
"""

from __future__ import annotations

from core.constants import MISC_ROOT, TOOLS_ROOT
from core.logging_config import get_logger
from core.types import CellDataset, Matrix, MeasurementSet
from load.component_readers import (
    read_assay_shell,
    read_cell_names,
    read_command,
    read_entry,
    read_graph,
    read_image,
    read_layer,
    read_meta_data,
    read_reduction,
)
from load.materialization_set import MaterializationSet
from store.catalog_reader import DependentEntry, ResolutionGraph
from store.store_adapter import StoreAdapter

_LOGGER = get_logger(__name__)


def materialize(
    store: StoreAdapter,
    materialization_set: MaterializationSet,
    graph: ResolutionGraph,
    check_dimensions: bool = True,
) -> CellDataset:
    """Build a new cell dataset from a materialization set.

    The dataset is only returned once every component was read, so a
    failure discards everything read by this call.

    Args:
        store: Open store adapter.
        materialization_set: Components to read.
        graph: Container resolution graph.
        check_dimensions: Whether dependents are validated against owners.

    Returns:
        Newly assembled cell dataset.

    Raises:
        StoreReadError: If any read fails.
        DimensionMismatchError: If a component disagrees with its owner's shape.
    """
    dataset = CellDataset(cell_names=read_cell_names(store))
    load_into(store, graph, dataset, materialization_set, check_dimensions)
    _LOGGER.info(
        "materialization_completed",
        cells=dataset.cell_count,
        assays=sorted(dataset.assays),
        reductions=sorted(dataset.reductions),
        graphs=sorted(dataset.graphs),
        images=sorted(dataset.images),
    )
    return dataset


def load_into(
    store: StoreAdapter,
    graph: ResolutionGraph,
    target: CellDataset,
    materialization_set: MaterializationSet,
    check_dimensions: bool = True,
) -> None:
    """Read components and splice each one into the target dataset.

    Every identifier is read and validated before it is attached, so
    a failure never leaves a half-read component in ``target``.

    Args:
        store: Open store adapter.
        graph: Container resolution graph.
        target: Dataset receiving the components.
        materialization_set: Components to read; none may already be present.
        check_dimensions: Whether dependents are validated against owners.
    """
    for name, layers in materialization_set.assays.items():
        _splice_assay(store, target, name, layers, check_dimensions)
    _update_active_assay(graph, target)
    for name in materialization_set.reductions:
        entry = graph.reductions[name]
        expected = _expected_cells(target, entry, check_dimensions)
        target.reductions[name] = read_reduction(store, entry, expected)
        _log_splice("reductions", name)
    for name in materialization_set.graphs:
        entry = graph.graphs[name]
        expected = _expected_cells(target, entry, check_dimensions)
        target.graphs[name] = read_graph(store, entry, expected)
        _log_splice("graphs", name)
    for name in materialization_set.images:
        entry = graph.images[name]
        expected = _expected_cells(target, entry, check_dimensions)
        target.images[name] = read_image(store, entry, expected)
        _log_splice("images", name)
    if materialization_set.meta_data:
        cell_count = target.cell_count if check_dimensions else None
        target.meta_data = read_meta_data(store, cell_count)
        _log_splice("meta_data", "meta.data")
    for name in materialization_set.commands:
        target.commands[name] = read_command(store, graph.commands[name])
        _log_splice("commands", name)
    for key in materialization_set.misc:
        target.misc[key] = read_entry(store, MISC_ROOT, key)
    for key in materialization_set.tools:
        target.tools[key] = read_entry(store, TOOLS_ROOT, key)


def _splice_assay(
    store: StoreAdapter,
    target: CellDataset,
    name: str,
    layers: tuple[str, ...],
    check_dimensions: bool,
) -> None:
    """Read missing layers of one assay and attach them together."""
    existing = target.assays.get(name)
    if existing is None:
        assay = read_assay_shell(store, name, target.cell_count)
    else:
        assay = existing
    read_layers: dict[str, Matrix] = {}
    scaled_features = assay.scaled_features
    for kind in layers:
        matrix, layer_features = read_layer(store, assay, kind, check_dimensions)
        read_layers[kind] = matrix
        if layer_features is not None:
            scaled_features = layer_features
    if existing is None:
        target.assays[name] = MeasurementSet(
            name=assay.name,
            features=assay.features,
            cell_count=assay.cell_count,
            layers=read_layers,
            scaled_features=scaled_features,
            key=assay.key,
        )
    else:
        existing.layers.update(read_layers)
        existing.scaled_features = scaled_features
    _log_splice("assays", name, layers=list(layers))


def _update_active_assay(graph: ResolutionGraph, target: CellDataset) -> None:
    if target.active_assay in target.assays:
        return
    if graph.active_assay in target.assays:
        target.active_assay = graph.active_assay
    elif target.assays:
        target.active_assay = next(iter(target.assays))


def _expected_cells(
    target: CellDataset, entry: DependentEntry, check_dimensions: bool
) -> int | None:
    if not check_dimensions:
        return None
    owner = target.assays.get(entry.owner) if entry.owner is not None else None
    return owner.cell_count if owner is not None else target.cell_count


def _log_splice(family: str, name: str, **fields: object) -> None:
    _LOGGER.debug("component_spliced", family=family, name=name, **fields)
