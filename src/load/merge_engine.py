"""Merge engine for incremental partial loads.

This module extends an already materialized cell dataset with the
components a new request adds. Components that are already present
are skipped, so repeating a request is a no-op. Each identifier is
spliced independently: a failure keeps the components spliced before
it by the same call.
"""

from __future__ import annotations

from core.constants import DEFAULT_DIMENSION_LAYERS
from core.errors import DimensionMismatchError, UnresolvedDependencyError
from core.logging_config import get_logger
from core.request_types import LoadRequest
from core.types import CellDataset, LoadedComponents
from load.component_readers import read_cell_names
from load.materialization_set import MaterializationSet
from load.materializer import load_into
from load.request_normalizer import normalize
from store.catalog_reader import ResolutionGraph
from store.store_adapter import StoreAdapter

_LOGGER = get_logger(__name__)


def append(
    store: StoreAdapter,
    graph: ResolutionGraph,
    existing: CellDataset,
    request: LoadRequest,
    dimension_layers: tuple[str, ...] = DEFAULT_DIMENSION_LAYERS,
    check_dimensions: bool = True,
) -> CellDataset:
    """Add the components of a request that ``existing`` lacks.

    Args:
        store: Open store adapter.
        graph: Container resolution graph.
        existing: Dataset to extend in place.
        request: Partial-load request.
        dimension_layers: Layer kinds that may define an assay's shape.
        check_dimensions: Whether dependents are validated against owners.

    Returns:
        The same ``existing`` object, extended.

    Raises:
        UnresolvedDependencyError: If a dependent's owner is neither loaded nor requested.
        DimensionMismatchError: If the container's cells differ from ``existing``.
        StoreReadError: If a read fails; earlier splices of this call are kept.
    """
    loaded = existing.loaded_components()
    requested = normalize(graph, request, loaded, dimension_layers)
    delta = requested.subtract(loaded)
    if delta.is_empty():
        _LOGGER.info("append_noop")
        return existing
    _check_delta_owners(graph, delta, loaded)
    _check_cell_axis(store, existing)
    _LOGGER.info("append_delta_resolved", **delta.describe())
    load_into(store, graph, existing, delta, check_dimensions)
    _LOGGER.info(
        "append_completed",
        assays=sorted(existing.assays),
        reductions=sorted(existing.reductions),
        graphs=sorted(existing.graphs),
        images=sorted(existing.images),
    )
    return existing


def _check_delta_owners(
    graph: ResolutionGraph, delta: MaterializationSet, loaded: LoadedComponents
) -> None:
    owners = frozenset(delta.assays) | frozenset(loaded.assays)
    families = (
        ("reductions", delta.reductions, graph.reductions),
        ("graphs", delta.graphs, graph.graphs),
        ("images", delta.images, graph.images),
        ("commands", delta.commands, graph.commands),
    )
    for family, names, entries in families:
        for name in names:
            entry = entries[name]
            if entry.is_global or entry.owner in owners:
                continue
            raise UnresolvedDependencyError(
                name,
                f"Cannot append {family} '{name}': its assay '{entry.owner or '<none>'}' "
                "is neither loaded nor part of this request.",
            )


def _check_cell_axis(store: StoreAdapter, existing: CellDataset) -> None:
    cell_names = read_cell_names(store)
    if cell_names != existing.cell_names:
        raise DimensionMismatchError(
            f"Container holds {len(cell_names)} cells that differ from the "
            f"{existing.cell_count} cells of the loaded object. "
            "Append only from the container the object was loaded from."
        )
