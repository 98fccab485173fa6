"""Request normalization against a resolution graph.

This module expands a partial-load request into the exact components
to read. Assays are resolved first because they gate every dependent
family; reductions, graphs, images and commands then resolve against
the selected assays, the assays already loaded, and the global flag.
Normalization performs no store I/O.
"""

from __future__ import annotations

from typing import Mapping

from core.constants import DEFAULT_DIMENSION_LAYERS, LAYER_KINDS
from core.errors import (
    InvalidRequestError,
    NoDimensionSourceError,
    UnknownIdentifierError,
    UnresolvedDependencyError,
)
from core.logging_config import get_logger
from core.request_types import LoadRequest, Selection
from core.types import LoadedComponents
from load.materialization_set import MaterializationSet
from store.catalog_reader import DependentEntry, ResolutionGraph

_LOGGER = get_logger(__name__)


def normalize(
    graph: ResolutionGraph,
    request: LoadRequest,
    loaded: LoadedComponents | None = None,
    dimension_layers: tuple[str, ...] = DEFAULT_DIMENSION_LAYERS,
) -> MaterializationSet:
    """Resolve a load request into a materialization set.

    Args:
        graph: Container resolution graph.
        request: Partial-load request.
        loaded: Components already present in the target object, if merging.
        dimension_layers: Layer kinds that may define an assay's shape.

    Returns:
        Fully resolved materialization set.

    Raises:
        UnknownIdentifierError: If the request names an unknown component.
        UnresolvedDependencyError: If a non-global dependent lacks its owner.
        NoDimensionSourceError: If a selected assay has no dimension layer.
        InvalidRequestError: If a selection mode is invalid for its family.
    """
    loaded = loaded or LoadedComponents()
    assays = _resolve_assays(graph, request.assays, loaded, dimension_layers)
    owners = frozenset(assays) | frozenset(loaded.assays)
    materialization_set = MaterializationSet(
        assays=assays,
        reductions=_resolve_dependents(graph.reductions, request.reductions, owners, "reductions"),
        graphs=_resolve_dependents(
            graph.graphs, request.graphs, owners, "graphs", allow_global_only=False
        ),
        images=_resolve_dependents(graph.images, request.images, owners, "images"),
        commands=_resolve_commands(graph, request.commands, owners),
        misc=graph.misc if request.misc else (),
        tools=graph.tools if request.tools else (),
        meta_data=request.meta_data and graph.has_meta_data,
    )
    _LOGGER.debug("request_normalized", **materialization_set.describe())
    return materialization_set


def _resolve_assays(
    graph: ResolutionGraph,
    selection: Selection,
    loaded: LoadedComponents,
    dimension_layers: tuple[str, ...],
) -> dict[str, tuple[str, ...]]:
    """Resolve the assay selection into assay to layer kinds.

    Args:
        graph: Container resolution graph.
        selection: Assay selection.
        loaded: Components already present.
        dimension_layers: Layer kinds that may define an assay's shape.

    Returns:
        Selected assays with the layers to read, in catalog order.
    """
    if selection.mode == "none":
        return {}
    if selection.mode == "global_only":
        raise InvalidRequestError(
            "Assays cannot be selected as global-only. Use all, none, or explicit names."
        )
    if selection.mode == "all":
        return {name: entry.layers for name, entry in graph.assays.items()}
    requested, shorthand_only = _explicit_assay_layers(graph, selection, dimension_layers)
    resolved: dict[str, tuple[str, ...]] = {}
    skipped: list[str] = []
    for name, kinds in requested.items():
        stored = graph.assays[name].layers
        layers = stored if kinds is None else tuple(kind for kind in stored if kind in kinds)
        present = loaded.assays.get(name, frozenset())
        if any(kind in dimension_layers for kind in (*layers, *present)):
            resolved[name] = layers
        elif name in shorthand_only:
            skipped.append(name)
        else:
            raise NoDimensionSourceError(
                f"Assay '{name}' was requested without a dimension-defining layer. "
                f"Include one of {', '.join(dimension_layers)} or load it first."
            )
    if skipped:
        if not resolved:
            raise NoDimensionSourceError(
                f"Requested layers give assays {', '.join(skipped)} no dimension-defining layer. "
                f"Include one of {', '.join(dimension_layers)} or load it first."
            )
        _LOGGER.debug("assays_skipped_without_dimension_layer", assays=skipped)
    return resolved


def _explicit_assay_layers(
    graph: ResolutionGraph,
    selection: Selection,
    dimension_layers: tuple[str, ...],
) -> tuple[dict[str, set[str] | None], frozenset[str]]:
    """Collect the explicitly requested assays and layer kinds.

    Returns:
        Requested layers per assay (None for every stored layer) and the
        assays selected only through layer shorthand.
    """
    requested: dict[str, set[str] | None] = {}
    for name, kinds in selection.layers.items():
        _require_assay(graph, name)
        for kind in kinds:
            _require_layer_kind(kind)
        requested[name] = set(kinds) if kinds else None
    shorthand: list[str] = []
    for name in selection.names:
        if name in graph.assays:
            requested[name] = None
        elif name in LAYER_KINDS:
            shorthand.append(name)
        else:
            raise UnknownIdentifierError(
                f"Unknown assay or layer '{name}'. "
                f"Stored assays: {', '.join(graph.assays) or 'none'}; "
                f"layer kinds: {', '.join(LAYER_KINDS)}."
            )
    named = frozenset(requested)
    _expand_layer_shorthand(graph, shorthand, requested, dimension_layers)
    return requested, frozenset(requested) - named


def _expand_layer_shorthand(
    graph: ResolutionGraph,
    shorthand: list[str],
    requested: dict[str, set[str] | None],
    dimension_layers: tuple[str, ...],
) -> None:
    """Add every assay exposing a requested layer kind.

    Layers are taken from the assays that store them and skipped
    silently elsewhere.
    """
    if not shorthand:
        return
    dimension_requests = [kind for kind in shorthand if kind in dimension_layers]
    if dimension_requests and not any(graph.assays_with_layer(kind) for kind in dimension_requests):
        raise NoDimensionSourceError(
            f"No stored assay has layer {' or '.join(dimension_requests)}. "
            "Request a layer kind that exists in the container."
        )
    for kind in shorthand:
        for holder in graph.assays_with_layer(kind):
            current = requested.get(holder, set())
            if current is not None:
                current.add(kind)
                requested[holder] = current


def _resolve_dependents(
    entries: Mapping[str, DependentEntry],
    selection: Selection,
    owners: frozenset[str],
    family: str,
    allow_global_only: bool = True,
) -> tuple[str, ...]:
    """Resolve a dependent family against the available owners.

    Args:
        entries: Catalog entries of the family.
        selection: Family selection.
        owners: Assays selected in this call or already loaded.
        family: Family name for error messages.
        allow_global_only: Whether global-only selection is meaningful.

    Returns:
        Identifiers to read, in catalog order.
    """
    if selection.mode == "none":
        return ()
    if selection.mode == "global_only":
        if not allow_global_only:
            raise InvalidRequestError(
                f"{family.capitalize()} are never global. Use all, none, or explicit names."
            )
        return tuple(name for name, entry in entries.items() if entry.is_global)
    if selection.mode == "all":
        return tuple(name for name, entry in entries.items() if _is_resolvable(entry, owners))
    if selection.layers:
        raise InvalidRequestError(f"{family.capitalize()} cannot be selected with layer mappings.")
    for name in selection.names:
        entry = entries.get(name)
        if entry is None:
            raise UnknownIdentifierError(
                f"Unknown {family} identifier '{name}'. "
                f"Stored {family}: {', '.join(entries) or 'none'}."
            )
        if not _is_resolvable(entry, owners):
            owner = entry.owner or "<none>"
            raise UnresolvedDependencyError(
                name,
                f"Cannot load {family} '{name}': it is not global and its assay '{owner}' "
                "is neither requested nor already loaded. Request the assay as well.",
            )
    return selection.names


def _require_assay(graph: ResolutionGraph, name: str) -> None:
    if name not in graph.assays:
        raise UnknownIdentifierError(
            f"Unknown assay '{name}'. Stored assays: {', '.join(graph.assays) or 'none'}."
        )


def _require_layer_kind(kind: str) -> None:
    if kind not in LAYER_KINDS:
        raise UnknownIdentifierError(
            f"Unknown layer '{kind}'. Layer kinds: {', '.join(LAYER_KINDS)}."
        )


def _resolve_commands(
    graph: ResolutionGraph, enabled: bool, owners: frozenset[str]
) -> tuple[str, ...]:
    if not enabled:
        return ()
    return tuple(name for name, entry in graph.commands.items() if _is_resolvable(entry, owners))


def _is_resolvable(entry: DependentEntry, owners: frozenset[str]) -> bool:
    return entry.is_global or (entry.owner is not None and entry.owner in owners)
