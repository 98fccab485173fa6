"""Catalog reader for container component ownership.

This module enumerates the component families stored in a container
and reads each dependent's owner reference and global flag. The
result is an immutable resolution graph built once per connection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from core.constants import (
    ACTIVE_ASSAY_ATTR,
    ASSAY_USED_ATTR,
    ASSAYS_ROOT,
    COMMANDS_ROOT,
    DEFAULT_DIMENSION_LAYERS,
    GLOBAL_ATTR,
    GRAPHS_ROOT,
    IMAGE_ASSAY_ATTR,
    IMAGE_GLOBAL_DEFAULT,
    IMAGES_ROOT,
    LAYER_KINDS,
    META_DATA_ROOT,
    MISC_ROOT,
    REDUCTION_GLOBAL_DEFAULT,
    REDUCTIONS_ROOT,
    TOOLS_ROOT,
)
from core.errors import CatalogCorruptError
from core.logging_config import get_logger
from store.store_adapter import StoreAdapter, guarded_read

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class AssayEntry:
    """Catalog entry for one stored assay.

    Attributes:
        name: Assay identifier.
        layers: Stored layer kinds in canonical order.
    """

    name: str
    layers: tuple[str, ...]


@dataclass(frozen=True)
class DependentEntry:
    """Catalog entry for a component that may belong to an assay.

    Attributes:
        name: Component identifier.
        owner: Owning assay name, or None.
        is_global: Whether the component loads without its owner.
    """

    name: str
    owner: str | None
    is_global: bool


@dataclass(frozen=True)
class ResolutionGraph:
    """Immutable catalog of components and their ownership metadata."""

    assays: Mapping[str, AssayEntry] = field(default_factory=dict)
    reductions: Mapping[str, DependentEntry] = field(default_factory=dict)
    graphs: Mapping[str, DependentEntry] = field(default_factory=dict)
    images: Mapping[str, DependentEntry] = field(default_factory=dict)
    commands: Mapping[str, DependentEntry] = field(default_factory=dict)
    misc: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    has_meta_data: bool = False
    active_assay: str | None = None

    def assays_with_layer(self, layer: str) -> tuple[str, ...]:
        """Return the assays that store the given layer kind."""
        return tuple(name for name, entry in self.assays.items() if layer in entry.layers)


def build_resolution_graph(
    store: StoreAdapter,
    dimension_layers: tuple[str, ...] = DEFAULT_DIMENSION_LAYERS,
) -> ResolutionGraph:
    """Read the component catalog of an open container.

    Args:
        store: Open store adapter.
        dimension_layers: Layer kinds that may define an assay's shape.

    Returns:
        Resolution graph for the container.

    Raises:
        CatalogCorruptError: If ownership metadata is malformed.
        StoreReadError: If the store cannot be listed.
    """
    assays = _read_assays(store, dimension_layers)
    graph = ResolutionGraph(
        assays=assays,
        reductions=_read_dependents(
            store, REDUCTIONS_ROOT, ACTIVE_ASSAY_ATTR, REDUCTION_GLOBAL_DEFAULT, assays
        ),
        graphs=_read_dependents(
            store, GRAPHS_ROOT, ASSAY_USED_ATTR, False, assays, never_global=True
        ),
        images=_read_dependents(store, IMAGES_ROOT, IMAGE_ASSAY_ATTR, IMAGE_GLOBAL_DEFAULT, assays),
        commands=_read_commands(store, assays),
        misc=_list_family(store, MISC_ROOT),
        tools=_list_family(store, TOOLS_ROOT),
        has_meta_data=guarded_read(META_DATA_ROOT, lambda: store.exists(META_DATA_ROOT)),
        active_assay=_read_active_assay(store, assays),
    )
    _LOGGER.info(
        "resolution_graph_built",
        assays=len(graph.assays),
        reductions=len(graph.reductions),
        graphs=len(graph.graphs),
        images=len(graph.images),
        commands=len(graph.commands),
    )
    return graph


def _list_family(store: StoreAdapter, root: str) -> tuple[str, ...]:
    if not guarded_read(root, lambda: store.exists(root)):
        return ()
    return tuple(_list_children(store, root))


def _list_children(store: StoreAdapter, path: str) -> list[str]:
    return guarded_read(path, lambda: store.list_children(path))


def _read_attribute(store: StoreAdapter, path: str, name: str) -> Any:
    return guarded_read(f"{path}@{name}", lambda: store.read_attribute(path, name))


def _read_assays(
    store: StoreAdapter, dimension_layers: tuple[str, ...]
) -> dict[str, AssayEntry]:
    assays: dict[str, AssayEntry] = {}
    for name in _list_family(store, ASSAYS_ROOT):
        children = set(_list_children(store, f"{ASSAYS_ROOT}/{name}"))
        layers = tuple(kind for kind in LAYER_KINDS if kind in children)
        if not any(kind in dimension_layers for kind in layers):
            raise CatalogCorruptError(
                f"Assay '{name}' stores no dimension-defining layer "
                f"(expected one of {', '.join(dimension_layers)}). "
                "Rewrite the container with counts or data for this assay."
            )
        assays[name] = AssayEntry(name=name, layers=layers)
    return assays


def _read_dependents(
    store: StoreAdapter,
    root: str,
    owner_attr: str,
    global_default: bool,
    assays: Mapping[str, AssayEntry],
    never_global: bool = False,
) -> dict[str, DependentEntry]:
    """Read owner and global metadata for one dependent family.

    Args:
        store: Open store adapter.
        root: Family root path.
        owner_attr: Attribute holding the owner assay name.
        global_default: Global flag when the attribute is absent.
        assays: Catalogued assays for owner validation.
        never_global: Force the global flag off for this family.

    Returns:
        Mapping of identifier to catalog entry.
    """
    entries: dict[str, DependentEntry] = {}
    for name in _list_family(store, root):
        path = f"{root}/{name}"
        owner = _read_owner(store, path, owner_attr, assays)
        is_global = _read_global_flag(store, path, global_default)
        entries[name] = DependentEntry(
            name=name,
            owner=owner,
            is_global=False if never_global else is_global,
        )
    return entries


def _read_commands(
    store: StoreAdapter, assays: Mapping[str, AssayEntry]
) -> dict[str, DependentEntry]:
    entries: dict[str, DependentEntry] = {}
    for name in _list_family(store, COMMANDS_ROOT):
        owner = _read_owner(store, f"{COMMANDS_ROOT}/{name}", ASSAY_USED_ATTR, assays)
        entries[name] = DependentEntry(name=name, owner=owner, is_global=owner is None)
    return entries


def _read_owner(
    store: StoreAdapter, path: str, owner_attr: str, assays: Mapping[str, AssayEntry]
) -> str | None:
    owner = _read_attribute(store, path, owner_attr)
    if owner is None:
        return None
    if not isinstance(owner, str):
        raise CatalogCorruptError(
            f"Attribute '{owner_attr}' of '{path}' must be a string, "
            f"got {type(owner).__name__}."
        )
    if owner not in assays:
        raise CatalogCorruptError(
            f"'{path}' references assay '{owner}', which is not stored in the container."
        )
    return owner


def _read_global_flag(store: StoreAdapter, path: str, default: bool) -> bool:
    value = _read_attribute(store, path, GLOBAL_ATTR)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise CatalogCorruptError(
        f"Attribute '{GLOBAL_ATTR}' of '{path}' must be a boolean or 0/1, got {value!r}."
    )


def _read_active_assay(store: StoreAdapter, assays: Mapping[str, AssayEntry]) -> str | None:
    active = _read_attribute(store, "", ACTIVE_ASSAY_ATTR)
    if active is None:
        return None
    if not isinstance(active, str):
        raise CatalogCorruptError(
            f"Root attribute '{ACTIVE_ASSAY_ATTR}' must be a string, got {type(active).__name__}."
        )
    if active not in assays:
        raise CatalogCorruptError(
            f"Root attribute '{ACTIVE_ASSAY_ATTR}' names assay '{active}', "
            "which is not stored in the container."
        )
    return active
