"""Shared typed models.

This module defines the in-memory single-cell object and its component
entities. Catalog, materializer and merge engine exchange these types
to keep the interfaces between them explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Union

import numpy as np
from scipy import sparse


Matrix = Union[np.ndarray, sparse.csc_matrix]


def matrix_shape(matrix: Matrix) -> tuple[int, ...]:
    """Return the shape of a dense or sparse matrix."""
    return tuple(int(size) for size in matrix.shape)


@dataclass
class MeasurementSet:
    """One assay with its loaded layers.

    Attributes:
        name: Assay identifier.
        features: Feature names of the dimension-defining layers.
        cell_count: Number of cells spanned by every layer.
        layers: Loaded layer matrices keyed by layer kind.
        scaled_features: Feature subset covered by ``scale.data``.
        key: Assay key prefix.
    """

    name: str
    features: tuple[str, ...]
    cell_count: int
    layers: dict[str, Matrix] = field(default_factory=dict)
    scaled_features: tuple[str, ...] | None = None
    key: str = ""

    @property
    def dims(self) -> tuple[int, int]:
        """Authoritative (features, cells) shape of the assay."""
        return (len(self.features), self.cell_count)


@dataclass(frozen=True)
class DerivedSummary:
    """Dimensional reduction attached to an assay.

    Attributes:
        name: Reduction identifier.
        owner: Owning assay name, if any.
        is_global: Whether the reduction loads without its owner.
        embeddings: Cell embeddings as (cells, components).
        loadings: Optional feature loadings as (features, components).
        stdev: Optional per-component standard deviations.
        key: Column key prefix.
    """

    name: str
    owner: str | None
    is_global: bool
    embeddings: np.ndarray
    loadings: np.ndarray | None = None
    stdev: np.ndarray | None = None
    key: str = ""


@dataclass(frozen=True)
class RelationshipGraph:
    """Cell-by-cell graph computed from an assay."""

    name: str
    owner: str | None
    matrix: sparse.csc_matrix


@dataclass(frozen=True)
class Overlay:
    """Spatial overlay such as a tissue image.

    Attributes:
        name: Image identifier.
        owner: Informational assay reference.
        is_global: Whether the overlay loads without its owner.
        coordinates: Per-cell spatial coordinates as (cells, 2).
        image: Optional pixel array.
    """

    name: str
    owner: str | None
    is_global: bool
    coordinates: np.ndarray
    image: np.ndarray | None = None


@dataclass(frozen=True)
class Command:
    """One entry of the command history."""

    name: str
    owner: str | None
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoadedComponents:
    """Identifiers already present in an in-memory object.

    Attributes:
        assays: Assay name to loaded layer kinds.
        reductions: Loaded reduction names.
        graphs: Loaded graph names.
        images: Loaded image names.
        commands: Loaded command names.
        misc: Loaded misc keys.
        tools: Loaded tool keys.
        meta_data: Whether cell annotations are loaded.
    """

    assays: Mapping[str, frozenset[str]] = field(default_factory=dict)
    reductions: frozenset[str] = frozenset()
    graphs: frozenset[str] = frozenset()
    images: frozenset[str] = frozenset()
    commands: frozenset[str] = frozenset()
    misc: frozenset[str] = frozenset()
    tools: frozenset[str] = frozenset()
    meta_data: bool = False


@dataclass
class CellDataset:
    """In-memory single-cell object assembled from a container.

    Every collection is independently present or empty, and each
    identifier appears at most once per family.
    """

    cell_names: tuple[str, ...]
    active_assay: str | None = None
    assays: dict[str, MeasurementSet] = field(default_factory=dict)
    reductions: dict[str, DerivedSummary] = field(default_factory=dict)
    graphs: dict[str, RelationshipGraph] = field(default_factory=dict)
    images: dict[str, Overlay] = field(default_factory=dict)
    commands: dict[str, Command] = field(default_factory=dict)
    meta_data: dict[str, Any] | None = None
    misc: dict[str, Any] = field(default_factory=dict)
    tools: dict[str, Any] = field(default_factory=dict)

    @property
    def cell_count(self) -> int:
        return len(self.cell_names)

    def loaded_components(self) -> LoadedComponents:
        """Summarize which identifiers are present.

        Returns:
            Snapshot of loaded identifiers per family.
        """
        return LoadedComponents(
            assays={name: frozenset(assay.layers) for name, assay in self.assays.items()},
            reductions=frozenset(self.reductions),
            graphs=frozenset(self.graphs),
            images=frozenset(self.images),
            commands=frozenset(self.commands),
            misc=frozenset(self.misc),
            tools=frozenset(self.tools),
            meta_data=self.meta_data is not None,
        )
