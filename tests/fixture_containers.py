"""Shared container fixtures and comparison helpers for tests."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable

import numpy as np
from scipy import sparse

from core.types import (
    CellDataset,
    Command,
    DerivedSummary,
    MeasurementSet,
    Overlay,
    RelationshipGraph,
)
from store.catalog_reader import AssayEntry, DependentEntry, ResolutionGraph
from store.container_writer import save_container

CELL_NAMES = ("c1", "c2", "c3", "c4")


def scenario_dataset() -> CellDataset:
    """Build the SCT/Spatial dataset used across loader tests.

    SCT stores data and scale.data, Spatial stores counts. ``pca`` and
    ``nn`` belong to SCT, ``umap`` is global, ``slice1`` is a global image.
    """
    sct = MeasurementSet(
        name="SCT",
        features=("g1", "g2", "g3"),
        cell_count=len(CELL_NAMES),
        layers={
            "data": np.arange(12, dtype=np.float64).reshape(3, 4),
            "scale.data": np.linspace(-1.0, 1.0, 8).reshape(2, 4),
        },
        scaled_features=("g1", "g2"),
        key="sct_",
    )
    spatial = MeasurementSet(
        name="Spatial",
        features=("s1", "s2"),
        cell_count=len(CELL_NAMES),
        layers={
            "counts": sparse.csc_matrix(
                (np.array([1.0, 2.0, 3.0]), np.array([0, 1, 1]), np.array([0, 1, 2, 2, 3])),
                shape=(2, 4),
            )
        },
        key="spatial_",
    )
    return CellDataset(
        cell_names=CELL_NAMES,
        active_assay="SCT",
        assays={"SCT": sct, "Spatial": spatial},
        reductions={
            "pca": DerivedSummary(
                name="pca",
                owner="SCT",
                is_global=False,
                embeddings=np.ones((4, 2)),
                loadings=np.ones((3, 2)),
                stdev=np.array([2.0, 1.0]),
                key="PC_",
            ),
            "umap": DerivedSummary(
                name="umap",
                owner="SCT",
                is_global=True,
                embeddings=np.full((4, 2), 0.5),
                key="UMAP_",
            ),
        },
        graphs={
            "nn": RelationshipGraph(
                name="nn",
                owner="SCT",
                matrix=sparse.csc_matrix(
                    (np.ones(4), np.array([1, 0, 3, 2]), np.array([0, 1, 2, 3, 4])),
                    shape=(4, 4),
                ),
            )
        },
        images={
            "slice1": Overlay(
                name="slice1",
                owner="Spatial",
                is_global=True,
                coordinates=np.arange(8, dtype=np.float64).reshape(4, 2),
            )
        },
        commands={
            "NormalizeData.SCT": Command(
                name="NormalizeData.SCT",
                owner="SCT",
                params={"normalization.method": "LogNormalize"},
            ),
            "FindClusters": Command(name="FindClusters", owner=None, params={"resolution": 0.8}),
        },
        meta_data={
            "nCount": np.array([10.0, 20.0, 30.0, 40.0]),
            "orig.ident": ("a", "a", "b", "b"),
        },
        misc={"note": "demo"},
        tools={"scores": np.array([1, 2, 3])},
    )


def write_scenario_container(directory: Path, dataset: CellDataset | None = None) -> Path:
    """Write a scenario container into a directory and return its path."""
    container_path = directory / "scenario.h5"
    save_container(container_path, dataset or scenario_dataset())
    return container_path


def scenario_graph() -> ResolutionGraph:
    """Return the resolution graph of the scenario container without I/O."""
    return ResolutionGraph(
        assays={
            "SCT": AssayEntry(name="SCT", layers=("data", "scale.data")),
            "Spatial": AssayEntry(name="Spatial", layers=("counts",)),
        },
        reductions={
            "pca": DependentEntry(name="pca", owner="SCT", is_global=False),
            "umap": DependentEntry(name="umap", owner="SCT", is_global=True),
        },
        graphs={"nn": DependentEntry(name="nn", owner="SCT", is_global=False)},
        images={"slice1": DependentEntry(name="slice1", owner="Spatial", is_global=True)},
        commands={
            "NormalizeData.SCT": DependentEntry(
                name="NormalizeData.SCT", owner="SCT", is_global=False
            ),
            "FindClusters": DependentEntry(name="FindClusters", owner=None, is_global=True),
        },
        misc=("note",),
        tools=("scores",),
        has_meta_data=True,
        active_assay="SCT",
    )


def with_reduction(dataset: CellDataset, reduction: DerivedSummary) -> CellDataset:
    """Return a copy of a dataset with one reduction replaced."""
    return replace(dataset, reductions={**dataset.reductions, reduction.name: reduction})


class RecordingStore:
    """Store wrapper recording typed reads and failing on chosen paths.

    Typed reads, existence checks and child listings of a path in
    ``fail_paths`` raise OSError.
    """

    def __init__(self, inner: Any, fail_paths: Iterable[str] = ()) -> None:
        self._inner = inner
        self._fail_paths = set(fail_paths)
        self.read_paths: list[str] = []

    def __getattr__(self, name: str) -> Any:
        return getattr(self._inner, name)

    def read_typed(self, path: str, kind: str) -> Any:
        self.read_paths.append(path)
        if path in self._fail_paths:
            raise OSError(f"simulated read failure at {path}")
        return self._inner.read_typed(path, kind)

    def exists(self, path: str) -> bool:
        self._fail_if_chosen(path)
        return self._inner.exists(path)

    def list_children(self, path: str) -> list[str]:
        self._fail_if_chosen(path)
        return self._inner.list_children(path)

    def _fail_if_chosen(self, path: str) -> None:
        if path in self._fail_paths:
            raise OSError(f"simulated store failure at {path}")


def component_keys(dataset: CellDataset) -> dict[str, object]:
    """Summarize which identifiers and layers a dataset holds."""
    return {
        "assays": {name: sorted(assay.layers) for name, assay in dataset.assays.items()},
        "reductions": sorted(dataset.reductions),
        "graphs": sorted(dataset.graphs),
        "images": sorted(dataset.images),
        "commands": sorted(dataset.commands),
        "misc": sorted(dataset.misc),
        "tools": sorted(dataset.tools),
        "meta_data": sorted(dataset.meta_data) if dataset.meta_data is not None else None,
    }


def assert_datasets_equal(left: CellDataset, right: CellDataset) -> None:
    """Assert two datasets hold the same components with equal values."""
    assert left.cell_names == right.cell_names
    assert component_keys(left) == component_keys(right)
    for name, assay in left.assays.items():
        other = right.assays[name]
        assert assay.features == other.features
        assert assay.scaled_features == other.scaled_features
        for kind, matrix in assay.layers.items():
            assert np.array_equal(_dense(matrix), _dense(other.layers[kind]))
    for name, reduction in left.reductions.items():
        assert np.array_equal(reduction.embeddings, right.reductions[name].embeddings)
    for name, graph in left.graphs.items():
        assert np.array_equal(graph.matrix.toarray(), right.graphs[name].matrix.toarray())
    for name, image in left.images.items():
        assert np.array_equal(image.coordinates, right.images[name].coordinates)


def _dense(matrix: Any) -> np.ndarray:
    if sparse.issparse(matrix):
        return matrix.toarray()
    return np.asarray(matrix)
