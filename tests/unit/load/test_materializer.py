"""Unit tests for fresh selective materialization."""

from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from core.errors import DimensionMismatchError, StoreReadError
from core.request_parsing import parse_load_request
from core.types import CellDataset
from load.materializer import materialize
from load.request_normalizer import normalize
from store.catalog_reader import build_resolution_graph
from store.h5_store import H5Store
from tests.fixture_containers import (
    RecordingStore,
    assert_datasets_equal,
    scenario_dataset,
    with_reduction,
    write_scenario_container,
)


def _materialize(container_path, payload, fail_paths=(), check_dimensions=True) -> CellDataset:
    with H5Store(container_path) as store:
        graph = build_resolution_graph(store)
        materialization_set = normalize(graph, parse_load_request(payload))
        recording_store = RecordingStore(store, fail_paths)
        return materialize(recording_store, materialization_set, graph, check_dimensions)


def test_materialize_all_restores_every_component(tmp_path) -> None:
    """A full load should reproduce the written dataset."""
    container_path = write_scenario_container(tmp_path)

    dataset = _materialize(container_path, None)

    assert_datasets_equal(dataset, scenario_dataset())


def test_materialize_reads_scalar_metadata(tmp_path) -> None:
    """Annotations, commands, misc and tools should load with their values."""
    container_path = write_scenario_container(tmp_path)

    dataset = _materialize(container_path, None)

    assert (
        dataset.meta_data["orig.ident"],
        dataset.commands["FindClusters"].params["resolution"],
        dataset.misc["note"],
        dataset.tools["scores"].tolist(),
    ) == (("a", "a", "b", "b"), 0.8, "demo", [1, 2, 3])


def test_materialize_selected_layer_only(tmp_path) -> None:
    """Only the requested layer of an assay should be read."""
    container_path = write_scenario_container(tmp_path)

    dataset = _materialize(container_path, {"assays": {"SCT": ["data"]}})

    assert (sorted(dataset.assays), sorted(dataset.assays["SCT"].layers)) == (["SCT"], ["data"])


def test_materialize_sets_active_assay_from_container(tmp_path) -> None:
    """The container's active assay should become the object's default."""
    container_path = write_scenario_container(tmp_path)

    dataset = _materialize(container_path, None)

    assert dataset.active_assay == "SCT"


def test_materialize_falls_back_to_loaded_assay(tmp_path) -> None:
    """Without the container default loaded, the first loaded assay is used."""
    container_path = write_scenario_container(tmp_path)

    dataset = _materialize(container_path, {"assays": "Spatial"})

    assert dataset.active_assay == "Spatial"


def test_materialize_rejects_mismatched_reduction(tmp_path) -> None:
    """A reduction with the wrong cell count should fail the load."""
    original = scenario_dataset()
    broken = with_reduction(
        original, replace(original.reductions["pca"], embeddings=np.ones((3, 2)))
    )
    container_path = write_scenario_container(tmp_path, broken)

    with pytest.raises(DimensionMismatchError, match="pca"):
        _materialize(container_path, None)


def test_materialize_skips_checks_when_disabled(tmp_path) -> None:
    """Disabling dimension checks should load mismatched components."""
    original = scenario_dataset()
    broken = with_reduction(
        original, replace(original.reductions["pca"], embeddings=np.ones((3, 2)))
    )
    container_path = write_scenario_container(tmp_path, broken)

    dataset = _materialize(container_path, None, check_dimensions=False)

    assert dataset.reductions["pca"].embeddings.shape == (3, 2)


def test_materialize_rejects_short_annotation_column(tmp_path) -> None:
    """Cell annotations must span every cell."""
    broken = replace(scenario_dataset(), meta_data={"nCount": np.array([1.0, 2.0])})
    container_path = write_scenario_container(tmp_path, broken)

    with pytest.raises(DimensionMismatchError, match="nCount"):
        _materialize(container_path, None)


def test_materialize_wraps_read_failures(tmp_path) -> None:
    """Adapter failures should surface as StoreReadError."""
    container_path = write_scenario_container(tmp_path)

    with pytest.raises(StoreReadError, match="slice1"):
        _materialize(container_path, None, fail_paths={"images/slice1/coordinates"})


def test_materialize_rejects_scalar_annotation(tmp_path) -> None:
    """A cell annotation stored as a single value cannot span the cells."""
    broken = replace(scenario_dataset(), meta_data={"nCount": 5.0})
    container_path = write_scenario_container(tmp_path, broken)

    with pytest.raises(DimensionMismatchError, match="single value"):
        _materialize(container_path, None)


def test_materialize_wraps_listing_failures(tmp_path) -> None:
    """Failures while listing command parameters should surface as StoreReadError."""
    container_path = write_scenario_container(tmp_path)

    with pytest.raises(StoreReadError, match="NormalizeData.SCT"):
        _materialize(container_path, None, fail_paths={"commands/NormalizeData.SCT"})
