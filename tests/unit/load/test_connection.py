"""Unit tests for scoped container connections."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import H5CellConfig
from core.errors import CatalogCorruptError, ConnectionClosedError, StoreReadError
from core.request_types import LoadRequest, Selection
from load.connection import ContainerConnection, load_container, open_container
from store.h5_store import H5Store
from tests.fixture_containers import write_scenario_container


def test_open_container_closes_on_exit(tmp_path: Path) -> None:
    """Leaving the with block should close the connection."""
    container_path = write_scenario_container(tmp_path)

    with open_container(container_path) as connection:
        assert not connection.closed

    assert connection.closed


def test_closed_connection_rejects_loads(tmp_path: Path) -> None:
    """Loading through a closed connection should fail."""
    container_path = write_scenario_container(tmp_path)
    connection = ContainerConnection(container_path)
    connection.close()

    with pytest.raises(ConnectionClosedError):
        connection.materialize()


def test_connection_accepts_mapping_and_typed_requests(tmp_path: Path) -> None:
    """Mapping and LoadRequest forms should select the same components."""
    container_path = write_scenario_container(tmp_path)

    with open_container(container_path) as connection:
        from_mapping = connection.normalize({"assays": "Spatial", "reductions": "NA"})
        from_request = connection.normalize(
            LoadRequest(
                assays=Selection.explicit("Spatial"), reductions=Selection.global_only()
            )
        )

    assert from_mapping == from_request


def test_connection_append_extends_dataset(tmp_path: Path) -> None:
    """Append through a connection should add the requested assay."""
    container_path = write_scenario_container(tmp_path)

    with open_container(container_path) as connection:
        dataset = connection.materialize({"assays": "Spatial"})
        connection.append(dataset, {"assays": "SCT"})

    assert sorted(dataset.assays) == ["SCT", "Spatial"]


def test_load_container_uses_config_checks(tmp_path: Path) -> None:
    """A config with a narrower dimension list should apply to requests."""
    container_path = write_scenario_container(tmp_path)
    config = H5CellConfig(dimension_layers=("counts",), check_dimensions=True)

    with pytest.raises(CatalogCorruptError, match="SCT"):
        load_container(container_path, {"assays": "Spatial"}, config)


def test_load_container_reads_everything_by_default(tmp_path: Path) -> None:
    """Without a request every stored component should load."""
    container_path = write_scenario_container(tmp_path)

    dataset = load_container(container_path)

    assert (sorted(dataset.assays), sorted(dataset.reductions), sorted(dataset.images)) == (
        ["SCT", "Spatial"],
        ["pca", "umap"],
        ["slice1"],
    )


def test_missing_container_fails_to_open(tmp_path: Path) -> None:
    """Opening a missing file should raise a store error."""
    with pytest.raises(StoreReadError):
        ContainerConnection(tmp_path / "missing.h5")


def test_connection_releases_store_when_catalog_fails(tmp_path: Path) -> None:
    """A corrupt catalog should not leave the file open."""
    container_path = write_scenario_container(tmp_path)
    with H5Store(container_path, mode="a") as store:
        store.write_attribute("reductions/pca", "global", "maybe")

    with pytest.raises(CatalogCorruptError):
        ContainerConnection(container_path)

    with H5Store(container_path, mode="a") as store:
        assert store.exists("reductions/pca")


def test_connection_releases_store_on_unexpected_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Any failure while reading the catalog should close the store."""
    container_path = write_scenario_container(tmp_path)
    closed_paths: list[Path] = []
    original_close = H5Store.close

    def _recording_close(self: H5Store) -> None:
        closed_paths.append(self.path)
        original_close(self)

    def _failing_graph(store, dimension_layers):
        raise RuntimeError("catalog walk interrupted")

    monkeypatch.setattr(H5Store, "close", _recording_close)
    monkeypatch.setattr("load.connection.build_resolution_graph", _failing_graph)

    with pytest.raises(RuntimeError):
        ContainerConnection(container_path)

    assert closed_paths == [container_path]
