"""Unit tests for the HDF5 container writer."""

from __future__ import annotations

from pathlib import Path

import h5py

from tests.fixture_containers import write_scenario_container


def test_written_container_uses_seurat_layout(tmp_path: Path) -> None:
    """Ownership attributes should land where the catalog expects them."""
    container_path = write_scenario_container(tmp_path)

    with h5py.File(container_path, "r") as handle:
        layout = (
            handle.attrs["active.assay"],
            handle["reductions/pca"].attrs["active.assay"],
            bool(handle["reductions/umap"].attrs["global"]),
            handle["graphs/nn"].attrs["assay.used"],
            handle["images/slice1"].attrs["assay"],
            sorted(handle["graphs/nn"].keys()),
        )

    assert layout == ("SCT", "SCT", True, "SCT", "Spatial", ["data", "indices", "indptr"])


def test_save_container_replaces_existing_file(tmp_path: Path) -> None:
    """Saving twice to one path should overwrite the first container."""
    container_path = write_scenario_container(tmp_path)
    write_scenario_container(tmp_path)

    with h5py.File(container_path, "r") as handle:
        assert list(handle["cell.names"].asstr()[()]) == ["c1", "c2", "c3", "c4"]
