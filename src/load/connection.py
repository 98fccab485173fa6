"""Scoped container connection.

A connection owns one open store and the resolution graph built from
it. Every load goes through the connection, and closing it releases
the store; the graph is discarded with it.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping, Union

from core.config import H5CellConfig
from core.errors import ConnectionClosedError
from core.logging_config import get_logger
from core.request_parsing import parse_load_request
from core.request_types import LoadRequest
from core.types import CellDataset, LoadedComponents
from load.materialization_set import MaterializationSet
from load.materializer import materialize
from load.merge_engine import append
from load.request_normalizer import normalize
from store.catalog_reader import ResolutionGraph, build_resolution_graph
from store.h5_store import H5Store

_LOGGER = get_logger(__name__)

RequestLike = Union[LoadRequest, Mapping[str, object], None]


class ContainerConnection:
    """Open container with its resolution graph."""

    def __init__(self, file_path: str | Path, config: H5CellConfig | None = None) -> None:
        """Open a container and read its catalog.

        Args:
            file_path: HDF5 container path.
            config: Optional runtime configuration.

        Raises:
            StoreReadError: If the container cannot be opened.
            CatalogCorruptError: If ownership metadata is malformed.
        """
        self._config = config or H5CellConfig.from_env()
        self._store = H5Store(file_path, mode="r")
        try:
            self._graph = build_resolution_graph(self._store, self._config.dimension_layers)
        except Exception:
            self._store.close()
            raise
        self._closed = False
        _LOGGER.info("connection_opened", path=str(self._store.path))

    def __enter__(self) -> "ContainerConnection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def graph(self) -> ResolutionGraph:
        self._ensure_open()
        return self._graph

    def normalize(
        self, request: RequestLike = None, loaded: LoadedComponents | None = None
    ) -> MaterializationSet:
        """Resolve a request against this container's catalog."""
        self._ensure_open()
        return normalize(
            self._graph,
            _coerce_request(request),
            loaded,
            self._config.dimension_layers,
        )

    def materialize(self, request: RequestLike = None) -> CellDataset:
        """Load a new cell dataset holding the requested components.

        Args:
            request: Load request or request mapping; everything when omitted.

        Returns:
            Newly assembled cell dataset.
        """
        materialization_set = self.normalize(request)
        return materialize(
            self._store,
            materialization_set,
            self._graph,
            self._config.check_dimensions,
        )

    def append(self, existing: CellDataset, request: RequestLike = None) -> CellDataset:
        """Extend a loaded dataset with the components it lacks.

        Args:
            existing: Dataset previously loaded from this container.
            request: Load request or request mapping; everything when omitted.

        Returns:
            The extended ``existing`` dataset.
        """
        self._ensure_open()
        return append(
            self._store,
            self._graph,
            existing,
            _coerce_request(request),
            self._config.dimension_layers,
            self._config.check_dimensions,
        )

    def close(self) -> None:
        """Release the store; later calls raise ConnectionClosedError."""
        if self._closed:
            return
        self._store.close()
        self._closed = True
        _LOGGER.info("connection_closed", path=str(self._store.path))

    def _ensure_open(self) -> None:
        if self._closed:
            raise ConnectionClosedError(
                f"Connection to {self._store.path} is closed. Reopen the container to load data."
            )


@contextmanager
def open_container(
    file_path: str | Path, config: H5CellConfig | None = None
) -> Iterator[ContainerConnection]:
    """Open a container for the duration of a ``with`` block.

    Args:
        file_path: HDF5 container path.
        config: Optional runtime configuration.

    Yields:
        Open container connection, closed on exit.
    """
    connection = ContainerConnection(file_path, config)
    try:
        yield connection
    finally:
        connection.close()


def load_container(
    file_path: str | Path,
    request: RequestLike = None,
    config: H5CellConfig | None = None,
) -> CellDataset:
    """Open a container, load the requested components and close it."""
    with open_container(file_path, config) as connection:
        return connection.materialize(request)


def _coerce_request(request: RequestLike) -> LoadRequest:
    if isinstance(request, LoadRequest):
        return request
    return parse_load_request(request)
