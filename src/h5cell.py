"""Public SDK surface for h5cell.

This module provides a stable import path for selective loading.
It re-exports the connection API, request models and typed entities.
"""

from __future__ import annotations

from core.config import H5CellConfig
from core.errors import (
    CatalogCorruptError,
    ConnectionClosedError,
    DimensionMismatchError,
    H5CellError,
    InvalidRequestError,
    NoDimensionSourceError,
    StoreReadError,
    UnknownIdentifierError,
    UnresolvedDependencyError,
)
from core.request_parsing import load_request_file, parse_load_request
from core.request_types import LoadRequest, Selection
from core.types import (
    CellDataset,
    Command,
    DerivedSummary,
    MeasurementSet,
    Overlay,
    RelationshipGraph,
)
from load.connection import ContainerConnection, load_container, open_container
from store.container_writer import save_container

__all__ = [
    "CatalogCorruptError",
    "CellDataset",
    "Command",
    "ConnectionClosedError",
    "ContainerConnection",
    "DerivedSummary",
    "DimensionMismatchError",
    "H5CellConfig",
    "H5CellError",
    "InvalidRequestError",
    "LoadRequest",
    "MeasurementSet",
    "NoDimensionSourceError",
    "Overlay",
    "RelationshipGraph",
    "Selection",
    "StoreReadError",
    "UnknownIdentifierError",
    "UnresolvedDependencyError",
    "load_container",
    "load_request_file",
    "open_container",
    "parse_load_request",
    "save_container",
]
