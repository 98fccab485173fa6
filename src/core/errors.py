"""h5cell exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Catalog, request, materialization and store failures each raise a
specific error type so callers can tell them apart.
"""

from __future__ import annotations


class H5CellError(Exception):
    """Base exception for all h5cell failures."""


class H5CellConfigError(H5CellError):
    """Raised for invalid runtime configuration."""


class H5CellDependencyError(H5CellError):
    """Raised when an optional runtime dependency is missing."""


class InvalidRequestError(H5CellError):
    """Raised for malformed load request payloads."""


class UnknownIdentifierError(H5CellError):
    """Raised when a request names a component absent from the catalog."""


class UnresolvedDependencyError(H5CellError):
    """Raised when a non-global dependent is requested without its owner.

    Attributes:
        identifier: Name of the dependent that could not be resolved.
    """

    def __init__(self, identifier: str, message: str) -> None:
        super().__init__(message)
        self.identifier = identifier


class NoDimensionSourceError(H5CellError):
    """Raised when no dimension-defining layer can be resolved."""


class DimensionMismatchError(H5CellError):
    """Raised when a stored component disagrees with its owner's shape."""


class CatalogCorruptError(H5CellError):
    """Raised for malformed ownership metadata in a container."""


class StoreReadError(H5CellError):
    """Raised when the store adapter fails to read a path."""


class ConnectionClosedError(H5CellError):
    """Raised when a closed container connection is used."""
