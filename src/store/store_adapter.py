"""Store adapter contract consumed by the loader.

The loader only needs path-addressed existence checks, child listing,
typed reads and attribute reads. Writers additionally create groups
and write arrays, sparse matrices, scalars and attributes.
"""

from __future__ import annotations

from typing import Any, Callable, Literal, Protocol, Sequence, TypeVar

import numpy as np
from scipy import sparse

from core.errors import H5CellError, StoreReadError

ValueKind = Literal["numeric", "string", "sparse", "matrix", "scalar", "auto"]
_T = TypeVar("_T")


class StoreAdapter(Protocol):
    """Hierarchical path-addressed key-value store."""

    def exists(self, path: str) -> bool:
        """Return whether a group or dataset exists at path."""

    def list_children(self, path: str) -> list[str]:
        """Return ordered child names under a group path."""

    def read_typed(self, path: str, kind: ValueKind) -> Any:
        """Read a value of the expected kind.

        Raises:
            StoreReadError: If the path is missing or holds another kind.
        """

    def read_attribute(self, path: str, name: str) -> Any | None:
        """Return an attribute value, or None when absent."""

    def create_group(self, path: str) -> None:
        """Create a group and any missing parents."""

    def write_array(self, path: str, values: np.ndarray | Sequence[str]) -> None:
        """Write a numeric or string array."""

    def write_sparse(self, path: str, matrix: sparse.spmatrix) -> None:
        """Write a compressed sparse matrix group."""

    def write_scalar(self, path: str, value: Any) -> None:
        """Write a scalar dataset."""

    def write_attribute(self, path: str, name: str, value: Any) -> None:
        """Attach an attribute to a group or dataset."""

    def close(self) -> None:
        """Release the underlying container handle."""


def guarded_read(path: str, operation: Callable[[], _T]) -> _T:
    """Run one adapter call, reporting foreign failures as StoreReadError.

    Args:
        path: Container path the call touches, for the error message.
        operation: Zero-argument adapter call.

    Returns:
        The call's result.

    Raises:
        StoreReadError: If the adapter raises anything outside the h5cell hierarchy.
    """
    try:
        return operation()
    except H5CellError:
        raise
    except Exception as error:
        raise StoreReadError(f"Failed to read '{path}': {error}.") from error
