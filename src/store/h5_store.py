"""HDF5-backed store adapter.

This module implements the store adapter contract on top of h5py.
It hides dataset/group distinctions, string decoding and the
compressed sparse group encoding from the loader.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import h5py
import numpy as np
from scipy import sparse

from core.constants import DIMS_ATTR, SPARSE_MEMBERS
from core.errors import StoreReadError
from core.logging_config import get_logger
from store.store_adapter import ValueKind

_LOGGER = get_logger(__name__)
_NUMERIC_KINDS = "biuf"
_STRING_KINDS = "SOU"


class H5Store:
    """Store adapter over one open HDF5 file."""

    def __init__(self, file_path: str | Path, mode: str = "r") -> None:
        """Open an HDF5 container.

        Args:
            file_path: Container path on disk.
            mode: h5py file mode; ``"r"`` for loading, ``"w"`` or ``"a"`` for writing.

        Raises:
            StoreReadError: If the file cannot be opened.
        """
        self._path = Path(file_path).expanduser()
        file_options = {} if mode == "r" else {"track_order": True}
        try:
            self._file = h5py.File(self._path, mode, **file_options)
        except OSError as error:
            raise StoreReadError(
                f"Failed to open container at {self._path}: {error}. "
                "Check the path and that the file is a valid HDF5 container."
            ) from error
        _LOGGER.debug("store_opened", path=str(self._path), mode=mode)

    @property
    def path(self) -> Path:
        return self._path

    def __enter__(self) -> "H5Store":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def exists(self, path: str) -> bool:
        if not path:
            return True
        return path in self._file

    def list_children(self, path: str) -> list[str]:
        node = self._node(path)
        if not isinstance(node, h5py.Group):
            raise StoreReadError(f"Cannot list children of dataset '{path}' in {self._path}.")
        return list(node.keys())

    def read_typed(self, path: str, kind: ValueKind) -> Any:
        """Read a value and check it has the expected kind.

        Args:
            path: Container path.
            kind: Expected value kind.

        Returns:
            ndarray, CSC sparse matrix, tuple of strings or Python scalar.

        Raises:
            StoreReadError: If the path is missing, unreadable or of another kind.
        """
        node = self._node(path)
        try:
            if isinstance(node, h5py.Group):
                return self._read_group(path, node, kind)
            return self._read_dataset(path, node, kind)
        except (OSError, KeyError, ValueError, TypeError) as error:
            raise StoreReadError(
                f"Failed to read '{path}' from {self._path}: {error}."
            ) from error

    def read_attribute(self, path: str, name: str) -> Any | None:
        node = self._node(path)
        if name not in node.attrs:
            return None
        return _python_value(node.attrs[name])

    def create_group(self, path: str) -> None:
        self._file.require_group(path)

    def write_array(self, path: str, values: np.ndarray | Sequence[str]) -> None:
        array = np.asarray(values)
        if array.dtype.kind in _STRING_KINDS:
            encoded = np.array([str(item) for item in array.ravel()], dtype=object)
            self._file.create_dataset(path, data=encoded, dtype=h5py.string_dtype())
            return
        self._file.create_dataset(path, data=array)

    def write_sparse(self, path: str, matrix: sparse.spmatrix) -> None:
        compressed = sparse.csc_matrix(matrix)
        group = self._file.require_group(path)
        group.create_dataset("data", data=compressed.data)
        group.create_dataset("indices", data=compressed.indices)
        group.create_dataset("indptr", data=compressed.indptr)
        group.attrs[DIMS_ATTR] = np.asarray(compressed.shape, dtype=np.int64)

    def write_scalar(self, path: str, value: Any) -> None:
        if isinstance(value, str):
            self._file.create_dataset(path, data=value, dtype=h5py.string_dtype())
            return
        self._file.create_dataset(path, data=value)

    def write_attribute(self, path: str, name: str, value: Any) -> None:
        self._node(path).attrs[name] = value

    def close(self) -> None:
        if self._file.id.valid:
            self._file.close()
            _LOGGER.debug("store_closed", path=str(self._path))

    def _node(self, path: str) -> Any:
        if not path:
            return self._file
        node = self._file.get(path)
        if node is None:
            raise StoreReadError(f"Path '{path}' does not exist in {self._path}.")
        return node

    def _read_group(self, path: str, group: h5py.Group, kind: ValueKind) -> Any:
        if kind not in ("sparse", "matrix", "auto") or not _is_sparse_group(group):
            raise StoreReadError(
                f"Expected {kind} value at '{path}' in {self._path}, found a group."
            )
        dims = tuple(int(size) for size in np.asarray(group.attrs[DIMS_ATTR]).ravel())
        if len(dims) != 2:
            raise StoreReadError(f"Sparse matrix at '{path}' has invalid dims {dims}.")
        return sparse.csc_matrix(
            (group["data"][()], group["indices"][()], group["indptr"][()]),
            shape=(dims[0], dims[1]),
        )

    def _read_dataset(self, path: str, dataset: h5py.Dataset, kind: ValueKind) -> Any:
        dtype_kind = dataset.dtype.kind
        is_scalar = dataset.shape == ()
        if kind == "auto":
            if is_scalar:
                return _python_value(dataset[()])
            if dtype_kind in _STRING_KINDS:
                return _decode_strings(dataset[()])
            return np.asarray(dataset[()])
        if kind == "scalar" and is_scalar:
            return _python_value(dataset[()])
        if kind == "string" and dtype_kind in _STRING_KINDS and not is_scalar:
            return _decode_strings(dataset[()])
        if kind == "numeric" and dtype_kind in _NUMERIC_KINDS and not is_scalar:
            return np.asarray(dataset[()])
        if kind == "matrix" and dtype_kind in _NUMERIC_KINDS and dataset.ndim == 2:
            return np.asarray(dataset[()])
        raise StoreReadError(
            f"Expected {kind} value at '{path}' in {self._path}, "
            f"found dataset of dtype {dataset.dtype} and shape {dataset.shape}."
        )


def _is_sparse_group(group: h5py.Group) -> bool:
    return DIMS_ATTR in group.attrs and all(member in group for member in SPARSE_MEMBERS)


def _decode_strings(values: Any) -> tuple[str, ...]:
    return tuple(
        item.decode("utf-8") if isinstance(item, bytes) else str(item)
        for item in np.asarray(values).ravel()
    )


def _python_value(value: Any) -> Any:
    """Convert h5py attribute and scalar values into plain Python values."""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    if isinstance(value, np.ndarray):
        if value.size == 1:
            return _python_value(value.ravel()[0])
        if value.dtype.kind in _STRING_KINDS:
            return _decode_strings(value)
        return value
    if isinstance(value, np.generic):
        return value.item()
    return value
