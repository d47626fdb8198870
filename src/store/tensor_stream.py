"""Growable chunked tensor datasets.

This module implements the append-only stream that stores one tensor row
per region invocation. Dimension 0 grows by one row per append; each chunk
holds exactly one row so appends never touch previously written rows.
"""

from __future__ import annotations

from typing import Any

import h5py
import numpy as np

from core.constants import TYPE_ATTRIBUTE_NAME
from core.errors import ShapeMismatchError, StorageWriteError
from core.logging_config import get_logger
from core.types import ScalarType
from store.type_mapping import coerce_payload, native_dtype, resolve_scalar_type

_LOGGER = get_logger(__name__)


class TensorStream:
    """Append-only dataset with a fixed per-row shape and element type.

    The backing dataset is created lazily on the first append, which
    freezes the row shape and scalar type for the lifetime of the stream.
    """

    def __init__(self, group: h5py.Group, name: str) -> None:
        self._group = group
        self._name = name
        self._dataset: h5py.Dataset | None = None
        self._row_shape: tuple[int, ...] = ()
        self._scalar_type: ScalarType | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def initialized(self) -> bool:
        return self._dataset is not None

    @property
    def row_shape(self) -> tuple[int, ...]:
        return self._row_shape

    @property
    def scalar_type(self) -> ScalarType | None:
        return self._scalar_type

    @property
    def row_count(self) -> int:
        if self._dataset is None:
            return 0
        return int(self._dataset.shape[0])

    def initialize(self, shape: tuple[int, ...], scalar_type: Any) -> None:
        """Create the backing dataset; no-op when already initialized.

        Args:
            shape: Per-row tensor shape.
            scalar_type: Element type, resolved through the type mapping.

        Raises:
            UnsupportedTypeError: If the scalar type is not supported.
            ShapeMismatchError: If the row shape has a zero-sized dimension.
            StorageWriteError: If the backend cannot create the dataset.
        """
        if self._dataset is not None:
            return
        resolved = resolve_scalar_type(scalar_type)
        row_shape = tuple(int(dim) for dim in shape)
        if any(dim < 1 for dim in row_shape):
            raise ShapeMismatchError(
                f"Cannot create stream '{self._name}' with row shape {row_shape}: "
                "every dimension must be at least 1."
            )
        try:
            dataset = self._group.create_dataset(
                self._name,
                shape=(0, *row_shape),
                maxshape=(None, *row_shape),
                chunks=(1, *row_shape),
                dtype=native_dtype(resolved),
            )
            dataset.attrs.create(TYPE_ATTRIBUTE_NAME, int(resolved), dtype=np.int32)
        except (OSError, ValueError) as error:
            raise StorageWriteError(
                f"Failed to create stream '{self._name}' in group {self._group.name}: {error}. "
                "Check that the container is writable and the name is unused."
            ) from error
        self._dataset = dataset
        self._row_shape = row_shape
        self._scalar_type = resolved
        _LOGGER.info(
            "stream_initialized",
            group=self._group.name,
            stream=self._name,
            row_shape=list(row_shape),
            scalar_type=resolved.name,
        )

    def append(self, payload: Any, scalar_type: Any = None) -> int:
        """Append one row, initializing the stream on first use.

        Args:
            payload: Array-like row matching the stream's row shape.
            scalar_type: Optional element type; inferred from payload when omitted.

        Returns:
            Row count after the append.

        Raises:
            UnsupportedTypeError: If the payload type is not supported.
            ShapeMismatchError: If payload shape or type differs from the frozen ones.
            StorageWriteError: If the backend write fails.
        """
        if scalar_type is None and self._scalar_type is not None:
            scalar_type = self._scalar_type
        row, resolved = coerce_payload(payload, scalar_type)
        self.initialize(row.shape, resolved)
        self._check_row(row, resolved)
        dataset = self._require_dataset()
        previous_count = int(dataset.shape[0])
        try:
            dataset.resize(previous_count + 1, axis=0)
            dataset[previous_count] = row
        except (OSError, ValueError, TypeError) as error:
            _rollback(dataset, previous_count)
            _LOGGER.warning(
                "row_append_failed",
                group=self._group.name,
                stream=self._name,
                row_index=previous_count,
                error=str(error),
            )
            raise StorageWriteError(
                f"Failed to append row {previous_count} to stream '{self._name}': {error}."
            ) from error
        return previous_count + 1

    def _check_row(self, row: np.ndarray, scalar_type: ScalarType) -> None:
        if scalar_type != self._scalar_type:
            frozen = self._scalar_type.name if self._scalar_type is not None else "none"
            raise ShapeMismatchError(
                f"Stream '{self._name}' stores {frozen} elements, got {scalar_type.name}."
            )
        if tuple(row.shape) != self._row_shape:
            raise ShapeMismatchError(
                f"Stream '{self._name}' stores rows of shape {self._row_shape}, "
                f"got {tuple(row.shape)}."
            )

    def _require_dataset(self) -> h5py.Dataset:
        if self._dataset is None:
            raise StorageWriteError(f"Stream '{self._name}' has not been initialized.")
        return self._dataset


def _rollback(dataset: h5py.Dataset, row_count: int) -> None:
    """Shrink a dataset back to ``row_count`` rows after a failed write."""
    if dataset.shape[0] != row_count:
        dataset.resize(row_count, axis=0)
