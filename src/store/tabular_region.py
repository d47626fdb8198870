"""Tabular region view for flat feature vectors.

This module stores one growable 2-D matrix per region. The column count is
fixed by the declared input/output variables, or by the first write when no
variables were declared. Rows are appended with one-row chunks.
"""

from __future__ import annotations

from typing import Any, Sequence

import h5py
import numpy as np

from core.constants import (
    INPUT_ELEMENTS_ATTRIBUTE_NAME,
    INPUT_TYPES_ATTRIBUTE_NAME,
    OUTPUT_ELEMENTS_ATTRIBUTE_NAME,
    OUTPUT_TYPES_ATTRIBUTE_NAME,
    TABULAR_DATASET_NAME,
    TYPE_ATTRIBUTE_NAME,
)
from core.errors import ShapeMismatchError, StorageWriteError
from core.logging_config import get_logger
from core.types import ScalarType, VariableInfo
from store.type_mapping import coerce_payload, native_dtype

_LOGGER = get_logger(__name__)


class TabularRegionView:
    """Growable feature matrix for one code region."""

    def __init__(
        self,
        group: h5py.Group,
        address: int,
        name: str,
        chunk_rows_hint: int,
        inputs: Sequence[VariableInfo] = (),
        outputs: Sequence[VariableInfo] = (),
        scalar_type: ScalarType = ScalarType.FLOAT64,
    ) -> None:
        self._group = group
        self._address = address
        self._name = name
        self._chunk_rows_hint = chunk_rows_hint
        self._scalar_type = scalar_type
        self._dataset: h5py.Dataset | None = None
        self._num_cols: int | None = None
        if inputs or outputs:
            self._num_cols = _write_layout(group, tuple(inputs), tuple(outputs))

    @property
    def address(self) -> int:
        return self._address

    @property
    def name(self) -> str:
        return self._name

    @property
    def group_name(self) -> str:
        return self._group.name

    @property
    def chunk_rows_hint(self) -> int:
        return self._chunk_rows_hint

    @property
    def scalar_type(self) -> ScalarType:
        return self._scalar_type

    @property
    def num_cols(self) -> int | None:
        return self._num_cols

    @property
    def row_count(self) -> int:
        if self._dataset is None:
            return 0
        return int(self._dataset.shape[0])

    def append_rows(
        self,
        buffer: Any,
        num_rows: int | None = None,
        num_cols: int | None = None,
    ) -> int:
        """Append a block of feature rows.

        Args:
            buffer: Array-like feature data; a 1-D buffer is one row unless
                ``num_rows``/``num_cols`` say otherwise.
            num_rows: Optional row count of the block.
            num_cols: Optional column count of the block.

        Returns:
            Row count after the append.

        Raises:
            ShapeMismatchError: If the block does not fit the fixed column count.
            StorageWriteError: If the backend write fails.
        """
        block, _ = coerce_payload(buffer, self._scalar_type)
        block = _reshape_block(block, num_rows, num_cols)
        if block.shape[1] < 1:
            raise ShapeMismatchError(f"Region '{self._name}' received rows without columns.")
        if self._num_cols is None:
            self._num_cols = int(block.shape[1])
        if block.shape[1] != self._num_cols:
            raise ShapeMismatchError(
                f"Region '{self._name}' stores {self._num_cols} columns per row, "
                f"got {block.shape[1]}."
            )
        dataset = self._ensure_dataset()
        previous_count = int(dataset.shape[0])
        added = int(block.shape[0])
        try:
            dataset.resize(previous_count + added, axis=0)
            dataset[previous_count : previous_count + added] = block
        except (OSError, ValueError, TypeError) as error:
            if dataset.shape[0] != previous_count:
                dataset.resize(previous_count, axis=0)
            _LOGGER.warning(
                "row_append_failed",
                group=self._group.name,
                stream=TABULAR_DATASET_NAME,
                row_index=previous_count,
                error=str(error),
            )
            raise StorageWriteError(
                f"Failed to append {added} rows to region '{self._name}': {error}."
            ) from error
        return previous_count + added

    def _ensure_dataset(self) -> h5py.Dataset:
        if self._dataset is not None:
            return self._dataset
        num_cols = int(self._num_cols or 0)
        try:
            dataset = self._group.create_dataset(
                TABULAR_DATASET_NAME,
                shape=(0, num_cols),
                maxshape=(None, num_cols),
                chunks=(1, num_cols),
                dtype=native_dtype(self._scalar_type),
            )
            dataset.attrs.create(TYPE_ATTRIBUTE_NAME, int(self._scalar_type), dtype=np.int32)
        except (OSError, ValueError) as error:
            raise StorageWriteError(
                f"Failed to create feature matrix for region '{self._name}': {error}."
            ) from error
        self._dataset = dataset
        _LOGGER.info(
            "tabular_region_initialized",
            group=self._group.name,
            num_cols=num_cols,
            scalar_type=self._scalar_type.name,
        )
        return dataset


def _reshape_block(block: np.ndarray, num_rows: int | None, num_cols: int | None) -> np.ndarray:
    """Bring a feature buffer into ``(rows, cols)`` form."""
    if num_rows is None and num_cols is None:
        if block.ndim == 2:
            return block
        if block.ndim > 2:
            raise ShapeMismatchError(
                f"Cannot view {block.ndim}-D buffer of shape {block.shape} as feature rows: "
                "pass num_rows and num_cols to flatten it."
            )
        return block.reshape(1, -1)
    rows = -1 if num_rows is None else num_rows
    cols = -1 if num_cols is None else num_cols
    try:
        return block.reshape(rows, cols)
    except ValueError as error:
        raise ShapeMismatchError(
            f"Cannot view buffer of {block.size} elements as {num_rows} x {num_cols} rows."
        ) from error


def validate_variables(
    inputs: Sequence[VariableInfo] = (),
    outputs: Sequence[VariableInfo] = (),
) -> None:
    """Check that every declared variable contributes at least one column.

    Raises:
        ShapeMismatchError: If a variable declares no elements.
    """
    for variable in tuple(inputs) + tuple(outputs):
        if variable.num_elements < 1:
            raise ShapeMismatchError(
                f"Variable '{variable.name}' declares {variable.num_elements} elements: "
                "expected at least 1."
            )


def _write_layout(
    group: h5py.Group,
    inputs: tuple[VariableInfo, ...],
    outputs: tuple[VariableInfo, ...],
) -> int:
    """Persist declared variable layout and return the total column count."""
    validate_variables(inputs, outputs)
    layout = (
        (INPUT_ELEMENTS_ATTRIBUTE_NAME, INPUT_TYPES_ATTRIBUTE_NAME, inputs),
        (OUTPUT_ELEMENTS_ATTRIBUTE_NAME, OUTPUT_TYPES_ATTRIBUTE_NAME, outputs),
    )
    for elements_name, types_name, variables in layout:
        if not variables:
            continue
        group.attrs.create(
            elements_name, [variable.num_elements for variable in variables], dtype=np.int64
        )
        group.attrs.create(
            types_name, [int(variable.scalar_type) for variable in variables], dtype=np.int32
        )
    return sum(variable.num_elements for variable in inputs + outputs)
