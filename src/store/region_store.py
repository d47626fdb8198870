"""Tensor region with alternating input/output streams.

This module owns the two tensor streams of one traced code region and the
two-state machine that enforces strict input/output alternation.
"""

from __future__ import annotations

from typing import Any

import h5py

from core.constants import INPUT_STREAM_NAME, OUTPUT_STREAM_NAME
from core.errors import AlternationViolationError
from core.types import RegionState
from store.tensor_stream import TensorStream

_NEXT_STATE: dict[RegionState, RegionState] = {
    "awaiting_input": "awaiting_output",
    "awaiting_output": "awaiting_input",
}


class RegionStore:
    """Input and output tensor streams for one code region."""

    def __init__(
        self,
        group: h5py.Group,
        address: int,
        name: str,
        chunk_rows_hint: int,
    ) -> None:
        self._group = group
        self._address = address
        self._name = name
        self._chunk_rows_hint = chunk_rows_hint
        self._input = TensorStream(group, INPUT_STREAM_NAME)
        self._output = TensorStream(group, OUTPUT_STREAM_NAME)
        self._state: RegionState = "awaiting_input"

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
    def input(self) -> TensorStream:
        return self._input

    @property
    def output(self) -> TensorStream:
        return self._output

    @property
    def state(self) -> RegionState:
        return self._state

    @property
    def expecting_input(self) -> bool:
        return self._state == "awaiting_input"

    def write_input(self, payload: Any, scalar_type: Any = None) -> int:
        """Append one input row and start waiting for the matching output.

        Returns:
            Input row count after the append.

        Raises:
            AlternationViolationError: If an output write is pending.
        """
        self._expect("awaiting_input")
        row_count = self._input.append(payload, scalar_type)
        self._state = _NEXT_STATE[self._state]
        return row_count

    def write_output(self, payload: Any, scalar_type: Any = None) -> int:
        """Append one output row and start waiting for the next input.

        Returns:
            Output row count after the append.

        Raises:
            AlternationViolationError: If no input write precedes this call.
        """
        self._expect("awaiting_output")
        row_count = self._output.append(payload, scalar_type)
        self._state = _NEXT_STATE[self._state]
        return row_count

    def write(self, payload: Any, scalar_type: Any = None) -> int:
        """Append to whichever stream the current state expects."""
        if self.expecting_input:
            return self.write_input(payload, scalar_type)
        return self.write_output(payload, scalar_type)

    def _expect(self, state: RegionState) -> None:
        if self._state != state:
            stream = INPUT_STREAM_NAME if state == "awaiting_input" else OUTPUT_STREAM_NAME
            raise AlternationViolationError(
                f"Region '{self._name}' cannot accept an {stream} write while {self._state}: "
                "input and output writes must alternate, starting with input."
            )
