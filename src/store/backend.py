"""Region database capability interface.

This module defines the storage-agnostic surface consumed by the directive
layer so alternative backends can replace the HDF5 implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence

from core.types import MemoryRegistration, RegionHandle, VariableInfo


class RegionDatabase(ABC):
    """Registry of traced regions backed by one container."""

    @abstractmethod
    def instantiate_region(
        self,
        address: int,
        name: str,
        chunk_rows_hint: int | None = None,
    ) -> RegionHandle:
        """Create a tensor region and return its handle."""

    @abstractmethod
    def instantiate_tabular_region(
        self,
        address: int,
        name: str,
        chunk_rows_hint: int | None = None,
        inputs: Sequence[VariableInfo] = (),
        outputs: Sequence[VariableInfo] = (),
    ) -> RegionHandle:
        """Create a tabular region and return its handle."""

    @abstractmethod
    def write_tensor(self, handle: RegionHandle, tensor: Any, scalar_type: Any = None) -> int:
        """Append one tensor to the input or output stream of a region."""

    @abstractmethod
    def write_rows(
        self,
        handle: RegionHandle,
        buffer: Any,
        num_rows: int | None = None,
        num_cols: int | None = None,
    ) -> int:
        """Append feature rows to a tabular region."""

    @abstractmethod
    def register_memory(
        self,
        group_name: str,
        name: str,
        pointer: int,
        size_bytes: int,
        data_type: Any,
    ) -> MemoryRegistration:
        """Record a memory buffer declared by the directive layer."""

    @abstractmethod
    def close(self) -> None:
        """Release the backing container."""

    def __enter__(self) -> "RegionDatabase":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
