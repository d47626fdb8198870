"""Registered memory bookkeeping.

This module keeps the name to pointer to size table that the directive
layer fills while a region declares its memory buffers.
"""

from __future__ import annotations

from typing import Any

from core.errors import TraceStoreError
from core.types import MemoryRegistration
from store.type_mapping import resolve_scalar_type


class MemoryRegistry:
    """In-process table of registered memory buffers grouped by name."""

    def __init__(self) -> None:
        self._groups: dict[str, dict[str, MemoryRegistration]] = {}

    def register(
        self,
        group_name: str,
        name: str,
        pointer: int,
        size_bytes: int,
        data_type: Any,
    ) -> MemoryRegistration:
        """Record one buffer, replacing an earlier entry with the same name.

        Raises:
            UnsupportedTypeError: If the data type is not supported.
            TraceStoreError: If the size is negative.
        """
        if size_bytes < 0:
            raise TraceStoreError(
                f"Invalid size {size_bytes} for memory '{group_name}/{name}': expected >= 0."
            )
        registration = MemoryRegistration(
            group_name=group_name,
            name=name,
            pointer=int(pointer),
            size_bytes=int(size_bytes),
            scalar_type=resolve_scalar_type(data_type),
        )
        self._groups.setdefault(group_name, {})[name] = registration
        return registration

    def lookup(self, group_name: str, name: str) -> MemoryRegistration | None:
        """Return one registration, or ``None`` when unknown."""
        return self._groups.get(group_name, {}).get(name)

    def entries(self, group_name: str) -> tuple[MemoryRegistration, ...]:
        """Return registrations of one group in registration order."""
        return tuple(self._groups.get(group_name, {}).values())

    def group_names(self) -> tuple[str, ...]:
        return tuple(self._groups)
