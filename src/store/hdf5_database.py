"""HDF5-backed region database.

This module owns the container file for one tracing session and the
registry of regions created in it. Handles are stable indexes into the
registry; regions are never removed before the database closes.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence
from uuid import uuid4

import h5py

from core.config import TraceConfig
from core.constants import (
    ADDRESS_ATTRIBUTE_NAME,
    DEFAULT_CHUNK_ROWS,
    DEFAULT_FILE_MODE,
    KIND_ATTRIBUTE_NAME,
    REGION_NAME_SEPARATOR,
    SUPPORTED_FILE_MODES,
    TABULAR_REGION_KIND,
    TENSOR_REGION_KIND,
)
from core.errors import (
    InvalidHandleError,
    StorageOpenError,
    StorageWriteError,
    TraceStoreError,
)
from core.logging_config import get_logger
from core.types import MemoryRegistration, RegionHandle, RegionKind, VariableInfo
from store.backend import RegionDatabase
from store.memory_registry import MemoryRegistry
from store.region_store import RegionStore
from store.tabular_region import TabularRegionView, validate_variables

_LOGGER = get_logger(__name__)


class HDF5Database(RegionDatabase):
    """Region registry persisted to one HDF5 container.

    The database is synchronous and not thread safe; callers sharing it
    across threads must serialize access per region.
    """

    def __init__(
        self,
        path: Path | str,
        mode: str = DEFAULT_FILE_MODE,
        default_chunk_rows: int = DEFAULT_CHUNK_ROWS,
    ) -> None:
        """Open the container file.

        Args:
            path: Container file path.
            mode: ``w`` to truncate, ``a`` to append, ``x`` to create exclusively.
            default_chunk_rows: Hint used when a region does not pass one.

        Raises:
            StorageOpenError: If the file cannot be created or opened.
        """
        if mode not in SUPPORTED_FILE_MODES:
            raise StorageOpenError(
                f"Unsupported file mode '{mode}': expected one of "
                f"{', '.join(SUPPORTED_FILE_MODES)}."
            )
        self._path = Path(path).expanduser()
        self._default_chunk_rows = default_chunk_rows
        self._token = uuid4().hex
        self._regions: list[RegionStore | TabularRegionView] = []
        self._memory = MemoryRegistry()
        try:
            self._file: h5py.File | None = h5py.File(self._path, mode)
        except (OSError, ValueError) as error:
            raise StorageOpenError(
                f"Failed to open trace container at {self._path}: {error}. "
                "Check that the directory exists and is writable."
            ) from error
        _LOGGER.info("trace_database_opened", path=str(self._path), mode=mode)

    @classmethod
    def open(
        cls,
        path: Path | str,
        mode: str = DEFAULT_FILE_MODE,
        default_chunk_rows: int = DEFAULT_CHUNK_ROWS,
    ) -> "HDF5Database":
        """Open a container; use the result as a context manager to scope it."""
        return cls(path, mode, default_chunk_rows)

    @classmethod
    def from_config(cls, config: TraceConfig) -> "HDF5Database":
        """Open the container described by runtime configuration."""
        return cls(config.db_path, config.file_mode, config.chunk_rows)

    def __enter__(self) -> "HDF5Database":
        return self

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def region_count(self) -> int:
        return len(self._regions)

    @property
    def memory(self) -> MemoryRegistry:
        return self._memory

    def instantiate_region(
        self,
        address: int,
        name: str,
        chunk_rows_hint: int | None = None,
    ) -> RegionHandle:
        """Create a tensor region under a group named after ``name``.

        Args:
            address: Source address of the traced code region.
            name: Human-readable region name.
            chunk_rows_hint: Optional chunk rows hint recorded with the region.

        Returns:
            Handle valid until the database is closed.

        Raises:
            StorageWriteError: If the region group cannot be created.
        """
        hint = self._resolve_hint(chunk_rows_hint)
        group = self._create_group(address, name, TENSOR_REGION_KIND)
        return self._register(RegionStore(group, address, name, hint), TENSOR_REGION_KIND)

    def instantiate_tabular_region(
        self,
        address: int,
        name: str,
        chunk_rows_hint: int | None = None,
        inputs: Sequence[VariableInfo] = (),
        outputs: Sequence[VariableInfo] = (),
    ) -> RegionHandle:
        """Create a tabular region whose columns follow the declared variables.

        Raises:
            ShapeMismatchError: If a declared variable has no elements.
            StorageWriteError: If the region group cannot be created.
        """
        hint = self._resolve_hint(chunk_rows_hint)
        validate_variables(inputs, outputs)
        group = self._create_group(address, name, TABULAR_REGION_KIND)
        view = TabularRegionView(group, address, name, hint, inputs, outputs)
        return self._register(view, TABULAR_REGION_KIND)

    def region(self, handle: RegionHandle) -> RegionStore | TabularRegionView:
        """Resolve a handle to its region.

        Raises:
            InvalidHandleError: If the handle is not a valid index of this registry.
        """
        if not isinstance(handle, RegionHandle) or handle.owner != self._token:
            raise InvalidHandleError(
                f"Handle {handle!r} was not issued by the database at {self._path}."
            )
        if not 0 <= handle.index < len(self._regions):
            raise InvalidHandleError(
                f"Handle index {handle.index} is out of range for "
                f"{len(self._regions)} registered regions."
            )
        return self._regions[handle.index]

    def write(self, handle: RegionHandle, payload: Any, scalar_type: Any = None) -> int:
        """Append a payload to a region of either kind.

        Tensor regions alternate input/output rows; tabular regions take the
        payload as a feature block.
        """
        if isinstance(self.region(handle), TabularRegionView):
            return self.write_rows(handle, payload)
        return self.write_tensor(handle, payload, scalar_type)

    def write_tensor(self, handle: RegionHandle, tensor: Any, scalar_type: Any = None) -> int:
        """Append one tensor to the stream the region expects next.

        Returns:
            Row count of the written stream.

        Raises:
            InvalidHandleError: If the handle is unknown or names a tabular region.
            AlternationViolationError: If the write is out of input/output turn.
            UnsupportedTypeError: If the scalar type is not supported.
            ShapeMismatchError: If the tensor differs from the stream's frozen shape/type.
            StorageWriteError: If the database is closed or the backend write fails.
        """
        self._require_open()
        region = self.region(handle)
        if not isinstance(region, RegionStore):
            raise InvalidHandleError(
                f"Handle {handle.index} refers to tabular region '{region.name}': "
                "use write_rows for feature rows."
            )
        return region.write(tensor, scalar_type)

    def write_rows(
        self,
        handle: RegionHandle,
        buffer: Any,
        num_rows: int | None = None,
        num_cols: int | None = None,
    ) -> int:
        """Append a block of feature rows to a tabular region.

        Raises:
            InvalidHandleError: If the handle is unknown or names a tensor region.
            ShapeMismatchError: If the block does not fit the region's columns.
            StorageWriteError: If the database is closed or the backend write fails.
        """
        self._require_open()
        region = self.region(handle)
        if not isinstance(region, TabularRegionView):
            raise InvalidHandleError(
                f"Handle {handle.index} refers to tensor region '{region.name}': "
                "use write_tensor for tensors."
            )
        return region.append_rows(buffer, num_rows, num_cols)

    def register_memory(
        self,
        group_name: str,
        name: str,
        pointer: int,
        size_bytes: int,
        data_type: Any,
    ) -> MemoryRegistration:
        """Record a memory buffer declared by the directive layer."""
        registration = self._memory.register(group_name, name, pointer, size_bytes, data_type)
        _LOGGER.debug(
            "memory_registered",
            group_name=group_name,
            name=name,
            size_bytes=registration.size_bytes,
            scalar_type=registration.scalar_type.name,
        )
        return registration

    def flush(self) -> None:
        """Push buffered writes to the container file."""
        self._require_open().flush()

    def close(self) -> None:
        """Close the container file; later calls are no-ops."""
        if self._file is None:
            return
        container = self._file
        self._file = None
        container.close()
        _LOGGER.info(
            "trace_database_closed",
            path=str(self._path),
            region_count=len(self._regions),
        )

    def _require_open(self) -> h5py.File:
        if self._file is None:
            raise StorageWriteError(
                f"Trace container at {self._path} is closed: open a new database to record."
            )
        return self._file

    def _resolve_hint(self, chunk_rows_hint: int | None) -> int:
        hint = self._default_chunk_rows if chunk_rows_hint is None else chunk_rows_hint
        if hint < 1:
            raise TraceStoreError(f"Invalid chunk rows hint {hint}: expected value >= 1.")
        return hint

    def _create_group(self, address: int, name: str, kind: RegionKind) -> h5py.Group:
        container = self._require_open()
        if not name or "/" in name:
            raise TraceStoreError(
                f"Invalid region name {name!r}: expected a non-empty name without '/'."
            )
        group_name = _free_group_name(container, name)
        try:
            group = container.create_group(group_name)
            group.attrs[ADDRESS_ATTRIBUTE_NAME] = int(address)
            group.attrs[KIND_ATTRIBUTE_NAME] = kind
        except (OSError, ValueError) as error:
            raise StorageWriteError(
                f"Failed to create region group '{group_name}' in {self._path}: {error}."
            ) from error
        return group

    def _register(self, region: RegionStore | TabularRegionView, kind: RegionKind) -> RegionHandle:
        handle = RegionHandle(index=len(self._regions), owner=self._token)
        self._regions.append(region)
        _LOGGER.info(
            "region_instantiated",
            handle=handle.index,
            address=hex(region.address),
            name=region.name,
            group=region.group_name,
            kind=kind,
            chunk_rows_hint=region.chunk_rows_hint,
        )
        return handle


def _free_group_name(container: h5py.File, name: str) -> str:
    """Return ``name`` or the first ``name.N`` not yet present in the file."""
    if name not in container:
        return name
    suffix = 1
    while f"{name}{REGION_NAME_SEPARATOR}{suffix}" in container:
        suffix += 1
    return f"{name}{REGION_NAME_SEPARATOR}{suffix}"
