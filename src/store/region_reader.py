"""Read-back access to recorded trace containers.

This module reopens a container written by the region database and
reconstructs regions and streams from the file alone, using the persisted
``type``, ``address`` and ``kind`` attributes.
"""

from __future__ import annotations

from pathlib import Path

import h5py
import numpy as np

from core.constants import (
    ADDRESS_ATTRIBUTE_NAME,
    INPUT_STREAM_NAME,
    KIND_ATTRIBUTE_NAME,
    OUTPUT_STREAM_NAME,
    TABULAR_DATASET_NAME,
    TABULAR_REGION_KIND,
    TENSOR_REGION_KIND,
    TYPE_ATTRIBUTE_NAME,
)
from core.errors import StorageOpenError, StorageReadError
from core.types import RegionInfo, RegionKind, StreamInfo
from store.type_mapping import native_dtype, resolve_scalar_type


class RegionReader:
    """Read-only view over a trace container file."""

    def __init__(self, path: Path | str) -> None:
        """Open a container for reading.

        Raises:
            StorageOpenError: If the file is missing or not a valid container.
        """
        self._path = Path(path).expanduser()
        try:
            self._file: h5py.File | None = h5py.File(self._path, "r")
        except (OSError, ValueError) as error:
            raise StorageOpenError(
                f"Failed to open trace container at {self._path} for reading: {error}."
            ) from error

    def __enter__(self) -> "RegionReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def path(self) -> Path:
        return self._path

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def region_names(self) -> list[str]:
        """Return region group names in sorted order."""
        container = self._require_open()
        return sorted(name for name, item in container.items() if isinstance(item, h5py.Group))

    def region_info(self, region: str) -> RegionInfo:
        """Describe one region group and the streams it holds."""
        group = self._group(region)
        kind = _region_kind(group)
        stream_names = (
            (TABULAR_DATASET_NAME,)
            if kind == TABULAR_REGION_KIND
            else (INPUT_STREAM_NAME, OUTPUT_STREAM_NAME)
        )
        streams = tuple(
            _stream_info(group[name]) for name in stream_names if name in group
        )
        return RegionInfo(
            name=region,
            kind=kind,
            address=int(group.attrs.get(ADDRESS_ATTRIBUTE_NAME, 0)),
            streams=streams,
        )

    def stream_info(self, region: str, stream: str) -> StreamInfo:
        """Describe one stream of a region."""
        return _stream_info(self._dataset(region, stream))

    def read_stream(self, region: str, stream: str) -> np.ndarray:
        """Read all rows of a stream with its recorded element type."""
        dataset = self._dataset(region, stream)
        info = _stream_info(dataset)
        return np.asarray(dataset[()], dtype=native_dtype(info.scalar_type))

    def read_row(self, region: str, stream: str, index: int) -> np.ndarray:
        """Read one row of a stream.

        Raises:
            StorageReadError: If the index is outside the recorded rows.
        """
        dataset = self._dataset(region, stream)
        info = _stream_info(dataset)
        if not 0 <= index < info.row_count:
            raise StorageReadError(
                f"Row {index} is out of range for {region}/{stream} with {info.row_count} rows."
            )
        return np.asarray(dataset[index], dtype=native_dtype(info.scalar_type))

    def _require_open(self) -> h5py.File:
        if self._file is None:
            raise StorageReadError(f"Trace container at {self._path} is closed.")
        return self._file

    def _group(self, region: str) -> h5py.Group:
        container = self._require_open()
        item = container.get(region)
        if not isinstance(item, h5py.Group):
            raise StorageReadError(
                f"Region '{region}' not found in {self._path}. "
                f"Available regions: {', '.join(self.region_names()) or 'none'}."
            )
        return item

    def _dataset(self, region: str, stream: str) -> h5py.Dataset:
        item = self._group(region).get(stream)
        if not isinstance(item, h5py.Dataset):
            raise StorageReadError(
                f"Stream '{stream}' not found in region '{region}': "
                "it has not received any rows yet."
            )
        return item


def _region_kind(group: h5py.Group) -> RegionKind:
    raw_kind = group.attrs.get(KIND_ATTRIBUTE_NAME, TENSOR_REGION_KIND)
    kind = raw_kind.decode("utf-8") if isinstance(raw_kind, bytes) else str(raw_kind)
    if kind not in (TENSOR_REGION_KIND, TABULAR_REGION_KIND):
        raise StorageReadError(f"Region group {group.name} has unknown kind '{kind}'.")
    return TABULAR_REGION_KIND if kind == TABULAR_REGION_KIND else TENSOR_REGION_KIND


def _stream_info(dataset: h5py.Dataset) -> StreamInfo:
    if TYPE_ATTRIBUTE_NAME not in dataset.attrs:
        raise StorageReadError(
            f"Dataset {dataset.name} has no '{TYPE_ATTRIBUTE_NAME}' attribute; "
            "its element type cannot be reconstructed."
        )
    scalar_type = resolve_scalar_type(int(dataset.attrs[TYPE_ATTRIBUTE_NAME]))
    return StreamInfo(
        name=dataset.name.rsplit("/", 1)[-1],
        scalar_type=scalar_type,
        row_shape=tuple(int(dim) for dim in dataset.shape[1:]),
        row_count=int(dataset.shape[0]),
    )
