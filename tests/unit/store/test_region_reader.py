"""Unit tests for reading recorded containers back."""

from __future__ import annotations

import numpy as np
import pytest

from core.errors import StorageOpenError, StorageReadError
from core.types import ScalarType
from store.hdf5_database import HDF5Database
from store.region_reader import RegionReader


def test_reader_fails_for_missing_file(tmp_path) -> None:
    """Opening a missing container should raise a structured error."""
    with pytest.raises(StorageOpenError):
        RegionReader(tmp_path / "missing.h5")


def test_region_names_lists_all_groups(sample_trace) -> None:
    """Every region group should be listed in sorted order."""
    with RegionReader(sample_trace) as reader:
        assert reader.region_names() == ["loopA", "loopB", "table"]


def test_region_info_reconstructs_tensor_region(sample_trace) -> None:
    """Region metadata should come from persisted attributes only."""
    with RegionReader(sample_trace) as reader:
        info = reader.region_info("loopA")

    assert (info.kind, info.address, [stream.name for stream in info.streams]) == (
        "tensor",
        0x1000,
        ["input", "output"],
    )


def test_stream_info_reads_type_attribute(sample_trace) -> None:
    """The stream element type should be restored from the type attribute."""
    with RegionReader(sample_trace) as reader:
        info = reader.stream_info("loopB", "input")

    assert (info.scalar_type, info.row_shape, info.row_count) == (ScalarType.INT32, (2, 2), 3)


def test_read_stream_returns_rows_in_write_order(sample_trace) -> None:
    """Rows should read back in the order they were written."""
    with RegionReader(sample_trace) as reader:
        rows = reader.read_stream("loopA", "input")

    assert rows.tolist() == [[1.0, 2.0], [4.0, 5.0]]


def test_read_row_returns_single_row(sample_trace) -> None:
    """One row should be readable without loading the stream."""
    with RegionReader(sample_trace) as reader:
        row = reader.read_row("loopB", "output", 1)

    assert row.dtype == np.float32 and float(row) == 1.0


def test_read_row_rejects_out_of_range_index(sample_trace) -> None:
    """Indexes beyond the row count should fail."""
    with RegionReader(sample_trace) as reader:
        with pytest.raises(StorageReadError):
            reader.read_row("loopA", "output", 2)


def test_region_info_reads_tabular_region(sample_trace) -> None:
    """Tabular regions should expose their single feature matrix."""
    with RegionReader(sample_trace) as reader:
        info = reader.region_info("table")

    assert info.kind == "tabular" and info.streams[0].row_shape == (3,)


def test_missing_region_fails(sample_trace) -> None:
    """Unknown region names should raise a read error."""
    with RegionReader(sample_trace) as reader:
        with pytest.raises(StorageReadError):
            reader.region_info("nope")


def test_missing_stream_fails(tmp_path) -> None:
    """Streams that never received rows should raise a read error."""
    path = tmp_path / "empty.h5"
    with HDF5Database.open(path) as database:
        database.instantiate_region(0x1000, "loopA")

    with RegionReader(path) as reader:
        with pytest.raises(StorageReadError):
            reader.read_stream("loopA", "input")
