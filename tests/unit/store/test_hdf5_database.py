"""Unit tests for the HDF5 region database."""

from __future__ import annotations

import h5py
import pytest

from core.config import TraceConfig
from core.errors import (
    AlternationViolationError,
    InvalidHandleError,
    ShapeMismatchError,
    StorageOpenError,
    StorageWriteError,
    TraceStoreError,
)
from core.types import RegionHandle, ScalarType, VariableInfo
from store.hdf5_database import HDF5Database


def test_open_fails_for_missing_directory(tmp_path) -> None:
    """Opening under a missing directory should raise a structured error."""
    with pytest.raises(StorageOpenError):
        HDF5Database.open(tmp_path / "missing" / "trace.h5")


def test_open_rejects_read_only_mode(tmp_path) -> None:
    """Read-only mode cannot record regions."""
    with pytest.raises(StorageOpenError):
        HDF5Database.open(tmp_path / "trace.h5", mode="r")


def test_context_manager_closes_file(tmp_path) -> None:
    """Leaving the scope should release the container."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        database.instantiate_region(0x1000, "loopA")

    assert not database.is_open


def test_context_manager_closes_file_on_error(tmp_path) -> None:
    """Errors inside the scope should still release the container."""
    with pytest.raises(AlternationViolationError):
        with HDF5Database.open(tmp_path / "trace.h5") as database:
            handle = database.instantiate_region(0x1000, "loopA")
            database.write_tensor(handle, [1.0])
            database.region(handle).write_input([2.0])

    assert not database.is_open


def test_close_is_idempotent(tmp_path) -> None:
    """Closing twice should be a no-op."""
    database = HDF5Database.open(tmp_path / "trace.h5")
    database.close()

    database.close()

    assert not database.is_open


def test_from_config_uses_configured_path(tmp_path) -> None:
    """Config-driven open should create the configured container."""
    config = TraceConfig(
        db_path=tmp_path / "config.h5",
        file_mode="w",
        chunk_rows=16,
        random_seed=1,
    )

    with HDF5Database.from_config(config) as database:
        handle = database.instantiate_region(0x1000, "loopA")
        hint = database.region(handle).chunk_rows_hint

    assert (tmp_path / "config.h5").exists() and hint == 16


def test_instantiate_region_returns_sequential_handles(tmp_path) -> None:
    """Handles should index regions in creation order."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        first = database.instantiate_region(0x1000, "loopA", 64)
        second = database.instantiate_region(0x2000, "loopB", 64)

        assert (first.index, second.index, database.region_count) == (0, 1, 2)


def test_instantiate_region_persists_group_attributes(tmp_path) -> None:
    """Region groups should record address and kind."""
    path = tmp_path / "trace.h5"
    with HDF5Database.open(path) as database:
        database.instantiate_region(0x1000, "loopA", 64)

    with h5py.File(path, "r") as container:
        attrs = container["loopA"].attrs
        assert (int(attrs["address"]), attrs["kind"]) == (0x1000, "tensor")


def test_duplicate_names_create_independent_regions(tmp_path) -> None:
    """Reusing a name should never share storage or row counts."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        first = database.instantiate_region(0x1000, "loop")
        second = database.instantiate_region(0x1000, "loop")
        database.write_tensor(first, [1.0])

        groups = (database.region(first).group_name, database.region(second).group_name)
        counts = (
            database.region(first).input.row_count,
            database.region(second).input.row_count,
        )

    assert groups == ("/loop", "/loop.1") and counts == (1, 0)


def test_append_mode_keeps_existing_regions(tmp_path) -> None:
    """Reopening in append mode should not overwrite earlier groups."""
    path = tmp_path / "trace.h5"
    with HDF5Database.open(path) as database:
        database.write_tensor(database.instantiate_region(0x1000, "loopA"), [1.0])

    with HDF5Database.open(path, mode="a") as database:
        handle = database.instantiate_region(0x1000, "loopA")
        group_name = database.region(handle).group_name

    assert group_name == "/loopA.1"


@pytest.mark.parametrize("name", ["", "outer/inner"])
def test_instantiate_region_rejects_invalid_names(tmp_path, name: str) -> None:
    """Region names must map to exactly one top-level group."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        with pytest.raises(TraceStoreError):
            database.instantiate_region(0x1000, name)

        assert database.region_count == 0


def test_instantiate_region_rejects_invalid_hint(tmp_path) -> None:
    """Chunk rows hints must be positive."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        with pytest.raises(TraceStoreError):
            database.instantiate_region(0x1000, "loopA", 0)


def test_write_tensor_rejects_out_of_range_handle(tmp_path) -> None:
    """Handles beyond the registry size should fail."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        handle = database.instantiate_region(0x1000, "loopA")

        with pytest.raises(InvalidHandleError):
            database.write_tensor(RegionHandle(index=5, owner=handle.owner), [1.0])


def test_write_tensor_rejects_foreign_handle(tmp_path) -> None:
    """Handles issued by another database should fail."""
    with HDF5Database.open(tmp_path / "a.h5") as first, HDF5Database.open(
        tmp_path / "b.h5"
    ) as second:
        handle = first.instantiate_region(0x1000, "loopA")

        with pytest.raises(InvalidHandleError):
            second.write_tensor(handle, [1.0])


def test_write_tensor_rejects_tabular_handle(tmp_path) -> None:
    """Tensor writes cannot target tabular regions."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        handle = database.instantiate_tabular_region(0x1000, "table")

        with pytest.raises(InvalidHandleError):
            database.write_tensor(handle, [1.0])


def test_write_rows_rejects_tensor_handle(tmp_path) -> None:
    """Feature row writes cannot target tensor regions."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        handle = database.instantiate_region(0x1000, "loopA")

        with pytest.raises(InvalidHandleError):
            database.write_rows(handle, [1.0])


def test_write_dispatches_on_region_kind(tmp_path) -> None:
    """Generic writes should reach tensor and tabular regions alike."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        tensor_handle = database.instantiate_region(0x1000, "loopA")
        table_handle = database.instantiate_tabular_region(
            0x2000,
            "table",
            inputs=(VariableInfo("x", 2),),
            outputs=(VariableInfo("y", 1),),
        )

        database.write(tensor_handle, [1.0, 2.0], ScalarType.FLOAT64)
        rows = database.write(table_handle, [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])

        assert rows == 2 and not database.region(tensor_handle).expecting_input


def test_write_after_close_fails(tmp_path) -> None:
    """Writes on a closed database should raise a storage error."""
    database = HDF5Database.open(tmp_path / "trace.h5")
    handle = database.instantiate_region(0x1000, "loopA")
    database.close()

    with pytest.raises(StorageWriteError):
        database.write_tensor(handle, [1.0])


def test_register_memory_records_buffer(tmp_path) -> None:
    """Memory registrations should be kept by the database."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        database.register_memory("loopA", "buf", 0x7000, 64, "double")

        assert database.memory.lookup("loopA", "buf").size_bytes == 64


def test_rejected_tabular_declaration_leaves_no_group(tmp_path) -> None:
    """An invalid variable layout must fail before the region group exists."""
    path = tmp_path / "trace.h5"
    with HDF5Database.open(path) as database:
        with pytest.raises(ShapeMismatchError):
            database.instantiate_tabular_region(0x1000, "table", inputs=(VariableInfo("x", 0),))
        handle = database.instantiate_tabular_region(0x1000, "table", inputs=(VariableInfo("x", 2),))

        assert database.region(handle).group_name == "/table"

    with h5py.File(path, "r") as container:
        assert list(container.keys()) == ["table"]


def test_write_tensor_rejects_values_outside_requested_type(tmp_path) -> None:
    """Out-of-range integers must not be wrapped into uint8 rows."""
    with HDF5Database.open(tmp_path / "trace.h5") as database:
        handle = database.instantiate_region(0x1000, "loopA")

        with pytest.raises(ShapeMismatchError):
            database.write_tensor(handle, [-1, 300], ScalarType.UINT8)

        assert database.region(handle).input.row_count == 0
