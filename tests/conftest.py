"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def sample_trace(tmp_path) -> Path:
    """Write a small trace container with tensor and tabular regions.

    ``loopA`` holds two float64 input/output pairs, ``loopB`` holds int32
    inputs with one trailing unpaired input, ``table`` holds three rows.
    """
    from core.types import ScalarType, VariableInfo
    from store.hdf5_database import HDF5Database

    path = tmp_path / "sample.h5"
    with HDF5Database.open(path) as database:
        loop_a = database.instantiate_region(0x1000, "loopA", 64)
        database.write_tensor(loop_a, [1.0, 2.0], ScalarType.FLOAT64)
        database.write_tensor(loop_a, [3.0], ScalarType.FLOAT64)
        database.write_tensor(loop_a, [4.0, 5.0], ScalarType.FLOAT64)
        database.write_tensor(loop_a, [9.0], ScalarType.FLOAT64)
        loop_b = database.instantiate_region(0x2000, "loopB", 64)
        for step in range(3):
            database.write_tensor(loop_b, np.full((2, 2), step, dtype=np.int32))
            if step < 2:
                database.write_tensor(loop_b, np.float32(step))
        table = database.instantiate_tabular_region(
            0x3000,
            "table",
            inputs=(VariableInfo("x", 2),),
            outputs=(VariableInfo("y", 1),),
        )
        database.write_rows(table, np.arange(9, dtype=np.float64), num_rows=3, num_cols=3)
    return path


class _FailingRowWrites:
    """Dataset wrapper whose row assignments fail after the resize succeeds."""

    def __init__(self, dataset) -> None:
        self._dataset = dataset

    def __getattr__(self, name: str):
        return getattr(self._dataset, name)

    def __setitem__(self, key, value) -> None:
        raise OSError("disk full")


@pytest.fixture
def failing_row_writes():
    """Return a factory wrapping an h5py dataset so row writes raise ``OSError``."""
    return _FailingRowWrites
