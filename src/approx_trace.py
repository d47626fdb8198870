"""Public SDK surface for approx trace.

This module provides a stable import path for the directive layer and
for training pipelines reading recorded regions back.
"""

from __future__ import annotations

from core.config import TraceConfig
from core.errors import (
    AlternationViolationError,
    ApproxTraceError,
    InvalidHandleError,
    ShapeMismatchError,
    StorageOpenError,
    StorageReadError,
    StorageWriteError,
    UnsupportedTypeError,
)
from core.types import (
    DataLoaderOptions,
    RegionHandle,
    RegionInfo,
    ScalarType,
    StreamInfo,
    VariableInfo,
)
from serve.region_dataloader import create_region_dataloader, load_region_pairs
from store.backend import RegionDatabase
from store.hdf5_database import HDF5Database
from store.lance_export import export_region_to_lance, region_to_arrow_table
from store.region_reader import RegionReader

__all__ = [
    "AlternationViolationError",
    "ApproxTraceError",
    "DataLoaderOptions",
    "HDF5Database",
    "InvalidHandleError",
    "RegionDatabase",
    "RegionHandle",
    "RegionInfo",
    "RegionReader",
    "ScalarType",
    "ShapeMismatchError",
    "StorageOpenError",
    "StorageReadError",
    "StorageWriteError",
    "StreamInfo",
    "TraceConfig",
    "UnsupportedTypeError",
    "VariableInfo",
    "create_region_dataloader",
    "export_region_to_lance",
    "load_region_pairs",
    "region_to_arrow_table",
]
