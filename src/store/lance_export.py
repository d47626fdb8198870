"""Lance export for recorded regions.

This module converts recorded region rows into Arrow tables and writes
them to Apache Lance so surrogate training pipelines can consume them.
"""

from __future__ import annotations

import json
from typing import Any

import numpy as np

from core.constants import (
    ARROW_METADATA_KEY,
    INPUT_STREAM_NAME,
    OUTPUT_STREAM_NAME,
    TABULAR_DATASET_NAME,
    TABULAR_REGION_KIND,
)
from core.errors import TraceDependencyError, TraceStoreError
from core.logging_config import get_logger
from core.types import RegionInfo, StreamInfo
from store.region_reader import RegionReader

_LOGGER = get_logger(__name__)


def paired_row_count(info: RegionInfo) -> int:
    """Return the number of complete input/output pairs of a tensor region."""
    counts = {stream.name: stream.row_count for stream in info.streams}
    return min(counts.get(INPUT_STREAM_NAME, 0), counts.get(OUTPUT_STREAM_NAME, 0))


def region_to_arrow_table(reader: RegionReader, region: str) -> Any:
    """Build an Arrow table from a recorded region.

    Tensor regions yield ``row``, ``input`` and ``output`` columns with one
    flattened row per complete pair; tabular regions yield ``row`` and
    ``features``. Shapes and scalar types are kept in schema metadata.

    Args:
        reader: Open region reader.
        region: Region group name.

    Returns:
        pyarrow.Table instance.

    Raises:
        TraceDependencyError: If pyarrow is unavailable.
        StorageReadError: If the region cannot be read.
    """
    try:
        import pyarrow as pa
    except ImportError as error:
        raise TraceDependencyError(
            "Arrow export requires pyarrow, but it is not installed. "
            "Install the lance extra (pip install 'approx-trace[lance]') "
            "to export recorded regions."
        ) from error
    info = reader.region_info(region)
    if info.kind == TABULAR_REGION_KIND:
        stream_names = (TABULAR_DATASET_NAME,)
        column_names = ("features",)
        row_count = info.streams[0].row_count if info.streams else 0
    else:
        stream_names = (INPUT_STREAM_NAME, OUTPUT_STREAM_NAME)
        column_names = (INPUT_STREAM_NAME, OUTPUT_STREAM_NAME)
        row_count = paired_row_count(info)
    columns: dict[str, Any] = {"row": pa.array(np.arange(row_count, dtype=np.int64))}
    streams: list[StreamInfo] = []
    for stream_name, column_name in zip(stream_names, column_names):
        if row_count == 0:
            continue
        rows = reader.read_stream(region, stream_name)[:row_count]
        columns[column_name] = _fixed_size_list(pa, rows)
        streams.append(reader.stream_info(region, stream_name))
    metadata = {ARROW_METADATA_KEY: json.dumps(_metadata_payload(info, streams)).encode("utf-8")}
    return pa.table(columns).replace_schema_metadata(metadata)


def export_region_to_lance(reader: RegionReader, region: str, output_uri: str) -> int:
    """Write a recorded region to a Lance dataset.

    Args:
        reader: Open region reader.
        region: Region group name.
        output_uri: Destination Lance dataset URI.

    Returns:
        Number of exported rows.

    Raises:
        TraceDependencyError: If lance or pyarrow is unavailable.
        TraceStoreError: If the Lance write fails.
    """
    try:
        import lance
    except ImportError as error:
        raise TraceDependencyError(
            "Lance export requires the lance package, but it is not installed. "
            "Install the lance extra (pip install 'approx-trace[lance]') "
            "to export recorded regions."
        ) from error
    table = region_to_arrow_table(reader, region)
    try:
        lance.write_dataset(table, output_uri, mode="overwrite")
    except Exception as error:
        raise TraceStoreError(
            f"Failed to write Lance dataset at {output_uri}: {error}. "
            "Validate lance/pyarrow compatibility and retry the export."
        ) from error
    _LOGGER.info(
        "region_exported",
        region=region,
        output_uri=output_uri,
        row_count=table.num_rows,
    )
    return int(table.num_rows)


def _fixed_size_list(pa: Any, rows: np.ndarray) -> Any:
    """Flatten each row into an Arrow fixed-size list."""
    width = int(np.prod(rows.shape[1:], dtype=np.int64))
    values = pa.array(np.ascontiguousarray(rows).reshape(-1))
    return pa.FixedSizeListArray.from_arrays(values, width)


def _metadata_payload(info: RegionInfo, streams: list[StreamInfo]) -> dict[str, object]:
    return {
        "region": info.name,
        "kind": info.kind,
        "address": info.address,
        "streams": {
            stream.name: {
                "scalar_type": stream.scalar_type.name,
                "type": int(stream.scalar_type),
                "row_shape": list(stream.row_shape),
            }
            for stream in streams
        },
    }
