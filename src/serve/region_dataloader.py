"""PyTorch DataLoader integration for recorded regions.

This module serves complete input/output pairs of a tensor region as
batches for surrogate model training.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from core.constants import INPUT_STREAM_NAME, OUTPUT_STREAM_NAME, TABULAR_REGION_KIND
from core.errors import TraceDependencyError, TraceStoreError
from core.types import DataLoaderOptions
from store.lance_export import paired_row_count
from store.region_reader import RegionReader


def load_region_pairs(reader: RegionReader, region: str) -> tuple[np.ndarray, np.ndarray]:
    """Load complete input/output pairs of a tensor region.

    Args:
        reader: Open region reader.
        region: Region group name.

    Returns:
        Pair of input and output arrays with equal row counts.

    Raises:
        TraceStoreError: If the region is tabular.
    """
    info = reader.region_info(region)
    if info.kind == TABULAR_REGION_KIND:
        raise TraceStoreError(
            f"Region '{region}' stores flat feature rows, not input/output pairs."
        )
    row_count = paired_row_count(info)
    if row_count == 0:
        return np.empty((0,)), np.empty((0,))
    inputs = reader.read_stream(region, INPUT_STREAM_NAME)[:row_count]
    outputs = reader.read_stream(region, OUTPUT_STREAM_NAME)[:row_count]
    return inputs, outputs


def create_region_dataloader(
    reader: RegionReader,
    region: str,
    options: DataLoaderOptions,
    random_seed: int,
) -> Any:
    """Create a PyTorch DataLoader over recorded region pairs.

    Args:
        reader: Open region reader.
        region: Region group name.
        options: Dataloader behavior.
        random_seed: Shuffling seed.

    Returns:
        torch.utils.data.DataLoader instance yielding ``(inputs, outputs)`` batches.

    Raises:
        TraceDependencyError: If torch is unavailable.
        TraceStoreError: If options are invalid or the region is tabular.
    """
    if options.batch_size < 1:
        raise TraceStoreError(
            f"Invalid batch size {options.batch_size}: expected value >= 1."
        )
    try:
        import torch
    except ImportError as error:
        raise TraceDependencyError(
            "PyTorch DataLoader integration requires torch, but it is not installed. "
            "Install torch to serve recorded regions."
        ) from error
    inputs, outputs = load_region_pairs(reader, region)
    dataset = torch.utils.data.TensorDataset(torch.from_numpy(inputs), torch.from_numpy(outputs))
    generator = torch.Generator()
    generator.manual_seed(random_seed)
    return torch.utils.data.DataLoader(
        dataset,
        batch_size=options.batch_size,
        shuffle=options.shuffle,
        generator=generator,
    )
