"""Shared typed models.

This module defines immutable data models used by the region store,
read-back, export, and serving layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Literal

from core.constants import DEFAULT_BATCH_SIZE


class ScalarType(IntEnum):
    """Closed set of element types a stream may hold.

    Values are persisted as the integer ``type`` attribute of every dataset.
    """

    FLOAT64 = 0
    FLOAT32 = 1
    INT32 = 2
    INT64 = 3
    INT16 = 4
    UINT8 = 5


RegionKind = Literal["tensor", "tabular"]
RegionState = Literal["awaiting_input", "awaiting_output"]


@dataclass(frozen=True)
class RegionHandle:
    """Opaque reference to a registered region.

    Attributes:
        index: Position in the owning database registry.
        owner: Token of the database that issued the handle.
    """

    index: int
    owner: str


@dataclass(frozen=True)
class VariableInfo:
    """Declared layout of one region variable.

    Attributes:
        name: Variable name as declared by the directive.
        num_elements: Number of scalar elements the variable contributes per row.
        scalar_type: Element type of the variable.
    """

    name: str
    num_elements: int
    scalar_type: ScalarType = ScalarType.FLOAT64


@dataclass(frozen=True)
class StreamInfo:
    """Persisted description of one growable dataset.

    Attributes:
        name: Dataset name inside its region group.
        scalar_type: Element type read from the ``type`` attribute.
        row_shape: Fixed per-row shape.
        row_count: Current length of the growable dimension.
    """

    name: str
    scalar_type: ScalarType
    row_shape: tuple[int, ...]
    row_count: int


@dataclass(frozen=True)
class RegionInfo:
    """Persisted description of one region group.

    Attributes:
        name: Group name in the container file.
        kind: Region variant stored in the group.
        address: Source address recorded at instantiation.
        streams: Datasets present in the group.
    """

    name: str
    kind: RegionKind
    address: int
    streams: tuple[StreamInfo, ...]


@dataclass(frozen=True)
class MemoryRegistration:
    """One registered memory buffer.

    Attributes:
        group_name: Logical group the buffer belongs to.
        name: Buffer name inside the group.
        pointer: Raw address of the buffer.
        size_bytes: Buffer size in bytes.
        scalar_type: Element type of the buffer.
    """

    group_name: str
    name: str
    pointer: int
    size_bytes: int
    scalar_type: ScalarType


@dataclass(frozen=True)
class DataLoaderOptions:
    """PyTorch serving options for recorded region pairs.

    Attributes:
        batch_size: Number of input/output pairs per batch.
        shuffle: Whether to shuffle pairs each epoch.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    shuffle: bool = False
