"""Core constants used across approx trace modules.

This module centralizes container layout names and defaults.
Keeping values here avoids magic literals in store logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DB_PATH = Path("approx_trace.h5")
DEFAULT_FILE_MODE = "w"
SUPPORTED_FILE_MODES = ("w", "a", "x")
DEFAULT_CHUNK_ROWS = 1
DEFAULT_RANDOM_SEED = 42
DEFAULT_BATCH_SIZE = 32
INPUT_STREAM_NAME = "input"
OUTPUT_STREAM_NAME = "output"
TABULAR_DATASET_NAME = "data"
TYPE_ATTRIBUTE_NAME = "type"
ADDRESS_ATTRIBUTE_NAME = "address"
KIND_ATTRIBUTE_NAME = "kind"
TENSOR_REGION_KIND = "tensor"
TABULAR_REGION_KIND = "tabular"
INPUT_ELEMENTS_ATTRIBUTE_NAME = "input_elements"
INPUT_TYPES_ATTRIBUTE_NAME = "input_types"
OUTPUT_ELEMENTS_ATTRIBUTE_NAME = "output_elements"
OUTPUT_TYPES_ATTRIBUTE_NAME = "output_types"
REGION_NAME_SEPARATOR = "."
ARROW_METADATA_KEY = b"approx_trace"
