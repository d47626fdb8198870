"""Runtime configuration model for approx trace.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_CHUNK_ROWS,
    DEFAULT_DB_PATH,
    DEFAULT_FILE_MODE,
    DEFAULT_RANDOM_SEED,
    SUPPORTED_FILE_MODES,
)
from core.errors import TraceConfigError


@dataclass(frozen=True)
class TraceConfig:
    """Validated runtime configuration.

    Attributes:
        db_path: Container file receiving region data.
        file_mode: h5py open mode for the tracing session.
        chunk_rows: Default chunk rows hint for new regions.
        random_seed: Seed used for deterministic shuffling.
    """

    db_path: Path
    file_mode: str
    chunk_rows: int
    random_seed: int

    @classmethod
    def from_env(cls) -> "TraceConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            TraceConfigError: If environment values are invalid.
        """
        db_path_value = os.getenv("APPROX_TRACE_DB", str(DEFAULT_DB_PATH))
        file_mode = _parse_file_mode(os.getenv("APPROX_TRACE_FILE_MODE", DEFAULT_FILE_MODE))
        chunk_rows = _parse_int(
            "APPROX_TRACE_CHUNK_ROWS",
            os.getenv("APPROX_TRACE_CHUNK_ROWS", str(DEFAULT_CHUNK_ROWS)),
        )
        if chunk_rows < 1:
            raise TraceConfigError(
                f"Invalid APPROX_TRACE_CHUNK_ROWS value {chunk_rows}: expected value >= 1."
            )
        random_seed = _parse_int(
            "APPROX_TRACE_RANDOM_SEED",
            os.getenv("APPROX_TRACE_RANDOM_SEED", str(DEFAULT_RANDOM_SEED)),
        )
        return cls(
            db_path=Path(db_path_value).expanduser().resolve(),
            file_mode=file_mode,
            chunk_rows=chunk_rows,
            random_seed=random_seed,
        )


def _parse_file_mode(raw_value: str) -> str:
    """Validate the container file mode value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Normalized file mode.

    Raises:
        TraceConfigError: If mode is not supported.
    """
    mode = raw_value.strip().lower()
    if mode not in SUPPORTED_FILE_MODES:
        raise TraceConfigError(
            f"Invalid APPROX_TRACE_FILE_MODE value '{raw_value}': "
            f"expected one of {', '.join(SUPPORTED_FILE_MODES)}."
        )
    return mode


def _parse_int(variable_name: str, raw_value: str) -> int:
    """Parse an integer environment value.

    Args:
        variable_name: Environment variable name for error context.
        raw_value: Raw string from environment.

    Returns:
        Parsed integer.

    Raises:
        TraceConfigError: If value cannot be parsed into int.
    """
    try:
        return int(raw_value)
    except ValueError as error:
        raise TraceConfigError(
            f"Invalid {variable_name} value: "
            f"expected integer, got '{raw_value}'. "
            f"Set {variable_name} to a numeric value."
        ) from error
