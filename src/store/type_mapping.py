"""Scalar type mapping for region streams.

This module maps the closed scalar-type enumeration onto native numpy
dtypes, which h5py stores as the matching HDF5 primitive types.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from core.errors import ShapeMismatchError, UnsupportedTypeError
from core.types import ScalarType

_NATIVE_DTYPES: dict[ScalarType, np.dtype] = {
    ScalarType.FLOAT64: np.dtype(np.float64),
    ScalarType.FLOAT32: np.dtype(np.float32),
    ScalarType.INT32: np.dtype(np.int32),
    ScalarType.INT64: np.dtype(np.int64),
    ScalarType.INT16: np.dtype(np.int16),
    ScalarType.UINT8: np.dtype(np.uint8),
}
_TYPE_ALIASES: dict[str, ScalarType] = {
    "double": ScalarType.FLOAT64,
    "float": ScalarType.FLOAT32,
    "int": ScalarType.INT32,
    "long": ScalarType.INT64,
    "short": ScalarType.INT16,
    "uchar": ScalarType.UINT8,
}
_NUMERIC_KINDS = "iuf"


def resolve_scalar_type(value: Any) -> ScalarType:
    """Resolve a scalar type from an enum member, id, alias, or dtype.

    Args:
        value: ``ScalarType``, persisted integer id, text alias, or numpy dtype.

    Returns:
        Matching scalar type.

    Raises:
        UnsupportedTypeError: If the value names no supported type.
    """
    if isinstance(value, ScalarType):
        return value
    if value is None:
        raise UnsupportedTypeError(
            "Missing scalar type: expected a ScalarType, id, or numeric dtype."
        )
    if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
        try:
            return ScalarType(int(value))
        except ValueError as error:
            raise UnsupportedTypeError(
                f"Unsupported scalar type id {value}: "
                f"expected one of {_supported_ids()}."
            ) from error
    if isinstance(value, str):
        key = value.strip().lower()
        if key in _TYPE_ALIASES:
            return _TYPE_ALIASES[key]
        if key.upper() in ScalarType.__members__:
            return ScalarType[key.upper()]
    try:
        dtype = np.dtype(value)
    except TypeError as error:
        raise UnsupportedTypeError(
            f"Unsupported scalar type {value!r}: expected a ScalarType, id, or numeric dtype."
        ) from error
    return scalar_type_for_dtype(dtype)


def native_dtype(scalar_type: ScalarType) -> np.dtype:
    """Return the native storage dtype for a scalar type.

    Raises:
        UnsupportedTypeError: If the scalar type has no native mapping.
    """
    dtype = _NATIVE_DTYPES.get(scalar_type)
    if dtype is None:
        raise UnsupportedTypeError(f"No native storage type for scalar type {scalar_type!r}.")
    return dtype


def scalar_type_for_dtype(dtype: np.dtype) -> ScalarType:
    """Return the scalar type whose native dtype equals ``dtype``.

    Raises:
        UnsupportedTypeError: If no supported type matches.
    """
    normalized = np.dtype(dtype).newbyteorder("=")
    for scalar_type, native in _NATIVE_DTYPES.items():
        if native == normalized:
            return scalar_type
    raise UnsupportedTypeError(
        f"Unsupported payload dtype '{dtype}': "
        "expected float64, float32, int32, int64, int16, or uint8."
    )


def coerce_payload(payload: Any, scalar_type: Any = None) -> tuple[np.ndarray, ScalarType]:
    """Convert a payload into a contiguous array of a supported type.

    Args:
        payload: Array-like row data (list, numpy array, CPU tensor).
        scalar_type: Optional requested type; inferred from payload when omitted.

    Returns:
        Pair of converted array and its scalar type.

    Raises:
        UnsupportedTypeError: If the payload or requested type is unsupported.
        ShapeMismatchError: If the payload cannot be cast to the requested type.
    """
    array = np.asarray(payload)
    if array.dtype.kind not in _NUMERIC_KINDS:
        raise UnsupportedTypeError(
            f"Unsupported payload dtype '{array.dtype}': expected numeric row data."
        )
    if scalar_type is None:
        resolved = scalar_type_for_dtype(array.dtype)
        return np.ascontiguousarray(array), resolved
    resolved = resolve_scalar_type(scalar_type)
    target = native_dtype(resolved)
    if np.can_cast(array.dtype, target, casting="safe"):
        return np.ascontiguousarray(array, dtype=target), resolved
    if array.dtype.kind == "f" and target.kind in "iu":
        raise ShapeMismatchError(
            f"Cannot store payload of dtype '{array.dtype}' as {resolved.name}: "
            "cast would drop fractional values."
        )
    converted = _checked_cast(array, target)
    if converted is None:
        raise ShapeMismatchError(
            f"Cannot store payload of dtype '{array.dtype}' as {resolved.name}: "
            "values fall outside the range of the stored type."
        )
    return converted, resolved


def _checked_cast(array: np.ndarray, target: np.dtype) -> np.ndarray | None:
    """Cast ``array`` to ``target``, or return ``None`` when values change.

    Float narrowing may round but must not overflow to infinity; every other
    cast must convert back to the original values exactly.
    """
    with np.errstate(over="ignore", invalid="ignore"):
        converted = np.ascontiguousarray(array, dtype=target)
        if array.dtype.kind == "f":
            preserved = np.array_equal(np.isfinite(converted), np.isfinite(array))
        else:
            preserved = np.array_equal(converted.astype(array.dtype), array)
    return converted if preserved else None


def _supported_ids() -> str:
    return ", ".join(f"{member.value} ({member.name})" for member in ScalarType)
