"""Approx trace exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each store operation raises a specific error type for debuggability.
"""

from __future__ import annotations


class ApproxTraceError(Exception):
    """Base exception for all approx trace failures."""


class TraceConfigError(ApproxTraceError):
    """Raised for invalid runtime configuration."""


class TraceDependencyError(ApproxTraceError):
    """Raised when an optional runtime dependency is missing."""


class TraceStoreError(ApproxTraceError):
    """Raised for region store failures."""


class StorageOpenError(TraceStoreError):
    """Raised when the backing container file cannot be opened."""


class StorageWriteError(TraceStoreError):
    """Raised when the backend fails to persist a row."""


class StorageReadError(TraceStoreError):
    """Raised when persisted regions or streams cannot be read back."""


class InvalidHandleError(TraceStoreError):
    """Raised for region handles outside the registry."""


class AlternationViolationError(TraceStoreError):
    """Raised when an input/output write is issued out of turn."""


class UnsupportedTypeError(TraceStoreError):
    """Raised for scalar types outside the supported enumeration."""


class ShapeMismatchError(TraceStoreError):
    """Raised when a payload disagrees with a stream's frozen shape or type."""
