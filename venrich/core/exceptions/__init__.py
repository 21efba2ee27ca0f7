"""Exception handling module."""

from venrich.core.exceptions.base import (
    AuditError,
    CircuitOpenError,
    ConfigurationError,
    DispatchError,
    ExtractionError,
    InvalidRequestError,
    RecordFrozenError,
    RecordValidationError,
    UnknownCategoryError,
    UnknownSourceError,
    UpstreamError,
    VEnrichError,
)
from venrich.core.exceptions.codes import ErrorCode

__all__ = [
    "VEnrichError",
    "ConfigurationError",
    "UnknownSourceError",
    "UnknownCategoryError",
    "InvalidRequestError",
    "UpstreamError",
    "CircuitOpenError",
    "ExtractionError",
    "RecordValidationError",
    "DispatchError",
    "AuditError",
    "RecordFrozenError",
    "ErrorCode",
]
