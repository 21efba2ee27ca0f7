"""Standardised error codes shared across the enrichment pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """错误代码枚举."""

    GENERAL_ERROR = "GENERAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    UNKNOWN_SOURCE = "UNKNOWN_SOURCE"
    UNKNOWN_CATEGORY = "UNKNOWN_CATEGORY"
    INVALID_REQUEST = "INVALID_REQUEST"
    DUPLICATE_IDENTIFIER = "DUPLICATE_IDENTIFIER"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    CIRCUIT_OPEN = "CIRCUIT_OPEN"
    EXTRACTION_ERROR = "EXTRACTION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DISPATCH_ERROR = "DISPATCH_ERROR"
    AUDIT_ERROR = "AUDIT_ERROR"
    RECORD_FROZEN = "RECORD_FROZEN"


__all__ = ["ErrorCode"]
