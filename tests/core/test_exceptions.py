"""测试异常层次结构."""

from __future__ import annotations

import pytest

from venrich.core.exceptions import (
    AuditError,
    CircuitOpenError,
    ConfigurationError,
    DispatchError,
    ErrorCode,
    RecordFrozenError,
    RecordValidationError,
    UnknownCategoryError,
    UnknownSourceError,
    UpstreamError,
    VEnrichError,
)


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (ConfigurationError("bad", config_key="batch_size"), ErrorCode.CONFIGURATION_ERROR),
        (UnknownSourceError("vendor"), ErrorCode.UNKNOWN_SOURCE),
        (UnknownCategoryError("commodities"), ErrorCode.UNKNOWN_CATEGORY),
        (UpstreamError("down", "vendor"), ErrorCode.UPSTREAM_ERROR),
        (CircuitOpenError("fetch:vendor", 12.5), ErrorCode.CIRCUIT_OPEN),
        (DispatchError("nope", "https://downstream"), ErrorCode.DISPATCH_ERROR),
        (AuditError("offline"), ErrorCode.AUDIT_ERROR),
        (RecordFrozenError("pe_ratio"), ErrorCode.RECORD_FROZEN),
    ],
)
def test_error_codes(error: VEnrichError, code: ErrorCode) -> None:
    assert isinstance(error, VEnrichError)
    assert error.error_code is code
    assert error.to_payload()["code"] == code.value


def test_circuit_open_is_a_non_retryable_upstream_error() -> None:
    error = CircuitOpenError("fetch:vendor", 12.5)
    assert isinstance(error, UpstreamError)
    assert error.retryable is False
    assert error.details["remaining_time"] == 12.5


def test_upstream_details_carry_status() -> None:
    error = UpstreamError("throttled", "vendor", retryable=True, status_code=429)
    assert error.to_payload()["details"] == {"retryable": True, "status_code": 429}


def test_validation_error_joins_violations() -> None:
    error = RecordValidationError(["isin is empty", "no attribute was produced"])
    assert error.message == "isin is empty; no attribute was produced"
    assert error.details["violations"] == ["isin is empty", "no attribute was produced"]


def test_configuration_error_records_key() -> None:
    error = ConfigurationError("bad", config_key="sources.vendor")
    assert error.details == {"config_key": "sources.vendor"}
    assert str(error) == "bad"
