"""venrich核心异常类."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from venrich.core.exceptions.codes import ErrorCode


class VEnrichError(Exception):
    """venrich基础异常类."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode | str = ErrorCode.GENERAL_ERROR,
        details: dict[str, Any] | None = None,
    ):
        """初始化异常.

        Args:
            message: 错误消息
            error_code: 错误代码
            details: 额外详情
        """
        super().__init__(message)
        self.message = message
        self.error_code = ErrorCode(error_code)
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Return a serializable payload representing the error."""

        return {
            "code": self.error_code.value,
            "message": self.message,
            "details": dict(self.details),
        }


class ConfigurationError(VEnrichError):
    """配置异常, 仅在启动阶段出现."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if config_key:
            super_details["config_key"] = config_key
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, super_details)
        self.config_key = config_key


class UnknownSourceError(VEnrichError):
    """未注册的数据源."""

    def __init__(self, source_id: str, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details["source_id"] = source_id
        super().__init__(f"Unknown analytics source: {source_id}", ErrorCode.UNKNOWN_SOURCE, super_details)
        self.source_id = source_id


class UnknownCategoryError(VEnrichError):
    """未注册的产品类别."""

    def __init__(self, category: str, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details["product_category"] = category
        super().__init__(f"Unknown product category: {category}", ErrorCode.UNKNOWN_CATEGORY, super_details)
        self.category = category


class InvalidRequestError(VEnrichError):
    """批量请求输入错误."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_REQUEST,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, error_code, details)


class UpstreamError(VEnrichError):
    """上游分析服务异常."""

    def __init__(
        self,
        message: str,
        source_id: str,
        retryable: bool = False,
        error_code: ErrorCode = ErrorCode.UPSTREAM_ERROR,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details["retryable"] = retryable
        if status_code is not None:
            super_details["status_code"] = status_code
        super().__init__(message, error_code, super_details)
        self.source_id = source_id
        self.retryable = retryable
        self.status_code = status_code


class CircuitOpenError(UpstreamError):
    """熔断器处于OPEN状态, 调用被直接拒绝."""

    def __init__(self, breaker_name: str, remaining_time: float = 0.0):
        super().__init__(
            f"Circuit breaker {breaker_name} is open",
            source_id=breaker_name,
            retryable=False,
            error_code=ErrorCode.CIRCUIT_OPEN,
            details={"remaining_time": remaining_time},
        )
        self.breaker_name = breaker_name
        self.remaining_time = remaining_time


class ExtractionError(VEnrichError):
    """单个属性提取失败."""

    def __init__(self, message: str, attribute: str, details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details["attribute"] = attribute
        super().__init__(message, ErrorCode.EXTRACTION_ERROR, super_details)
        self.attribute = attribute


class RecordValidationError(VEnrichError):
    """统一记录结构校验失败."""

    def __init__(self, violations: Sequence[str], details: dict[str, Any] | None = None):
        super_details = details or {}
        super_details["violations"] = list(violations)
        message = "; ".join(violations) if violations else "record failed validation"
        super().__init__(message, ErrorCode.VALIDATION_ERROR, super_details)
        self.violations = tuple(violations)


class DispatchError(VEnrichError):
    """下游投递失败."""

    def __init__(
        self,
        message: str,
        endpoint: str,
        retryable: bool = False,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details["endpoint"] = endpoint
        super_details["retryable"] = retryable
        if status_code is not None:
            super_details["status_code"] = status_code
        super().__init__(message, ErrorCode.DISPATCH_ERROR, super_details)
        self.endpoint = endpoint
        self.retryable = retryable
        self.status_code = status_code


class AuditError(VEnrichError):
    """审计写入失败."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.AUDIT_ERROR, details)


class RecordFrozenError(VEnrichError):
    """记录冻结后禁止修改."""

    def __init__(self, attribute: str | None = None):
        details = {"attribute": attribute} if attribute else {}
        super().__init__("UnifiedRecord builder is frozen", ErrorCode.RECORD_FROZEN, details)
