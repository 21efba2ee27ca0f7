"""Resilience patterns module."""

from venrich.core.patterns.circuitbreaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from venrich.core.patterns.resilient import ResilientExecutor
from venrich.core.patterns.retry import ExponentialBackoffRetry, RetryConfig

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitBreakerConfig",
    "CircuitState",
    "ExponentialBackoffRetry",
    "RetryConfig",
    "ResilientExecutor",
]
