"""配置管理模块 - 启动时加载一次的不可变配置快照."""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any

from venrich.core.exceptions import ConfigurationError


def _require(condition: bool, message: str, config_key: str) -> None:
    if not condition:
        raise ConfigurationError(message, config_key=config_key)


def _require_int(value: Any, minimum: int, config_key: str) -> None:
    _require(
        isinstance(value, int) and not isinstance(value, bool) and value >= minimum,
        f"{config_key} must be an integer >= {minimum}, got {value!r}",
        config_key,
    )


def _require_number(value: Any, config_key: str) -> None:
    _require(
        isinstance(value, (int, float)) and not isinstance(value, bool),
        f"{config_key} must be a number, got {value!r}",
        config_key,
    )


def _known_kwargs(cls: type, values: Mapping[str, Any], section: str) -> dict[str, Any]:
    allowed = {f.name for f in fields(cls)}
    unknown = sorted(set(values) - allowed)
    if unknown:
        raise ConfigurationError(f"Unknown keys in [{section}]: {', '.join(unknown)}", config_key=section)
    return dict(values)


@dataclass(frozen=True)
class SourceConfig:
    """单个数据源的批量和弹性配置"""

    batch_size: int = 100
    retry_max: int = 3
    backoff_base: float = 0.5
    backoff_max: float = 30.0
    circuit_failure_threshold: int = 5
    circuit_cooldown: float = 30.0
    cache_ttl: int = 300
    provider: str = "static"
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_int(self.batch_size, 1, "batch_size")
        _require_int(self.retry_max, 0, "retry_max")
        _require_int(self.circuit_failure_threshold, 1, "circuit_failure_threshold")
        _require_int(self.cache_ttl, 0, "cache_ttl")
        for name in ("backoff_base", "backoff_max", "circuit_cooldown"):
            _require_number(getattr(self, name), name)
        _require(self.backoff_base >= 0, "backoff_base must be non-negative", "backoff_base")
        _require(self.backoff_max >= self.backoff_base, "backoff_max must be >= backoff_base", "backoff_max")
        _require(self.circuit_cooldown >= 0, "circuit_cooldown must be non-negative", "circuit_cooldown")
        object.__setattr__(self, "options", MappingProxyType(dict(self.options)))


@dataclass(frozen=True)
class DownstreamConfig:
    """下游系统配置"""

    endpoint: str = "dry-run"
    timeout: float = 30.0
    retry_max: int = 3
    backoff_base: float = 0.5
    backoff_max: float = 30.0
    circuit_failure_threshold: int = 5
    circuit_cooldown: float = 30.0

    def __post_init__(self) -> None:
        _require(
            isinstance(self.endpoint, str) and bool(self.endpoint), "downstream endpoint cannot be empty", "endpoint"
        )
        _require_int(self.retry_max, 0, "retry_max")
        _require_int(self.circuit_failure_threshold, 1, "circuit_failure_threshold")
        for name in ("timeout", "backoff_base", "backoff_max", "circuit_cooldown"):
            _require_number(getattr(self, name), name)
        _require(self.timeout > 0, "timeout must be positive", "timeout")
        _require(self.backoff_base >= 0, "backoff_base must be non-negative", "backoff_base")
        _require(self.backoff_max >= self.backoff_base, "backoff_max must be >= backoff_base", "backoff_max")
        _require(self.circuit_cooldown >= 0, "circuit_cooldown must be non-negative", "circuit_cooldown")


@dataclass(frozen=True)
class AuditConfig:
    """审计存储配置"""

    database: str = ":memory:"


@dataclass(frozen=True)
class LoggingConfig:
    """日志配置"""

    level: str = "INFO"
    file: str | None = None


@dataclass(frozen=True)
class PipelineConfig:
    """venrich主配置"""

    max_in_flight_batches: int = 4
    per_batch_concurrency: int = 8
    sources: Mapping[str, SourceConfig] = field(default_factory=dict)
    default_source: SourceConfig = field(default_factory=SourceConfig)
    downstream: DownstreamConfig = field(default_factory=DownstreamConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extractor_order: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _require_int(self.max_in_flight_batches, 1, "max_in_flight_batches")
        _require_int(self.per_batch_concurrency, 1, "per_batch_concurrency")
        object.__setattr__(self, "sources", MappingProxyType(dict(self.sources)))
        object.__setattr__(
            self,
            "extractor_order",
            MappingProxyType({key: tuple(value) for key, value in self.extractor_order.items()}),
        )

    def source(self, source_id: str) -> SourceConfig:
        """Return the configuration of ``source_id``, falling back to the default."""
        return self.sources.get(source_id, self.default_source)

    @classmethod
    def from_dict(cls, config_dict: Mapping[str, Any]) -> PipelineConfig:
        """从字典创建配置"""
        pipeline = dict(config_dict.get("pipeline", {}))
        unknown = sorted(set(pipeline) - {"max_in_flight_batches", "per_batch_concurrency"})
        if unknown:
            raise ConfigurationError(f"Unknown keys in [pipeline]: {', '.join(unknown)}", config_key="pipeline")
        try:
            sources = {
                name: SourceConfig(**_known_kwargs(SourceConfig, values, f"sources.{name}"))
                for name, values in config_dict.get("sources", {}).items()
            }
            return cls(
                max_in_flight_batches=pipeline.get("max_in_flight_batches", 4),
                per_batch_concurrency=pipeline.get("per_batch_concurrency", 8),
                sources=sources,
                default_source=SourceConfig(
                    **_known_kwargs(SourceConfig, config_dict.get("default_source", {}), "default_source")
                ),
                downstream=DownstreamConfig(
                    **_known_kwargs(DownstreamConfig, config_dict.get("downstream", {}), "downstream")
                ),
                audit=AuditConfig(**_known_kwargs(AuditConfig, config_dict.get("audit", {}), "audit")),
                logging=LoggingConfig(**_known_kwargs(LoggingConfig, config_dict.get("logging", {}), "logging")),
                extractor_order=config_dict.get("extractor_order", {}),
            )
        except TypeError as exc:
            raise ConfigurationError(f"Invalid configuration value: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""

        def _source(config: SourceConfig) -> dict[str, Any]:
            data = {f.name: getattr(config, f.name) for f in fields(SourceConfig)}
            data["options"] = dict(config.options)
            return data

        return {
            "pipeline": {
                "max_in_flight_batches": self.max_in_flight_batches,
                "per_batch_concurrency": self.per_batch_concurrency,
            },
            "sources": {name: _source(config) for name, config in self.sources.items()},
            "default_source": _source(self.default_source),
            "downstream": asdict(self.downstream),
            "audit": asdict(self.audit),
            "logging": asdict(self.logging),
            "extractor_order": {key: list(value) for key, value in self.extractor_order.items()},
        }


class ConfigManager:
    """配置管理器"""

    def __init__(self, config_path: Path | None = None, *, apply_env: bool = True):
        """初始化配置管理器

        Args:
            config_path: 配置文件路径，如果为None则使用默认路径
            apply_env: 是否应用 VENRICH_* 环境变量覆盖
        """
        self.config_path = config_path or Path.home() / ".venrich" / "config.toml"
        self.apply_env = apply_env
        self.config = self._load_config()

    def _load_config(self) -> PipelineConfig:
        """加载配置"""
        config_dict: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, "rb") as f:
                    config_dict = tomllib.load(f)
            except (OSError, tomllib.TOMLDecodeError) as e:
                raise ConfigurationError(
                    f"Failed to load config from {self.config_path}: {e}",
                    config_key="config_path",
                ) from e

        if self.apply_env:
            deep_update(config_dict, load_config_from_env())
        return PipelineConfig.from_dict(config_dict)

    def get_config(self) -> PipelineConfig:
        """获取当前配置"""
        return self.config


def deep_update(d: dict[str, Any], u: Mapping[str, Any]) -> dict[str, Any]:
    """深度更新字典"""
    for k, v in u.items():
        if isinstance(v, Mapping):
            d[k] = deep_update(dict(d.get(k, {})), v)
        else:
            d[k] = v
    return d


def load_config_from_env() -> dict[str, Any]:
    """从环境变量加载配置"""
    config: dict[str, Any] = {}

    def _int(name: str) -> int | None:
        raw = os.getenv(name)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{name} must be an integer", config_key=name) from exc

    pipeline_config: dict[str, Any] = {}
    max_in_flight = _int("VENRICH_MAX_IN_FLIGHT_BATCHES")
    if max_in_flight is not None:
        pipeline_config["max_in_flight_batches"] = max_in_flight
    per_batch = _int("VENRICH_PER_BATCH_CONCURRENCY")
    if per_batch is not None:
        pipeline_config["per_batch_concurrency"] = per_batch
    if pipeline_config:
        config["pipeline"] = pipeline_config

    endpoint = os.getenv("VENRICH_DOWNSTREAM_ENDPOINT")
    if endpoint:
        config["downstream"] = {"endpoint": endpoint}

    database = os.getenv("VENRICH_AUDIT_DATABASE")
    if database:
        config["audit"] = {"database": database}

    logging_config: dict[str, Any] = {}
    level = os.getenv("VENRICH_LOGGING_LEVEL")
    if level is not None:
        logging_config["level"] = level
    log_file = os.getenv("VENRICH_LOGGING_FILE")
    if log_file is not None:
        logging_config["file"] = log_file
    if logging_config:
        config["logging"] = logging_config

    return config
