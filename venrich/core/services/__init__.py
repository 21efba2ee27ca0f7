"""Pipeline services: partitioning, validation, dispatch, audit and orchestration."""

from venrich.core.services.audit import AuditSink, DuckDBAuditSink
from venrich.core.services.dispatcher import (
    DownstreamDispatcher,
    DryRunDispatcher,
    HttpDownstreamDispatcher,
    ResilientDispatcher,
    build_dispatcher,
)
from venrich.core.services.orchestrator import EnrichmentOrchestrator
from venrich.core.services.partitioner import BatchPartitioner, partition
from venrich.core.services.pipeline import build_orchestrator
from venrich.core.services.validation import ValidationGate

__all__ = [
    "AuditSink",
    "BatchPartitioner",
    "DownstreamDispatcher",
    "DryRunDispatcher",
    "DuckDBAuditSink",
    "EnrichmentOrchestrator",
    "HttpDownstreamDispatcher",
    "ResilientDispatcher",
    "ValidationGate",
    "build_dispatcher",
    "build_orchestrator",
    "partition",
]
