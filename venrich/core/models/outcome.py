"""Per-instrument pipeline outcomes and downstream acknowledgements."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from venrich.core.models.instrument import InstrumentIdentifier
from venrich.core.models.record import UnifiedRecord


class OutcomeStatus(str, Enum):
    """单个工具的处理结果."""

    DELIVERED = "delivered"
    VALIDATION_REJECTED = "validation_rejected"
    DISPATCH_FAILED = "dispatch_failed"
    PROVIDER_UNAVAILABLE = "provider_unavailable"


@dataclass(frozen=True)
class Ack:
    """Downstream acknowledgement of a delivered record."""

    endpoint: str
    reference: str
    acknowledged_at: datetime


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of running one instrument through the pipeline."""

    identifier: InstrumentIdentifier
    status: OutcomeStatus
    reason: str | None = None
    audit_warning: str | None = None
    record: UnifiedRecord | None = None
    ack: Ack | None = None

    @classmethod
    def delivered(
        cls,
        identifier: InstrumentIdentifier,
        record: UnifiedRecord,
        ack: Ack,
        audit_warning: str | None = None,
    ) -> DispatchOutcome:
        return cls(identifier, OutcomeStatus.DELIVERED, audit_warning=audit_warning, record=record, ack=ack)

    @classmethod
    def validation_rejected(
        cls, identifier: InstrumentIdentifier, reason: str, record: UnifiedRecord
    ) -> DispatchOutcome:
        return cls(identifier, OutcomeStatus.VALIDATION_REJECTED, reason=reason, record=record)

    @classmethod
    def dispatch_failed(cls, identifier: InstrumentIdentifier, reason: str, record: UnifiedRecord) -> DispatchOutcome:
        return cls(identifier, OutcomeStatus.DISPATCH_FAILED, reason=reason, record=record)

    @classmethod
    def provider_unavailable(cls, identifier: InstrumentIdentifier, reason: str) -> DispatchOutcome:
        return cls(identifier, OutcomeStatus.PROVIDER_UNAVAILABLE, reason=reason)

    @property
    def audit_degraded(self) -> bool:
        return self.audit_warning is not None

    def to_row(self) -> dict[str, Any]:
        return {
            "isin": self.identifier.isin,
            "figi": self.identifier.figi,
            "status": self.status.value,
            "reason": self.reason,
            "audit_warning": self.audit_warning,
            "ack_reference": self.ack.reference if self.ack else None,
        }


@dataclass(frozen=True)
class BulkResult:
    """Aggregated outcomes of one bulk request."""

    request_id: str
    source_id: str
    product_category: str
    outcomes: tuple[DispatchOutcome, ...]
    cancelled: bool = False
    not_started: tuple[InstrumentIdentifier, ...] = field(default_factory=tuple)
    duration_ms: float = 0.0

    def counts(self) -> dict[OutcomeStatus, int]:
        counter = Counter(outcome.status for outcome in self.outcomes)
        return {status: counter.get(status, 0) for status in OutcomeStatus}

    def by_identifier(self) -> dict[InstrumentIdentifier, DispatchOutcome]:
        return {outcome.identifier: outcome for outcome in self.outcomes}

    @property
    def all_delivered(self) -> bool:
        return not self.not_started and all(o.status is OutcomeStatus.DELIVERED for o in self.outcomes)


__all__ = ["OutcomeStatus", "Ack", "DispatchOutcome", "BulkResult"]
