"""Core data models."""

from venrich.core.models.category import ProductCategory
from venrich.core.models.instrument import (
    Batch,
    BulkRequest,
    InstrumentIdentifier,
    RawResponse,
    fingerprint_identifiers,
)
from venrich.core.models.outcome import Ack, BulkResult, DispatchOutcome, OutcomeStatus
from venrich.core.models.record import (
    AttributeStatus,
    AttributeValue,
    UnifiedRecord,
    UnifiedRecordBuilder,
)

__all__ = [
    "ProductCategory",
    "InstrumentIdentifier",
    "BulkRequest",
    "Batch",
    "RawResponse",
    "fingerprint_identifiers",
    "AttributeStatus",
    "AttributeValue",
    "UnifiedRecord",
    "UnifiedRecordBuilder",
    "OutcomeStatus",
    "Ack",
    "DispatchOutcome",
    "BulkResult",
]
