"""venrich 核心模块"""

from venrich.core.config.settings import ConfigManager, PipelineConfig
from venrich.core.models import BulkRequest, BulkResult, InstrumentIdentifier, ProductCategory, UnifiedRecord
from venrich.core.services import EnrichmentOrchestrator

__all__ = [
    "ConfigManager",
    "PipelineConfig",
    "BulkRequest",
    "BulkResult",
    "InstrumentIdentifier",
    "ProductCategory",
    "UnifiedRecord",
    "EnrichmentOrchestrator",
]
