"""venrich - 金融工具分析数据富化管道

按 (ISIN, FIGI) 批量从上游分析服务获取数据, 按产品类别提取为统一记录,
校验后投递到下游系统并写入审计记录.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from venrich.core.config import ConfigManager, PipelineConfig
from venrich.core.models import BulkResult, InstrumentIdentifier, ProductCategory
from venrich.core.services import EnrichmentOrchestrator, build_orchestrator

__version__ = "0.1.0"


async def enrich_async(
    source_id: str,
    product_category: ProductCategory | str,
    identifiers: Iterable[InstrumentIdentifier | Mapping[str, Any] | tuple[str, str]],
    *,
    config: PipelineConfig | None = None,
    config_path: Path | None = None,
    **kwargs: Any,
) -> BulkResult:
    """异步执行一次批量富化请求

    Args:
        source_id: 上游数据源
        product_category: 产品类别 (fixed_income, equity, hedge_fund)
        identifiers: (ISIN, FIGI) 列表
        config: 配置快照, 为空时从 ``config_path`` 或默认路径加载
        **kwargs: 传递给 :meth:`EnrichmentOrchestrator.process`

    Examples:
        >>> import venrich
        >>> result = venrich.enrich("bloomberg", "equity", [("US0378331005", "BBG000B9XRY4")])
        >>> result.counts()
    """
    resolved = config or ConfigManager(config_path).get_config()
    orchestrator = build_orchestrator(resolved)
    try:
        return await orchestrator.process(source_id, product_category, identifiers, **kwargs)
    finally:
        await orchestrator.aclose()


def enrich(
    source_id: str,
    product_category: ProductCategory | str,
    identifiers: Iterable[InstrumentIdentifier | Mapping[str, Any] | tuple[str, str]],
    **kwargs: Any,
) -> BulkResult:
    """同步执行一次批量富化请求, 参数同 :func:`enrich_async`"""
    return asyncio.run(enrich_async(source_id, product_category, identifiers, **kwargs))


__all__ = [
    "__version__",
    "enrich",
    "enrich_async",
    "BulkResult",
    "EnrichmentOrchestrator",
    "InstrumentIdentifier",
    "PipelineConfig",
    "ProductCategory",
]
