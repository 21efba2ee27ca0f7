"""Batch partitioning of bulk requests."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from venrich.core.exceptions import ConfigurationError
from venrich.core.models import Batch, BulkRequest

T = TypeVar("T")


def partition(identifiers: Sequence[T], batch_size: int) -> list[tuple[T, ...]]:
    """Split ``identifiers`` into contiguous chunks of at most ``batch_size``.

    Order is preserved and every item lands in exactly one chunk; only the
    last chunk may be short.

    Raises:
        ConfigurationError: ``batch_size`` is below 1
    """
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        raise ConfigurationError(f"batch_size must be a positive integer, got {batch_size!r}", config_key="batch_size")
    items = tuple(identifiers)
    return [items[start : start + batch_size] for start in range(0, len(items), batch_size)]


class BatchPartitioner:
    """Turns a bulk request into indexed :class:`Batch` objects."""

    def split(self, request: BulkRequest, batch_size: int) -> list[Batch]:
        return [
            Batch(
                index=index,
                source_id=request.source_id,
                product_category=request.product_category,
                identifiers=chunk,
                request_id=request.request_id,
            )
            for index, chunk in enumerate(partition(request.identifiers, batch_size))
        ]


__all__ = ["partition", "BatchPartitioner"]
