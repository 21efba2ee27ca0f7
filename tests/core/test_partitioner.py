from __future__ import annotations

import pytest

from venrich.core.exceptions import ConfigurationError
from venrich.core.models import BulkRequest
from venrich.core.services import BatchPartitioner, partition


@pytest.mark.parametrize(
    ("count", "batch_size", "expected_sizes"),
    [
        (0, 3, []),
        (1, 3, [1]),
        (3, 3, [3]),
        (7, 3, [3, 3, 1]),
        (5, 1, [1, 1, 1, 1, 1]),
        (2, 10, [2]),
    ],
)
def test_partition_covers_every_item_in_order(count: int, batch_size: int, expected_sizes: list[int]) -> None:
    items = list(range(count))
    chunks = partition(items, batch_size)

    assert [len(chunk) for chunk in chunks] == expected_sizes
    assert [item for chunk in chunks for item in chunk] == items


@pytest.mark.parametrize("batch_size", [0, -1, True, 1.5])
def test_partition_rejects_invalid_batch_size(batch_size) -> None:
    with pytest.raises(ConfigurationError):
        partition([1, 2, 3], batch_size)


def test_split_builds_indexed_batches() -> None:
    request = BulkRequest.create("src", "equity", [("A", "1"), ("B", "2"), ("C", "3")], request_id="req")

    batches = BatchPartitioner().split(request, 2)

    assert [batch.index for batch in batches] == [0, 1]
    assert [[item.isin for item in batch.identifiers] for batch in batches] == [["A", "B"], ["C"]]
    assert all(batch.source_id == "src" and batch.request_id == "req" for batch in batches)
