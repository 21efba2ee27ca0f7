"""缓存键生成."""

from venrich.core.models.instrument import Batch


class BatchCacheKey:
    """批次响应缓存键: (数据源, 产品类别, 标识集合指纹).

    The category is part of the key because providers may shape their
    upstream request by category.
    """

    def __init__(self, source_id: str, batch: Batch):
        self.source_id = source_id
        self.category = batch.product_category.value
        self.fingerprint = batch.fingerprint
        self.key = f"{source_id}|{self.category}|{self.fingerprint}"

    def __str__(self) -> str:
        return self.key

    def __repr__(self) -> str:
        return (
            f"BatchCacheKey(source_id={self.source_id}, category={self.category}, "
            f"fingerprint={self.fingerprint[:16]})"
        )
