"""Product category enums."""

from enum import Enum

from venrich.core.exceptions import UnknownCategoryError


class ProductCategory(str, Enum):
    """产品类别枚举, 决定适用的属性提取器."""

    FIXED_INCOME = "fixed_income"
    EQUITY = "equity"
    HEDGE_FUND = "hedge_fund"

    @classmethod
    def parse(cls, value: "ProductCategory | str") -> "ProductCategory":
        """Resolve a category from its value, raising UnknownCategoryError."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError as exc:
            raise UnknownCategoryError(str(value)) from exc
