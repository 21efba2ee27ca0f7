"""Structural validation of unified records before dispatch."""

from __future__ import annotations

from collections.abc import Iterable

from venrich.core.exceptions import RecordValidationError
from venrich.core.models import AttributeStatus, ProductCategory, UnifiedRecord
from venrich.core.models.record import is_empty_value


class ValidationGate:
    """Stateless gate between extraction and dispatch.

    A record passes when:

    - ISIN and FIGI are non-empty
    - its product category is one the gate knows
    - at least one attribute was produced (SUCCESS or DEGRADED)
    - no required attribute FAILED
    - no produced attribute carries an empty value

    The gate never mutates the record.
    """

    def __init__(self, categories: Iterable[ProductCategory] | None = None) -> None:
        self.categories = frozenset(categories) if categories is not None else frozenset(ProductCategory)

    def inspect(self, record: UnifiedRecord) -> list[str]:
        """Return every violation found in ``record``; empty when it is valid."""
        violations: list[str] = []
        identifier = record.identifier
        if not identifier.isin or not identifier.isin.strip():
            violations.append("isin is empty")
        if not identifier.figi or not identifier.figi.strip():
            violations.append("figi is empty")
        if record.product_category not in self.categories:
            category = getattr(record.product_category, "value", record.product_category)
            violations.append(f"unknown product category {category}")

        attributes = record.attributes
        if not any(value.is_produced for value in attributes.values()):
            violations.append("no attribute was produced")

        for name, value in attributes.items():
            if value.status is AttributeStatus.FAILED:
                if value.required:
                    violations.append(f"required attribute {name} failed: {value.reason}")
            elif is_empty_value(value.value):
                violations.append(f"attribute {name} has an empty value")
        return violations

    def validate(self, record: UnifiedRecord) -> None:
        """
        Raises:
            RecordValidationError: listing every violation
        """
        violations = self.inspect(record)
        if violations:
            raise RecordValidationError(violations, details={"isin": record.identifier.isin})


__all__ = ["ValidationGate"]
