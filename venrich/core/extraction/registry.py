"""
Extractor registry mapping product categories to ordered extractor sets.

Extractors are registered at startup; a category's execution order is the
registration order unless an explicit ``order`` or a configured name list
overrides it.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from loguru import logger

from venrich.core.exceptions import ConfigurationError, UnknownCategoryError
from venrich.core.extraction.base import AttributeExtractor
from venrich.core.models import ProductCategory


@dataclass(frozen=True)
class _Entry:
    order: float
    sequence: int
    extractor: AttributeExtractor


class ExtractorRegistry:
    """Registry of attribute extractors per product category."""

    def __init__(self) -> None:
        self._entries: dict[ProductCategory, list[_Entry]] = {}
        self._sequence = 0
        self._frozen = False

    def register(
        self,
        category: ProductCategory | str,
        extractor: AttributeExtractor,
        *,
        order: float | None = None,
    ) -> None:
        """
        Register ``extractor`` under ``category``.

        Args:
            category: Product category the extractor applies to
            extractor: The extractor instance
            order: Explicit position; defaults to the registration position

        Raises:
            ConfigurationError: When frozen, or the attribute/extractor name is taken
        """
        if self._frozen:
            raise ConfigurationError("Extractor registry is frozen", config_key="extractors")
        if not isinstance(extractor, AttributeExtractor):
            raise ConfigurationError(
                "Extractor must implement AttributeExtractor",
                config_key="extractors",
                details={"extractor_class": type(extractor).__name__},
            )
        resolved = ProductCategory.parse(category)
        entries = self._entries.setdefault(resolved, [])
        for entry in entries:
            if entry.extractor.attribute == extractor.attribute:
                raise ConfigurationError(
                    f"Attribute {extractor.attribute} already produced by {entry.extractor.name} "
                    f"in category {resolved.value}",
                    config_key="extractors",
                )
            if entry.extractor.name == extractor.name:
                raise ConfigurationError(
                    f"Extractor {extractor.name} already registered in category {resolved.value}",
                    config_key="extractors",
                )

        self._sequence += 1
        entries.append(_Entry(order if order is not None else float(self._sequence), self._sequence, extractor))
        logger.debug("Registered extractor", category=resolved.value, extractor=extractor.name)

    def extractors_for(self, category: ProductCategory | str) -> tuple[AttributeExtractor, ...]:
        """
        Return the category's extractors in execution order.

        Raises:
            UnknownCategoryError: When no extractor is registered for the category
        """
        resolved = ProductCategory.parse(category)
        entries = self._entries.get(resolved)
        if not entries:
            raise UnknownCategoryError(resolved.value, details={"reason": "no extractors registered"})
        return tuple(entry.extractor for entry in sorted(entries, key=lambda e: (e.order, e.sequence)))

    def reorder(self, category: ProductCategory | str, names: Sequence[str]) -> None:
        """Put the named extractors first, in the given order; others keep their relative order."""
        if self._frozen:
            raise ConfigurationError("Extractor registry is frozen", config_key="extractor_order")
        current = list(self.extractors_for(category))
        by_name = {extractor.name: extractor for extractor in current}
        unknown = [name for name in names if name not in by_name]
        if unknown:
            raise ConfigurationError(
                f"Unknown extractors in configured order: {', '.join(unknown)}",
                config_key="extractor_order",
            )
        listed = [by_name[name] for name in dict.fromkeys(names)]
        ordered = listed + [extractor for extractor in current if extractor not in listed]
        resolved = ProductCategory.parse(category)
        self._entries[resolved] = [
            _Entry(float(position), position, extractor) for position, extractor in enumerate(ordered)
        ]

    def apply_order(self, extractor_order: Mapping[str, Sequence[str]]) -> None:
        """Apply a configuration-defined order for each listed category."""
        for category, names in extractor_order.items():
            try:
                self.reorder(category, names)
            except UnknownCategoryError as exc:
                raise ConfigurationError(
                    f"Configured extractor order names an unknown category: {category}",
                    config_key=f"extractor_order.{category}",
                ) from exc

    def categories(self) -> tuple[ProductCategory, ...]:
        return tuple(category for category, entries in self._entries.items() if entries)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen


__all__ = ["ExtractorRegistry"]
