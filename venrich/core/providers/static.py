"""Static analytics provider serving fixed per-instrument payloads."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from venrich.core.exceptions import ConfigurationError
from venrich.core.models import Batch, InstrumentIdentifier, RawResponse
from venrich.core.providers.base import AnalyticsProvider


def _utc_now() -> datetime:
    return datetime.now(UTC)


class StaticAnalyticsProvider(AnalyticsProvider):
    """Provider backed by an in-memory mapping of ISIN or FIGI to canonical payload.

    A FIGI key addresses one listing and wins over an ISIN key, which covers
    every listing of that ISIN. Instruments without a payload are simply
    absent from the response.
    """

    def __init__(
        self,
        payloads: Mapping[str, Mapping[str, Any]],
        *,
        name: str = "static",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._payloads = {key: dict(payload) for key, payload in payloads.items()}
        self._name = name
        self._clock = clock

    @classmethod
    def from_json_file(cls, path: str | Path, **kwargs: Any) -> StaticAnalyticsProvider:
        """Load payloads from a JSON object keyed by ISIN or FIGI."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigurationError(f"Cannot load fixtures from {path}: {exc}", config_key="fixtures") from exc
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                "Fixture file must contain a JSON object keyed by ISIN or FIGI", config_key="fixtures"
            )
        return cls(data, **kwargs)

    @property
    def name(self) -> str:
        return self._name

    @property
    def endpoint(self) -> str:
        return f"static://{self._name}"

    async def fetch(self, batch: Batch) -> RawResponse:
        payloads: dict[InstrumentIdentifier, Mapping[str, Any]] = {}
        for identifier in batch.identifiers:
            payload = self._payloads.get(identifier.figi, self._payloads.get(identifier.isin))
            if payload is not None:
                payloads[identifier] = payload
        return RawResponse(
            source_id=batch.source_id,
            batch_fingerprint=batch.fingerprint,
            fetched_at=self._clock(),
            payloads=payloads,
        )


__all__ = ["StaticAnalyticsProvider"]
