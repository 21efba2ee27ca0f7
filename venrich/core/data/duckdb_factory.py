"""Helpers for creating configured DuckDB connections."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

import duckdb
from duckdb import DuckDBPyConnection


@dataclass(frozen=True)
class DuckDBFactoryConfig:
    """Settings applied to every connection the factory creates."""

    database: str | Path = ":memory:"
    read_only: bool = False
    pragmas: Mapping[str, object] = field(default_factory=lambda: {"threads": 1})


class DuckDBFactory:
    """Yields configured DuckDB connections for the audit store."""

    def __init__(self, config: DuckDBFactoryConfig | None = None) -> None:
        self._config = config or DuckDBFactoryConfig()

    @property
    def database(self) -> str:
        return str(self._config.database)

    def create_connection(self) -> DuckDBPyConnection:
        database = self.database
        if database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        conn = duckdb.connect(database=database, read_only=self._config.read_only)
        for setting, value in self._config.pragmas.items():
            literal = f"'{value}'" if isinstance(value, str) else value
            conn.execute(f"SET {setting} = {literal}")
        return conn

    @contextmanager
    def connection(self) -> Iterator[DuckDBPyConnection]:
        conn = self.create_connection()
        try:
            yield conn
        finally:
            conn.close()


__all__ = ["DuckDBFactory", "DuckDBFactoryConfig"]
