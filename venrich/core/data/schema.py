"""DuckDB table definitions for the dispatch audit trail."""

from __future__ import annotations

from collections.abc import Sequence  # noqa: TC003
from dataclasses import dataclass

from duckdb import DuckDBPyConnection


@dataclass(frozen=True)
class ColumnDef:
    """Represents a DuckDB table column definition."""

    name: str
    data_type: str
    constraints: Sequence[str] = ()

    def render(self) -> str:
        return " ".join([self.name, self.data_type, *self.constraints])


@dataclass(frozen=True)
class TableSchema:
    """A DuckDB table schema with DDL and insert helpers."""

    name: str
    columns: Sequence[ColumnDef]
    primary_key: Sequence[str] = ()

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def create_ddl(self) -> str:
        column_defs: list[str] = [column.render() for column in self.columns]
        if self.primary_key:
            column_defs.append(f"PRIMARY KEY ({', '.join(self.primary_key)})")
        columns_sql = ",\n                ".join(column_defs)
        return f"""
            CREATE TABLE IF NOT EXISTS {self.name} (
                {columns_sql}
            )
            """.strip()

    def insert_sql(self) -> str:
        placeholders = ", ".join("?" for _ in self.columns)
        return f"INSERT INTO {self.name} ({', '.join(self.column_names)}) VALUES ({placeholders})"

    def ensure(self, conn: DuckDBPyConnection) -> None:
        """Create the table on the provided connection if it does not exist."""

        conn.execute(self.create_ddl())


DISPATCH_AUDIT_TABLE = TableSchema(
    name="dispatch_audit",
    columns=(
        ColumnDef("audit_id", "VARCHAR", ("NOT NULL",)),
        ColumnDef("isin", "VARCHAR", ("NOT NULL",)),
        ColumnDef("figi", "VARCHAR", ("NOT NULL",)),
        ColumnDef("source_id", "VARCHAR", ("NOT NULL",)),
        ColumnDef("product_category", "VARCHAR", ("NOT NULL",)),
        ColumnDef("idempotency_key", "VARCHAR", ("NOT NULL",)),
        ColumnDef("endpoint", "VARCHAR", ("NOT NULL",)),
        ColumnDef("reference", "VARCHAR"),
        ColumnDef("failed_attributes", "VARCHAR[]"),
        ColumnDef("record", "JSON", ("NOT NULL",)),
        ColumnDef("fetched_at", "TIMESTAMP", ("NOT NULL",)),
        ColumnDef("acknowledged_at", "TIMESTAMP", ("NOT NULL",)),
        ColumnDef("recorded_at", "TIMESTAMP", ("NOT NULL",)),
    ),
    primary_key=("audit_id",),
)

ALL_TABLES: tuple[TableSchema, ...] = (DISPATCH_AUDIT_TABLE,)


def ensure_tables(conn: DuckDBPyConnection, tables: Sequence[TableSchema] = ALL_TABLES) -> None:
    """Create every audit table on ``conn``."""
    for table in tables:
        table.ensure(conn)


__all__ = ["ColumnDef", "TableSchema", "DISPATCH_AUDIT_TABLE", "ALL_TABLES", "ensure_tables"]
