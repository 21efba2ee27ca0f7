"""DuckDB storage helpers."""

from venrich.core.data.duckdb_factory import DuckDBFactory, DuckDBFactoryConfig
from venrich.core.data.schema import ALL_TABLES, DISPATCH_AUDIT_TABLE, ColumnDef, TableSchema, ensure_tables

__all__ = [
    "ALL_TABLES",
    "DISPATCH_AUDIT_TABLE",
    "ColumnDef",
    "DuckDBFactory",
    "DuckDBFactoryConfig",
    "TableSchema",
    "ensure_tables",
]
