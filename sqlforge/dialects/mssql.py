"""The Microsoft SQL Server dialect and its JSON value type."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Sequence

from ..dialect import (
    CommonDialect,
    Kind,
    SQLCommon,
    StructField,
    current_database_and_table,
    is_byte_array_or_slice,
    parse_field_struct_for_dialect,
    parse_int,
    register_dialect,
)

_MAX_SIZED = 8000


class MSSQLDialect(CommonDialect):
    """Dialect for Microsoft SQL Server."""

    name = "mssql"

    def set_db(self, db: SQLCommon) -> None:
        """Use ``db`` for the dialect's own queries."""
        self.db = db

    def bind_var(self, i: int) -> str:
        """Return the placeholder for the ``i``-th bound value."""
        return "$$$"

    def quote(self, key: str) -> str:
        """Quote an identifier with square brackets."""
        return f"[{key}]"

    def _field_can_auto_increment(self, field: StructField) -> bool:
        value = field.tag_get("AUTO_INCREMENT")
        if value is not None:
            return value != "FALSE"
        return field.is_primary_key

    def _identity(self, field: StructField, plain: str) -> str:
        if self._field_can_auto_increment(field):
            field.tag_set("AUTO_INCREMENT", "AUTO_INCREMENT")
            return f"{plain} IDENTITY(1,1)"
        return plain

    def data_type_of(self, field: StructField) -> str:
        """Return the SQL Server column type for ``field``."""
        info = parse_field_struct_for_dialect(field, self)
        sql_type = info.sql_type
        size = info.size

        if not sql_type:
            kind = info.kind
            if kind is Kind.BOOL:
                sql_type = "bit"
            elif kind in (Kind.INT, Kind.INT8, Kind.INT16, Kind.INT32, Kind.UINT,
                          Kind.UINT8, Kind.UINT16, Kind.UINT32, Kind.UINTPTR):
                sql_type = self._identity(field, "int")
            elif kind in (Kind.INT64, Kind.UINT64):
                sql_type = self._identity(field, "bigint")
            elif kind in (Kind.FLOAT32, Kind.FLOAT64):
                sql_type = "float"
            elif kind is Kind.STRING:
                sql_type = f"nvarchar({size})" if 0 < size < _MAX_SIZED else "nvarchar(max)"
            elif kind is Kind.TIME:
                sql_type = "datetimeoffset"
            elif is_byte_array_or_slice(kind):
                sql_type = f"varbinary({size})" if 0 < size < _MAX_SIZED else "varbinary(max)"

        if not sql_type:
            raise ValueError(
                f"invalid sql type {info.type_name} ({info.kind.value}) for mssql"
            )

        if not info.additional_type.strip():
            return sql_type
        return f"{sql_type} {info.additional_type}"

    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the table has the named index."""
        return self._query_count(
            "SELECT count(*) FROM sys.indexes WHERE name=? AND object_id=OBJECT_ID(?)",
            index_name, table_name,
        ) > 0

    def remove_index(self, table_name: str, index_name: str) -> None:
        """Drop the named index from the table."""
        self.db.exec(f"DROP INDEX {index_name} ON {self.quote(table_name)}")

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        """Tell whether the table has the named foreign key."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) \n"
            "\tFROM sys.foreign_keys as F inner join sys.tables as T on "
            "F.parent_object_id=T.object_id \n"
            "\t\tinner join information_schema.tables as I on I.TABLE_NAME = T.name \n"
            "\tWHERE F.name = ? \n"
            "\t\tAND T.Name = ? AND I.TABLE_CATALOG = ?;",
            foreign_key_name, table, database,
        ) > 0

    def has_table(self, table_name: str) -> bool:
        """Tell whether the table exists in the current catalog."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.tables WHERE table_name = ? "
            "AND table_catalog = ?",
            table, database,
        ) > 0

    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the table has the named column."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM information_schema.columns WHERE table_catalog = ? "
            "AND table_name = ? AND column_name = ?",
            database, table, column_name,
        ) > 0

    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        """Change a column's type."""
        self.db.exec(f"ALTER TABLE {table_name} ALTER COLUMN {column_name} {typ}")

    def current_database(self) -> str:
        """Return the name of the connected database, or ``""``."""
        return self._query_text("SELECT DB_NAME() AS [Current Database]")

    def limit_and_offset_sql(self, limit: Any, offset: Any) -> str:
        """Return the OFFSET/FETCH clause; a limit alone gets a zero offset."""
        sql = ""
        if offset is not None:
            parsed_offset = parse_int(offset)
            if parsed_offset >= 0:
                sql += f" OFFSET {parsed_offset} ROWS"
        if limit is not None:
            parsed_limit = parse_int(limit)
            if parsed_limit >= 0:
                if not sql:
                    sql += " OFFSET 0 ROWS"
                sql += f" FETCH NEXT {parsed_limit} ROWS ONLY"
        return sql

    def select_from_dummy_table(self) -> str:
        """SQL Server needs no dummy table."""
        return ""

    def last_insert_id_output_interstitial(
        self, table_name: str, column_name: str, columns: Sequence[str]
    ) -> str:
        """Return the OUTPUT clause giving the inserted id, if anything is inserted."""
        if not columns:
            return ""
        return f"OUTPUT Inserted.{column_name}"

    def last_insert_id_returning_suffix(self, table_name: str, column_name: str) -> str:
        """Return the statement suffix that selects the inserted identity."""
        return "; SELECT SCOPE_IDENTITY()"

    def default_value_str(self) -> str:
        """Return the clause inserting a row of default values."""
        return "DEFAULT VALUES"

    def normalize_index_and_column(self, index_name: str, column_name: str) -> tuple[str, str]:
        """Return the index and column names unchanged."""
        return index_name, column_name


@dataclass
class JSON:
    """JSON data stored in a character column, kept as raw JSON bytes."""

    raw: bytes = b""

    scan_kind = Kind.BYTES

    def value(self) -> bytes | None:
        """Return the raw JSON, or ``None`` when empty."""
        if not self.raw:
            return None
        return bytes(self.raw)

    def scan(self, raw: Any) -> None:
        """Take JSON text, checking that it is valid JSON."""
        if not isinstance(raw, str):
            raise TypeError(f"Failed to unmarshal JSONB value (strcast):{raw}")
        data = raw.encode("utf-8")
        try:
            json.loads(data)
        except ValueError as exc:
            raise ValueError(f"invalid JSON: {exc}") from exc
        self.raw = data


register_dialect("mssql", MSSQLDialect)