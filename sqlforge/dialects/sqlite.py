"""The SQLite dialect."""

from __future__ import annotations

from ..dialect import (
    CommonDialect,
    Kind,
    StructField,
    is_byte_array_or_slice,
    parse_field_struct_for_dialect,
    register_dialect,
)


class SQLiteDialect(CommonDialect):
    """Dialect for SQLite databases."""

    name = "sqlite3"

    def _auto_increment(self, field: StructField, plain: str) -> str:
        if self._field_can_auto_increment(field):
            field.tag_set("AUTO_INCREMENT", "AUTO_INCREMENT")
            return "integer primary key autoincrement"
        return plain

    def data_type_of(self, field: StructField) -> str:
        """Return the SQLite column type for ``field``."""
        info = parse_field_struct_for_dialect(field, self)
        sql_type = info.sql_type
        size = info.size

        if not sql_type:
            kind = info.kind
            if kind is Kind.BOOL:
                sql_type = "bool"
            elif kind in (Kind.INT, Kind.INT8, Kind.INT16, Kind.INT32, Kind.UINT,
                          Kind.UINT8, Kind.UINT16, Kind.UINT32, Kind.UINTPTR):
                sql_type = self._auto_increment(field, "integer")
            elif kind in (Kind.INT64, Kind.UINT64):
                sql_type = self._auto_increment(field, "bigint")
            elif kind in (Kind.FLOAT32, Kind.FLOAT64):
                sql_type = "real"
            elif kind is Kind.STRING:
                sql_type = f"varchar({size})" if 0 < size < 65532 else "text"
            elif kind is Kind.TIME:
                sql_type = "datetime"
            elif is_byte_array_or_slice(kind):
                sql_type = "blob"

        if not sql_type:
            raise ValueError(
                f"invalid sql type {info.type_name} ({info.kind.value}) for sqlite3"
            )

        if not info.additional_type.strip():
            return sql_type
        return f"{sql_type} {info.additional_type}"

    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the table has the named index."""
        return self._query_count(
            f"SELECT count(*) FROM sqlite_master WHERE tbl_name = ? "
            f"AND sql LIKE '%INDEX {index_name} ON%'",
            table_name,
        ) > 0

    def has_table(self, table_name: str) -> bool:
        """Tell whether the table exists."""
        return self._query_count(
            "SELECT count(*) FROM sqlite_master WHERE type='table' AND name=?", table_name
        ) > 0

    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the table has the named column."""
        return self._query_count(
            f"SELECT count(*) FROM sqlite_master WHERE tbl_name = ? AND "
            f"(sql LIKE '%\"{column_name}\" %' OR sql LIKE '%{column_name} %');\n",
            table_name,
        ) > 0

    def current_database(self) -> str:
        """Return the name of the first attached database, or ``""``."""
        try:
            row = self.db.query_row("PRAGMA database_list")
        except Exception:
            return ""
        if not row or len(row) < 2 or row[1] is None:
            return ""
        return str(row[1])


register_dialect("sqlite3", SQLiteDialect)