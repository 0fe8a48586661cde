"""The MySQL dialect."""

from __future__ import annotations

import hashlib
import re
from typing import Any

from ..dialect import (
    CommonDialect,
    Kind,
    StructField,
    current_database_and_table,
    is_byte_array_or_slice,
    parse_field_struct_for_dialect,
    register_dialect,
)

_INDEX_PREFIX_PATTERN = re.compile(r"^(.+)\((\d+)\)$")
_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]+")
_MAX_KEY_NAME_LENGTH = 64
_KEPT_FIELD_PREFIX = 24


class MySQLDialect(CommonDialect):
    """Dialect for MySQL and compatible servers."""

    name = "mysql"

    def quote(self, key: str) -> str:
        """Quote an identifier with backticks."""
        return f"`{key}`"

    def _auto_increment(self, field: StructField, sql_type: str) -> str:
        if self._field_can_auto_increment(field):
            field.tag_set("AUTO_INCREMENT", "AUTO_INCREMENT")
            return f"{sql_type} AUTO_INCREMENT"
        return sql_type

    def data_type_of(self, field: StructField) -> str:
        """Return the MySQL column type for ``field``."""
        info = parse_field_struct_for_dialect(field, self)
        sql_type = info.sql_type
        size = info.size

        # Only one auto increment column is allowed, and it must be a key.
        if field.tag_get("AUTO_INCREMENT") is not None:
            if field.tag_get("INDEX") is None and not field.is_primary_key:
                field.tag_delete("AUTO_INCREMENT")

        if not sql_type:
            kind = info.kind
            if kind is Kind.BOOL:
                sql_type = "boolean"
            elif kind is Kind.INT8:
                sql_type = self._auto_increment(field, "tinyint")
            elif kind in (Kind.INT, Kind.INT16, Kind.INT32):
                sql_type = self._auto_increment(field, "int")
            elif kind is Kind.UINT8:
                sql_type = self._auto_increment(field, "tinyint unsigned")
            elif kind in (Kind.UINT, Kind.UINT16, Kind.UINT32, Kind.UINTPTR):
                sql_type = self._auto_increment(field, "int unsigned")
            elif kind is Kind.INT64:
                sql_type = self._auto_increment(field, "bigint")
            elif kind is Kind.UINT64:
                sql_type = self._auto_increment(field, "bigint unsigned")
            elif kind in (Kind.FLOAT32, Kind.FLOAT64):
                sql_type = "double"
            elif kind is Kind.STRING:
                sql_type = f"varchar({size})" if 0 < size < 65532 else "longtext"
            elif kind is Kind.TIME:
                precision = field.tag_get("PRECISION")
                suffix = f"({precision})" if precision is not None else ""
                if field.tag_get("NOT NULL") is not None or field.is_primary_key:
                    sql_type = f"DATETIME{suffix}"
                else:
                    sql_type = f"DATETIME{suffix} NULL"
            elif is_byte_array_or_slice(kind):
                sql_type = f"varbinary({size})" if 0 < size < 65532 else "longblob"

        if not sql_type:
            raise ValueError(
                f"invalid sql type {info.type_name} ({info.kind.value}) "
                f"in field {field.name} for mysql"
            )

        if not info.additional_type.strip():
            return sql_type
        return f"{sql_type} {info.additional_type}"

    def remove_index(self, table_name: str, index_name: str) -> None:
        """Drop the named index from the table."""
        self.db.exec(f"DROP INDEX {index_name} ON {self.quote(table_name)}")

    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        """Change a column's type."""
        self.db.exec(f"ALTER TABLE {table_name} MODIFY COLUMN {column_name} {typ}")

    def limit_and_offset_sql(self, limit: Any, offset: Any) -> str:
        """Return the LIMIT/OFFSET clause; an offset needs a limit."""
        sql = ""
        if limit is not None:
            parsed_limit = self._parse(limit)
            if parsed_limit >= 0:
                sql += f" LIMIT {parsed_limit}"
                if offset is not None:
                    parsed_offset = self._parse(offset)
                    if parsed_offset >= 0:
                        sql += f" OFFSET {parsed_offset}"
        return sql

    @staticmethod
    def _parse(value: Any) -> int:
        from ..dialect import parse_int

        return parse_int(value)

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        """Tell whether the table has the named foreign key."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS WHERE "
            "CONSTRAINT_SCHEMA=? AND TABLE_NAME=? AND CONSTRAINT_NAME=? "
            "AND CONSTRAINT_TYPE='FOREIGN KEY'",
            database, table, foreign_key_name,
        ) > 0

    def has_table(self, table_name: str) -> bool:
        """Tell whether the table exists; query errors propagate."""
        database, table = current_database_and_table(self, table_name)
        row = self.db.query_row(
            f"SHOW TABLES FROM `{database}` WHERE `Tables_in_{database}` = ?", table
        )
        return row is not None

    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the table has the named index; query errors propagate."""
        database, table = current_database_and_table(self, table_name)
        rows = self.db.query(
            f"SHOW INDEXES FROM `{table}` FROM `{database}` WHERE Key_name = ?", index_name
        )
        return bool(rows)

    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the table has the named column; query errors propagate."""
        database, table = current_database_and_table(self, table_name)
        rows = self.db.query(
            f"SHOW COLUMNS FROM `{table}` FROM `{database}` WHERE Field = ?", column_name
        )
        return bool(rows)

    def current_database(self) -> str:
        """Return the name of the connected database, or ``""``."""
        return self._query_text("SELECT DATABASE()")

    def select_from_dummy_table(self) -> str:
        """Return the dummy table clause MySQL needs."""
        return "FROM DUAL"

    def build_key_name(self, kind: str, table_name: str, *args: str) -> str:
        """Return a key name no longer than MySQL allows.

        Over-long names become the first field's start followed by the
        SHA-1 of the full name.
        """
        key_name = super().build_key_name(kind, table_name, *args)
        if len(key_name) <= _MAX_KEY_NAME_LENGTH:
            return key_name
        digest = hashlib.sha1(key_name.encode("utf-8")).hexdigest()
        prefix = _NON_ALNUM.sub("_", args[0])[:_KEPT_FIELD_PREFIX]
        return f"{prefix}{digest}"

    def normalize_index_and_column(self, index_name: str, column_name: str) -> tuple[str, str]:
        """Move a ``name(length)`` prefix length from the index to the column."""
        match = _INDEX_PREFIX_PATTERN.match(index_name)
        if match is None:
            return index_name, column_name
        return match.group(1), f"{column_name}({match.group(2)})"

    def default_value_str(self) -> str:
        """Return the clause inserting a row of default values."""
        return "VALUES()"


register_dialect("mysql", MySQLDialect)