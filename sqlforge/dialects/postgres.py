"""The PostgreSQL dialect and its hstore and jsonb value types."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Sequence

from ..dialect import (
    CommonDialect,
    Kind,
    StructField,
    is_byte_array_or_slice,
    parse_field_struct_for_dialect,
    register_dialect,
)

_QUOTED = r'"((?:[^"\\]|\\.)*)"'
_HSTORE_PAIR = re.compile(
    rf"\s*{_QUOTED}\s*=>\s*(?:{_QUOTED}|(NULL))\s*(?:,|$)", re.IGNORECASE | re.DOTALL
)
_ESCAPED = re.compile(r"\\(.)", re.DOTALL)

# Column types a Jsonb value asks for, by dialect name; others decide for themselves.
_JSONB_COLUMN_TYPES = {"postgres": "jsonb"}


def _is_uuid(kind: Kind, type_name: str, array_len: int | None) -> bool:
    if kind not in (Kind.ARRAY, Kind.BYTE_ARRAY) or array_len != 16:
        return False
    return type_name.lower() in ("uuid", "guid")


class PostgresDialect(CommonDialect):
    """Dialect for PostgreSQL."""

    name = "postgres"

    def bind_var(self, i: int) -> str:
        """Return the numbered placeholder ``$i``."""
        return f"${i}"

    def _auto_increment(self, field: StructField, serial: str, plain: str) -> str:
        if self._field_can_auto_increment(field):
            field.tag_set("AUTO_INCREMENT", "AUTO_INCREMENT")
            return serial
        return plain

    def data_type_of(self, field: StructField) -> str:
        """Return the PostgreSQL column type for ``field``."""
        info = parse_field_struct_for_dialect(field, self)
        sql_type = info.sql_type
        size = info.size

        if not sql_type:
            kind = info.kind
            if kind is Kind.BOOL:
                sql_type = "boolean"
            elif kind in (Kind.INT, Kind.INT8, Kind.INT16, Kind.INT32, Kind.UINT,
                          Kind.UINT8, Kind.UINT16, Kind.UINTPTR):
                sql_type = self._auto_increment(field, "serial", "integer")
            elif kind in (Kind.INT64, Kind.UINT32, Kind.UINT64):
                sql_type = self._auto_increment(field, "bigserial", "bigint")
            elif kind in (Kind.FLOAT32, Kind.FLOAT64):
                sql_type = "numeric"
            elif kind is Kind.STRING:
                # Without an explicit size, text costs nothing more than varchar.
                if field.tag_get("SIZE") is None:
                    size = 0
                sql_type = f"varchar({size})" if 0 < size < 65532 else "text"
            elif kind is Kind.TIME:
                sql_type = "timestamp with time zone"
            elif kind is Kind.MAP:
                if info.type_name == "Hstore":
                    sql_type = "hstore"
            elif is_byte_array_or_slice(kind):
                sql_type = "bytea"
                if _is_uuid(kind, info.type_name, info.array_len):
                    sql_type = "uuid"
                if info.type_name == "RawMessage":
                    sql_type = "jsonb"

        if not sql_type:
            raise ValueError(
                f"invalid sql type {info.type_name} ({info.kind.value}) for postgres"
            )

        if not info.additional_type.strip():
            return sql_type
        return f"{sql_type} {info.additional_type}"

    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the table has the named index in the current schema."""
        return self._query_count(
            "SELECT count(*) FROM pg_indexes WHERE tablename = $1 AND indexname = $2 "
            "AND schemaname = CURRENT_SCHEMA()",
            table_name, index_name,
        ) > 0

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        """Tell whether the table has the named foreign key."""
        return self._query_count(
            "SELECT count(con.conname) FROM pg_constraint con WHERE $1::regclass::oid = "
            "con.conrelid AND con.conname = $2 AND con.contype='f'",
            table_name, foreign_key_name,
        ) > 0

    def has_table(self, table_name: str) -> bool:
        """Tell whether the table exists in the current schema."""
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.tables WHERE table_name = $1 AND "
            "table_type = 'BASE TABLE' AND table_schema = CURRENT_SCHEMA()",
            table_name,
        ) > 0

    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the table has the named column in the current schema."""
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.columns WHERE table_name = $1 AND "
            "column_name = $2 AND table_schema = CURRENT_SCHEMA()",
            table_name, column_name,
        ) > 0

    def current_database(self) -> str:
        """Return the name of the connected database, or ``""``."""
        return self._query_text("SELECT CURRENT_DATABASE()")

    def last_insert_id_output_interstitial(
        self, table_name: str, column_name: str, columns: Sequence[str]
    ) -> str:
        """PostgreSQL needs nothing before VALUES."""
        return ""

    def last_insert_id_returning_suffix(self, table_name: str, column_name: str) -> str:
        """Return the RETURNING clause giving the inserted id."""
        return f"RETURNING {table_name}.{column_name}"

    def supports_last_insert_id(self) -> bool:
        """PostgreSQL does not report a last insert id."""
        return False


def _hstore_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _hstore_unquote(text: str) -> str:
    return _ESCAPED.sub(r"\1", text)


class Hstore(dict):
    """A PostgreSQL hstore value: text keys mapped to text or ``None``."""

    def value(self) -> bytes | None:
        """Encode as hstore text, or ``None`` when empty."""
        if not self:
            return None
        parts = [
            _hstore_quote(key) + "=>" + ("NULL" if val is None else _hstore_quote(val))
            for key, val in self.items()
        ]
        return ",".join(parts).encode("utf-8")

    def scan(self, raw: Any) -> None:
        """Fill from hstore text; an empty value leaves the mapping unchanged."""
        if raw is None:
            return
        if isinstance(raw, (bytes, bytearray, memoryview)):
            text = bytes(raw).decode("utf-8")
        elif isinstance(raw, str):
            text = raw
        else:
            raise TypeError(f"cannot scan {type(raw).__name__} into Hstore")

        parsed: dict[str, str | None] = {}
        pos = 0
        text = text.strip()
        while pos < len(text):
            match = _HSTORE_PAIR.match(text, pos)
            if match is None or match.end() == pos:
                raise ValueError(f"malformed hstore value at offset {pos}: {text!r}")
            key, quoted, _null = match.groups()
            parsed[_hstore_unquote(key)] = None if quoted is None else _hstore_unquote(quoted)
            pos = match.end()

        if not parsed:
            return
        self.clear()
        self.update(parsed)


@dataclass
class Jsonb:
    """A PostgreSQL JSONB value kept as raw JSON bytes."""

    raw: bytes = b""

    scan_kind = Kind.BYTES

    @classmethod
    def gorm_data_type(cls, dialect: Any) -> str:
        """Look up the column type for ``dialect``; ``""`` lets the dialect decide."""
        dialect_name = getattr(dialect, "name", "")
        return _JSONB_COLUMN_TYPES.get(dialect_name, "")

    def value(self) -> bytes | None:
        """Return the raw JSON, or ``None`` when empty."""
        if not self.raw:
            return None
        return bytes(self.raw)

    def scan(self, raw: Any) -> None:
        """Take raw JSON bytes, checking that they are valid JSON."""
        if not isinstance(raw, (bytes, bytearray, memoryview)):
            raise TypeError(f"Failed to unmarshal JSONB value:{raw}")
        data = bytes(raw)
        try:
            json.loads(data)
        except ValueError as exc:
            raise ValueError(f"invalid JSON: {exc}") from exc
        self.raw = data


register_dialect("postgres", PostgresDialect)
register_dialect("cloudsqlpostgres", PostgresDialect)