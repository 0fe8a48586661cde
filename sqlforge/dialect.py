"""SQL dialect support: field type descriptions, the common dialect and the registry."""

from __future__ import annotations

import re
from dataclasses import dataclass
from dataclasses import field as dc_field
from datetime import date, datetime
from enum import Enum
from typing import Any, Protocol, Sequence

_KEY_NAME_PATTERN = re.compile(r"[^a-zA-Z0-9]+")
_ATOI_PATTERN = re.compile(r"[+-]?\d+")
_INT64_LIMIT = 1 << 63


class SQLCommon(Protocol):
    """The minimal connection behaviour the dialects need."""

    def exec(self, query: str, *args: Any) -> Any: ...

    def query(self, query: str, *args: Any) -> Sequence[Sequence[Any]]: ...

    def query_row(self, query: str, *args: Any) -> Sequence[Any] | None: ...


class SQLTransaction(Protocol):
    """A running transaction."""

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class DBAPIConnection:
    """Adapts a DB-API 2.0 connection to the :class:`SQLCommon` protocol."""

    def __init__(self, connection: Any) -> None:
        self.connection = connection

    def exec(self, query: str, *args: Any) -> Any:
        """Run a statement and return its cursor."""
        cursor = self.connection.cursor()
        cursor.execute(query, args)
        return cursor

    def query(self, query: str, *args: Any) -> list[Sequence[Any]]:
        """Run a query and return every row."""
        cursor = self.connection.cursor()
        cursor.execute(query, args)
        return list(cursor.fetchall())

    def query_row(self, query: str, *args: Any) -> Sequence[Any] | None:
        """Run a query and return its first row, or ``None``."""
        cursor = self.connection.cursor()
        cursor.execute(query, args)
        return cursor.fetchone()


class Kind(Enum):
    """The storage kind of a model field's value."""

    BOOL = "bool"
    INT = "int"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    UINTPTR = "uintptr"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    STRING = "string"
    TIME = "time"
    STRUCT = "struct"
    BYTES = "bytes"
    BYTE_ARRAY = "byte_array"
    SLICE = "slice"
    ARRAY = "array"
    MAP = "map"

    @classmethod
    def from_type(cls, py_type: type) -> "Kind":
        """Guess the kind that a Python type is stored as."""
        if issubclass(py_type, bool):
            return cls.BOOL
        if issubclass(py_type, int):
            return cls.INT64
        if issubclass(py_type, float):
            return cls.FLOAT64
        if issubclass(py_type, str):
            return cls.STRING
        if issubclass(py_type, (bytes, bytearray)):
            return cls.BYTES
        if issubclass(py_type, (datetime, date)):
            return cls.TIME
        if issubclass(py_type, dict):
            return cls.MAP
        if issubclass(py_type, (list, tuple)):
            return cls.SLICE
        return cls.STRUCT


def is_byte_array_or_slice(kind: Kind) -> bool:
    """Tell whether ``kind`` is a byte slice or a byte array."""
    return kind in (Kind.BYTES, Kind.BYTE_ARRAY)


@dataclass
class StructField:
    """Description of one column-backed field of a model.

    ``py_type`` may define a ``gorm_data_type(dialect)`` classmethod giving
    the column type, or, for a scanner wrapping one value, a ``scan`` method
    together with a ``scan_kind`` attribute naming the wrapped value's kind.
    """

    name: str = ""
    db_name: str = ""
    kind: Kind | None = None
    py_type: type | None = None
    type_name: str = ""
    array_len: int | None = None
    is_primary_key: bool = False
    is_normal: bool = False
    is_ignored: bool = False
    is_foreign_key: bool = False
    has_default_value: bool = False
    tag_settings: dict[str, str] = dc_field(default_factory=dict)

    def __post_init__(self) -> None:
        self.tag_settings = {k.upper(): v for k, v in self.tag_settings.items()}
        if self.kind is None:
            self.kind = Kind.from_type(self.py_type) if self.py_type is not None else Kind.STRUCT
        if not self.type_name and self.py_type is not None:
            self.type_name = self.py_type.__name__

    def tag_get(self, key: str) -> str | None:
        """Return the tag setting ``key``, or ``None`` when it is absent."""
        return self.tag_settings.get(key.upper())

    def tag_set(self, key: str, value: str) -> None:
        """Set the tag setting ``key``."""
        self.tag_settings[key.upper()] = value

    def tag_delete(self, key: str) -> None:
        """Remove the tag setting ``key`` if present."""
        self.tag_settings.pop(key.upper(), None)


@dataclass
class FieldType:
    """What a dialect needs to know to choose a field's column type."""

    kind: Kind
    type_name: str
    array_len: int | None
    sql_type: str
    size: int
    additional_type: str


def parse_field_struct_for_dialect(field: StructField, dialect: Any) -> FieldType:
    """Work out a field's explicit SQL type, size and extra column options."""
    data_type = field.tag_get("TYPE") or ""
    kind = field.kind if field.kind is not None else Kind.STRUCT
    type_name = field.type_name
    array_len = field.array_len
    py_type = field.py_type

    if py_type is not None:
        hook = getattr(py_type, "gorm_data_type", None)
        if callable(hook):
            data_type = hook(dialect)

    if not data_type and py_type is not None and kind is Kind.STRUCT:
        scan_kind = getattr(py_type, "scan_kind", None)
        if callable(getattr(py_type, "scan", None)) and isinstance(scan_kind, Kind):
            kind = scan_kind
            type_name = ""
            array_len = None

    size_tag = field.tag_get("SIZE")
    if size_tag is not None:
        size = int(size_tag) if _ATOI_PATTERN.fullmatch(size_tag) else 0
    else:
        size = 255

    additional = f"{field.tag_get('NOT NULL') or ''} {field.tag_get('UNIQUE') or ''}"
    default = field.tag_get("DEFAULT")
    if default is not None:
        additional += " DEFAULT " + default
    comment = field.tag_get("COMMENT")
    if comment is not None and dialect.name != "sqlite3":
        additional += " COMMENT " + comment

    return FieldType(kind, type_name, array_len, data_type, size, additional.strip())


def parse_int(value: Any) -> int:
    """Parse ``value``'s text as a 64-bit integer, honouring 0x, 0o, 0b and 0 prefixes."""
    text = str(value)
    body = text[1:] if text[:1] in ("+", "-") else text
    sign = text[:1] if text[:1] in ("+", "-") else ""
    if not body or any(ch.isspace() for ch in text):
        raise ValueError(f"invalid syntax: {text!r}")
    if len(body) > 1 and body[0] == "0" and body[1] not in "xXbBoO":
        body = "0o" + body[1:]
    try:
        number = int(sign + body, 0)
    except ValueError:
        raise ValueError(f"invalid syntax: {text!r}") from None
    if not -_INT64_LIMIT <= number < _INT64_LIMIT:
        raise ValueError(f"value out of range: {text!r}")
    return number


class DefaultForeignKeyNamer:
    """Builds key names from a kind, a table and fields."""

    def build_key_name(self, kind: str, table_name: str, *args: str) -> str:
        """Return a key name with every run of non-alphanumerics made ``_``."""
        key_name = f"{kind}_{table_name}_{'_'.join(args)}"
        return _KEY_NAME_PATTERN.sub("_", key_name)


class CommonDialect(DefaultForeignKeyNamer):
    """The dialect used for databases without a dedicated one."""

    name = "common"

    def __init__(self, db: SQLCommon | None = None) -> None:
        self.db = db

    def set_db(self, db: SQLCommon) -> None:
        """Use ``db`` for the dialect's own queries."""
        self.db = db

    def bind_var(self, i: int) -> str:
        """Return the placeholder for the ``i``-th bound value."""
        return "$$$"

    def quote(self, key: str) -> str:
        """Quote an identifier."""
        return f'"{key}"'

    def _field_can_auto_increment(self, field: StructField) -> bool:
        value = field.tag_get("AUTO_INCREMENT")
        if value is not None:
            return value.lower() != "false"
        return field.is_primary_key

    def data_type_of(self, field: StructField) -> str:
        """Return the column type for ``field``."""
        info = parse_field_struct_for_dialect(field, self)
        sql_type = info.sql_type
        size = info.size

        if not sql_type:
            kind = info.kind
            if kind is Kind.BOOL:
                sql_type = "BOOLEAN"
            elif kind in (Kind.INT, Kind.INT8, Kind.INT16, Kind.INT32, Kind.UINT,
                          Kind.UINT8, Kind.UINT16, Kind.UINT32, Kind.UINTPTR):
                sql_type = "INTEGER AUTO_INCREMENT" if self._field_can_auto_increment(field) else "INTEGER"
            elif kind in (Kind.INT64, Kind.UINT64):
                sql_type = "BIGINT AUTO_INCREMENT" if self._field_can_auto_increment(field) else "BIGINT"
            elif kind in (Kind.FLOAT32, Kind.FLOAT64):
                sql_type = "FLOAT"
            elif kind is Kind.STRING:
                sql_type = f"VARCHAR({size})" if 0 < size < 65532 else "VARCHAR(65532)"
            elif kind is Kind.TIME:
                sql_type = "TIMESTAMP"
            elif kind is Kind.BYTES:
                sql_type = f"BINARY({size})" if 0 < size < 65532 else "BINARY(65532)"

        if not sql_type:
            raise ValueError(
                f"invalid sql type {info.type_name} ({info.kind.value}) for commonDialect"
            )

        if not info.additional_type.strip():
            return sql_type
        return f"{sql_type} {info.additional_type}"

    def _query_count(self, query: str, *args: Any) -> int:
        try:
            row = self.db.query_row(query, *args)
        except Exception:
            return 0
        if not row:
            return 0
        try:
            return int(row[0])
        except (TypeError, ValueError):
            return 0

    def _query_text(self, query: str, *args: Any) -> str:
        try:
            row = self.db.query_row(query, *args)
        except Exception:
            return ""
        if not row or row[0] is None:
            return ""
        return str(row[0])

    def has_index(self, table_name: str, index_name: str) -> bool:
        """Tell whether the table has the named index."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.STATISTICS WHERE table_schema = ? "
            "AND table_name = ? AND index_name = ?",
            database, table, index_name,
        ) > 0

    def has_foreign_key(self, table_name: str, foreign_key_name: str) -> bool:
        """Tell whether the table has the named foreign key; never known here."""
        return False

    def remove_index(self, table_name: str, index_name: str) -> None:
        """Drop the named index."""
        self.db.exec(f"DROP INDEX {index_name}")

    def has_table(self, table_name: str) -> bool:
        """Tell whether the table exists."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.TABLES WHERE table_schema = ? AND table_name = ?",
            database, table,
        ) > 0

    def has_column(self, table_name: str, column_name: str) -> bool:
        """Tell whether the table has the named column."""
        database, table = current_database_and_table(self, table_name)
        return self._query_count(
            "SELECT count(*) FROM INFORMATION_SCHEMA.COLUMNS WHERE table_schema = ? "
            "AND table_name = ? AND column_name = ?",
            database, table, column_name,
        ) > 0

    def modify_column(self, table_name: str, column_name: str, typ: str) -> None:
        """Change a column's type."""
        self.db.exec(f"ALTER TABLE {table_name} ALTER COLUMN {column_name} TYPE {typ}")

    def current_database(self) -> str:
        """Return the name of the connected database, or ``""``."""
        return self._query_text("SELECT DATABASE()")

    def limit_and_offset_sql(self, limit: Any, offset: Any) -> str:
        """Return the LIMIT/OFFSET clause; negative values are left out."""
        sql = ""
        if limit is not None:
            parsed = parse_int(limit)
            if parsed >= 0:
                sql += f" LIMIT {parsed}"
        if offset is not None:
            parsed = parse_int(offset)
            if parsed >= 0:
                sql += f" OFFSET {parsed}"
        return sql

    def select_from_dummy_table(self) -> str:
        """Return what follows ``SELECT values`` when no table is involved."""
        return ""

    def last_insert_id_output_interstitial(
        self, table_name: str, column_name: str, columns: Sequence[str]
    ) -> str:
        """Return the clause placed before VALUES to get the inserted id."""
        return ""

    def last_insert_id_returning_suffix(self, table_name: str, column_name: str) -> str:
        """Return the suffix that makes an insert return its id."""
        return ""

    def default_value_str(self) -> str:
        """Return the clause inserting a row of default values."""
        return "DEFAULT VALUES"

    def build_key_name(self, kind: str, table_name: str, *args: str) -> str:
        """Return a valid key name for the table, fields and kind."""
        return DefaultForeignKeyNamer.build_key_name(self, kind, table_name, *args)

    def normalize_index_and_column(self, index_name: str, column_name: str) -> tuple[str, str]:
        """Return the index and column names unchanged."""
        return index_name, column_name


_DIALECTS: dict[str, type] = {}


def register_dialect(name: str, dialect_class: type) -> None:
    """Register a dialect class under ``name``."""
    _DIALECTS[name] = dialect_class


def get_dialect(name: str) -> type | None:
    """Return the dialect class registered under ``name``, or ``None``."""
    return _DIALECTS.get(name)


def new_dialect(name: str, db: SQLCommon | None) -> Any:
    """Return a fresh dialect for ``name`` bound to ``db``."""
    dialect_class = _DIALECTS.get(name)
    if dialect_class is None:
        print(f"`{name}` is not officially supported, running under compatibility mode.")
        dialect_class = CommonDialect
    dialect = dialect_class()
    dialect.set_db(db)
    return dialect


def current_database_and_table(dialect: Any, table_name: str) -> tuple[str, str]:
    """Split ``db.table`` in two, or pair the table with the current database."""
    if "." in table_name:
        database, table = table_name.split(".", 1)
        return database, table
    return dialect.current_database(), table_name


register_dialect("common", CommonDialect)