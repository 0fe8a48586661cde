# sqlforge

Building blocks for an object-relational mapper, with no dependencies
outside the standard library:

- **Dialects** for MySQL, PostgreSQL, SQLite, SQL Server and a generic
  fallback. A dialect quotes identifiers and maps field descriptions to SQL
  column types. It also builds `LIMIT`/`OFFSET` clauses and key names, and
  asks a connection about tables, columns, indexes and foreign keys.
- **Callbacks**: a registry of named create, update, delete, query and
  row-query hooks. You order them with `before` and `after`, and you can
  replace or remove them.
- **Errors**: exception types and an `Errors` collection that drops
  duplicates.
- **Logging**: log lines that show SQL statements with their bound values
  filled in.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Callbacks (`sqlforge.callback`)

Callbacks are registered under a name. After every change, the registry
re-sorts them from the `before` and `after` constraints. The sorted lists are
kept in `creates`, `updates`, `deletes`, `queries` and `row_queries`.

```python
from sqlforge.callback import Callback

callbacks = Callback()
callbacks.create().register("before_create", lambda scope: None)
callbacks.create().register("create", lambda scope: None)
callbacks.create().before("create").register("validate", lambda scope: None)

handler = callbacks.create().get("validate")
callbacks.create().replace("create", lambda scope: None)
callbacks.create().remove("before_create")
```

- `get` returns `None` for a name that was never registered or that has been
  removed.
- A row-query callback registered without `before` or `after` is placed
  before `gorm:row_query`.
- `Callback(logger)` sends the registry's info and warning lines to
  `logger.print`. The default is a `NopLogger`. Registering a name twice
  without `replace` logs a warning.
- `clone(logger)` copies a registry so that it logs elsewhere.
- `sort_processors` is the ordering function the registry uses.
- `DEFAULT_CALLBACK` is an empty shared registry.

## Dialects (`sqlforge.dialect`, `sqlforge.dialects.*`)

A dialect works from a `StructField`, which describes a column. It holds a
`name`, an optional `db_name`, a `Kind` or a `py_type` to take the kind from,
`is_primary_key`, and `tag_settings`. Tag keys are case-insensitive; use
`tag_get`, `tag_set` and `tag_delete` to read and change them.

```python
from sqlforge.dialect import Kind, StructField
from sqlforge.dialects.mysql import MySQLDialect

dialect = MySQLDialect()
dialect.quote("users")                     # `users`
dialect.limit_and_offset_sql(10, 20)       # " LIMIT 10 OFFSET 20"
dialect.normalize_index_and_column("idx_name(10)", "name")
                                           # ("idx_name", "name(10)")

field = StructField(name="Name", kind=Kind.STRING, tag_settings={"SIZE": "100"})
dialect.data_type_of(field)                # "varchar(100)"
```

Each dialect chooses column types from these sources, in this order:

1. the `TYPE` tag, or a `gorm_data_type(dialect)` class method on `py_type`;
2. the field's kind, with `SIZE` as the length;
3. for auto-increment, the `AUTO_INCREMENT` tag or the primary key.

The `NOT NULL`, `UNIQUE`, `DEFAULT` and `COMMENT` tags are appended to the
type. SQLite leaves out `COMMENT`.

Errors raised by dialects:

- `data_type_of` raises `ValueError` for a kind that the dialect has no type
  for.
- `limit_and_offset_sql` raises `ValueError` for a value that is not an
  integer. Negative values are left out of the clause.

### The registry

`register_dialect(name, cls)` records a dialect class, and `get_dialect(name)`
looks one up. `new_dialect(name, db)` returns a new instance bound to `db`.
For an unknown name it prints a notice and falls back to `CommonDialect`.

Each dialect module registers itself when it is imported:

| Module                       | Names registered             |
|------------------------------|------------------------------|
| `sqlforge.dialect`           | `common`                     |
| `sqlforge.dialects.mysql`    | `mysql`                      |
| `sqlforge.dialects.postgres` | `postgres`, `cloudsqlpostgres` |
| `sqlforge.dialects.sqlite`   | `sqlite3`                    |
| `sqlforge.dialects.mssql`    | `mssql`                      |

### Connections

The schema queries use a connection that has `exec(query, *args)`,
`query(query, *args)` returning rows, and `query_row(query, *args)` returning
one row or `None`. `DBAPIConnection` wraps any DB-API 2.0 connection to give
it that shape:

```python
import sqlite3
from sqlforge.dialect import DBAPIConnection, new_dialect
import sqlforge.dialects.sqlite  # registers "sqlite3"

dialect = new_dialect("sqlite3", DBAPIConnection(sqlite3.connect(":memory:")))
dialect.has_table("users")
```

Most dialects return `False` or `""` when a schema query fails. The MySQL
dialect's `has_table`, `has_index` and `has_column` let the error propagate.

### Value types

- `sqlforge.dialects.postgres.Hstore`: a `dict` of text to text or `None`.
  - `value()` encodes it as hstore text, or `None` when it is empty.
  - `scan(raw)` parses hstore text.
- `sqlforge.dialects.postgres.Jsonb`: raw JSON bytes.
  - `value()` returns the bytes, or `None` when there are none.
  - `scan(raw)` accepts bytes that are valid JSON.
  - Its column type is `jsonb` under the PostgreSQL dialect.
- `sqlforge.dialects.mssql.JSON`: the same as `Jsonb`, except that `scan`
  takes a `str`.

## Errors (`sqlforge.errors`)

All of these exceptions derive from `GormError`: `RecordNotFoundError`,
`InvalidSQLError`, `InvalidTransactionError`, `CantStartTransactionError`,
`UnaddressableError` and `Errors`.

`Errors.add` returns a new collection. It skips `None`, flattens nested
collections, and adds a given error object only once.

```python
from sqlforge.errors import Errors, GormError, is_record_not_found_error

errs = Errors([GormError("First"), GormError("Second")])
errs = errs.add(GormError("Third"))
str(errs)                       # "First; Second; Third"
is_record_not_found_error(errs) # False
```

## Logging (`sqlforge.logger`)

`format_log(*args)` turns a log call into the parts of one line.

- For an SQL call, `("sql", source, duration, sql, vars, rows_affected)`, it
  shows the duration in milliseconds and the statement with its values put
  in place of `?` or `$n`.
- For any other level, the remaining arguments are shown in red.

Writers and loggers:

- `Logger(writer, formatter)` passes the formatted parts to
  `writer.println`. The default writer prints to standard output.
- `NopLogger` prints nothing; it only counts the lines it discards in
  `discarded`.

## What this package does not do

There is no database handle, query builder, model mapping or transaction
handling here, and no association support. The callback registry starts
empty: it has no built-in create, update, delete or query steps. The dialects
only produce SQL fragments and run schema lookups through a connection you
supply. They do not create tables or run migrations.