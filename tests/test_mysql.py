import re

import pytest

from sqlforge.dialect import CommonDialect, Kind, StructField, get_dialect, new_dialect
from sqlforge.dialects.mysql import MySQLDialect


class FakeDB:
    def __init__(self, row=None, rows=(), error=None):
        self.row = row
        self.rows = list(rows)
        self.error = error
        self.calls = []

    def exec(self, query, *args):
        self.calls.append(("exec", query, args))

    def query(self, query, *args):
        self.calls.append(("query", query, args))
        if self.error:
            raise self.error
        return self.rows

    def query_row(self, query, *args):
        self.calls.append(("query_row", query, args))
        if self.error:
            raise self.error
        return self.row


def test_registered_and_created():
    assert get_dialect("mysql") is MySQLDialect
    db = FakeDB()
    dialect = new_dialect("mysql", db)
    assert isinstance(dialect, MySQLDialect)
    assert dialect.db is db
    assert dialect.name == "mysql"


def test_quote():
    assert MySQLDialect().quote("order") == "`order`"


@pytest.mark.parametrize(
    "kind, primary, expected",
    [
        (Kind.BOOL, False, "boolean"),
        (Kind.INT8, False, "tinyint"),
        (Kind.INT8, True, "tinyint AUTO_INCREMENT"),
        (Kind.INT32, False, "int"),
        (Kind.UINT8, False, "tinyint unsigned"),
        (Kind.UINT16, True, "int unsigned AUTO_INCREMENT"),
        (Kind.INT64, True, "bigint AUTO_INCREMENT"),
        (Kind.UINT64, False, "bigint unsigned"),
        (Kind.FLOAT32, False, "double"),
    ],
)
def test_numeric_types(kind, primary, expected):
    field = StructField(name="F", kind=kind, is_primary_key=primary)
    assert MySQLDialect().data_type_of(field) == expected


def test_primary_key_marks_auto_increment():
    field = StructField(name="ID", kind=Kind.INT, is_primary_key=True)
    MySQLDialect().data_type_of(field)
    assert field.tag_get("AUTO_INCREMENT") == "AUTO_INCREMENT"


def test_auto_increment_dropped_without_key():
    field = StructField(name="Seq", kind=Kind.INT, tag_settings={"AUTO_INCREMENT": "AUTO_INCREMENT"})
    assert MySQLDialect().data_type_of(field) == "int"
    assert field.tag_get("AUTO_INCREMENT") is None


def test_auto_increment_kept_with_index():
    field = StructField(
        name="Seq",
        kind=Kind.INT,
        tag_settings={"AUTO_INCREMENT": "AUTO_INCREMENT", "INDEX": "INDEX"},
    )
    assert MySQLDialect().data_type_of(field) == "int AUTO_INCREMENT"


def test_string_types():
    dialect = MySQLDialect()
    assert dialect.data_type_of(StructField(name="S", kind=Kind.STRING)) == "varchar(255)"
    assert dialect.data_type_of(StructField(name="S", kind=Kind.STRING, tag_settings={"SIZE": "0"})) == "longtext"
    assert dialect.data_type_of(StructField(name="S", kind=Kind.STRING, tag_settings={"SIZE": "70000"})) == "longtext"


def test_time_types():
    dialect = MySQLDialect()
    nullable = dialect.data_type_of(StructField(name="T", kind=Kind.TIME))
    assert nullable.startswith("DATETIME") and nullable.endswith(" NULL")
    primary = dialect.data_type_of(StructField(name="T", kind=Kind.TIME, is_primary_key=True))
    assert primary.startswith("DATETIME") and "NULL" not in primary
    precise = dialect.data_type_of(StructField(name="T", kind=Kind.TIME, tag_settings={"PRECISION": "6"}))
    assert "(6)" in precise


def test_byte_types():
    dialect = MySQLDialect()
    assert dialect.data_type_of(StructField(name="B", kind=Kind.BYTES, tag_settings={"SIZE": "0"})) == "longblob"
    sized = dialect.data_type_of(StructField(name="B", kind=Kind.BYTE_ARRAY, tag_settings={"SIZE": "32"}))
    assert sized.startswith("varbinary(") and "32" in sized


def test_additional_type_appended():
    field = StructField(name="F", kind=Kind.BOOL, tag_settings={"UNIQUE": "UNIQUE"})
    result = MySQLDialect().data_type_of(field)
    assert result.startswith("boolean") and result.endswith(" UNIQUE")


def test_invalid_type_names_field():
    field = StructField(name="Attributes", kind=Kind.MAP)
    with pytest.raises(ValueError, match="Attributes"):
        MySQLDialect().data_type_of(field)


def test_limit_and_offset():
    dialect = MySQLDialect()
    assert dialect.limit_and_offset_sql(10, 5) == CommonDialect().limit_and_offset_sql(10, 5)
    assert dialect.limit_and_offset_sql(None, 5) == ""
    assert dialect.limit_and_offset_sql(-1, 5) == ""
    assert "OFFSET" not in dialect.limit_and_offset_sql(10, -1)
    with pytest.raises(ValueError):
        dialect.limit_and_offset_sql("abc", None)


def test_has_table():
    db = FakeDB(row=("users",))
    dialect = MySQLDialect(db)
    assert dialect.has_table("shop.users") is True
    _, query, args = db.calls[-1]
    assert "`shop`" in query and args == ("users",)
    assert MySQLDialect(FakeDB(row=None)).has_table("shop.users") is False


def test_has_table_error_propagates():
    with pytest.raises(RuntimeError):
        MySQLDialect(FakeDB(error=RuntimeError("down"))).has_table("shop.users")


def test_has_index_and_column():
    assert MySQLDialect(FakeDB(rows=[("x",)])).has_index("shop.users", "idx") is True
    assert MySQLDialect(FakeDB(rows=[])).has_index("shop.users", "idx") is False
    db = FakeDB(rows=[("name",)])
    assert MySQLDialect(db).has_column("shop.users", "name") is True
    assert db.calls[-1][2] == ("name",)


def test_has_foreign_key():
    db = FakeDB(row=(1,))
    assert MySQLDialect(db).has_foreign_key("shop.users", "fk_users") is True
    assert db.calls[-1][2] == ("shop", "users", "fk_users")
    assert MySQLDialect(FakeDB(row=(0,))).has_foreign_key("shop.users", "fk_users") is False


def test_remove_index_and_modify_column():
    db = FakeDB()
    dialect = MySQLDialect(db)
    dialect.remove_index("users", "idx_name")
    dialect.modify_column("users", "name", "text")
    first, second = db.calls
    assert "idx_name" in first[1] and "`users`" in first[1]
    assert "MODIFY COLUMN" in second[1] and second[1].endswith("text")


def test_current_database():
    assert MySQLDialect(FakeDB(row=("shop",))).current_database() == "shop"


def test_build_key_name_short_matches_common():
    dialect = MySQLDialect()
    assert dialect.build_key_name("idx", "users", "name") == CommonDialect().build_key_name("idx", "users", "name")


def test_build_key_name_long_is_hashed():
    dialect = MySQLDialect()
    field = "really_long_field_name_that_goes_on"
    name = dialect.build_key_name("fk", "a_table_name_that_is_rather_long_indeed", field, "other")
    assert len(name) == 64
    assert name.startswith(field[:24])
    assert re.fullmatch(r"[0-9a-f]{40}", name[24:])
    assert name == dialect.build_key_name("fk", "a_table_name_that_is_rather_long_indeed", field, "other")


def test_normalize_index_and_column():
    dialect = MySQLDialect()
    assert dialect.normalize_index_and_column("idx_name(10)", "name") == ("idx_name", "name(10)")
    assert dialect.normalize_index_and_column("idx_name", "name") == ("idx_name", "name")


def test_fixed_clauses():
    dialect = MySQLDialect()
    assert dialect.select_from_dummy_table() == "FROM DUAL"
    assert dialect.default_value_str() == "VALUES()"