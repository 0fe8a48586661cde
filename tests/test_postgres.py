import pytest

from sqlforge.dialect import Kind, StructField, get_dialect, new_dialect
from sqlforge.dialects.mysql import MySQLDialect
from sqlforge.dialects.postgres import Hstore, Jsonb, PostgresDialect


class FakeDB:
    def __init__(self, row=None):
        self.row = row
        self.calls = []

    def exec(self, query, *args):
        self.calls.append(("exec", query, args))

    def query(self, query, *args):
        self.calls.append(("query", query, args))
        return []

    def query_row(self, query, *args):
        self.calls.append(("query_row", query, args))
        return self.row


def test_registered_names():
    assert get_dialect("postgres") is PostgresDialect
    assert get_dialect("cloudsqlpostgres") is PostgresDialect
    assert isinstance(new_dialect("cloudsqlpostgres", FakeDB()), PostgresDialect)


def test_bind_var():
    assert PostgresDialect().bind_var(3) == "$3"


@pytest.mark.parametrize(
    "kind, primary, expected",
    [
        (Kind.BOOL, False, "boolean"),
        (Kind.INT, True, "serial"),
        (Kind.UINT16, False, "integer"),
        (Kind.INT64, True, "bigserial"),
        (Kind.UINT32, False, "bigint"),
        (Kind.FLOAT64, False, "numeric"),
        (Kind.TIME, False, "timestamp with time zone"),
        (Kind.BYTES, False, "bytea"),
    ],
)
def test_types(kind, primary, expected):
    field = StructField(name="F", kind=kind, is_primary_key=primary)
    assert PostgresDialect().data_type_of(field) == expected


def test_string_defaults_to_text():
    dialect = PostgresDialect()
    assert dialect.data_type_of(StructField(name="S", kind=Kind.STRING)) == "text"
    sized = dialect.data_type_of(StructField(name="S", kind=Kind.STRING, tag_settings={"SIZE": "64"}))
    assert sized.startswith("varchar(") and "64" in sized


def test_special_types():
    dialect = PostgresDialect()
    assert dialect.data_type_of(StructField(name="Attrs", py_type=Hstore)) == "hstore"
    uuid_field = StructField(name="ID", kind=Kind.BYTE_ARRAY, type_name="UUID", array_len=16)
    assert dialect.data_type_of(uuid_field) == "uuid"
    raw_field = StructField(name="Doc", kind=Kind.BYTES, type_name="RawMessage")
    assert dialect.data_type_of(raw_field) == "jsonb"
    assert dialect.data_type_of(StructField(name="Doc", py_type=Jsonb)) == "jsonb"


def test_jsonb_elsewhere_is_bytes():
    field = StructField(name="Doc", py_type=Jsonb, tag_settings={"SIZE": "0"})
    assert MySQLDialect().data_type_of(field) == "longblob"


def test_invalid_map_type():
    with pytest.raises(ValueError, match="postgres"):
        PostgresDialect().data_type_of(StructField(name="M", kind=Kind.MAP, type_name="Other"))


def test_schema_queries():
    db = FakeDB(row=(2,))
    dialect = PostgresDialect(db)
    assert dialect.has_table("users") is True
    assert dialect.has_column("users", "name") is True
    assert dialect.has_index("users", "idx") is True
    assert dialect.has_foreign_key("users", "fk") is True
    assert [call[2] for call in db.calls] == [("users",), ("users", "name"), ("users", "idx"), ("users", "fk")]
    assert all("$1" in call[1] for call in db.calls)
    assert PostgresDialect(FakeDB(row=(0,))).has_table("users") is False


def test_current_database():
    assert PostgresDialect(FakeDB(row=("shop",))).current_database() == "shop"


def test_insert_id_clauses():
    dialect = PostgresDialect()
    assert dialect.last_insert_id_output_interstitial("users", "id", ["name"]) == ""
    assert dialect.last_insert_id_returning_suffix("users", "id") == "RETURNING users.id"
    assert dialect.supports_last_insert_id() is False


def test_hstore_round_trip():
    original = Hstore({"a": "1", "b": None, 'q"uote': "back\\slash"})
    restored = Hstore()
    restored.scan(original.value())
    assert restored == original


def test_hstore_empty_value_is_none():
    assert Hstore().value() is None


def test_hstore_scan_text():
    store = Hstore()
    store.scan(b'"a"=>"1", "b"=>NULL')
    assert store == {"a": "1", "b": None}


def test_hstore_scan_empty_keeps_contents():
    store = Hstore({"a": "1"})
    store.scan(b"")
    assert store == {"a": "1"}


def test_hstore_scan_malformed():
    with pytest.raises(ValueError):
        Hstore().scan(b'"a" "1"')


def test_jsonb_round_trip():
    doc = Jsonb()
    assert doc.value() is None
    doc.scan(b'{"k": [1, 2]}')
    assert doc.value() == b'{"k": [1, 2]}'


def test_jsonb_rejects_text_and_invalid_json():
    with pytest.raises(TypeError, match="Failed to unmarshal JSONB value:"):
        Jsonb().scan('{"k": 1}')
    with pytest.raises(ValueError):
        Jsonb().scan(b"{not json")