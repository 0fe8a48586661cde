from datetime import datetime, timedelta

from sqlforge.logger import Logger, NopLogger, format_log, is_printable


def _sql_line(sql, values, rows=1, duration=timedelta(milliseconds=1)):
    return format_log("sql", "caller.py:10", duration, sql, values, rows)


class RecordingWriter:
    def __init__(self):
        self.lines = []

    def println(self, *values):
        self.lines.append(values)


def test_single_argument_gives_nothing():
    assert format_log("info") == []


def test_question_mark_placeholders_are_filled():
    messages = _sql_line("SELECT * FROM t WHERE a = ? AND b = ?", ["alice", None])
    assert messages[3] == "SELECT * FROM t WHERE a = 'alice' AND b = NULL"


def test_numeric_placeholders_are_filled():
    messages = _sql_line("SELECT * FROM t WHERE a = $1 AND b = $2", [7, "bob"])
    sql = messages[3]
    assert "$1" not in sql and "$2" not in sql
    assert "= 7 AND" in sql
    assert sql.endswith("'bob'")


def test_numbers_and_booleans_are_unquoted():
    messages = _sql_line("x = ? AND y = ?", [3, True])
    assert "'" not in messages[3]
    assert messages[3].startswith("x = 3")


def test_binary_values_are_hidden():
    messages = _sql_line("data = ?", [b"\x00\x01\x02"])
    assert "'<binary>'" in messages[3]


def test_printable_bytes_are_shown():
    messages = _sql_line("data = ?", [b"fak4"])
    assert "'fak4'" in messages[3]


def test_zero_time_is_rendered_as_zero_date():
    messages = _sql_line("t = ?", [datetime(1, 1, 1)])
    assert "'0000-00-00 00:00:00'" in messages[3]


def test_valuer_objects_use_their_value():
    class Wrapped:
        def __init__(self, inner):
            self.inner = inner

        def value(self):
            return self.inner

    messages = _sql_line("a = ? AND b = ?", [Wrapped("inside"), Wrapped(None)])
    assert "'inside'" in messages[3]
    assert messages[3].endswith("NULL")


def test_duration_is_in_milliseconds():
    messages = _sql_line("SELECT 1", [], duration=timedelta(microseconds=12345))
    assert "[12.34ms]" in messages[2]


def test_rows_affected_is_reported():
    messages = _sql_line("SELECT 1", [], rows=3)
    assert "rows affected or returned" in messages[-1]
    assert "[3 " in messages[-1]


def test_other_levels_keep_their_values():
    messages = format_log("error", "caller.py:1", "first", "second")
    assert messages[2] == "\033[31;1m"
    assert messages[3:5] == ["first", "second"]
    assert messages[-1] == "\033[0m"


def test_is_printable():
    assert is_printable("plain text")
    assert not is_printable("bad\x00char")


def test_logger_passes_formatted_values_to_writer():
    writer = RecordingWriter()
    logger = Logger(writer, formatter=lambda *values: list(values))
    logger.print("info", "message")
    assert writer.lines == [("info", "message")]


def test_default_logger_writes_to_stdout(capsys):
    Logger().print("info", "hello world")
    out = capsys.readouterr().out
    assert out.startswith("\r\n")
    assert "hello world" in out


def test_nop_logger_writes_nothing(capsys):
    NopLogger().print("info", "hello")
    assert capsys.readouterr().out == ""