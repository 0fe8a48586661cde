"""Formatting and printing of log lines, including SQL statements."""

from __future__ import annotations

import re
import sys
from datetime import datetime, timedelta
from typing import Any, Callable

_SQL_PLACEHOLDER = re.compile(r"\?")
_NUMERIC_PLACEHOLDER = re.compile(r"\$\d+")
_ZERO_TIME = datetime(1, 1, 1)


def is_printable(text: str) -> bool:
    """Tell whether every character of ``text`` is printable."""
    return text.isprintable()


def _duration_ms(duration: Any) -> float:
    if isinstance(duration, timedelta):
        micros = (duration.days * 86400 + duration.seconds) * 1_000_000 + duration.microseconds
    else:
        micros = int(float(duration) * 1_000_000)
    tens = abs(micros) // 10
    return (tens if micros >= 0 else -tens) / 100.0


def _format_value(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, datetime):
        if value.replace(tzinfo=None) == _ZERO_TIME:
            return "'0000-00-00 00:00:00'"
        return f"'{value.strftime('%Y-%m-%d %H:%M:%S')}'"
    if isinstance(value, (bytes, bytearray, memoryview)):
        text = bytes(value).decode("utf-8", errors="replace")
        return f"'{text}'" if is_printable(text) else "'<binary>'"
    valuer = getattr(value, "value", None)
    if callable(valuer):
        try:
            produced = valuer()
        except Exception:
            return "NULL"
        return "NULL" if produced is None else f"'{produced}'"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return f"'{value}'"


def _fill_placeholders(sql: str, formatted: list[str]) -> str:
    if _NUMERIC_PLACEHOLDER.search(sql):
        for index, value in enumerate(formatted, start=1):
            pattern = re.compile(rf"\${index}([^\d]|$)")
            sql = pattern.sub(lambda match, v=value: v + match.group(1), sql)
        return sql

    pieces = _SQL_PLACEHOLDER.split(sql)
    out = []
    for index, piece in enumerate(pieces):
        out.append(piece)
        if index < len(formatted):
            out.append(formatted[index])
    return "".join(out)


def format_log(*args: Any) -> list[Any]:
    """Turn a log call's arguments into the parts of one printed line.

    ``("sql", source, duration, sql, vars, rows)`` renders the statement with
    its values filled in; other levels print the remaining arguments in red.
    """
    if len(args) <= 1:
        return []

    level = args[0]
    current_time = "\n\033[33m[" + datetime.now().strftime("%Y-%m-%d %H:%M:%S") + "]\033[0m"
    source = f"\033[35m({args[1]})\033[0m"
    messages: list[Any] = [source, current_time]

    if len(args) == 2:
        current_time = current_time[1:]
        source = f"\033[35m{args[1]}\033[0m"
        messages = [current_time, source]

    if level == "sql":
        messages.append(f" \033[36;1m[{_duration_ms(args[2]):.2f}ms]\033[0m ")
        formatted = [_format_value(value) for value in args[4]]
        messages.append(_fill_placeholders(args[3], formatted))
        messages.append(
            f" \n\033[36;31m[{int(args[5])} rows affected or returned ]\033[0m "
        )
    else:
        messages.append("\033[31;1m")
        messages.extend(args[2:])
        messages.append("\033[0m")

    return messages


class _StdoutWriter:
    """Writes lines to standard output, each preceded by a blank line."""

    def __init__(self, prefix: str = "\r\n") -> None:
        self.prefix = prefix

    def println(self, *values: Any) -> None:
        sys.stdout.write(self.prefix + " ".join(str(v) for v in values) + "\n")


class Logger:
    """Formats log calls and hands the result to a writer's ``println``."""

    def __init__(
        self,
        writer: Any = None,
        formatter: Callable[..., list[Any]] | None = None,
    ) -> None:
        self.writer = writer if writer is not None else _StdoutWriter()
        self.formatter = formatter if formatter is not None else format_log

    def print(self, *args: Any) -> None:
        """Format ``args`` and write them as one line."""
        self.writer.println(*self.formatter(*args))


class NopLogger:
    """A logger that prints nothing, only counting the lines it discards."""

    def __init__(self) -> None:
        self.discarded = 0

    def print(self, *args: Any) -> None:
        """Discard ``args`` without output, counting the discarded line."""
        self.discarded += 1


DEFAULT_LOGGER = Logger()