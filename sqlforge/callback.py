"""Ordered registries of callbacks run for create, update, delete and queries."""

from __future__ import annotations

import os
import traceback
from typing import Any, Callable

from .logger import NopLogger

ScopeCallback = Callable[[Any], None]

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))


def _caller_location() -> str:
    """Return ``file:line`` of the nearest caller outside this package."""
    for frame in reversed(traceback.extract_stack()):
        filename = os.path.abspath(frame.filename)
        if not filename.startswith(_PACKAGE_DIR + os.sep):
            return f"{frame.filename}:{frame.lineno}"
    return ""


def _rindex(names: list[str], name: str) -> int:
    """Index of the last occurrence of ``name`` in ``names``, or -1."""
    for index in range(len(names) - 1, -1, -1):
        if names[index] == name:
            return index
    return -1


class CallbackProcessor:
    """Describes one registration, removal or replacement of a callback."""

    def __init__(self, parent: "Callback", kind: str, logger: Any) -> None:
        self.parent = parent
        self.kind = kind
        self.logger = logger
        self.name = ""
        self.before_name = ""
        self.after_name = ""
        self.replacing = False
        self.removing = False
        self.processor: ScopeCallback | None = None

    def after(self, callback_name: str) -> "CallbackProcessor":
        """Place the callback after ``callback_name``."""
        self.after_name = callback_name
        return self

    def before(self, callback_name: str) -> "CallbackProcessor":
        """Place the callback before ``callback_name``."""
        self.before_name = callback_name
        return self

    def _attach(self) -> None:
        self.parent.processors.append(self)
        self.parent._reorder()

    def register(self, callback_name: str, callback: ScopeCallback) -> None:
        """Register ``callback`` under ``callback_name``."""
        if (
            self.kind == "row_query"
            and not self.before_name
            and not self.after_name
            and callback_name != "gorm:row_query"
        ):
            self.logger.print(
                "info",
                f"Registering RowQuery callback {callback_name} without specify order "
                "with before(), after(), applying before('gorm:row_query') by default "
                "for compatibility...",
            )
            self.before_name = "gorm:row_query"

        self.logger.print(
            "info",
            f"[info] registering callback `{callback_name}` from {_caller_location()}",
        )
        self.name = callback_name
        self.processor = callback
        self._attach()

    def remove(self, callback_name: str) -> None:
        """Remove the callback registered under ``callback_name``."""
        self.logger.print(
            "info",
            f"[info] removing callback `{callback_name}` from {_caller_location()}",
        )
        self.name = callback_name
        self.removing = True
        self._attach()

    def replace(self, callback_name: str, callback: ScopeCallback) -> None:
        """Replace the callback registered under ``callback_name``."""
        self.logger.print(
            "info",
            f"[info] replacing callback `{callback_name}` from {_caller_location()}",
        )
        self.name = callback_name
        self.processor = callback
        self.replacing = True
        self._attach()

    def get(self, callback_name: str) -> ScopeCallback | None:
        """Return the callback currently registered under ``callback_name``."""
        callback: ScopeCallback | None = None
        for processor in self.parent.processors:
            if processor.name == callback_name and processor.kind == self.kind:
                callback = None if processor.removing else processor.processor
        return callback


def sort_processors(processors: list[CallbackProcessor]) -> list[ScopeCallback]:
    """Order callbacks by their before/after constraints, honouring removals."""
    all_names: list[str] = []
    sorted_names: list[str] = []

    for processor in processors:
        if (
            _rindex(all_names, processor.name) > -1
            and not processor.replacing
            and not processor.removing
        ):
            processor.logger.print(
                "warning",
                f"[warning] duplicated callback `{processor.name}` from {_caller_location()}",
            )
        all_names.append(processor.name)

    def sort_one(current: CallbackProcessor) -> None:
        if _rindex(sorted_names, current.name) != -1:
            return

        if current.before_name:
            index = _rindex(sorted_names, current.before_name)
            if index != -1:
                sorted_names.insert(index, current.name)
            else:
                index = _rindex(all_names, current.before_name)
                if index != -1:
                    sorted_names.append(current.name)
                    sort_one(processors[index])

        if current.after_name:
            index = _rindex(sorted_names, current.after_name)
            if index != -1:
                sorted_names.insert(index + 1, current.name)
            else:
                index = _rindex(all_names, current.after_name)
                if index != -1:
                    following = processors[index]
                    if not following.before_name:
                        following.before_name = current.name
                    sort_one(following)

        if _rindex(sorted_names, current.name) == -1:
            sorted_names.append(current.name)

    for processor in processors:
        sort_one(processor)

    result: list[ScopeCallback] = []
    for name in sorted_names:
        chosen = processors[_rindex(all_names, name)]
        if not chosen.removing:
            result.append(chosen.processor)
    return result


class Callback:
    """Holds the ordered callbacks for every kind of operation."""

    def __init__(self, logger: Any = None) -> None:
        self.logger = logger if logger is not None else NopLogger()
        self.creates: list[ScopeCallback] = []
        self.updates: list[ScopeCallback] = []
        self.deletes: list[ScopeCallback] = []
        self.queries: list[ScopeCallback] = []
        self.row_queries: list[ScopeCallback] = []
        self.processors: list[CallbackProcessor] = []

    def clone(self, logger: Any) -> "Callback":
        """Return a copy of the registry that logs to ``logger``."""
        copy = Callback(logger)
        copy.creates = list(self.creates)
        copy.updates = list(self.updates)
        copy.deletes = list(self.deletes)
        copy.queries = list(self.queries)
        copy.row_queries = list(self.row_queries)
        copy.processors = list(self.processors)
        return copy

    def create(self) -> CallbackProcessor:
        """Start registering a callback run when creating records."""
        return CallbackProcessor(self, "create", self.logger)

    def update(self) -> CallbackProcessor:
        """Start registering a callback run when updating records."""
        return CallbackProcessor(self, "update", self.logger)

    def delete(self) -> CallbackProcessor:
        """Start registering a callback run when deleting records."""
        return CallbackProcessor(self, "delete", self.logger)

    def query(self) -> CallbackProcessor:
        """Start registering a callback run when querying records."""
        return CallbackProcessor(self, "query", self.logger)

    def row_query(self) -> CallbackProcessor:
        """Start registering a callback run for raw row queries."""
        return CallbackProcessor(self, "row_query", self.logger)

    def _reorder(self) -> None:
        by_kind: dict[str, list[CallbackProcessor]] = {
            "create": [],
            "update": [],
            "delete": [],
            "query": [],
            "row_query": [],
        }
        for processor in self.processors:
            if processor.name and processor.kind in by_kind:
                by_kind[processor.kind].append(processor)

        self.creates = sort_processors(by_kind["create"])
        self.updates = sort_processors(by_kind["update"])
        self.deletes = sort_processors(by_kind["delete"])
        self.queries = sort_processors(by_kind["query"])
        self.row_queries = sort_processors(by_kind["row_query"])


DEFAULT_CALLBACK = Callback(logger=NopLogger())