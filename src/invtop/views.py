"""Filtering and sorting of process lists and forests."""

import dataclasses
import re
from collections.abc import Callable, Sequence
from typing import Any

from invtop.errors import InvalidPatternError
from invtop.models import ProcessRecord, SortKey


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile a search pattern as a case-insensitive regular expression.

    Raises:
        InvalidPatternError: If the pattern is not a valid regular expression.
    """
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        raise InvalidPatternError(pattern, str(exc)) from exc


def _matches(record: ProcessRecord, regex: re.Pattern[str]) -> bool:
    return bool(regex.search(record.name) or regex.search(record.command_line or ""))


def filter_records(
    records: Sequence[ProcessRecord], pattern: str | re.Pattern[str]
) -> list[ProcessRecord]:
    """
    Keep the records that match, or that have a matching descendant.

    Works on a flat list and on a forest alike. Retained records are copies
    whose children are themselves filtered.

    Raises:
        InvalidPatternError: If `pattern` is a string that does not compile.
    """
    regex = compile_pattern(pattern) if isinstance(pattern, str) else pattern
    return _filter(records, regex)


def _filter(records: Sequence[ProcessRecord], regex: re.Pattern[str]) -> list[ProcessRecord]:
    kept: list[ProcessRecord] = []
    for record in records:
        children = _filter(record.children, regex) if record.children else []
        if children or _matches(record, regex):
            kept.append(dataclasses.replace(record, children=children))
    return kept


def _command_line_key(record: ProcessRecord) -> tuple[bool, str]:
    # Absent command lines sort before any present one
    return (record.command_line is not None, record.command_line or "")


SORT_KEYS: dict[SortKey, Callable[[ProcessRecord], Any]] = {
    SortKey.NAME: lambda record: record.name,
    SortKey.PID: lambda record: record.pid,
    SortKey.PARENT_PID: lambda record: record.parent_pid,
    SortKey.THREAD_COUNT: lambda record: record.thread_count,
    SortKey.COMMAND_LINE: _command_line_key,
}


def sort_records(records: Sequence[ProcessRecord], key: SortKey) -> list[ProcessRecord]:
    """Return a stable ascending sort of the records, applied to every subtree."""
    key_func = SORT_KEYS[key]
    return [
        dataclasses.replace(record, children=sort_records(record.children, key))
        if record.children
        else record
        for record in sorted(records, key=key_func)
    ]
