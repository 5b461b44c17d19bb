"""Parsers for kernel `Label: value` text records."""

import re
from pathlib import Path

from invtop.errors import RecordParseError
from invtop.models import CpuCoreRecord, ProcessRecord

PROC_NAME_LABEL = "Name"
PROC_PID_LABEL = "Pid"
PROC_PPID_LABEL = "PPid"
PROC_THREADS_LABEL = "Threads"

CPU_NAME_LABEL = "model name"
CPU_PROCESSOR_LABEL = "processor"
CPU_MHZ_LABEL = "cpu MHz"
CPU_CACHE_SIZE_LABEL = "cache size"

UNKNOWN = "Unknown"

_DIGITS = re.compile(r"[0-9]+")
_BLANK_LINE = re.compile(r"\n[ \t]*\n")


def _split_line(line: str) -> tuple[str, str] | None:
    """Split a line into its label and the text after the last colon."""
    if ":" not in line:
        return None
    label = line.split(":", 1)[0].strip()
    value = line.rsplit(":", 1)[1].strip()
    return label, value


def _labelled_values(raw_text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in raw_text.splitlines():
        parts = _split_line(line)
        if parts is not None:
            label, value = parts
            # A repeated label overrides the earlier line
            values[label] = value
    return values


def _parse_count(label: str, value: str | None) -> int:
    if value is None:
        raise RecordParseError(f"missing {label!r} field")
    if not _DIGITS.fullmatch(value):
        raise RecordParseError(f"{label!r} is not a non-negative integer: {value!r}")
    return int(value)


def parse_process_record(raw_text: str, command_line: str | None = None) -> ProcessRecord:
    """
    Parse one process status block into a ProcessRecord.

    Args:
        raw_text: Contents of a `status` resource.
        command_line: Already-normalised command line, or None if unreadable.

    Raises:
        RecordParseError: If Pid or PPid is missing, or any numeric field is malformed.
    """
    values = _labelled_values(raw_text)
    threads = values.get(PROC_THREADS_LABEL)
    return ProcessRecord(
        name=values.get(PROC_NAME_LABEL, ""),
        pid=_parse_count(PROC_PID_LABEL, values.get(PROC_PID_LABEL)),
        parent_pid=_parse_count(PROC_PPID_LABEL, values.get(PROC_PPID_LABEL)),
        thread_count=1 if threads is None else _parse_count(PROC_THREADS_LABEL, threads),
        command_line=command_line,
    )


def parse_cpu_record(chunk: str) -> CpuCoreRecord:
    """
    Parse one per-core cpuinfo chunk.

    Raises:
        RecordParseError: If the chunk has no valid `processor` index.
    """
    values = _labelled_values(chunk)
    processor = values.get(CPU_PROCESSOR_LABEL)
    return CpuCoreRecord(
        model_name=values.get(CPU_NAME_LABEL, UNKNOWN),
        core_index=_parse_count(
            CPU_PROCESSOR_LABEL, None if processor is None else processor.replace(" ", "")
        ),
        frequency_mhz=values.get(CPU_MHZ_LABEL, UNKNOWN),
        cache_size=values.get(CPU_CACHE_SIZE_LABEL, UNKNOWN),
    )


def split_cpu_blob(text: str) -> list[str]:
    """Split a cpuinfo blob into non-empty per-core chunks."""
    return [chunk for chunk in _BLANK_LINE.split(text.strip()) if chunk.strip()]


def normalize_command_line(raw: bytes) -> str:
    """Render a NUL-delimited argument vector as a single line."""
    return raw.rstrip(b"\0").replace(b"\0", b" ").decode("utf-8", errors="replace").strip()


def read_command_line(path: Path) -> str | None:
    """Read a `cmdline` resource, returning None if it cannot be read."""
    try:
        return normalize_command_line(path.read_bytes())
    except OSError:
        return None
