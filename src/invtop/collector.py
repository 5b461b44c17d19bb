"""Process snapshot collection from a procfs tree."""

import dataclasses
import logging
import os
from pathlib import Path

from invtop.errors import RecordParseError
from invtop.models import ProcessRecord
from invtop.parsers import parse_process_record, read_command_line

logger = logging.getLogger(__name__)


def _numeric_entries(directory: Path) -> list[Path]:
    """List numerically named subdirectories, or nothing if the directory is gone."""
    try:
        with os.scandir(directory) as entries:
            return [Path(entry.path) for entry in entries if entry.name.isdigit()]
    except OSError:
        return []


class ProcessCollector:
    """
    Enumerates every process and thread status record under a procfs root.

    Entries that vanish between listing and reading are skipped silently.
    Records with malformed numeric fields are skipped and the scan continues.
    """

    def __init__(self, proc_root: str | Path = "/proc") -> None:
        self._root = Path(proc_root)

    @property
    def proc_root(self) -> Path:
        """Get the procfs root being scanned."""
        return self._root

    def collect(self) -> list[ProcessRecord]:
        """Return a flat, unordered list of all processes and their threads."""
        records: list[ProcessRecord] = []
        for process_dir in _numeric_entries(self._root):
            process = self._read_entry(process_dir)
            if process is None:
                continue
            records.append(process)
            records.extend(self._collect_threads(process_dir, process))
        return records

    def _collect_threads(self, process_dir: Path, owner: ProcessRecord) -> list[ProcessRecord]:
        """Read `task/<tid>/status` for every thread except the main one."""
        threads: list[ProcessRecord] = []
        for task_dir in _numeric_entries(process_dir / "task"):
            thread = self._read_entry(task_dir)
            if thread is None or thread.pid == owner.pid:
                continue
            # A thread's status reports the group leader's parent; hang it off its owner.
            threads.append(dataclasses.replace(thread, parent_pid=owner.pid))
        return threads

    def _read_entry(self, entry_dir: Path) -> ProcessRecord | None:
        try:
            raw = (entry_dir / "status").read_bytes()
        except OSError as exc:
            logger.debug("Skipping %s: %s", entry_dir, exc)
            return None

        try:
            return parse_process_record(
                raw.decode("utf-8", errors="replace"),
                command_line=read_command_line(entry_dir / "cmdline"),
            )
        except RecordParseError as exc:
            logger.warning("Skipping malformed status record %s: %s", entry_dir, exc)
            return None
