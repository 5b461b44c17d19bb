"""Shared fixtures for invtop tests."""

from pathlib import Path

import pytest

from invtop.models import ProcessRecord


class FakeProcfs:
    """Builds a procfs-shaped directory tree under a temporary path."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def add_process(
        self,
        pid: int,
        name: str,
        ppid: int,
        threads: int | None = 1,
        cmdline: bytes | None = b"",
        tids: tuple[int, ...] = (),
    ) -> Path:
        process_dir = self.root / str(pid)
        self._write_entry(process_dir, pid, name, ppid, threads, cmdline)
        for tid in (pid, *tids):
            self._write_entry(process_dir / "task" / str(tid), tid, name, ppid, threads, cmdline)
        return process_dir

    def _write_entry(self, entry_dir, pid, name, ppid, threads, cmdline) -> None:
        entry_dir.mkdir(parents=True)
        lines = [f"Name:\t{name}", "Umask:\t0022", "State:\tS (sleeping)", f"Pid:\t{pid}", f"PPid:\t{ppid}"]
        if threads is not None:
            lines.append(f"Threads:\t{threads}")
        (entry_dir / "status").write_text("\n".join(lines) + "\n")
        if cmdline is not None:
            (entry_dir / "cmdline").write_bytes(cmdline)


@pytest.fixture
def procfs(tmp_path: Path) -> FakeProcfs:
    """An empty fake procfs root."""
    return FakeProcfs(tmp_path)


def record(pid: int, parent_pid: int, name: str = "", command_line: str | None = None, threads: int = 1) -> ProcessRecord:
    """Shorthand for building a ProcessRecord in tests."""
    return ProcessRecord(
        name=name or f"proc{pid}",
        pid=pid,
        parent_pid=parent_pid,
        thread_count=threads,
        command_line=command_line,
    )
