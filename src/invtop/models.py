"""Data models for invtop."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """One process or thread, as read from its status block."""

    name: str
    pid: int
    parent_pid: int
    thread_count: int = 1
    command_line: str | None = None  # None when cmdline is unreadable
    children: list["ProcessRecord"] = field(default_factory=list, compare=False)


@dataclass(slots=True, frozen=True)
class CpuCoreRecord:
    """One logical core from the cpuinfo blob."""

    model_name: str
    core_index: int
    frequency_mhz: str
    cache_size: str


@dataclass(slots=True, frozen=True)
class UnitRecord:
    """Properties of one service-manager unit."""

    unit_name: str
    can_freeze: bool
    collect_mode: str
    unit_id: str


class SortKey(Enum):
    """Sort keys for process views."""

    NAME = "name"
    PID = "pid"
    PARENT_PID = "ppid"
    THREAD_COUNT = "threads"
    COMMAND_LINE = "cmdline"


@dataclass(slots=True, frozen=True)
class ProcessViews:
    """The four process views derived from one collection cycle."""

    flat: list[ProcessRecord] = field(default_factory=list)
    forest: list[ProcessRecord] = field(default_factory=list)
    filtered_flat: list[ProcessRecord] = field(default_factory=list)
    filtered_forest: list[ProcessRecord] = field(default_factory=list)
