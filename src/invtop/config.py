"""Configuration values for invtop."""

import os
from dataclasses import dataclass, field
from pathlib import Path

import psutil


@dataclass(frozen=True)
class ProcfsConfig:
    """Where kernel process and CPU records are read from."""

    root: Path = Path(psutil.PROCFS_PATH)

    @property
    def cpuinfo(self) -> Path:
        return self.root / "cpuinfo"


@dataclass(frozen=True)
class UpdateIntervals:
    """Polling intervals (in milliseconds) for each data source."""

    cpu: int = 1000
    processes: int = 2000
    units: int = 5000


@dataclass(frozen=True)
class BusConfig:
    """Where unit properties are queried on the message bus."""

    bus: str = "system"  # 'system' or 'session'
    service: str = "org.freedesktop.systemd1"
    unit_root: str = "/org/freedesktop/systemd1/unit"
    unit_interface: str = "org.freedesktop.systemd1.Unit"


@dataclass(frozen=True)
class Config:
    procfs: ProcfsConfig = field(default_factory=ProcfsConfig)
    intervals: UpdateIntervals = field(default_factory=UpdateIntervals)
    bus: BusConfig = field(default_factory=BusConfig)


ENV_PROC_ROOT = "INVTOP_PROC_ROOT"
ENV_BUS = "INVTOP_BUS"
ENV_LOG_LEVEL = "INVTOP_LOG_LEVEL"


def load_config(environ: dict[str, str] | None = None) -> Config:
    """
    Build a Config, applying overrides from the environment.

    Raises:
        ValueError: If INVTOP_BUS is neither 'system' nor 'session'.
    """
    env = os.environ if environ is None else environ
    procfs = ProcfsConfig(root=Path(env[ENV_PROC_ROOT])) if env.get(ENV_PROC_ROOT) else ProcfsConfig()
    bus_name = env.get(ENV_BUS, BusConfig.bus).lower()
    if bus_name not in ("system", "session"):
        raise ValueError(f"{ENV_BUS} must be 'system' or 'session', got {bus_name!r}")
    return Config(procfs=procfs, bus=BusConfig(bus=bus_name))
