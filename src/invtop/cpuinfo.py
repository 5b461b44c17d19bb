"""CPU inventory from the cpuinfo text blob."""

import logging
from pathlib import Path

from invtop.errors import RecordParseError
from invtop.models import CpuCoreRecord
from invtop.parsers import parse_cpu_record, split_cpu_blob

logger = logging.getLogger(__name__)


def parse_cpuinfo(text: str) -> list[CpuCoreRecord]:
    """Parse a cpuinfo blob into one record per logical core, in blob order."""
    cores: list[CpuCoreRecord] = []
    for chunk in split_cpu_blob(text):
        try:
            cores.append(parse_cpu_record(chunk))
        except RecordParseError as exc:
            # e.g. the trailing board description block on ARM
            logger.debug("Skipping cpuinfo chunk without a core index: %s", exc)
    return cores


class CpuInventory:
    """Holds the most recently parsed list of logical cores."""

    def __init__(self, path: str | Path = "/proc/cpuinfo") -> None:
        self._path = Path(path)
        self._cores: list[CpuCoreRecord] = []

    @property
    def cores(self) -> list[CpuCoreRecord]:
        return self._cores

    def refresh(self) -> list[CpuCoreRecord]:
        """
        Re-read the cpuinfo blob.

        Raises:
            OSError: If the blob cannot be read; the previous list is kept.
        """
        text = self._path.read_text(encoding="utf-8", errors="replace")
        self._cores = parse_cpuinfo(text)
        return self._cores
