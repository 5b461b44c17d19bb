"""Background polling of the process and CPU inventories."""

import logging
import threading
import time
from dataclasses import dataclass, field
from queue import Queue

import psutil

from invtop.collector import ProcessCollector
from invtop.config import Config
from invtop.cpuinfo import CpuInventory
from invtop.models import CpuCoreRecord, ProcessRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class InventorySnapshot:
    """
    One poll's worth of data.

    A source that was not due this poll is left as None.
    """

    processes: list[ProcessRecord] | None = None
    cpus: list[CpuCoreRecord] | None = None
    cpu_percent_per_core: list[float] = field(default_factory=list)
    cpu_error: str | None = None


class InventoryMonitor:
    """
    Polls the process collector and CPU inventory on independent intervals.

    Runs in a separate daemon thread and pushes updates to a thread-safe Queue.
    Collection errors are logged and the loop keeps running.
    """

    def __init__(
        self,
        update_queue: Queue[InventorySnapshot],
        config: Config | None = None,
        collector: ProcessCollector | None = None,
        cpu_inventory: CpuInventory | None = None,
    ) -> None:
        """
        Initialize the InventoryMonitor.

        Args:
            update_queue: Thread-safe queue to push updates to.
            config: Paths and polling intervals. Defaults to Config().
            collector: Process source. Defaults to one reading config's procfs root.
            cpu_inventory: CPU source. Defaults to one reading config's cpuinfo path.
        """
        self._config = config or Config()
        self._queue = update_queue
        self._collector = collector or ProcessCollector(self._config.procfs.root)
        self._cpu_inventory = cpu_inventory or CpuInventory(self._config.procfs.cpuinfo)
        self._process_interval = self._config.intervals.processes / 1000
        self._cpu_interval = self._config.intervals.cpu / 1000
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        # Initialize CPU percent (first call returns 0.0)
        psutil.cpu_percent(percpu=True)

    @property
    def process_interval(self) -> float:
        """Get the process poll interval in seconds."""
        return self._process_interval

    @process_interval.setter
    def process_interval(self, value: float) -> None:
        self._process_interval = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def cpu_interval(self) -> float:
        """Get the CPU poll interval in seconds."""
        return self._cpu_interval

    @cpu_interval.setter
    def cpu_interval(self, value: float) -> None:
        self._cpu_interval = max(0.1, value)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="InventoryMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        next_processes = next_cpus = time.monotonic()
        while not self._stop_event.is_set():
            now = time.monotonic()
            try:
                snapshot = self.poll(
                    processes=now >= next_processes,
                    cpus=now >= next_cpus,
                )
                self._queue.put(snapshot)
            except Exception:
                logger.exception("Inventory poll failed")

            if now >= next_processes:
                next_processes = now + self._process_interval
            if now >= next_cpus:
                next_cpus = now + self._cpu_interval
            self._stop_event.wait(timeout=max(0.0, min(next_processes, next_cpus) - time.monotonic()))

    def poll(self, processes: bool = True, cpus: bool = True) -> InventorySnapshot:
        """Collect one snapshot of the requested sources."""
        snapshot = InventorySnapshot(cpu_percent_per_core=psutil.cpu_percent(percpu=True))
        if processes:
            snapshot.processes = self._collector.collect()
        if cpus:
            try:
                snapshot.cpus = self._cpu_inventory.refresh()
            except OSError as exc:
                logger.debug("Reading cpuinfo failed: %s", exc)
                snapshot.cpu_error = str(exc)
        return snapshot
