"""Tests for the InventoryMonitor class."""

from queue import Queue

from invtop.config import Config, ProcfsConfig
from invtop.models import CpuCoreRecord, ProcessRecord
from invtop.monitor import InventoryMonitor, InventorySnapshot


def fake_config(procfs) -> Config:
    (procfs.root / "cpuinfo").write_text("processor\t: 0\nmodel name\t: Test CPU\n")
    return Config(procfs=ProcfsConfig(root=procfs.root))


class TestInventorySnapshot:
    """Tests for InventorySnapshot dataclass."""

    def test_defaults(self):
        """Test sources not polled are None."""
        snapshot = InventorySnapshot()

        assert snapshot.processes is None
        assert snapshot.cpus is None
        assert snapshot.cpu_percent_per_core == []
        assert snapshot.cpu_error is None

    def test_uses_slots(self):
        """Test InventorySnapshot uses __slots__ for memory efficiency."""
        assert not hasattr(InventorySnapshot(), "__dict__")


class TestInventoryMonitor:
    """Tests for InventoryMonitor class."""

    def test_monitor_creation(self):
        """Test InventoryMonitor takes its intervals from the config."""
        monitor = InventoryMonitor(Queue())

        assert monitor.process_interval == 2.0
        assert monitor.cpu_interval == 1.0
        assert not monitor.is_running

    def test_interval_minimum(self):
        """Test intervals have a minimum value."""
        monitor = InventoryMonitor(Queue())

        monitor.process_interval = 0.01
        monitor.cpu_interval = 0.0

        assert monitor.process_interval >= 0.1
        assert monitor.cpu_interval >= 0.1

    def test_poll_reads_both_sources(self, procfs):
        """Test a poll collects processes and CPU cores from the configured root."""
        procfs.add_process(1, "init", 0)
        monitor = InventoryMonitor(Queue(), fake_config(procfs))

        snapshot = monitor.poll()

        assert [p.pid for p in snapshot.processes] == [1]
        assert all(isinstance(p, ProcessRecord) for p in snapshot.processes)
        assert snapshot.cpus == [CpuCoreRecord("Test CPU", 0, "Unknown", "Unknown")]
        assert isinstance(snapshot.cpu_percent_per_core, list)

    def test_poll_selected_sources(self, procfs):
        """Test sources that are not due are left out."""
        monitor = InventoryMonitor(Queue(), fake_config(procfs))

        snapshot = monitor.poll(processes=False)

        assert snapshot.processes is None
        assert snapshot.cpus is not None

    def test_missing_cpuinfo_reported(self, procfs):
        """Test an unreadable cpuinfo is reported, not raised."""
        monitor = InventoryMonitor(Queue(), Config(procfs=ProcfsConfig(root=procfs.root)))

        snapshot = monitor.poll()

        assert snapshot.cpus is None
        assert snapshot.cpu_error is not None

    def test_monitor_start_stop(self, procfs):
        """Test InventoryMonitor can be started and stopped."""
        monitor = InventoryMonitor(Queue(), fake_config(procfs))

        monitor.start()
        assert monitor.is_running

        monitor.stop()
        assert not monitor.is_running

    def test_monitor_start_idempotent(self, procfs):
        """Test starting an already running monitor is safe."""
        monitor = InventoryMonitor(Queue(), fake_config(procfs))

        monitor.start()
        thread1 = monitor._thread
        monitor.start()  # Should not create a new thread
        thread2 = monitor._thread

        assert thread1 is thread2
        monitor.stop()

    def test_monitor_queues_snapshots(self, procfs):
        """Test the first poll delivers both sources."""
        procfs.add_process(1, "init", 0)
        queue: Queue[InventorySnapshot] = Queue()
        monitor = InventoryMonitor(queue, fake_config(procfs))

        monitor.start()
        try:
            snapshot = queue.get(timeout=2.0)
            assert [p.pid for p in snapshot.processes] == [1]
            assert len(snapshot.cpus) == 1
        finally:
            monitor.stop()

    def test_independent_intervals(self, procfs):
        """Test CPU polls arrive between process polls."""
        queue: Queue[InventorySnapshot] = Queue()
        monitor = InventoryMonitor(queue, fake_config(procfs))
        monitor.cpu_interval = 0.1
        monitor.process_interval = 60.0

        monitor.start()
        try:
            first = queue.get(timeout=2.0)
            second = queue.get(timeout=2.0)
        finally:
            monitor.stop()

        assert first.processes is not None
        assert second.processes is None
        assert second.cpus is not None

    def test_daemon_thread(self, procfs):
        """Test monitor thread is a daemon thread."""
        monitor = InventoryMonitor(Queue(), fake_config(procfs))

        monitor.start()
        try:
            assert monitor._thread is not None
            assert monitor._thread.daemon is True
            assert monitor._thread.name == "InventoryMonitor"
        finally:
            monitor.stop()
