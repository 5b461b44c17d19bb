"""invtop - Main Textual application."""

import logging
import os
from queue import Empty, Queue

from rich.text import Text
from textual.app import App, ComposeResult
from textual.widgets import DataTable, Footer, Input, Static, TabbedContent, TabPane, Tree
from textual.widgets.tree import TreeNode

from invtop.collector import ProcessCollector
from invtop.config import ENV_LOG_LEVEL, Config, load_config
from invtop.errors import InvalidPatternError, UnitQueryError
from invtop.models import CpuCoreRecord, ProcessRecord, SortKey, UnitRecord
from invtop.monitor import InventoryMonitor, InventorySnapshot
from invtop.state import InventoryState
from invtop.units import BusConnection, UnitInventoryClient

COMMAND_WIDTH = 60
LOG_FILE = "invtop.log"


def usage_bar(percent: float, width: int = 20) -> str:
    """Render a utilisation percentage as a fixed-width bar."""
    filled = min(int(percent / (100 / width)), width)
    return "█" * filled + "░" * (width - filled)


class HeaderStats(Static):
    """Header widget showing per-core load and the current view settings."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def show(self, cpu_percents: list[float], state: InventoryState) -> None:
        lines = [
            f"CPU{index:<2} {usage_bar(usage)} {usage:5.1f}%"
            for index, usage in enumerate(cpu_percents)
        ]
        pattern = state.search_pattern or "-"
        lines.append(
            f"Processes: {len(state.flat)}  Shown: {len(state.filtered_flat)}  "
            f"Sort: {state.sort_key.value}  Filter: {pattern}"
        )
        self.update(Text("\n".join(lines)))


class InventoryApp(App):
    """Main invtop application."""

    TITLE = "invtop"
    SUB_TITLE = "System Inventory"
    AUTO_FOCUS = "#process-table"

    CSS = """
    #search {
        dock: bottom;
    }

    #unit-status {
        height: auto;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("f6", "sort", "Sort"),
        ("slash", "search", "Search"),
    ]

    def __init__(
        self,
        config: Config | None = None,
        unit_client: UnitInventoryClient | None = None,
    ) -> None:
        """
        Initialize the InventoryApp.

        Args:
            config: Paths, intervals and bus settings. Defaults to load_config().
            unit_client: Unit source. Defaults to a client on the configured bus.
        """
        super().__init__()
        self._config = config or load_config()
        self._update_queue: Queue[InventorySnapshot] = Queue()
        self._monitor = InventoryMonitor(self._update_queue, self._config)
        self._state = InventoryState(ProcessCollector(self._config.procfs.root))
        self._connection: BusConnection | None = None
        if unit_client is None:
            self._connection = BusConnection.from_config(self._config.bus)
            unit_client = UnitInventoryClient(self._connection, self._config.bus)
        self._unit_client = unit_client
        self._cpu_percents: list[float] = []
        self._unit_error: str | None = None

    @property
    def state(self) -> InventoryState:
        return self._state

    @property
    def unit_error(self) -> str | None:
        """Get the error from the last unit refresh, if it failed."""
        return self._unit_error

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield HeaderStats(id="header-stats")
        with TabbedContent(initial="processes-tab"):
            with TabPane("Processes", id="processes-tab"):
                yield DataTable(id="process-table", cursor_type="row")
            with TabPane("Tree", id="tree-tab"):
                yield Tree("processes", id="process-tree")
            with TabPane("CPU", id="cpu-tab"):
                yield DataTable(id="cpu-table", cursor_type="row")
            with TabPane("Units", id="units-tab"):
                yield Static("Loading units...", id="unit-status")
                yield DataTable(id="unit-table", cursor_type="row")
        yield Input(placeholder="Search (regular expression)", id="search")
        yield Footer()

    def on_mount(self) -> None:
        """Set up tables and start polling when the app is mounted."""
        processes = self.query_one("#process-table", DataTable)
        processes.add_column("PID", key="pid", width=8)
        processes.add_column("PPID", key="ppid", width=8)
        processes.add_column("THR", key="threads", width=5)
        processes.add_column("Name", key="name", width=20)
        processes.add_column("Command", key="command")

        cpus = self.query_one("#cpu-table", DataTable)
        cpus.add_columns("Core", "Model", "MHz", "Cache")

        units = self.query_one("#unit-table", DataTable)
        units.add_columns("Unit", "Freeze", "Collect", "Id")

        self.query_one("#process-tree", Tree).show_root = False

        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)
        self.set_interval(self._config.intervals.units / 1000, self._schedule_unit_refresh)
        self._schedule_unit_refresh()

    def _check_for_updates(self) -> None:
        """Drain the queue and apply the newest data from each source."""
        processes: list[ProcessRecord] | None = None
        snapshot: InventorySnapshot | None = None
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break
            if snapshot.processes is not None:
                processes = snapshot.processes
            if snapshot.cpus is not None or snapshot.cpu_error is not None:
                self._show_cpus(snapshot.cpus or [], snapshot.cpu_error)

        if snapshot is None:
            return
        self._cpu_percents = snapshot.cpu_percent_per_core
        if processes is not None:
            self._state.load(processes)
            self._show_processes()
        else:
            self._show_header()

    def _show_header(self) -> None:
        self.query_one("#header-stats", HeaderStats).show(self._cpu_percents, self._state)

    def _show_processes(self) -> None:
        table = self.query_one("#process-table", DataTable)
        table.clear()
        shown: set[int] = set()
        for proc in self._state.filtered_flat:
            # A pid-reuse race can list the same pid twice; row keys must be unique
            if proc.pid in shown:
                continue
            shown.add(proc.pid)
            table.add_row(
                str(proc.pid),
                str(proc.parent_pid),
                str(proc.thread_count),
                Text(proc.name),
                Text((proc.command_line or "")[:COMMAND_WIDTH]),
                key=str(proc.pid),
            )

        tree = self.query_one("#process-tree", Tree)
        tree.clear()
        self._add_branch(tree.root, self._state.filtered_forest)
        self._show_header()

    def _add_branch(self, parent: TreeNode, records: list[ProcessRecord]) -> None:
        for proc in records:
            label = Text(f"{proc.name} ({proc.pid})")
            if proc.children:
                node = parent.add(label, data=proc.pid, expand=True)
                self._add_branch(node, proc.children)
            else:
                parent.add_leaf(label, data=proc.pid)

    def _show_cpus(self, cores: list[CpuCoreRecord], error: str | None) -> None:
        table = self.query_one("#cpu-table", DataTable)
        table.clear()
        if error is not None:
            table.add_row("-", Text(f"cpuinfo unavailable: {error}"), "", "")
            return
        for core in cores:
            table.add_row(str(core.core_index), Text(core.model_name), core.frequency_mhz, core.cache_size)

    def _show_units(self, units: list[UnitRecord], error: str | None = None) -> None:
        status = self.query_one("#unit-status", Static)
        table = self.query_one("#unit-table", DataTable)
        table.clear()
        self._unit_error = error
        if error is not None:
            status.update(Text(f"Unit query failed: {error}"))
            return
        status.update(f"{len(units)} units")
        for unit in units:
            table.add_row(Text(unit.unit_name), str(unit.can_freeze), unit.collect_mode, Text(unit.unit_id))

    def _schedule_unit_refresh(self) -> None:
        self.run_worker(self._refresh_units(), group="units")

    async def _refresh_units(self) -> None:
        try:
            units = await self._unit_client.refresh()
        except UnitQueryError as exc:
            self._show_units([], str(exc))
        else:
            self._show_units(units)

    def action_sort(self) -> None:
        """Cycle to the next sort key."""
        keys = list(SortKey)
        next_key = keys[(keys.index(self._state.sort_key) + 1) % len(keys)]
        self._state.set_sort_key(next_key)
        self._show_processes()
        self.notify(f"Sort: {next_key.value.upper()}")

    def action_search(self) -> None:
        """Focus the search box."""
        search = self.query_one("#search", Input)
        search.value = self._state.search_pattern
        search.focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        """Apply the submitted search pattern, keeping the old view if it is invalid."""
        try:
            self._state.set_search_pattern(event.value)
        except InvalidPatternError as exc:
            self.notify(str(exc), severity="error")
            return
        self.query_one("#process-table", DataTable).focus()
        self._show_processes()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        if self._connection is not None:
            self._connection.close()
        self.exit()


def main() -> None:
    """Entry point for the invtop application."""
    level = os.environ.get(ENV_LOG_LEVEL)
    if level:
        logging.basicConfig(filename=LOG_FILE, level=level.upper())
    app = InventoryApp()
    app.run()


if __name__ == "__main__":
    main()
