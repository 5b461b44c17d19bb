"""Inventory state: the authoritative process list and its derived views."""

from collections.abc import Sequence

from invtop.collector import ProcessCollector
from invtop.forest import build_forest
from invtop.models import ProcessRecord, ProcessViews, SortKey
from invtop.views import compile_pattern, filter_records, sort_records


class InventoryState:
    """
    Owns the flat process list plus the forest, filtered-flat and
    filtered-forest views derived from it.

    Every mutating call builds a complete new ProcessViews and swaps it in
    with a single assignment, so the four views always come from the same
    collection cycle, sort key and search pattern.

    Not thread-safe: one caller owns an instance.
    """

    def __init__(
        self,
        collector: ProcessCollector | None = None,
        sort_key: SortKey = SortKey.PID,
        search_pattern: str = "",
    ) -> None:
        """
        Initialize the InventoryState.

        Args:
            collector: Source of flat process lists for refresh().
            sort_key: Initial sort key.
            search_pattern: Initial search pattern (case-insensitive regex).

        Raises:
            InvalidPatternError: If search_pattern does not compile.
        """
        self._collector = collector or ProcessCollector()
        self._sort_key = sort_key
        self._regex = compile_pattern(search_pattern)
        self._search_pattern = search_pattern
        self._views = ProcessViews()

    @property
    def sort_key(self) -> SortKey:
        """Get the current sort key."""
        return self._sort_key

    @property
    def search_pattern(self) -> str:
        """Get the current search pattern."""
        return self._search_pattern

    @property
    def views(self) -> ProcessViews:
        """Get all four views as one consistent snapshot."""
        return self._views

    @property
    def flat(self) -> list[ProcessRecord]:
        return self._views.flat

    @property
    def forest(self) -> list[ProcessRecord]:
        return self._views.forest

    @property
    def filtered_flat(self) -> list[ProcessRecord]:
        return self._views.filtered_flat

    @property
    def filtered_forest(self) -> list[ProcessRecord]:
        return self._views.filtered_forest

    def refresh(self) -> ProcessViews:
        """Re-collect processes and rebuild every view."""
        return self.load(self._collector.collect())

    def load(self, records: Sequence[ProcessRecord]) -> ProcessViews:
        """Replace the authoritative list with `records` and rebuild every view."""
        flat = list(records)
        forest = build_forest(flat)
        self._views = self._sorted(
            ProcessViews(
                flat=flat,
                forest=forest,
                filtered_flat=filter_records(flat, self._regex),
                filtered_forest=filter_records(forest, self._regex),
            )
        )
        return self._views

    def set_sort_key(self, key: SortKey) -> ProcessViews:
        """Change the sort key and re-sort the existing views."""
        self._sort_key = key
        self._views = self._sorted(self._views)
        return self._views

    def set_search_pattern(self, pattern: str) -> ProcessViews:
        """
        Change the search pattern and recompute the filtered views.

        Raises:
            InvalidPatternError: If the pattern does not compile. The previous
                pattern and all views are left unchanged.
        """
        regex = compile_pattern(pattern)
        current = self._views
        filtered_flat = sort_records(filter_records(current.flat, regex), self._sort_key)
        filtered_forest = sort_records(filter_records(current.forest, regex), self._sort_key)
        self._regex = regex
        self._search_pattern = pattern
        self._views = ProcessViews(
            flat=current.flat,
            forest=current.forest,
            filtered_flat=filtered_flat,
            filtered_forest=filtered_forest,
        )
        return self._views

    def _sorted(self, views: ProcessViews) -> ProcessViews:
        return ProcessViews(
            flat=sort_records(views.flat, self._sort_key),
            forest=sort_records(views.forest, self._sort_key),
            filtered_flat=sort_records(views.filtered_flat, self._sort_key),
            filtered_forest=sort_records(views.filtered_forest, self._sort_key),
        )
