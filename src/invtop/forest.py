"""Reconstruction of the process parent/child forest from a flat list."""

import dataclasses
import logging
from collections.abc import Iterator, Sequence

from invtop.models import ProcessRecord

logger = logging.getLogger(__name__)

# (position in the input list, detached node)
_Entry = tuple[int, ProcessRecord]


def _by_position(entry: _Entry) -> int:
    return entry[0]


def build_forest(flat: Sequence[ProcessRecord]) -> list[ProcessRecord]:
    """
    Build a forest of process trees by iterative leaf-peeling.

    Each round peels every record that no remaining record claims as its
    parent. A peeled record adopts the already-peeled subtrees whose
    parent_pid is its pid, then waits to be adopted in turn. Subtrees that
    are never adopted (missing or self-referencing parent) are the roots.

    Input records are not modified; every node in the result is a copy.
    Roots and children keep the relative order of the input list.
    """
    working: list[_Entry] = [
        (position, dataclasses.replace(record, children=[]))
        for position, record in enumerate(flat)
    ]
    unclaimed: dict[int, list[_Entry]] = {}

    while working:
        has_children = {
            record.parent_pid for _, record in working if record.parent_pid != record.pid
        }
        leaves = [entry for entry in working if entry[1].pid not in has_children]
        if leaves:
            working = [entry for entry in working if entry[1].pid in has_children]
        else:
            # Only pid reuse can produce a cycle among present pids; break it.
            logger.warning("Parent cycle among %d processes, treating them as roots", len(working))
            leaves, working = working, []

        for _, leaf in leaves:
            adopted = unclaimed.pop(leaf.pid, [])
            adopted.sort(key=_by_position)
            leaf.children.extend(child for _, child in adopted)
        for entry in leaves:
            unclaimed.setdefault(entry[1].parent_pid, []).append(entry)

    roots = [entry for entries in unclaimed.values() for entry in entries]
    roots.sort(key=_by_position)
    return [root for _, root in roots]


def flatten(forest: Sequence[ProcessRecord]) -> Iterator[ProcessRecord]:
    """Walk a forest in pre-order."""
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))

