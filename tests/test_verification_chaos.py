"""Verification Test: Chaos Monkey - Random process termination resilience.

Processes exit between the directory listing and the status read all the
time. Collection must skip them and never raise, and the forest built from
whatever was collected must still contain every collected record.
"""

import multiprocessing
import os
import random
import subprocess
import time
from collections import Counter

from invtop.collector import ProcessCollector
from invtop.forest import build_forest, flatten
from invtop.state import InventoryState


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def spawn(count: int, duration: float = 60.0) -> list[multiprocessing.Process]:
    processes = []
    for _ in range(count):
        p = multiprocessing.Process(target=dummy_worker, args=(duration,))
        p.start()
        processes.append(p)
    return processes


def reap(processes: list[multiprocessing.Process]) -> None:
    for p in processes:
        if p.is_alive():
            p.terminate()
    for p in processes:
        p.join(timeout=1.0)


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_collect_survives_process_termination(self):
        """Test collection keeps working while children are killed mid-scan."""
        processes = spawn(40)
        collector = ProcessCollector("/proc")

        try:
            victims = random.sample(processes, 20)
            for p in victims:
                p.terminate()
                records = collector.collect()
                assert any(r.pid == os.getpid() for r in records)
        finally:
            reap(processes)

        survivors = {p.pid for p in processes if p.is_alive()}
        collected = {r.pid for r in collector.collect()}
        assert survivors <= collected

    def test_rapid_process_creation_and_termination(self):
        """Test refresh stays consistent during rapid process churn."""
        state = InventoryState(ProcessCollector("/proc"))
        processes: list[multiprocessing.Process] = []

        try:
            deadline = time.time() + 3.0
            refreshes = 0
            while time.time() < deadline:
                processes.extend(spawn(3, duration=0.2))
                state.refresh()
                refreshes += 1

                assert Counter(flatten(state.forest)) == Counter(state.flat)
                finished = [p for p in processes if not p.is_alive()]
                for p in finished:
                    p.join(timeout=0.1)
                    processes.remove(p)
        finally:
            reap(processes)

        assert refreshes >= 3

    def test_spawned_children_hang_under_this_process(self):
        """Test live children appear under the test runner in the forest."""
        processes = [subprocess.Popen(["sleep", "60"]) for _ in range(5)]
        try:
            forest = build_forest(ProcessCollector("/proc").collect())
            me = next(node for node in flatten(forest) if node.pid == os.getpid())
            child_pids = {child.pid for child in me.children}
            assert {p.pid for p in processes} <= child_pids
        finally:
            for p in processes:
                p.kill()
                p.wait(timeout=5)
