from __future__ import annotations

import unittest

from luvatrix_geo.reactive import Computed, Scheduler, Signal


class ReactiveGraphTests(unittest.TestCase):
    def setUp(self) -> None:
        self.scheduler = Scheduler()
        self.source = Signal(1, scheduler=self.scheduler, name="source")
        self.calls = 0

        def join(b: int, c: int) -> tuple[int, int]:
            self.calls += 1
            return (b, c)

        self.plus = Computed(lambda v: v + 1, [self.source], scheduler=self.scheduler, name="plus")
        self.double = Computed(lambda v: v * 2, [self.source], scheduler=self.scheduler, name="double")
        self.joined = Computed(join, [self.plus, self.double], scheduler=self.scheduler, name="joined")

    def test_initial_values_are_computed_on_construction(self) -> None:
        self.assertEqual(self.joined.get(), (2, 2))
        self.assertEqual(self.calls, 1)
        self.assertEqual(self.scheduler.state, "idle")

    def test_diamond_recomputes_once_with_consistent_inputs(self) -> None:
        self.source.set(5)
        self.assertEqual(self.joined.get(), (6, 10))
        self.assertEqual(self.calls, 2)

    def test_batch_coalesces_invalidations(self) -> None:
        seen: list[tuple[int, int]] = []
        self.joined.subscribe(seen.append)
        with self.scheduler.batch():
            self.source.set(3)
            self.source.set(4)
            self.assertEqual(self.calls, 1)
        self.assertEqual(self.calls, 2)
        self.assertEqual(seen, [(5, 8)])

    def test_rank_orders_dependencies(self) -> None:
        self.assertEqual(self.source.rank, 0)
        self.assertEqual(self.plus.rank, 1)
        self.assertEqual(self.joined.rank, 2)

    def test_trigger_during_recompute_runs_follow_up_pass(self) -> None:
        mirror_input = Signal(0, scheduler=self.scheduler, name="mirror_input")
        mirror = Computed(lambda v: v, [mirror_input], scheduler=self.scheduler, name="mirror")
        self.joined.subscribe(lambda value: mirror_input.set(value[0]))
        passes = self.scheduler.passes
        self.source.set(10)
        self.assertEqual(mirror.get(), 11)
        self.assertEqual(self.scheduler.passes, passes + 2)
        self.assertEqual(self.scheduler.state, "idle")

    def test_failed_recompute_keeps_last_value_and_reraises(self) -> None:
        ratio = Computed(lambda v: 10 // v, [self.source], scheduler=self.scheduler, name="ratio")
        self.assertEqual(ratio.get(), 10)
        version = ratio.version
        with self.assertLogs("luvatrix_geo.reactive", level="ERROR"):
            with self.assertRaises(ZeroDivisionError):
                self.source.set(0)
        self.assertEqual(ratio.get(), 10)
        self.assertEqual(ratio.version, version)
        self.assertEqual(ratio.state, "clean")
        self.assertEqual(self.scheduler.state, "idle")
        self.assertFalse(self.scheduler.has_pending)
        self.source.set(5)
        self.assertEqual(ratio.get(), 2)

    def test_equal_values_do_not_invalidate(self) -> None:
        flag = Signal(True, scheduler=self.scheduler, name="flag", equals=lambda a, b: a == b)
        count = Computed(lambda v: v, [flag], scheduler=self.scheduler, name="count")
        version = count.version
        flag.set(True)
        self.assertEqual(count.version, version)
        flag.set(False)
        self.assertEqual(count.version, version + 1)

    def test_unsubscribe_stops_notifications(self) -> None:
        seen: list[tuple[int, int]] = []
        unsubscribe = self.joined.subscribe(seen.append)
        self.source.set(2)
        unsubscribe()
        self.source.set(3)
        self.assertEqual(seen, [(3, 4)])

    def test_listeners_run_after_downstream_nodes_settle(self) -> None:
        seen: list[tuple[int, tuple[int, int]]] = []
        self.plus.subscribe(lambda value: seen.append((value, self.joined.get())))
        self.source.subscribe(lambda value: seen.append((value, self.joined.get())))
        self.source.set(7)
        self.assertEqual(seen, [(7, (8, 14)), (8, (8, 14))])

    def test_listener_sets_inside_batch_publish_once(self) -> None:
        seen: list[tuple[int, int]] = []
        self.joined.subscribe(seen.append)
        with self.scheduler.batch():
            self.source.set(2)
            self.assertEqual(seen, [])
            self.assertTrue(self.scheduler.has_pending)
        self.assertEqual(seen, [(3, 4)])
        self.assertFalse(self.scheduler.has_pending)

    def test_computed_needs_dependencies(self) -> None:
        with self.assertRaises(ValueError):
            Computed(lambda: 1, [], scheduler=self.scheduler)


if __name__ == "__main__":
    unittest.main()
