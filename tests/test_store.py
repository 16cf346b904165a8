"""Tests for StateManager."""

import threading

import pytest

from syncstore import StateManager, create_store, set_scheduler
import syncstore.store as _store_mod


class TestState:
    def test_initial_value_is_same_object(self):
        initial = {"items": []}
        s = StateManager(initial)
        assert s.get_state() is initial
        assert s.state is initial

    def test_reads_are_stable(self):
        s = StateManager([1, 2])
        assert s.get_state() is s.get_state()

    def test_set_value(self):
        s = StateManager(0)
        new = {"x": 1}
        s.set_state(new)
        assert s.get_state() is new

    def test_set_with_updater(self):
        s = StateManager(5)
        s.set_state(lambda prev: prev + 1)
        assert s.get_state() == 6

    def test_updater_and_value_agree(self):
        a = StateManager(0)
        b = StateManager(0)
        a.set_state(lambda _: "v")
        b.set_state("v")
        assert a.get_state() == b.get_state()

    def test_update_state(self):
        s = StateManager([1])
        s.update_state(lambda prev: [*prev, 2])
        assert s.get_state() == [1, 2]

    def test_replace_state_stores_callable(self):
        """replace_state never calls its argument."""

        def handler():
            return "called"

        s = StateManager(None)
        s.replace_state(handler)
        assert s.get_state() is handler

    def test_set_state_treats_callable_as_updater(self):
        s = StateManager(None)
        s.set_state(lambda prev: "from updater")
        assert s.get_state() == "from updater"

    def test_repr(self):
        assert "StateManager(5)" in repr(StateManager(5))


class TestNotify:
    def test_every_write_notifies(self):
        s = StateManager(0)
        log = []
        s.subscribe(lambda: log.append(s.get_state()))
        s.set_state(1)
        s.update_state(lambda n: n + 1)
        s.replace_state(7)
        assert log == [1, 2, 7]

    def test_no_dirty_checking(self):
        """Writing the same object still notifies."""
        value = object()
        s = StateManager(value)
        log = []
        s.subscribe(lambda: log.append("x"))
        s.set_state(value)
        assert log == ["x"]

    def test_subscription_order(self):
        s = StateManager(0)
        log = []
        s.subscribe(lambda: log.append("a"))
        s.subscribe(lambda: log.append("b"))
        s.subscribe(lambda: log.append("c"))
        s.set_state(1)
        assert log == ["a", "b", "c"]

    def test_emit_change_without_write(self):
        s = StateManager(0)
        log = []
        s.subscribe(lambda: log.append(s.get_state()))
        s.emit_change()
        assert log == [0]

    def test_listener_error_propagates_and_stops_cycle(self):
        s = StateManager(0)
        log = []

        def boom():
            raise ValueError("boom")

        s.subscribe(boom)
        s.subscribe(lambda: log.append("after"))
        with pytest.raises(ValueError, match="boom"):
            s.set_state(1)
        assert s.get_state() == 1  # value installed before notifying
        assert log == []


class TestSubscribe:
    def test_unsubscribe_before_write(self):
        s = StateManager(0)
        log = []
        unsubscribe = s.subscribe(lambda: log.append("x"))
        unsubscribe()
        s.set_state(1)
        assert log == []

    def test_unsubscribe_twice_is_noop(self):
        s = StateManager(0)
        log = []
        keep = s.subscribe(lambda: log.append("keep"))
        unsubscribe = s.subscribe(lambda: log.append("drop"))
        unsubscribe()
        unsubscribe()
        s.set_state(1)
        assert log == ["keep"]
        assert s.listener_count == 1
        keep()

    def test_duplicate_listener_two_entries_one_key(self):
        s = StateManager(0)
        log = []

        def listener():
            log.append("x")

        first = s.subscribe(listener)
        s.subscribe(listener)
        s.set_state(1)
        assert log == ["x", "x"]

        first()
        assert s.listener_count == 0
        s.set_state(2)
        assert log == ["x", "x"]

    def test_unsubscribe_during_cycle_takes_effect_next_cycle(self):
        s = StateManager(0)
        log = []
        unsubscribe_b = None

        def a():
            log.append("a")
            unsubscribe_b()

        def b():
            log.append("b")

        s.subscribe(a)
        unsubscribe_b = s.subscribe(b)

        s.set_state(1)
        assert log == ["a", "b"]  # b still called this cycle

        s.set_state(2)
        assert log == ["a", "b", "a"]

    def test_subscribe_during_cycle_takes_effect_next_cycle(self):
        s = StateManager(0)
        log = []

        def late():
            log.append("late")

        def a():
            log.append("a")
            if s.get_state() == 1:
                s.subscribe(late)

        s.subscribe(a)
        s.set_state(1)
        assert log == ["a"]
        s.set_state(2)
        assert log == ["a", "a", "late"]

    def test_stores_are_independent(self):
        a = create_store(0)
        b = create_store(0)
        log = []
        a.subscribe(lambda: log.append("a"))
        b.set_state(1)
        assert log == []
        assert a.get_state() == 0


class TestScheduler:
    def _swap(self, scheduler):
        old = _store_mod._scheduler, _store_mod._scheduler_thread
        set_scheduler(scheduler)
        return old

    def _restore(self, old):
        _store_mod._scheduler, _store_mod._scheduler_thread = old

    def test_main_thread_is_synchronous(self):
        calls = []
        old = self._swap(lambda f: (calls.append(f), f()))
        try:
            s = StateManager(0)
            s.set_state(42)
            assert s.get_state() == 42
            assert calls == []
        finally:
            self._restore(old)

    def test_background_thread_marshals(self):
        calls = []
        old = self._swap(lambda f: (calls.append(f), f()))
        try:
            s = StateManager(0)
            done = threading.Event()

            def bg():
                s.update_state(lambda n: n + 99)
                done.set()

            threading.Thread(target=bg).start()
            done.wait(timeout=2)
            assert len(calls) == 1
            assert s.get_state() == 99
        finally:
            self._restore(old)

    def test_deferred_scheduler_defers_write(self):
        queued = []
        old = self._swap(queued.append)
        try:
            s = StateManager(0)
            t = threading.Thread(target=lambda: s.set_state(5))
            t.start()
            t.join(timeout=2)
            assert s.get_state() == 0
            queued[0]()
            assert s.get_state() == 5
        finally:
            self._restore(old)

    def test_clearing_scheduler(self):
        old = self._swap(lambda f: None)
        try:
            set_scheduler(None)
            s = StateManager(0)
            t = threading.Thread(target=lambda: s.set_state(3))
            t.start()
            t.join(timeout=2)
            assert s.get_state() == 3
        finally:
            self._restore(old)
