"""Tests for the keyed row lock registry."""

import threading
import time

from storefront.utils.locks import registered_keys, row_key, row_locks


class TestRowKey:
    def test_format(self):
        assert row_key("warehouse", "wh-1") == "warehouse:wh-1"


class TestRowLocks:
    def test_reentrant_in_same_thread(self):
        with row_locks(row_key("order", "o-1")):
            with row_locks(row_key("order", "o-1"), row_key("product", "p-1")):
                entered = True
        assert entered

    def test_duplicate_keys_are_collapsed(self):
        with row_locks("product:p-1", "product:p-1"):
            pass

    def test_serializes_same_key_across_threads(self):
        inside = []
        overlaps = []

        def worker():
            with row_locks(row_key("warehouse", "wh-1")):
                if inside:
                    overlaps.append(True)
                inside.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []

    def test_opposite_argument_order_does_not_deadlock(self):
        done = []

        def first():
            with row_locks("warehouse:a", "warehouse:b"):
                time.sleep(0.01)
            done.append("first")

        def second():
            with row_locks("warehouse:b", "warehouse:a"):
                time.sleep(0.01)
            done.append("second")

        threads = [threading.Thread(target=first), threading.Thread(target=second)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert sorted(done) == ["first", "second"]


class TestRegistryCleanup:
    def test_keys_are_dropped_after_release(self):
        with row_locks(row_key("order", "o-9"), row_key("product", "p-9")):
            assert {"order:o-9", "product:p-9"} <= registered_keys()
        assert "order:o-9" not in registered_keys()
        assert "product:p-9" not in registered_keys()

    def test_nested_use_keeps_key_until_outermost_exit(self):
        with row_locks("order:o-10"):
            with row_locks("order:o-10"):
                pass
            assert "order:o-10" in registered_keys()
        assert "order:o-10" not in registered_keys()

    def test_many_distinct_keys_leave_nothing_behind(self):
        before = registered_keys()

        def worker(index):
            with row_locks(row_key("loyalty", f"user-{index}"), row_key("product", "p-shared")):
                time.sleep(0.001)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert registered_keys() == before

    def test_key_survives_while_another_thread_waits(self):
        release = threading.Event()
        waiter_done = threading.Event()

        def holder():
            with row_locks("warehouse:busy"):
                release.wait(timeout=5)

        def waiter():
            with row_locks("warehouse:busy"):
                waiter_done.set()

        first = threading.Thread(target=holder)
        first.start()
        while "warehouse:busy" not in registered_keys():
            time.sleep(0.001)
        second = threading.Thread(target=waiter)
        second.start()
        time.sleep(0.01)

        assert not waiter_done.is_set()
        release.set()
        first.join(timeout=5)
        second.join(timeout=5)

        assert waiter_done.is_set()
        assert "warehouse:busy" not in registered_keys()
