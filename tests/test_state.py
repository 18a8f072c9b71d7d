"""
Tests for engine-owned state and collaborators: replay guard, cooldown
tracker, keyed locks, clocks, the in-memory ledger and event log.
"""

import threading
import time
import unittest

from dripauth import (
    CooldownNotElapsedError,
    CooldownTracker,
    DripEvent,
    InMemoryEventLog,
    InMemoryLedger,
    InMemoryNonceStore,
    ManualClock,
    NonceAlreadyUsedError,
    ReplayGuard,
    SystemClock,
)
from dripauth.locking import KeyedLock


class TestReplayGuard(unittest.TestCase):

    def setUp(self):
        self.guard = ReplayGuard()

    def test_fresh_nonce_passes(self):
        self.guard.check(1)
        self.assertFalse(self.guard.is_consumed(1))

    def test_consumed_nonce_rejected(self):
        self.guard.consume(1, now=100.0)
        self.assertTrue(self.guard.is_consumed(1))
        with self.assertRaises(NonceAlreadyUsedError):
            self.guard.check(1)
        with self.assertRaises(NonceAlreadyUsedError):
            self.guard.consume(1, now=200.0)

    def test_consumption_is_permanent(self):
        store = InMemoryNonceStore()
        guard = ReplayGuard(store)
        guard.consume(2 ** 256 - 1, now=0.0)
        self.assertEqual(store.consumed_at(2 ** 256 - 1), 0.0)
        self.assertEqual(len(store), 1)

    def test_concurrent_consume_single_winner(self):
        store = InMemoryNonceStore()
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(store.add(42, 0.0))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(results.count(True), 1)


class TestCooldownTracker(unittest.TestCase):

    def setUp(self):
        self.tracker = CooldownTracker()

    def test_first_drip_allowed(self):
        self.tracker.check("github", b"1", 86400, now=0.0)
        self.assertIsNone(self.tracker.last_drip("github", b"1"))
        self.assertIsNone(self.tracker.next_allowed("github", b"1", 86400))

    def test_within_cooldown_rejected(self):
        self.tracker.record("github", b"1", now=1000.0)
        with self.assertRaises(CooldownNotElapsedError) as ctx:
            self.tracker.check("github", b"1", 86400, now=1000.0 + 43200)
        self.assertEqual(ctx.exception.retry_after, 43200)

    def test_exact_boundary_allowed(self):
        self.tracker.record("github", b"1", now=1000.0)
        self.tracker.check("github", b"1", 86400, now=1000.0 + 86400)

    def test_keyed_by_module_and_identifier(self):
        self.tracker.record("github", b"1", now=1000.0)
        self.tracker.check("github", b"2", 86400, now=1001.0)
        self.tracker.check("nft-pass", b"1", 86400, now=1001.0)

    def test_record_overwrites(self):
        self.tracker.record("github", b"1", now=1000.0)
        self.tracker.record("github", b"1", now=5000.0)
        self.assertEqual(self.tracker.last_drip("github", b"1"), 5000.0)
        self.assertEqual(self.tracker.next_allowed("github", b"1", 60), 5060.0)


class TestKeyedLock(unittest.TestCase):

    def test_locks_released_and_dropped(self):
        locks = KeyedLock()
        with locks.hold("a", "b"):
            self.assertEqual(len(locks), 2)
        self.assertEqual(len(locks), 0)

    def test_duplicate_keys_acquired_once(self):
        locks = KeyedLock()
        with locks.hold("a", "a"):
            self.assertEqual(len(locks), 1)

    def test_same_key_serializes(self):
        locks = KeyedLock()
        inside = []
        overlap = []

        def worker():
            with locks.hold("nonce:1"):
                inside.append(1)
                if len(inside) > 1:
                    overlap.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(overlap, [])

    def test_released_on_exception(self):
        locks = KeyedLock()
        with self.assertRaises(RuntimeError):
            with locks.hold("a"):
                raise RuntimeError("boom")
        self.assertEqual(len(locks), 0)


class TestClocks(unittest.TestCase):

    def test_manual_clock(self):
        clock = ManualClock(start=100.0)
        self.assertEqual(clock.advance(50), 150.0)
        clock.set(200.0)
        self.assertEqual(clock.now(), 200.0)

    def test_manual_clock_never_goes_back(self):
        clock = ManualClock(start=100.0)
        with self.assertRaises(ValueError):
            clock.advance(-1)
        with self.assertRaises(ValueError):
            clock.set(99.0)

    def test_system_clock_non_decreasing(self):
        clock = SystemClock()
        readings = [clock.now() for _ in range(100)]
        self.assertEqual(readings, sorted(readings))


class TestInMemoryLedger(unittest.TestCase):

    def test_transfer_moves_funds(self):
        ledger = InMemoryLedger(reserve=100)
        result = ledger.transfer("0xr", 30)
        self.assertTrue(result.success)
        self.assertEqual(result.amount, 30)
        self.assertEqual(ledger.balance_of("0xr"), 30)
        self.assertEqual(ledger.reserve, 70)

    def test_insufficient_reserve(self):
        ledger = InMemoryLedger(reserve=10)
        result = ledger.transfer("0xr", 30)
        self.assertFalse(result.success)
        self.assertIn("insufficient", result.error)
        self.assertEqual(ledger.balance_of("0xr"), 0)
        self.assertEqual(ledger.reserve, 10)

    def test_fund(self):
        ledger = InMemoryLedger()
        ledger.fund(5)
        self.assertEqual(ledger.reserve, 5)


class TestEventLog(unittest.TestCase):

    def _event(self, module_id="github", recipient="0xr", ts=0.0):
        return DripEvent(
            scheme_name="GithubModule",
            identifier=b"1",
            amount=5,
            recipient=recipient,
            module_id=module_id,
            nonce=1,
            timestamp=ts,
        )

    def test_query_filters(self):
        log = InMemoryEventLog()
        log.emit(self._event())
        log.emit(self._event(module_id="nft-pass"))
        log.emit(self._event(recipient="0xother", ts=10.0))

        self.assertEqual(len(log.query(module_id="github")), 2)
        self.assertEqual(len(log.query(recipient="0xother")), 1)
        self.assertEqual(len(log.query(since=5.0)), 1)

    def test_bounded(self):
        log = InMemoryEventLog(max_events=2)
        for i in range(3):
            log.emit(self._event(ts=float(i)))
        self.assertEqual([e.timestamp for e in log.query()], [1.0, 2.0])

    def test_to_dict(self):
        d = self._event().to_dict()
        self.assertEqual(d["identifier"], "0x31")
        self.assertEqual(d["timestamp"], "1970-01-01T00:00:00Z")
        self.assertEqual(d["nonce"], "0x" + "0" * 63 + "1")


if __name__ == '__main__':
    unittest.main()
