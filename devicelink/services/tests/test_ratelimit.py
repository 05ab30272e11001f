"""Tests for :mod:`devicelink.services.ratelimit`."""

from unittest import TestCase
from threading import Thread

from ..ratelimit import RateLimiter


class Ticker(object):
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestRateLimiter(TestCase):
    """The limiter counts requests per key over fixed windows."""

    def setUp(self):
        self.clock = Ticker()
        self.limiter = RateLimiter(clock=self.clock)

    def test_allows_up_to_limit(self):
        """The first ``limit`` calls are allowed; the next is not."""
        results = [self.limiter.allow('k', 3, 60) for _ in range(4)]
        self.assertEqual(results, [True, True, True, False])

    def test_denied_calls_are_not_counted(self):
        """A denied call does not extend or change the window."""
        for _ in range(5):
            self.limiter.allow('k', 2, 60)
        self.clock.now += 61
        self.assertTrue(self.limiter.allow('k', 2, 60))
        self.assertTrue(self.limiter.allow('k', 2, 60))
        self.assertFalse(self.limiter.allow('k', 2, 60))

    def test_window_resets(self):
        """Once the window has elapsed, requests are allowed again."""
        for _ in range(3):
            self.limiter.allow('k', 3, 60)
        self.assertFalse(self.limiter.allow('k', 3, 60))

        self.clock.now += 60
        self.assertFalse(self.limiter.allow('k', 3, 60),
                         'Window is still open at exactly its reset time')
        self.clock.now += 1
        self.assertTrue(self.limiter.allow('k', 3, 60))

    def test_keys_are_independent(self):
        """Exhausting one key does not affect another."""
        self.assertTrue(self.limiter.allow('a', 1, 60))
        self.assertFalse(self.limiter.allow('a', 1, 60))
        self.assertTrue(self.limiter.allow('b', 1, 60))

    def test_operations_are_independent(self):
        """The same identifier is limited separately per operation."""
        self.assertTrue(self.limiter.allow_for('init_session', 's1', 1, 60))
        self.assertFalse(self.limiter.allow_for('init_session', 's1', 1, 60))
        self.assertTrue(self.limiter.allow_for('get_status', 's1', 1, 60))

    def test_zero_limit(self):
        """A limit of zero denies everything."""
        self.assertFalse(self.limiter.allow('k', 0, 60))

    def test_prunes_stale_records(self):
        """When the table is full, records with elapsed windows are dropped."""
        limiter = RateLimiter(clock=self.clock, max_entries=2)
        limiter.allow('a', 1, 10)
        limiter.allow('b', 1, 100)
        self.clock.now += 11
        limiter.allow('c', 1, 10)
        self.assertEqual(len(limiter), 2)
        self.assertFalse(limiter.allow('b', 1, 100), 'Live record survives')

    def test_concurrent_increments(self):
        """Concurrent callers never exceed the limit."""
        allowed = []

        def hammer():
            for _ in range(50):
                if self.limiter.allow('shared', 100, 60):
                    allowed.append(1)

        threads = [Thread(target=hammer) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        self.assertEqual(len(allowed), 100)
