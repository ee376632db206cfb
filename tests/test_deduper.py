"""Tests for the deduplication store."""

import threading
import time

from signal_llm_bot.services import DEDUP_TTL_SECONDS, Deduper


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestDeduper:
    """Test Deduper semantics with a controlled clock."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.deduper = Deduper(ttl=30.0, clock=self.clock, start_sweeper=False)

    def test_default_ttl(self):
        assert DEDUP_TTL_SECONDS == 30.0

    def test_first_sighting_is_not_seen(self):
        assert self.deduper.seen("h") is False

    def test_second_sighting_within_ttl_is_seen(self):
        assert self.deduper.seen("h") is False
        self.clock.advance(10)
        assert self.deduper.seen("h") is True

    def test_seen_exactly_at_ttl_is_still_duplicate(self):
        self.deduper.seen("h")
        self.clock.advance(30)
        assert self.deduper.seen("h") is True

    def test_duplicates_do_not_extend_window(self):
        """Test that the window runs from the first sighting only."""
        assert self.deduper.seen("h") is False
        self.clock.advance(20)
        assert self.deduper.seen("h") is True
        self.clock.advance(11)
        assert self.deduper.seen("h") is False

    def test_expired_entry_is_restamped(self):
        self.deduper.seen("h")
        self.clock.advance(31)
        assert self.deduper.seen("h") is False
        self.clock.advance(29)
        assert self.deduper.seen("h") is True

    def test_hashes_are_independent(self):
        assert self.deduper.seen("a") is False
        assert self.deduper.seen("b") is False
        assert self.deduper.seen("a") is True

    def test_sweep_removes_only_expired(self):
        self.deduper.seen("old")
        self.clock.advance(20)
        self.deduper.seen("new")
        self.clock.advance(20)

        assert self.deduper.sweep() == 1
        assert len(self.deduper) == 1
        assert self.deduper.seen("new") is True
        assert self.deduper.seen("old") is False

    def test_stop_without_sweeper(self):
        self.deduper.stop()
        assert self.deduper.seen("h") is False


class TestDeduperConcurrency:
    """Test Deduper under concurrent callers."""

    def test_concurrent_callers_same_hash(self):
        """Exactly one of N simultaneous callers sees the hash as new."""
        deduper = Deduper()
        workers = 32
        barrier = threading.Barrier(workers)
        results = []

        def worker():
            barrier.wait()
            results.append(deduper.seen("same-hash"))

        threads = [threading.Thread(target=worker) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        deduper.stop()
        assert len(results) == workers
        assert results.count(False) == 1
        assert results.count(True) == workers - 1

    def test_stop_while_seen_is_called(self):
        """Stopping during concurrent use neither deadlocks nor raises."""
        deduper = Deduper(ttl=0.01)
        barrier = threading.Barrier(5)
        errors = []

        def hammer(prefix):
            barrier.wait()
            try:
                for i in range(500):
                    deduper.seen(f"{prefix}-{i % 50}")
            except Exception as e:  # noqa: BLE001
                errors.append(e)

        threads = [threading.Thread(target=hammer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        barrier.wait()
        deduper.stop()
        deduper.stop()
        for t in threads:
            t.join(timeout=5)

        assert not errors
        assert not any(t.is_alive() for t in threads)
        assert deduper.seen("after-stop") is False

    def test_background_sweep_expires_entries(self):
        deduper = Deduper(ttl=0.05)
        try:
            deduper.seen("h")
            deadline = time.monotonic() + 5
            while len(deduper) and time.monotonic() < deadline:
                time.sleep(0.02)
            assert len(deduper) == 0
        finally:
            deduper.stop()
