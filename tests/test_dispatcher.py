"""Tests for the swing-quantized beat dispatcher."""

import asyncio
import random

import pytest

from mempoolradio.core.dispatcher import (
    BeatDispatcher,
    DispatcherConfig,
    PendingQueue,
    is_strong_beat,
    next_delay,
    trigger_probability,
)
from mempoolradio.types import Transaction


class FixedRandom(random.Random):
    """Random source that always returns the same draw."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


def _txs(n: int, start: int = 0) -> list[Transaction]:
    return [Transaction(id=f"tx{i}", value=10_000 + i, fee_rate=5.0) for i in range(start, start + n)]


class TestNextDelay:
    def test_calm_swing_pair(self):
        assert next_delay(0, 0) == pytest.approx(280.0)
        assert next_delay(1, 0) == pytest.approx(120.0)

    def test_busy_swing_pair(self):
        speedup = 1 + 101 / 150
        assert next_delay(0, 101) == pytest.approx(200 * 1.8 / speedup)
        # 200 * 0.2 / speedup ~ 23.9 ms, floored
        assert next_delay(1, 101) == 40.0

    def test_speedup_is_capped(self):
        assert next_delay(0, 5000) == pytest.approx(360.0 / 2.5)
        assert next_delay(0, 50_000) == pytest.approx(360.0 / 2.5)

    def test_never_below_floor(self):
        for beat in range(16):
            for q_len in (0, 1, 50, 100, 101, 300, 1000, 5000, 10**6):
                assert next_delay(beat, q_len) >= 40.0

    def test_floor_applies(self):
        # 200 * 0.2 / 2.5 = 16 ms before the floor
        assert next_delay(1, 5000) == 40.0

    def test_custom_config(self):
        cfg = DispatcherConfig(base_interval_ms=100.0)
        assert next_delay(0, 0, cfg) == pytest.approx(140.0)


def test_strong_beats_and_probabilities():
    assert [b for b in range(16) if is_strong_beat(b)] == [0, 4, 8, 12]
    assert trigger_probability(0) == 0.95
    assert trigger_probability(3) == 0.6


class TestPendingQueue:
    def test_fifo(self):
        q = PendingQueue()
        for tx in _txs(3):
            q.push(tx)
        assert [q.pop().id for _ in range(3)] == ["tx0", "tx1", "tx2"]
        assert q.pop() is None

    def test_under_cap_keeps_everything(self):
        q = PendingQueue(cap=10, trim=3)
        for tx in _txs(10):
            assert q.push(tx) == 0
        assert len(q) == 10

    def test_push_at_cap_trims(self):
        q = PendingQueue(items=_txs(5000))
        dropped = q.push(Transaction(id="new", value=1, fee_rate=1.0))
        assert len(q) <= 4500
        assert dropped == 501
        ids = [tx.id for tx in q]
        assert "tx499" not in ids
        assert ids[-1] == "new"

    def test_backlog_above_cap(self):
        q = PendingQueue(items=_txs(5200))
        q.push(Transaction(id="newest", value=1, fee_rate=1.0))
        ids = [tx.id for tx in q]
        assert len(q) <= 4700
        assert not set(f"tx{i}" for i in range(500)) & set(ids)
        assert ids[-1] == "newest"

    def test_length_never_exceeds_cap(self):
        q = PendingQueue(cap=50, trim=5)
        for tx in _txs(1000):
            q.push(tx)
            assert len(q) <= 50

    def test_clear(self):
        q = PendingQueue(items=_txs(4))
        q.clear()
        assert len(q) == 0


class TestBeatDispatcher:
    def test_empty_queue_never_raises(self):
        popped = []
        d = BeatDispatcher(PendingQueue(), lambda tx, beat: popped.append(tx), seed=1)
        for _ in range(64):
            result = d.tick()
            assert result.transaction is None
        assert popped == []

    def test_beat_index_wraps(self):
        d = BeatDispatcher(PendingQueue(), lambda tx, beat: None, seed=1)
        beats = [d.tick().beat_index for _ in range(17)]
        assert beats[:16] == list(range(16))
        assert beats[16] == 0
        assert d.beat_index == 1

    def test_strong_beats_fire_with_nonempty_queue(self):
        queue = PendingQueue(items=_txs(100))
        fired = []
        d = BeatDispatcher(queue, lambda tx, beat: fired.append(beat), rng=FixedRandom(0.9))
        results = [d.tick() for _ in range(20)]

        for r in results:
            if r.beat_index % 4 == 0:
                assert r.transaction is not None
            else:
                assert r.transaction is None
        assert fired == [0, 4, 8, 12, 0]

    def test_popped_in_arrival_order(self):
        queue = PendingQueue(items=_txs(5))
        got = []
        d = BeatDispatcher(queue, lambda tx, beat: got.append(tx.id), rng=FixedRandom(0.0))
        for _ in range(5):
            d.tick()
        assert got == ["tx0", "tx1", "tx2", "tx3", "tx4"]

    def test_ghost_on_even_idle_beats(self):
        ghosts = []
        d = BeatDispatcher(
            PendingQueue(), lambda tx, beat: None, on_ghost=ghosts.append, rng=FixedRandom(0.1)
        )
        results = [d.tick() for _ in range(16)]
        assert ghosts == list(range(0, 16, 2))
        assert all(r.ghost == (r.beat_index % 2 == 0) for r in results)

    def test_ghosts_disabled(self):
        ghosts = []
        d = BeatDispatcher(
            PendingQueue(),
            lambda tx, beat: None,
            on_ghost=ghosts.append,
            ghosts_enabled=lambda: False,
            rng=FixedRandom(0.1),
        )
        for _ in range(16):
            d.tick()
        assert ghosts == []

    def test_tick_reports_delay(self):
        queue = PendingQueue(items=_txs(10))
        d = BeatDispatcher(queue, lambda tx, beat: None, rng=FixedRandom(0.99))
        result = d.tick()
        assert result.delay_ms == pytest.approx(next_delay(0, 10))

    def test_same_seed_same_decisions(self):
        def run(seed):
            queue = PendingQueue(items=_txs(30))
            d = BeatDispatcher(queue, lambda tx, beat: None, seed=seed)
            return [(r.beat_index, r.transaction.id if r.transaction else None, r.ghost)
                    for r in (d.tick() for _ in range(40))]

        assert run(11) == run(11)

    def test_run_sleeps_for_computed_delays(self):
        delays = []
        d = BeatDispatcher(PendingQueue(), lambda tx, beat: None, rng=FixedRandom(0.99))

        async def fake_sleep(seconds):
            delays.append(seconds)
            if len(delays) == 4:
                d.stop()

        asyncio.run(d.run(sleep=fake_sleep))
        assert delays == pytest.approx([0.28, 0.12, 0.28, 0.12])
        assert not d.running
