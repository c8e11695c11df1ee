"""Tests for JSON-lines event capture."""

import json

import pytest

from mempoolradio.io.capture import CaptureWriter, capture_duration, read_capture
from mempoolradio.types import Block, MempoolStats, Transaction


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_write_and_read_back(tmp_path):
    clock = FakeClock()
    path = tmp_path / "session.jsonl"
    with CaptureWriter(path, clock=clock) as writer:
        writer.write_transaction(Transaction(id="a", value=5000, fee_rate=3.0))
        clock.now = 101.5
        writer.write_block(Block(id="00", height=850_000, timestamp=1))
        clock.now = 102.0
        writer.write_stats(MempoolStats(count=10, vsize=20, total_fee=30))
        assert writer.count == 3

    events = list(read_capture(path))
    assert [(e.t, e.kind) for e in events] == [(0.0, "tx"), (1.5, "block"), (2.0, "stats")]
    assert events[0].to_transaction() == Transaction(id="a", value=5000, fee_rate=3.0)
    assert events[1].to_block().height == 850_000
    assert events[2].to_stats().total_fee == 30
    assert capture_duration(path) == 2.0


def test_blank_lines_skipped(tmp_path):
    path = tmp_path / "c.jsonl"
    line = json.dumps({"t": 0.5, "kind": "tx", "data": {"id": "x", "value": 1, "fee_rate": 1.0}})
    path.write_text(f"\n{line}\n\n")
    assert len(list(read_capture(path))) == 1


@pytest.mark.parametrize(
    "bad",
    [
        "{not json",
        json.dumps({"t": 1.0, "kind": "tx"}),
        json.dumps({"t": "soon", "kind": "tx", "data": {}}),
        json.dumps({"t": 1.0, "kind": "mystery", "data": {}}),
    ],
)
def test_malformed_line_reports_line_number(tmp_path, bad):
    path = tmp_path / "c.jsonl"
    good = json.dumps({"t": 0.0, "kind": "stats", "data": {"count": 1, "vsize": 1, "total_fee": 1}})
    path.write_text(f"{good}\n{bad}\n")
    with pytest.raises(ValueError, match=":2:"):
        list(read_capture(path))


def test_empty_capture(tmp_path):
    path = tmp_path / "empty.jsonl"
    path.write_text("")
    assert capture_duration(path) == 0.0
