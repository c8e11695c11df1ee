"""
Event capture.

Records ingested events as JSON lines so a live session can be rendered
offline later:

    {"t": 1.234, "kind": "tx", "data": {"id": ..., "value": ..., "fee_rate": ...}}
"""

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterator

from mempoolradio.types import Block, MempoolStats, Transaction

KINDS = ("tx", "block", "stats")


@dataclass(frozen=True)
class CaptureEvent:
    t: float
    kind: str
    data: dict

    def to_transaction(self) -> Transaction:
        return Transaction(**self.data)

    def to_block(self) -> Block:
        return Block(**self.data)

    def to_stats(self) -> MempoolStats:
        return MempoolStats(**self.data)


class CaptureWriter:
    """Append-only JSONL writer; timestamps are seconds since creation."""

    def __init__(self, path: str | Path, clock=time.monotonic):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._t0 = clock()
        self._file = open(self.path, "a", encoding="utf-8")
        self.count = 0

    def _write(self, kind: str, record) -> None:
        line = {"t": round(self._clock() - self._t0, 6), "kind": kind, "data": asdict(record)}
        self._file.write(json.dumps(line) + "\n")
        self.count += 1

    def write_transaction(self, tx: Transaction) -> None:
        self._write("tx", tx)

    def write_block(self, block: Block) -> None:
        self._write("block", block)

    def write_stats(self, stats: MempoolStats) -> None:
        self._write("stats", stats)

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def read_capture(path: str | Path) -> Iterator[CaptureEvent]:
    """
    Yield events in file order.

    Raises:
        ValueError: On a line that is not a valid event, with its line number.
    """
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
                t = float(record["t"])
                kind = record["kind"]
                data = record["data"]
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                raise ValueError(f"{path}:{lineno}: malformed capture line ({e})") from e
            if kind not in KINDS or not isinstance(data, dict):
                raise ValueError(f"{path}:{lineno}: unknown event kind {kind!r}")
            yield CaptureEvent(t=t, kind=kind, data=data)


def capture_duration(path: str | Path) -> float:
    """Timestamp of the last event, 0.0 for an empty capture."""
    last = 0.0
    for event in read_capture(path):
        last = max(last, event.t)
    return last
