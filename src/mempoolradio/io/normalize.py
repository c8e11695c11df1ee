"""
Payload normalization.

Mempool feeds disagree on field names and often omit values. Records
are defaulted rather than rejected so that every announced transaction
still gets a sound and a bubble.
"""

import math
import time
import uuid
from typing import Any, Optional

from mempoolradio.types import Block, MempoolStats, Transaction

# Rough satoshis-per-vbyte guess when a feed only reports size
VALUE_PER_VBYTE = 120
FALLBACK_VALUE = 10_000
FALLBACK_FEE_RATE = 1.0


def _first(data: dict[str, Any], *keys: str, default=None):
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _number(value, default: float = 0.0) -> float:
    """Coerce a feed field to float; anything unusable becomes `default`."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def normalize_tx(raw: dict[str, Any]) -> Transaction:
    """
    Build a Transaction from any supported feed shape.

    value: `value`, else sum of `vout[].value`, else vsize * 120, else 10000.
    fee rate: `feeRate` when positive, else fee / vsize, else 1 sat/vB.
    Numeric fields that do not parse count as missing.
    """
    txid = _first(raw, "txid", "id") or uuid.uuid4().hex

    vsize = _number(raw.get("vsize"))
    if not vsize and raw.get("weight") is not None:
        vsize = _number(raw["weight"]) / 4
    vsize = max(0.0, vsize)

    # A zero value is treated as unknown
    value = _number(raw.get("value"))
    if value <= 0 and isinstance(raw.get("vout"), list):
        value = sum(_number(out.get("value")) for out in raw["vout"] if isinstance(out, dict))
    if value <= 0 and vsize:
        value = vsize * VALUE_PER_VBYTE
    if value <= 0:
        value = FALLBACK_VALUE

    fee = max(0.0, _number(raw.get("fee")))
    fee_rate = _number(raw.get("feeRate"))
    if fee_rate <= 0:
        fee_rate = fee / vsize if vsize > 0 and fee else FALLBACK_FEE_RATE

    return Transaction(
        id=str(txid),
        value=int(value),
        fee_rate=fee_rate,
        vsize=vsize,
        fee=int(fee),
        timestamp=_number(_first(raw, "timestamp", "firstSeen"), default=time.time()),
    )


def normalize_block(raw: Optional[dict[str, Any]]) -> Optional[Block]:
    if not raw:
        return None
    return Block(
        id=str(_first(raw, "id", "hash", "block_hash", default="")),
        height=int(_first(raw, "height", "block_height", default=0)),
        timestamp=int(_first(raw, "timestamp", "block_time", "time", default=time.time())),
        tx_count=int(_first(raw, "tx_count", "nTx", "txCount", default=0)),
        size=int(_first(raw, "size", "blockSize", default=0)),
        weight=int(_first(raw, "weight", "blockWeight", default=0)),
    )


def normalize_stats(raw: Optional[dict[str, Any]]) -> Optional[MempoolStats]:
    """Mempool summary; total_fee below 1e8 is taken to be in BTC."""
    if not raw:
        return None
    total_fee = float(raw.get("total_fee") or 0)
    if 0 < total_fee < 100_000_000:
        total_fee = total_fee * 100_000_000
    return MempoolStats(
        count=int(_first(raw, "count", "size", default=0)),
        vsize=int(_first(raw, "vsize", "bytes", default=0)),
        total_fee=int(round(total_fee)),
    )
