"""
Data types shared by the ingestion layer and the presentation core.

Transactions are immutable once queued; the core never mutates them and
drops them as soon as the dispatcher has consumed them.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

ConnectionStatus = Literal["connecting", "connected", "disconnected"]


@dataclass(frozen=True)
class Transaction:
    """A normalized mempool transaction."""
    id: str
    value: int  # satoshis
    fee_rate: float  # sat/vB
    vsize: float = 0.0
    fee: int = 0
    timestamp: float = 0.0


@dataclass(frozen=True)
class Block:
    """A confirmed block announcement."""
    id: str
    height: int
    timestamp: int
    tx_count: int = 0
    size: int = 0
    weight: int = 0


@dataclass(frozen=True)
class MempoolStats:
    """Mempool summary: pending count, virtual size and total fee in satoshis."""
    count: int = 0
    vsize: int = 0
    total_fee: int = 0


@dataclass
class SessionState:
    """Presentation-shell state mirrored from the ingestion callbacks."""
    btc_price: float = 0.0
    last_block: Optional[Block] = None
    mempool_stats: MempoolStats = field(default_factory=MempoolStats)
    is_audio_started: bool = False
    volume: float = 0.5
    connection_status: ConnectionStatus = "connecting"
