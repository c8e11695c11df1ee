"""Bitcoin mempool radio: transactions as notes and drifting bubbles."""

from mempoolradio.audio.engine import AudioConfig, AudioEngine
from mempoolradio.core.dispatcher import BeatDispatcher, DispatcherConfig, PendingQueue
from mempoolradio.types import Block, MempoolStats, SessionState, Transaction
from mempoolradio.visualizers.bubbles import ParticleConfig, ParticleEngine

__version__ = "0.1.0"
__all__ = [
    "AudioConfig",
    "AudioEngine",
    "BeatDispatcher",
    "DispatcherConfig",
    "PendingQueue",
    "Block",
    "MempoolStats",
    "SessionState",
    "Transaction",
    "ParticleConfig",
    "ParticleEngine",
]
