"""Voice descriptors, synthesis backend and output contexts."""

from mempoolradio.audio.engine import AudioConfig, AudioEngine
from mempoolradio.audio.output import OfflineContext, PygameContext

__all__ = ["AudioConfig", "AudioEngine", "OfflineContext", "PygameContext"]
