"""Transaction bubble simulation and drawing."""

from mempoolradio.visualizers.bubbles import Bubble, ParticleConfig, ParticleEngine
from mempoolradio.visualizers.renderer import BubbleRenderer, RenderConfig

__all__ = ["Bubble", "ParticleConfig", "ParticleEngine", "BubbleRenderer", "RenderConfig"]
