"""
Economic signal mapping.

Translates a transaction's value and fee rate into presentation
parameters:
- Fee rate -> Hue (deep blue when cheap, fiery red when urgent)
- Value -> Bubble radius (square-root growth, clamped)
- Value -> Whale status (>= 1 BTC)
- Value -> Instrument tier and pitch on a fixed mixolydian scale

All functions are pure.
"""

import math
from dataclasses import dataclass
from typing import Optional

SATS_PER_BTC = 100_000_000

MIN_RADIUS = 20.0
MAX_RADIUS = 180.0
WHALE_HUE = 45.0

# G mixolydian, G3 to A5
SCALE_HZ = (
    196.00, 220.00, 246.94, 261.63, 293.66, 329.63, 349.23, 392.00,
    440.00, 493.88, 523.25, 587.33, 659.25, 698.46, 783.99, 880.00,
)

TIER_WHALE = "whale"
TIER_STEEL_DRUM = "steel_drum"
TIER_MARIMBA = "marimba"
TIER_PLUCK = "pluck"


@dataclass(frozen=True)
class Tier:
    """An instrument tier and the BTC range its pitch is mapped from."""
    name: str
    low: float
    high: float


# Ordered from largest to smallest lower bound
TIERS = (
    Tier(TIER_WHALE, 1.0, math.inf),
    Tier(TIER_STEEL_DRUM, 0.1, 1.0),
    Tier(TIER_MARIMBA, 0.01, 0.1),
    Tier(TIER_PLUCK, 0.00001, 0.01),
)


def btc_from_sats(value: float) -> float:
    return value / SATS_PER_BTC


def hue_from_fee_rate(fee_rate: float) -> float:
    """
    Map a fee rate (sat/vB) to a hue in degrees.

    1 sat/vB -> 210 (deep blue), 50 -> 140 (island green),
    150 -> 45 (sunset orange), 400+ -> 0 (fiery red).
    """
    if fee_rate <= 1:
        return 210.0
    if fee_rate <= 50:
        return 210.0 - ((fee_rate - 1.0) / 49.0) * 70.0
    if fee_rate <= 150:
        return 140.0 - ((fee_rate - 50.0) / 100.0) * 95.0
    return max(0.0, 45.0 - ((fee_rate - 150.0) / 250.0) * 45.0)


def radius_from_value(value: float) -> float:
    """Bubble radius in pixels for a value in satoshis."""
    btc = btc_from_sats(max(0.0, value))
    return max(MIN_RADIUS, min(MAX_RADIUS, math.sqrt(btc * 30000.0) + 30.0))


def is_whale(value: float) -> bool:
    return value >= SATS_PER_BTC


def display_hue(fee_rate: float, whale: bool) -> float:
    """Hue used for drawing; whales always glow warm."""
    return WHALE_HUE if whale else hue_from_fee_rate(fee_rate)


def select_tier(btc_value: float) -> Optional[Tier]:
    """Instrument tier for a BTC value, or None for ghost (zero) values."""
    if btc_value <= 0:
        return None
    for tier in TIERS:
        if btc_value >= tier.low:
            return tier
    # Dust below the pluck range still plucks
    return TIERS[-1]


def pitch_index(btc_value: float, low: float, high: float, scale_length: int = len(SCALE_HZ)) -> int:
    """
    Log-scale quantization of a value onto a scale position.

    The value is clamped into [low, high]; the top of the range lands on
    index 0 and the bottom on the last index.
    """
    clamped = max(low, min(high, btc_value))
    log_min = math.log10(low)
    log_max = math.log10(high)
    ratio = (math.log10(clamped) - log_min) / (log_max - log_min)
    return int(math.floor((1.0 - ratio) * (scale_length - 1)))


def pitch_from_value(btc_value: float, low: float, high: float) -> float:
    """Frequency in Hz for a value within a tier's range."""
    return SCALE_HZ[pitch_index(btc_value, low, high)]
