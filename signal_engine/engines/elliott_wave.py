"""
Elliott-Wave Heuristic Filter

Proxy wave count over the most recent swings. Leg amplitudes:
    wave1 = |s1 - s0|, wave3 = |s3 - s2|, wave5 = |s5 - s4|
taken from the last 8 swings (0 when a leg does not exist).

- wave3 longest and a fifth leg present -> blocked (exhaustion)
- wave3 longest and no fifth leg yet    -> blocked (mid-wave, too late)
- otherwise                             -> passes (wave 2/4 completion zone)

A block only penalizes confidence; it never vetoes the signal.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from .primitives import Candle, find_swing_points
from .signal_config import DEFAULT_CONFIG, SignalEngineConfig


@dataclass(frozen=True)
class WaveFilterResult:
    """Outcome of the wave-count filter."""
    block: bool
    wave: str
    pattern: str
    description: str
    reason: str = ""
    wave1: float = 0.0
    wave3: float = 0.0
    wave5: float = 0.0


def _leg(swings, start: int) -> float:
    if len(swings) > start + 1:
        return abs(swings[start + 1].price - swings[start].price)
    return 0.0


def apply_elliott_wave_filter(
    candles: Sequence[Candle],
    config: Optional[SignalEngineConfig] = None,
) -> WaveFilterResult:
    cfg = config or DEFAULT_CONFIG
    swings = find_swing_points(candles, cfg.swings.wave_lookback)

    if len(swings) < cfg.wave.min_swings:
        return WaveFilterResult(
            block=False,
            wave="Unknown",
            pattern="Insufficient data",
            description="Wave count uncertain - allowing trade",
        )

    recent = swings[-cfg.wave.recent_swings:]
    wave1 = _leg(recent, 0)
    wave3 = _leg(recent, 2)
    wave5 = _leg(recent, 4)
    wave3_longest = wave3 > wave1 and wave3 > wave5
    legs = dict(wave1=wave1, wave3=wave3, wave5=wave5)

    if wave5 > 0 and wave3_longest:
        return WaveFilterResult(
            block=True,
            wave="Wave 5",
            pattern="Impulse (Exhaustion)",
            description="Wave 5 exhaustion - NO ENTRY",
            reason="Wave 5 detected - exhaustion phase",
            **legs,
        )

    if wave3 > 0 and wave5 == 0 and wave3_longest:
        return WaveFilterResult(
            block=True,
            wave="Wave 3",
            pattern="Impulse",
            description="Wave 3 already in motion - too late for entry",
            reason="Mid-Wave 3 entry (too late)",
            **legs,
        )

    return WaveFilterResult(
        block=False,
        wave="Wave 2 or 4",
        pattern="Impulse Setup",
        description="Valid wave structure for entry (Wave 2/4 completion zone)",
        **legs,
    )
