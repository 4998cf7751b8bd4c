"""
Confidence Scoring

The confidence score is a fold over an ordered list of score steps. Each
pipeline stage contributes `(stage, delta, description)` steps in a fixed
order; the total is never mutated in place, so a score card can be inspected,
compared and replayed in tests.

Stage order:
    HTF STRUCTURE -> DEALING RANGE -> LIQUIDITY -> LIQUIDITY SWEEP ->
    BREAK OF STRUCTURE -> ORDER BLOCK / FVG -> WAVE FILTER ->
    SESSION & VOLATILITY

Blocked signals are returned as Rejection values, never raised.
"""

from dataclasses import dataclass
from functools import reduce
from typing import List, Tuple

# ============================================================================
# STAGES
# ============================================================================

STAGE_HTF = "HTF STRUCTURE"
STAGE_RANGE = "DEALING RANGE"
STAGE_LIQUIDITY = "LIQUIDITY"
STAGE_SWEEP = "LIQUIDITY SWEEP"
STAGE_BOS = "BREAK OF STRUCTURE"
STAGE_ZONES = "ORDER BLOCK / FVG"
STAGE_WAVE = "WAVE FILTER"
STAGE_SESSION = "SESSION & VOLATILITY"

STAGE_ORDER: Tuple[str, ...] = (
    STAGE_HTF,
    STAGE_RANGE,
    STAGE_LIQUIDITY,
    STAGE_SWEEP,
    STAGE_BOS,
    STAGE_ZONES,
    STAGE_WAVE,
    STAGE_SESSION,
)


# ============================================================================
# SCORE CARD
# ============================================================================

@dataclass(frozen=True)
class ScoreStep:
    """One confidence contribution."""
    stage: str
    delta: int
    description: str

    def __str__(self) -> str:
        return f"{self.delta:+d} {self.stage}: {self.description}"


@dataclass(frozen=True)
class ScoreCard:
    """Ordered, immutable collection of score steps."""
    steps: Tuple[ScoreStep, ...] = ()

    def add(self, stage: str, delta: int, description: str) -> "ScoreCard":
        """Return a new card with one more step appended."""
        if stage not in STAGE_ORDER:
            raise ValueError(f"Unknown scoring stage: {stage!r}")
        return ScoreCard(self.steps + (ScoreStep(stage, int(delta), description),))

    @property
    def total(self) -> int:
        return reduce(lambda acc, step: acc + step.delta, self.steps, 0)

    def for_stage(self, stage: str) -> Tuple[ScoreStep, ...]:
        return tuple(step for step in self.steps if step.stage == stage)

    def stage_total(self, stage: str) -> int:
        return sum(step.delta for step in self.for_stage(stage))

    def in_stage_order(self) -> bool:
        """True when steps never go back to an earlier stage."""
        positions = [STAGE_ORDER.index(step.stage) for step in self.steps]
        return positions == sorted(positions)

    def lines(self) -> List[str]:
        return [str(step) for step in self.steps]

    def __len__(self) -> int:
        return len(self.steps)


def quality_rating(score: int) -> str:
    """Human label for a confidence score."""
    if score >= 85:
        return "RARE HIGH QUALITY"
    if score >= 70:
        return "HIGH QUALITY"
    if score >= 55:
        return "GOOD QUALITY"
    return "ACCEPTABLE"


def confluence_count(score: int) -> int:
    """Approximate number of agreeing methodologies for a score."""
    if score >= 85:
        return 4
    if score >= 70:
        return 3
    return 2


# ============================================================================
# REJECTIONS
# ============================================================================

class Rejection:
    """Base class of typed pipeline rejections."""

    score_card: ScoreCard
    rationale_trace: str

    @property
    def reason(self) -> str:
        raise NotImplementedError

    def __str__(self) -> str:
        return self.reason


@dataclass(frozen=True)
class ConfidenceTooLow(Rejection):
    """Aggregated score below the caller's threshold."""
    achieved: int
    threshold: int
    score_card: ScoreCard
    rationale_trace: str

    @property
    def reason(self) -> str:
        return f"Confidence too low: {self.achieved} < {self.threshold}"


@dataclass(frozen=True)
class RiskRewardTooLow(Rejection):
    """Computed risk/reward below the configured floor."""
    risk_reward_ratio: float
    minimum: float
    score_card: ScoreCard
    rationale_trace: str

    @property
    def reason(self) -> str:
        return f"Risk/reward too low: {self.risk_reward_ratio} < {self.minimum}"
