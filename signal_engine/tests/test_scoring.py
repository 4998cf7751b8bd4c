"""
Unit tests for the score card and rejections.
"""

import pytest

from signal_engine.engines.scoring import (
    STAGE_BOS,
    STAGE_HTF,
    STAGE_ORDER,
    STAGE_SESSION,
    STAGE_SWEEP,
    ConfidenceTooLow,
    Rejection,
    RiskRewardTooLow,
    ScoreCard,
    ScoreStep,
    confluence_count,
    quality_rating,
)


class TestScoreCard:
    """Tests for the immutable score fold."""

    def test_empty_card(self):
        card = ScoreCard()
        assert card.total == 0
        assert len(card) == 0
        assert card.in_stage_order()

    def test_add_returns_new_card(self):
        card = ScoreCard()
        updated = card.add(STAGE_HTF, 15, "BULLISH structure")

        assert len(card) == 0
        assert len(updated) == 1
        assert updated.total == 15

    def test_total_is_sum_of_steps(self):
        card = (
            ScoreCard()
            .add(STAGE_HTF, 15, "bias")
            .add(STAGE_SWEEP, -3, "no sweep")
            .add(STAGE_BOS, 20, "bos")
            .add(STAGE_SESSION, -10, "asian session")
            .add(STAGE_SESSION, 5, "volume expansion")
        )

        assert card.total == 27
        assert card.stage_total(STAGE_SESSION) == -5
        assert len(card.for_stage(STAGE_SESSION)) == 2
        assert card.in_stage_order()

    def test_out_of_order_detected(self):
        card = ScoreCard().add(STAGE_BOS, 20, "bos").add(STAGE_HTF, 15, "bias")
        assert not card.in_stage_order()

    def test_unknown_stage_rejected(self):
        with pytest.raises(ValueError):
            ScoreCard().add("MOMENTUM", 5, "rsi")

    def test_step_rendering(self):
        assert str(ScoreStep(STAGE_HTF, 15, "bias")) == "+15 HTF STRUCTURE: bias"
        assert str(ScoreStep(STAGE_SWEEP, -3, "none")) == "-3 LIQUIDITY SWEEP: none"

    def test_lines(self):
        card = ScoreCard().add(STAGE_HTF, -5, "No clear HTF bias")
        assert card.lines() == ["-5 HTF STRUCTURE: No clear HTF bias"]

    def test_cards_compare_by_value(self):
        a = ScoreCard().add(STAGE_HTF, 15, "bias")
        b = ScoreCard().add(STAGE_HTF, 15, "bias")
        assert a == b

    def test_stage_order_constant(self):
        assert STAGE_ORDER[0] == STAGE_HTF
        assert STAGE_ORDER[-1] == STAGE_SESSION
        assert len(STAGE_ORDER) == 8


class TestQuality:
    """Tests for quality labels and confluence counts."""

    @pytest.mark.parametrize(
        "score,label,count",
        [
            (90, "RARE HIGH QUALITY", 4),
            (85, "RARE HIGH QUALITY", 4),
            (70, "HIGH QUALITY", 3),
            (60, "GOOD QUALITY", 2),
            (40, "ACCEPTABLE", 2),
        ],
    )
    def test_labels(self, score, label, count):
        assert quality_rating(score) == label
        assert confluence_count(score) == count


class TestRejections:
    """Tests for rejection values."""

    def test_confidence_too_low(self):
        rejection = ConfidenceTooLow(achieved=40, threshold=95, score_card=ScoreCard(), rationale_trace="")

        assert isinstance(rejection, Rejection)
        assert rejection.reason == "Confidence too low: 40 < 95"
        assert str(rejection) == rejection.reason

    def test_risk_reward_too_low(self):
        rejection = RiskRewardTooLow(risk_reward_ratio=1.1, minimum=1.2, score_card=ScoreCard(), rationale_trace="")

        assert isinstance(rejection, Rejection)
        assert rejection.reason == "Risk/reward too low: 1.1 < 1.2"
