"""
Signal Generator - Market-Structure Pipeline

Runs the fixed stage sequence over one immutable candle snapshot:

 1. HTF structure        -> bias (+15 / -5)
 2. Dealing range        -> premium (+15), bias/zone misalignment (-10)
 3. Liquidity pools      -> none at all (-3)
 4. Liquidity sweep      -> full (+20) / partial (+10) / none (-3)
 5. Break of structure   -> valid (+20) / none (-3)
 6. Order block / FVG    -> retest zone (+15) / none (-3)
 7. Wave filter          -> pass (+10) / block (-5)
 8. Session & volatility -> category adjustment, volume expansion (+5)

Gate 1 rejects scores below the caller's minimum confidence; gate 2 rejects
setups whose risk/reward is below the configured floor. Both outcomes are
returned as Rejection values.

The rationale trace is rendered from the stage outputs alone, so identical
inputs give a byte-identical trace.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union

from .break_of_structure import BOSValidation, validate_bos
from .elliott_wave import WaveFilterResult, apply_elliott_wave_filter
from .htf_bias import (
    DealingRange,
    HTFBias,
    analyze_htf_structure,
    build_dealing_range,
    get_htf_timeframe,
    resolve_direction,
)
from .liquidity import LiquidityPools, LiquiditySweep, SweepGrade, identify_liquidity_pools, validate_liquidity_sweep
from .order_blocks import (
    FairValueGap,
    OrderBlock,
    find_displacement_candles,
    find_fair_value_gaps,
    find_order_blocks,
    has_retest_zone,
)
from .primitives import Candle, classify_trend
from .scoring import (
    STAGE_BOS,
    STAGE_HTF,
    STAGE_LIQUIDITY,
    STAGE_RANGE,
    STAGE_SESSION,
    STAGE_SWEEP,
    STAGE_WAVE,
    STAGE_ZONES,
    ConfidenceTooLow,
    Rejection,
    RiskRewardTooLow,
    ScoreCard,
    confluence_count,
    quality_rating,
)
from .session_filter import MarketCategory, SessionFilterResult, apply_session_filter, identify_market_type
from .signal_config import DEFAULT_CONFIG, SignalEngineConfig
from .signals import Bias, Direction, OrderType, OrderTypeLike, Trend, coerce_order_type
from .trade_setup import TradeSetup, generate_trade_setup, price_decimals

logger = logging.getLogger(__name__)


# ============================================================================
# ANALYSIS SUMMARY
# ============================================================================

def _require_direction(value, owner: str) -> None:
    if not isinstance(value, Direction):
        raise ValueError(f"{owner}.signal must be a Direction, got {value!r}")


def _require_strings(values, owner: str, name: str) -> None:
    if not isinstance(values, tuple) or not all(isinstance(v, str) for v in values):
        raise ValueError(f"{owner}.{name} must be a tuple of strings")


@dataclass(frozen=True)
class IctAnalysis:
    """Liquidity, order block and FVG findings."""
    order_blocks: Tuple[str, ...]
    fair_value_gaps: Tuple[str, ...]
    liquidity_zones: Tuple[str, ...]
    description: str
    signal: Direction

    def __post_init__(self):
        _require_strings(self.order_blocks, "IctAnalysis", "order_blocks")
        _require_strings(self.fair_value_gaps, "IctAnalysis", "fair_value_gaps")
        _require_strings(self.liquidity_zones, "IctAnalysis", "liquidity_zones")
        _require_direction(self.signal, "IctAnalysis")


@dataclass(frozen=True)
class SmcAnalysis:
    """Structure findings."""
    market_structure: str
    break_of_structure: bool
    description: str
    signal: Direction
    change_of_character: bool = False

    def __post_init__(self):
        if not isinstance(self.break_of_structure, bool):
            raise ValueError("SmcAnalysis.break_of_structure must be a bool")
        _require_direction(self.signal, "SmcAnalysis")


@dataclass(frozen=True)
class WaveAnalysis:
    """Wave-count findings."""
    current_wave: str
    wave_pattern: str
    description: str
    blocked: bool
    signal: Direction

    def __post_init__(self):
        if not self.current_wave:
            raise ValueError("WaveAnalysis.current_wave must not be empty")
        _require_direction(self.signal, "WaveAnalysis")


@dataclass(frozen=True)
class SessionAnalysis:
    """Session and volatility findings."""
    category: MarketCategory
    description: str
    confidence_adjustment: int
    volume_expansion: bool
    atr_ratio: float
    volume_ratio: float
    signal: Direction

    def __post_init__(self):
        if not isinstance(self.category, MarketCategory):
            raise ValueError(f"SessionAnalysis.category must be a MarketCategory, got {self.category!r}")
        if self.atr_ratio < 0 or self.volume_ratio < 0:
            raise ValueError("SessionAnalysis ratios must be non-negative")
        _require_direction(self.signal, "SessionAnalysis")


@dataclass(frozen=True)
class AnalysisSummary:
    """Per-methodology breakdown attached to a signal."""
    timeframes: Tuple[str, str]
    confluence_count: int
    quality: str
    ict: IctAnalysis
    smc: SmcAnalysis
    elliott_wave: WaveAnalysis
    session: SessionAnalysis

    def __post_init__(self):
        if len(self.timeframes) != 2 or not all(self.timeframes):
            raise ValueError(f"AnalysisSummary.timeframes must be (working, htf), got {self.timeframes!r}")
        if not 2 <= self.confluence_count <= 4:
            raise ValueError(f"AnalysisSummary.confluence_count out of range: {self.confluence_count}")
        parts = (
            (self.ict, IctAnalysis),
            (self.smc, SmcAnalysis),
            (self.elliott_wave, WaveAnalysis),
            (self.session, SessionAnalysis),
        )
        for part, expected in parts:
            if not isinstance(part, expected):
                raise ValueError(f"AnalysisSummary expects {expected.__name__}, got {type(part).__name__}")


# ============================================================================
# SIGNAL
# ============================================================================

@dataclass(frozen=True)
class TradeSignal:
    """A scored, fully specified trade signal."""
    symbol: str
    timeframe: str
    htf_timeframe: str
    order_type: OrderType
    methods: Tuple[str, ...]
    direction: Direction
    entry_price: float
    stop_loss: float
    take_profit_1: float
    take_profit_2: float
    take_profit_3: float
    tp1_percentage: float
    tp2_percentage: float
    tp3_percentage: float
    confidence_score: int
    risk_reward_ratio: float
    current_price: float
    score_card: ScoreCard
    rationale_trace: str
    analysis_summary: AnalysisSummary

    @property
    def take_profits(self) -> Tuple[float, float, float]:
        return self.take_profit_1, self.take_profit_2, self.take_profit_3


SignalResult = Union[TradeSignal, Rejection]


def is_signal(result: SignalResult) -> bool:
    """True when the pipeline produced a signal rather than a rejection."""
    return isinstance(result, TradeSignal)


# ============================================================================
# RATIONALE TRACE
# ============================================================================

TRACE_RULE = "=" * 40


class _Trace:
    """Plain-text rationale trace made of titled sections."""

    def __init__(self, title: str):
        self._lines: List[str] = [TRACE_RULE, title, TRACE_RULE]

    def section(self, name: str, *lines: str) -> None:
        self._lines.append("")
        self._lines.append(f"[{name}]")
        self._lines.extend(f"  {line}" for line in lines)

    def render(self) -> str:
        return "\n".join(self._lines)


def _fmt(value: float) -> str:
    return f"{value:.{price_decimals(value)}f}"


# ============================================================================
# ENGINE
# ============================================================================

@dataclass(frozen=True)
class _StageOutputs:
    htf: HTFBias
    dealing_range: DealingRange
    trend: Trend
    direction: Direction
    pools: LiquidityPools
    sweep: LiquiditySweep
    bos: BOSValidation
    order_blocks: Tuple[OrderBlock, ...]
    fvgs: Tuple[FairValueGap, ...]
    retest_zone: bool
    wave: WaveFilterResult
    session: SessionFilterResult


class SignalEngine:
    """
    Deterministic market-structure signal engine.

    The engine holds configuration only; every call to generate() works on
    the candle lists it is given and shares no state with other calls.
    """

    def __init__(self, config: Optional[SignalEngineConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def generate(
        self,
        symbol: str,
        timeframe: str,
        order_type: OrderTypeLike,
        methods: Sequence[str],
        min_confidence: Optional[int],
        candles: Sequence[Candle],
        htf_candles: Sequence[Candle],
        current_price: Optional[float] = None,
        as_of: Optional[datetime] = None,
    ) -> SignalResult:
        """
        Run the full pipeline.

        Args:
            symbol: Instrument symbol, e.g. "BTCUSDT"
            timeframe: Working timeframe, e.g. "15m"
            order_type: "market" or "limit"; only changes the entry price
            methods: Advisory methodology labels, carried into the signal
            min_confidence: Gate 1 threshold (None -> configured default)
            candles: Working-timeframe candles, time ascending
            htf_candles: Higher-timeframe candles, time ascending
            current_price: Live price (defaults to the last close)
            as_of: Evaluation time for the session filter (defaults to the
                last candle's time)

        Returns:
            TradeSignal, ConfidenceTooLow or RiskRewardTooLow

        Raises:
            ValueError: Empty symbol, unknown order type, or no price at all
        """
        if not symbol or not symbol.strip():
            raise ValueError("symbol must not be empty")
        symbol = symbol.strip().upper()
        order_type = coerce_order_type(order_type)
        threshold = self.config.default_min_confidence if min_confidence is None else int(min_confidence)

        candles = tuple(candles)
        htf_candles = tuple(htf_candles)
        if current_price is None:
            if not candles:
                raise ValueError("current_price is required when no candles are supplied")
            current_price = candles[-1].close

        htf_timeframe = get_htf_timeframe(timeframe)
        outputs, card = self.evaluate(symbol, candles, htf_candles, current_price, as_of)

        trace = _Trace(f"SIGNAL ANALYSIS: {symbol} {timeframe} ({order_type})")
        self._trace_stages(trace, outputs, card, htf_timeframe, current_price)

        score = card.total
        if score < threshold:
            trace.section(
                "CONFIDENCE",
                f"Base Score: {score}",
                f"Minimum Required: {threshold}",
                f"Score below minimum threshold ({score} < {threshold})",
            )
            trace.section("FINAL SETUP", "No setup: confidence too low")
            logger.info("%s %s rejected: confidence %d < %d", symbol, timeframe, score, threshold)
            return ConfidenceTooLow(
                achieved=score,
                threshold=threshold,
                score_card=card,
                rationale_trace=trace.render(),
            )

        quality = quality_rating(score)
        trace.section(
            "CONFIDENCE",
            f"Base Score: {score}",
            f"Minimum Required: {threshold}",
            f"Score: {score}/100 ({quality})",
        )

        setup = generate_trade_setup(
            candles,
            outputs.direction,
            order_type,
            current_price,
            outputs.order_blocks,
            outputs.fvgs,
            self.config,
        )

        minimum = self.config.trade_setup.min_risk_reward
        if setup.risk_reward_ratio < minimum:
            trace.section(
                "FINAL SETUP",
                "Risk management failed",
                f"RR Ratio: {setup.risk_reward_ratio} (minimum {minimum} required)",
            )
            logger.info(
                "%s %s rejected: risk/reward %.1f < %.1f",
                symbol, timeframe, setup.risk_reward_ratio, minimum,
            )
            return RiskRewardTooLow(
                risk_reward_ratio=setup.risk_reward_ratio,
                minimum=minimum,
                score_card=card,
                rationale_trace=trace.render(),
            )

        trace.section("FINAL SETUP", *self._setup_lines(setup, score))

        signal = TradeSignal(
            symbol=symbol,
            timeframe=timeframe,
            htf_timeframe=htf_timeframe,
            order_type=order_type,
            methods=tuple(methods),
            direction=outputs.direction,
            entry_price=setup.entry_price,
            stop_loss=setup.stop_loss,
            take_profit_1=setup.take_profit_1,
            take_profit_2=setup.take_profit_2,
            take_profit_3=setup.take_profit_3,
            tp1_percentage=setup.tp1_percentage,
            tp2_percentage=setup.tp2_percentage,
            tp3_percentage=setup.tp3_percentage,
            confidence_score=score,
            risk_reward_ratio=setup.risk_reward_ratio,
            current_price=current_price,
            score_card=card,
            rationale_trace=trace.render(),
            analysis_summary=self._summarize(outputs, score, quality, timeframe, htf_timeframe),
        )
        logger.info(
            "%s %s signal: %s entry=%s confidence=%d rr=%.1f",
            symbol, timeframe, signal.direction, signal.entry_price, score, signal.risk_reward_ratio,
        )
        return signal

    # ------------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------------

    def evaluate(
        self,
        symbol: str,
        candles: Sequence[Candle],
        htf_candles: Sequence[Candle],
        current_price: float,
        as_of: Optional[datetime] = None,
    ) -> Tuple[_StageOutputs, ScoreCard]:
        """Run stages 1-8 and fold their deltas into a score card."""
        cfg = self.config
        weights = cfg.weights
        card = ScoreCard()

        # 1. HTF structure
        htf = analyze_htf_structure(htf_candles, current_price, cfg)
        if htf.bias is not Bias.NONE:
            card = card.add(STAGE_HTF, weights.htf_bias, htf.description)
        else:
            card = card.add(STAGE_HTF, weights.htf_no_bias, "No clear HTF bias")
        logger.debug("HTF bias: %s", htf.description)

        # 2. Dealing range and direction
        dealing_range = build_dealing_range(htf, current_price)
        trend = classify_trend(candles, cfg.primitives.trend_window)
        direction = resolve_direction(htf, trend)
        if dealing_range.is_premium:
            card = card.add(STAGE_RANGE, weights.premium_zone, "Price in premium zone")
        if htf.bias is Bias.BULLISH and not dealing_range.is_discount:
            card = card.add(STAGE_RANGE, weights.zone_misaligned, "Bullish bias but not in discount zone")
        elif htf.bias is Bias.BEARISH and not dealing_range.is_premium:
            card = card.add(STAGE_RANGE, weights.zone_misaligned, "Bearish bias but not in premium zone")

        # 3. Liquidity pools
        pools = identify_liquidity_pools(candles, cfg)
        if pools.is_empty:
            card = card.add(STAGE_LIQUIDITY, weights.no_liquidity, "No equal liquidity pools detected")

        # 4. Liquidity sweep
        sweep = validate_liquidity_sweep(candles, pools, direction, current_price, cfg)
        if sweep.grade is SweepGrade.FULL:
            card = card.add(STAGE_SWEEP, weights.sweep_full, sweep.description)
        elif sweep.grade is SweepGrade.PARTIAL:
            card = card.add(STAGE_SWEEP, weights.sweep_partial, sweep.description)
        else:
            card = card.add(STAGE_SWEEP, weights.sweep_none, sweep.description)
        logger.debug("Sweep: %s", sweep.description)

        # 5. Break of structure
        bos = validate_bos(candles, direction, cfg)
        card = card.add(STAGE_BOS, weights.bos_valid if bos.valid else weights.bos_invalid, bos.description)
        logger.debug("BOS: %s", bos.description)

        # 6. Order blocks / FVGs
        displacement = find_displacement_candles(candles, cfg)
        order_blocks = tuple(find_order_blocks(candles, displacement, current_price))
        fvgs = tuple(find_fair_value_gaps(candles, displacement, cfg))
        retest_zone = has_retest_zone(order_blocks, fvgs, direction, current_price)
        if retest_zone:
            card = card.add(STAGE_ZONES, weights.retest_zone, "Valid retest zone identified")
        else:
            card = card.add(STAGE_ZONES, weights.no_retest_zone, "No specific retest zone")

        # 7. Wave filter
        wave = apply_elliott_wave_filter(candles, cfg)
        if wave.block:
            card = card.add(STAGE_WAVE, weights.wave_block, wave.description)
            logger.debug("Wave filter warning: %s", wave.reason)
        else:
            card = card.add(STAGE_WAVE, weights.wave_pass, wave.description)

        # 8. Session and volatility
        session = apply_session_filter(identify_market_type(symbol), candles, as_of, cfg)
        card = card.add(STAGE_SESSION, session.confidence_adjustment, session.description)
        if session.volume_expansion:
            card = card.add(STAGE_SESSION, weights.volume_expansion, "Volume expansion")
        logger.debug("Session: %s", session.description)

        outputs = _StageOutputs(
            htf=htf,
            dealing_range=dealing_range,
            trend=trend,
            direction=direction,
            pools=pools,
            sweep=sweep,
            bos=bos,
            order_blocks=order_blocks,
            fvgs=fvgs,
            retest_zone=retest_zone,
            wave=wave,
            session=session,
        )
        return outputs, card

    # ------------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------------

    @staticmethod
    def _deltas(card: ScoreCard, stage: str) -> List[str]:
        return [f"{step.delta:+d} {step.description}" for step in card.for_stage(stage)]

    def _trace_stages(
        self,
        trace: _Trace,
        out: _StageOutputs,
        card: ScoreCard,
        htf_timeframe: str,
        current_price: float,
    ) -> None:
        rng = out.dealing_range

        trace.section(
            f"HTF STRUCTURE ({htf_timeframe})",
            out.htf.description,
            *self._deltas(card, STAGE_HTF),
        )

        if out.htf.bias is Bias.NONE:
            direction_line = f"Direction: {out.direction.value.upper()} (from current trend: {out.trend})"
        else:
            direction_line = f"Direction: {out.direction.value.upper()} (from HTF bias)"
        trace.section(
            "DEALING RANGE",
            f"Range: {_fmt(rng.low)} - {_fmt(rng.high)}",
            f"Equilibrium: {_fmt(rng.equilibrium)}",
            f"Current: {_fmt(current_price)} ({rng.position_pct:.1f}% of range)",
            f"Zone: {rng.zone}",
            direction_line,
            *self._deltas(card, STAGE_RANGE),
        )

        trace.section(
            "LIQUIDITY",
            f"Equal Highs: {len(out.pools.highs)}",
            f"Equal Lows: {len(out.pools.lows)}",
            *(self._deltas(card, STAGE_LIQUIDITY) or ["Liquidity pools identified"]),
        )

        trace.section("LIQUIDITY SWEEP", *self._deltas(card, STAGE_SWEEP))
        trace.section("BREAK OF STRUCTURE", *self._deltas(card, STAGE_BOS))

        trace.section(
            "ORDER BLOCK / FVG",
            f"Valid Order Blocks: {sum(1 for ob in out.order_blocks if not ob.mitigated)}",
            f"Valid FVGs: {sum(1 for fvg in out.fvgs if fvg.created_in_displacement)}",
            *self._deltas(card, STAGE_ZONES),
        )

        trace.section(
            "WAVE FILTER",
            f"Wave: {out.wave.wave} ({out.wave.pattern})",
            *self._deltas(card, STAGE_WAVE),
        )

        trace.section(
            "SESSION & VOLATILITY",
            f"Market: {out.session.category}",
            *self._deltas(card, STAGE_SESSION),
        )

    @staticmethod
    def _setup_lines(setup: TradeSetup, score: int) -> List[str]:
        return [
            f"Signal: {setup.direction.value.upper()}",
            f"Entry: {setup.entry_price} ({setup.entry_source})",
            f"Stop Loss: {setup.stop_loss}",
            f"TP1: {setup.take_profit_1} ({setup.tp1_percentage}%)",
            f"TP2: {setup.take_profit_2} ({setup.tp2_percentage}%)",
            f"TP3: {setup.take_profit_3} ({setup.tp3_percentage}%)",
            f"Risk/Reward: 1:{setup.risk_reward_ratio}",
            f"Confidence: {score}/100",
        ]

    @staticmethod
    def _summarize(
        out: _StageOutputs,
        score: int,
        quality: str,
        timeframe: str,
        htf_timeframe: str,
    ) -> AnalysisSummary:
        direction = out.direction
        zones = [f"Equal high at {_fmt(p.price)}" for p in out.pools.highs[:2]]
        zones += [f"Equal low at {_fmt(p.price)}" for p in out.pools.lows[:2]]

        return AnalysisSummary(
            timeframes=(timeframe, htf_timeframe),
            confluence_count=confluence_count(score),
            quality=quality,
            ict=IctAnalysis(
                order_blocks=tuple(f"{ob.kind} OB at {_fmt(ob.price)}" for ob in out.order_blocks[:2]),
                fair_value_gaps=tuple(
                    f"{fvg.kind} FVG {_fmt(fvg.bottom)}-{_fmt(fvg.top)}" for fvg in out.fvgs[:2]
                ),
                liquidity_zones=tuple(zones),
                description=(
                    f"{out.pools.total} liquidity pools, {len(out.order_blocks)} OBs, "
                    f"{len(out.fvgs)} FVGs"
                ),
                signal=direction,
            ),
            smc=SmcAnalysis(
                market_structure=out.htf.description,
                break_of_structure=out.bos.valid,
                description=out.bos.description,
                signal=direction,
            ),
            elliott_wave=WaveAnalysis(
                current_wave=out.wave.wave,
                wave_pattern=out.wave.pattern,
                description=out.wave.description,
                blocked=out.wave.block,
                signal=direction,
            ),
            session=SessionAnalysis(
                category=out.session.category,
                description=out.session.description,
                confidence_adjustment=out.session.confidence_adjustment,
                volume_expansion=out.session.volume_expansion,
                atr_ratio=out.session.atr_ratio,
                volume_ratio=out.session.volume_ratio,
                signal=direction,
            ),
        )
