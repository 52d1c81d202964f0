"""
Strike Distance Decision Engine

Compares the live reference price with the market's strike and decides
whether to buy the side that is currently winning.

Rules, in order:
1. Too close to the strike -> skip (noise).
2. Winning side's ticket too expensive -> skip (no edge left).
3. Winning side's ticket too cheap -> skip (market thinks it's lost).
4. Otherwise buy, with confidence from distance + trend and size from
   distance tier.

Everything here is pure: same inputs, same TradeDecision.
"""
import math
from dataclasses import dataclass

from ..models import MarketSnapshot, OutcomeSide, TradeAction, TradeDecision, Trend


@dataclass(frozen=True)
class DecisionConfig:
    """Thresholds and weights for the decision engine."""
    min_distance: float = 100.0          # Min |reference - strike| to act on
    max_ticket_price: float = 0.75       # Above this there is no edge left
    min_ticket_price: float = 0.10       # Below this the side is likely already lost
    base_amount: float = 5.0             # USDC per entry before tier multiplier
    distance_per_confidence_unit: float = 10.0
    max_base_confidence: float = 100.0
    trend_agree_bonus: float = 15.0
    trend_oppose_penalty: float = 10.0
    # (min distance, multiplier), checked in order
    size_tiers: tuple[tuple[float, float], ...] = ((1000.0, 2.0), (500.0, 1.5))
    small_distance: float = 200.0
    small_multiplier: float = 0.5


SIDE_LABELS = {OutcomeSide.A: "UP", OutcomeSide.B: "DOWN"}


def _skip(reason: str) -> TradeDecision:
    return TradeDecision(action=TradeAction.SKIP, reason=reason)


def size_multiplier(abs_distance: float, config: DecisionConfig) -> float:
    """Position size multiplier for a given distance from the strike."""
    for min_distance, multiplier in config.size_tiers:
        if abs_distance >= min_distance:
            return multiplier
    if abs_distance < config.small_distance:
        return config.small_multiplier
    return 1.0


def raw_confidence(abs_distance: float, side: OutcomeSide, trend: Trend, config: DecisionConfig) -> float:
    """
    Unclamped confidence score.

    Every `distance_per_confidence_unit` of distance is worth one point, capped
    at `max_base_confidence`, then adjusted for trend agreement. May leave
    [0, 100]; clamp only when reading the final value.
    """
    confidence = min(config.max_base_confidence, abs_distance / config.distance_per_confidence_unit)
    if trend is side.favoured_by:
        confidence += config.trend_agree_bonus
    elif trend is not Trend.FLAT:
        confidence -= config.trend_oppose_penalty
    return confidence


def clamp_confidence(value: float) -> int:
    """Round half up, then clamp to [0, 100]."""
    return int(max(0, min(100, math.floor(value + 0.5))))


def make_trade_decision(
    reference_price: float,
    snapshot: MarketSnapshot,
    trend: Trend,
    config: DecisionConfig = DecisionConfig()
) -> TradeDecision:
    """
    Decide whether to buy side A, side B, or skip.

    Args:
        reference_price: Latest reference (fair value) price
        snapshot: Current market snapshot with strike and quotes
        trend: Short-term trend of the reference price
        config: Decision thresholds

    Returns:
        TradeDecision
    """
    distance = reference_price - snapshot.threshold_value
    abs_distance = abs(distance)

    if abs_distance < config.min_distance:
        return _skip(
            f"Reference only ${abs_distance:.0f} from strike "
            f"(min: ${config.min_distance:.0f}, short by ${config.min_distance - abs_distance:.0f})"
        )

    side = OutcomeSide.A if distance > 0 else OutcomeSide.B
    label = SIDE_LABELS[side]
    ticket = snapshot.price_for(side)

    if ticket > config.max_ticket_price:
        return _skip(
            f"{label} ticket too expensive: {ticket * 100:.0f}c "
            f"(max: {config.max_ticket_price * 100:.0f}c)"
        )

    if ticket < config.min_ticket_price:
        return _skip(
            f"{label} ticket too cheap: {ticket * 100:.0f}c "
            f"(min: {config.min_ticket_price * 100:.0f}c) - likely a lost cause"
        )

    # Win pays 1 - ticket per share, loss costs ticket
    risk_reward = (1 - ticket) / ticket

    confidence = raw_confidence(abs_distance, side, trend, config)
    suggested_amount = config.base_amount * size_multiplier(abs_distance, config)

    direction = "above" if side is OutcomeSide.A else "below"
    reason = (
        f"Reference ${abs_distance:.0f} {direction} strike, {label} {ticket * 100:.0f}c, "
        f"R/R: {risk_reward:.2f}, confidence {confidence:.0f}"
    )

    return TradeDecision(
        action=TradeAction.BUY_SIDE_A if side is OutcomeSide.A else TradeAction.BUY_SIDE_B,
        reason=reason,
        confidence=clamp_confidence(confidence),
        suggested_amount=suggested_amount,
        risk_reward=risk_reward
    )
