"""
Tests for the position ledger.
"""

import itertools

import pytest

from strikebot.execution.ledger import (
    InsufficientSharesError,
    PositionLedger,
    PositionNotFoundError,
)
from strikebot.models import OutcomeSide, Position

KEY = ("cond-1", "up-token")


def fill(shares: float, price: float) -> Position:
    return Position(
        market_id=KEY[0],
        outcome_id=KEY[1],
        side=OutcomeSide.A,
        shares=shares,
        avg_entry_price=price
    )


@pytest.fixture
def ledger():
    return PositionLedger()


class TestRecordBuy:
    """Tests for buys and weighted-average merging."""

    def test_first_buy_inserts(self, ledger):
        stored = ledger.record_buy(fill(10.0, 0.40))

        assert KEY in ledger
        assert stored.shares == 10.0
        assert stored.avg_entry_price == 0.40
        assert stored.current_price == 0.40
        assert stored.unrealized_pnl == 0.0

    def test_merge_uses_weighted_average(self, ledger):
        ledger.record_buy(fill(10.0, 0.40))
        stored = ledger.record_buy(fill(30.0, 0.60))

        assert len(ledger) == 1
        assert stored.shares == pytest.approx(40.0)
        assert stored.avg_entry_price == pytest.approx((10 * 0.40 + 30 * 0.60) / 40)

    def test_weighted_average_is_order_independent(self):
        fills = [(5.0, 0.30), (12.5, 0.55), (2.0, 0.72), (8.0, 0.41)]
        expected_shares = sum(s for s, _ in fills)
        expected_avg = sum(s * p for s, p in fills) / expected_shares

        for order in itertools.permutations(fills):
            ledger = PositionLedger()
            for shares, price in order:
                ledger.record_buy(fill(shares, price))
            position = ledger.get(KEY)
            assert position.shares == pytest.approx(expected_shares)
            assert position.avg_entry_price == pytest.approx(expected_avg)

    def test_rejects_price_outside_unit_interval(self, ledger):
        with pytest.raises(ValueError):
            ledger.record_buy(fill(10.0, 1.5))
        with pytest.raises(ValueError):
            ledger.record_buy(fill(10.0, 0.0))
        assert len(ledger) == 0

    def test_rejects_non_positive_shares(self, ledger):
        with pytest.raises(ValueError):
            ledger.record_buy(fill(0.0, 0.40))


class TestRecordSell:
    """Tests for sells and closure."""

    def test_sell_keeps_average(self, ledger):
        ledger.record_buy(fill(10.0, 0.40))

        receipt = ledger.record_sell(KEY, 4.0, 0.50)

        position = ledger.get(KEY)
        assert position.shares == pytest.approx(6.0)
        assert position.avg_entry_price == 0.40
        assert receipt.realized_pnl == pytest.approx(0.40)
        assert not receipt.closed
        assert ledger.realized_pnl == pytest.approx(0.40)

    def test_oversell_is_rejected_and_ledger_unchanged(self, ledger):
        ledger.record_buy(fill(10.0, 0.40))
        before = ledger.get(KEY)

        with pytest.raises(InsufficientSharesError):
            ledger.record_sell(KEY, 10.5)

        assert ledger.get(KEY) == before
        assert ledger.realized_pnl == 0.0

    def test_unknown_key_is_rejected(self, ledger):
        with pytest.raises(PositionNotFoundError):
            ledger.record_sell(("cond-x", "token-x"), 1.0)

    def test_dust_remainder_closes_position(self, ledger):
        ledger.record_buy(fill(10.0, 0.40))

        receipt = ledger.record_sell(KEY, 9.995)

        assert receipt.closed
        assert receipt.remaining_shares == 0.0
        assert KEY not in ledger
        assert ledger.summary().count == 0
        assert ledger.summary().positions == []

    def test_full_sell_closes_position(self, ledger):
        ledger.record_buy(fill(10.0, 0.40))

        receipt = ledger.record_sell(KEY, 10.0, 0.95)

        assert receipt.closed
        assert receipt.realized_pnl == pytest.approx(5.5)
        assert len(ledger) == 0


class TestMarkToMarket:
    """Tests for PnL recomputation and summaries."""

    def test_updates_pnl_fields(self, ledger):
        ledger.record_buy(fill(10.0, 0.40))

        position = ledger.mark_to_market(KEY, 0.90)

        assert position.current_price == 0.90
        assert position.unrealized_pnl == pytest.approx(5.0)
        assert position.unrealized_pnl_percent == pytest.approx(125.0)

    def test_unknown_key_raises(self, ledger):
        with pytest.raises(PositionNotFoundError):
            ledger.mark_to_market(KEY, 0.5)

    def test_summary_aggregates_positions(self, ledger):
        ledger.record_buy(fill(10.0, 0.40))
        ledger.record_buy(Position(
            market_id="cond-2",
            outcome_id="down-token",
            side=OutcomeSide.B,
            shares=5.0,
            avg_entry_price=0.60
        ))
        ledger.mark_to_market(KEY, 0.50)

        summary = ledger.summary()

        assert summary.count == 2
        assert summary.total_cost == pytest.approx(4.0 + 3.0)
        assert summary.total_value == pytest.approx(5.0 + 3.0)
        assert summary.total_unrealized_pnl == pytest.approx(1.0)
