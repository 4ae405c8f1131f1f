import math

import pytest

from data_sources import EquityMetrics, EquityQuote, LongTermRates, MarketSnapshot
from metrics import (
    Assumptions, compute_all, compute_bond_metrics, compute_display_ratios,
    compute_equity_metrics, compute_equity_risk_premium, format_value, BOND_KEYS, EQUITY_KEYS,
)


def _snapshot(**overrides):
    base = dict(
        inflation_rate=3.1,
        tbill_rate=5.0,
        long_term_rates=LongTermRates(bond_yield_20y=4.5, tips_yield_20y=2.0),
        equity_metrics=EquityMetrics(
            past_returns_cagr=0.10,
            past_cape_cagr=0.01,
            past_inflation_cagr=0.03,
            current_returns_cagr=0.12,
            current_cape_cagr=0.04,
            past_earnings_cagr=0.06,
            current_earnings_cagr=0.08,
            current_inflation_cagr=0.035,
            avg_dividend_yield=0.04,
        ),
        equity=EquityQuote(current_sp500_price=5000.0, ttm_dividend=70.0),
    )
    base.update(overrides)
    return MarketSnapshot(**base)


def test_effective_real_yield_scenario():
    bond = compute_bond_metrics(_snapshot(), Assumptions(estimated_inflation=2.5))
    assert format_value(bond["effective_real_yield"]) == "2.50"


@pytest.mark.parametrize("tbill,inflation", [(5.0, 2.5), (0.0, 3.0), (4.37, 4.37), (1.25, -0.5)])
def test_effective_real_yield_is_tbill_minus_inflation(tbill, inflation):
    bond = compute_bond_metrics(_snapshot(tbill_rate=tbill), Assumptions(estimated_inflation=inflation))
    assert format_value(bond["effective_real_yield"]) == format_value(tbill - inflation)


def test_bond_scenario():
    bond = compute_bond_metrics(_snapshot(), Assumptions(estimated_inflation=2.5, estimated_growth=1.5))
    assert format_value(bond["market_implied_inflation"]) == "2.50"
    assert format_value(bond["delta_inflation"]) == "0.00"
    assert format_value(bond["delta_growth"]) == "0.50"
    assert format_value(bond["estimated_bond_return"]) == "5.00"


def test_bond_return_identity():
    a = Assumptions(estimated_inflation=2.2, estimated_growth=1.7)
    rates = LongTermRates(bond_yield_20y=4.83, tips_yield_20y=2.29)
    bond = compute_bond_metrics(_snapshot(long_term_rates=rates), a)
    implied = rates.bond_yield_20y - rates.tips_yield_20y
    expected = rates.bond_yield_20y + (implied - a.estimated_inflation) + (rates.tips_yield_20y - a.estimated_growth)
    assert bond["estimated_bond_return"] == pytest.approx(expected)


def test_missing_tips_yield_blanks_long_term_group():
    snap = _snapshot(long_term_rates=LongTermRates(bond_yield_20y=4.5, tips_yield_20y=None))
    bond = compute_bond_metrics(snap, Assumptions())
    assert bond["effective_real_yield"] is not None
    for key in ("market_implied_inflation", "delta_inflation", "delta_growth", "estimated_bond_return"):
        assert bond[key] is None


def test_missing_tbill_only_blanks_real_yield():
    bond = compute_bond_metrics(_snapshot(tbill_rate=None), Assumptions())
    assert bond["effective_real_yield"] is None
    assert bond["estimated_bond_return"] == pytest.approx(5.0)


def test_equity_chain():
    eq = compute_equity_metrics(_snapshot(), Assumptions(estimated_inflation=2.5, estimated_growth=1.5, payout_ratio=36.4))
    assert eq["expected_cape"] == pytest.approx(25.0)
    assert eq["current_pe"] == pytest.approx(26.0)
    assert eq["expected_dividend_yield"] == pytest.approx(1.456)
    assert eq["expected_cape_change"] == pytest.approx(-100 / 260)
    assert eq["past_roe"] == pytest.approx(0.09)
    assert eq["expected_roe"] == pytest.approx(8.5)
    assert eq["expected_earnings_growth"] == pytest.approx(8.5 * 0.636)
    assert eq["expected_market_return"] == pytest.approx(1.456 + 8.5 * 0.636 - 100 / 260)


def test_expected_cape_is_100_over_assumption_sum():
    eq = compute_equity_metrics(_snapshot(), Assumptions(estimated_inflation=3.0, estimated_growth=2.0))
    assert eq["expected_cape"] == pytest.approx(100 / 5.0)


def test_expected_cape_unavailable_when_assumptions_sum_to_zero():
    eq = compute_equity_metrics(_snapshot(), Assumptions(estimated_inflation=0.0, estimated_growth=0.0))
    assert eq["expected_cape"] is None
    assert eq["expected_dividend_yield"] is None
    assert eq["expected_cape_change"] is None
    assert eq["expected_market_return"] is None
    # ROE does not depend on the CAPE
    assert eq["expected_roe"] == pytest.approx(6.0)


def test_zero_payout_makes_cape_change_unavailable():
    eq = compute_equity_metrics(_snapshot(), Assumptions(payout_ratio=0.0))
    assert eq["current_pe"] == 0.0
    assert eq["expected_cape_change"] is None
    assert eq["expected_market_return"] is None


def test_zero_dividend_is_unavailable_not_infinite():
    eq = compute_equity_metrics(_snapshot(equity=EquityQuote(current_sp500_price=5000.0, ttm_dividend=0.0)), Assumptions())
    assert eq["price_to_dividend"] is None
    assert eq["current_pe"] is None


def test_equity_group_needs_both_payloads():
    for snap in (_snapshot(equity=None), _snapshot(equity_metrics=None)):
        eq = compute_equity_metrics(snap, Assumptions())
        assert all(eq[k] is None for k in EQUITY_KEYS)


def test_risk_premium():
    out = compute_all(_snapshot(), Assumptions())
    expected = out["equity"]["expected_market_return"] - out["bond"]["estimated_bond_return"]
    assert out["expected_equity_risk_premium"] == pytest.approx(expected)


def test_risk_premium_zero_operand_is_available():
    assert compute_equity_risk_premium({"estimated_bond_return": 0.0}, {"expected_market_return": 4.0}) == 4.0
    assert compute_equity_risk_premium({"estimated_bond_return": 5.0}, {"expected_market_return": 5.0}) == 0.0


def test_risk_premium_unavailable_without_bond_side():
    out = compute_all(_snapshot(long_term_rates=None), Assumptions())
    assert out["equity"]["expected_market_return"] is not None
    assert out["expected_equity_risk_premium"] is None


def test_payout_ratio_only_moves_equity_side():
    snap = _snapshot()
    before = compute_all(snap, Assumptions(payout_ratio=36.4))
    after = compute_all(snap, Assumptions(payout_ratio=50.0))
    assert after["bond"] == before["bond"]
    assert after["equity"]["current_pe"] != before["equity"]["current_pe"]
    assert after["equity"]["expected_dividend_yield"] == pytest.approx(2.0)
    assert after["equity"]["expected_earnings_growth"] == pytest.approx(8.5 * 0.5)


def test_display_ratios():
    d = compute_display_ratios(_snapshot())
    assert d["current_dividend_yield"] == pytest.approx(1.4)
    assert d["current_roe"] == pytest.approx(8.0)
    assert d["past_roe"] == pytest.approx(9.0)
    assert d["past_inflation_cagr"] == pytest.approx(3.0)
    assert d["avg_dividend_yield"] == pytest.approx(4.0)
    assert d["bond_yield_20y"] == 4.5


def test_display_ratio_zero_value_is_shown():
    hist = EquityMetrics(past_cape_cagr=0.0)
    d = compute_display_ratios(_snapshot(equity_metrics=hist))
    assert format_value(d["past_cape_cagr"], "%") == "0.00%"
    assert format_value(d["past_returns_cagr"], "%") == "N/A"


def test_no_snapshot_everything_unavailable():
    out = compute_all(None, Assumptions())
    assert all(out["bond"][k] is None for k in BOND_KEYS)
    assert all(out["equity"][k] is None for k in EQUITY_KEYS)
    assert out["expected_equity_risk_premium"] is None
    assert all(v is None for v in out["display"].values())


def test_format_value():
    assert format_value(None) == "N/A"
    assert format_value(math.nan, "%") == "N/A"
    assert format_value(2.5, "%") == "2.50%"
    assert format_value(-0.001) == "0.00"
    assert format_value(1.23456) == "1.23"
