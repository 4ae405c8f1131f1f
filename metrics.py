# metrics.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Dict

import numpy as np

from settings import DEFAULT_ASSUMPTIONS
from data_sources import MarketSnapshot

NA = "N/A"

BOND_KEYS = (
    "effective_real_yield",
    "market_implied_inflation",
    "delta_inflation",
    "delta_growth",
    "estimated_bond_return",
)

EQUITY_KEYS = (
    "expected_cape",
    "price_to_dividend",
    "current_pe",
    "expected_dividend_yield",
    "expected_cape_change",
    "past_roe",
    "expected_roe",
    "expected_earnings_growth",
    "expected_market_return",
)

# Decimal-fraction fields shown as percentages
CAGR_FIELDS = (
    "past_inflation_cagr",
    "avg_dividend_yield",
    "past_earnings_cagr",
    "past_cape_cagr",
    "past_returns_cagr",
    "current_inflation_cagr",
    "current_earnings_cagr",
    "current_cape_cagr",
    "current_returns_cagr",
)


@dataclass(frozen=True)
class Assumptions:
    """User-adjustable assumptions, all in percent."""
    estimated_inflation: float = DEFAULT_ASSUMPTIONS["estimated_inflation"]
    estimated_growth: float = DEFAULT_ASSUMPTIONS["estimated_growth"]
    payout_ratio: float = DEFAULT_ASSUMPTIONS["payout_ratio"]


# ---------- Utility functions ----------

def available(*values: Optional[float]) -> bool:
    return all(v is not None and not np.isnan(v) for v in values)


def safe_div(num: Optional[float], den: Optional[float]) -> Optional[float]:
    if not available(num, den) or den == 0:
        return None
    return num / den


def to_percent(value: Optional[float]) -> Optional[float]:
    return value * 100 if available(value) else None


def format_value(value: Optional[float], suffix: str = "", decimals: int = 2) -> str:
    """
    Round once, at the display boundary. Unavailable values render as 'N/A'
    rather than 0 or nan.
    """
    if not available(value):
        return NA
    rounded = round(value, decimals)
    if rounded == 0:
        rounded = 0.0  # avoid "-0.00"
    return f"{rounded:.{decimals}f}{suffix}"


# ---------- Bond side ----------

def compute_bond_metrics(snapshot: Optional[MarketSnapshot], assumptions: Assumptions) -> Dict[str, Optional[float]]:
    """
    Real T-bill yield plus the long-term group (implied inflation, deltas,
    estimated bond return). The long-term group needs both 20y yields; if
    either is missing every figure in it is unavailable.
    """
    out: Dict[str, Optional[float]] = dict.fromkeys(BOND_KEYS)
    if snapshot is None:
        return out
    est_inflation = assumptions.estimated_inflation
    est_growth = assumptions.estimated_growth

    if available(snapshot.tbill_rate, est_inflation):
        out["effective_real_yield"] = snapshot.tbill_rate - est_inflation

    rates = snapshot.long_term_rates
    if rates is None or not available(rates.bond_yield_20y, rates.tips_yield_20y, est_inflation, est_growth):
        return out

    implied_inflation = rates.bond_yield_20y - rates.tips_yield_20y
    delta_inflation = implied_inflation - est_inflation
    delta_growth = rates.tips_yield_20y - est_growth
    out.update(
        market_implied_inflation=implied_inflation,
        delta_inflation=delta_inflation,
        delta_growth=delta_growth,
        estimated_bond_return=rates.bond_yield_20y + delta_inflation + delta_growth,
    )
    return out


# ---------- Equity side ----------

def compute_equity_metrics(snapshot: Optional[MarketSnapshot], assumptions: Assumptions) -> Dict[str, Optional[float]]:
    out: Dict[str, Optional[float]] = dict.fromkeys(EQUITY_KEYS)
    if snapshot is None or snapshot.equity is None or snapshot.equity_metrics is None:
        return out
    equity = snapshot.equity
    hist = snapshot.equity_metrics
    inflation = assumptions.estimated_inflation
    growth = assumptions.estimated_growth
    payout = assumptions.payout_ratio

    expected_cape = None
    if available(inflation, growth):
        expected_cape = safe_div(1.0, inflation / 100 + growth / 100)

    price_to_dividend = safe_div(equity.current_sp500_price, equity.ttm_dividend)
    current_pe = price_to_dividend * payout / 100 if available(price_to_dividend, payout) else None
    expected_dividend_yield = safe_div(payout, expected_cape)

    # Spread the move from current P/E to expected CAPE over ten years
    expected_cape_change = None
    if available(current_pe, expected_cape) and current_pe != 0:
        expected_cape_change = -((current_pe - expected_cape) / current_pe) / 10 * 100

    past_roe = None
    if available(hist.past_returns_cagr, hist.past_cape_cagr):
        past_roe = hist.past_returns_cagr - hist.past_cape_cagr

    expected_roe = None
    if available(past_roe, hist.past_inflation_cagr, inflation):
        expected_roe = (past_roe - hist.past_inflation_cagr + inflation / 100) * 100

    expected_earnings_growth = None
    if available(expected_roe, payout):
        expected_earnings_growth = expected_roe * (1 - payout / 100)

    expected_market_return = None
    if available(expected_dividend_yield, expected_earnings_growth, expected_cape_change):
        expected_market_return = expected_dividend_yield + expected_earnings_growth + expected_cape_change

    out.update(
        expected_cape=expected_cape,
        price_to_dividend=price_to_dividend,
        current_pe=current_pe,
        expected_dividend_yield=expected_dividend_yield,
        expected_cape_change=expected_cape_change,
        past_roe=past_roe,
        expected_roe=expected_roe,
        expected_earnings_growth=expected_earnings_growth,
        expected_market_return=expected_market_return,
    )
    return out


def compute_equity_risk_premium(bond: Dict[str, Optional[float]], equity: Dict[str, Optional[float]]) -> Optional[float]:
    market_return = equity.get("expected_market_return")
    bond_return = bond.get("estimated_bond_return")
    if not available(market_return, bond_return):
        return None
    return market_return - bond_return


# ---------- Display-only ratios ----------

def compute_display_ratios(snapshot: Optional[MarketSnapshot]) -> Dict[str, Optional[float]]:
    """Raw inputs and simple ratios for the cards, in percent. Nothing downstream consumes these."""
    out: Dict[str, Optional[float]] = {
        "inflation_rate": None,
        "tbill_rate": None,
        "bond_yield_20y": None,
        "tips_yield_20y": None,
        "current_dividend_yield": None,
        "current_roe": None,
        "past_roe": None,
    }
    out.update(dict.fromkeys(CAGR_FIELDS))
    if snapshot is None:
        return out

    out["inflation_rate"] = snapshot.inflation_rate
    out["tbill_rate"] = snapshot.tbill_rate
    if snapshot.long_term_rates is not None:
        out["bond_yield_20y"] = snapshot.long_term_rates.bond_yield_20y
        out["tips_yield_20y"] = snapshot.long_term_rates.tips_yield_20y
    if snapshot.equity is not None:
        out["current_dividend_yield"] = to_percent(
            safe_div(snapshot.equity.ttm_dividend, snapshot.equity.current_sp500_price)
        )
    hist = snapshot.equity_metrics
    if hist is not None:
        for name in CAGR_FIELDS:
            out[name] = to_percent(getattr(hist, name))
        if available(hist.current_returns_cagr, hist.current_cape_cagr):
            out["current_roe"] = (hist.current_returns_cagr - hist.current_cape_cagr) * 100
        if available(hist.past_returns_cagr, hist.past_cape_cagr):
            out["past_roe"] = (hist.past_returns_cagr - hist.past_cape_cagr) * 100
    return out


def compute_all(snapshot: Optional[MarketSnapshot], assumptions: Assumptions) -> Dict:
    bond = compute_bond_metrics(snapshot, assumptions)
    equity = compute_equity_metrics(snapshot, assumptions)
    return {
        "bond": bond,
        "equity": equity,
        "expected_equity_risk_premium": compute_equity_risk_premium(bond, equity),
        "display": compute_display_ratios(snapshot),
    }
