# data_sources.py
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
import requests

from settings import ENDPOINTS, REQUEST_TIMEOUT, CONFIG_ERROR_MESSAGE, FETCH_ERROR_MESSAGE

logger = logging.getLogger(__name__)

USER_AGENT = {"User-Agent": "Mozilla/5.0 (compatible; MacroDashboardBot/1.0)"}


class DashboardDataError(Exception):
    """Base error for loading the dashboard's raw inputs."""


class ConfigurationError(DashboardDataError):
    """Backend URL missing. Not recoverable without redeploying."""


class MarketDataError(DashboardDataError):
    """One of the batch requests failed. Safe to retry."""


# ---------- Raw inputs ----------

@dataclass(frozen=True)
class LongTermRates:
    bond_yield_20y: Optional[float] = None  # percent
    tips_yield_20y: Optional[float] = None  # percent


@dataclass(frozen=True)
class EquityMetrics:
    # All decimal fractions (0.07 == 7%)
    past_returns_cagr: Optional[float] = None
    past_cape_cagr: Optional[float] = None
    past_inflation_cagr: Optional[float] = None
    current_returns_cagr: Optional[float] = None
    current_cape_cagr: Optional[float] = None
    past_earnings_cagr: Optional[float] = None
    current_earnings_cagr: Optional[float] = None
    current_inflation_cagr: Optional[float] = None
    avg_dividend_yield: Optional[float] = None


@dataclass(frozen=True)
class EquityQuote:
    current_sp500_price: Optional[float] = None
    ttm_dividend: Optional[float] = None


@dataclass(frozen=True)
class MarketSnapshot:
    """One complete batch of raw inputs; replaced wholesale on every successful fetch."""
    inflation_rate: Optional[float] = None  # percent
    tbill_rate: Optional[float] = None  # percent
    long_term_rates: Optional[LongTermRates] = None
    equity_metrics: Optional[EquityMetrics] = None
    equity: Optional[EquityQuote] = None
    fetched_at: Optional[pd.Timestamp] = None


def _utc_now_ts() -> pd.Timestamp:
    return pd.Timestamp.now(tz="UTC")


def _as_float(value: Any) -> Optional[float]:
    # Absent, null, boolean, non-numeric or non-finite -> unavailable, never 0
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not np.isfinite(out):
        return None
    return out


def _field(payload: Any, key: str) -> Any:
    if not isinstance(payload, dict):
        return None
    return payload.get(key)


# ---------- Parsing ----------

def parse_rate(payload: Any) -> Optional[float]:
    """`{"rate": 3.1}` -> 3.1"""
    return _as_float(_field(payload, "rate"))


def parse_long_term_rates(payload: Any) -> Optional[LongTermRates]:
    rates = _field(payload, "rates")
    if not isinstance(rates, dict):
        return None
    return LongTermRates(
        bond_yield_20y=_as_float(rates.get("bond_yield_20y")),
        tips_yield_20y=_as_float(rates.get("tips_yield_20y")),
    )


def parse_equity_metrics(payload: Any) -> Optional[EquityMetrics]:
    if not isinstance(payload, dict):
        return None
    return EquityMetrics(**{f.name: _as_float(payload.get(f.name)) for f in fields(EquityMetrics)})


def parse_equity(payload: Any) -> Optional[EquityQuote]:
    if not isinstance(payload, dict):
        return None
    return EquityQuote(
        current_sp500_price=_as_float(payload.get("current_sp500_price")),
        ttm_dividend=_as_float(_field(payload.get("ttm_dividend"), "value")),
    )


def parse_snapshot(payloads: Dict[str, Any], fetched_at: Optional[pd.Timestamp] = None) -> MarketSnapshot:
    """Build a snapshot from the five endpoint payloads, keyed as in settings.ENDPOINTS."""
    return MarketSnapshot(
        inflation_rate=parse_rate(payloads.get("inflation")),
        tbill_rate=parse_rate(payloads.get("tbill")),
        long_term_rates=parse_long_term_rates(payloads.get("long_term_rates")),
        equity_metrics=parse_equity_metrics(payloads.get("equity_metrics")),
        equity=parse_equity(payloads.get("equity")),
        fetched_at=fetched_at if fetched_at is not None else _utc_now_ts(),
    )


# ---------- HTTP ----------

def endpoint_url(base_url: str, path: str) -> str:
    return base_url.rstrip("/") + path


def fetch_json(url: str, timeout: int = REQUEST_TIMEOUT) -> Any:
    r = requests.get(url, headers=USER_AGENT, timeout=timeout)
    r.raise_for_status()
    return r.json()


def fetch_market_snapshot(base_url: Optional[str], timeout: int = REQUEST_TIMEOUT) -> MarketSnapshot:
    """
    Fetch all five raw inputs concurrently and return them as one snapshot.

    The batch is all-or-nothing: if any request fails, the other results are
    discarded and MarketDataError is raised. A missing base URL raises
    ConfigurationError before any request is made.
    """
    if not base_url:
        raise ConfigurationError(CONFIG_ERROR_MESSAGE)

    urls = {name: endpoint_url(base_url, path) for name, path in ENDPOINTS.items()}
    payloads = {}
    with ThreadPoolExecutor(max_workers=len(urls)) as executor:
        futures = {name: executor.submit(fetch_json, url, timeout) for name, url in urls.items()}
        for name, future in futures.items():
            try:
                payloads[name] = future.result()
            except (requests.RequestException, ValueError) as exc:
                logger.exception("Fetching %s from %s failed", name, urls[name])
                raise MarketDataError(FETCH_ERROR_MESSAGE) from exc

    logger.info("Fetched %d market data endpoints from %s", len(payloads), base_url)
    return parse_snapshot(payloads)
