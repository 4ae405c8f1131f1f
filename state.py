# state.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Callable, Dict, Optional

import pandas as pd

from settings import REFRESH_INTERVAL
from data_sources import ConfigurationError, MarketDataError, MarketSnapshot, fetch_market_snapshot, _utc_now_ts
from metrics import Assumptions, compute_all

logger = logging.getLogger(__name__)

LOADING = "loading"
READY = "ready"
ERROR = "error"
CONFIG_ERROR = "config_error"


@dataclass
class DashboardState:
    """
    Everything the view owns: the three assumptions, the latest raw snapshot
    and the load status. Derived figures are never stored; `derived()`
    recomputes them from the current snapshot and assumptions.

    Each refresh takes a ticket from `begin_refresh()`. A result carrying a
    ticket at or below the last applied one is stale and dropped, so a slow
    batch cannot overwrite newer data.
    """
    assumptions: Assumptions = field(default_factory=Assumptions)
    snapshot: Optional[MarketSnapshot] = None
    status: str = LOADING
    error: Optional[str] = None
    last_attempt: Optional[pd.Timestamp] = None
    refresh_interval: timedelta = REFRESH_INTERVAL
    _issued: int = 0
    _applied: int = 0

    # ---------- Assumption setters ----------

    def set_estimated_inflation(self, value: float) -> None:
        self.assumptions = replace(self.assumptions, estimated_inflation=float(value))

    def set_estimated_growth(self, value: float) -> None:
        self.assumptions = replace(self.assumptions, estimated_growth=float(value))

    def set_payout_ratio(self, value: float) -> None:
        self.assumptions = replace(self.assumptions, payout_ratio=float(value))

    # ---------- Load lifecycle ----------

    def begin_refresh(self, now: Optional[pd.Timestamp] = None) -> int:
        self._issued += 1
        self.last_attempt = now if now is not None else _utc_now_ts()
        self.status = LOADING
        return self._issued

    def _is_stale(self, ticket: int) -> bool:
        if ticket <= self._applied:
            logger.warning("Dropping stale market data result (ticket %d, applied %d)", ticket, self._applied)
            return True
        return False

    def apply_snapshot(self, ticket: int, snapshot: MarketSnapshot) -> bool:
        if self._is_stale(ticket):
            return False
        self._applied = ticket
        self.snapshot = snapshot
        self.status = READY
        self.error = None
        return True

    def apply_failure(self, ticket: int, message: str) -> bool:
        # Last good snapshot is discarded, not shown alongside the error
        if self._is_stale(ticket):
            return False
        self._applied = ticket
        self.snapshot = None
        self.status = ERROR
        self.error = message
        return True

    def apply_config_error(self, message: str) -> None:
        self.snapshot = None
        self.status = CONFIG_ERROR
        self.error = message

    @property
    def retryable(self) -> bool:
        return self.status == ERROR

    # ---------- Scheduling ----------

    def refresh_due(self, now: Optional[pd.Timestamp] = None) -> bool:
        if self.status == CONFIG_ERROR:
            return False
        if self.last_attempt is None:
            return True
        now = now if now is not None else _utc_now_ts()
        return now - self.last_attempt >= self.refresh_interval

    def seconds_until_refresh(self, now: Optional[pd.Timestamp] = None) -> float:
        if self.last_attempt is None:
            return 0.0
        now = now if now is not None else _utc_now_ts()
        remaining = (self.last_attempt + self.refresh_interval - now).total_seconds()
        return max(remaining, 0.0)

    def derived(self) -> Dict:
        return compute_all(self.snapshot, self.assumptions)


def refresh_dashboard(
    state: DashboardState,
    base_url: Optional[str],
    fetcher: Callable[[Optional[str]], MarketSnapshot] = fetch_market_snapshot,
    now: Optional[pd.Timestamp] = None,
) -> str:
    """Run one fetch cycle (initial load, periodic refresh or manual retry) and return the new status."""
    ticket = state.begin_refresh(now)
    try:
        snapshot = fetcher(base_url)
    except ConfigurationError as exc:
        logger.error("Market data not loaded: %s", exc)
        state.apply_config_error(str(exc))
    except MarketDataError as exc:
        state.apply_failure(ticket, str(exc))
    else:
        state.apply_snapshot(ticket, snapshot)
        logger.info("Market data refreshed (ticket %d)", ticket)
    return state.status
