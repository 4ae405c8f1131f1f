import copy
from unittest.mock import Mock, patch

import pytest
import requests

BASE = "http://backend.test"

PAYLOADS = {
    "/api/v1/inflation": {"rate": 3.1},
    "/api/v1/tbill": {"rate": 5.0},
    "/api/v1/long_term_rates": {"rates": {"bond_yield_20y": 4.5, "tips_yield_20y": 2.0}},
    "/api/v1/equity/metrics": {
        "past_returns_cagr": 0.10, "past_cape_cagr": 0.01, "past_inflation_cagr": 0.03,
        "current_returns_cagr": 0.12, "current_cape_cagr": 0.04, "past_earnings_cagr": 0.06,
        "current_earnings_cagr": 0.08, "current_inflation_cagr": 0.035, "avg_dividend_yield": 0.04,
    },
    "/api/v1/equity": {"current_sp500_price": 5000.0, "ttm_dividend": {"value": 70.0}},
}


def _response(payload=None, status=200):
    resp = Mock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


class FakeBackend:
    """Stands in for requests.get against the five market data endpoints."""

    def __init__(self):
        self.payloads = copy.deepcopy(PAYLOADS)
        self.failures = {}
        self.bad_json = set()
        self.calls = []

    def fail(self, path, exc=None):
        # exc=None -> HTTP 500
        self.failures[path] = exc

    def recover(self):
        self.failures.clear()
        self.bad_json.clear()

    def __call__(self, url, headers=None, timeout=None):
        self.calls.append(url)
        path = url[len(BASE):]
        if path in self.failures:
            if self.failures[path] is not None:
                raise self.failures[path]
            return _response(status=500)
        resp = _response(self.payloads[path])
        if path in self.bad_json:
            resp.json.side_effect = ValueError("Expecting value")
        return resp


@pytest.fixture
def backend():
    fake = FakeBackend()
    with patch("data_sources.requests.get", side_effect=fake):
        yield fake
