# settings.py
import os
from datetime import timedelta

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv())

APP_TITLE = "Macroeconomic Dashboard"
APP_TAGLINE = "Equity risk premium from bond and equity market expectations · Not investment advice"

# Backend serving the raw market data; absence is a configuration error
BACKEND_URL = os.getenv("BACKEND_URL", "").strip()

REFRESH_INTERVAL = timedelta(seconds=300)
# How often the page checks whether a refresh is due
REFRESH_POLL = timedelta(seconds=15)
REQUEST_TIMEOUT = 20  # seconds

# Raw input name -> path on the backend
ENDPOINTS = {
    "inflation": "/api/v1/inflation",
    "tbill": "/api/v1/tbill",
    "long_term_rates": "/api/v1/long_term_rates",
    "equity_metrics": "/api/v1/equity/metrics",
    "equity": "/api/v1/equity",
}

# User assumptions (percent)
DEFAULT_ASSUMPTIONS = {
    "estimated_inflation": 2.5,
    "estimated_growth": 1.5,
    "payout_ratio": 36.4,
}

INPUT_STEPS = {
    "estimated_inflation": 0.1,
    "estimated_growth": 0.1,
    "payout_ratio": 1.0,
}

CONFIG_ERROR_MESSAGE = "Backend URL not configured"
FETCH_ERROR_MESSAGE = "Failed to load market data. Please try again later."
