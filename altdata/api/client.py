"""Financial Modeling Prep client for company reference data."""

import logging
import os
from typing import Any, Optional

import requests

from core.exceptions import ExternalServiceError
from .rate_limit import RateLimiter


logger = logging.getLogger(__name__)


class FmpClient:
    """Minimal client for Financial Modeling Prep "stable" endpoints."""

    BASE_URL = "https://financialmodelingprep.com"
    SERVICE = "fmp"

    def __init__(
        self,
        api_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key or os.getenv("FMP_API_KEY")
        self.rate_limiter = rate_limiter or RateLimiter()
        self.session = session or requests.Session()
        self.timeout = timeout

        if not self.api_key:
            logger.warning("FMP_API_KEY not set; reference lookups will be rejected by the API")

    def _request(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """Make a GET request and decode the JSON body."""
        self.rate_limiter.wait()

        url = f"{self.BASE_URL}{endpoint}"
        query = dict(params or {})
        query["apikey"] = self.api_key or ""

        try:
            response = self.session.get(
                url,
                params=query,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ExternalServiceError(
                f"FMP request failed: {e}", service=self.SERVICE, retryable=True
            ) from e

        self._check_status(response)

        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(
                f"Failed to parse FMP response: {e}", service=self.SERVICE
            ) from e

    def _check_status(self, response: requests.Response) -> None:
        status = response.status_code
        if status == 200:
            return
        if status == 401:
            raise ExternalServiceError("FMP authentication failed. Check FMP_API_KEY.", service=self.SERVICE)
        if status == 403:
            raise ExternalServiceError("FMP access forbidden. Check plan permissions.", service=self.SERVICE)
        if status == 429:
            raise ExternalServiceError(
                "FMP rate limit exceeded. Retry later.", service=self.SERVICE, retryable=True
            )

        try:
            body = response.json()
            if isinstance(body, dict):
                message = body.get("error") or body.get("message") or str(body)
            else:
                message = str(body)
        except ValueError:
            message = response.text
        raise ExternalServiceError(
            f"FMP error ({status}): {message}",
            service=self.SERVICE,
            retryable=status >= 500,
        )

    def fetch_company_profile(self, symbol: str) -> Optional[dict]:
        """
        Fetch a company profile.

        Args:
            symbol: Ticker symbol

        Returns:
            Dict with symbol, companyName, sector, industry and revenue
            keys, or None when the API has no profile for the symbol
        """
        if not symbol:
            raise ValueError("symbol is required")

        sym = symbol.strip().upper()
        payload = self._request("/stable/profile", {"symbol": sym})

        rows = payload if isinstance(payload, list) else [payload]
        row = rows[0] if rows else None
        if not isinstance(row, dict):
            logger.debug(f"No FMP profile for {sym}")
            return None

        return {
            "symbol": row.get("symbol") or sym,
            "companyName": row.get("companyName") or row.get("name"),
            "sector": row.get("sector"),
            "industry": row.get("industry"),
            "revenue": row.get("revenue"),
        }
