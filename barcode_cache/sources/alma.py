"""
Alma remote source (Ex Libris library management web service).

Uses the Alma items API, authenticated with an API key:
  GET https://api-na.hosted.exlibrisgroup.com/almaws/v1/items?item_barcode={barcode}

Read-only: store() is a logged no-op. Network trouble never escapes lookup();
it is logged and the answer degrades to None.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from ..core.errors import FatalConfigurationError
from .base import BarcodeRecord, SourceHealth
from .resilience import CircuitBreaker, CircuitOpenError, RetryConfig, resilient_call

logger = logging.getLogger(__name__)

ALMA_BASE_URL = "https://api-na.hosted.exlibrisgroup.com/almaws/v1"
HTTP_TIMEOUT_S = 15.0

# Statuses that mean the service itself is struggling (count against the breaker).
_SERVER_TROUBLE = (429, 500, 502, 503, 504)


def _str_field(data: Dict[str, Any], name: str) -> str:
    value = data.get(name)
    return value if isinstance(value, str) else ""


class AlmaSource:
    """Look up barcode items in Alma."""

    def __init__(
        self,
        base_url: str = ALMA_BASE_URL,
        timeout_s: float = HTTP_TIMEOUT_S,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._api_key: Optional[str] = None
        self._retry_config = retry_config or RetryConfig(max_retries=1)
        self._breaker = circuit_breaker or CircuitBreaker(source_name=self.source_name)
        self._health = SourceHealth(source_name=self.source_name)

    @property
    def source_name(self) -> str:
        return "alma"

    @property
    def health(self) -> SourceHealth:
        return self._health

    @property
    def breaker_state(self) -> str:
        return self._breaker.state

    def get_health(self) -> Dict[str, Any]:
        """Health counters plus circuit breaker state, for GET /health."""
        report = self._health.as_dict()
        report["breaker"] = self._breaker.state.value
        return report

    def initialize(self, params: Any) -> None:
        """params = the Alma API key."""
        if not params or not isinstance(params, str):
            raise FatalConfigurationError("Alma source requires a non-empty API key")
        self._api_key = params

    def shutdown(self) -> None:
        pass

    def store(self, record: BarcodeRecord) -> None:
        logger.warning("store called on read-only Alma source (barcode %s)", record.barcode)

    def lookup(self, barcode: str) -> Optional[BarcodeRecord]:
        if self._api_key is None:
            logger.error("Alma source used before initialize(); no lookup for %s", barcode)
            return None
        try:
            payload = resilient_call(
                self._fetch,
                barcode,
                retry_config=self._retry_config,
                circuit_breaker=self._breaker,
            )
        except CircuitOpenError as exc:
            logger.warning("Skipping Alma lookup for %s: %s", barcode, exc)
            return None
        except Exception as exc:
            msg = f"{type(exc).__name__}: {exc}"
            self._health.record_failure(msg)
            logger.warning("Unable to fetch Alma data for barcode %s (%s)", barcode, msg)
            return None

        self._health.record_success()
        if payload is None:
            return None
        return self._parse(barcode, payload)

    def _fetch(self, barcode: str) -> Optional[Dict[str, Any]]:
        """One HTTP round trip. Raises on transport errors and server trouble."""
        resp = requests.get(
            f"{self._base_url}/items",
            params={"item_barcode": barcode},
            headers={
                "Accept": "application/json",
                "Authorization": f"apikey {self._api_key}",
            },
            timeout=self._timeout_s,
        )
        if resp.status_code in _SERVER_TROUBLE:
            raise RuntimeError(f"Alma server error (HTTP {resp.status_code})")
        if resp.status_code != 200:
            logger.info(
                "Non-200 return code from Alma for barcode %s: %s", barcode, resp.status_code
            )
            return None
        try:
            data = resp.json()
        except ValueError:
            logger.warning("Alma returned a non-JSON body for barcode %s", barcode)
            return None
        if not isinstance(data, dict):
            logger.warning("Alma returned a non-object JSON body for barcode %s", barcode)
            return None
        return data

    @staticmethod
    def _parse(barcode: str, data: Dict[str, Any]) -> Optional[BarcodeRecord]:
        if "bib_data" not in data:
            logger.warning("Returned json data has no 'bib_data' value for barcode %s", barcode)
            return None
        bib = data["bib_data"]
        if not isinstance(bib, dict):
            logger.warning("json 'bib_data' is not a map for barcode %s", barcode)
            return None
        return BarcodeRecord(
            barcode=barcode,
            isbn=_str_field(bib, "isbn"),
            author=_str_field(bib, "author"),
            title=_str_field(bib, "title"),
        )
