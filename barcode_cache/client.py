"""
HTTP client for a running barcode cache server.

    client = BarcodeCacheClient("http://192.168.1.20:8000")
    record = client.lookup("666")

or, on the same network, find the server through zeroconf:

    client = BarcodeCacheClient.discover(name="BarcodeServer")
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

import requests

from .sources.base import BarcodeRecord

logger = logging.getLogger(__name__)

API_STEM = "api/v1/"
HTTP_TIMEOUT_S = 10.0


class BarcodeCacheClient:
    """Thin requests wrapper around the /api/v1/ routes."""

    def __init__(self, base_url: str, timeout_s: float = HTTP_TIMEOUT_S) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout_s = timeout_s

    @classmethod
    def discover(
        cls,
        name: str = "BarcodeServer",
        service_type: str = "_http._tcp",
        domain: str = "local.",
        wait_s: float = 10.0,
        timeout_s: float = HTTP_TIMEOUT_S,
    ) -> Optional["BarcodeCacheClient"]:
        """Resolve the server via zeroconf; None if nothing answers within wait_s."""
        from .discovery import resolve_service

        found = resolve_service(name, service_type, domain, timeout_s=wait_s)
        if found is None:
            return None
        host, port = found
        if ":" in host:
            host = f"[{host}]"
        return cls(f"http://{host}:{port}", timeout_s=timeout_s)

    @property
    def api_url(self) -> str:
        return self.base_url + API_STEM

    def echo(self) -> str:
        resp = requests.get(self.api_url, timeout=self.timeout_s)
        resp.raise_for_status()
        return resp.text

    def lookup(self, barcode: str) -> Optional[BarcodeRecord]:
        """Record for barcode, None on 404. Other HTTP errors raise requests.HTTPError."""
        resp = requests.get(f"{self.api_url}barcode/{quote(barcode, safe='')}", timeout=self.timeout_s)
        if resp.status_code == 404:
            logger.info("Barcode %s not found on %s", barcode, self.base_url)
            return None
        resp.raise_for_status()
        data = resp.json()
        if not data:
            return None
        return BarcodeRecord.from_dict(data)
