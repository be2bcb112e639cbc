"""
Tests for the Alma remote source: request shape, JSON parsing, and
degradation to None on every kind of failure. requests.get is mocked.
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from barcode_cache.core.errors import FatalConfigurationError
from barcode_cache.sources.alma import ALMA_BASE_URL, AlmaSource
from barcode_cache.sources.base import BarcodeRecord, SourceStatus
from barcode_cache.sources.resilience import CircuitBreaker

ALMA_ITEM = {
    "bib_data": {
        "mms_id": "991234",
        "isbn": "9780131103627",
        "author": "Kernighan, Brian W.",
        "title": "The C programming language",
    },
    "holding_data": {},
    "item_data": {"barcode": "39031031697586"},
}


def _response(status: int = 200, payload=None, json_error: bool = False) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    if json_error:
        resp.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture()
def source():
    s = AlmaSource()
    s.initialize("secret-key")
    return s


class TestInitialize:
    @pytest.mark.parametrize("key", ["", None, 123])
    def test_requires_key(self, key):
        with pytest.raises(FatalConfigurationError):
            AlmaSource().initialize(key)

    def test_lookup_before_initialize_is_none(self):
        with patch("barcode_cache.sources.alma.requests.get") as mock_get:
            assert AlmaSource().lookup("1") is None
        mock_get.assert_not_called()

    def test_source_name(self):
        assert AlmaSource().source_name == "alma"


class TestLookup:
    @patch("barcode_cache.sources.alma.requests.get")
    def test_parses_bib_data(self, mock_get, source):
        mock_get.return_value = _response(payload=ALMA_ITEM)
        rec = source.lookup("39031031697586")
        assert rec == BarcodeRecord(
            barcode="39031031697586",
            isbn="9780131103627",
            author="Kernighan, Brian W.",
            title="The C programming language",
        )
        assert source.health.status is SourceStatus.OK

    @patch("barcode_cache.sources.alma.requests.get")
    def test_request_shape(self, mock_get, source):
        mock_get.return_value = _response(payload=ALMA_ITEM)
        source.lookup("666")
        args, kwargs = mock_get.call_args
        assert args[0] == f"{ALMA_BASE_URL}/items"
        assert kwargs["params"] == {"item_barcode": "666"}
        assert kwargs["headers"]["Authorization"] == "apikey secret-key"
        assert kwargs["headers"]["Accept"] == "application/json"
        assert kwargs["timeout"] == 15.0

    @patch("barcode_cache.sources.alma.requests.get")
    def test_missing_fields_become_empty(self, mock_get, source):
        mock_get.return_value = _response(payload={"bib_data": {"title": "Only a title", "isbn": None}})
        assert source.lookup("1") == BarcodeRecord(barcode="1", isbn="", author="", title="Only a title")

    @patch("barcode_cache.sources.alma.requests.get")
    def test_no_bib_data(self, mock_get, source):
        mock_get.return_value = _response(payload={"item_data": {}})
        assert source.lookup("1") is None

    @patch("barcode_cache.sources.alma.requests.get")
    def test_bib_data_not_a_map(self, mock_get, source):
        mock_get.return_value = _response(payload={"bib_data": ["nope"]})
        assert source.lookup("1") is None

    @patch("barcode_cache.sources.alma.requests.get")
    def test_not_found_status(self, mock_get, source):
        mock_get.return_value = _response(status=400, payload={"errorsExist": True})
        assert source.lookup("1") is None
        assert mock_get.call_count == 1

    @patch("barcode_cache.sources.alma.requests.get")
    def test_non_json_body(self, mock_get, source):
        mock_get.return_value = _response(json_error=True)
        assert source.lookup("1") is None

    @patch("barcode_cache.sources.alma.requests.get")
    def test_non_object_json(self, mock_get, source):
        mock_get.return_value = _response(payload=["a", "b"])
        assert source.lookup("1") is None

    @patch("barcode_cache.sources.alma.requests.get")
    def test_transport_error_is_none_and_single_call(self, mock_get, source):
        mock_get.side_effect = requests.ConnectionError("unreachable")
        assert source.lookup("1") is None
        assert mock_get.call_count == 1
        assert source.health.fail_count == 1

    @patch("barcode_cache.sources.alma.requests.get")
    def test_server_error_is_none(self, mock_get, source):
        mock_get.return_value = _response(status=503)
        assert source.lookup("1") is None
        assert source.health.last_error is not None

    @patch("barcode_cache.sources.alma.requests.get")
    def test_breaker_stops_calls(self, mock_get):
        s = AlmaSource(circuit_breaker=CircuitBreaker(source_name="alma", failure_threshold=2))
        s.initialize("k")
        mock_get.side_effect = requests.Timeout("slow")
        assert s.lookup("1") is None
        assert s.lookup("1") is None
        assert s.breaker_state == "OPEN"
        assert s.lookup("1") is None
        assert mock_get.call_count == 2


def test_store_is_a_noop(source):
    with patch("barcode_cache.sources.alma.requests.get") as mock_get:
        source.store(BarcodeRecord("1", "i", "a", "t"))
    mock_get.assert_not_called()


class TestGetHealth:
    @patch("barcode_cache.sources.alma.requests.get")
    def test_reports_counters_and_breaker(self, mock_get):
        s = AlmaSource(circuit_breaker=CircuitBreaker(source_name="alma", failure_threshold=2))
        s.initialize("k")
        report = s.get_health()
        assert report["status"] == "OK"
        assert report["fail_count"] == 0
        assert report["breaker"] == "CLOSED"

        mock_get.side_effect = requests.ConnectionError("unreachable")
        s.lookup("1")
        s.lookup("1")
        report = s.get_health()
        assert report["source_name"] == "alma"
        assert report["status"] == "DEGRADED"
        assert report["fail_count"] == 2
        assert report["last_error"].startswith("ConnectionError")
        assert report["breaker"] == "OPEN"

    @patch("barcode_cache.sources.alma.requests.get")
    def test_success_clears_counters(self, mock_get, source):
        mock_get.side_effect = requests.Timeout("slow")
        source.lookup("1")
        mock_get.side_effect = None
        mock_get.return_value = _response(payload=ALMA_ITEM)
        source.lookup("1")
        report = source.get_health()
        assert report["fail_count"] == 0
        assert report["last_error"] is None
        assert report["last_ok_at"] is not None
