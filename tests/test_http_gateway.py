"""Tests for the HTTP journal gateway."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
import requests

from bujo.adapters.http_gateway import HttpJournalGateway
from bujo.config import Config
from bujo.ports.journal_gateway import NetworkFailure


def make_response(payload=None, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    return resp


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def gateway(session):
    return HttpJournalGateway(config=Config(api_base_url="http://api.test/api"), session=session)


class TestRequests:
    def test_get_unwraps_data(self, gateway, session):
        session.request.return_value = make_response({"data": {"_id": "m3", "days": []}})

        result = asyncio.run(gateway.get("months/2024/2"))

        assert result == {"_id": "m3", "days": []}
        session.request.assert_called_once_with(
            "GET", "http://api.test/api/months/2024/2", json=None, timeout=None
        )

    def test_missing_entity_is_none(self, gateway, session):
        session.request.return_value = make_response({"data": None})
        assert asyncio.run(gateway.get("months/2030/0")) is None

    def test_post_sends_json_body(self, gateway, session):
        session.request.return_value = make_response({"data": {"_id": "b7"}})

        result = asyncio.run(gateway.post("days/d1", {"value": "x", "bullet_type": "NOTE"}))

        assert result == {"_id": "b7"}
        session.request.assert_called_once_with(
            "POST", "http://api.test/api/days/d1", json={"value": "x", "bullet_type": "NOTE"}, timeout=None
        )

    def test_delete_sends_json_body(self, gateway, session):
        session.request.return_value = make_response({"data": {}})

        asyncio.run(gateway.delete("days/d1", {"id": "b1"}))

        session.request.assert_called_once_with(
            "DELETE", "http://api.test/api/days/d1", json={"id": "b1"}, timeout=None
        )

    def test_sets_json_content_type(self, session):
        session.headers = {}
        HttpJournalGateway(config=Config(), session=session)
        assert session.headers["Content-Type"] == "application/json"

    def test_timeout_from_config(self, session):
        session.request.return_value = make_response({"data": None})
        gateway = HttpJournalGateway(config=Config(api_base_url="http://api.test/", request_timeout=2.5), session=session)

        asyncio.run(gateway.get("/days/d1"))

        session.request.assert_called_once_with("GET", "http://api.test/days/d1", json=None, timeout=2.5)

    @patch("bujo.adapters.http_gateway.load_config")
    def test_loads_config_when_not_given(self, mock_load, session):
        mock_load.return_value = Config(api_base_url="http://configured/api/")
        gateway = HttpJournalGateway(session=session)
        assert gateway.base_url == "http://configured/api/"


class TestFailures:
    def test_http_error(self, gateway, session):
        resp = make_response(status_code=500)
        resp.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        session.request.return_value = resp

        with pytest.raises(NetworkFailure) as exc_info:
            asyncio.run(gateway.post("days/d1/b1", {}))

        assert exc_info.value.method == "POST"
        assert exc_info.value.path == "days/d1/b1"

    def test_connection_error(self, gateway, session):
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(NetworkFailure, match="refused"):
            asyncio.run(gateway.get("days/d1"))

    def test_invalid_json(self, gateway, session):
        resp = make_response()
        resp.json.side_effect = ValueError("Expecting value")
        session.request.return_value = resp

        with pytest.raises(NetworkFailure, match="invalid JSON"):
            asyncio.run(gateway.get("days/d1"))
