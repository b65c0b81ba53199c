"""Tests for app.connectors.meta.client — retries and pagination."""
import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.connectors.meta.client import MetaAPIError, MetaClient


def _response(status, body, headers=None):
    return httpx.Response(status, json=body, headers=headers, request=httpx.Request("GET", "https://graph"))


@pytest.fixture
def no_sleep():
    with patch("app.connectors.meta.client.asyncio.sleep", AsyncMock()) as mock_sleep:
        yield mock_sleep


def _client_with(responses):
    client = MetaClient(access_token="token")
    http = AsyncMock()
    http.is_closed = False
    http.get = AsyncMock(side_effect=responses)
    client._client = http
    return client, http


class TestGet:

    def test_missing_token(self):
        with patch("app.connectors.meta.client.settings") as mock_settings:
            mock_settings.meta_access_token = ""
            client = MetaClient()
        with pytest.raises(MetaAPIError):
            asyncio.run(client.get("https://graph/me"))

    def test_retries_throttle_then_succeeds(self, no_sleep):
        client, http = _client_with(
            [
                _response(400, {"error": {"message": "User request limit reached", "code": 17}}),
                _response(200, {"ok": True}),
            ]
        )
        assert asyncio.run(client.get("https://graph/me")) == {"ok": True}
        assert http.get.await_count == 2
        no_sleep.assert_awaited_once_with(2)

    def test_retry_after_header(self, no_sleep):
        client, _ = _client_with(
            [_response(429, {}, headers={"Retry-After": "7"}), _response(200, {"ok": True})]
        )
        asyncio.run(client.get("https://graph/me"))
        no_sleep.assert_awaited_once_with(7.0)

    def test_client_error_not_retried(self, no_sleep):
        client, http = _client_with(
            [_response(400, {"error": {"message": "Invalid OAuth access token", "code": 190}})]
        )
        with pytest.raises(MetaAPIError) as exc:
            asyncio.run(client.get("https://graph/me"))
        assert exc.value.error_code == 190
        assert http.get.await_count == 1

    def test_gives_up_after_max_retries(self, no_sleep):
        client, http = _client_with([_response(500, {})] * 3)
        with pytest.raises(MetaAPIError):
            asyncio.run(client.get("https://graph/me"))
        assert http.get.await_count == 3


class TestPagination:

    def test_follows_next(self, no_sleep):
        client, http = _client_with(
            [
                _response(200, {"data": [{"id": 1}], "paging": {"next": "https://graph/page2"}}),
                _response(200, {"data": [{"id": 2}]}),
            ]
        )
        rows = asyncio.run(client.paginated_get("https://graph/me/adaccounts", {"limit": 1}))
        assert rows == [{"id": 1}, {"id": 2}]
        second_call = http.get.await_args_list[1]
        assert second_call.args[0] == "https://graph/page2"
        assert second_call.kwargs["params"] == {"access_token": "token"}

    def test_max_pages(self, no_sleep):
        page = _response(200, {"data": [{"id": 1}], "paging": {"next": "https://graph/again"}})
        client, _ = _client_with([page, page, page])
        rows = asyncio.run(client.paginated_get("https://graph/x", max_pages=2))
        assert len(rows) == 2
