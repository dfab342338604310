"""Tests for the Telnyx API client."""

import json

import httpx
import pytest

from app.services.telnyx import (
    TelnyxClient,
    TelnyxErrorCategory,
    TelnyxSendError,
    categorize_status,
)


def _client(handler) -> TelnyxClient:
    return TelnyxClient(
        api_key="KEY123",
        base_url="https://api.telnyx.test/v2",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestTelnyxClientConfiguration:
    """Tests for client setup."""

    def test_mock_mode_without_api_key(self):
        assert TelnyxClient(api_key="").mock_mode is True

    def test_real_mode_with_api_key(self):
        assert TelnyxClient(api_key="KEY123").mock_mode is False

    async def test_mock_send_returns_fake_id(self):
        result = await TelnyxClient(api_key="").send_message("+15550001111", "+15551234567", "hi")
        assert result["id"].startswith("mock_msg_")


class TestSendMessage:
    """Tests for send_message."""

    async def test_posts_message(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["json"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"id": "40017f", "type": "SMS"}})

        result = await _client(handler).send_message("+15550001111", "+15551234567", "On our way")

        assert seen["url"] == "https://api.telnyx.test/v2/messages"
        assert seen["auth"] == "Bearer KEY123"
        assert seen["json"] == {"from": "+15550001111", "to": "+15551234567", "text": "On our way"}
        assert result["id"] == "40017f"

    async def test_provider_error_detail(self):
        def handler(request):
            return httpx.Response(
                422, json={"errors": [{"code": "40310", "title": "Invalid 'to'", "detail": "Bad number"}]}
            )

        with pytest.raises(TelnyxSendError) as exc_info:
            await _client(handler).send_message("+15550001111", "+1", "hi")

        error = exc_info.value
        assert error.category is TelnyxErrorCategory.INVALID_REQUEST
        assert error.detail == "Bad number"
        assert error.status_code == 422
        assert error.retryable is False

    async def test_rate_limited_is_retryable(self):
        with pytest.raises(TelnyxSendError) as exc_info:
            await _client(lambda r: httpx.Response(429, json={"errors": []})).send_message("a", "b", "c")
        assert exc_info.value.category is TelnyxErrorCategory.RATE_LIMITED
        assert exc_info.value.retryable is True

    async def test_network_failure_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TelnyxSendError) as exc_info:
            await _client(handler).send_message("a", "b", "c")
        assert exc_info.value.category is TelnyxErrorCategory.TRANSIENT
        assert exc_info.value.retryable is True

    async def test_timeout_is_transient(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(TelnyxSendError) as exc_info:
            await _client(handler).send_message("a", "b", "c")
        assert exc_info.value.category is TelnyxErrorCategory.TRANSIENT


class TestCallControl:
    """Tests for answer_call and speak."""

    async def test_answer_call(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"data": {"result": "ok"}})

        result = await _client(handler).answer_call("call-abc")
        assert seen["url"] == "https://api.telnyx.test/v2/calls/call-abc/actions/answer"
        assert result == {"result": "ok"}

    async def test_speak(self):
        seen = {}

        def handler(request):
            seen["json"] = json.loads(request.content)
            return httpx.Response(200, json={"data": {"result": "ok"}})

        await _client(handler).speak("call-abc", "Hello", voice="male", language="en-US")
        assert seen["json"] == {"payload": "Hello", "voice": "male", "language": "en-US"}


def test_categorize_status():
    assert categorize_status(401) is TelnyxErrorCategory.AUTHENTICATION
    assert categorize_status(403) is TelnyxErrorCategory.AUTHENTICATION
    assert categorize_status(400) is TelnyxErrorCategory.INVALID_REQUEST
    assert categorize_status(404) is TelnyxErrorCategory.INVALID_REQUEST
    assert categorize_status(429) is TelnyxErrorCategory.RATE_LIMITED
    assert categorize_status(503) is TelnyxErrorCategory.TRANSIENT
    assert categorize_status(409) is TelnyxErrorCategory.UNKNOWN
