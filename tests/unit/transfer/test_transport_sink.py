"""Tests for AsyncTransport and HttpChunkSink.

The underlying httpx client is patched so these tests run offline.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from imagepdf.config import ImagePdfConfig
from imagepdf.errors import (
    TransferError,
    TransferNetworkError,
    TransferRetryExhaustedError,
)
from imagepdf.transfer.sink import ChunkSink, HttpChunkSink
from imagepdf.transfer.transport import (
    AsyncTransport,
    _dump_payload,
    _parse_retry_after,
    _server_message,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_response(
    status_code: int = 200,
    body: object | None = None,
    headers: dict | None = None,
    text: str | None = None,
) -> httpx.Response:
    """Build an httpx.Response with a dummy request attached."""
    if text is not None:
        content = text.encode()
    elif body is not None:
        content = json.dumps(body).encode()
    else:
        content = b""
    resp = httpx.Response(status_code, content=content, headers=headers or {})
    resp.request = httpx.Request("POST", "https://files.example.com/chunks")
    return resp


def make_config(**overrides) -> ImagePdfConfig:
    """A config tuned for fast, deterministic tests."""
    defaults = dict(
        base_url="https://files.example.com",
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        retry_jitter=False,
    )
    defaults.update(overrides)
    return ImagePdfConfig(**defaults)


# ---------------------------------------------------------------------------
# Helpers under test
# ---------------------------------------------------------------------------

class TestHelpers:
    def test_parse_retry_after(self):
        assert _parse_retry_after(make_response(429, headers={"Retry-After": "2"})) == 2.0
        assert _parse_retry_after(make_response(429, headers={"Retry-After": "soon"})) is None
        assert _parse_retry_after(make_response(429)) is None

    def test_server_message_from_json(self):
        assert _server_message(make_response(400, {"message": "Bad chunk"})) == "Bad chunk"
        assert _server_message(make_response(400, {"error": "nope"})) == "nope"

    def test_server_message_from_error_list(self):
        resp = make_response(400, [{"message": "List error", "errorCode": "X"}])
        assert _server_message(resp) == "List error"

    def test_server_message_plain_text(self):
        assert _server_message(make_response(500, text="Internal failure")) == "Internal failure"

    def test_dump_payload_redacts(self, capsys):
        _dump_payload(
            "POST",
            "https://files.example.com/chunks",
            {"fileName": "doc", "base64Data": "QUJD" * 100},
            200,
            {"fileId": "f-1"},
            token="secret-token-abcd",
        )
        err = capsys.readouterr().err
        assert "QUJDQUJD" not in err
        assert "<base64:400_chars>" in err
        assert "f-1" in err


# ---------------------------------------------------------------------------
# AsyncTransport
# ---------------------------------------------------------------------------

class TestAsyncTransport:
    @pytest.mark.asyncio
    async def test_success_returns_json(self):
        transport = AsyncTransport(make_config())
        with patch.object(
            transport._client, "request",
            new=AsyncMock(return_value=make_response(200, {"fileId": "f-1"})),
        ):
            assert await transport.request("POST", "/chunks", json={}) == {"fileId": "f-1"}
        await transport.close()

    @pytest.mark.asyncio
    async def test_empty_body_returns_empty_dict(self):
        transport = AsyncTransport(make_config())
        with patch.object(
            transport._client, "request", new=AsyncMock(return_value=make_response(204)),
        ):
            assert await transport.request("POST", "/chunks") == {}
        await transport.close()

    @pytest.mark.asyncio
    async def test_bare_string_body_wrapped(self):
        transport = AsyncTransport(make_config())
        with patch.object(
            transport._client, "request",
            new=AsyncMock(return_value=make_response(200, "068000000000001")),
        ):
            assert await transport.request("POST", "/chunks") == {"id": "068000000000001"}
        await transport.close()

    @pytest.mark.asyncio
    async def test_client_error_raises_with_server_message(self):
        transport = AsyncTransport(make_config())
        with patch.object(
            transport._client, "request",
            new=AsyncMock(return_value=make_response(400, {"message": "Invalid parent"})),
        ):
            with pytest.raises(TransferError) as exc_info:
                await transport.request("POST", "/chunks")
        assert exc_info.value.message == "Invalid parent"
        assert exc_info.value.context["status_code"] == 400
        await transport.close()

    @pytest.mark.asyncio
    async def test_server_error_not_retried_by_default(self):
        transport = AsyncTransport(make_config())
        mock = AsyncMock(return_value=make_response(503, {"message": "Unavailable"}))
        with patch.object(transport._client, "request", new=mock):
            with pytest.raises(TransferError) as exc_info:
                await transport.request("POST", "/chunks")
        assert mock.await_count == 1
        assert exc_info.value.message == "Unavailable"
        assert not isinstance(exc_info.value, TransferRetryExhaustedError)
        await transport.close()

    @pytest.mark.asyncio
    async def test_retries_when_enabled(self):
        transport = AsyncTransport(make_config(retry_max_attempts=3))
        mock = AsyncMock(side_effect=[
            make_response(503),
            make_response(429, headers={"Retry-After": "0"}),
            make_response(200, {"fileId": "f-9"}),
        ])
        with patch.object(transport._client, "request", new=mock):
            assert await transport.request("POST", "/chunks") == {"fileId": "f-9"}
        assert mock.await_count == 3
        await transport.close()

    @pytest.mark.asyncio
    async def test_retries_exhausted(self):
        transport = AsyncTransport(make_config(retry_max_attempts=2))
        mock = AsyncMock(return_value=make_response(502))
        with patch.object(transport._client, "request", new=mock):
            with pytest.raises(TransferRetryExhaustedError) as exc_info:
                await transport.request("POST", "/chunks")
        assert mock.await_count == 2
        assert exc_info.value.context["last_status_code"] == 502
        await transport.close()

    @pytest.mark.asyncio
    async def test_network_error(self):
        transport = AsyncTransport(make_config())
        mock = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch.object(transport._client, "request", new=mock):
            with pytest.raises(TransferNetworkError) as exc_info:
                await transport.request("POST", "/chunks")
        assert isinstance(exc_info.value, TransferError)
        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        await transport.close()

    @pytest.mark.asyncio
    async def test_network_error_then_success(self):
        transport = AsyncTransport(make_config(retry_max_attempts=2))
        mock = AsyncMock(side_effect=[
            httpx.ReadTimeout("slow"),
            make_response(200, {"fileId": "f-2"}),
        ])
        with patch.object(transport._client, "request", new=mock):
            assert await transport.request("POST", "/chunks") == {"fileId": "f-2"}
        await transport.close()

    @pytest.mark.asyncio
    async def test_protocol_error_not_retried(self):
        transport = AsyncTransport(make_config(retry_max_attempts=3))
        mock = AsyncMock(side_effect=httpx.RemoteProtocolError("reset"))
        with patch.object(transport._client, "request", new=mock):
            with pytest.raises(TransferNetworkError):
                await transport.request("POST", "/chunks")
        assert mock.await_count == 1
        await transport.close()

    @pytest.mark.asyncio
    async def test_metrics_recorded(self):
        metrics = MagicMock()
        transport = AsyncTransport(make_config(metrics=metrics))
        with patch.object(
            transport._client, "request",
            new=AsyncMock(return_value=make_response(200, {"fileId": "x"})),
        ):
            await transport.request("POST", "/chunks")
        metrics.increment.assert_any_call(
            "imagepdf.requests_total",
            tags={"method": "POST", "path": "/chunks", "status": "200"},
        )
        await transport.close()

    @pytest.mark.asyncio
    async def test_auth_header_only_with_token(self):
        plain = AsyncTransport(make_config())
        authed = AsyncTransport(make_config(token="tok-1234"))
        assert "authorization" not in plain._client.headers
        assert authed._client.headers["authorization"] == "Bearer tok-1234"
        await plain.close()
        await authed.close()

    @pytest.mark.asyncio
    async def test_debug_dump(self, capsys):
        transport = AsyncTransport(make_config(debug_dump_payload=True, token="tok-abcd"))
        with patch.object(
            transport._client, "request",
            new=AsyncMock(return_value=make_response(200, {"fileId": "x"})),
        ):
            await transport.request("POST", "/chunks", json={"base64Data": "QUJD"})
        err = capsys.readouterr().err
        assert '"response_status": 200' in err
        assert "tok-abcd" not in err
        await transport.close()

    @pytest.mark.asyncio
    async def test_context_manager_closes(self):
        async with AsyncTransport(make_config()) as transport:
            client = transport._client
        assert client.is_closed


# ---------------------------------------------------------------------------
# HttpChunkSink
# ---------------------------------------------------------------------------

class TestHttpChunkSink:
    def test_satisfies_protocol(self):
        assert isinstance(HttpChunkSink(MagicMock()), ChunkSink)

    @pytest.mark.asyncio
    async def test_first_chunk_body(self):
        transport = MagicMock()
        transport.request = AsyncMock(return_value={"fileId": "068-1"})
        sink = HttpChunkSink(transport, path="/api/chunks")

        token = await sink.store_chunk("rec-1", "Receipts", "QUJD", "application/pdf", None)

        assert token == "068-1"
        transport.request.assert_awaited_once_with(
            "POST",
            "/api/chunks",
            json={
                "parentId": "rec-1",
                "fileName": "Receipts",
                "base64Data": "QUJD",
                "contentType": "application/pdf",
                "fileId": "",
            },
        )

    @pytest.mark.asyncio
    async def test_continuation_token_forwarded(self):
        transport = MagicMock()
        transport.request = AsyncMock(return_value={"id": "068-1"})
        sink = HttpChunkSink(transport)

        token = await sink.store_chunk("rec-1", "doc", "QUJD", "application/pdf", "068-1")

        assert token == "068-1"
        assert transport.request.call_args.kwargs["json"]["fileId"] == "068-1"

    @pytest.mark.asyncio
    async def test_missing_token_is_transfer_error(self):
        transport = MagicMock()
        transport.request = AsyncMock(return_value={})
        with pytest.raises(TransferError):
            await HttpChunkSink(transport).store_chunk("r", "d", "QUJD", "application/pdf", None)


# ---------------------------------------------------------------------------
# Success bodies served through httpx.MockTransport
# ---------------------------------------------------------------------------

def _mock_transport(handler) -> AsyncTransport:
    """An AsyncTransport whose HTTP client is served by *handler*."""
    transport = AsyncTransport(make_config())
    transport._client = httpx.AsyncClient(
        base_url="https://files.example.com",
        transport=httpx.MockTransport(handler),
    )
    return transport


class TestSuccessBodies:
    @pytest.mark.asyncio
    async def test_plain_text_id(self):
        transport = _mock_transport(
            lambda request: httpx.Response(200, text="068Dn00000AbCdE"),
        )
        sink = HttpChunkSink(transport)

        token = await sink.store_chunk("rec-1", "doc", "QUJD", "application/pdf", None)

        assert token == "068Dn00000AbCdE"
        await transport.close()

    @pytest.mark.asyncio
    async def test_plain_text_id_is_stripped(self):
        transport = _mock_transport(
            lambda request: httpx.Response(200, text="  068Dn00000AbCdE\n"),
        )
        assert await transport.request("POST", "/chunks") == {"id": "068Dn00000AbCdE"}
        await transport.close()

    @pytest.mark.asyncio
    async def test_request_body_reaches_server(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"fileId": "068-7"})

        transport = _mock_transport(handler)
        token = await HttpChunkSink(transport).store_chunk(
            "rec-1", "doc", "QUJD", "application/pdf", "068-7",
        )

        assert token == "068-7"
        assert seen == [{
            "parentId": "rec-1",
            "fileName": "doc",
            "base64Data": "QUJD",
            "contentType": "application/pdf",
            "fileId": "068-7",
        }]
        await transport.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[{"fileId": "x"}], 12345, True])
    async def test_non_object_json_is_transfer_error(self, body):
        transport = _mock_transport(lambda request: httpx.Response(200, json=body))
        sink = HttpChunkSink(transport)

        with pytest.raises(TransferError) as exc_info:
            await sink.store_chunk("rec-1", "doc", "QUJD", "application/pdf", None)

        assert exc_info.value.message.startswith("Unexpected ")
        assert exc_info.value.context["status_code"] == 200
        await transport.close()
