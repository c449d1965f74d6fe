"""
Tests for the httpx transport
"""

import json

import httpx
import pytest

from agentcore.errors import TransportError
from agentcore.llm import HttpTransport, TransportResponse


def _transport(handler) -> HttpTransport:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTransport(client=client)


class TestHttpTransport:
    """Test HttpTransport"""

    @pytest.mark.asyncio
    async def test_post_json(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        async with _transport(handler) as transport:
            response = await transport.post(
                "https://api.example.com/v1/chat",
                headers={"Authorization": "Bearer k"},
                json={"q": 1},
            )

        assert response.ok
        assert response.status_code == 200
        assert json.loads(response.text) == {"ok": True}
        assert seen == {"method": "POST", "auth": "Bearer k", "body": {"q": 1}}

    @pytest.mark.asyncio
    async def test_streamed_body(self):
        def handler(request):
            return httpx.Response(200, content=b"data: one\n\ndata: two\n\n")

        chunks = []
        async with _transport(handler) as transport:
            response = await transport.post("https://api.example.com/stream", body="{}", on_chunk=chunks.append)

        assert response.ok
        assert response.text == ""
        assert "".join(chunks) == "data: one\n\ndata: two\n\n"

    @pytest.mark.asyncio
    async def test_http_error_status_is_returned(self):
        def handler(request):
            return httpx.Response(503, text="overloaded")

        async with _transport(handler) as transport:
            response = await transport.get("https://api.example.com/health")

        assert not response.ok
        assert not response.error
        assert response.status_code == 503
        with pytest.raises(TransportError) as exc_info:
            response.raise_for_error()
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_connection_failure_becomes_error_response(self):
        """Transport failures are reported, never raised"""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _transport(handler) as transport:
            response = await transport.post("https://api.example.com/v1/chat", json={})

        assert response.error
        assert response.status_code == -1
        assert "connection refused" in response.error_message
        with pytest.raises(TransportError) as exc_info:
            response.raise_for_error()
        assert exc_info.value.status_code is None

    def test_defaults_come_from_config(self, monkeypatch):
        monkeypatch.setenv("TRANSPORT_TIMEOUT_SECONDS", "12.5")
        transport = HttpTransport()
        assert transport.timeout == 12.5
        assert transport.client.follow_redirects is True

    def test_response_ok(self):
        assert TransportResponse(status_code=204).ok
        assert not TransportResponse(status_code=-1, error=True).ok
