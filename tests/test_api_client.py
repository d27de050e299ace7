"""Tests for the REST client and the conversation endpoints."""
import json

import httpx
import pytest

from aideplus.api.chat import ChatApi, build_stream_request
from aideplus.api.client import ApiClient
from aideplus.config import ApiConfig
from aideplus.core.session import AuthSession
from aideplus.errors import ApiError, AuthError, NetworkError, ValidationError

from conftest import TOKEN


def _client(handler, signed_in=True):
    session = AuthSession()
    if signed_in:
        session.sign_in(TOKEN)
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = ApiClient(ApiConfig(base_url="http://aide.test/"), session, http)
    return client, ChatApi(client, session)


class TestApiClient:
    def test_url_joins_base_and_prefix(self):
        client, _ = _client(lambda r: httpx.Response(200))
        assert client.url("/ai/usage") == "http://aide.test/api/v1/ai/usage"

    @pytest.mark.asyncio
    async def test_json_envelope_returned(self):
        client, _ = _client(lambda r: httpx.Response(200, json={"success": True, "data": [1]}))
        assert await client.get("/x") == {"success": True, "data": [1]}

    @pytest.mark.asyncio
    async def test_bearer_header_when_signed_in(self):
        seen = []

        def handler(request):
            seen.append(request.headers.get("Authorization"))
            return httpx.Response(200, json={})

        client, _ = _client(handler)
        await client.get("/x")
        anonymous, _ = _client(handler, signed_in=False)
        await anonymous.get("/x")
        assert seen == [f"Bearer {TOKEN}", None]

    @pytest.mark.asyncio
    async def test_json_error_uses_server_message(self):
        client, _ = _client(
            lambda r: httpx.Response(403, json={"success": False, "message": "Accès refusé"})
        )
        with pytest.raises(ApiError) as excinfo:
            await client.get("/x")
        assert str(excinfo.value) == "Accès refusé"
        assert excinfo.value.status == 403
        assert excinfo.value.data["success"] is False

    @pytest.mark.asyncio
    async def test_non_json_error(self):
        client, _ = _client(lambda r: httpx.Response(502, text="Bad Gateway"))
        with pytest.raises(ApiError, match="HTTP error! status: 502"):
            await client.get("/x")

    @pytest.mark.asyncio
    async def test_non_json_success_returns_text(self):
        client, _ = _client(lambda r: httpx.Response(200, text="pong"))
        assert await client.get("/ping") == "pong"

    @pytest.mark.asyncio
    async def test_invalid_json_body_is_api_error(self):
        client, _ = _client(
            lambda r: httpx.Response(200, content=b"{oops", headers={"content-type": "application/json"})
        )
        with pytest.raises(ApiError, match="Invalid JSON") as excinfo:
            await client.get("/x")
        assert excinfo.value.status == 200

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        client, _ = _client(refuse)
        with pytest.raises(NetworkError):
            await client.get("/x")


class TestChatApi:
    def test_build_stream_request(self):
        assert build_stream_request("Bonjour") == {"message": "Bonjour"}
        assert build_stream_request("Bonjour", "conv-1") == {
            "message": "Bonjour",
            "conversationId": "conv-1",
        }

    @pytest.mark.asyncio
    async def test_list_conversations(self):
        def handler(request):
            assert request.url.params["page"] == "2"
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "conversations": [
                            {"id": "c1", "title": None, "created_at": "2026-10-01T09:00:00+00:00", "message_count": 4}
                        ],
                        "pagination": {"page": 2, "limit": 20, "total": 21, "totalPages": 2},
                    },
                },
            )

        _, api = _client(handler)
        conversations, page = await api.list_conversations(page=2)
        assert conversations[0].title == "Nouvelle conversation"
        assert conversations[0].message_count == 4
        assert page.total_pages == 2

    @pytest.mark.asyncio
    async def test_usage(self):
        _, api = _client(
            lambda r: httpx.Response(
                200, json={"success": True, "data": {"used": 7, "remaining": 13, "limit": 20, "tier": "basic"}}
            )
        )
        usage = await api.get_usage()
        assert (usage.used, usage.remaining, usage.limit, usage.tier) == (7, 13, 20, "basic")

    @pytest.mark.asyncio
    async def test_feedback_payload(self):
        bodies = []

        def handler(request):
            bodies.append(request.content)
            return httpx.Response(200, json={"success": True, "data": {"success": True}})

        _, api = _client(handler)
        await api.submit_feedback("m1", 5, "Très utile")
        assert b'"messageId":"m1"' in bodies[0].replace(b" ", b"")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [0, 6])
    async def test_feedback_rating_range(self, rating):
        _, api = _client(lambda r: httpx.Response(200, json={}))
        with pytest.raises(ValidationError):
            await api.submit_feedback("m1", rating)

    @pytest.mark.asyncio
    async def test_open_stream_requires_token(self):
        _, api = _client(lambda r: httpx.Response(200), signed_in=False)
        with pytest.raises(AuthError):
            async with api.open_stream("Bonjour"):
                pass

    @pytest.mark.asyncio
    async def test_open_stream_rejects_non_success(self):
        _, api = _client(lambda r: httpx.Response(401, json={"message": "expired"}))
        with pytest.raises(NetworkError):
            async with api.open_stream("Bonjour"):
                pass

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"success": True, "data": None},
            {"success": True, "data": "maintenance"},
            {"success": True, "data": {"conversations": [1, 2]}},
        ],
    )
    async def test_list_conversations_rejects_unexpected_shape(self, body):
        _, api = _client(lambda r: httpx.Response(200, json=body))
        with pytest.raises(ApiError, match="Unexpected response shape"):
            await api.list_conversations()

    @pytest.mark.asyncio
    async def test_usage_rejects_html_page(self):
        _, api = _client(
            lambda r: httpx.Response(200, text="<html></html>", headers={"content-type": "text/html"})
        )
        with pytest.raises(ApiError):
            await api.get_usage()

    @pytest.mark.asyncio
    async def test_plain_chat(self):
        bodies = []

        def handler(request):
            assert request.url.path == "/api/v1/ai/chat"
            bodies.append(request.content)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "message": "Oui, l'APL est accessible.",
                        "conversationId": "conv-7",
                        "usage": {"used": 3, "remaining": 17, "limit": 20},
                    },
                },
            )

        _, api = _client(handler)
        reply = await api.chat("  APL ?  ", conversation_id="conv-7")
        assert reply.message == "Oui, l'APL est accessible."
        assert reply.conversation_id == "conv-7"
        assert (reply.usage.used, reply.usage.remaining) == (3, 17)
        assert json.loads(bodies[0]) == {"message": "APL ?", "conversationId": "conv-7"}

    @pytest.mark.asyncio
    async def test_plain_chat_quota_exceeded(self):
        _, api = _client(
            lambda r: httpx.Response(429, json={"success": False, "message": "Limite atteinte"})
        )
        with pytest.raises(ApiError) as excinfo:
            await api.chat("Bonjour")
        assert excinfo.value.status == 429

    @pytest.mark.asyncio
    async def test_plain_chat_requires_token(self):
        requests = []
        _, api = _client(lambda r: requests.append(r) or httpx.Response(200, json={}), signed_in=False)
        with pytest.raises(AuthError):
            await api.chat("Bonjour")
        assert requests == []
