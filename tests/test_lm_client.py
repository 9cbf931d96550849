"""
Tests for LlamaClient and EndpointProbe against a mocked llama.cpp server.
"""
import json

import httpx
import pytest

from relay.core.config import LlamaConfig
from relay.core.errors import LLMRejectedError, LLMUnavailableError
from relay.core.lm import EndpointProbe, EndpointStatus, LlamaClient


def completion_body(content="Hello User"):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-3.5-turbo",
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": "stop",
        }],
    }


def make_client(handler, **config):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return LlamaClient(LlamaConfig(base_url="http://llama.test:8080", **config), http_client=http_client)


class TestLlamaClient:

    @pytest.mark.asyncio
    async def test_sends_chat_completion_request(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=completion_body("4"))

        client = make_client(handler)
        try:
            text = await client.complete("What is 2+2?")
        finally:
            await client.close()

        assert text == "4"
        assert seen["url"] == "http://llama.test:8080/v1/chat/completions"
        assert seen["auth"] == "Bearer no-key"
        assert seen["body"]["model"] == "gpt-3.5-turbo"
        assert seen["body"]["temperature"] == 0.4
        assert seen["body"]["messages"] == [{"role": "user", "content": "What is 2+2?"}]
        assert "max_tokens" not in seen["body"]

    def test_max_tokens_only_when_configured(self):
        client = LlamaClient(LlamaConfig(max_tokens=256))

        assert client.build_params("hi")["max_tokens"] == 256

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [500, 502, 503, 408, 429])
    async def test_retryable_statuses_are_unavailable(self, status):
        client = make_client(lambda request: httpx.Response(status, json={"error": "busy"}))

        with pytest.raises(LLMUnavailableError):
            await client.complete("hi")
        await client.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [400, 401, 404, 422])
    async def test_client_errors_are_rejected(self, status):
        client = make_client(lambda request: httpx.Response(status, json={"error": "bad"}))

        with pytest.raises(LLMRejectedError):
            await client.complete("hi")
        await client.close()

    @pytest.mark.asyncio
    async def test_connection_failure_is_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)

        with pytest.raises(LLMUnavailableError):
            await client.complete("hi")
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_content_is_rejected(self):
        client = make_client(lambda request: httpx.Response(200, json=completion_body(None)))

        with pytest.raises(LLMRejectedError):
            await client.complete("hi")
        await client.close()

    @pytest.mark.asyncio
    async def test_no_choices_is_rejected(self):
        body = completion_body()
        body["choices"] = []
        client = make_client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(LLMRejectedError):
            await client.complete("hi")
        await client.close()


def make_probe(handler):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return EndpointProbe(LlamaConfig(base_url="http://llama.test:8080"), http_client=http_client, clock=lambda: 100.0)


class TestEndpointProbe:

    def test_unchecked_before_first_probe(self):
        probe = make_probe(lambda request: httpx.Response(200, json={"status": "ok"}))

        assert probe.snapshot.status == EndpointStatus.UNCHECKED

    @pytest.mark.asyncio
    async def test_ok_with_slots(self):
        def handler(request):
            assert request.url.path == "/health"
            return httpx.Response(200, json={"status": "ok", "slots_idle": 1, "slots_processing": 0})

        probe = make_probe(handler)
        health = await probe.check()

        assert health.status == EndpointStatus.OK
        assert health.healthy
        assert (health.slots_idle, health.slots_processing) == (1, 0)
        assert health.checked_at == 100.0
        assert probe.snapshot is health
        await probe.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code,body,status", [
        (503, {"status": "loading model"}, EndpointStatus.LOADING),
        (503, {"status": "no slot available", "slots_idle": 0, "slots_processing": 2}, EndpointStatus.NO_SLOT),
        (500, {"status": "error"}, EndpointStatus.ERROR),
        (200, {"status": "warming"}, EndpointStatus.UNKNOWN),
        (200, {"status": "unreachable"}, EndpointStatus.UNKNOWN),
        (200, ["not", "a", "dict"], EndpointStatus.UNKNOWN),
    ])
    async def test_status_mapping(self, code, body, status):
        probe = make_probe(lambda request: httpx.Response(code, json=body))

        health = await probe.check()

        assert health.status == status
        assert health.http_status == code
        await probe.close()

    @pytest.mark.asyncio
    async def test_non_json_body_is_unknown(self):
        probe = make_probe(lambda request: httpx.Response(502, text="Bad Gateway"))

        health = await probe.check()

        assert health.status == EndpointStatus.UNKNOWN
        assert health.raw_status == ""
        await probe.close()

    @pytest.mark.asyncio
    async def test_unreachable_endpoint(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        probe = make_probe(handler)
        health = await probe.check()

        assert health.status == EndpointStatus.UNREACHABLE
        assert "refused" in health.error
        await probe.close()
