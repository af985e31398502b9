"""Wire-level tests of the provider clients against httpx.MockTransport."""

import json

import httpx
import pytest

from shared.clients.provider.gemini.ProviderClientGemini import ProviderClientGemini
from shared.clients.provider.lmstudio.ProviderClientLmstudio import ProviderClientLmstudio
from shared.clients.provider.openrouter.ProviderClientOpenrouter import ProviderClientOpenrouter
from shared.models.analysis import AnalyzeOptions
from shared.models.errors import ProviderError

ANALYSIS_JSON = json.dumps({
    "summary": "Flight manifest.",
    "entities": [{"name": "Jane Doe", "role": "passenger", "context": "seat 2A", "isFamous": True}],
    "keyInsights": ["Handwritten note"],
})


@pytest.fixture
def recorded():
    return []


def _transport(recorded: list, handler) -> httpx.MockTransport:
    def _handle(request: httpx.Request) -> httpx.Response:
        recorded.append(request)
        return handler(request)
    return httpx.MockTransport(_handle)


class TestGemini:
    @pytest.fixture
    def client(self, helper_config):
        helper_config.set_override("PROVIDER_GEMINI_API_KEY", "g-key")
        helper_config.set_override("PROVIDER_GEMINI_MODEL", "gemini-test")
        return ProviderClientGemini(helper_config=helper_config)

    async def test_analyze_request_and_response(self, client, recorded):
        reply = {"candidates": [{"content": {"parts": [{"text": f"```json\n{ANALYSIS_JSON}\n```"}]}}]}
        await client.boot(transport=_transport(recorded, lambda r: httpx.Response(200, json=reply)))

        result = await client.do_analyze("document text", images=["img1"])
        await client.close()

        request = recorded[0]
        assert request.url.path == "/v1beta/models/gemini-test:generateContent"
        assert request.headers["x-goog-api-key"] == "g-key"
        body = json.loads(request.content)
        parts = body["contents"][0]["parts"]
        assert "document text" in parts[0]["text"]
        assert parts[1] == {"inline_data": {"mime_type": "image/jpeg", "data": "img1"}}
        assert body["generationConfig"] == {"responseMimeType": "application/json"}
        assert "tools" not in body

        assert result.summary == "Flight manifest."
        assert result.entities[0].notable is True
        assert result.metadata.processed_by == ["gemini"]

    async def test_search_enrichment_adds_tool(self, client):
        body = await client.get_analyze_payload("p", [], AnalyzeOptions(use_search=True))
        assert body["tools"] == [{"google_search": {}}]
        assert "generationConfig" not in body

    async def test_rate_limit_is_retried_then_raised(self, client, recorded):
        handler = lambda r: httpx.Response(429, json={"error": {"status": "RESOURCE_EXHAUSTED"}})
        await client.boot(transport=_transport(recorded, handler))

        with pytest.raises(ProviderError) as excinfo:
            await client.do_analyze("text")
        await client.close()

        assert excinfo.value.transient is True
        assert excinfo.value.status_code == 429
        assert len(recorded) == 3

    async def test_forbidden_is_permanent(self, client, recorded):
        await client.boot(transport=_transport(recorded, lambda r: httpx.Response(403, text="API key invalid")))

        with pytest.raises(ProviderError) as excinfo:
            await client.do_analyze("text")
        await client.close()

        assert excinfo.value.transient is False
        assert len(recorded) == 1

    async def test_blocked_prompt_is_permanent(self, client, recorded):
        reply = {"promptFeedback": {"blockReason": "SAFETY"}}
        await client.boot(transport=_transport(recorded, lambda r: httpx.Response(200, json=reply)))

        with pytest.raises(ProviderError) as excinfo:
            await client.do_analyze("text")
        await client.close()

        assert "SAFETY" in excinfo.value.message
        assert len(recorded) == 1

    def test_missing_api_key(self, helper_config):
        helper_config.set_override("PROVIDER_GEMINI_API_KEY", "")
        with pytest.raises(ValueError):
            ProviderClientGemini(helper_config=helper_config)


class TestOpenrouter:
    @pytest.fixture
    def client(self, helper_config):
        helper_config.set_override("PROVIDER_OPENROUTER_API_KEY", "or-key")
        return ProviderClientOpenrouter(helper_config=helper_config)

    async def test_analyze_request_and_narrated_reply(self, client, recorded):
        reply = {"choices": [{"message": {"content": f"Here is the analysis: {ANALYSIS_JSON} Hope that helps."}}]}
        await client.boot(transport=_transport(recorded, lambda r: httpx.Response(200, json=reply)))

        result = await client.do_analyze("z" * 35000, images=["a", "b", "c", "d", "e", "f"])
        await client.close()

        request = recorded[0]
        assert str(request.url) == "https://openrouter.ai/api/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer or-key"
        body = json.loads(request.content)
        assert body["model"] == "google/gemini-2.0-flash-001"
        assert body["response_format"] == {"type": "json_object"}
        user_content = body["messages"][1]["content"]
        assert "z" * 30000 in user_content[0]["text"]
        assert "z" * 30001 not in user_content[0]["text"]
        assert len(user_content) == 1 + 5
        assert user_content[1]["image_url"]["url"] == "data:image/jpeg;base64,a"

        assert result.summary == "Flight manifest."

    async def test_unparseable_reply_degrades(self, client, recorded):
        reply = {"choices": [{"message": {"content": "I am unable to comply."}}]}
        await client.boot(transport=_transport(recorded, lambda r: httpx.Response(200, json=reply)))

        result = await client.do_analyze("text")
        await client.close()

        assert result.degraded is True
        assert result.summary == "I am unable to comply."

    async def test_empty_choices_is_permanent(self, client, recorded):
        await client.boot(transport=_transport(recorded, lambda r: httpx.Response(200, json={"choices": []})))

        with pytest.raises(ProviderError) as excinfo:
            await client.do_analyze("text")
        await client.close()

        assert excinfo.value.transient is False

    async def test_connection_error_is_transient(self, client, recorded):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        await client.boot(transport=_transport(recorded, handler))
        with pytest.raises(ProviderError) as excinfo:
            await client.do_analyze("text")
        await client.close()

        assert excinfo.value.transient is True
        assert len(recorded) == 3


class TestLmstudio:
    @pytest.fixture
    def client(self, helper_config):
        helper_config.set_override("PROVIDER_LMSTUDIO_BASE_URL", "localhost:1234")
        return ProviderClientLmstudio(helper_config=helper_config)

    async def test_discovers_loaded_model(self, client, recorded):
        def handler(request):
            if request.url.path == "/v1/models":
                return httpx.Response(200, json={"data": [{"id": "qwen-7b"}]})
            return httpx.Response(200, json={"choices": [{"message": {"content": f"<think>ok</think>{ANALYSIS_JSON}"}}]})

        await client.boot(transport=_transport(recorded, handler))
        await client.do_analyze("text", images=["1", "2", "3", "4"])
        await client.do_analyze("text")
        await client.close()

        paths = [r.url.path for r in recorded]
        assert paths == ["/v1/models", "/v1/chat/completions", "/v1/chat/completions"]
        assert str(recorded[0].url).startswith("http://localhost:1234")
        body = json.loads(recorded[1].content)
        assert body["model"] == "qwen-7b"
        assert body["temperature"] == 0.2
        assert body["max_tokens"] == 2000
        assert len(body["messages"][0]["content"]) == 1 + 3
        assert "authorization" not in recorded[1].headers

    async def test_no_loaded_model_is_permanent(self, client, recorded):
        await client.boot(transport=_transport(recorded, lambda r: httpx.Response(200, json={"data": []})))

        with pytest.raises(ProviderError) as excinfo:
            await client.do_analyze("text")
        await client.close()

        assert excinfo.value.transient is False
        assert "No model loaded" in excinfo.value.message
        assert len(recorded) == 1
