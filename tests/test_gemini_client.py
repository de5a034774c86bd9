import httpx
import pytest

from studyaid.services.errors import ProviderError, QuotaExhaustedError
from studyaid.services.llm.gemini_client import GeminiClient, image_part, is_quota_shaped, text_part


def test_quota_shape_detection():
    assert is_quota_shaped(429, "anything")
    assert is_quota_shaped(400, "x", "RESOURCE_EXHAUSTED")
    assert is_quota_shaped(403, "You exceeded your current quota")
    assert is_quota_shaped(500, "Rate limit reached for requests")
    assert is_quota_shaped(402, "Insufficient balance")
    assert not is_quota_shaped(400, "Invalid argument: cannot generate content")
    assert not is_quota_shaped(500, "Internal error")


def test_generate_sends_key_header_parts_and_config(gemini):
    gemini.ok("hello")
    client = GeminiClient("https://llm.test/v1beta/", transport=httpx.MockTransport(gemini.handler))

    result = client.generate(
        api_key="k1",
        model="gemini-2.5-flash",
        parts=[text_part("describe"), image_part("aGVsbG8=", "image/png")],
        temperature=0.3,
        max_output_tokens=150,
        thinking_budget=0,
    )

    assert result.text == "hello"
    assert result.model == "gemini-2.5-flash"
    call = gemini.calls[0]
    assert call["key"] == "k1"
    assert call["model"] == "gemini-2.5-flash"
    parts = call["body"]["contents"][0]["parts"]
    assert parts[1] == {"inline_data": {"data": "aGVsbG8=", "mime_type": "image/png"}}
    cfg = call["body"]["generationConfig"]
    assert cfg["temperature"] == 0.3
    assert cfg["maxOutputTokens"] == 150
    assert cfg["thinkingConfig"] == {"thinkingBudget": 0}


def test_thought_parts_are_dropped():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "candidates": [
                    {"content": {"parts": [{"text": "thinking...", "thought": True}, {"text": "answer"}]}}
                ]
            },
        )

    client = GeminiClient("https://llm.test/v1beta", transport=httpx.MockTransport(handler))
    assert client.generate(api_key="k", model="m", parts=[text_part("q")]).text == "answer"


def test_quota_response_raises_quota_error(gemini):
    gemini.quota()
    client = GeminiClient("https://llm.test/v1beta", transport=httpx.MockTransport(gemini.handler))
    with pytest.raises(QuotaExhaustedError) as ei:
        client.generate(api_key="k", model="m", parts=[text_part("q")])
    assert ei.value.provider_status == 429
    assert ei.value.code == "GEMINI_QUOTA"


def test_bad_request_raises_provider_error(gemini):
    gemini.error(400, "API key not valid. Please pass a valid API key.", "INVALID_ARGUMENT")
    client = GeminiClient("https://llm.test/v1beta", transport=httpx.MockTransport(gemini.handler))
    with pytest.raises(ProviderError) as ei:
        client.generate(api_key="k", model="m", parts=[text_part("q")])
    assert not isinstance(ei.value, QuotaExhaustedError)
    assert ei.value.provider_status == 400
    assert "API key not valid" in ei.value.message


def test_timeout_becomes_provider_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = GeminiClient("https://llm.test/v1beta", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderError) as ei:
        client.generate(api_key="k", model="m", parts=[text_part("q")], timeout_s=1)
    assert "timed out" in ei.value.message


def test_missing_key_fails_without_request(gemini):
    client = GeminiClient("https://llm.test/v1beta", transport=httpx.MockTransport(gemini.handler))
    with pytest.raises(ProviderError):
        client.generate(api_key="", model="m", parts=[text_part("q")])
    assert gemini.calls == []


def test_blank_reply_allowed_when_requested(gemini):
    gemini.ok("   ").ok("   ")
    client = GeminiClient("https://llm.test/v1beta", transport=httpx.MockTransport(gemini.handler))

    assert client.generate(api_key="k", model="m", parts=[text_part("q")], allow_empty=True).text == ""
    with pytest.raises(ProviderError):
        client.generate(api_key="k", model="m", parts=[text_part("q")])
