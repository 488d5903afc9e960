import asyncio
import math

import pytest
from google.genai import errors as genai_errors
from google.genai import types

from app.domain import errors
from app.services import gemini_client
from app.services import prompt_dispatcher
from app.services.prompt_dispatcher import PromptDispatcher, split_into_chunks
from config import settings


def _run(coro):
    return asyncio.run(coro)


def _google_error(cls, code, status, message, reason=None):
    body = {"error": {"code": code, "message": message, "status": status}}
    if reason:
        body["error"]["details"] = [{"@type": "type.googleapis.com/google.rpc.ErrorInfo", "reason": reason}]
    return cls(code, body)


def test_split_into_chunks_last_chunk_shorter():
    chunks = split_into_chunks("abcdefghij", 4)
    assert chunks == ["abcd", "efgh", "ij"]


def test_short_prompt_single_call_with_generation_config(fake_client):
    client, models = fake_client(replies=["hello back"])
    out = _run(PromptDispatcher(client=client).generate("hello"))
    assert out == "hello back"
    assert len(models.calls) == 1
    call = models.calls[0]
    assert call["model"] == settings.GEMINI_MODEL_NAME
    assert call["contents"] == "hello"
    config = call["config"]
    assert isinstance(config, types.GenerateContentConfig)
    assert config.model_dump(exclude_none=True) == {
        "temperature": 0.7,
        "top_p": 0.9,
        "top_k": 40,
        "max_output_tokens": 8192,
    }


def test_prompt_at_threshold_is_not_chunked(fake_client):
    client, models = fake_client()
    _run(PromptDispatcher(client=client).generate("x" * 30000))
    assert len(models.calls) == 1
    assert models.calls[0]["config"].safety_settings is None


@pytest.mark.parametrize("length", [30001, 50000, 75001, 123456])
def test_long_prompt_is_chunked_in_order(fake_client, length):
    client, models = fake_client()
    prompt = "".join(chr(ord("a") + (i // 25000)) for i in range(length))
    out = _run(PromptDispatcher(client=client).generate(prompt))

    expected_calls = math.ceil(length / 25000)
    assert len(models.calls) == expected_calls
    assert out == " ".join(f"out{i}" for i in range(1, expected_calls + 1))
    sent = [c["contents"] for c in models.calls]
    assert "".join(sent) == prompt
    assert all(len(s) == 25000 for s in sent[:-1])


def test_chunked_calls_carry_safety_settings_in_config(fake_client):
    client, models = fake_client()
    _run(PromptDispatcher(client=client).generate("y" * 30001))
    for call in models.calls:
        config = call["config"]
        assert config.top_k == 40
        assert config.max_output_tokens == 8192
        safety = config.safety_settings
        assert all(isinstance(s, types.SafetySetting) for s in safety)
        assert [s.category for s in safety] == [
            types.HarmCategory.HARM_CATEGORY_HARASSMENT,
            types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
            types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
            types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
        ]
        assert {s.threshold for s in safety} == {types.HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE}


def test_chunk_failure_stops_the_loop(fake_client):
    client, models = fake_client(error=RuntimeError("socket closed"))
    with pytest.raises(errors.GenericUpstreamError):
        _run(PromptDispatcher(client=client).generate("z" * 60000))
    assert len(models.calls) == 1


@pytest.mark.parametrize("finish_reason", ["SAFETY", "PROHIBITED_CONTENT", types.FinishReason.SAFETY])
def test_safety_finish_reason_is_safety_block(fake_client, finish_reason):
    client, _ = fake_client(finish_reason=finish_reason)
    with pytest.raises(errors.SafetyBlockedError):
        _run(PromptDispatcher(client=client).generate("hello"))


def test_prompt_block_reason_is_safety_block(fake_client):
    client, _ = fake_client(block_reason="SAFETY")
    with pytest.raises(errors.SafetyBlockedError):
        _run(PromptDispatcher(client=client).generate("hello"))


def test_empty_completion_is_generic_failure(fake_client):
    client, _ = fake_client(replies=[""])
    with pytest.raises(errors.GenericUpstreamError):
        _run(PromptDispatcher(client=client).generate("hello"))


def test_probe_sends_bare_request(fake_client):
    client, models = fake_client(replies=["yes, working"])
    out = _run(PromptDispatcher(client=client).probe())
    assert out == "yes, working"
    call = models.calls[0]
    assert call["contents"] == "Hello, are you working?"
    assert call["config"] is None


@pytest.mark.parametrize("exc, expected", [
    (_google_error(genai_errors.ClientError, 400, "INVALID_ARGUMENT",
                   "API key not valid. Please pass a valid API key.", reason="API_KEY_INVALID"), errors.CredentialError),
    (_google_error(genai_errors.ClientError, 403, "PERMISSION_DENIED", "Permission denied"), errors.CredentialError),
    (_google_error(genai_errors.ClientError, 429, "RESOURCE_EXHAUSTED", "You exceeded your current quota"), errors.QuotaExceededError),
    (RuntimeError("429 RESOURCE_EXHAUSTED: You exceeded your current quota"), errors.QuotaExceededError),
    (RuntimeError("400 API_KEY_INVALID"), errors.CredentialError),
    (_google_error(genai_errors.ServerError, 500, "INTERNAL", "backend error"), errors.GenericUpstreamError),
    (TimeoutError("read timed out"), errors.GenericUpstreamError),
])
def test_classify_upstream_error(exc, expected):
    classified = gemini_client.classify_upstream_error(exc)
    assert type(classified) is expected
    assert classified.cause is exc


@pytest.mark.parametrize("exc", [
    _google_error(genai_errors.ClientError, 400, "INVALID_ARGUMENT",
                  'Invalid JSON payload received. Unknown name "safety_settings": Cannot find field.'),
    RuntimeError("Candidate was blocked due to SAFETY"),
    RuntimeError("proxy blocked the connection"),
])
def test_rejected_requests_mentioning_safety_are_generic(exc):
    # only structured block/finish reasons count as a safety refusal
    assert type(gemini_client.classify_upstream_error(exc)) is errors.GenericUpstreamError


def test_dispatcher_surfaces_classified_error(fake_client):
    client, _ = fake_client(error=_google_error(genai_errors.ClientError, 429, "RESOURCE_EXHAUSTED", "quota exceeded"))
    with pytest.raises(errors.QuotaExceededError) as info:
        _run(PromptDispatcher(client=client).generate("hello"))
    assert info.value.status_code == 429


def test_close_dispatcher_closes_client(fake_client, monkeypatch):
    client, models = fake_client()
    monkeypatch.setattr(prompt_dispatcher, "_singleton", PromptDispatcher(client=client))
    _run(prompt_dispatcher.close_dispatcher())
    assert models.closed is True
    assert prompt_dispatcher._singleton is None
    # nothing to close the second time
    _run(prompt_dispatcher.close_dispatcher())
