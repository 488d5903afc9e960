# app/services/gemini_client.py
"""Gemini access through the google-genai SDK.

Async calls go through `client.aio.models.generate_content`; generation
parameters and safety settings travel in a `GenerateContentConfig`.
"""
from __future__ import annotations
from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from config import settings as default_settings
from app.domain.errors import (
    CredentialError,
    GenericUpstreamError,
    QuotaExceededError,
    SafetyBlockedError,
    UpstreamError,
)

HARM_CATEGORIES = (
    types.HarmCategory.HARM_CATEGORY_HARASSMENT,
    types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
    types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
)

# finish / block reasons Gemini uses for content-policy refusals
SAFETY_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}

# exact tokens from Gemini error bodies (case-sensitive)
CREDENTIAL_MARKER = "API_KEY_INVALID"
QUOTA_MARKER = "RESOURCE_EXHAUSTED"
CREDENTIAL_STATUSES = {"UNAUTHENTICATED", "PERMISSION_DENIED"}


def build_client(settings=default_settings) -> genai.Client:
    return genai.Client(api_key=settings.GEMINI_API_KEY)


def safety_settings(threshold: str) -> List[types.SafetySetting]:
    return [
        types.SafetySetting(category=c, threshold=types.HarmBlockThreshold(threshold))
        for c in HARM_CATEGORIES
    ]


def generation_config(settings=default_settings, with_safety: bool = False) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        temperature=settings.GEN_TEMPERATURE,
        top_p=settings.GEN_TOP_P,
        top_k=settings.GEN_TOP_K,
        max_output_tokens=settings.GEN_MAX_OUTPUT_TOKENS,
        safety_settings=safety_settings(settings.SAFETY_THRESHOLD) if with_safety else None,
    )


def _reason(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


def extract_text(resp: Any) -> str:
    """Return the generated text of a generate_content response.

    A prompt block reason or a safety finish reason means Gemini refused on
    content-policy grounds; a response without text is treated as malformed.
    """
    feedback = getattr(resp, "prompt_feedback", None)
    block_reason = _reason(getattr(feedback, "block_reason", None))
    if block_reason:
        raise SafetyBlockedError(f"block_reason={block_reason}")
    candidates = getattr(resp, "candidates", None) or []
    if candidates:
        finish_reason = _reason(getattr(candidates[0], "finish_reason", None))
        if finish_reason in SAFETY_REASONS:
            raise SafetyBlockedError(f"finish_reason={finish_reason}")
    text = getattr(resp, "text", None)
    if not text:
        raise GenericUpstreamError("response has no text")
    return text


def _error_reasons(details: Any) -> List[str]:
    """Collect `reason` entries of a Google error body ({"error": {"details": [...]}})."""
    if not isinstance(details, dict):
        return []
    body = details.get("error", details)
    if not isinstance(body, dict):
        return []
    return [d.get("reason") for d in body.get("details") or [] if isinstance(d, dict) and d.get("reason")]


def classify_upstream_error(exc: BaseException) -> UpstreamError:
    if isinstance(exc, UpstreamError):
        return exc
    text = str(exc)
    if isinstance(exc, genai_errors.APIError):
        code = getattr(exc, "code", None)
        status = getattr(exc, "status", None)
        reasons = _error_reasons(getattr(exc, "details", None))
        if code == 401 or status in CREDENTIAL_STATUSES or CREDENTIAL_MARKER in reasons:
            return CredentialError(text, cause=exc)
        if code == 429 or status == QUOTA_MARKER:
            return QuotaExceededError(text, cause=exc)
        # any other rejected request (schema errors included) is a generic failure
        return GenericUpstreamError(text, cause=exc)
    if CREDENTIAL_MARKER in text:
        return CredentialError(text, cause=exc)
    if QUOTA_MARKER in text:
        return QuotaExceededError(text, cause=exc)
    return GenericUpstreamError(text, cause=exc)


async def generate_content(
    client: genai.Client,
    prompt: str,
    model: str,
    config: Optional[types.GenerateContentConfig] = None,
) -> str:
    """Single non-streaming generation call. Raises UpstreamError subclasses only."""
    try:
        resp = await client.aio.models.generate_content(model=model, contents=prompt, config=config)
    except Exception as e:
        raise classify_upstream_error(e) from e
    return extract_text(resp)
