"""Gateway error taxonomy.

Every error knows the HTTP status it maps to and the payload the caller sees.
Upstream failures never expose the provider's own message; the caller only
ever gets the fixed reply string of the error kind.
"""
from __future__ import annotations
from typing import Dict, Optional

CREDENTIAL_REPLY = "❌ Invalid API Key."
SAFETY_REPLY = "⚠️ Your message was blocked by the safety filter. Please rephrase it and try again."
QUOTA_REPLY = "⏳ The AI service is under high demand right now. Please try again in a moment."
GENERIC_REPLY = "⚠️ Processing error."


class GatewayError(Exception):
    kind = "generic"
    status_code = 500
    reply = GENERIC_REPLY

    def payload(self) -> Dict[str, str]:
        return {"reply": self.reply}


class ValidationError(GatewayError):
    """Caller omitted required input. Raised before the dispatcher is touched."""
    kind = "validation"
    status_code = 400

    def __init__(self, reply: str, usage: Optional[str] = None):
        super().__init__(reply)
        self.reply = reply
        self.usage = usage

    def payload(self) -> Dict[str, str]:
        # GET /chat reports {error, usage} instead of {reply}
        if self.usage:
            return {"error": self.reply, "usage": self.usage}
        return {"reply": self.reply}


class UpstreamError(GatewayError):
    """Base for failures of the upstream model API. `cause` is kept for logs only."""

    def __init__(self, message: str = "", cause: Optional[BaseException] = None):
        super().__init__(message or self.kind)
        self.cause = cause


class CredentialError(UpstreamError):
    kind = "credential"
    status_code = 401
    reply = CREDENTIAL_REPLY


class SafetyBlockedError(UpstreamError):
    kind = "safety"
    status_code = 400
    reply = SAFETY_REPLY


class QuotaExceededError(UpstreamError):
    kind = "quota"
    status_code = 429
    reply = QUOTA_REPLY


class GenericUpstreamError(UpstreamError):
    kind = "generic"
    status_code = 500
    reply = GENERIC_REPLY


class MissingCredentialError(RuntimeError):
    """GEMINI_API_KEY is not configured; the gateway refuses to start."""
