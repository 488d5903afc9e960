from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.domain.errors import UpstreamError
from app.services.prompt_dispatcher import get_dispatcher
from main import app


class FakeDispatcher:
    """Records prompts instead of calling Gemini. Set `error` to make every call fail."""

    model = "fake-model"

    def __init__(self, reply: str = "fake reply"):
        self.reply = reply
        self.error: UpstreamError | None = None
        self.prompts: list[str] = []
        self.probes: list[str] = []

    async def generate(self, prompt_text: str) -> str:
        self.prompts.append(prompt_text)
        if self.error:
            raise self.error
        return self.reply

    async def probe(self, prompt: str | None = None) -> str:
        self.probes.append(prompt)
        if self.error:
            raise self.error
        return self.reply


class FakeModels:
    """Stands in for genai.Client().aio.models."""

    def __init__(self, replies=None, error: Exception | None = None,
                 finish_reason: str = "STOP", block_reason: str | None = None):
        self.replies = list(replies or [])
        self.error = error
        self.finish_reason = finish_reason
        self.block_reason = block_reason
        self.calls: list[dict] = []
        self.closed = False

    async def generate_content(self, *, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.error:
            raise self.error
        text = self.replies.pop(0) if self.replies else f"out{len(self.calls)}"
        feedback = SimpleNamespace(block_reason=self.block_reason) if self.block_reason else None
        return SimpleNamespace(
            text=text,
            candidates=[SimpleNamespace(finish_reason=self.finish_reason)],
            prompt_feedback=feedback,
        )

    async def aclose(self):
        self.closed = True


def make_fake_client(**kwargs):
    models = FakeModels(**kwargs)
    return SimpleNamespace(aio=SimpleNamespace(models=models, aclose=models.aclose)), models


@pytest.fixture
def fake_dispatcher():
    return FakeDispatcher()


@pytest.fixture
def client(fake_dispatcher):
    app.dependency_overrides[get_dispatcher] = lambda: fake_dispatcher
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def fake_client():
    """Factory fixture: fake_client(replies=[...], error=..., finish_reason=...) -> (client, models)."""
    return make_fake_client
