"""Prompt dispatcher: one prompt in, generated text out.

Usage:
  from app.services.prompt_dispatcher import get_dispatcher
  text = await get_dispatcher().generate("Hello")

Prompts longer than CHUNK_THRESHOLD_CHARS are cut into fixed CHUNK_SIZE_CHARS
windows. Windows are sent one after another (never concurrently) and the
replies joined with a single space. Windows may cut through words.
"""
from __future__ import annotations
from typing import Any, List, Optional
import time

from config import settings as default_settings
from app.domain.errors import UpstreamError
from app.services import gemini_client
from logging_config import get_logger

logger = get_logger("dispatcher")


def split_into_chunks(text: str, size: int) -> List[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


class PromptDispatcher:
    def __init__(self, client: Any = None, settings=default_settings):
        self.settings = settings
        self.client = client if client is not None else gemini_client.build_client(settings)
        self.model = settings.GEMINI_MODEL_NAME

    async def _call(self, prompt: str, with_safety: bool, label: str) -> str:
        start = time.time()
        logger.info("[dispatch] start model=%s %s chars=%d", self.model, label, len(prompt))
        try:
            out = await gemini_client.generate_content(
                self.client,
                prompt,
                model=self.model,
                config=gemini_client.generation_config(self.settings, with_safety=with_safety),
            )
        except UpstreamError as e:
            logger.warning("[dispatch] error model=%s %s latency=%.2fs kind=%s msg=%s",
                           self.model, label, time.time() - start, e.kind, str(e)[:180])
            raise
        logger.info("[dispatch] done model=%s %s latency=%.2fs out_chars=%d",
                    self.model, label, time.time() - start, len(out))
        return out

    async def generate(self, prompt_text: str) -> str:
        if len(prompt_text) <= self.settings.CHUNK_THRESHOLD_CHARS:
            return await self._call(prompt_text, with_safety=False, label="single")

        chunks = split_into_chunks(prompt_text, self.settings.CHUNK_SIZE_CHARS)
        logger.info("[dispatch] chunked prompt chars=%d chunks=%d", len(prompt_text), len(chunks))
        parts: List[str] = []
        for idx, chunk in enumerate(chunks, start=1):
            parts.append(await self._call(chunk, with_safety=True, label=f"chunk={idx}/{len(chunks)}"))
        return " ".join(parts)

    async def probe(self, prompt: Optional[str] = None) -> str:
        """Bare connectivity check: model only, no generation config or safety settings."""
        prompt = prompt or self.settings.TEST_PROMPT
        start = time.time()
        out = await gemini_client.generate_content(self.client, prompt, model=self.model)
        logger.info("[dispatch] probe ok model=%s latency=%.2fs", self.model, time.time() - start)
        return out


_singleton: Optional[PromptDispatcher] = None


def get_dispatcher() -> PromptDispatcher:
    global _singleton
    if _singleton is None:
        _singleton = PromptDispatcher()
    return _singleton


async def close_dispatcher() -> None:
    global _singleton
    if _singleton is None:
        return
    dispatcher, _singleton = _singleton, None
    await dispatcher.client.aio.aclose()
    logger.info("[dispatch] client closed")
