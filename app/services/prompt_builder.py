"""Prompt builder: flattens chat requests into the single prompt string sent upstream."""
from __future__ import annotations
from typing import Iterable, Optional

from app.models.chat import ChatMessage


def build_single_prompt(message: str) -> str:
    return message


def build_conversation_prompt(messages: Iterable[ChatMessage], context: Optional[str] = None) -> str:
    conversation = "\n".join(f"{m.role}: {m.content}" for m in messages)
    if context:
        return f"{context}\n\n{conversation}"
    return conversation
