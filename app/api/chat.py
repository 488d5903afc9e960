from fastapi import APIRouter, Depends, Request
from typing import Any, Optional
from urllib.parse import unquote
import json

from pydantic import ValidationError as SchemaError

from app.domain.errors import UpstreamError, ValidationError
from app.models.chat import ChatResponse, ConversationRequest, SingleMessageRequest
from app.services.prompt_builder import build_conversation_prompt, build_single_prompt
from app.services.prompt_dispatcher import PromptDispatcher, get_dispatcher
from logging_config import get_logger

logger = get_logger("chat")

router = APIRouter(prefix="/chat", tags=["chat"])

GET_MISSING_ERROR = "Message parameter is required"
GET_USAGE = "GET /chat?message=your_message_here"
POST_MISSING_REPLY = "Message is required in request body"
CONVERSATION_MISSING_REPLY = "Messages array is required"


async def _read_json(request: Request) -> Any:
    # empty or malformed bodies count as missing input
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


async def _dispatch(dispatcher: PromptDispatcher, prompt: str, route: str) -> ChatResponse:
    try:
        text = await dispatcher.generate(prompt)
    except UpstreamError as e:
        logger.warning("%s upstream failure kind=%s status=%s cause=%r", route, e.kind, e.status_code, e.cause or e)
        raise
    return ChatResponse(reply=text)


@router.get("", response_model=ChatResponse)
async def chat_get(message: Optional[str] = None, dispatcher: PromptDispatcher = Depends(get_dispatcher)):
    if not message:
        raise ValidationError(GET_MISSING_ERROR, usage=GET_USAGE)
    decoded = unquote(message)
    return await _dispatch(dispatcher, build_single_prompt(decoded), "GET /chat")


@router.post("", response_model=ChatResponse)
async def chat_post(request: Request, dispatcher: PromptDispatcher = Depends(get_dispatcher)):
    try:
        req = SingleMessageRequest.model_validate(await _read_json(request))
    except SchemaError:
        raise ValidationError(POST_MISSING_REPLY)
    return await _dispatch(dispatcher, build_single_prompt(req.message), "POST /chat")


@router.post("/conversation", response_model=ChatResponse)
async def chat_conversation(request: Request, dispatcher: PromptDispatcher = Depends(get_dispatcher)):
    try:
        req = ConversationRequest.model_validate(await _read_json(request))
    except SchemaError:
        raise ValidationError(CONVERSATION_MISSING_REPLY)
    prompt = build_conversation_prompt(req.messages, req.context)
    return await _dispatch(dispatcher, prompt, "POST /chat/conversation")
