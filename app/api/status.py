"""Operational endpoints: service descriptor, process snapshot, live Gemini probe.

uptime counts from when this module was imported (app startup), not from
process start. maxRss is only reported where the Unix `resource` module exists.
"""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
from typing import Dict
import gc
import time

try:
    import resource  # Unix only
except ImportError:  # pragma: no cover
    resource = None  # type: ignore

from app.domain.errors import UpstreamError
from app.models.chat import HealthResponse, ProbeResponse, StatusResponse
from app.services.prompt_dispatcher import PromptDispatcher, get_dispatcher
from config import settings
from logging_config import get_logger

logger = get_logger("status")

router = APIRouter(tags=["status"])

_STARTED_AT = time.monotonic()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _memory_usage() -> Dict[str, int]:
    gen0, gen1, gen2 = gc.get_count()
    usage = {"gcGen0": gen0, "gcGen1": gen1, "gcGen2": gen2}
    if resource is not None:
        usage["maxRss"] = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss * 1024  # linux reports KiB
    return usage


@router.get("/", response_model=HealthResponse)
def health():
    return HealthResponse(
        status="running",
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        creator=settings.SERVICE_CREATOR,
        model=settings.GEMINI_MODEL_NAME,
        endpoints={
            "chat_get": "/chat?message=your_message",
            "chat_post": "/chat (POST)",
            "conversation": "/chat/conversation (POST)",
            "test": "/test",
        },
    )


@router.get("/status", response_model=StatusResponse)
def status():
    return StatusResponse(
        status="operational",
        timestamp=_now_iso(),
        uptime=round(time.monotonic() - _STARTED_AT, 3),
        memoryUsage=_memory_usage(),
        model=settings.GEMINI_MODEL_NAME,
    )


@router.get("/test", response_model=ProbeResponse)
async def test_connection(dispatcher: PromptDispatcher = Depends(get_dispatcher)):
    try:
        text = await dispatcher.probe(settings.TEST_PROMPT)
    except UpstreamError as e:
        logger.warning("probe failed kind=%s cause=%r", e.kind, e.cause or e)
        return JSONResponse(status_code=500, content={
            "status": "error",
            "error": e.reply,
            "timestamp": _now_iso(),
        })
    return ProbeResponse(
        status="success",
        test_response=text,
        model=dispatcher.model,
        timestamp=_now_iso(),
    )
