# main.py
import uuid
from contextlib import asynccontextmanager
from time import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from logging_config import setup_logging, get_logger, set_request_id
from app.domain.errors import GatewayError, GENERIC_REPLY, MissingCredentialError
from app.services.prompt_dispatcher import close_dispatcher

# 1) Logging first
setup_logging(json_fmt=settings.LOG_JSON, log_dir=settings.LOG_DIR)
logger = get_logger(__name__)


# 2) Credential check
def ensure_credentials(cfg=settings) -> None:
    if not cfg.GEMINI_API_KEY:
        logger.critical("Gemini API Key is missing! Add GEMINI_API_KEY to the environment or .env file.")
        raise MissingCredentialError("GEMINI_API_KEY is not set")
    logger.info("Gemini API Key loaded.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_credentials()
    logger.info("Proxima Gemini API ready model=%s", settings.GEMINI_MODEL_NAME)
    yield
    await close_dispatcher()


# 3) FastAPI app
app = FastAPI(title=settings.SERVICE_NAME, version=settings.SERVICE_VERSION, lifespan=lifespan)


# 4) Error handlers
@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"reply": GENERIC_REPLY})


# 5) Body size guard
@app.middleware("http")
async def limit_body_size(request: Request, call_next):
    length = request.headers.get("content-length")
    if length and length.isdigit() and int(length) > settings.MAX_BODY_BYTES:
        logger.warning("REQ rejected %s %s content-length=%s limit=%s",
                       request.method, request.url.path, length, settings.MAX_BODY_BYTES)
        return JSONResponse(status_code=413, content={"reply": "Request body too large"})
    return await call_next(request)


# 6) Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
    set_request_id(rid)

    start = time()
    path = request.url.path
    method = request.method
    query = request.url.query
    client_ip = getattr(request.client, 'host', '-') if request.client else '-'
    ua = request.headers.get('user-agent', '')[:120]

    if method == 'GET' and query:
        logger.info("REQ start %s %s?%s ip=%s ua=%r", method, path, query[:300], client_ip, ua)
    else:
        logger.info("REQ start %s %s ip=%s ua=%r length=%s", method, path, client_ip, ua,
                    request.headers.get('content-length', '-'))

    status = 'NA'
    try:
        response = await call_next(request)
        status = response.status_code
        response.headers["X-Request-ID"] = rid
        return response
    finally:
        duration = (time() - start) * 1000
        logger.info("REQ end %s %s status=%s %.1fms", method, path, status, duration)


# 7) CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
logger.info("CORS middleware configured for %s", settings.CORS_ALLOWED_ORIGINS)

# 8) Routers
from app.api import chat, status

app.include_router(status.router)
app.include_router(chat.router)
