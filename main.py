"""Parley - Multilingual Voice Chat."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app import database
from app.config import get_settings
from app.errors import VoiceChatError
from app.rate_limit import limiter
from app.routers import auth_router, gateways_router, messages_router
from app.routers.gateways import GATEWAY_PREFIX
from app.services.sarvam import close_sarvam_client, get_sarvam_client

# Logging
logger = logging.getLogger("parley")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

APP_VERSION = "0.1.0"

# Environments where the Sarvam client is built at startup
STRICT_ENVS = {"production", "staging"}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    for warning in settings.validate():
        logger.warning("Config: %s", warning)
    if settings.APP_ENV == "development":
        database.create_tables()
    elif settings.APP_ENV in STRICT_ENVS:
        # A missing provider credential stops startup instead of failing each request
        get_sarvam_client()
    yield
    await close_sarvam_client()


app = FastAPI(title="Parley", version=APP_VERSION, lifespan=lifespan)
app.state.limiter = limiter


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # data: covers the inline message audio
        response.headers["Content-Security-Policy"] = "default-src 'none'; media-src 'self' data:"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    # Base64 inflates recordings by a third on the gateway routes
    MAX_BODY_SIZE = get_settings().MAX_UPLOAD_SIZE_MB * 1024 * 1024 * 4 // 3 + 1024 * 1024

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content={"detail": "Request body too large"})
        return await call_next(request)


# --- Gateway CORS middleware ---
class GatewayCorsMiddleware(BaseHTTPMiddleware):
    """Answers preflight and adds permissive CORS headers on gateway routes."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if not request.url.path.startswith(GATEWAY_PREFIX):
            return await call_next(request)
        if request.method == "OPTIONS":
            return PlainTextResponse("ok", headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = {"/api/v1/messages/voice", "/api/v1/auth/register", "/api/v1/auth/login", GATEWAY_PREFIX}

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        if request.method == "POST" and any(path.startswith(p) for p in self.AUDIT_PATHS):
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                request.method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestSizeLimitMiddleware)
app.add_middleware(GatewayCorsMiddleware)
app.add_middleware(AuditLogMiddleware)

app.include_router(auth_router)
app.include_router(gateways_router)
app.include_router(messages_router)


# --- Rate limit error handler ---
@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle rate limit exceeded."""
    return JSONResponse(status_code=429, content={"detail": "Rate limit exceeded. Try again later."})


# --- Pipeline errors ---
@app.exception_handler(VoiceChatError)
async def voice_chat_error_handler(request: Request, exc: VoiceChatError) -> JSONResponse:
    """Gateways answer ``{"error"}`` with 500; the message API answers ``{"detail"}`` with the error's status."""
    if request.url.path.startswith(GATEWAY_PREFIX):
        logger.error("Gateway %s error: %s", request.url.path, exc.message)
        return JSONResponse(status_code=500, content={"error": exc.message})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTP errors as JSON ``{"detail"}``."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)


# --- Health check ---
@app.get("/api/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "app": "parley", "version": APP_VERSION}
