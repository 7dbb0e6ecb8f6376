import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from meeting_relay.config import ConfigurationError, Settings
from meeting_relay.context import AppContext
from meeting_relay.routers.chat import create_chat_router
from meeting_relay.routers.sessions import create_sessions_router
from meeting_relay.routers.stream import create_stream_router
from meeting_relay.routers.webhooks import create_webhooks_router
from meeting_relay.services.attendee_client import AttendeeClient
from meeting_relay.services.broadcast_hub import BroadcastHub
from meeting_relay.services.chat_service import ChatService
from meeting_relay.services.event_correlator import EventCorrelator
from meeting_relay.services.llm import OpenAIProvider
from meeting_relay.services.logging_setup import configure_logging
from meeting_relay.services.record_store import RecordStore
from meeting_relay.services.session_lookup import SessionLookupService

VERSION = "0.1.0"

CONTENT_SECURITY_POLICY = (
    "default-src 'self'; style-src 'self' 'unsafe-inline'; "
    "script-src 'self' 'unsafe-inline' 'unsafe-eval'; "
    "connect-src 'self' https://*.zoom.us wss://*.zoom.us; "
    "img-src 'self' data:; font-src 'self' data:; "
    "frame-ancestors 'self' https://*.zoom.us https://*.zoomgov.com;"
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """OWASP headers required for embedding the viewer as a Zoom App."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    ctx = AppContext(data_dir=settings.data_dir, logs_dir=settings.logs_dir)
    ctx.ensure_dirs()

    configure_logging(ctx.logs_dir, settings.log_level)
    logger = logging.getLogger("relay.boot")
    logger.info("Boot: starting create_app data_dir=%s", ctx.data_dir)
    for name in settings.missing():
        logger.error("Boot: %s is not set; webhooks that need it will fail with 500", name)

    store = RecordStore(ctx.sessions_path, ctx.transcripts_path)
    lookup = SessionLookupService(store)
    hub = BroadcastHub(heartbeat_interval=settings.heartbeat_interval)
    attendee = AttendeeClient(settings)
    correlator = EventCorrelator(store, lookup, hub, attendee, settings)
    provider = None
    if settings.openai_api_key:
        provider = OpenAIProvider(
            settings.openai_api_key, settings.openai_model, settings.openai_base_url
        )
    chat_service = ChatService(provider)
    logger.info("Boot: services ready")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        hub.start()
        try:
            yield
        finally:
            hub.stop()

    app = FastAPI(title="Meeting Relay", version=VERSION, lifespan=lifespan)
    app.state.ctx = ctx
    app.state.settings = settings
    app.state.store = store
    app.state.hub = hub
    app.state.correlator = correlator

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error("Server not configured: %s (%s %s)", exc, request.method, request.url.path)
        return PlainTextResponse("Server not configured", status_code=500)

    app.include_router(create_webhooks_router(correlator))
    app.include_router(create_stream_router(hub, cors_origin=settings.cors_origin))
    app.include_router(create_sessions_router(store, lookup))
    app.include_router(create_chat_router(chat_service))
    logger.info("Boot: routers mounted")

    app.add_middleware(SecurityHeadersMiddleware)

    @app.get("/")
    def root():
        index_path = os.path.join(ctx.static_dir, "index.html")
        if os.path.exists(index_path):
            return FileResponse(index_path)
        return {"message": "Meeting relay running", "version": VERSION}

    @app.get("/api/health")
    def health() -> dict:
        return {"status": "ok", "version": VERSION, "subscribers": hub.subscriber_count}

    if os.path.exists(ctx.static_dir):
        app.mount("/static", StaticFiles(directory=ctx.static_dir), name="static")
        logger.info("Boot: static mounted at /static")
    else:
        logger.warning("Boot: static directory missing=%s", ctx.static_dir)

    logger.info("Boot: create_app complete")
    return app
