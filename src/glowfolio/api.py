"""FastAPI application exposing the portfolio, admin and contact endpoints."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

from .config import Settings
from .context import AppContext, build_context
from .database import init_db
from .errors import error_response, register_error_handlers, unhandled_error_handler
from .routes import admin, auth, contact, portfolio

logger = logging.getLogger(__name__)

# Prometheus counter to track API requests by method, endpoint and status code
REQUEST_COUNTER = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Resource-Policy": "same-site",
}


def _install_middleware(app: FastAPI, ctx: AppContext) -> None:
    settings = ctx.settings

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        """Reject requests whose declared body exceeds the configured limit."""
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.max_request_size:
            logger.warning(
                "rejecting %s %s with %s byte body", request.method, request.url.path, length
            )
            return error_response(413, "PAYLOAD_TOO_LARGE", "Požadavek je příliš velký")
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log incoming requests and their outcomes while updating metrics."""
        logger.info("request %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
        except Exception as exc:
            # rendered here so CORS and security headers reach 500s too
            response = await unhandled_error_handler(request, exc)
        REQUEST_COUNTER.labels(
            method=request.method,
            endpoint=request.url.path,
            status=str(response.status_code),
        ).inc()
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        logger.info(
            "response %s %s status %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response

    # outermost, so it sees every response log_requests produces
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and the context it owns."""
    settings = settings or Settings()
    ctx = build_context(settings)
    init_db(ctx.engine)
    ctx.storage.ensure_root()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.smtp_verify_on_startup:
            await run_in_threadpool(ctx.mailer.verify)
        yield
        ctx.dispose()

    app = FastAPI(title=settings.api_title, lifespan=lifespan)
    app.state.context = ctx
    app.state.limiter = ctx.limiter

    register_error_handlers(app)
    _install_middleware(app, ctx)

    app.include_router(auth.build_router(ctx), prefix="/api/auth", tags=["auth"])
    app.include_router(portfolio.build_router(ctx), prefix="/api/portfolio", tags=["portfolio"])
    app.include_router(admin.build_router(ctx), prefix="/api/admin", tags=["admin"])
    app.include_router(contact.build_router(ctx), prefix="/api/contact", tags=["contact"])

    @app.get("/api/health")
    def health():
        return {"status": "ok", "message": "Server is running"}

    @app.get("/metrics", include_in_schema=False)
    def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    logger.info("application created environment=%s", settings.environment)
    return app
