# readiness/main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException

from .audit.client import AuditClient
from .audit.exporter import ReportExporter
from .config import Settings, get_settings
from .crawl.client import CrawlClient
from .dependencies import LoginRequired, render, wants_json
from .errors import ExportAbortedError, ExportInProgressError, RemoteServiceError, ValidationError
from .routers import admin, audit, knowledge_graph, pages
from .services.blog_service import BlogService
from .services.image_service import ImageService
from .services.logger import configure_logging
from .services.registry import TTLRegistry
from .services.schema_service import SchemaService
from .services.user_service import UserAuthenticationService

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("%s %s starting", settings.SITE_NAME, settings.APP_VERSION)
        yield
        for session in app.state.crawls.values():
            await session.stop()
        await app.state.crawl_client.aclose()
        logger.info("Shutdown complete")

    app = FastAPI(title=settings.SITE_NAME, version=settings.APP_VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── services ────────────────────────────────────────────────────────────
    settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    app.state.settings = settings
    app.state.blog = BlogService(settings.DATA_DIR, cache_seconds=settings.BLOG_CACHE_SECONDS)
    app.state.users = UserAuthenticationService(
        settings.DATA_DIR,
        default_username=settings.DEFAULT_ADMIN_USERNAME,
        default_password=settings.DEFAULT_ADMIN_PASSWORD,
    )
    app.state.images = ImageService(settings.upload_dir)
    app.state.schema = SchemaService(settings)
    app.state.audit_client = AuditClient(settings.AUDIT_API_URL, timeout=settings.HTTP_TIMEOUT)
    app.state.crawl_client = CrawlClient(settings.CRAWL_API_URL, timeout=settings.HTTP_TIMEOUT)
    app.state.audits = TTLRegistry(settings.AUDIT_RESULT_TTL_SECONDS)
    app.state.crawls = TTLRegistry(settings.CRAWL_SESSION_TTL_SECONDS, on_evict=lambda s: s.cancel())
    app.state.exporter = ReportExporter(settings, render_html=audit.render_report_html)

    # ── static files ────────────────────────────────────────────────────────
    app.mount("/uploads", StaticFiles(directory=str(settings.upload_dir.parent)), name="uploads")
    app.mount("/static", StaticFiles(directory=str(settings.STATIC_DIR)), name="static")

    # ── routers ─────────────────────────────────────────────────────────────
    app.include_router(pages.router)
    app.include_router(audit.router)
    app.include_router(knowledge_graph.router)
    app.include_router(admin.router)

    @app.get("/healthz")
    async def healthz():
        return {"ok": True, "app": "readiness", "version": settings.APP_VERSION}

    # ── error handling ──────────────────────────────────────────────────────
    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired):
        return RedirectResponse(url=exc.location, status_code=303)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": exc.message})

    @app.exception_handler(ExportAbortedError)
    async def export_aborted_handler(request: Request, exc: ExportAbortedError):
        logger.warning("Export aborted: %s", exc.message)
        return JSONResponse(status_code=422, content={"error": exc.message})

    @app.exception_handler(ExportInProgressError)
    async def export_in_progress_handler(request: Request, exc: ExportInProgressError):
        return JSONResponse(status_code=409, content={"error": exc.message})

    @app.exception_handler(RemoteServiceError)
    async def remote_error_handler(request: Request, exc: RemoteServiceError):
        return JSONResponse(status_code=502, content={"error": exc.message})

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        if exc.status_code == 404 and not wants_json(request):
            return render(request, "404.html", status_code=404, detail=exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=exc.headers)

    return app


app = create_app()


# ---------------------------
# Run Uvicorn (local dev)
# ---------------------------
if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("readiness.main:app", host="0.0.0.0", port=port, reload=True)
