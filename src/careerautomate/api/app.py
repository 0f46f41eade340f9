from __future__ import annotations

import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles

from careerautomate.api.routes import router as api_router
from careerautomate.config import Settings, get_settings
from careerautomate.core.clock import Clock, SystemClock
from careerautomate.core.events import EventBus
from careerautomate.core.guards import LOGIN_URL, RedirectRequired
from careerautomate.core.session_timeout import SessionTimeoutWatchdog
from careerautomate.core.system_controls import SystemControlsStore, backend_row_fetcher
from careerautomate.db.init import init_database
from careerautomate.errors import ServiceError
from careerautomate.logging_config import configure_logging
from careerautomate.services.registry import Services, build_services
from careerautomate.web.routes import router as web_router
from careerautomate.web.routes import templates

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    services: Services | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    configure_logging()
    settings = settings or get_settings()
    services = services or build_services(settings)
    static_dir = Path(__file__).resolve().parents[1] / "web" / "static"

    app = FastAPI(title=settings.app_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    fetch_rows = backend_row_fetcher(services.backend) if settings.system_controls_enabled else list
    app.state.settings = settings
    app.state.services = services
    app.state.clock = clock or SystemClock()
    app.state.watchdog = SessionTimeoutWatchdog.from_settings(settings)
    app.state.controls = SystemControlsStore(
        fetch_rows,
        interval_sec=settings.system_controls_poll_sec,
        event_bus=EventBus(),
    )

    templates.env.globals.update(
        app_name=settings.app_name,
        support_email=settings.support_email,
        session_timeout_min=settings.session_timeout_min,
        session_warning_min=settings.session_warning_min,
        video_max_duration_sec=settings.video_max_duration_sec,
    )

    @app.on_event("startup")
    async def _startup() -> None:
        init_database()
        if settings.system_controls_enabled:
            await app.state.controls.start()
        else:
            await app.state.controls.refresh()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.controls.stop()

    @app.exception_handler(RedirectRequired)
    async def _redirect(request: Request, exc: RedirectRequired) -> Response:
        response = RedirectResponse(url=exc.url, status_code=303)
        if exc.url.startswith(LOGIN_URL):
            response.delete_cookie(settings.session_cookie_name)
        return response

    @app.exception_handler(ServiceError)
    async def _service_unavailable(request: Request, exc: ServiceError) -> Response:
        logger.error("Service failure path=%s error=%s", request.url.path, exc)
        if request.url.path.startswith("/api/"):
            return JSONResponse({"detail": exc.user_message}, status_code=503)
        retry_url = request.url.path if request.method == "GET" else request.headers.get("referer", "/dashboard")
        if request.method == "GET" and request.url.query:
            retry_url = f"{retry_url}?{request.url.query}"
        return templates.TemplateResponse(
            request,
            "unavailable.html",
            {"message": exc.user_message, "retry_url": retry_url},
            status_code=503,
        )

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    if settings.web_ui_enabled:
        app.include_router(web_router)

    app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")
    return app
