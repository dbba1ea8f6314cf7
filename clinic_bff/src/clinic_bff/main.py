# src/clinic_bff/main.py

import logging
import typing
from contextlib import asynccontextmanager

import httpx
import uvicorn
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from . import auth_routes
from .config import CONFIG_FILE_DIR, Settings, configure_logging, settings as default_settings
from .middleware import SessionGateMiddleware
from .resources import build_resource_router
from .upstream import create_http_client

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=CONFIG_FILE_DIR / "templates")

# Sections of the dashboard shell, keyed by their URL segment.
DASHBOARD_SECTIONS: typing.Dict[str, str] = {
    "users": "Usuarios",
    "roles": "Roles",
    "doctors": "Doctores",
    "floors": "Pisos",
    "offices": "Consultorios",
    "schedules": "Horarios",
    "patients": "Pacientes",
    "medical-history": "Historias clínicas",
    "chatbot-prompts": "Asistente",
}


def create_app(
        settings: typing.Optional[Settings] = None,
        transport: typing.Optional[httpx.AsyncBaseTransport] = None
) -> FastAPI:
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("--- Clinic BFF (FastAPI) Starting Up ---")
        logger.info(f"Environment: {settings.ENVIRONMENT}")
        logger.info(f"Upstream API URL: {settings.API_URL or 'NOT SET'}")
        if not settings.API_URL:
            logger.error("API_URL is not set. Every proxied request will fail with HTTP 500.")
        logger.info(f"Dashboard prefix: {settings.DASHBOARD_PATH_PREFIX}, login page: {settings.LOGIN_PATH}")
        async with create_http_client(settings, transport=transport) as client:
            app.state.http_client = client
            yield
        logger.info("--- Clinic BFF shut down ---")

    app = FastAPI(
        title="Clinic Admin BFF",
        description="Backend-For-Frontend for the clinic admin dashboard, handling session cookies "
                    "and proxying to the clinic API.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(SessionGateMiddleware, settings=settings)

    app.include_router(auth_routes.router)
    app.include_router(build_resource_router())
    register_pages(app, settings)
    return app


def register_pages(app: FastAPI, settings: Settings) -> None:
    prefix = settings.DASHBOARD_PATH_PREFIX

    @app.get("/", include_in_schema=False)
    async def read_root():
        return RedirectResponse(url=prefix, status_code=status.HTTP_302_FOUND)

    @app.get(settings.LOGIN_PATH, response_class=HTMLResponse, include_in_schema=False)
    async def login_page(request: Request):
        return templates.TemplateResponse(request, "login.html", {"dashboard_url": prefix})

    @app.get(prefix, response_class=HTMLResponse, include_in_schema=False)
    async def dashboard(request: Request):
        return render_dashboard(request, prefix, None)

    @app.get(prefix + "/{section}", response_class=HTMLResponse, include_in_schema=False)
    async def dashboard_section(request: Request, section: str):
        if section not in DASHBOARD_SECTIONS:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
        return render_dashboard(request, prefix, section)


def render_dashboard(request: Request, prefix: str, section: typing.Optional[str]):
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "prefix": prefix,
            "sections": DASHBOARD_SECTIONS,
            "section": section,
            "login_url": request.app.state.settings.LOGIN_PATH,
        },
    )


app = create_app()


def main() -> None:
    uvicorn.run(
        "clinic_bff.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        log_level=default_settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
