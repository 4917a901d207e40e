# readiness/dependencies.py
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import Request
from fastapi.templating import Jinja2Templates

from .auth.tokens import decode_session_token
from .config import Settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def _format_date(value: Optional[datetime], fmt: str = "%d %B %Y") -> str:
    return value.strftime(fmt) if value else ""


templates.env.filters["date"] = _format_date


class LoginRequired(Exception):
    """Raised by admin dependencies; answered with a redirect to the login page."""

    def __init__(self, return_url: str):
        self.return_url = return_url

    @property
    def location(self) -> str:
        return f"/admin/login?returnUrl={quote(self.return_url, safe='')}"


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_blog(request: Request):
    return request.app.state.blog


def get_users(request: Request):
    return request.app.state.users


def get_images(request: Request):
    return request.app.state.images


def get_schema(request: Request):
    return request.app.state.schema


def current_admin(request: Request) -> Optional[dict]:
    """Claims of the signed-in admin, or None."""
    settings: Settings = request.app.state.settings
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    return decode_session_token(token, settings)


def require_admin(request: Request) -> dict:
    claims = current_admin(request)
    if claims is None:
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        raise LoginRequired(path)
    return claims


def render(request: Request, name: str, status_code: int = 200, **context):
    settings: Settings = request.app.state.settings
    context.setdefault("settings", settings)
    context.setdefault("admin", current_admin(request))
    return templates.TemplateResponse(request, name, context, status_code=status_code)


def wants_json(request: Request) -> bool:
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept
