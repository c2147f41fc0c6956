"""
Pages Router — landing page and dashboard shell.

Access control for both lives in the session gate middleware (main.py).
"""

from __future__ import annotations

from pathlib import Path
from string import Template

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from assistant_metrics.config import settings

STATIC_DIR = Path(__file__).resolve().parents[1] / "static"

router = APIRouter()


def _render(name: str, **values: object) -> HTMLResponse:
    template = Template((STATIC_DIR / name).read_text(encoding="utf-8"))
    return HTMLResponse(template.safe_substitute(app_name=settings.app_name, **values))


@router.get("/", response_class=HTMLResponse)
async def landing() -> HTMLResponse:
    """Marketing landing page with the login form."""
    return _render("index.html")


@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard() -> HTMLResponse:
    """Dashboard shell; polls the metrics API on a fixed interval."""
    return _render("dashboard.html", refresh_ms=settings.dashboard_refresh_seconds * 1000)
