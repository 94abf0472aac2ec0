"""
Folio CMS API

FastAPI backend that keeps a static site's post indexes, image folders and
generated HTML pages in sync.
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cms.config import get_settings
from cms.middleware import RequestIDMiddleware, SecurityHeadersMiddleware
from cms.routers import posts, projects
from cms.services.content_index import ensure_index
from cms.services.content_store import get_blog_store
from cms.services.errors import WriteError
from cms.services.project_catalog import get_project_catalog, get_project_posts

logger = logging.getLogger(__name__)

settings = get_settings()

# Health check cache: (result_dict, timestamp)
_health_cache: tuple[dict[str, Any], float] | None = None
_HEALTH_CACHE_TTL = 30  # seconds


def _index_paths() -> list[Path]:
    return [
        get_blog_store().index_path,
        get_project_posts().index_path,
        get_project_catalog().catalog_path,
    ]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: create missing index files on startup."""
    for path in _index_paths():
        try:
            ensure_index(path)
        except WriteError as e:
            logger.warning("Could not initialise index %s: %s", path, e)
    yield


app = FastAPI(
    title="Folio CMS API",
    description="Static-site content manager for blog and project posts",
    version="0.1.0",
    lifespan=lifespan,
)

# Request IDs and security headers
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestIDMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(posts.router, prefix="/api/cms")
app.include_router(projects.router, prefix="/api/cms")


def _check_config() -> str:
    """Verify required configuration is loaded. Returns 'ok' or 'fail'."""
    s = get_settings()
    if s.admin_api_key and s.blog_base_url and s.projects_base_url:
        return "ok"
    return "fail"


def _check_storage() -> str:
    """Every content root must exist (or be creatable) and be writable."""
    s = get_settings()
    for root in (Path(s.content_root), Path(s.projects_root)):
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Content root %s unavailable: %s", root, e)
            return "fail"
        if not os.access(root, os.W_OK):
            logger.warning("Content root %s is not writable", root)
            return "fail"
    return "ok"


def _run_health_checks() -> dict[str, Any]:
    """Run all health checks, returning the full response body."""
    global _health_cache
    now = time.time()
    if _health_cache is not None:
        cached_result, cached_at = _health_cache
        if now - cached_at < _HEALTH_CACHE_TTL:
            return cached_result

    checks = {"config": _check_config(), "storage": _check_storage()}
    failed = [k for k, v in checks.items() if v != "ok"]

    if failed:
        overall = "degraded"
        logger.warning("Health check degraded, failed: %s", ", ".join(failed))
    else:
        overall = "ok"

    result: dict[str, Any] = {
        "status": overall,
        "service": "folio-cms-api",
        "version": "0.1.0",
        "checks": checks,
    }
    _health_cache = (result, now)
    return result


@app.get("/api/cms/health")
async def health_check() -> JSONResponse:
    """Health check verifying configuration and content roots."""
    result = _run_health_checks()
    status_code = 200 if result["status"] in ("ok", "degraded") else 503
    return JSONResponse(content=result, status_code=status_code)
