"""
Blog API

Thin FastAPI host over the markdown content pipeline: lists, filters, and
renders the posts under the configured content root.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from blog_api.config import get_settings
from blog_api.middleware import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
)
from blog_api.routers import archive, categories, posts
from blog_api.services.posts import PostRepository, get_post_repository

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s"

settings = get_settings()


def configure_logging(level: str) -> None:
    """Log to stderr with the request ID attached to every record."""
    handler = logging.StreamHandler()
    handler.addFilter(RequestIDLogFilter())
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, handlers=[handler])


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: configure logging and build the post index once."""
    configure_logging(get_settings().log_level)
    index = get_post_repository().index
    logger.info("Serving %d posts from %s", len(index), get_settings().content_dir)
    yield


app = FastAPI(
    title="Blog API",
    description="Markdown blog content: posts, categories, archive, rendered HTML",
    version="0.1.0",
    lifespan=lifespan,
)

# Request IDs and security headers
app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)

# Routers
app.include_router(posts.router, prefix="/api/blog")
app.include_router(categories.router, prefix="/api/blog")
app.include_router(archive.router, prefix="/api/blog")


@app.get("/api/blog/health")
async def health_check(
    repo: PostRepository = Depends(get_post_repository),
) -> JSONResponse:
    """Report whether the content root was found and how many posts loaded."""
    index = repo.index
    checks: dict[str, Any] = {
        "content_root": "fail" if index.content_root_missing else "ok",
        "posts": len(index),
        "rejected": len(index.rejected),
    }
    if index.content_root_missing:
        overall = "degraded"
        logger.warning("Health check degraded: content root missing")
    else:
        overall = "ok"

    result: dict[str, Any] = {
        "status": overall,
        "service": "blog-api",
        "version": "0.1.0",
        "checks": checks,
        "rejected_units": [u.model_dump() for u in index.rejected],
    }
    return JSONResponse(content=result, status_code=200)
