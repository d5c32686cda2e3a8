"""Post endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse

from blog_api.config import get_settings
from blog_api.models.post import PostDetail, PostList, PostSummary, RenderedPost
from blog_api.services.cache import TTLCache
from blog_api.services.markdown_renderer import MarkdownRenderer, get_renderer
from blog_api.services.posts import PostRepository, get_post_repository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])

# Rendered fragments keyed by (index version, slug); created on first use
_render_cache: TTLCache[RenderedPost] | None = None


def _get_render_cache() -> TTLCache[RenderedPost]:
    global _render_cache
    if _render_cache is None:
        settings = get_settings()
        _render_cache = TTLCache(
            ttl=settings.render_cache_ttl, max_size=settings.render_cache_size
        )
    return _render_cache


@router.get("", response_model=PostList)
async def list_posts(
    category: str | None = Query(
        default=None,
        description="Only posts in this category (exact, case-sensitive match)",
    ),
    limit: int = Query(
        default=50,
        ge=1,
        le=200,
        description="Maximum number of posts to return",
    ),
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of posts to skip",
    ),
    repo: PostRepository = Depends(get_post_repository),
):
    """Get posts newest first, optionally filtered by category."""
    settings = get_settings()
    posts = repo.get_by_category(category) if category else repo.get_all()
    page = posts[offset : offset + limit]
    return PostList(
        posts=[PostSummary.from_post(p, settings.excerpt_length) for p in page],
        total=len(posts),
    )


@router.get("/slugs", response_model=list[str])
async def list_post_slugs(repo: PostRepository = Depends(get_post_repository)):
    """Get every post slug in canonical order (for static page generation)."""
    return repo.get_all_slugs()


@router.get("/{slug}", response_model=PostDetail)
async def get_post(slug: str, repo: PostRepository = Depends(get_post_repository)):
    """Get a single post's metadata and raw markdown body."""
    post = repo.get_by_slug(slug)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return PostDetail.from_post(post, get_settings().excerpt_length)


@router.get("/{slug}/html", response_class=HTMLResponse)
async def get_post_html(
    slug: str,
    repo: PostRepository = Depends(get_post_repository),
    renderer: MarkdownRenderer = Depends(get_renderer),
):
    """Serve a post body rendered to an HTML fragment."""
    index = repo.index
    post = index.by_slug.get(slug)
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")

    cache = _get_render_cache()
    key = (index.version, slug)
    rendered = cache.get(key)
    if rendered is None:
        rendered = renderer.render_post(post)
        cache.set(key, rendered)
        logger.debug("Rendered %s (%d bytes)", slug, len(rendered.html))
    return HTMLResponse(content=rendered.html)
