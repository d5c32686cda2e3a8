"""Archive endpoint: every post grouped by year."""

from fastapi import APIRouter, Depends

from blog_api.config import get_settings
from blog_api.models.post import Archive, ArchiveYear, PostSummary
from blog_api.services.posts import PostRepository, get_post_repository

router = APIRouter(prefix="/archive", tags=["archive"])


@router.get("", response_model=Archive)
async def get_archive(repo: PostRepository = Depends(get_post_repository)):
    """Get all posts grouped by year, newest year first."""
    excerpt_length = get_settings().excerpt_length
    years = [
        ArchiveYear(
            year=year,
            posts=[PostSummary.from_post(p, excerpt_length) for p in posts],
        )
        for year, posts in repo.get_archive()
    ]
    return Archive(years=years, total=sum(len(y.posts) for y in years))
