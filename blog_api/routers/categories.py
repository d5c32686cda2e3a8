"""Category endpoints."""

from fastapi import APIRouter, Depends

from blog_api.models.post import CategoryList
from blog_api.services.posts import PostRepository, get_post_repository

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=CategoryList)
async def list_categories(repo: PostRepository = Depends(get_post_repository)):
    """Get categories in first-appearance order with post counts."""
    categories = repo.list_categories()
    return CategoryList(categories=categories, total=len(categories))
