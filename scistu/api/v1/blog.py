from fastapi import APIRouter, HTTPException, status

from scistu.schemas.blog import Post, PostPage, PostSummary
from scistu.services.blog_service import get_post_by_slug, paginate, search_posts, summarize, get_posts

router = APIRouter(prefix="/blog")


@router.get("/posts", response_model=list[PostSummary])
async def list_posts(q: str | None = None):
    return [summarize(post) for post in search_posts(q)]


@router.get("/pages/{page}", response_model=PostPage)
async def posts_page(page: int):
    try:
        return paginate(get_posts(), page)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc


@router.get("/posts/{slug}", response_model=Post)
async def get_post(slug: str):
    post = get_post_by_slug(slug)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found.")
    return post
