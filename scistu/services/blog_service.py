from __future__ import annotations

import datetime as dt
import logging
import math
from pathlib import Path
from typing import Any

import yaml

from scistu.core.config import settings
from scistu.schemas.blog import Post, PostPage, PostSummary

logger = logging.getLogger(__name__)

_POSTS_CACHE: dict[str, list[Post]] = {}
WORDS_PER_MINUTE = 200


def content_dir() -> Path:
    path = Path(settings.blog_content_dir)
    if not path.is_absolute():
        path = Path(__file__).resolve().parents[2] / path
    return path


def split_front_matter(raw: str) -> tuple[dict[str, Any], str]:
    """Split a ``---`` delimited YAML header from the Markdown body."""
    if not raw.startswith("---"):
        return {}, raw
    parts = raw.split("\n---", 1)
    if len(parts) != 2:
        return {}, raw
    header = parts[0][3:]
    body = parts[1].lstrip("\n")
    try:
        meta = yaml.safe_load(header) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid front matter: {exc}") from exc
    if not isinstance(meta, dict):
        raise ValueError("Front matter must be a mapping.")
    return meta, body


def _coerce_date(value: Any) -> dt.date | None:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return dt.date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _coerce_tags(value: Any) -> list[str]:
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    if isinstance(value, list):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    return []


def reading_minutes(text: str) -> int:
    return max(1, round(len(text.split()) / WORDS_PER_MINUTE))


def parse_post(slug: str, raw: str) -> Post:
    meta, body = split_front_matter(raw)
    excerpt = str(meta.get("excerpt") or "").strip()
    if not excerpt:
        first_paragraph = next((p.strip() for p in body.split("\n\n") if p.strip() and not p.startswith("#")), "")
        excerpt = first_paragraph[:200]
    return Post(
        slug=slug,
        title=str(meta.get("title") or slug.replace("-", " ").title()),
        date=_coerce_date(meta.get("date")),
        excerpt=excerpt,
        tags=_coerce_tags(meta.get("tags")),
        author=(str(meta["author"]) if meta.get("author") else None),
        reading_minutes=reading_minutes(body),
        content=body.strip(),
    )


def load_posts(directory: Path | None = None) -> list[Post]:
    directory = directory or content_dir()
    if not directory.exists():
        logger.warning("blog_content_dir_missing path=%s", directory)
        return []
    posts: list[Post] = []
    for path in sorted(directory.glob("*.md")):
        try:
            posts.append(parse_post(path.stem, path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            logger.warning("blog_post_skipped file=%s: %s", path.name, exc)
    posts.sort(key=lambda p: (p.date or dt.date.min, p.slug), reverse=True)
    return posts


def get_posts() -> list[Post]:
    key = str(content_dir())
    cached = _POSTS_CACHE.get(key)
    if cached is None:
        cached = load_posts()
        _POSTS_CACHE[key] = cached
    return cached


def clear_posts_cache() -> None:
    _POSTS_CACHE.clear()


def get_post_by_slug(slug: str) -> Post | None:
    for post in get_posts():
        if post.slug == slug:
            return post
    return None


def summarize(post: Post) -> PostSummary:
    return PostSummary.model_validate(post.model_dump(exclude={"content"}))


def search_posts(query: str | None) -> list[Post]:
    posts = get_posts()
    needle = (query or "").strip().lower()
    if not needle:
        return posts
    return [
        post
        for post in posts
        if needle in post.title.lower()
        or needle in post.excerpt.lower()
        or any(needle in tag.lower() for tag in post.tags)
    ]


def total_pages(count: int, per_page: int) -> int:
    return math.ceil(count / per_page) if count else 0


def paginate(posts: list[Post], page: int, per_page: int | None = None) -> PostPage:
    per_page = per_page or settings.blog_posts_per_page
    pages = total_pages(len(posts), per_page)
    if page < 1 or page > pages:
        raise LookupError(f"Page {page} does not exist.")
    start = (page - 1) * per_page
    return PostPage(
        posts=[summarize(p) for p in posts[start : start + per_page]],
        current_page=page,
        total_pages=pages,
    )
