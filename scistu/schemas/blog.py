from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field


class PostSummary(BaseModel):
    slug: str
    title: str
    date: dt.date | None = None
    excerpt: str = ""
    tags: list[str] = Field(default_factory=list)
    author: str | None = None
    reading_minutes: int = 1


class Post(PostSummary):
    content: str


class PostPage(BaseModel):
    posts: list[PostSummary]
    current_page: int
    total_pages: int
