from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

MARKER_OFFSET = 8


class Position(BaseModel):
    x: float
    y: float


class Comment(BaseModel):
    id: str
    text: str
    is_ai: bool = False
    created_at: datetime
    position: Position | None = None
    page_number: int | None = None
    selected_text: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def marker(self) -> Position | None:
        if self.position is None:
            return None
        return Position(x=self.position.x - MARKER_OFFSET, y=self.position.y - MARKER_OFFSET)


class Article(BaseModel):
    id: str
    name: str
    content: str = ""
    comments: list[Comment] = Field(default_factory=list)
    num_pages: int | None = None
    size_bytes: int = 0


class ArticleSummary(BaseModel):
    id: str
    name: str
    content: str
    comment_count: int
    num_pages: int | None = None


class Folder(BaseModel):
    id: str
    name: str
    articles: list[Article] = Field(default_factory=list)


class FolderSummary(BaseModel):
    id: str
    name: str
    article_count: int


class FolderDetail(BaseModel):
    id: str
    name: str
    articles: list[ArticleSummary]


class CreateFolderRequest(BaseModel):
    name: str = Field(default="", max_length=200)


class CreateCommentRequest(BaseModel):
    text: str = Field(default="", max_length=10000)
    is_ai: bool = False
    position: Position | None = None
    page_number: int | None = Field(default=None, ge=1)
    selected_text: str | None = Field(default=None, max_length=20000)
    model: str | None = None
