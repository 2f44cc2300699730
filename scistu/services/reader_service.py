from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
import threading
import time
import uuid

from scistu.ai.registry import get_model
from scistu.ai.types import ChatMessage, SamplingParams
from scistu.core.config import settings
from scistu.parsing.extract import preview_text, read_pdf
from scistu.schemas.reader import (
    Article,
    ArticleSummary,
    Comment,
    CreateCommentRequest,
    Folder,
    FolderDetail,
    FolderSummary,
)

logger = logging.getLogger(__name__)

DEFAULT_FOLDER_ID = "default"
DEFAULT_FOLDER_NAME = "All in One Articles"

ANALYSIS_PARAMS = SamplingParams(temperature=0.3, max_tokens=600)

READER_SYSTEM_PROMPT = (
    "You are a reading assistant for students working through academic articles. "
    "Explain the given passage in plain language, point out the key claim, "
    "and note any terms a student might need to look up. Keep it under 150 words."
)


class ReaderNotFoundError(LookupError):
    pass


class ReaderValidationError(ValueError):
    pass


class ReaderWorkspace:
    """Folders, articles and comments for one reader session."""

    def __init__(self, max_articles: int | None = None) -> None:
        self._max_articles = max_articles if max_articles is not None else settings.reader_max_articles
        self._folders: dict[str, Folder] = {
            DEFAULT_FOLDER_ID: Folder(id=DEFAULT_FOLDER_ID, name=DEFAULT_FOLDER_NAME)
        }
        self._files: dict[str, bytes] = {}
        self._lock = threading.RLock()

    def list_folders(self) -> list[FolderSummary]:
        with self._lock:
            return [
                FolderSummary(id=f.id, name=f.name, article_count=len(f.articles))
                for f in self._folders.values()
            ]

    def create_folder(self, name: str) -> FolderSummary:
        clean = (name or "").strip()
        if not clean:
            raise ReaderValidationError("Folder name is required.")
        folder = Folder(id=str(uuid.uuid4()), name=clean)
        with self._lock:
            self._folders[folder.id] = folder
        return FolderSummary(id=folder.id, name=folder.name, article_count=0)

    def _folder(self, folder_id: str) -> Folder:
        folder = self._folders.get(folder_id)
        if folder is None:
            raise ReaderNotFoundError("Folder not found.")
        return folder

    def get_folder(self, folder_id: str) -> FolderDetail:
        with self._lock:
            folder = self._folder(folder_id)
            return FolderDetail(
                id=folder.id,
                name=folder.name,
                articles=[
                    ArticleSummary(
                        id=a.id,
                        name=a.name,
                        content=a.content[:100],
                        comment_count=len(a.comments),
                        num_pages=a.num_pages,
                    )
                    for a in folder.articles
                ],
            )

    def delete_folder(self, folder_id: str) -> None:
        if folder_id == DEFAULT_FOLDER_ID:
            raise ReaderValidationError("The default folder cannot be deleted.")
        with self._lock:
            folder = self._folder(folder_id)
            for article in folder.articles:
                self._files.pop(article.id, None)
            del self._folders[folder_id]

    def article_count(self) -> int:
        with self._lock:
            return sum(len(f.articles) for f in self._folders.values())

    def _check_article_capacity(self) -> None:
        if self.article_count() >= self._max_articles:
            raise ReaderValidationError(
                f"Article limit reached ({self._max_articles}). Delete an article to upload another."
            )

    def add_article(self, folder_id: str, filename: str, content: bytes) -> Article:
        with self._lock:
            self._folder(folder_id)
            self._check_article_capacity()

        text, num_pages = read_pdf(content)
        article = Article(
            id=str(uuid.uuid4()),
            name=filename,
            content=preview_text(text, settings.preview_chars),
            num_pages=num_pages,
            size_bytes=len(content),
        )
        with self._lock:
            folder = self._folder(folder_id)
            self._check_article_capacity()
            folder.articles.append(article)
            self._files[article.id] = content
        return article

    def _locate(self, article_id: str) -> tuple[Folder, Article]:
        for folder in self._folders.values():
            for article in folder.articles:
                if article.id == article_id:
                    return folder, article
        raise ReaderNotFoundError("Article not found.")

    def get_article(self, article_id: str) -> Article:
        with self._lock:
            return self._locate(article_id)[1].model_copy(deep=True)

    def get_article_file(self, article_id: str) -> tuple[str, bytes]:
        with self._lock:
            _, article = self._locate(article_id)
            return article.name, self._files[article_id]

    def delete_article(self, article_id: str) -> None:
        with self._lock:
            folder, article = self._locate(article_id)
            folder.articles = [a for a in folder.articles if a.id != article.id]
            self._files.pop(article_id, None)

    def list_comments(self, article_id: str, page_number: int | None = None) -> list[Comment]:
        with self._lock:
            _, article = self._locate(article_id)
            comments = article.comments
            if page_number is not None:
                comments = [c for c in comments if c.page_number == page_number]
            return [c.model_copy(deep=True) for c in comments]

    def append_comment(self, article_id: str, payload: CreateCommentRequest, text: str) -> Comment:
        comment = Comment(
            id=str(uuid.uuid4()),
            text=text,
            is_ai=payload.is_ai,
            created_at=datetime.now(timezone.utc),
            position=payload.position,
            page_number=payload.page_number,
            selected_text=payload.selected_text,
        )
        with self._lock:
            _, article = self._locate(article_id)
            article.comments.append(comment)
        return comment

    def delete_comment(self, article_id: str, comment_id: str) -> None:
        with self._lock:
            _, article = self._locate(article_id)
            remaining = [c for c in article.comments if c.id != comment_id]
            if len(remaining) == len(article.comments):
                raise ReaderNotFoundError("Comment not found.")
            article.comments = remaining


class WorkspaceStore:
    """Session workspaces that expire ``ttl_s`` seconds after their last use."""

    def __init__(self, ttl_s: int | None = None) -> None:
        self._ttl_s = ttl_s
        self._workspaces: dict[str, ReaderWorkspace] = {}
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()

    @property
    def ttl_s(self) -> int:
        return max(1, self._ttl_s if self._ttl_s is not None else settings.reader_session_ttl_s)

    def _purge_expired(self, now: float) -> None:
        cutoff = now - self.ttl_s
        expired = [key for key, seen in self._last_seen.items() if seen <= cutoff]
        for key in expired:
            del self._workspaces[key]
            del self._last_seen[key]
        if expired:
            logger.info(json.dumps({"event": "reader_sessions_expired", "count": len(expired)}))

    def get(self, session_id: str | None, now: float | None = None) -> ReaderWorkspace:
        now = time.time() if now is None else now
        key = (session_id or "").strip() or "anonymous"
        with self._lock:
            self._purge_expired(now)
            workspace = self._workspaces.get(key)
            if workspace is None:
                workspace = ReaderWorkspace()
                self._workspaces[key] = workspace
            self._last_seen[key] = now
            return workspace

    def __len__(self) -> int:
        with self._lock:
            return len(self._workspaces)

    def clear(self) -> None:
        with self._lock:
            self._workspaces.clear()
            self._last_seen.clear()


workspaces = WorkspaceStore()


async def analyze_passage(article: Article, selected_text: str | None, *, model: str | None = None) -> str:
    passage = (selected_text or "").strip() or article.content
    ai = get_model((model or "").strip() or settings.default_chat_model)
    messages = [
        ChatMessage(role="system", content=READER_SYSTEM_PROMPT),
        ChatMessage(role="user", content=f"Article: {article.name}\n\nPassage:\n{passage}"),
    ]
    text = await ai.complete(messages, ANALYSIS_PARAMS)
    logger.info(
        json.dumps(
            {
                "event": "reader_ai_comment",
                "article_id": article.id,
                "selection": bool((selected_text or "").strip()),
                "output_len": len(text),
            }
        )
    )
    return text


async def add_comment(
    workspace: ReaderWorkspace, article_id: str, payload: CreateCommentRequest
) -> Comment:
    article = workspace.get_article(article_id)
    if not payload.is_ai:
        text = payload.text.strip()
        if not text:
            raise ReaderValidationError("Comment text is required.")
        return workspace.append_comment(article_id, payload, text)

    text = await analyze_passage(article, payload.selected_text, model=payload.model)
    if not text:
        raise RuntimeError("Model returned an empty analysis.")
    return workspace.append_comment(article_id, payload, text)
