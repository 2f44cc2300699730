import json
import logging

from fastapi import APIRouter, Depends, File, Header, HTTPException, Request, Response, UploadFile, status

from scistu.ai.registry import ModelRegistryError, ProviderNotConfiguredError
from scistu.api.uploads import read_upload
from scistu.core.config import settings
from scistu.core.rate_limit import rate_limit
from scistu.core.security import require_api_key
from scistu.parsing.extract import DocumentExtractionError
from scistu.schemas.reader import (
    Article,
    Comment,
    CreateCommentRequest,
    CreateFolderRequest,
    FolderDetail,
    FolderSummary,
)
from scistu.services.reader_service import (
    ReaderNotFoundError,
    ReaderValidationError,
    ReaderWorkspace,
    add_comment,
    workspaces,
)

router = APIRouter(prefix="/reader")
logger = logging.getLogger(__name__)


def _workspace(x_session_id: str | None = Header(default=None, alias="X-Session-Id")) -> ReaderWorkspace:
    return workspaces.get(x_session_id)


def _not_found(exc: ReaderNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/folders", response_model=list[FolderSummary])
async def list_folders(workspace: ReaderWorkspace = Depends(_workspace)):
    return workspace.list_folders()


@router.post("/folders", response_model=FolderSummary, status_code=status.HTTP_201_CREATED)
async def create_folder(payload: CreateFolderRequest, workspace: ReaderWorkspace = Depends(_workspace)):
    try:
        return workspace.create_folder(payload.name)
    except ReaderValidationError as exc:
        raise _bad_request(exc) from exc


@router.get("/folders/{folder_id}", response_model=FolderDetail)
async def get_folder(folder_id: str, workspace: ReaderWorkspace = Depends(_workspace)):
    try:
        return workspace.get_folder(folder_id)
    except ReaderNotFoundError as exc:
        raise _not_found(exc) from exc


@router.delete("/folders/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(folder_id: str, workspace: ReaderWorkspace = Depends(_workspace)):
    try:
        workspace.delete_folder(folder_id)
    except ReaderNotFoundError as exc:
        raise _not_found(exc) from exc
    except ReaderValidationError as exc:
        raise _bad_request(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/folders/{folder_id}/articles",
    response_model=Article,
    status_code=status.HTTP_201_CREATED,
)
async def upload_article(
    folder_id: str,
    file: UploadFile = File(...),
    workspace: ReaderWorkspace = Depends(_workspace),
):
    filename = file.filename or "article.pdf"
    if file.content_type != "application/pdf" and not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please upload a PDF article.")
    content = await read_upload(file)
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The uploaded file is empty")
    try:
        return workspace.add_article(folder_id, filename, content)
    except ReaderNotFoundError as exc:
        raise _not_found(exc) from exc
    except ReaderValidationError as exc:
        raise _bad_request(exc) from exc
    except DocumentExtractionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc


@router.get("/articles/{article_id}", response_model=Article)
async def get_article(article_id: str, workspace: ReaderWorkspace = Depends(_workspace)):
    try:
        return workspace.get_article(article_id)
    except ReaderNotFoundError as exc:
        raise _not_found(exc) from exc


@router.get("/articles/{article_id}/file")
async def get_article_file(article_id: str, workspace: ReaderWorkspace = Depends(_workspace)):
    try:
        filename, content = workspace.get_article_file(article_id)
    except ReaderNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@router.delete("/articles/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_article(article_id: str, workspace: ReaderWorkspace = Depends(_workspace)):
    try:
        workspace.delete_article(article_id)
    except ReaderNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/articles/{article_id}/comments", response_model=list[Comment])
async def list_comments(
    article_id: str,
    page_number: int | None = None,
    workspace: ReaderWorkspace = Depends(_workspace),
):
    try:
        return workspace.list_comments(article_id, page_number)
    except ReaderNotFoundError as exc:
        raise _not_found(exc) from exc


@router.post(
    "/articles/{article_id}/comments",
    response_model=Comment,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_api_key)],
)
@rate_limit(settings.llm_rate_limit)
async def create_comment(
    request: Request,
    article_id: str,
    payload: CreateCommentRequest,
    workspace: ReaderWorkspace = Depends(_workspace),
):
    try:
        return await add_comment(workspace, article_id, payload)
    except ReaderNotFoundError as exc:
        raise _not_found(exc) from exc
    except (ReaderValidationError, ModelRegistryError) as exc:
        raise _bad_request(exc) from exc
    except ProviderNotConfiguredError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001 - provider failures surface as 502
        logger.warning(json.dumps({"event": "reader_ai_comment_failed", "error": str(exc)}))
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="AI analysis failed. Please try again.",
        ) from exc


@router.delete("/articles/{article_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(article_id: str, comment_id: str, workspace: ReaderWorkspace = Depends(_workspace)):
    try:
        workspace.delete_comment(article_id, comment_id)
    except ReaderNotFoundError as exc:
        raise _not_found(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
