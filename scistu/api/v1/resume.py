import json
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status

from scistu.ai.registry import ModelRegistryError, ProviderNotConfiguredError
from scistu.api.uploads import read_upload
from scistu.core.config import settings
from scistu.core.rate_limit import rate_limit
from scistu.core.security import require_api_key
from scistu.parsing.extract import DocumentExtractionError, read_pdf
from scistu.schemas.resume import ResumeAnalysis, ResumeReport, ResumeReportRequest
from scistu.services.resume_service import ResumeAnalysisError, analyze_resume, build_resume_report

router = APIRouter()
logger = logging.getLogger(__name__)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.post("/resume/report", response_model=ResumeReport)
async def resume_report(payload: ResumeReportRequest):
    if not payload.resume_text.strip():
        raise _bad_request("Please upload or paste your resume first")
    return build_resume_report(payload.resume_text)


@router.post(
    "/resume/analyze",
    response_model=ResumeAnalysis,
    dependencies=[Depends(require_api_key)],
)
@rate_limit(settings.llm_rate_limit)
async def resume_analyze(
    request: Request,
    resume: UploadFile | None = File(default=None),
    job_description: str = Form(default=""),
):
    if resume is None:
        raise _bad_request("No resume file provided")

    filename = resume.filename or ""
    if not filename.lower().endswith(".pdf"):
        raise _bad_request("Please upload a valid PDF file")

    content = await read_upload(resume)
    if not content:
        raise _bad_request("The uploaded file is empty")

    try:
        text, _pages = read_pdf(content)
    except DocumentExtractionError as exc:
        message = f"{exc.message}. {exc.details}" if exc.details else exc.message
        raise _bad_request(message) from exc
    if not text.strip():
        raise _bad_request("The PDF file appears to be empty or unreadable")

    try:
        return await analyze_resume(text, job_description)
    except ModelRegistryError as exc:
        raise _bad_request(str(exc)) from exc
    except ProviderNotConfiguredError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except ResumeAnalysisError as exc:
        logger.error(json.dumps({"event": "resume_analysis_failed", "error": str(exc)}))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to analyze the resume content",
        ) from exc
