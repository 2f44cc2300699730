from fastapi import APIRouter, File, HTTPException, UploadFile, status

from scistu.api.uploads import read_upload
from scistu.parsing.extract import DocumentExtractionError, extract_text
from scistu.parsing.models import ExtractedDocument

router = APIRouter()


@router.post("/documents/extract", response_model=ExtractedDocument)
async def documents_extract(file: UploadFile = File(...)):
    filename = file.filename or "uploaded-file"
    content = await read_upload(file)
    try:
        return extract_text(filename=filename, content=content)
    except DocumentExtractionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message) from exc
