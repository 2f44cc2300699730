from __future__ import annotations

from io import BytesIO
import logging
import re
from zipfile import ZipFile

from .models import ExtractedDocument

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF-"
ZIP_MAGICS = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")
TEXT_EXTENSIONS = {"txt", "md"}
SUPPORTED_EXTENSIONS = {"pdf", "docx", "doc", *TEXT_EXTENSIONS}
PREVIEW_FALLBACK = "Could not extract text content"


class DocumentExtractionError(ValueError):
    def __init__(self, message: str, *, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def count_words(text: str) -> int:
    return len(text.split())


def preview_text(text: str, limit: int = 500) -> str:
    if not text or not text.strip():
        return PREVIEW_FALLBACK
    return text[:limit] + "..."


def _is_probably_text_payload(content: bytes) -> bool:
    sample = content[:4096]
    if b"\x00" in sample:
        return False
    printable = 0
    for byte in sample:
        if byte in (9, 10, 13) or 32 <= byte <= 126 or byte >= 128:
            printable += 1
    return (printable / len(sample)) >= 0.75


def _zip_has_paths(content: bytes, prefix: str) -> bool:
    try:
        with ZipFile(BytesIO(content)) as archive:
            return any(name.startswith(prefix) for name in archive.namelist())
    except Exception:
        return False


def _decode_text(content: bytes) -> tuple[str, str]:
    for encoding in ("utf-8", "cp1252", "latin-1"):
        try:
            return content.decode(encoding), encoding
        except UnicodeDecodeError:
            continue
    raise DocumentExtractionError("Unable to decode this text file.")


def read_pdf(content: bytes) -> tuple[str, int]:
    """Return the joined page text and page count of a PDF payload."""
    if not content.startswith(PDF_MAGIC):
        raise DocumentExtractionError(
            "Unable to read the PDF file",
            details="File signature does not match .pdf content.",
        )
    from pypdf import PdfReader

    try:
        reader = PdfReader(BytesIO(content))
        page_chunks: list[str] = []
        for page in reader.pages:
            page_text = (page.extract_text() or "").strip()
            if page_text:
                page_chunks.append(page_text)
        return "\n".join(page_chunks), len(reader.pages)
    except Exception as exc:
        logger.warning("pdf_parse_failed: %s", exc)
        raise DocumentExtractionError(
            "Unable to read the PDF file",
            details="Please ensure the file is not corrupted, password protected, or inaccessible",
        ) from exc


def _read_docx(content: bytes) -> tuple[str, int]:
    if not any(content.startswith(magic) for magic in ZIP_MAGICS) or not _zip_has_paths(content, "word/"):
        raise DocumentExtractionError("File signature does not match .docx content.")
    from docx import Document

    try:
        document = Document(BytesIO(content))
    except Exception as exc:
        raise DocumentExtractionError("Unable to extract text from this Word document.") from exc
    paragraphs = [p.text.strip() for p in document.paragraphs if p.text and p.text.strip()]
    return "\n".join(paragraphs), len(document.paragraphs)


def extract_text(filename: str, content: bytes) -> ExtractedDocument:
    ext = file_extension(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise DocumentExtractionError(
            f"Unsupported file type '.{ext}'. Allowed: {', '.join(sorted(SUPPORTED_EXTENSIONS))}."
        )
    if not content:
        raise DocumentExtractionError("The uploaded file is empty")

    warnings: list[str] = []
    pages: int | None = None

    if ext == "pdf":
        source_type = "pdf"
        text, pages = read_pdf(content)
    elif ext == "doc":
        raise DocumentExtractionError("Legacy .doc is not supported. Convert to .docx.")
    elif ext == "docx":
        source_type = "word"
        text, paragraph_count = _read_docx(content)
        if not paragraph_count:
            warnings.append("Document has no paragraphs.")
    else:
        source_type = "text"
        if not _is_probably_text_payload(content):
            raise DocumentExtractionError(f"File signature does not match .{ext} text content.")
        text, encoding = _decode_text(content)
        if encoding != "utf-8":
            warnings.append(f"Decoded as {encoding}.")

    text = re.sub(r"[ \t]+\n", "\n", text).strip()
    if not text:
        raise DocumentExtractionError("No extractable text was found in this file.")

    return ExtractedDocument(
        filename=filename,
        source_type=source_type,
        text=text,
        pages=pages,
        word_count=count_words(text),
        warnings=warnings,
    )
