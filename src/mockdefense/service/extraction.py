"""Text extraction from uploaded documents."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
TEXT_MIME_TYPES = ("text/plain", "text/markdown")
TEXT_SUFFIXES = (".txt", ".md")


@dataclass(frozen=True)
class UploadedFile:
    """An upload that has already been written to disk by the transport layer.

    Attributes:
        filename: Stored file name
        original_name: Name the user uploaded the file under
        path: Location of the stored file
        mime_type: Declared content type
        size: Size in bytes
    """

    filename: str
    original_name: str
    path: Path
    mime_type: str = PDF_MIME_TYPE
    size: int = 0

    @property
    def stem(self) -> str:
        """Original name without its extension, used as the default session title."""
        return Path(self.original_name).stem or self.original_name


class TextExtractor(Protocol):
    async def extract(self, source: Path | bytes) -> str:
        """Return the plain text of a document."""
        ...


def _extract_pdf(source: Path | bytes) -> str:
    if isinstance(source, bytes):
        doc = fitz.open(stream=source, filetype="pdf")
    else:
        doc = fitz.open(source)

    try:
        pages = [page.get_text() for page in doc]
    finally:
        doc.close()

    return "\n\n".join(page.strip() for page in pages if page.strip())


class PdfTextExtractor:
    """Extract text from a PDF with PyMuPDF, pages separated by blank lines."""

    async def extract(self, source: Path | bytes) -> str:
        text = await asyncio.to_thread(_extract_pdf, source)
        logger.info(f"📄 Extracted {len(text)} characters from PDF")
        return text


class PlainTextExtractor:
    """Read UTF-8 text and markdown uploads as they are."""

    async def extract(self, source: Path | bytes) -> str:
        if isinstance(source, bytes):
            return source.decode("utf-8", errors="replace")
        return await asyncio.to_thread(Path(source).read_text, encoding="utf-8", errors="replace")


def get_extractor(kind: str) -> TextExtractor:
    """Pick an extractor from a MIME type or a file name.

    Args:
        kind: MIME type (e.g. "application/pdf") or file name (e.g. "thesis.pdf")

    Raises:
        ValueError: If the type is not supported
    """
    lowered = kind.lower()
    if lowered == PDF_MIME_TYPE or lowered.endswith(".pdf"):
        return PdfTextExtractor()
    if lowered in TEXT_MIME_TYPES or lowered.endswith(TEXT_SUFFIXES):
        return PlainTextExtractor()
    raise ValueError(f"Unsupported document type: {kind}")


def get_extractor_for_upload(upload: UploadedFile) -> TextExtractor:
    """Pick an extractor from the declared MIME type, else from the file name.

    Browsers and HTTP clients often declare a generic type such as
    ``application/octet-stream``; the original file name decides then.

    Raises:
        ValueError: If neither the type nor the name is supported
    """
    try:
        return get_extractor(upload.mime_type)
    except ValueError:
        try:
            return get_extractor(upload.original_name)
        except ValueError:
            raise ValueError(
                f"Unsupported document type: {upload.mime_type or upload.original_name}"
            ) from None
