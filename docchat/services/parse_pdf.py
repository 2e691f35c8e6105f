from __future__ import annotations

import io
import os
from typing import BinaryIO, Union

import pdfplumber

PDF_MIME_TYPE = "application/pdf"
PAGE_SEPARATOR = "\n\n"


class PdfExtractionError(Exception):
    """Raised when the PDF library cannot read the uploaded file."""


class DocumentTextError(Exception):
    """Raised when a non-PDF upload is not valid UTF-8 text."""


def extract_text_from_pdf(source: Union[str, bytes, BinaryIO]) -> str:
    if isinstance(source, (bytes, bytearray)):
        buffer = io.BytesIO(source)
    elif hasattr(source, "read"):
        buffer = source
        buffer.seek(0)
    else:
        buffer = source

    try:
        with pdfplumber.open(buffer) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as exc:
        raise PdfExtractionError(f"Could not read PDF: {exc}") from exc

    return PAGE_SEPARATOR.join(pages).strip()


def is_pdf(filename: str | None, content_type: str | None) -> bool:
    if content_type == PDF_MIME_TYPE:
        return True
    return os.path.splitext(filename or "")[1].lower() == ".pdf"


def extract_document_text(filename: str | None, content_type: str | None, data: bytes) -> str:
    """Return the text stored for an upload.

    PDFs go through pdfplumber; anything else is taken as UTF-8 text verbatim
    so the stored content matches the uploaded file byte for byte.
    """
    if is_pdf(filename, content_type):
        return extract_text_from_pdf(data)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DocumentTextError(f"File is not valid UTF-8 text: {exc.reason}") from exc
