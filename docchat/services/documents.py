from __future__ import annotations

import logging
import os
import re
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Document
from .metrics import record_document_deleted, record_document_uploaded

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".txt", ".md"}

_EXTENSION_TYPES = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
    ".md": "text/markdown",
}


def sanitize_title(filename: str) -> str:
    name = os.path.basename(filename or "document")
    name = re.sub(r"[\x00-\x1f]", "", name).strip()
    return name[:255] or "document"


def guess_file_type(filename: str, content_type: str | None) -> str:
    if content_type and content_type != "application/octet-stream":
        return content_type
    ext = os.path.splitext(filename)[1].lower()
    return _EXTENSION_TYPES.get(ext, "application/octet-stream")


def get_owned_document(db: Session, user_id: uuid.UUID, document_id: uuid.UUID) -> Optional[Document]:
    return (
        db.query(Document)
        .filter(Document.id == document_id, Document.user_id == user_id)
        .one_or_none()
    )


def create_document(
    db: Session,
    user_id: uuid.UUID,
    title: str,
    content: str,
    file_type: str,
    file_size: int,
) -> Document:
    document = Document(
        user_id=user_id,
        title=title,
        content=content,
        file_type=file_type,
        file_size=file_size,
    )
    db.add(document)
    db.commit()
    db.refresh(document)

    record_document_uploaded(file_type)
    logger.info(
        "document_uploaded document_id=%s user_id=%s file_type=%s bytes=%s chars=%s",
        document.id,
        user_id,
        file_type,
        file_size,
        len(content),
    )
    return document


def delete_document(db: Session, document: Document) -> None:
    document_id, user_id = document.id, document.user_id
    db.delete(document)
    db.commit()

    record_document_deleted()
    logger.info("document_deleted document_id=%s user_id=%s", document_id, user_id)
