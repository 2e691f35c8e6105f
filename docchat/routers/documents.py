from __future__ import annotations

import io
import logging
import os
import uuid
from typing import Any, Dict

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..config import settings
from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.db import get_db
from ..models import Document
from ..services.documents import (
    ALLOWED_EXTENSIONS,
    create_document,
    delete_document as delete_owned_document,
    get_owned_document,
    guess_file_type,
    sanitize_title,
)
from ..services.parse_pdf import DocumentTextError, PdfExtractionError, extract_document_text

logger = logging.getLogger(__name__)

router = APIRouter()


def _serialize_document(document: Document, include_content: bool = False) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": str(document.id),
        "title": document.title,
        "file_type": document.file_type,
        "file_size": int(document.file_size or 0),
        "created_at": document.created_at.isoformat() if document.created_at else None,
        "updated_at": document.updated_at.isoformat() if document.updated_at else None,
    }
    if include_content:
        payload["content"] = document.content
    return payload


def parse_document_id(doc_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(doc_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid document id") from exc


def load_owned_document(db: Session, context: AuthContext, doc_id: str) -> Document:
    document = get_owned_document(db, context.user.id, parse_document_id(doc_id))
    if document is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return document


@router.post("/documents/upload", status_code=201)
def upload_document(
    file: UploadFile = File(...),
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename required")

    ext = os.path.splitext(file.filename)[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(status_code=400, detail="Unsupported file type.")

    total_bytes = 0
    buffer = io.BytesIO()

    try:
        while True:
            chunk = file.file.read(1024 * 1024)
            if not chunk:
                break
            total_bytes += len(chunk)
            if total_bytes > settings.max_upload_bytes:
                raise HTTPException(status_code=400, detail="File too large.")
            buffer.write(chunk)
    finally:
        file.file.close()

    raw_bytes = buffer.getvalue()
    if not raw_bytes:
        raise HTTPException(status_code=400, detail="Empty file")

    file_type = guess_file_type(file.filename, file.content_type)

    try:
        text = extract_document_text(file.filename, file_type, raw_bytes)
    except (PdfExtractionError, DocumentTextError) as exc:
        logger.info("document_extraction_failed filename=%s error=%s", file.filename, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if not text.strip():
        raise HTTPException(status_code=400, detail="No text could be extracted.")

    document = create_document(
        db,
        user_id=context.user.id,
        title=sanitize_title(file.filename),
        content=text,
        file_type=file_type,
        file_size=total_bytes,
    )
    return _serialize_document(document, include_content=True)


@router.get("/documents")
def list_documents(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    base_query = db.query(Document).filter(Document.user_id == context.user.id)

    total = (
        db.query(func.count(Document.id))
        .filter(Document.user_id == context.user.id)
        .scalar()
        or 0
    )
    offset = (page - 1) * limit
    rows = (
        base_query.order_by(Document.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    return {
        "items": [_serialize_document(document) for document in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit if total else 0,
        },
    }


@router.get("/documents/{doc_id}")
def get_document(
    doc_id: str,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    document = load_owned_document(db, context, doc_id)
    return _serialize_document(document, include_content=True)


@router.delete("/documents/{doc_id}")
def delete_document(
    doc_id: str,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    document = load_owned_document(db, context, doc_id)
    delete_owned_document(db, document)
    return {"status": "deleted", "id": doc_id}
