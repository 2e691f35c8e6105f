from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from ..dependencies.auth import AuthContext, require_auth
from ..dependencies.db import get_db
from ..models import ChatMessage, ChatSession
from ..services.chat import ChatError, ChatService
from ..services.llm_chat import AnswerError, answer_question
from ..services.metrics import record_ai_failure
from .documents import load_owned_document

router = APIRouter()


class SendMessageRequest(BaseModel):
    message: str = Field(..., max_length=8000)


class ChatProxyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    document_content: str = Field(..., alias="documentContent")
    session_id: Optional[str] = Field(default=None, alias="sessionId")


def _serialize_session(session: ChatSession) -> Dict[str, Any]:
    return {
        "id": str(session.id),
        "document_id": str(session.document_id),
        "created_at": session.created_at.isoformat() if session.created_at else None,
        "updated_at": session.updated_at.isoformat() if session.updated_at else None,
    }


def _serialize_message(message: ChatMessage) -> Dict[str, Any]:
    return {
        "id": str(message.id),
        "session_id": str(message.session_id),
        "role": message.role.value,
        "content": message.content,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


def _parse_session_id(session_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(session_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid session id") from exc


@router.get("/documents/{doc_id}/session")
def open_session(
    doc_id: str,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    document = load_owned_document(db, context, doc_id)
    service = ChatService(db, context.user)
    session = service.get_or_create_session(document)
    return {
        "session": _serialize_session(session),
        "messages": [_serialize_message(message) for message in service.list_messages(session)],
    }


@router.get("/sessions/{session_id}/messages")
def list_session_messages(
    session_id: str,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    service = ChatService(db, context.user)
    session = service.get_session(_parse_session_id(session_id))
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"items": [_serialize_message(message) for message in service.list_messages(session)]}


@router.post("/documents/{doc_id}/messages")
def send_message(
    doc_id: str,
    payload: SendMessageRequest,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    document = load_owned_document(db, context, doc_id)
    service = ChatService(db, context.user)
    try:
        exchange = service.send_message(document, payload.message)
    except ChatError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except AnswerError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return {
        "session": _serialize_session(exchange.session),
        "user_message": _serialize_message(exchange.user_message),
        "assistant_message": _serialize_message(exchange.assistant_message),
    }


@router.post("/chat-with-document")
def chat_with_document(
    payload: ChatProxyRequest,
    context: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """Stateless proxy to the hosted model; persists nothing."""
    if not payload.message.strip():
        raise HTTPException(status_code=400, detail="Message required")
    if not payload.document_content:
        raise HTTPException(status_code=400, detail="Document content required")

    if payload.session_id:
        session = ChatService(db, context.user).get_session(_parse_session_id(payload.session_id))
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")

    try:
        answer = answer_question(payload.message.strip(), payload.document_content, payload.session_id)
    except AnswerError as exc:
        record_ai_failure()
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"message": answer}
