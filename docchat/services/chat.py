from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..models import ChatMessage, ChatMessageRole, ChatSession, Document, User
from ..models.base import utcnow
from .llm_chat import AnswerError, answer_question
from .metrics import record_ai_failure, record_chat_message

logger = logging.getLogger(__name__)


class ChatError(Exception):
    """Raised when a message cannot be sent for a reason the caller can fix."""


@dataclass
class ChatExchange:
    session: ChatSession
    user_message: ChatMessage
    assistant_message: ChatMessage


class ChatService:
    """Chat sessions and messages, always scoped to one user."""

    def __init__(self, db: Session, user: User) -> None:
        self.db = db
        self.user = user

    # --- Sessions --------------------------------------------------------
    def latest_session(self, document: Document) -> Optional[ChatSession]:
        return (
            self.db.query(ChatSession)
            .filter(ChatSession.document_id == document.id, ChatSession.user_id == self.user.id)
            .order_by(ChatSession.created_at.desc())
            .first()
        )

    def get_or_create_session(self, document: Document) -> ChatSession:
        session = self.latest_session(document)
        if session is not None:
            return session

        session = ChatSession(user_id=self.user.id, document_id=document.id)
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)

        logger.info(
            "chat_session_created session_id=%s document_id=%s user_id=%s",
            session.id,
            document.id,
            self.user.id,
        )
        return session

    def get_session(self, session_id) -> Optional[ChatSession]:
        return (
            self.db.query(ChatSession)
            .filter(ChatSession.id == session_id, ChatSession.user_id == self.user.id)
            .one_or_none()
        )

    # --- Messages --------------------------------------------------------
    def list_messages(self, session: ChatSession) -> list[ChatMessage]:
        return (
            self.db.query(ChatMessage)
            .join(ChatSession, ChatSession.id == ChatMessage.session_id)
            .filter(ChatMessage.session_id == session.id, ChatSession.user_id == self.user.id)
            .order_by(ChatMessage.created_at.asc())
            .all()
        )

    def _append(self, session: ChatSession, role: ChatMessageRole, content: str) -> ChatMessage:
        message = ChatMessage(session_id=session.id, role=role, content=content)
        session.updated_at = utcnow()
        self.db.add_all([message, session])
        self.db.commit()
        self.db.refresh(message)
        record_chat_message(role.value)
        return message

    def send_message(self, document: Document, text: str) -> ChatExchange:
        question = (text or "").strip()
        if not question:
            raise ChatError("Message required")
        if not document.content:
            raise ChatError("Document has no content")

        session = self.get_or_create_session(document)
        user_message = self._append(session, ChatMessageRole.USER, question)

        try:
            answer = answer_question(question, document.content, str(session.id))
        except AnswerError:
            record_ai_failure()
            logger.warning(
                "chat_reply_missing session_id=%s user_message_id=%s", session.id, user_message.id
            )
            raise

        assistant_message = self._append(session, ChatMessageRole.ASSISTANT, answer)
        return ChatExchange(session=session, user_message=user_message, assistant_message=assistant_message)
