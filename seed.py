from __future__ import annotations

import logging
import uuid

from dotenv import load_dotenv

load_dotenv()

from docchat.db.session import SessionLocal
from docchat.models import ChatMessage, ChatMessageRole, ChatSession, Document, User

logger = logging.getLogger(__name__)

SEED_VERSION = "v1"
SEED_EMAIL = "demo@example.com"

SAMPLE_TEXT = (
    "DocChat sample handbook\n\n"
    "Employees accrue 1.5 vacation days per month. Unused days carry over up to a maximum of 10.\n"
    "Expense reports are due within 30 days of purchase and need a receipt for amounts over $25.\n"
)


def seed_uuid(name: str) -> uuid.UUID:
    """Generate deterministic UUIDs scoped to the seed version."""
    return uuid.uuid5(uuid.NAMESPACE_URL, f"docchat/{SEED_VERSION}/{name}")


def seed() -> None:
    with SessionLocal() as db:
        user = db.get(User, seed_uuid("user"))
        if user is None:
            user = User(id=seed_uuid("user"), email=SEED_EMAIL, full_name="Demo User")
            db.add(user)
            db.flush()

        document_id = seed_uuid("document/handbook")
        if db.get(Document, document_id) is None:
            size = len(SAMPLE_TEXT.encode("utf-8"))
            db.add(
                Document(
                    id=document_id,
                    user_id=user.id,
                    title="handbook.txt",
                    content=SAMPLE_TEXT,
                    file_type="text/plain",
                    file_size=size,
                )
            )
            db.flush()

            session = ChatSession(id=seed_uuid("session/handbook"), user_id=user.id, document_id=document_id)
            db.add(session)
            db.flush()
            db.add_all(
                [
                    ChatMessage(
                        session_id=session.id,
                        role=ChatMessageRole.USER,
                        content="How many vacation days carry over?",
                    ),
                    ChatMessage(
                        session_id=session.id,
                        role=ChatMessageRole.ASSISTANT,
                        content="Up to 10 unused vacation days carry over.",
                    ),
                ]
            )

        db.commit()
        logger.info("seed_complete user_id=%s document_id=%s", user.id, document_id)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed()
