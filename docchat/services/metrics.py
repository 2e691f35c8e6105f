from __future__ import annotations

from prometheus_client import Counter


DOCUMENTS_UPLOADED_COUNTER = Counter(
    "docchat_documents_uploaded_total",
    "Documents uploaded, by MIME type",
    ["file_type"],
)

DOCUMENTS_DELETED_COUNTER = Counter(
    "docchat_documents_deleted_total",
    "Documents deleted",
)

CHAT_MESSAGES_COUNTER = Counter(
    "docchat_chat_messages_total",
    "Chat messages persisted, by role",
    ["role"],
)

AI_FAILURES_COUNTER = Counter(
    "docchat_ai_failures_total",
    "Calls to the hosted model that did not return an answer",
)


def record_document_uploaded(file_type: str | None) -> None:
    DOCUMENTS_UPLOADED_COUNTER.labels(file_type=file_type or "unknown").inc()


def record_document_deleted() -> None:
    DOCUMENTS_DELETED_COUNTER.inc()


def record_chat_message(role: str) -> None:
    CHAT_MESSAGES_COUNTER.labels(role=role).inc()


def record_ai_failure() -> None:
    AI_FAILURES_COUNTER.inc()
