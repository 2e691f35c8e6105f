from __future__ import annotations

import logging
from typing import Any

import openai
from instructor import from_openai
from pydantic import BaseModel, Field

from ..config import settings

logger = logging.getLogger(__name__)


class AnswerError(Exception):
    """Raised when the hosted model does not return an answer."""


class DocumentAnswer(BaseModel):
    answer: str = Field(min_length=1)


SYSTEM = (
    "You are a helpful assistant that answers questions about a document the user uploaded. "
    "Answer only from the document text. If the document does not contain the answer, say so plainly."
)


USER_TMPL = """Document:
---
{document}
---
Question: {question}
"""


def _client_kwargs() -> dict[str, Any]:
    kwargs: dict[str, Any] = {"timeout": settings.ai_timeout_seconds, "max_retries": 0}
    if settings.ai_api_key:
        kwargs["api_key"] = settings.ai_api_key
    if settings.ai_base_url:
        kwargs["base_url"] = settings.ai_base_url
    return kwargs


def answer_question(message: str, document_content: str, session_id: str | None = None) -> str:
    document = document_content[: settings.ai_max_document_chars]
    try:
        client = from_openai(openai.OpenAI(**_client_kwargs()))
        result = client.chat.completions.create(
            model=settings.ai_model,
            response_model=DocumentAnswer,
            max_retries=0,
            messages=[
                {"role": "system", "content": SYSTEM},
                {"role": "user", "content": USER_TMPL.format(document=document, question=message)},
            ],
            temperature=settings.ai_temperature,
        )
    except Exception as exc:
        logger.warning("ai_answer_failed session_id=%s error=%s", session_id, exc)
        raise AnswerError(str(exc) or exc.__class__.__name__) from exc

    logger.info("ai_answer_received session_id=%s chars=%s", session_id, len(result.answer))
    return result.answer
