from .base import Base
from .chat import ChatMessage, ChatMessageRole, ChatSession
from .documents import Document
from .login_tokens import LoginToken
from .user_sessions import UserSession
from .users import User

__all__ = [
    "Base",
    "ChatMessage",
    "ChatMessageRole",
    "ChatSession",
    "Document",
    "LoginToken",
    "User",
    "UserSession",
]
