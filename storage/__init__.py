"""
Storage Module

Durable, append-only conversation log per chat session and the
single-writer lock that keeps one agent loop per session.
"""

from .session_store import (
    SessionStore,
    SessionLockRegistry,
    ChatSession,
    StoredMessage,
)

__all__ = [
    "SessionStore",
    "SessionLockRegistry",
    "ChatSession",
    "StoredMessage",
]
