"""
Langfuse Observability

Initializes the Langfuse client when tracing is enabled and offers a
``traced`` decorator that becomes a no-op when it is not, so model calls
can be decorated unconditionally.
"""

import logging
from functools import wraps
from typing import Any, Dict, Optional

from langfuse import Langfuse, get_client, observe

from config import (
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,
)

logger = logging.getLogger(__name__)

# ============================================================================
# INITIALIZATION
# ============================================================================

_langfuse_client: Optional[Langfuse] = None

if LANGFUSE_ENABLED:
    try:
        _langfuse_client = Langfuse(
            public_key=LANGFUSE_PUBLIC_KEY,
            secret_key=LANGFUSE_SECRET_KEY,
            host=LANGFUSE_HOST,
        )
        logger.info("✅ Langfuse observability initialized")
    except Exception as e:
        logger.warning(f"⚠️  Langfuse initialization failed: {e}. Continuing without tracing.")
        _langfuse_client = None
else:
    logger.info("ℹ️  Langfuse observability disabled")


def get_langfuse_client() -> Optional[Langfuse]:
    """Get the Langfuse client instance."""
    return _langfuse_client


def tracing_enabled() -> bool:
    return _langfuse_client is not None


# ============================================================================
# DECORATORS AND HELPERS
# ============================================================================

def traced(name: str, as_type: Optional[str] = None):
    """
    Trace a function with Langfuse when tracing is enabled.

    Usage:
        @traced("send_turn")
        def send_turn(...):
            ...
    """
    def decorator(func):
        if not tracing_enabled():
            return func  # No-op if Langfuse disabled

        observe_kwargs = {"name": name}
        if as_type:
            observe_kwargs["as_type"] = as_type

        @observe(**observe_kwargs)
        @wraps(func)
        def wrapper(*args, **kwargs):
            return func(*args, **kwargs)

        return wrapper
    return decorator


def record_generation(model: str, usage: Optional[Dict[str, int]] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Attach model name and token usage to the current Langfuse generation."""
    if not tracing_enabled():
        return
    get_client().update_current_generation(
        model=model,
        usage_details=usage,
        metadata=metadata,
    )


def tag_trace(session_id: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Group the current trace under a chat session."""
    if not tracing_enabled():
        return
    get_client().update_current_trace(session_id=session_id, metadata=metadata)


def flush() -> None:
    if _langfuse_client:
        _langfuse_client.flush()
