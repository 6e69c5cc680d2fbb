"""
Title Service

Names a session from its first user message with a one-shot model call.
Runs in a background thread: the agent loop never waits for it, and a
failure is logged and otherwise ignored.
"""

import logging
import re
import threading
from typing import Callable, Optional

from ai import call_llm
from config import TITLE_PROMPT, TITLE_TEMPERATURE, TITLE_MAX_LENGTH, format_prompt
from core.stream import EventType, StreamEmitter
from utils.markup import strip_control_sentinels

logger = logging.getLogger(__name__)

_QUOTES = "\"'`“”‘’"


def clean_title(raw: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    """
    Normalize a model-generated title.

    Control sentinels copied over from the persona style are dropped.

    Example:
        >>> clean_title('"Physics Program\\nSetup" ')
        'Physics Program Setup'
    """
    title = strip_control_sentinels(raw or "")
    title = re.sub(r"\s*\n\s*", " ", title)
    title = title.strip().strip(_QUOTES).strip()
    title = re.sub(r"\s{2,}", " ", title)
    if len(title) > max_length:
        title = title[:max_length].rstrip()
    return title


def generate_title(prompt: str, llm: Optional[Callable[..., str]] = None) -> str:
    """
    Ask the model for a short session name.

    Raises:
        ModelGatewayError: If the model call fails
        ValueError: If the model returned nothing usable
    """
    llm = llm or call_llm
    raw = llm(format_prompt(TITLE_PROMPT, prompt=prompt), temperature=TITLE_TEMPERATURE)
    title = clean_title(raw)
    if not title:
        raise ValueError("Model returned an empty title")
    return title


class TitleService:
    """
    Fire-and-forget title generation.

    Usage:
        titles = TitleService(store)
        titles.schedule(session.id, "create a program called Physics", emitter)
    """

    def __init__(self, store, llm: Optional[Callable[..., str]] = None):
        self.store = store
        self.llm = llm

    def schedule(self, session_id: str, prompt: str, emitter: Optional[StreamEmitter] = None) -> threading.Thread:
        """Start title generation in a daemon thread and return it."""
        thread = threading.Thread(
            target=self.generate_and_store,
            args=(session_id, prompt, emitter),
            name=f"title-{session_id[:8]}",
            daemon=True,
        )
        thread.start()
        return thread

    def generate_and_store(self, session_id: str, prompt: str, emitter: Optional[StreamEmitter] = None) -> Optional[str]:
        """
        Generate, persist and (if the stream is still open) announce the title.

        Returns:
            The title, or None if generation failed
        """
        try:
            title = generate_title(prompt, self.llm)
            self.store.set_title(session_id, title)
        except Exception as e:
            logger.warning(f"⚠️  Title generation failed for session {session_id}: {e}")
            return None

        if emitter is not None and not emitter.try_emit(EventType.SESSION_TITLE, title, sessionId=session_id):
            logger.debug(f"Stream of {session_id} closed before its title was ready")
        return title
