"""
Markup Protocol Helpers

The persona instructions ask the model to wrap its text in paired
double-underscore tags (paragraphs, lists, emphasis) and to end a reply
with one of two control sentinels:

- __ENDQUESTION__      the model asked the user something and waits
- __ENDCONVERSATION__  all tasks are done

Nothing here validates that paired tags are well formed. Only the
sentinels matter to the agent loop, and they are matched tolerantly
(case-insensitive, optional whitespace inside the underscores) because
model output drifts.
"""

import re
from enum import Enum

# ============================================================================
# TAGS
# ============================================================================

RESPONSE_OPEN = "__RESPONSE__"
RESPONSE_CLOSE = "__ENDRESPONSE__"
PARAGRAPH_OPEN = "__P__"
PARAGRAPH_CLOSE = "__ENDP__"

END_QUESTION = "__ENDQUESTION__"
END_CONVERSATION = "__ENDCONVERSATION__"

_END_QUESTION_RE = re.compile(r"__\s*END\s*QUESTION\s*__", re.IGNORECASE)
_END_CONVERSATION_RE = re.compile(r"__\s*END\s*CONVERSATION\s*__", re.IGNORECASE)


class ControlSignal(Enum):
    """What a text reply asks the agent loop to do next."""
    CONTINUE = "continue"
    AWAIT_INPUT = "await_input"
    COMPLETE = "complete"

    @property
    def is_terminal(self) -> bool:
        return self is not ControlSignal.CONTINUE


# ============================================================================
# SENTINEL DETECTION
# ============================================================================

def detect_control_signal(text: str) -> ControlSignal:
    """
    Classify model text by the control sentinel it carries.

    When both sentinels appear, completion wins: the model finished its
    work and any trailing question is part of the final answer.

    Args:
        text: Raw model text, markup included

    Returns:
        ControlSignal for the loop to act on
    """
    if not text:
        return ControlSignal.CONTINUE
    if _END_CONVERSATION_RE.search(text):
        return ControlSignal.COMPLETE
    if _END_QUESTION_RE.search(text):
        return ControlSignal.AWAIT_INPUT
    return ControlSignal.CONTINUE


def strip_control_sentinels(text: str) -> str:
    """Remove both control sentinels, leaving the display markup intact."""
    text = _END_CONVERSATION_RE.sub("", text)
    text = _END_QUESTION_RE.sub("", text)
    return text.strip()


def wrap_response(*paragraphs: str, sentinel: str = "") -> str:
    """
    Build a markup reply out of plain paragraphs.

    Example:
        >>> wrap_response("Hello!", sentinel=END_QUESTION)
        '__RESPONSE__\\n__P__Hello!__ENDP__\\n__ENDRESPONSE__\\n__ENDQUESTION__'
    """
    lines = [RESPONSE_OPEN]
    lines.extend(f"{PARAGRAPH_OPEN}{p}{PARAGRAPH_CLOSE}" for p in paragraphs)
    lines.append(RESPONSE_CLOSE)
    if sentinel:
        lines.append(sentinel)
    return "\n".join(lines)
