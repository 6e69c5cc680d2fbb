"""
Utilities package for shared helper functions.
"""

from utils.markup import (
    ControlSignal,
    detect_control_signal,
    strip_control_sentinels,
    wrap_response,
    END_QUESTION,
    END_CONVERSATION,
)

__all__ = [
    'ControlSignal',
    'detect_control_signal',
    'strip_control_sentinels',
    'wrap_response',
    'END_QUESTION',
    'END_CONVERSATION',
]
