"""
AI Infrastructure Module

This module provides the Model Gateway for the portal agent:
- Gemini API client turning a conversation window into a ModelTurn
- One-shot text calls (session titles)
- Langfuse observability integration and token usage tracking

All LLM calls should go through this module to ensure consistent
observability, error handling, and configuration.
"""

from .llm_service import (
    # Model gateway
    send_turn,
    parse_response,
    call_llm,

    # Utility functions
    get_generation_config,
    health_check,
)

from .observability import (
    get_langfuse_client,
    traced,
    tag_trace,
    flush,
)

__all__ = [
    "send_turn",
    "parse_response",
    "call_llm",
    "get_generation_config",
    "health_check",
    "get_langfuse_client",
    "traced",
    "tag_trace",
    "flush",
]
