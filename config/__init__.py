"""
Configuration module for the university portal agent.

This module provides centralized configuration management including:
- Application settings (models, API keys, paths, loop limits)
- Prompt templates and persona instructions

All configurable values should be imported from this module to ensure
consistency across the application.
"""

from .settings import (
    # Paths
    BASE_DIR,
    DATA_DIR,

    # API Keys
    GOOGLE_API_KEY,

    # LLM Settings
    GEMINI_MODEL,
    TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
    TITLE_TEMPERATURE,
    TITLE_MAX_LENGTH,

    # Agent Loop
    MAX_LOOP_ITERATIONS,
    CONTINUATION_PROMPT,
    PARALLEL_TOOL_CALLS,
    TOOL_WORKERS,

    # Storage
    DATABASE_URL,

    # Portal Backend
    PORTAL_API_URL,
    PORTAL_API_TOKEN,
    PORTAL_TIMEOUT,

    # Langfuse Settings
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
    LANGFUSE_HOST,
    LANGFUSE_ENABLED,

    # Debug
    DEBUG,
    LOG_LEVEL,
)

from .prompts import (
    ASSISTANT_NAME,
    MARKUP_RULES,
    ACADEMIC_PERSONA_PROMPT,
    REPORT_PERSONA_PROMPT,
    GREETING_MESSAGE,
    TITLE_PROMPT,
    format_prompt,
)

__all__ = [
    # Settings
    "BASE_DIR",
    "DATA_DIR",
    "GOOGLE_API_KEY",
    "GEMINI_MODEL",
    "TEMPERATURE",
    "MAX_TOKENS",
    "TOP_P",
    "TOP_K",
    "TITLE_TEMPERATURE",
    "TITLE_MAX_LENGTH",
    "MAX_LOOP_ITERATIONS",
    "CONTINUATION_PROMPT",
    "PARALLEL_TOOL_CALLS",
    "TOOL_WORKERS",
    "DATABASE_URL",
    "PORTAL_API_URL",
    "PORTAL_API_TOKEN",
    "PORTAL_TIMEOUT",
    "LANGFUSE_PUBLIC_KEY",
    "LANGFUSE_SECRET_KEY",
    "LANGFUSE_HOST",
    "LANGFUSE_ENABLED",
    "DEBUG",
    "LOG_LEVEL",

    # Prompts
    "ASSISTANT_NAME",
    "MARKUP_RULES",
    "ACADEMIC_PERSONA_PROMPT",
    "REPORT_PERSONA_PROMPT",
    "GREETING_MESSAGE",
    "TITLE_PROMPT",
    "format_prompt",
]
