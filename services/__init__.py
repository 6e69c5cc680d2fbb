"""
Business Logic Services Module

This module coordinates agent requests for the portal:
- Chat service: session operations and the streaming request flow
- Personas: instructions and tool tables per session category
- Title service: fire-and-forget session naming

Services sit between the HTTP layer and the agent loop in ``core``.
"""

from .personas import (
    Persona,
    ACADEMIC_PERSONA,
    REPORT_PERSONA,
    get_persona,
)

from .title_service import (
    TitleService,
    clean_title,
    generate_title,
)

from .chat_service import (
    ChatService,
    ChatRequest,
    ChatStream,
)

__all__ = [
    # Personas
    "Persona",
    "ACADEMIC_PERSONA",
    "REPORT_PERSONA",
    "get_persona",

    # Titles
    "TitleService",
    "clean_title",
    "generate_title",

    # Chat Service
    "ChatService",
    "ChatRequest",
    "ChatStream",
]
