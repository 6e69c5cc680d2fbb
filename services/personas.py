"""
Personas

A persona is what distinguishes the academic-structure assistant from the
reporting assistant: its instructions and its tool table. The agent loop
itself is the same for both.
"""

from dataclasses import dataclass
from typing import Dict

from config import ACADEMIC_PERSONA_PROMPT, REPORT_PERSONA_PROMPT
from core.models import SessionCategory
from core.orchestrator import TurnOrchestrator
from tools import ToolRegistry, academic_registry, report_registry


@dataclass(frozen=True)
class Persona:
    """Instructions and tools for one session category."""
    category: SessionCategory
    name: str
    instructions: str
    registry: ToolRegistry

    def build_orchestrator(self, store, **kwargs) -> TurnOrchestrator:
        """A fresh orchestrator for one request. Extra kwargs go to TurnOrchestrator."""
        return TurnOrchestrator(self.instructions, self.registry, store, **kwargs)


ACADEMIC_PERSONA = Persona(
    category=SessionCategory.ACADEMIC,
    name="academic-structure",
    instructions=ACADEMIC_PERSONA_PROMPT,
    registry=academic_registry,
)

REPORT_PERSONA = Persona(
    category=SessionCategory.REPORT,
    name="reports",
    instructions=REPORT_PERSONA_PROMPT,
    registry=report_registry,
)

PERSONAS: Dict[SessionCategory, Persona] = {
    ACADEMIC_PERSONA.category: ACADEMIC_PERSONA,
    REPORT_PERSONA.category: REPORT_PERSONA,
}


def get_persona(category) -> Persona:
    """
    Look up a persona by category or by its route name.

    Raises:
        ValueError: If nothing matches
    """
    if isinstance(category, SessionCategory):
        return PERSONAS[category]

    key = str(category).strip()
    for persona in PERSONAS.values():
        if key.upper() == persona.category.value or key.lower() == persona.name:
            return persona
    raise ValueError(f"Unknown persona: '{category}'")
