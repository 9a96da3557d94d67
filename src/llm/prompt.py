"""Persona system prompts with retrieved documentation context."""

from __future__ import annotations

import logging
from enum import StrEnum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"
PERSONA_DIR = CONFIG_DIR / "personas"

CONTEXT_HEADER = "Documentation Context:"


class Persona(StrEnum):
    GENERAL = "general"
    ROLEPLAY = "roleplay"


def resolve_persona(value: Any) -> Persona:
    """Map a raw request value to a Persona, falling back to ``general``."""
    if isinstance(value, str) and value in Persona._value2member_map_:
        return Persona(value)
    return Persona.GENERAL


def _read_config(path: Path) -> str:
    """Read a persona template; a missing or empty file is an error."""
    if not path.is_file():
        logger.error("Persona template missing: %s", path)
        raise FileNotFoundError(f"Persona template not found: {path}")
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        raise ValueError(f"Persona template is empty: {path}")
    return text


class PromptComposer:
    """Builds the system message for a persona.

    Templates are read once from ``config/personas/<persona>.md``. Every
    persona needs a template, so construction fails when one is missing
    (e.g. a non-editable install that left ``config/`` behind).
    """

    def __init__(self, persona_dir: Path | None = None) -> None:
        persona_dir = persona_dir or PERSONA_DIR
        self._templates: dict[Persona, str] = {
            persona: _read_config(persona_dir / f"{persona.value}.md") for persona in Persona
        }

    def template(self, persona: Persona) -> str:
        return self._templates[persona]

    def compose(self, persona: Persona, context: str) -> str:
        """Persona template followed by the documentation context section.

        The section header is always present; *context* may be empty.
        """
        return f"{self._templates[persona]}\n\n{CONTEXT_HEADER} {context}"
