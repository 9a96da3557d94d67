"""Tests for persona resolution and system prompt composition."""

from pathlib import Path

import pytest

from src.llm.prompt import CONTEXT_HEADER, Persona, PromptComposer, resolve_persona


@pytest.fixture(scope="module")
def composer() -> PromptComposer:
    return PromptComposer()


# -- resolve_persona ----------------------------------------------------------


def test_resolves_known_personas() -> None:
    assert resolve_persona("general") is Persona.GENERAL
    assert resolve_persona("roleplay") is Persona.ROLEPLAY


@pytest.mark.parametrize("raw", ["spanish", "Roleplay", "", None, 42, ["roleplay"]])
def test_unknown_persona_falls_back_to_general(raw) -> None:
    assert resolve_persona(raw) is Persona.GENERAL


# -- templates ----------------------------------------------------------------


def test_general_template_loaded(composer: PromptComposer) -> None:
    text = composer.template(Persona.GENERAL)
    assert text.startswith("You are a specialized assistant")
    assert "Do not use any external knowledge" in text


def test_roleplay_template_carries_grading_protocol(composer: PromptComposer) -> None:
    text = composer.template(Persona.ROLEPLAY)
    assert "Teach-Back" in text
    assert "Comprehensiveness" in text
    assert "Clarity & Structure" in text
    assert "at least 6 points" in text
    assert "8/8" in text


def test_templates_read_from_persona_dir(tmp_path: Path) -> None:
    (tmp_path / "general.md").write_text("General prompt\n", encoding="utf-8")
    (tmp_path / "roleplay.md").write_text("Roleplay prompt", encoding="utf-8")
    composer = PromptComposer(persona_dir=tmp_path)
    assert composer.template(Persona.GENERAL) == "General prompt"
    assert composer.template(Persona.ROLEPLAY) == "Roleplay prompt"


def test_missing_template_fails_construction(tmp_path: Path) -> None:
    (tmp_path / "general.md").write_text("General prompt", encoding="utf-8")
    with pytest.raises(FileNotFoundError, match="roleplay.md"):
        PromptComposer(persona_dir=tmp_path)


def test_empty_template_fails_construction(tmp_path: Path) -> None:
    (tmp_path / "general.md").write_text("General prompt", encoding="utf-8")
    (tmp_path / "roleplay.md").write_text("  \n", encoding="utf-8")
    with pytest.raises(ValueError, match="empty"):
        PromptComposer(persona_dir=tmp_path)


# -- compose ------------------------------------------------------------------


def test_compose_appends_context(composer: PromptComposer) -> None:
    prompt = composer.compose(Persona.GENERAL, "AWP is the average wholesale price.")
    assert prompt.startswith(composer.template(Persona.GENERAL))
    assert prompt.endswith(f"{CONTEXT_HEADER} AWP is the average wholesale price.")


def test_compose_with_empty_context_keeps_header(composer: PromptComposer) -> None:
    prompt = composer.compose(Persona.ROLEPLAY, "")
    assert prompt.startswith(composer.template(Persona.ROLEPLAY))
    assert prompt.endswith(f"\n\n{CONTEXT_HEADER} ")


def test_compose_is_deterministic(composer: PromptComposer) -> None:
    first = composer.compose(Persona.ROLEPLAY, "ctx")
    second = composer.compose(Persona.ROLEPLAY, "ctx")
    assert first == second


def test_fallback_persona_uses_general_template(composer: PromptComposer) -> None:
    prompt = composer.compose(resolve_persona("spanish"), "")
    assert prompt.startswith(composer.template(Persona.GENERAL))
