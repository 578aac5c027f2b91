"""Tests for storywizard.prompts: Handlebars rendering and templates."""

import pytest

from storywizard.prompts import (
    CHAT_SYSTEM_PROMPT,
    ITEM_IMAGE_PROMPT,
    SYNOPSIS_PROMPT,
    PromptError,
    render_prompt,
    synopsis_context,
)


class TestRenderPrompt:
    def test_simple_substitution(self) -> None:
        assert render_prompt("Hello {{name}}", {"name": "Thal"}) == "Hello Thal"

    def test_triple_stash_not_escaped(self) -> None:
        assert render_prompt("{{{x}}}", {"x": "Dragon's <Quest>"}) == "Dragon's <Quest>"

    def test_or_default_helper(self) -> None:
        tpl = '{{{or_default genre "Not specified"}}}'
        assert render_prompt(tpl, {"genre": ""}) == "Not specified"
        assert render_prompt(tpl, {"genre": "Noir"}) == "Noir"

    def test_join_helper(self) -> None:
        assert render_prompt('{{{join xs ", "}}}', {"xs": ["a", "b"]}) == "a, b"

    def test_bad_template_raises(self) -> None:
        with pytest.raises(PromptError):
            render_prompt("{{#if x}}never closed", {"x": True})


class TestTemplates:
    def test_chat_prompt_fallbacks(self) -> None:
        text = render_prompt(CHAT_SYSTEM_PROMPT, {"title": "T", "genre": "", "tone": "Dark", "outline": ""})
        assert "Title: T" in text
        assert "Genre: Not specified" in text
        assert "Tone: Dark" in text
        assert "Outline: Not specified" in text

    def test_item_prompt_contains_description(self) -> None:
        assert "a silver pendant" in render_prompt(ITEM_IMAGE_PROMPT, {"description": "a silver pendant"})

    def test_synopsis_numbers_chapters(self) -> None:
        context = synopsis_context([
            {"title": "Arrival", "content": "A", "tension_level": "low"},
            {"title": "Storm", "content": "B", "tension_level": "high"},
        ])
        text = render_prompt(SYNOPSIS_PROMPT, context)
        assert "Chapter 1: Arrival (tension: low)" in text
        assert "Chapter 2: Storm (tension: high)" in text

    def test_synopsis_context_defaults(self) -> None:
        context = synopsis_context([{}])
        assert context["chapters"][0] == {"number": 1, "title": "", "content": "", "tension_level": "low"}
