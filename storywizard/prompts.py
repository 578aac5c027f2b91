"""Handlebars prompt templates for the generation gateway."""

from collections.abc import Callable
from typing import Any

import pybars


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_or_default(this, value, fallback):
    """{{or_default genre "Not specified"}}: fallback for empty values."""
    return value if value else fallback


def _helper_join(this, items, separator=", "):
    """{{join list ", "}}: join a list of strings."""
    return separator.join(str(i) for i in items or [])


_HELPERS: dict[str, Callable] = {
    "or_default": _helper_or_default,
    "join": _helper_join,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Templates ────────────────────────────────────────────

CHARACTER_PROFILE_PROMPT = """\
Based on the following name or description, create a detailed character \
profile for a story.
Description: "{{{description}}}"

Return a JSON object with the fields: gender (Male or Female), age, species, \
role, personality_archetypes (up to 3 of: {{{join archetypes ", "}}}), \
moral_alignment (one of: {{{join alignments ", "}}}), motivations (up to 2 of: \
{{{join motivations ", "}}}), fears (up to 2 of: {{{join fears ", "}}}), \
appearance (height, build, hair_color, eye_color, distinctive_features), \
backstory, relationships and dialogue_style.\
"""

WORLD_DETAILS_PROMPT = """\
Based on this description of a world, expand it with rich details.
Description: "{{{description}}}"

Return a JSON object with 'description', 'geography', and 'culture'.\
"""

SYNOPSIS_PROMPT = """\
Write a compelling synopsis of the following story, based on its chapters in \
order. Keep it to two or three paragraphs.

{{#each chapters}}
Chapter {{{number}}}: {{{title}}} (tension: {{{tension_level}}})
{{{content}}}

{{/each}}\
"""

CHAT_SYSTEM_PROMPT = """\
You are a creative co-writer and storytelling assistant.
The user is writing a story with the following context:
Title: {{{title}}}
Genre: {{{or_default genre "Not specified"}}}
Tone: {{{or_default tone "Not specified"}}}
Outline: {{{or_default outline "Not specified"}}}

Your role is to help them brainstorm, expand scenes, write dialogue, and \
overcome writer's block. Be encouraging, creative, and adhere to the \
established context of their story. When asked to continue a story, pick up \
from the last sentence and write the next few paragraphs. Keep your responses \
concise and focused on the user's request.\
"""

ITEM_IMAGE_PROMPT = """\
A detailed fantasy concept-art illustration of an item, centered on a plain \
background: {{{description}}}\
"""

SCENE_ILLUSTRATION_PROMPT = """\
A cinematic, richly detailed illustration of the following story scene: \
{{{description}}}\
"""


def synopsis_context(chapters: list[dict[str, Any]]) -> dict[str, Any]:
    """Build the synopsis template context from chapter dumps."""
    numbered = []
    for number, chapter in enumerate(chapters, start=1):
        numbered.append({
            "number": number,
            "title": chapter.get("title", ""),
            "content": chapter.get("content", ""),
            "tension_level": chapter.get("tension_level", "low"),
        })
    return {"chapters": numbered}
