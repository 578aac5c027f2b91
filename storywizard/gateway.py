"""Generation gateway: HTTP connection to the Gemini API.

Callers await a gateway method, then commit the result through a normal
synchronous story-store mutation. The gateway itself holds no story state.

    async def generate_character_profile(self, name_prompt: str) -> dict
    async def generate_world_details(self, name_prompt: str) -> dict
    async def generate_story_synopsis(self, chapters: list) -> str
    async def generate_item_image(self, description: str) -> str
    async def generate_scene_illustration(self, scene_prompt: str) -> str
    def create_chat_session(self, story: Story) -> ChatSession

Images are returned as base64-encoded JPEG bytes, the same form in which
Item.image_url and Illustration.image_url store them.

Two implementations are provided:

    GeminiGateway       real HTTP client for the Gemini REST API
                        (generateContent, streamGenerateContent, Imagen predict).
    UnconfiguredGateway raises GenerationFailed on every call. Used when no
                        API key is configured so the rest of the app still runs.

Every failure (connection, HTTP status, timeout, malformed body) surfaces as
GenerationFailed. Nothing is retried.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

import httpx

from storywizard.characters import (
    ALIGNMENTS,
    ARCHETYPES,
    FEARS,
    GENDERS,
    MOTIVATIONS,
    SELECTION_LIMITS,
)
from storywizard.models import Chapter, ChatMessage, Story
from storywizard.prompts import (
    CHARACTER_PROFILE_PROMPT,
    CHAT_SYSTEM_PROMPT,
    ITEM_IMAGE_PROMPT,
    SCENE_ILLUSTRATION_PROMPT,
    SYNOPSIS_PROMPT,
    WORLD_DETAILS_PROMPT,
    render_prompt,
    synopsis_context,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "imagen-4.0-generate-001"

SYNOPSIS_PLACEHOLDER = "Add some chapters to your story to generate a synopsis."


# ---------------------------------------------------------------------------
# GenerationFailed: raised for all gateway failures
# ---------------------------------------------------------------------------

class GenerationFailed(RuntimeError):
    """Raised when the generation service cannot produce a result."""


# ---------------------------------------------------------------------------
# Protocol: every gateway implementation must match these signatures
# ---------------------------------------------------------------------------

class Gateway(Protocol):
    async def generate_character_profile(self, name_prompt: str) -> dict[str, Any]: ...

    async def generate_world_details(self, name_prompt: str) -> dict[str, str]: ...

    async def generate_story_synopsis(self, chapters: list[Chapter]) -> str: ...

    async def generate_item_image(self, description: str) -> str: ...

    async def generate_scene_illustration(self, scene_prompt: str) -> str: ...

    def create_chat_session(self, story: Story) -> ChatSession: ...


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

_STRING = {"type": "STRING"}

CHARACTER_PROFILE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "gender": {"type": "STRING", "enum": GENDERS},
        "age": _STRING,
        "species": _STRING,
        "role": _STRING,
        "personality_archetypes": {"type": "ARRAY", "items": {"type": "STRING", "enum": ARCHETYPES}},
        "moral_alignment": {"type": "STRING", "enum": ALIGNMENTS},
        "motivations": {"type": "ARRAY", "items": {"type": "STRING", "enum": MOTIVATIONS}},
        "fears": {"type": "ARRAY", "items": {"type": "STRING", "enum": FEARS}},
        "appearance": {
            "type": "OBJECT",
            "properties": {
                "height": _STRING,
                "build": _STRING,
                "hair_color": _STRING,
                "eye_color": _STRING,
                "distinctive_features": _STRING,
            },
        },
        "backstory": _STRING,
        "relationships": _STRING,
        "dialogue_style": _STRING,
    },
    "required": ["gender", "age", "species", "role", "backstory"],
}

WORLD_DETAILS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "description": _STRING,
        "geography": _STRING,
        "culture": _STRING,
    },
    "required": ["description", "geography", "culture"],
}

_PROFILE_TEXT_FIELDS = (
    "age", "species", "role", "moral_alignment",
    "backstory", "relationships", "dialogue_style",
)
_APPEARANCE_FIELDS = ("height", "build", "hair_color", "eye_color", "distinctive_features")


def _extract_text(data: dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise GenerationFailed(f"Prompt blocked ({block_reason})")
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts)


def _clean_profile(raw: dict[str, Any]) -> dict[str, Any]:
    """Keep known character fields, clamp lists to caps and gender to the enum."""
    profile: dict[str, Any] = {}
    if raw.get("gender") in GENDERS:
        profile["gender"] = raw["gender"]
    for field in _PROFILE_TEXT_FIELDS:
        if isinstance(raw.get(field), str):
            profile[field] = raw[field]
    for field, limit in SELECTION_LIMITS.items():
        values = raw.get(field)
        if isinstance(values, list):
            profile[field] = [str(v) for v in values][:limit]
    appearance = raw.get("appearance")
    if isinstance(appearance, dict):
        profile["appearance"] = {
            k: str(appearance[k]) for k in _APPEARANCE_FIELDS if appearance.get(k) is not None
        }
    return profile


# ---------------------------------------------------------------------------
# ChatSession: one conversation seeded with a story's context
# ---------------------------------------------------------------------------

class ChatSession:
    """A streaming co-writing conversation.

    The session keeps the turn history it has sent and received so that each
    new message carries the whole conversation. close() discards the history;
    a closed session refuses new messages.
    """

    def __init__(self, gateway: GeminiGateway, story_id: str, system_instruction: str) -> None:
        self._gateway = gateway
        self.story_id = story_id
        self.system_instruction = system_instruction
        self.history: list[ChatMessage] = []
        self.closed = False

    def _contents(self) -> list[dict[str, Any]]:
        return [{"role": m.role, "parts": [{"text": m.text}]} for m in self.history]

    async def send_message_stream(self, text: str) -> AsyncIterator[str]:
        """Send a user turn and yield the reply incrementally."""
        if self.closed:
            raise GenerationFailed("Chat session is closed")
        self.history.append(ChatMessage(role="user", text=text))
        reply: list[str] = []
        try:
            async for chunk in self._gateway._stream(self.system_instruction, self._contents()):
                reply.append(chunk)
                yield chunk
        except GenerationFailed:
            # drop the unanswered user turn so the history stays alternating
            if not self.closed and self.history:
                self.history.pop()
            raise
        if not self.closed:
            self.history.append(ChatMessage(role="model", text="".join(reply)))

    async def send_message(self, text: str) -> str:
        return "".join([chunk async for chunk in self.send_message_stream(text)])

    def close(self) -> None:
        self.history = []
        self.closed = True


# ---------------------------------------------------------------------------
# GeminiGateway: connects to the real service
# ---------------------------------------------------------------------------

class GeminiGateway:
    """Async HTTP client for the Gemini REST API.

    Args:
        api_key:     Gemini API key, sent as the x-goog-api-key header.
        model:       Text model, used for structured JSON, prose and chat.
        image_model: Imagen model used for item and scene images.
        base_url:    API root. Defaults to the public v1beta endpoint.
        timeout:     HTTP timeout in seconds. Defaults to 120.
        transport:   Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._image_model = image_model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "x-goog-api-key": self._api_key}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def _post(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self._client() as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise GenerationFailed(f"Cannot connect to generation service at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise GenerationFailed(
                f"Generation service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise GenerationFailed(f"Generation service timed out after {self._timeout}s") from e
        except httpx.TransportError as e:
            raise GenerationFailed(f"Connection to generation service failed: {type(e).__name__}") from e
        try:
            return resp.json()
        except ValueError as e:
            raise GenerationFailed("Generation service returned a non-JSON body") from e

    async def _generate(self, prompt: str, schema: dict[str, Any] | None = None) -> str:
        url = f"{self._base_url}/models/{self._model}:generateContent"
        body: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if schema is not None:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            }
        logger.debug("generate model=%s prompt_len=%d json=%s", self._model, len(prompt), schema is not None)
        text = _extract_text(await self._post(url, body)).strip()
        logger.debug("generate response len=%d", len(text))
        if not text:
            raise GenerationFailed("Generation service returned an empty response")
        return text

    async def _generate_json(self, prompt: str, schema: dict[str, Any]) -> dict[str, Any]:
        text = await self._generate(prompt, schema)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise GenerationFailed("Generation service returned malformed JSON") from e
        if not isinstance(data, dict):
            raise GenerationFailed("Generation service returned JSON that is not an object")
        return data

    async def _generate_image(self, prompt: str, aspect_ratio: str) -> str:
        url = f"{self._base_url}/models/{self._image_model}:predict"
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "sampleCount": 1,
                "outputMimeType": "image/jpeg",
                "aspectRatio": aspect_ratio,
            },
        }
        logger.debug("image model=%s aspect=%s prompt_len=%d", self._image_model, aspect_ratio, len(prompt))
        data = await self._post(url, body)
        predictions = data.get("predictions") or []
        if not predictions or not predictions[0].get("bytesBase64Encoded"):
            raise GenerationFailed("Generation service returned no image")
        return predictions[0]["bytesBase64Encoded"]

    async def _stream(self, system_instruction: str, contents: list[dict[str, Any]]) -> AsyncIterator[str]:
        url = f"{self._base_url}/models/{self._model}:streamGenerateContent"
        body = {
            "system_instruction": {"parts": [{"text": system_instruction}]},
            "contents": contents,
        }
        logger.debug("chat stream model=%s turns=%d", self._model, len(contents))
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", url, params={"alt": "sse"}, json=body, headers=self._headers()
                ) as resp:
                    resp.raise_for_status()
                    async for line in resp.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        payload = line[len("data:"):].strip()
                        if not payload:
                            continue
                        try:
                            chunk = json.loads(payload)
                        except json.JSONDecodeError as e:
                            raise GenerationFailed("Malformed chunk in chat stream") from e
                        text = _extract_text(chunk)
                        if text:
                            yield text
        except httpx.ConnectError as e:
            raise GenerationFailed(f"Cannot connect to generation service at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise GenerationFailed(
                f"Generation service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise GenerationFailed(f"Generation service timed out after {self._timeout}s") from e
        except httpx.TransportError as e:
            raise GenerationFailed(f"Connection to generation service failed: {type(e).__name__}") from e

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate_character_profile(self, name_prompt: str) -> dict[str, Any]:
        prompt = render_prompt(CHARACTER_PROFILE_PROMPT, {
            "description": name_prompt,
            "archetypes": ARCHETYPES,
            "alignments": ALIGNMENTS,
            "motivations": MOTIVATIONS,
            "fears": FEARS,
        })
        return _clean_profile(await self._generate_json(prompt, CHARACTER_PROFILE_SCHEMA))

    async def generate_world_details(self, name_prompt: str) -> dict[str, str]:
        prompt = render_prompt(WORLD_DETAILS_PROMPT, {"description": name_prompt})
        data = await self._generate_json(prompt, WORLD_DETAILS_SCHEMA)
        return {key: str(data.get(key, "")) for key in ("description", "geography", "culture")}

    async def generate_story_synopsis(self, chapters: list[Chapter]) -> str:
        if not chapters:
            return SYNOPSIS_PLACEHOLDER
        prompt = render_prompt(SYNOPSIS_PROMPT, synopsis_context([c.model_dump() for c in chapters]))
        return await self._generate(prompt)

    async def generate_item_image(self, description: str) -> str:
        prompt = render_prompt(ITEM_IMAGE_PROMPT, {"description": description})
        return await self._generate_image(prompt, "1:1")

    async def generate_scene_illustration(self, scene_prompt: str) -> str:
        prompt = render_prompt(SCENE_ILLUSTRATION_PROMPT, {"description": scene_prompt})
        return await self._generate_image(prompt, "16:9")

    def create_chat_session(self, story: Story) -> ChatSession:
        system_instruction = render_prompt(CHAT_SYSTEM_PROMPT, {
            "title": story.title,
            "genre": story.genre,
            "tone": story.tone,
            "outline": story.outline,
        })
        return ChatSession(self, story.id, system_instruction)


# ---------------------------------------------------------------------------
# UnconfiguredGateway: no API key; every call fails cleanly
# ---------------------------------------------------------------------------

class UnconfiguredGateway:
    """Stands in when no API key is set. Every generation raises GenerationFailed.

    The synopsis placeholder is still returned for an empty chapter list,
    since that path never needs the service.
    """

    def _fail(self) -> GenerationFailed:
        return GenerationFailed("Generation service is not configured (set GEMINI_API_KEY)")

    async def generate_character_profile(self, name_prompt: str) -> dict[str, Any]:
        raise self._fail()

    async def generate_world_details(self, name_prompt: str) -> dict[str, str]:
        raise self._fail()

    async def generate_story_synopsis(self, chapters: list[Chapter]) -> str:
        if not chapters:
            return SYNOPSIS_PLACEHOLDER
        raise self._fail()

    async def generate_item_image(self, description: str) -> str:
        raise self._fail()

    async def generate_scene_illustration(self, scene_prompt: str) -> str:
        raise self._fail()

    def create_chat_session(self, story: Story) -> ChatSession:
        raise self._fail()
