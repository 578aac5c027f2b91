"""Tests for storywizard.gateway: GeminiGateway, ChatSession and UnconfiguredGateway."""

import json

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from storywizard.gateway import (
    SYNOPSIS_PLACEHOLDER,
    GeminiGateway,
    GenerationFailed,
    UnconfiguredGateway,
    _clean_profile,
)
from storywizard.models import Chapter, Story


def _mock_response(body: dict, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.raise_for_status = MagicMock(
        side_effect=None if status < 400 else httpx.HTTPStatusError(
            "", request=MagicMock(), response=resp
        )
    )
    return resp


def _text_body(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


@pytest.fixture
def gateway() -> GeminiGateway:
    return GeminiGateway(api_key="test-key", model="text-model", image_model="image-model",
                         base_url="http://gemini.test/v1beta/")


# ---------------------------------------------------------------------------
# Structured generation
# ---------------------------------------------------------------------------

class TestCharacterProfile:
    async def test_happy_path(self, gateway: GeminiGateway) -> None:
        profile = {
            "gender": "Female", "age": "30", "species": "Elf", "role": "Ranger",
            "personality_archetypes": ["Brave", "Wise"], "backstory": "Raised by wolves.",
            "appearance": {"eye_color": "Green"},
        }
        mock_post = AsyncMock(return_value=_mock_response(_text_body(json.dumps(profile))))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await gateway.generate_character_profile("Lyra, a ranger")
        assert result["species"] == "Elf"
        assert result["personality_archetypes"] == ["Brave", "Wise"]
        assert result["appearance"] == {"eye_color": "Green"}

    async def test_posts_to_generate_content(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_text_body('{"age": "1"}')))
        with patch("httpx.AsyncClient.post", mock_post):
            await gateway.generate_character_profile("Thal")
        url = mock_post.call_args[0][0]
        assert url == "http://gemini.test/v1beta/models/text-model:generateContent"

    async def test_requests_json_schema(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_text_body('{"age": "1"}')))
        with patch("httpx.AsyncClient.post", mock_post):
            await gateway.generate_character_profile("Thal")
        body = mock_post.call_args.kwargs["json"]
        config = body["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert "gender" in config["responseSchema"]["properties"]
        assert "Thal" in body["contents"][0]["parts"][0]["text"]

    async def test_api_key_header(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_text_body('{"age": "1"}')))
        with patch("httpx.AsyncClient.post", mock_post):
            await gateway.generate_character_profile("Thal")
        assert mock_post.call_args.kwargs["headers"]["x-goog-api-key"] == "test-key"

    async def test_malformed_json_raises(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_text_body("not json at all")))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="malformed JSON"):
                await gateway.generate_character_profile("Thal")

    async def test_non_object_json_raises(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_text_body("[1, 2]")))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="not an object"):
                await gateway.generate_character_profile("Thal")


class TestCleanProfile:
    def test_lists_trimmed_to_caps(self) -> None:
        cleaned = _clean_profile({
            "personality_archetypes": ["Brave", "Wise", "Loyal", "Grumpy"],
            "motivations": ["Love", "Power", "Justice"],
            "fears": ["Death"],
        })
        assert cleaned["personality_archetypes"] == ["Brave", "Wise", "Loyal"]
        assert cleaned["motivations"] == ["Love", "Power"]
        assert cleaned["fears"] == ["Death"]

    def test_unknown_gender_dropped(self) -> None:
        assert "gender" not in _clean_profile({"gender": "Robot"})

    def test_unknown_fields_dropped(self) -> None:
        cleaned = _clean_profile({"id": "evil", "name": "Other", "age": "40"})
        assert cleaned == {"age": "40"}


class TestWorldDetails:
    async def test_happy_path(self, gateway: GeminiGateway) -> None:
        details = {"description": "A realm", "geography": "Peaks", "culture": "Druids"}
        mock_post = AsyncMock(return_value=_mock_response(_text_body(json.dumps(details))))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await gateway.generate_world_details("Aethelgard")
        assert result == details

    async def test_missing_keys_default_empty(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_text_body('{"description": "A realm"}')))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await gateway.generate_world_details("Aethelgard")
        assert result == {"description": "A realm", "geography": "", "culture": ""}


# ---------------------------------------------------------------------------
# Synopsis
# ---------------------------------------------------------------------------

class TestSynopsis:
    async def test_no_chapters_returns_placeholder_without_request(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock()
        with patch("httpx.AsyncClient.post", mock_post):
            result = await gateway.generate_story_synopsis([])
        assert result == SYNOPSIS_PLACEHOLDER
        mock_post.assert_not_called()

    async def test_chapters_in_order_in_prompt(self, gateway: GeminiGateway) -> None:
        chapters = [
            Chapter(id="a", title="Arrival", content="They arrive."),
            Chapter(id="b", title="Betrayal", content="He betrays.", tension_level="climax"),
        ]
        mock_post = AsyncMock(return_value=_mock_response(_text_body("  A gripping tale.  ")))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await gateway.generate_story_synopsis(chapters)
        assert result == "A gripping tale."
        prompt = mock_post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
        assert prompt.index("Chapter 1: Arrival") < prompt.index("Chapter 2: Betrayal")
        assert "climax" in prompt
        assert "generationConfig" not in mock_post.call_args.kwargs["json"]

    async def test_empty_response_raises(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(return_value=_mock_response(_text_body("   ")))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="empty response"):
                await gateway.generate_story_synopsis([Chapter(id="a", title="A")])


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

class TestImages:
    async def test_item_image_square(self, gateway: GeminiGateway) -> None:
        body = {"predictions": [{"bytesBase64Encoded": "aW1n", "mimeType": "image/jpeg"}]}
        mock_post = AsyncMock(return_value=_mock_response(body))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await gateway.generate_item_image("A glowing pendant")
        assert result == "aW1n"
        url = mock_post.call_args[0][0]
        assert url == "http://gemini.test/v1beta/models/image-model:predict"
        sent = mock_post.call_args.kwargs["json"]
        assert sent["parameters"]["aspectRatio"] == "1:1"
        assert "A glowing pendant" in sent["instances"][0]["prompt"]

    async def test_scene_illustration_widescreen(self, gateway: GeminiGateway) -> None:
        body = {"predictions": [{"bytesBase64Encoded": "c2NlbmU="}]}
        mock_post = AsyncMock(return_value=_mock_response(body))
        with patch("httpx.AsyncClient.post", mock_post):
            result = await gateway.generate_scene_illustration("A dragon at dusk")
        assert result == "c2NlbmU="
        assert mock_post.call_args.kwargs["json"]["parameters"]["aspectRatio"] == "16:9"

    async def test_no_image_raises(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(return_value=_mock_response({"predictions": []}))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="no image"):
                await gateway.generate_item_image("x")


# ---------------------------------------------------------------------------
# Transport failures
# ---------------------------------------------------------------------------

class TestFailures:
    async def test_connect_error(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="Cannot connect"):
                await gateway.generate_world_details("x")

    async def test_timeout(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(side_effect=httpx.TimeoutException("timeout"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="timed out"):
                await gateway.generate_world_details("x")

    async def test_http_error(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(return_value=_mock_response({}, status=503))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="HTTP 503"):
                await gateway.generate_item_image("x")

    async def test_non_json_body(self, gateway: GeminiGateway) -> None:
        resp = _mock_response({})
        resp.json.side_effect = ValueError("no json")
        mock_post = AsyncMock(return_value=resp)
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="non-JSON"):
                await gateway.generate_world_details("x")

    async def test_blocked_prompt(self, gateway: GeminiGateway) -> None:
        body = {"promptFeedback": {"blockReason": "SAFETY"}}
        mock_post = AsyncMock(return_value=_mock_response(body))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="SAFETY"):
                await gateway.generate_story_synopsis([Chapter(id="a", title="A")])

    async def test_read_error(self, gateway: GeminiGateway) -> None:
        mock_post = AsyncMock(side_effect=httpx.ReadError("connection reset"))
        with patch("httpx.AsyncClient.post", mock_post):
            with pytest.raises(GenerationFailed, match="ReadError"):
                await gateway.generate_world_details("x")

    async def test_read_error_in_chat_stream(self) -> None:
        def reset(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadError("connection reset", request=request)

        gw = GeminiGateway(api_key="k", base_url="http://gemini.test", transport=httpx.MockTransport(reset))
        session = gw.create_chat_session(_story())
        with pytest.raises(GenerationFailed, match="ReadError"):
            await session.send_message("hi")
        assert session.history == []


# ---------------------------------------------------------------------------
# Chat: streamed over SSE through httpx.MockTransport
# ---------------------------------------------------------------------------

def _sse(*texts: str) -> str:
    return "".join(f"data: {json.dumps(_text_body(t))}\r\n\r\n" for t in texts)


class _Recorder:
    def __init__(self, status: int = 200, replies: tuple[str, ...] = ("Once ", "upon ", "a time.")) -> None:
        self.status = status
        self.replies = replies
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status, text="error")
        return httpx.Response(200, text=_sse(*self.replies),
                              headers={"content-type": "text/event-stream"})

    def body(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)


def _story() -> Story:
    return Story(id="s1", title="Dragon's Quest", genre="Fantasy", outline="")


class TestChatSession:
    async def test_stream_yields_chunks(self) -> None:
        recorder = _Recorder()
        gw = GeminiGateway(api_key="k", base_url="http://gemini.test", transport=httpx.MockTransport(recorder))
        session = gw.create_chat_session(_story())
        chunks = [c async for c in session.send_message_stream("Continue the story")]
        assert chunks == ["Once ", "upon ", "a time."]
        request = recorder.requests[0]
        assert request.url.path.endswith(":streamGenerateContent")
        assert request.url.params["alt"] == "sse"

    async def test_system_instruction_carries_story_context(self) -> None:
        recorder = _Recorder()
        gw = GeminiGateway(api_key="k", base_url="http://gemini.test", transport=httpx.MockTransport(recorder))
        session = gw.create_chat_session(_story())
        await session.send_message("hi")
        instruction = recorder.body()["system_instruction"]["parts"][0]["text"]
        assert "Title: Dragon's Quest" in instruction
        assert "Genre: Fantasy" in instruction
        assert "Outline: Not specified" in instruction

    async def test_history_accumulates(self) -> None:
        recorder = _Recorder(replies=("Reply.",))
        gw = GeminiGateway(api_key="k", base_url="http://gemini.test", transport=httpx.MockTransport(recorder))
        session = gw.create_chat_session(_story())
        assert await session.send_message("first") == "Reply."
        await session.send_message("second")
        contents = recorder.body()["contents"]
        assert [c["role"] for c in contents] == ["user", "model", "user"]
        assert contents[-1]["parts"][0]["text"] == "second"
        assert [m.role for m in session.history] == ["user", "model", "user", "model"]

    async def test_failed_turn_dropped_from_history(self) -> None:
        recorder = _Recorder(status=500)
        gw = GeminiGateway(api_key="k", base_url="http://gemini.test", transport=httpx.MockTransport(recorder))
        session = gw.create_chat_session(_story())
        with pytest.raises(GenerationFailed, match="HTTP 500"):
            await session.send_message("hello")
        assert session.history == []

    async def test_closed_session_refuses(self) -> None:
        gw = GeminiGateway(api_key="k", base_url="http://gemini.test",
                           transport=httpx.MockTransport(_Recorder()))
        session = gw.create_chat_session(_story())
        await session.send_message("hi")
        session.close()
        assert session.history == []
        with pytest.raises(GenerationFailed, match="closed"):
            await session.send_message("again")

    async def test_close_during_stream_then_failure(self) -> None:
        def broken_off(request: httpx.Request) -> httpx.Response:
            text = _sse("Once ") + "data: {not json\r\n\r\n"
            return httpx.Response(200, text=text, headers={"content-type": "text/event-stream"})

        gw = GeminiGateway(api_key="k", base_url="http://gemini.test", transport=httpx.MockTransport(broken_off))
        session = gw.create_chat_session(_story())
        reply = session.send_message_stream("hi")
        assert await reply.__anext__() == "Once "
        session.close()
        with pytest.raises(GenerationFailed, match="Malformed"):
            await reply.__anext__()
        assert session.history == []


# ---------------------------------------------------------------------------
# UnconfiguredGateway
# ---------------------------------------------------------------------------

class TestUnconfiguredGateway:
    async def test_every_call_fails(self) -> None:
        gw = UnconfiguredGateway()
        with pytest.raises(GenerationFailed, match="not configured"):
            await gw.generate_character_profile("x")
        with pytest.raises(GenerationFailed):
            await gw.generate_world_details("x")
        with pytest.raises(GenerationFailed):
            await gw.generate_item_image("x")
        with pytest.raises(GenerationFailed):
            await gw.generate_scene_illustration("x")
        with pytest.raises(GenerationFailed):
            gw.create_chat_session(_story())

    async def test_empty_synopsis_still_placeholder(self) -> None:
        gw = UnconfiguredGateway()
        assert await gw.generate_story_synopsis([]) == SYNOPSIS_PLACEHOLDER
        with pytest.raises(GenerationFailed):
            await gw.generate_story_synopsis([Chapter(id="a", title="A")])
