"""AI generation endpoints.

Profile and world-detail generation only return suggested fields; the
caller saves them through the normal entity endpoints. Item images, scene
illustrations and synopses are committed or returned here directly. Any
gateway failure becomes a 502 with a generic message and no state change.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from storywizard.gateway import GenerationFailed
from storywizard.stories import StoryNotFound
from storywizard.workspace import Workspace

from .deps import get_workspace, require_stories
from .models import ChatBody, DescriptionBody, IllustrationBody, PromptBody

logger = logging.getLogger(__name__)

router = APIRouter()

# appended to a chat reply that broke off after streaming had started
CHAT_STREAM_FAILED = "\n[Generation failed]\n"


def _failed(e: GenerationFailed) -> HTTPException:
    logger.warning("generation failed: %s", e)
    return HTTPException(502, "Generation failed")


@router.post("/generate/character-profile")
async def character_profile(body: PromptBody, workspace: Workspace = Depends(get_workspace)):
    """Suggest character fields from a name or short description."""
    try:
        return await workspace.gateway.generate_character_profile(body.prompt)
    except GenerationFailed as e:
        raise _failed(e)


@router.post("/generate/world-details")
async def world_details(body: PromptBody, workspace: Workspace = Depends(get_workspace)):
    """Suggest description, geography and culture for a world."""
    try:
        return await workspace.gateway.generate_world_details(body.prompt)
    except GenerationFailed as e:
        raise _failed(e)


@router.post("/generate/item-image")
async def item_image(body: DescriptionBody, workspace: Workspace = Depends(get_workspace)):
    """Generate an item image (base64 JPEG) without saving it."""
    try:
        return {"image_url": await workspace.gateway.generate_item_image(body.description)}
    except GenerationFailed as e:
        raise _failed(e)


@router.post("/stories/{story_id}/synopsis")
async def synopsis(story_id: str, workspace: Workspace = Depends(get_workspace)):
    """Summarise the story's chapters."""
    store = require_stories(workspace)
    try:
        story = store.get_story(story_id)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    try:
        return {"synopsis": await workspace.gateway.generate_story_synopsis(story.chapters)}
    except GenerationFailed as e:
        raise _failed(e)


@router.post("/stories/{story_id}/items/{item_id}/image")
async def generate_item_image_for(story_id: str, item_id: str, workspace: Workspace = Depends(get_workspace)):
    """Generate an image from the item's description and store it on the item."""
    store = require_stories(workspace)
    try:
        story = store.get_story(story_id)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    item = next((i for i in story.items if i.id == item_id), None)
    if item is None:
        raise HTTPException(404, "Item not found")
    if not item.description:
        raise HTTPException(400, "Item has no description")
    try:
        image = await workspace.gateway.generate_item_image(item.description)
    except GenerationFailed as e:
        raise _failed(e)
    try:
        return store.update_item(story_id, item.model_copy(update={"image_url": image}))
    except StoryNotFound:
        # item or story removed while the image was generating
        raise HTTPException(404, "Item not found")


@router.post("/stories/{story_id}/illustrations/generate", status_code=201)
async def generate_illustration(story_id: str, body: IllustrationBody,
                                workspace: Workspace = Depends(get_workspace)):
    """Generate a scene illustration and add it to the story."""
    store = require_stories(workspace)
    try:
        store.get_story(story_id)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    try:
        image = await workspace.gateway.generate_scene_illustration(body.prompt)
    except GenerationFailed as e:
        raise _failed(e)
    try:
        return store.add_illustration(story_id, {
            "prompt": body.prompt,
            "image_url": image,
            "chapter_id": body.chapter_id,
        })
    except StoryNotFound:
        raise HTTPException(404, "Story not found")


@router.post("/chat")
async def chat(body: ChatBody, workspace: Workspace = Depends(get_workspace)):
    """Send a message to the co-writer of the active story; streams the reply."""
    require_stories(workspace)
    try:
        session = workspace.chat_session()
    except StoryNotFound:
        raise HTTPException(404, "No active story")
    except GenerationFailed as e:
        raise _failed(e)

    # failure before the first chunk is a 502; later failures end the body with CHAT_STREAM_FAILED
    reply = session.send_message_stream(body.message)
    try:
        first = await reply.__anext__()
    except StopAsyncIteration:
        first = ""
    except GenerationFailed as e:
        raise _failed(e)

    async def stream():
        yield first
        try:
            async for chunk in reply:
                yield chunk
        except GenerationFailed as e:
            logger.warning("chat stream failed: %s", e)
            yield CHAT_STREAM_FAILED

    return StreamingResponse(stream(), media_type="text/plain")


@router.delete("/chat")
async def reset_chat(workspace: Workspace = Depends(get_workspace)):
    """Discard the active story's chat history."""
    workspace.release_chat()
    return {"ok": True}
