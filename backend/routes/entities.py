"""Nested entity endpoints: characters, worlds, chapters, items, illustrations.

Every kind except illustrations supports add/update/delete under
/api/stories/{story_id}/{kind}. Illustrations are add-only.
"""

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from storywizard.stories import EntityNotFound, StoryNotFound, StoryStore
from storywizard.workspace import Workspace

from .deps import get_workspace, require_stories

router = APIRouter()

EntityKind = Literal["characters", "worlds", "chapters", "items"]


def _ops(store: StoryStore, kind: str):
    """Return (add, update, delete) store methods for an entity kind."""
    singular = kind[:-1]
    return (
        getattr(store, f"add_{singular}"),
        getattr(store, f"update_{singular}"),
        getattr(store, f"delete_{singular}"),
    )


@router.post("/stories/{story_id}/illustrations", status_code=201)
async def add_illustration(story_id: str, body: dict[str, Any], workspace: Workspace = Depends(get_workspace)):
    """Attach an already generated illustration to a story."""
    store = require_stories(workspace)
    try:
        return store.add_illustration(story_id, body)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False))


@router.post("/stories/{story_id}/{kind}", status_code=201)
async def add_entity(story_id: str, kind: EntityKind, body: dict[str, Any],
                     workspace: Workspace = Depends(get_workspace)):
    """Add a character, world, chapter or item. Any id in the body is replaced."""
    add, _, _ = _ops(require_stories(workspace), kind)
    try:
        return add(story_id, body)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False))


@router.put("/stories/{story_id}/{kind}/{entity_id}")
async def update_entity(story_id: str, kind: EntityKind, entity_id: str, body: dict[str, Any],
                        workspace: Workspace = Depends(get_workspace)):
    """Replace a nested entity by id."""
    _, update, _ = _ops(require_stories(workspace), kind)
    try:
        return update(story_id, {**body, "id": entity_id})
    except EntityNotFound:
        raise HTTPException(404, f"{kind[:-1].capitalize()} not found")
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False))


@router.delete("/stories/{story_id}/{kind}/{entity_id}")
async def delete_entity(story_id: str, kind: EntityKind, entity_id: str,
                        workspace: Workspace = Depends(get_workspace)):
    """Remove a nested entity by id."""
    _, _, delete = _ops(require_stories(workspace), kind)
    try:
        delete(story_id, entity_id)
    except EntityNotFound:
        raise HTTPException(404, f"{kind[:-1].capitalize()} not found")
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    return {"ok": True}
