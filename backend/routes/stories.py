"""Story CRUD, active selection, cloning and the community catalog."""

from fastapi import APIRouter, Depends, HTTPException

from storywizard.community import get_community_story, list_community_stories
from storywizard.models import Chapter, Story
from storywizard.stories import EntityNotFound, StoryNotFound
from storywizard.workspace import Workspace

from .deps import get_workspace, require_stories
from .models import CreateStory, ManuscriptBody, SetActiveStory

router = APIRouter()


@router.get("/stories")
async def list_stories(workspace: Workspace = Depends(get_workspace)):
    """List the current user's stories in insertion order."""
    return require_stories(workspace).stories


@router.post("/stories", status_code=201)
async def create_story(body: CreateStory, workspace: Workspace = Depends(get_workspace)):
    """Create an empty story and make it active."""
    return require_stories(workspace).add_story(body.title)


@router.get("/stories/active")
async def get_active_story(workspace: Workspace = Depends(get_workspace)):
    """Return the active story id and story (both null when none)."""
    store = require_stories(workspace)
    return {"active_story_id": store.active_story_id, "story": store.active_story}


@router.put("/stories/active")
async def set_active_story(body: SetActiveStory, workspace: Workspace = Depends(get_workspace)):
    """Select the active story (or clear the selection with null)."""
    store = require_stories(workspace)
    try:
        store.set_active_story_id(body.story_id)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    return {"active_story_id": store.active_story_id}


@router.get("/stories/{story_id}")
async def get_story(story_id: str, workspace: Workspace = Depends(get_workspace)):
    """Get a single story with all nested entities."""
    try:
        return require_stories(workspace).get_story(story_id)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")


@router.put("/stories/{story_id}")
async def update_story(story_id: str, body: Story, workspace: Workspace = Depends(get_workspace)):
    """Replace a story wholesale."""
    if body.id != story_id:
        raise HTTPException(400, "Story id does not match the URL")
    try:
        return require_stories(workspace).update_story(body)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")


@router.delete("/stories/{story_id}")
async def delete_story(story_id: str, workspace: Workspace = Depends(get_workspace)):
    """Delete a story and everything it owns."""
    store = require_stories(workspace)
    try:
        store.delete_story(story_id)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    return {"ok": True, "active_story_id": store.active_story_id}


@router.post("/stories/{story_id}/clone", status_code=201)
async def clone_story(story_id: str, workspace: Workspace = Depends(get_workspace)):
    """Duplicate one of the user's stories with fresh ids."""
    store = require_stories(workspace)
    try:
        source = store.get_story(story_id)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    return store.clone_story(source)


@router.put("/stories/{story_id}/chapters/order")
async def reorder_chapters(story_id: str, body: list[Chapter], workspace: Workspace = Depends(get_workspace)):
    """Replace the chapter list with a new ordering."""
    try:
        return require_stories(workspace).update_chapters_order(story_id, body)
    except StoryNotFound:
        raise HTTPException(404, "Story not found")


@router.put("/stories/{story_id}/chapters/{chapter_id}/manuscript")
async def edit_manuscript(
    story_id: str, chapter_id: str, body: ManuscriptBody, workspace: Workspace = Depends(get_workspace)
):
    """Record a manuscript edit. It is written once edits pause, or at once with flush."""
    require_stories(workspace)
    try:
        autosave = workspace.manuscript(story_id, chapter_id)
        autosave.edit(body.content)
        saved = autosave.flush() if body.flush else False
    except EntityNotFound:
        raise HTTPException(404, "Chapter not found")
    except StoryNotFound:
        raise HTTPException(404, "Story not found")
    return {"pending": autosave.pending, "saved": saved}


@router.get("/community")
async def community_stories():
    """List the built-in community stories."""
    return list_community_stories()


@router.post("/community/{story_id}/clone", status_code=201)
async def clone_community_story(story_id: str, workspace: Workspace = Depends(get_workspace)):
    """Clone a community story into the user's library."""
    store = require_stories(workspace)
    source = get_community_story(story_id)
    if source is None:
        raise HTTPException(404, "Community story not found")
    return store.clone_story(source)
