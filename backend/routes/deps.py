"""Shared lookups for route handlers."""

from fastapi import HTTPException, Request

from storywizard.stories import StoryStore
from storywizard.workspace import NotAuthenticated, Workspace


def get_workspace(request: Request) -> Workspace:
    return request.app.state.workspace


def require_stories(workspace: Workspace) -> StoryStore:
    """The current user's story store, or 401 when nobody is logged in."""
    try:
        return workspace.stories
    except NotAuthenticated as e:
        raise HTTPException(401, str(e))
