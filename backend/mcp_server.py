"""FastMCP server exposing the active story's bible as read-only MCP tools.

Tools:
  - list_characters()        name, role and archetypes of every character
  - lookup_character(name)   full record of characters whose name matches
  - list_worlds()            worlds with description, geography and culture
  - list_chapters()          chapters in narrative order

The tools read from a StoryStore bound with set_store() (tests bind one over
a temp directory). Run as __main__ to serve the logged-in user's store from
DATA_DIR.

Usage:
    uv run python -m backend.mcp_server
"""

from mcp.server.fastmcp import FastMCP

from storywizard.models import Story
from storywizard.stories import StoryStore

mcp = FastMCP("storywizard-bible")

_store: StoryStore | None = None


def set_store(store: StoryStore | None) -> None:
    """Bind the story store the tools read from."""
    global _store
    _store = store


def _active_story() -> Story | None:
    if _store is None:
        return None
    return _store.active_story


@mcp.tool()
def list_characters() -> list[dict]:
    """List the characters of the active story."""
    story = _active_story()
    if story is None:
        return []
    return [
        {"name": c.name, "role": c.role, "personality_archetypes": c.personality_archetypes}
        for c in story.characters
    ]


@mcp.tool()
def lookup_character(name: str) -> list[dict]:
    """Return full records of characters whose name contains the given text."""
    story = _active_story()
    if story is None:
        return []
    wanted = name.lower()
    return [c.model_dump() for c in story.characters if wanted in c.name.lower()]


@mcp.tool()
def list_worlds() -> list[dict]:
    """List the worlds of the active story."""
    story = _active_story()
    if story is None:
        return []
    return [w.model_dump() for w in story.worlds]


@mcp.tool()
def list_chapters() -> list[dict]:
    """List the chapters of the active story in narrative order."""
    story = _active_story()
    if story is None:
        return []
    return [
        {"title": c.title, "tension_level": c.tension_level, "content": c.content}
        for c in story.chapters
    ]


if __name__ == "__main__":
    from storywizard.config import load_settings
    from storywizard.gateway import UnconfiguredGateway
    from storywizard.storage import KeyValueStore
    from storywizard.workspace import NotAuthenticated, Workspace

    settings = load_settings()
    workspace = Workspace(KeyValueStore(settings.data_dir), UnconfiguredGateway())
    try:
        set_store(workspace.stories)
    except NotAuthenticated:
        raise SystemExit("Log in through the app first; no session identity is stored.")
    mcp.run()
