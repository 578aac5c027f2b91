"""Wiring between the session identity and the per-user stores.

The Workspace owns the identity store, the localizer and the gateway. It
listens for identity changes and rebuilds the story store over the new
user's namespace, so one user's stories are never visible to the next.

The co-writing chat session is scoped to the active story: chat_session()
reuses the open session while the active story stays the same and closes it
(discarding its history) as soon as the active story or the identity changes.

Manuscript edits go through one debounced ManuscriptAutosave per chapter.
Pending edits are flushed to the outgoing user's store before an identity
change swaps it out.
"""

from __future__ import annotations

import logging
from pathlib import Path

from storywizard.autosave import DEFAULT_AUTOSAVE_DELAY, ManuscriptAutosave
from storywizard.gateway import ChatSession, Gateway
from storywizard.identity import IdentityStore
from storywizard.locale import Localizer
from storywizard.models import User
from storywizard.storage import KeyValueStore, StoryRepository
from storywizard.stories import EntityNotFound, StoryNotFound, StoryStore

logger = logging.getLogger(__name__)


class NotAuthenticated(Exception):
    """Raised when a per-user store is requested with nobody logged in."""


class Workspace:
    def __init__(
        self,
        kv: KeyValueStore,
        gateway: Gateway,
        locales_dir: Path | None = None,
        autosave_delay: float = DEFAULT_AUTOSAVE_DELAY,
    ) -> None:
        self.kv = kv
        self.gateway = gateway
        self.identity = IdentityStore(kv)
        self.localizer = Localizer(kv, locales_dir)
        self._stories: StoryStore | None = None
        self._chat: ChatSession | None = None
        self.autosave_delay = autosave_delay
        self._manuscripts: dict[tuple[str, str], ManuscriptAutosave] = {}
        self.identity.subscribe(self._on_identity_change)
        self._resolve(self.identity.user)

    def _resolve(self, user: User | None) -> None:
        if user is None:
            self._stories = None
            return
        self._stories = StoryStore(StoryRepository(self.kv, user.id))

    def _on_identity_change(self, user: User | None) -> None:
        self.release_chat()
        self.release_manuscripts()
        self._resolve(user)

    @property
    def stories(self) -> StoryStore:
        if self._stories is None:
            raise NotAuthenticated("Log in to access stories")
        return self._stories

    # ------------------------------------------------------------------
    # Chat scope
    # ------------------------------------------------------------------

    def chat_session(self) -> ChatSession:
        """Return the chat session for the active story, opening one if needed."""
        story = self.stories.active_story
        if story is None:
            raise StoryNotFound("No active story")
        if self._chat is not None and self._chat.story_id == story.id and not self._chat.closed:
            return self._chat
        self.release_chat()
        self._chat = self.gateway.create_chat_session(story)
        logger.debug("opened chat session for story=%s", story.id)
        return self._chat

    def release_chat(self) -> None:
        if self._chat is not None:
            logger.debug("closed chat session for story=%s", self._chat.story_id)
            self._chat.close()
            self._chat = None

    # ------------------------------------------------------------------
    # Manuscript autosave
    # ------------------------------------------------------------------

    def manuscript(self, story_id: str, chapter_id: str) -> ManuscriptAutosave:
        """Return the autosave for one chapter's manuscript text.

        Raises StoryNotFound (or EntityNotFound for the chapter) when the
        target does not exist in the current user's library.
        """
        story = self.stories.get_story(story_id)
        if not any(c.id == chapter_id for c in story.chapters):
            raise EntityNotFound(f"Chapter not found: {chapter_id}")
        key = (story_id, chapter_id)
        autosave = self._manuscripts.get(key)
        if autosave is None:
            autosave = ManuscriptAutosave(self.stories, story_id, chapter_id, delay=self.autosave_delay)
            self._manuscripts[key] = autosave
        return autosave

    def release_manuscripts(self) -> None:
        """Flush every pending manuscript edit and forget the autosaves."""
        manuscripts, self._manuscripts = self._manuscripts, {}
        for autosave in manuscripts.values():
            try:
                autosave.flush()
            except StoryNotFound:
                logger.info("dropping autosave for story=%s chapter=%s: target gone",
                            autosave.story_id, autosave.chapter_id)
