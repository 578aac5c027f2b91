"""Debounced persistence of manuscript edits.

Every edit() restarts the window; the chapter is written only once the
window passes with no further edits, and only if the text differs from what
the store already holds. Timers run on the current asyncio event loop.
"""

from __future__ import annotations

import asyncio
import logging

from storywizard.stories import EntityNotFound, StoryNotFound, StoryStore

logger = logging.getLogger(__name__)

DEFAULT_AUTOSAVE_DELAY = 1.0


class ManuscriptAutosave:
    def __init__(
        self,
        store: StoryStore,
        story_id: str,
        chapter_id: str,
        delay: float = DEFAULT_AUTOSAVE_DELAY,
    ) -> None:
        self._store = store
        self.story_id = story_id
        self.chapter_id = chapter_id
        self.delay = delay
        self._pending: str | None = None
        self._handle: asyncio.TimerHandle | None = None
        self.writes = 0

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def edit(self, content: str) -> None:
        """Record the latest manuscript text and restart the window."""
        self._pending = content
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        try:
            self._write()
        except StoryNotFound:
            # story or chapter was deleted while the edit was pending
            logger.info("dropping autosave for story=%s chapter=%s: target gone",
                        self.story_id, self.chapter_id)

    def _write(self) -> bool:
        content, self._pending = self._pending, None
        if content is None:
            return False
        story = self._store.get_story(self.story_id)
        for chapter in story.chapters:
            if chapter.id == self.chapter_id:
                if chapter.content == content:
                    return False
                self._store.update_chapter(self.story_id, chapter.model_copy(update={"content": content}))
                self.writes += 1
                logger.debug("autosaved chapter=%s len=%d", self.chapter_id, len(content))
                return True
        raise EntityNotFound(f"Chapter not found: {self.chapter_id}")

    def flush(self) -> bool:
        """Write any pending edit now. Returns True if the store was updated."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        return self._write()

    def cancel(self) -> None:
        """Drop the pending edit without writing it."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = None
