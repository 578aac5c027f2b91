"""Tests for debounced manuscript autosave."""

import asyncio

import pytest

from storywizard.autosave import ManuscriptAutosave
from storywizard.stories import EntityNotFound

DELAY = 0.05


@pytest.fixture
def chapter_target(store):
    story = store.add_story("S")
    chapter = store.add_chapter(story.id, {"title": "Ch1"})
    return story.id, chapter.id


def _content(store, story_id):
    return store.get_story(story_id).chapters[0].content


async def test_edit_written_after_quiet_window(store, chapter_target):
    story_id, chapter_id = chapter_target
    autosave = ManuscriptAutosave(store, story_id, chapter_id, delay=DELAY)
    autosave.edit("Once")
    assert autosave.pending
    assert _content(store, story_id) == ""
    await asyncio.sleep(DELAY * 3)
    assert not autosave.pending
    assert _content(store, story_id) == "Once"
    assert autosave.writes == 1


async def test_rapid_edits_coalesce_to_last(store, chapter_target):
    story_id, chapter_id = chapter_target
    autosave = ManuscriptAutosave(store, story_id, chapter_id, delay=DELAY)
    for text in ("O", "On", "Onc", "Once"):
        autosave.edit(text)
        await asyncio.sleep(DELAY / 5)
    await asyncio.sleep(DELAY * 3)
    assert _content(store, story_id) == "Once"
    assert autosave.writes == 1


async def test_unchanged_text_not_written(store, chapter_target):
    story_id, chapter_id = chapter_target
    autosave = ManuscriptAutosave(store, story_id, chapter_id, delay=DELAY)
    autosave.edit("")
    await asyncio.sleep(DELAY * 3)
    assert autosave.writes == 0


async def test_flush_writes_immediately(store, chapter_target):
    story_id, chapter_id = chapter_target
    autosave = ManuscriptAutosave(store, story_id, chapter_id, delay=10)
    autosave.edit("Now")
    assert autosave.flush() is True
    assert not autosave.pending
    assert _content(store, story_id) == "Now"
    assert autosave.flush() is False


async def test_cancel_drops_pending_edit(store, chapter_target):
    story_id, chapter_id = chapter_target
    autosave = ManuscriptAutosave(store, story_id, chapter_id, delay=DELAY)
    autosave.edit("Lost")
    autosave.cancel()
    await asyncio.sleep(DELAY * 3)
    assert _content(store, story_id) == ""
    assert autosave.writes == 0


async def test_deleted_chapter_dropped_quietly(store, chapter_target):
    story_id, chapter_id = chapter_target
    autosave = ManuscriptAutosave(store, story_id, chapter_id, delay=DELAY)
    autosave.edit("Orphaned")
    store.delete_chapter(story_id, chapter_id)
    await asyncio.sleep(DELAY * 3)
    assert autosave.writes == 0
    assert not autosave.pending


async def test_flush_on_deleted_chapter_raises(store, chapter_target):
    story_id, chapter_id = chapter_target
    autosave = ManuscriptAutosave(store, story_id, chapter_id, delay=10)
    autosave.edit("Orphaned")
    store.delete_chapter(story_id, chapter_id)
    with pytest.raises(EntityNotFound):
        autosave.flush()


async def test_preserves_other_chapter_fields(store, chapter_target):
    story_id, chapter_id = chapter_target
    chapter = store.get_story(story_id).chapters[0]
    store.update_chapter(story_id, chapter.model_copy(update={"tension_level": "climax"}))
    autosave = ManuscriptAutosave(store, story_id, chapter_id, delay=10)
    autosave.edit("Text")
    autosave.flush()
    saved = store.get_story(story_id).chapters[0]
    assert saved.tension_level == "climax"
    assert saved.title == "Ch1"
