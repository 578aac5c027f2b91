"""Story store: the per-user collection of stories and the active selection.

State is an ordered list of Story models (insertion order) plus the active
story id. Both are loaded from the injected StoryRepository and written back
through it after every mutation, so the store never holds unsaved changes.

Invariants:
  - active_story_id is None or the id of a story in the collection; it is
    None only when nobody has picked a story or the collection is empty.
  - deleting the active story re-selects the first remaining story (or None).
  - nested ids are unique within their collection: new_id() is used for
    every add and for every entity of a clone.

Stories handed out by the store are deep copies. Changing one has no effect
until it is passed back through update_story().
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from pydantic import BaseModel

from storywizard.models import (
    Chapter,
    Character,
    Illustration,
    Item,
    Story,
    World,
    new_id,
)
from storywizard.storage import StoryRepository

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", Character, World, Chapter, Item, Illustration)

# collection attribute on Story for each nested kind
_COLLECTIONS: dict[type[BaseModel], str] = {
    Character: "characters",
    World: "worlds",
    Chapter: "chapters",
    Item: "items",
    Illustration: "illustrations",
}


class StoryNotFound(LookupError):
    """Raised when an operation targets a story id that is not in the store."""


class EntityNotFound(StoryNotFound):
    """Raised when an update/delete targets a nested id absent from its story."""


def _payload(data: BaseModel | dict[str, Any]) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


class StoryStore:
    def __init__(self, repository: StoryRepository) -> None:
        self._repo = repository
        self._stories: list[Story] = repository.load_stories()
        self._active_id: str | None = repository.load_active_id()
        if self._reconcile_active():
            self._repo.save_active_id(self._active_id)
        logger.info("loaded %d stories for namespace=%s", len(self._stories), repository.namespace)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _reconcile_active(self) -> bool:
        """Point the active id at an existing story. Returns True if it changed."""
        ids = [s.id for s in self._stories]
        if self._active_id in ids:
            return False
        wanted = ids[0] if ids else None
        changed = wanted != self._active_id
        self._active_id = wanted
        return changed

    def _index(self, story_id: str) -> int:
        for i, story in enumerate(self._stories):
            if story.id == story_id:
                return i
        raise StoryNotFound(f"Story not found: {story_id}")

    def _commit(self) -> None:
        self._repo.save_stories(self._stories)
        self._repo.save_active_id(self._active_id)

    def _replace(self, index: int, story: Story) -> Story:
        self._stories[index] = story
        self._commit()
        return story.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    @property
    def namespace(self) -> str:
        return self._repo.namespace

    @property
    def stories(self) -> list[Story]:
        return [s.model_copy(deep=True) for s in self._stories]

    @property
    def active_story_id(self) -> str | None:
        return self._active_id

    @property
    def active_story(self) -> Story | None:
        if self._active_id is None:
            return None
        return self.get_story(self._active_id)

    def get_story(self, story_id: str) -> Story:
        return self._stories[self._index(story_id)].model_copy(deep=True)

    # ------------------------------------------------------------------
    # Stories
    # ------------------------------------------------------------------

    def add_story(self, title: str) -> Story:
        story = Story(id=new_id(), title=title)
        self._stories.append(story)
        self._active_id = story.id
        self._commit()
        logger.info("added story id=%s", story.id)
        return story.model_copy(deep=True)

    def update_story(self, story: Story) -> Story:
        index = self._index(story.id)
        return self._replace(index, Story.model_validate(story.model_dump()))

    def delete_story(self, story_id: str) -> None:
        index = self._index(story_id)
        del self._stories[index]
        if self._active_id == story_id:
            self._active_id = self._stories[0].id if self._stories else None
        self._commit()
        logger.info("deleted story id=%s active=%s", story_id, self._active_id)

    def clone_story(self, source: Story) -> Story:
        """Copy source into this collection with fresh ids throughout."""
        data = source.model_dump()
        data["id"] = new_id()
        data["author"] = None
        data["illustrations"] = []
        for kind in ("characters", "worlds", "chapters", "items"):
            for entity in data[kind]:
                entity["id"] = new_id()
        clone = Story.model_validate(data)
        self._stories.append(clone)
        self._active_id = clone.id
        self._commit()
        logger.info("cloned story source=%s clone=%s", source.id, clone.id)
        return clone.model_copy(deep=True)

    def set_active_story_id(self, story_id: str | None) -> None:
        if story_id is not None:
            self._index(story_id)
        self._active_id = story_id
        self._repo.save_active_id(story_id)

    # ------------------------------------------------------------------
    # Nested entities
    # ------------------------------------------------------------------

    def _add_entity(self, story_id: str, model: type[EntityT], data: BaseModel | dict[str, Any]) -> EntityT:
        index = self._index(story_id)
        story = self._stories[index]
        attr = _COLLECTIONS[model]
        entity = model.model_validate({**_payload(data), "id": new_id()})
        collection = list(getattr(story, attr))
        collection.append(entity)
        self._replace(index, story.model_copy(update={attr: collection}))
        return entity.model_copy(deep=True)

    def _update_entity(self, story_id: str, model: type[EntityT], entity: BaseModel | dict[str, Any]) -> EntityT:
        index = self._index(story_id)
        story = self._stories[index]
        attr = _COLLECTIONS[model]
        updated = model.model_validate(_payload(entity))
        collection = list(getattr(story, attr))
        for i, existing in enumerate(collection):
            if existing.id == updated.id:
                collection[i] = updated
                break
        else:
            raise EntityNotFound(f"{model.__name__} not found: {updated.id}")
        self._replace(index, story.model_copy(update={attr: collection}))
        return updated.model_copy(deep=True)

    def _delete_entity(self, story_id: str, model: type[EntityT], entity_id: str) -> None:
        index = self._index(story_id)
        story = self._stories[index]
        attr = _COLLECTIONS[model]
        collection = [e for e in getattr(story, attr) if e.id != entity_id]
        if len(collection) == len(getattr(story, attr)):
            raise EntityNotFound(f"{model.__name__} not found: {entity_id}")
        self._replace(index, story.model_copy(update={attr: collection}))

    def add_character(self, story_id: str, data: Character | dict[str, Any]) -> Character:
        return self._add_entity(story_id, Character, data)

    def update_character(self, story_id: str, character: Character | dict[str, Any]) -> Character:
        return self._update_entity(story_id, Character, character)

    def delete_character(self, story_id: str, character_id: str) -> None:
        self._delete_entity(story_id, Character, character_id)

    def add_world(self, story_id: str, data: World | dict[str, Any]) -> World:
        return self._add_entity(story_id, World, data)

    def update_world(self, story_id: str, world: World | dict[str, Any]) -> World:
        return self._update_entity(story_id, World, world)

    def delete_world(self, story_id: str, world_id: str) -> None:
        self._delete_entity(story_id, World, world_id)

    def add_chapter(self, story_id: str, data: Chapter | dict[str, Any]) -> Chapter:
        return self._add_entity(story_id, Chapter, data)

    def update_chapter(self, story_id: str, chapter: Chapter | dict[str, Any]) -> Chapter:
        return self._update_entity(story_id, Chapter, chapter)

    def delete_chapter(self, story_id: str, chapter_id: str) -> None:
        self._delete_entity(story_id, Chapter, chapter_id)

    def add_item(self, story_id: str, data: Item | dict[str, Any]) -> Item:
        return self._add_entity(story_id, Item, data)

    def update_item(self, story_id: str, item: Item | dict[str, Any]) -> Item:
        return self._update_entity(story_id, Item, item)

    def delete_item(self, story_id: str, item_id: str) -> None:
        self._delete_entity(story_id, Item, item_id)

    def add_illustration(self, story_id: str, data: Illustration | dict[str, Any]) -> Illustration:
        # Illustrations are generated artifacts: add only, no update/delete.
        return self._add_entity(story_id, Illustration, data)

    def update_chapters_order(self, story_id: str, chapters: list[Chapter | dict[str, Any]]) -> list[Chapter]:
        """Replace the chapter list wholesale with a new ordering.

        The new list is not checked against the current one; callers are
        responsible for not dropping or duplicating chapters.
        """
        index = self._index(story_id)
        story = self._stories[index]
        ordered = [Chapter.model_validate(_payload(c)) for c in chapters]
        before = sorted(c.id for c in story.chapters)
        after = sorted(c.id for c in ordered)
        if before != after:
            logger.warning(
                "chapter reorder for story=%s is not a permutation (%d -> %d chapters)",
                story_id, len(before), len(after),
            )
        self._replace(index, story.model_copy(update={"chapters": ordered}))
        return [c.model_copy(deep=True) for c in ordered]
