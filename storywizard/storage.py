"""JSON key-value storage.

All state is stored in flat JSON files under a configurable base directory,
one file per key. There is no database or ORM: reads and writes go through
`KeyValueStore.get` / `KeyValueStore.set`, which keep an in-memory cache and
write through to disk on every set.

Key layout:

    {base}/
      storywizard-users.json                  ← registered accounts (global)
      storywizard-user.json                   ← current session identity (global)
      storywizard-locale.json                 ← selected locale (global)
      storywizard-stories-{user_id}.json      ← ordered Story list (per user)
      storywizard-activeStoryId-{user_id}.json ← active story id (per user)

Per-user keys are only ever built by `StoryRepository`, which is handed the
namespace explicitly instead of reading the current identity itself.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from storywizard.models import Story

logger = logging.getLogger(__name__)

USERS_KEY = "storywizard-users"
SESSION_KEY = "storywizard-user"
LOCALE_KEY = "storywizard-locale"

_KEY_RE = re.compile(r"^[A-Za-z0-9._-]+$")


class KeyValueStore:
    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)
        self._cache: dict[str, Any] = {}

    @property
    def base_path(self) -> Path:
        return self._base

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._base / f"{key}.json"

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        # serialise first; a failed dump leaves the old file untouched
        text = json.dumps(data, indent=2)
        fd, tmp = tempfile.mkstemp(dir=self._base, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                f.write(text)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for key, or default if absent or undecodable."""
        path = self._path(key)
        if key not in self._cache:
            if not path.is_file():
                return default
            try:
                self._cache[key] = self._read_json(path)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning("ignoring undecodable value for key=%s: %s", key, e)
                return default
        return copy.deepcopy(self._cache[key])

    def set(self, key: str, value: Any) -> None:
        """Persist value under key, replacing any prior value."""
        path = self._path(key)
        self._write_json(path, value)
        self._cache[key] = copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        path = self._path(key)
        self._cache.pop(key, None)
        if not path.is_file():
            return False
        path.unlink()
        return True


def stories_key(namespace: str) -> str:
    return f"storywizard-stories-{namespace}"


def active_story_key(namespace: str) -> str:
    return f"storywizard-activeStoryId-{namespace}"


class StoryRepository:
    """The story collection and active id of one user namespace."""

    def __init__(self, kv: KeyValueStore, namespace: str) -> None:
        if not namespace:
            raise ValueError("namespace must not be empty")
        self._kv = kv
        self.namespace = namespace
        self._stories_key = stories_key(namespace)
        self._active_key = active_story_key(namespace)

    def load_stories(self) -> list[Story]:
        raw = self._kv.get(self._stories_key, [])
        if not isinstance(raw, list):
            logger.warning("stories for namespace=%s are not a list, starting empty", self.namespace)
            return []
        try:
            return [Story.model_validate(s) for s in raw]
        except ValidationError as e:
            logger.warning("stories for namespace=%s failed validation, starting empty: %s",
                           self.namespace, e)
            return []

    def save_stories(self, stories: list[Story]) -> None:
        self._kv.set(self._stories_key, [s.model_dump() for s in stories])

    def load_active_id(self) -> str | None:
        value = self._kv.get(self._active_key, None)
        return value if isinstance(value, str) else None

    def save_active_id(self, story_id: str | None) -> None:
        self._kv.set(self._active_key, story_id)
