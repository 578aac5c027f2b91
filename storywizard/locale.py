"""Display-string lookup for the selected locale.

Translation tables are flat JSON objects (key → string) stored as
<locales_dir>/<locale>.json. The selected locale is persisted globally under
`storywizard-locale`; the table is reloaded whenever it changes. Only locales
with a table in the directory can be selected. A broken table leaves an empty
lookup, so t() degrades to returning keys.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from storywizard.storage import LOCALE_KEY, KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"
DEFAULT_LOCALES_DIR = Path(__file__).parent / "locales"
RTL_LOCALES = frozenset({"ar"})


class Localizer:
    def __init__(self, kv: KeyValueStore, locales_dir: Path | None = None) -> None:
        self._kv = kv
        self._dir = locales_dir or DEFAULT_LOCALES_DIR
        stored = kv.get(LOCALE_KEY, DEFAULT_LOCALE) or DEFAULT_LOCALE
        if stored not in self.available_locales():
            logger.warning("ignoring stored locale=%r, no such table", stored)
            stored = DEFAULT_LOCALE
        self._locale: str = stored
        self._translations = self._load(self._locale)

    def _load(self, locale: str) -> dict[str, str]:
        path = self._dir / f"{locale}.json"
        if not path.is_file():
            logger.warning("no translations for locale=%s at %s", locale, path)
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.warning("could not load translations for locale=%s: %s", locale, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    @property
    def locale(self) -> str:
        return self._locale

    @property
    def direction(self) -> str:
        return "rtl" if self._locale in RTL_LOCALES else "ltr"

    @property
    def translations(self) -> dict[str, str]:
        return dict(self._translations)

    def available_locales(self) -> list[str]:
        if not self._dir.is_dir():
            return []
        return sorted(p.stem for p in self._dir.glob("*.json"))

    def set_locale(self, locale: str) -> None:
        if locale not in self.available_locales():
            raise ValueError(f"Unknown locale: {locale!r}")
        self._kv.set(LOCALE_KEY, locale)
        self._locale = locale
        self._translations = self._load(locale)

    def t(self, key: str) -> str:
        return self._translations.get(key) or key
