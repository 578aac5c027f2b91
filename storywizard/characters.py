"""Character form state: defaults, multi-select caps, AI merges and the wizard.

Character records here are plain dicts shaped like models.Character minus
(optionally) the id: the editor works on a draft and only hands it to the
story store when the user saves.

Multi-select fields and their caps:
  personality_archetypes  3
  motivations             2
  fears                   2

Adding a value beyond the cap is a no-op; removing a value always works.

Wizard steps:
  1 identity       name, gender, age, species, role (+ AI enhance)
  2 personality    archetypes, moral alignment, motivations, fears
  3 appearance     height, build, hair/eye colour, distinctive features
  4 backstory
  5 relationships
  6 voice          dialogue style
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from storywizard.models import Appearance

logger = logging.getLogger(__name__)

GENDERS = ["Male", "Female"]

ARCHETYPES = [
    "Brave", "Cunning", "Loyal", "Anxious", "Impulsive", "Wise",
    "Cynical", "Idealistic", "Grumpy", "Charismatic", "Reserved", "Ambitious",
]

ALIGNMENTS = [
    "Lawful Good", "Neutral Good", "Chaotic Good",
    "Lawful Neutral", "True Neutral", "Chaotic Neutral",
    "Lawful Evil", "Neutral Evil", "Chaotic Evil",
]

MOTIVATIONS = [
    "Revenge", "Redemption", "Discovery", "Love", "Survival",
    "Power", "Justice", "Freedom", "Knowledge",
]

FEARS = ["Failure", "Abandonment", "Death", "Losing Control", "The Unknown", "Being Forgotten"]

SELECTION_LIMITS = {"personality_archetypes": 3, "motivations": 2, "fears": 2}

TEXT_FIELDS = (
    "name", "age", "species", "role", "moral_alignment",
    "backstory", "relationships", "dialogue_style",
)

STEP_TITLES = ["identity", "personality", "appearance", "backstory", "relationships", "voice"]


def _default_character() -> dict[str, Any]:
    record: dict[str, Any] = {field: "" for field in TEXT_FIELDS}
    record["gender"] = "Male"
    for field in SELECTION_LIMITS:
        record[field] = []
    record["appearance"] = Appearance().model_dump()
    return record


def materialize_defaults(partial: dict[str, Any] | None) -> dict[str, Any]:
    """Return a complete character record: defaults overlaid with partial.

    The appearance sub-record is merged key-by-key so it is always complete.
    None values in partial do not override defaults.
    """
    partial = copy.deepcopy(partial or {})
    record = _default_character()
    appearance = partial.pop("appearance", None) or {}
    for key, value in partial.items():
        if value is not None:
            record[key] = value
    for key, value in appearance.items():
        if value is not None:
            record["appearance"][key] = value
    return record


def toggle_selection(record: dict[str, Any], field: str, value: str) -> dict[str, Any]:
    """Toggle value in a capped multi-select field. Returns a new record."""
    if field not in SELECTION_LIMITS:
        raise ValueError(f"Not a multi-select field: {field}")
    current = list(record.get(field) or [])
    if value in current:
        current.remove(value)
    elif len(current) >= SELECTION_LIMITS[field]:
        return record
    else:
        current.append(value)
    return {**record, field: current}


def apply_profile(record: dict[str, Any], profile: dict[str, Any]) -> dict[str, Any]:
    """Merge a generated profile over the form state.

    Appearance is merged key-by-key and multi-select lists are trimmed to
    their caps, so the result stays a valid character record.
    """
    merged = copy.deepcopy(record)
    for key, value in profile.items():
        if key == "id" or value is None:
            continue
        if key == "appearance" and isinstance(value, dict):
            appearance = dict(merged.get("appearance") or {})
            appearance.update({k: v for k, v in value.items() if v is not None})
            merged["appearance"] = appearance
        elif key in SELECTION_LIMITS and isinstance(value, list):
            merged[key] = list(value)[:SELECTION_LIMITS[key]]
        else:
            merged[key] = value
    return materialize_defaults(merged)


class CharacterWizard:
    """Six-step character editor over a draft record.

    Construct with None for a new character or an existing character's
    dump to edit it; the id (if any) is carried through to finish().
    """

    STEP_COUNT = len(STEP_TITLES)

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.record = materialize_defaults(initial)
        self.step = 1
        self.loading = False

    @property
    def is_editing(self) -> bool:
        return bool(self.record.get("id"))

    @property
    def step_title(self) -> str:
        return STEP_TITLES[self.step - 1]

    def next(self) -> int:
        if self.step < self.STEP_COUNT:
            self.step += 1
        return self.step

    def previous(self) -> int:
        if self.step > 1:
            self.step -= 1
        return self.step

    def update(self, field: str, value: Any) -> None:
        """Set one field. Multi-select lists are trimmed to their cap."""
        if field in SELECTION_LIMITS and isinstance(value, list):
            value = list(value)[:SELECTION_LIMITS[field]]
        self.record = {**self.record, field: value}

    def update_appearance(self, field: str, value: str) -> None:
        appearance = {**self.record["appearance"], field: value}
        self.record = {**self.record, "appearance": appearance}

    def toggle(self, field: str, value: str) -> None:
        self.record = toggle_selection(self.record, field, value)

    async def enhance(self, gateway) -> bool:
        """Fill the draft from a generated profile based on the name.

        Returns False without calling the gateway when no name is set.
        GenerationFailed propagates and leaves the draft untouched.
        """
        if not self.record.get("name"):
            return False
        self.loading = True
        try:
            profile = await gateway.generate_character_profile(self.record["name"])
        finally:
            self.loading = False
        self.record = apply_profile(self.record, profile)
        return True

    def finish(self) -> dict[str, Any]:
        return copy.deepcopy(self.record)
