"""Core domain models.

Every store, the gateway and the HTTP layer operate on these types.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, Field

TensionLevel = Literal["low", "medium", "high", "climax"]

Gender = Literal["Male", "Female"]

ChatRole = Literal["user", "model"]


def new_id() -> str:
    """Return a fresh opaque identifier."""
    return str(uuid.uuid4())


class User(BaseModel):
    """The identity exposed to the rest of the app (no credential)."""

    id: str
    email: str
    name: str = ""


class StoredUser(User):
    """A registered account as persisted by the identity store."""

    password_hash: str

    def public(self) -> User:
        return User(id=self.id, email=self.email, name=self.name)


class Appearance(BaseModel):
    height: str = ""
    build: str = ""
    hair_color: str = ""
    eye_color: str = ""
    distinctive_features: str = ""


class Character(BaseModel):
    """A character owned by exactly one story."""

    id: str
    name: str
    gender: Gender = "Male"
    age: str = ""
    species: str = ""
    role: str = ""
    personality_archetypes: list[str] = Field(default_factory=list, max_length=3)
    moral_alignment: str = ""
    motivations: list[str] = Field(default_factory=list, max_length=2)
    fears: list[str] = Field(default_factory=list, max_length=2)
    appearance: Appearance = Field(default_factory=Appearance)
    backstory: str = ""
    relationships: str = ""
    dialogue_style: str = ""


class World(BaseModel):
    id: str
    name: str
    description: str = ""
    geography: str = ""
    culture: str = ""


class Chapter(BaseModel):
    """A chapter; its position in Story.chapters is the narrative order."""

    id: str
    title: str
    content: str = ""
    tension_level: TensionLevel = "low"


class Item(BaseModel):
    id: str
    name: str
    description: str = ""
    image_url: str | None = None  # base64-encoded image bytes


class Illustration(BaseModel):
    """A generated scene image. chapter_id is a back-reference only."""

    id: str
    prompt: str
    image_url: str
    chapter_id: str | None = None


class Story(BaseModel):
    """The top-level authored work; owns every nested entity."""

    id: str
    title: str
    genre: str = ""
    tone: str = ""
    outline: str = ""
    author: str | None = None  # catalog stories only
    chapters: list[Chapter] = Field(default_factory=list)
    characters: list[Character] = Field(default_factory=list)
    worlds: list[World] = Field(default_factory=list)
    items: list[Item] = Field(default_factory=list)
    illustrations: list[Illustration] = Field(default_factory=list)


class ChatMessage(BaseModel):
    """One turn in a co-writing chat session."""

    role: ChatRole
    text: str
