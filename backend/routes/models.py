"""Pydantic request/response models for API endpoints."""

from pydantic import BaseModel


class SignupBody(BaseModel):
    email: str
    password: str
    name: str | None = None


class LoginBody(BaseModel):
    email: str
    password: str


class CreateStory(BaseModel):
    title: str


class SetActiveStory(BaseModel):
    story_id: str | None = None


class PromptBody(BaseModel):
    prompt: str


class DescriptionBody(BaseModel):
    description: str


class IllustrationBody(BaseModel):
    prompt: str
    chapter_id: str | None = None


class ChatBody(BaseModel):
    message: str


class LocaleBody(BaseModel):
    locale: str


class ManuscriptBody(BaseModel):
    content: str
    flush: bool = False
