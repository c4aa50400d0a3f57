"""Request bodies. Anything that fails here becomes 400 INVALID_SUBMISSION."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field

from ..core.record import Message

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class _Body(BaseModel):
    model_config = {"str_strip_whitespace": True}


class Login(_Body):
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)


class CreateProfile(_Body):
    profileName: str = Field(min_length=1)


class SetProfile(_Body):
    profileId: str = Field(min_length=1)


class PreferencesIn(_Body):
    lifestyle: str
    allergen: str
    other: str = ""


class CreateChat(BaseModel):
    messages: List[Message] = Field(min_length=1)


class ChatMessage(BaseModel):
    content: str = Field(min_length=1)


class SampleMessage(BaseModel):
    content: str = Field(min_length=1)
    preferences: str = Field(min_length=1)
