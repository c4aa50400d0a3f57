"""
Record kernel – *pure Pydantic* (no store imports).

* The store only knows flat ``str -> str`` maps; `flatten` is the one place
  Python values become hash fields.
* Domain models (`User`, `Profile`, `Chat`) impose the logical schema on top
  and round-trip through `to_fields` / `from_fields`.
"""

from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, List, Literal, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, field_validator

T_Record = TypeVar("T_Record", bound="Record")

OWNER_FIELD = "userId"
SENSITIVE_FIELDS = ("password",)


def now_utc() -> dt.datetime:  # compact timezone‑aware timestamp
    return dt.datetime.now(tz=dt.timezone.utc)


def flatten(fields: Mapping[str, Any]) -> Dict[str, str]:
    """Hash-ready copy of `fields`: ``None`` dropped, non-strings JSON encoded."""
    out: Dict[str, str] = {}
    for k, v in fields.items():
        if v is None:
            continue
        if isinstance(v, str):
            out[k] = v
        elif isinstance(v, dt.datetime):
            out[k] = v.isoformat()
        else:
            out[k] = json.dumps(v)
    return out


def without_sensitive(record: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in SENSITIVE_FIELDS}


class Record(BaseModel):
    """Base class – one flat hash per instance, addressed by ``id``."""

    id: str
    model_config = {"frozen": True, "extra": "allow"}

    @classmethod
    def from_fields(cls: Type[T_Record], fields: Mapping[str, Any]) -> T_Record:
        return cls.model_validate(dict(fields))

    def to_fields(self) -> Dict[str, str]:
        return flatten(self.model_dump(mode="json", exclude_none=True))


class Message(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: str


class User(Record):
    email: str
    password: str
    username: Optional[str] = None
    profileId: Optional[str] = None

    def public(self) -> Dict[str, Any]:
        return without_sensitive(self.model_dump(exclude_none=True))


class Profile(Record):
    name: str
    userId: str


class Preferences(BaseModel):
    lifestyle: str = ""
    allergen: str = ""
    other: str = ""


PREFERENCE_TEMPLATE = Preferences()


class Chat(Record):
    title: str = ""
    userId: str
    messages: List[Message] = []
    createdAt: Optional[dt.datetime] = None
    updatedAt: Optional[dt.datetime] = None
    sharePath: Optional[str] = None

    @field_validator("messages", mode="before")
    @classmethod
    def _decode_messages(cls, value: Any) -> Any:
        # stored as a JSON string inside the hash
        if isinstance(value, str):
            return json.loads(value) if value else []
        return value
