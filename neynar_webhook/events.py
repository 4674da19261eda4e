"""Parsing and relevance classification for inbound Neynar events."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, List, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .caches import DeduplicationCache
from .errors import MalformedPayloadError

SUPPORTED_EVENT_TYPE = "cast.created"

REASON_WRONG_EVENT_TYPE = "wrong-event-type"
REASON_DUPLICATE = "duplicate"
REASON_NOT_MENTIONED = "not-mentioned"

_MENTION_PATTERN = re.compile(r"@[\w.]+")


class _Profile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    username: str = ""
    fid: str | None = None

    @field_validator("username", mode="before")
    @classmethod
    def _null_username(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("fid", mode="before")
    @classmethod
    def _coerce_fid(cls, value: Any) -> str | None:
        # Neynar sends fids as integers; configuration holds them as strings.
        if value is None:
            return None
        return str(value).strip()


class CastAuthor(_Profile):
    display_name: str | None = None


class MentionedProfile(_Profile):
    pass


class CastData(BaseModel):
    model_config = ConfigDict(extra="ignore")

    hash: str = ""
    text: str = ""
    author: CastAuthor = Field(default_factory=CastAuthor)
    mentioned_profiles: List[MentionedProfile] = Field(default_factory=list)

    @field_validator("text", mode="before")
    @classmethod
    def _null_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("author", mode="before")
    @classmethod
    def _null_author(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("mentioned_profiles", mode="before")
    @classmethod
    def _null_profiles(cls, value: Any) -> Any:
        return [] if value is None else value


class CastEvent(BaseModel):
    """A signature-verified webhook payload."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    kind: str = Field(..., alias="type")
    data: CastData = Field(default_factory=CastData)

    @property
    def id(self) -> str:
        return self.data.hash

    @property
    def text(self) -> str:
        return self.data.text

    @property
    def author(self) -> CastAuthor:
        return self.data.author

    @property
    def mentioned_identities(self) -> List[MentionedProfile]:
        return self.data.mentioned_profiles


def parse_event(raw_body: bytes) -> CastEvent:
    """Parse verified body bytes into a :class:`CastEvent`."""

    try:
        payload = json.loads(raw_body)
    except ValueError as exc:
        raise MalformedPayloadError("body is not valid JSON") from exc

    if not isinstance(payload, dict):
        raise MalformedPayloadError("payload must be a JSON object")

    try:
        event = CastEvent.model_validate(payload)
    except ValidationError as exc:
        raise MalformedPayloadError("payload does not match the event schema") from exc

    if event.kind == SUPPORTED_EVENT_TYPE and not event.id:
        raise MalformedPayloadError("cast event is missing its hash")

    return event


@dataclass(frozen=True)
class BotIdentity:
    username: str
    fid: str

    @property
    def handle(self) -> str:
        return f"@{self.username}".lower()


@dataclass(frozen=True)
class Ignored:
    reason: str


@dataclass(frozen=True)
class Actionable:
    event: CastEvent


Decision = Union[Ignored, Actionable]


def is_bot_mentioned(event: CastEvent, identity: BotIdentity) -> bool:
    """Return True when the bot appears in the mention list or as ``@handle`` in the text."""

    username = identity.username.lower()
    for profile in event.mentioned_identities:
        if profile.username and profile.username.lower() == username:
            return True
        if profile.fid and profile.fid == identity.fid:
            return True

    return identity.handle in event.text.lower()


def classify_event(
    event: CastEvent,
    *,
    identity: BotIdentity,
    dedup_cache: DeduplicationCache,
) -> Decision:
    """Decide whether *event* should trigger a reply.

    Duplicate suppression runs before mention matching so a redelivered event
    never replies twice.
    """

    if event.kind != SUPPORTED_EVENT_TYPE:
        return Ignored(REASON_WRONG_EVENT_TYPE)
    if not dedup_cache.check_and_mark(event.id):
        return Ignored(REASON_DUPLICATE)
    if not is_bot_mentioned(event, identity):
        return Ignored(REASON_NOT_MENTIONED)
    return Actionable(event)


def strip_mentions(text: str) -> str:
    """Remove ``@handle`` tokens from *text* and trim the remainder.

    Falls back to the trimmed original when nothing but mentions remains.
    """

    cleaned = _MENTION_PATTERN.sub("", text).strip()
    return cleaned or text.strip()
