"""Conversation turn entity and the request options that produce one."""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal['system', 'user', 'assistant']

_ROLES: frozenset[str] = frozenset({'system', 'user', 'assistant'})


def new_message_id() -> str:
    return str(uuid.uuid4())


def coerce_role(value: str | None) -> Role | None:
    """Map a provider role string onto Role. Roles we do not store (tool, developer, ...) become None."""
    if value in _ROLES:
        return value  # ty: ignore[invalid-return-type] -- narrowed by membership test
    return None


class RequestContext(BaseModel):
    """Pointer into prior conversation history."""

    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str | None = Field(default=None, alias='conversationId')
    parent_message_id: str | None = Field(default=None, alias='parentMessageId')


class RequestOptions(BaseModel):
    """Caller input for one chat turn. Never persisted directly."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = ''
    last_context: RequestContext = Field(default_factory=RequestContext, alias='lastContext')
    system_message: str | None = Field(default=None, alias='systemMessage')
    temperature: float | None = None
    top_p: float | None = Field(default=None, alias='topP')


class Message(BaseModel):
    """One conversational turn.

    Frozen: once a Message is built it is only ever replaced via ``model_copy``,
    and a persisted record is never rewritten. ``delta`` is transient and only
    meaningful on progress events.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = ''
    role: Role | None = None
    text: str = ''
    delta: str = ''
    conversation_id: str | None = Field(default=None, alias='conversationId')
    parent_message_id: str | None = Field(default=None, alias='parentMessageId')

    def to_json_dict(self) -> dict:
        """Wire/persisted form: camelCase keys, empty and absent fields omitted."""
        return self.model_dump(by_alias=True, exclude_defaults=True)

    def to_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_defaults=True).encode('utf-8')

    @classmethod
    def from_bytes(cls, data: bytes) -> Message:
        return cls.model_validate_json(data)
