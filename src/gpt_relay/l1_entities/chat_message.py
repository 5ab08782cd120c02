"""Provider-facing chat message entity."""

from __future__ import annotations

from pydantic import BaseModel

from gpt_relay.l1_entities.message import Role


class ChatMessage(BaseModel):
    """A single message in the window sent to the completion provider."""

    role: Role
    content: str
