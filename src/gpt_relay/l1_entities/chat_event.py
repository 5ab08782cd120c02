"""Events delivered to a streaming consumer."""

from __future__ import annotations

import json

from pydantic import BaseModel, ConfigDict

from gpt_relay.l1_entities.message import Message

DONE_STATUS = 'Done'


class ChatEvent(BaseModel):
    """Exactly one of: a progress message, an error, or the Done status."""

    model_config = ConfigDict(frozen=True)

    message: Message | None = None
    error: str | None = None
    status: str | None = None

    @classmethod
    def progress(cls, message: Message) -> ChatEvent:
        return cls(message=message)

    @classmethod
    def failed(cls, error: str) -> ChatEvent:
        return cls(error=error)

    @classmethod
    def done(cls) -> ChatEvent:
        return cls(status=DONE_STATUS)

    @property
    def is_terminal(self) -> bool:
        return self.error is not None or self.status is not None

    def to_json(self) -> dict:
        data = self.message.to_json_dict() if self.message is not None else {}
        if self.error is not None:
            data['error'] = self.error
        if self.status is not None:
            data['status'] = self.status
        return data

    def to_line(self) -> str:
        """One NDJSON line."""
        return json.dumps(self.to_json(), ensure_ascii=False) + '\n'
