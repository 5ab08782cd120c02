"""Port: token cost estimation."""

from __future__ import annotations

from typing import Protocol

from gpt_relay.l1_entities.chat_message import ChatMessage


class TokenEstimator(Protocol):
    def estimate(self, model: str, messages: list[ChatMessage]) -> int:
        """Approximate prompt token cost of *messages* under *model*'s tokenizer rules."""
        ...
