"""Port: chat completion provider."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Protocol

from gpt_relay.l1_entities.chat_message import ChatMessage
from gpt_relay.l1_entities.message import Role


@dataclass(frozen=True)
class CompletionRequest:
    """Everything the provider needs for one completion call."""

    model: str
    messages: list[ChatMessage]
    max_tokens: int
    temperature: float | None = None
    top_p: float | None = None


@dataclass(frozen=True)
class Completion:
    """First choice of a single-shot completion. Both fields empty when the provider returned no choice."""

    role: Role | None = None
    content: str = ''


@dataclass(frozen=True)
class ChoiceDelta:
    role: Role | None = None
    content: str | None = None


@dataclass(frozen=True)
class CompletionChunk:
    """One streamed chunk. May carry no choice at all."""

    choices: list[ChoiceDelta] = field(default_factory=list)


class CompletionProvider(Protocol):
    """Abstract completion provider. Zero SDK types leak through."""

    async def complete(self, request: CompletionRequest) -> Completion:
        """Single-shot completion."""
        ...

    def complete_stream(self, request: CompletionRequest) -> AsyncIterator[CompletionChunk]:
        """Streamed completion. The returned iterator performs the upstream call lazily."""
        ...

    def check_connectivity(self) -> tuple[bool, str]:
        """Pre-flight connectivity check. Returns (ok, error_message)."""
        ...

    def check_models(self, models: list[str]) -> list[str]:
        """Return model names from the list that the provider does not serve."""
        ...
