"""Use case helper: fold provider deltas into one assistant message."""

from __future__ import annotations

from gpt_relay.l1_entities.chat_event import ChatEvent
from gpt_relay.l1_entities.message import Message
from gpt_relay.l2_use_cases.ports.completion_provider import Completion, CompletionChunk


class StreamAccumulator:
    """Tracks role, full text and latest delta for the answer being produced.

    Progress events carry the latest delta only, never the accumulated text.
    Exactly one terminal event (``done`` or ``fail``) can be produced; any use
    after it raises RuntimeError.
    """

    def __init__(self, answer: Message) -> None:
        self._answer = answer
        self._role = answer.role
        self._parts: list[str] = []
        self._delta = ''
        self._finished = False

    @property
    def text(self) -> str:
        return ''.join(self._parts)

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def message(self) -> Message:
        """The accumulated answer, ready to persist."""
        return self._answer.model_copy(update={'role': self._role, 'text': self.text, 'delta': ''})

    def feed(self, chunk: CompletionChunk) -> ChatEvent | None:
        """Merge one chunk. Returns None for chunks without a choice."""
        self._ensure_open()
        if not chunk.choices:
            return None
        delta = chunk.choices[0]
        if delta.role is not None:
            self._role = delta.role
        self._delta = delta.content or ''
        event = ChatEvent.progress(
            self._answer.model_copy(update={'role': self._role, 'delta': self._delta, 'text': ''}),
        )
        self._parts.append(self._delta)
        return event

    def apply(self, completion: Completion) -> None:
        """Single-shot path: role and full content in one step."""
        self._ensure_open()
        if completion.role is not None:
            self._role = completion.role
        self._parts = [completion.content]

    def done(self) -> ChatEvent:
        self._finish()
        return ChatEvent.done()

    def fail(self, error: BaseException | str) -> ChatEvent:
        self._finish()
        return ChatEvent.failed(str(error))

    def _finish(self) -> None:
        self._ensure_open()
        self._finished = True

    def _ensure_open(self) -> None:
        if self._finished:
            raise RuntimeError('Accumulator already produced its terminal event')
