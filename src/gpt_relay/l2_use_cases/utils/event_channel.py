"""Producer/consumer plumbing for streamed chat events."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from gpt_relay.l1_entities.chat_event import ChatEvent
from gpt_relay.l1_entities.errors import RequestCancelledError


class CancellationToken:
    """Set by the consumer side, polled by the producer between chunks."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelledError('Request cancelled by consumer')


class EventChannel:
    """Unbounded single-producer/single-consumer queue of ChatEvents.

    There is no backpressure: a slow consumer lets the queue grow. Nothing may
    be sent after the terminal event.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[ChatEvent] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: ChatEvent) -> None:
        if self._closed:
            raise RuntimeError('Channel already received its terminal event')
        if event.is_terminal:
            self._closed = True
        self._queue.put_nowait(event)

    async def receive(self) -> ChatEvent:
        return await self._queue.get()

    async def __aiter__(self) -> AsyncIterator[ChatEvent]:
        while True:
            event = await self._queue.get()
            yield event
            if event.is_terminal:
                return
