"""Use case: run one chat turn against the completion provider."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from gpt_relay.l1_entities.chat_event import ChatEvent
from gpt_relay.l1_entities.errors import PersistenceError, ProviderError, ProviderTimeoutError, RelayError
from gpt_relay.l1_entities.message import Message, RequestOptions, new_message_id
from gpt_relay.l2_use_cases.context_builder import ContextBuilder
from gpt_relay.l2_use_cases.message_repository import MessageRepository
from gpt_relay.l2_use_cases.ports.completion_provider import (
    Completion,
    CompletionChunk,
    CompletionProvider,
    CompletionRequest,
)
from gpt_relay.l2_use_cases.stream_accumulator import StreamAccumulator
from gpt_relay.l2_use_cases.utils.event_channel import CancellationToken, EventChannel

log = logging.getLogger('relay.chat')

TIMEOUT_ERROR = 'Provider timed out waiting for response'


class ChatOrchestrator:
    """Builds the window, calls the provider, accumulates the answer, persists the exchange.

    Persistence is best-effort: a failed write is logged and the caller still
    gets the answer. Provider, timeout and config failures persist nothing.
    """

    def __init__(
        self,
        provider: CompletionProvider,
        context_builder: ContextBuilder,
        repository: MessageRepository,
        *,
        model: str,
        timeout: float,
    ) -> None:
        self._provider = provider
        self._context_builder = context_builder
        self._repository = repository
        self._model = model
        self._timeout = timeout
        self._background: set[asyncio.Task] = set()

    @property
    def model(self) -> str:
        return self._model

    async def process(
        self,
        options: RequestOptions,
        channel: EventChannel | None = None,
        cancel: CancellationToken | None = None,
    ) -> Message:
        """Run one turn. Streams through *channel* when given, single-shot otherwise.

        With a channel, exactly one terminal event is sent: Done after the
        exchange is persisted, or an error event before the error is re-raised.
        """
        ctx = options.last_context
        prompt = Message(
            id=new_message_id(),
            role='user',
            text=options.prompt,
            conversation_id=ctx.conversation_id,
            parent_message_id=ctx.parent_message_id,
        )
        answer = Message(
            id=new_message_id(),
            role='assistant',
            conversation_id=ctx.conversation_id,
            parent_message_id=prompt.id,
        )
        accumulator = StreamAccumulator(answer)

        try:
            window = self._context_builder.build(self._model, options)
            request = CompletionRequest(
                model=self._model,
                messages=window.messages,
                max_tokens=window.max_response_tokens,
                temperature=options.temperature,
                top_p=options.top_p,
            )
            log.info(
                'Chat request %s: %d messages, ~%d tokens, stream=%s',
                answer.id,
                len(window.messages),
                window.tokens_used,
                channel is not None,
            )
            if channel is None:
                accumulator.apply(await self._complete(request))
            else:
                await self._drive_stream(request, accumulator, channel, cancel)
        except Exception as e:
            log.error('Chat request %s failed: %s: %s', answer.id, type(e).__name__, e)
            if channel is not None:
                channel.send(accumulator.fail(e))
            raise

        result = accumulator.message
        self._persist(prompt, result)
        if channel is not None:
            channel.send(accumulator.done())
        return result

    async def stream(self, options: RequestOptions) -> AsyncIterator[ChatEvent]:
        """Yield progress events, then one terminal event.

        If the consumer stops iterating early, the producer is told to stop at
        its next chunk boundary.
        """
        channel = EventChannel()
        cancel = CancellationToken()
        task = asyncio.create_task(self._produce(options, channel, cancel))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        try:
            async for event in channel:
                yield event
        finally:
            if not task.done():
                cancel.cancel()

    async def respond(self, options: RequestOptions) -> dict:
        """Single-shot turn in the non-streaming response shape."""
        message = await self.process(options)
        return {'data': message.to_json_dict(), 'status': 'Success'}

    async def _produce(self, options: RequestOptions, channel: EventChannel, cancel: CancellationToken) -> None:
        try:
            await self.process(options, channel, cancel)
        except RelayError:
            pass  # already delivered as the terminal event and logged
        except Exception:
            log.exception('Unexpected failure in chat producer')

    async def _complete(self, request: CompletionRequest) -> Completion:
        try:
            return await asyncio.wait_for(self._provider.complete(request), self._timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(TIMEOUT_ERROR) from e
        except RelayError:
            raise
        except Exception as e:
            raise ProviderError(f'Completion failed: {type(e).__name__}: {e}') from e

    async def _drive_stream(
        self,
        request: CompletionRequest,
        accumulator: StreamAccumulator,
        channel: EventChannel,
        cancel: CancellationToken | None,
    ) -> None:
        stream = self._provider.complete_stream(request)
        chunks = 0
        try:
            while True:
                if cancel is not None:
                    cancel.raise_if_cancelled()
                chunk = await self._next_chunk(stream)
                if chunk is None:
                    break
                chunks += 1
                event = accumulator.feed(chunk)
                if event is not None:
                    channel.send(event)
        finally:
            aclose = getattr(stream, 'aclose', None)
            if aclose is not None:
                await aclose()
        log.debug('Stream finished after %d chunks (%d chars)', chunks, len(accumulator.text))

    async def _next_chunk(self, stream: AsyncIterator[CompletionChunk]) -> CompletionChunk | None:
        """Wait for one chunk; the timeout applies to this wait only."""
        try:
            return await asyncio.wait_for(anext(stream, None), self._timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(TIMEOUT_ERROR) from e
        except RelayError:
            raise
        except Exception as e:
            raise ProviderError(f'Completion stream failed: {type(e).__name__}: {e}') from e

    def _persist(self, prompt: Message, answer: Message) -> None:
        try:
            self._repository.put_message(prompt)
        except PersistenceError as e:
            log.error('Failed to persist prompt %s: %s', prompt.id, e)
            return
        try:
            self._repository.put_message(answer)
        except PersistenceError as e:
            log.error('Failed to persist answer %s: %s', answer.id, e)
