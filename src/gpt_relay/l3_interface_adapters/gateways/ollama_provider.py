"""Gateway: Ollama completion provider — implements CompletionProvider port."""

from __future__ import annotations

from collections.abc import AsyncIterator

import ollama as ollama_sync

from gpt_relay.l1_entities.message import coerce_role
from gpt_relay.l2_use_cases.ports.completion_provider import (
    ChoiceDelta,
    Completion,
    CompletionChunk,
    CompletionRequest,
)


def _options(request: CompletionRequest) -> dict:
    opts: dict = {'num_predict': request.max_tokens}
    if request.temperature is not None:
        opts['temperature'] = request.temperature
    if request.top_p is not None:
        opts['top_p'] = request.top_p
    return opts


class OllamaProvider:
    """Wraps ollama.AsyncClient. Each streamed part becomes a single-choice chunk."""

    def __init__(self, host: str = 'http://localhost:11434') -> None:
        self._host = host

    @property
    def host(self) -> str:
        return self._host

    async def complete(self, request: CompletionRequest) -> Completion:
        client = ollama_sync.AsyncClient(host=self._host)
        resp = await client.chat(
            model=request.model,
            messages=[m.model_dump() for m in request.messages],
            options=_options(request),
        )
        return Completion(role=coerce_role(resp.message.role), content=resp.message.content or '')

    async def complete_stream(self, request: CompletionRequest) -> AsyncIterator[CompletionChunk]:
        client = ollama_sync.AsyncClient(host=self._host)
        parts = await client.chat(
            model=request.model,
            messages=[m.model_dump() for m in request.messages],
            options=_options(request),
            stream=True,
        )
        async for part in parts:
            yield CompletionChunk(
                choices=[ChoiceDelta(role=coerce_role(part.message.role), content=part.message.content)],
            )

    def check_connectivity(self) -> tuple[bool, str]:
        try:
            client = ollama_sync.Client(host=self._host)
            client.list()
            return True, ''
        except Exception as e:
            return False, f'Cannot connect to Ollama: {e}'

    def check_models(self, models: list[str]) -> list[str]:
        client = ollama_sync.Client(host=self._host)
        missing = []
        for model in models:
            try:
                client.show(model)
            except ollama_sync.ResponseError:
                missing.append(model)
        return missing
