"""Gateway: OpenAI-compatible completion provider — implements CompletionProvider port.

Works with any OpenAI-compatible API: OpenAI, Azure-style reverse proxies, Groq, Together, vLLM, etc.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import openai

from gpt_relay.l1_entities.message import coerce_role
from gpt_relay.l2_use_cases.ports.completion_provider import (
    ChoiceDelta,
    Completion,
    CompletionChunk,
    CompletionRequest,
)


def _create_args(request: CompletionRequest) -> dict:
    args: dict = {
        'model': request.model,
        'messages': [{'role': m.role, 'content': m.content} for m in request.messages],
        'max_tokens': request.max_tokens,
    }
    if request.temperature is not None:
        args['temperature'] = request.temperature
    if request.top_p is not None:
        args['top_p'] = request.top_p
    return args


class OpenAICompatProvider:
    """Wraps openai.AsyncOpenAI to implement the CompletionProvider protocol."""

    def __init__(self, api_key: str | None = None, base_url: str = 'https://api.openai.com/v1') -> None:
        self._api_key = api_key
        self._base_url = base_url

    @property
    def base_url(self) -> str:
        return self._base_url

    async def complete(self, request: CompletionRequest) -> Completion:
        client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        resp = await client.chat.completions.create(**_create_args(request))
        if not resp.choices:
            return Completion()
        # always the first choice
        message = resp.choices[0].message
        return Completion(role=coerce_role(message.role), content=message.content or '')

    async def complete_stream(self, request: CompletionRequest) -> AsyncIterator[CompletionChunk]:
        client = openai.AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        stream = await client.chat.completions.create(**_create_args(request), stream=True)
        try:
            async for chunk in stream:
                yield CompletionChunk(
                    choices=[
                        ChoiceDelta(role=coerce_role(c.delta.role), content=c.delta.content) for c in chunk.choices
                    ],
                )
        finally:
            await stream.close()

    def check_connectivity(self) -> tuple[bool, str]:
        try:
            client = openai.OpenAI(api_key=self._api_key, base_url=self._base_url)
            client.models.list()
            return True, ''
        except openai.AuthenticationError as e:
            return False, f'Authentication failed: {e}'
        except Exception as e:
            return False, f'Cannot connect to OpenAI-compatible API: {e}'

    def check_models(self, models: list[str]) -> list[str]:
        """Return model names that don't exist on the remote API.

        Falls back to empty list if the models endpoint is unsupported
        (common with non-OpenAI compatible providers).
        """
        try:
            client = openai.OpenAI(api_key=self._api_key, base_url=self._base_url)
            missing = []
            for model in models:
                try:
                    client.models.retrieve(model)
                except openai.NotFoundError:
                    missing.append(model)
            return missing
        except Exception:
            return []
