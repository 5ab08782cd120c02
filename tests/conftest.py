"""Shared test fixtures and protocol-conforming fakes."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from gpt_relay.l1_entities.chat_message import ChatMessage
from gpt_relay.l1_entities.config import AppConfig
from gpt_relay.l1_entities.errors import PersistenceError
from gpt_relay.l1_entities.message import Message, Role, new_message_id
from gpt_relay.l2_use_cases.message_repository import MessageRepository
from gpt_relay.l2_use_cases.ports.completion_provider import (
    ChoiceDelta,
    Completion,
    CompletionChunk,
    CompletionRequest,
)
from gpt_relay.l3_interface_adapters.gateways.memory_message_store import InMemoryMessageStore
from gpt_relay.l4_frameworks_and_drivers.config import build_app_config

TEST_MODEL = 'test-model'
TEST_CONTEXT_SIZES = {TEST_MODEL: 4096, 'gpt-4-32k': 32_768, 'gpt-4': 8_192}

# --- Protocol-conforming Fakes ---


def text_chunks(*parts: str, role: Role | None = 'assistant') -> list[CompletionChunk]:
    """Chunks the way OpenAI streams them: a role-only chunk, then content-only chunks."""
    chunks = [CompletionChunk(choices=[ChoiceDelta(role=role)])]
    chunks.extend(CompletionChunk(choices=[ChoiceDelta(content=p)]) for p in parts)
    return chunks


class FakeProvider:
    """Fake completion provider for L2/L4 tests."""

    def __init__(self, content: str = 'Fake answer', chunks: list[CompletionChunk] | None = None):
        self._content = content
        self._role: Role | None = 'assistant'
        self._chunks = chunks if chunks is not None else text_chunks('Fake ', 'answer')
        self._complete_error: Exception | None = None
        self._stream_error: Exception | None = None
        self._delay = 0.0
        self.complete_calls: list[CompletionRequest] = []
        self.stream_calls: list[CompletionRequest] = []
        self.chunks_sent = 0
        self.stream_closed = False
        self._connectivity = (True, '')
        self._missing_models: list[str] = []

    async def complete(self, request: CompletionRequest) -> Completion:
        self.complete_calls.append(request)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._complete_error is not None:
            raise self._complete_error
        return Completion(role=self._role, content=self._content)

    async def complete_stream(self, request: CompletionRequest):
        self.stream_calls.append(request)
        try:
            for chunk in self._chunks:
                if self._delay:
                    await asyncio.sleep(self._delay)
                self.chunks_sent += 1
                yield chunk
            if self._stream_error is not None:
                raise self._stream_error
        finally:
            self.stream_closed = True

    def check_connectivity(self) -> tuple[bool, str]:
        return self._connectivity

    def check_models(self, models: list[str]) -> list[str]:
        return [m for m in models if m in self._missing_models]

    def set_response(self, content: str, role: Role | None = 'assistant') -> None:
        self._content = content
        self._role = role

    def set_chunks(self, chunks: list[CompletionChunk]) -> None:
        self._chunks = chunks

    def set_complete_error(self, error: Exception) -> None:
        self._complete_error = error

    def set_stream_error(self, error: Exception) -> None:
        self._stream_error = error

    def set_delay(self, seconds: float) -> None:
        self._delay = seconds

    def set_connectivity(self, ok: bool, msg: str = '') -> None:
        self._connectivity = (ok, msg)

    def set_missing_models(self, models: list[str]) -> None:
        self._missing_models = list(models)


class FakeTokenEstimator:
    """Each message costs ``costs[content]`` tokens, or ``default``. No framing overhead."""

    def __init__(self, costs: dict[str, int] | None = None, default: int = 10):
        self._costs = dict(costs or {})
        self._default = default
        self.calls: list[list[ChatMessage]] = []

    def estimate(self, model: str, messages: list[ChatMessage]) -> int:
        self.calls.append(list(messages))
        return sum(self._costs.get(m.content, self._default) for m in messages)


class FailingStore(InMemoryMessageStore):
    """In-memory store whose writes fail after *ok_writes* successful ones."""

    def __init__(self, ok_writes: int = 0):
        super().__init__()
        self._ok_writes = ok_writes
        self.put_attempts: list[str] = []

    def put(self, key: str, value: bytes) -> None:
        self.put_attempts.append(key)
        if len(self.put_attempts) > self._ok_writes:
            raise PersistenceError(f'disk full while writing {key}')
        super().put(key, value)


def store_chain(
    repository: MessageRepository,
    texts: list[str],
    conversation_id: str | None = 'conv-1',
) -> list[Message]:
    """Persist *texts* as one parent-linked chain, oldest first, alternating user/assistant."""
    messages: list[Message] = []
    parent_id = None
    for i, text in enumerate(texts):
        msg = Message(
            id=new_message_id(),
            role='user' if i % 2 == 0 else 'assistant',
            text=text,
            conversation_id=conversation_id,
            parent_message_id=parent_id,
        )
        repository.put_message(msg)
        messages.append(msg)
        parent_id = msg.id
    return messages


# --- Standard Fixtures ---


@pytest.fixture
def memory_store() -> InMemoryMessageStore:
    return InMemoryMessageStore()


@pytest.fixture
def repository(memory_store: InMemoryMessageStore) -> MessageRepository:
    return MessageRepository(memory_store)


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def fake_estimator() -> FakeTokenEstimator:
    return FakeTokenEstimator()


@pytest.fixture
def default_config() -> AppConfig:
    return build_app_config({'store': {'backend': 'memory'}})


@pytest.fixture
def test_config() -> AppConfig:
    return build_app_config(
        {
            'provider': {'model': TEST_MODEL, 'timeout_ms': 2000},
            'context': {'context_sizes': TEST_CONTEXT_SIZES},
            'store': {'backend': 'memory'},
        },
    )


@pytest.fixture
def sample_config_yaml(tmp_path: Path) -> Path:
    content = """\
provider:
  model: "gpt-4"
  timeout_ms: 10000
context:
  context_sizes:
    "my-local-model": 2048
  max_history_hops: 50
store:
  backend: "memory"
server:
  port: 9090
llm_provider: "ollama"
ollama:
  host: "http://gpu-box:11434"
"""
    p = tmp_path / 'config.yaml'
    p.write_text(content, encoding='utf-8')
    return p


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Keep relay-related environment variables from leaking into CLI tests."""
    for var in [
        'OPENAI_API_MODEL',
        'OPENAI_API_BASE_URL',
        'API_REVERSE_PROXY',
        'LLM_PROVIDER',
        'OLLAMA_HOST',
        'TIMEOUT_MS',
        'STORE_PATH',
        'LOG_LEVEL',
        'HOST',
        'PORT',
        'AUTH_SECRET_KEY',
    ]:
        monkeypatch.delenv(var, raising=False)
    yield
