"""Dependency container — composition root for wiring all layers together."""

from __future__ import annotations

import logging
from pathlib import Path

from gpt_relay.l1_entities.config import AppConfig, StoreConfig
from gpt_relay.l1_entities.errors import PersistenceError
from gpt_relay.l2_use_cases.chat_orchestrator import ChatOrchestrator
from gpt_relay.l2_use_cases.context_builder import ContextBuilder
from gpt_relay.l2_use_cases.message_repository import MessageRepository
from gpt_relay.l2_use_cases.ports.completion_provider import CompletionProvider
from gpt_relay.l2_use_cases.ports.message_store import MessageStore
from gpt_relay.l2_use_cases.ports.token_estimator import TokenEstimator
from gpt_relay.l3_interface_adapters.gateways.memory_message_store import InMemoryMessageStore
from gpt_relay.l3_interface_adapters.gateways.ollama_provider import OllamaProvider
from gpt_relay.l3_interface_adapters.gateways.openai_provider import OpenAICompatProvider
from gpt_relay.l3_interface_adapters.gateways.paths import DATA_DIR, STORE_FILENAME
from gpt_relay.l3_interface_adapters.gateways.sqlite_message_store import SqliteMessageStore
from gpt_relay.l3_interface_adapters.gateways.tiktoken_estimator import TiktokenEstimator
from gpt_relay.l4_frameworks_and_drivers.config import InfraConfig

log = logging.getLogger('relay.store')


def build_provider(infra: InfraConfig) -> CompletionProvider:
    if infra.llm_provider == 'ollama':
        return OllamaProvider(host=infra.ollama.host)
    return OpenAICompatProvider(api_key=infra.openai.api_key, base_url=infra.openai.base_url)


def build_message_store(store_config: StoreConfig) -> tuple[MessageStore, bool]:
    """Resolve the storage backend once. Returns (store, degraded).

    A sqlite store that cannot be opened degrades to memory: the process keeps
    serving, but history does not survive a restart.
    """
    if store_config.backend == 'memory':
        return InMemoryMessageStore(), False

    directory = Path(store_config.path).expanduser() if store_config.path else DATA_DIR
    try:
        return SqliteMessageStore(directory / STORE_FILENAME), False
    except PersistenceError as e:
        log.error('Failed to create store: %s. Falling back to in-memory store (history lost on restart)', e)
        return InMemoryMessageStore(), True


class DependencyContainer:
    """Creates and wires all concrete instances. Easy to override for testing."""

    def __init__(
        self,
        config: AppConfig,
        infra: InfraConfig | None = None,
        *,
        store: MessageStore | None = None,
        provider: CompletionProvider | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self.config = config
        self.infra = infra or InfraConfig()

        if store is None:
            store, self.store_degraded = build_message_store(config.store)
        else:
            self.store_degraded = False
        self.store: MessageStore = store
        self.repository = MessageRepository(self.store)
        self.provider: CompletionProvider = provider if provider is not None else build_provider(self.infra)
        self.estimator: TokenEstimator = estimator if estimator is not None else TiktokenEstimator()

        ctx = config.context
        self.context_builder = ContextBuilder(
            self.repository,
            self.estimator,
            ctx.context_sizes,
            reserved_response_tokens=ctx.reserved_response_tokens,
            max_history_hops=ctx.max_history_hops,
        )
        self.orchestrator = ChatOrchestrator(
            self.provider,
            self.context_builder,
            self.repository,
            model=config.provider.model,
            timeout=config.provider.timeout_seconds,
        )
