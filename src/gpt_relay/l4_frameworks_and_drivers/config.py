"""Application defaults and provider infrastructure configs — lives in L4, not domain."""

from __future__ import annotations

import copy
from typing import Literal

from pydantic import BaseModel, Field

from gpt_relay.l1_entities.config import AppConfig
from gpt_relay.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

# Model-name prefix -> total context window. Longest prefix wins.
DEFAULT_CONTEXT_SIZES: dict[str, int] = {
    'gpt-4o': 128_000,
    'gpt-4-turbo': 128_000,
    'gpt-4-1106': 128_000,
    'gpt-4-0125': 128_000,
    'gpt-4-32k': 32_768,
    'gpt-4': 8_192,
    'gpt-3.5-turbo-16k': 16_384,
    'gpt-3.5-turbo': 4_096,
    'text-davinci-003': 4_097,
    'text-davinci-002': 4_097,
    'code-davinci-002': 8_001,
    'llama3': 8_192,
    'qwen2.5': 32_768,
}

APP_CONFIG_DEFAULTS: dict = {
    'provider': {
        'model': 'gpt-3.5-turbo',
        'timeout_ms': 30_000,
    },
    'context': {
        'context_sizes': DEFAULT_CONTEXT_SIZES,
        'reserved_response_tokens': None,
        'max_history_hops': 1000,
    },
    'store': {
        'backend': 'sqlite',
        'path': None,
    },
    'server': {
        'host': '0.0.0.0',
        'port': 8080,
        'auth_secret_key': None,
    },
    'logging': {
        'level': 'INFO',
        'file': None,
    },
}


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)


class OllamaProviderConfig(BaseModel):
    host: str = 'http://localhost:11434'


class OpenAIProviderConfig(BaseModel):
    api_key: str | None = None  # None → SDK reads OPENAI_API_KEY env
    base_url: str = 'https://api.openai.com/v1'


class InfraConfig(BaseModel):
    """Groups all provider-specific settings outside the domain layer."""

    llm_provider: Literal['openai', 'ollama'] = 'openai'
    ollama: OllamaProviderConfig = Field(default_factory=OllamaProviderConfig)
    openai: OpenAIProviderConfig = Field(default_factory=OpenAIProviderConfig)
