"""Configuration Pydantic models — pure schema, no infrastructure defaults."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

DEFAULT_TIMEOUT_MS = 30_000


class ProviderConfig(BaseModel):
    model: str
    timeout_ms: int

    @field_validator('timeout_ms')
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_TIMEOUT_MS

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


class ContextConfig(BaseModel):
    context_sizes: dict[str, int] = Field(default_factory=dict)
    reserved_response_tokens: int | None = None  # None = tiered policy by model name
    max_history_hops: int = Field(default=1000, ge=1)


class StoreConfig(BaseModel):
    backend: Literal['sqlite', 'memory']
    path: str | None = None  # directory; None = platform user data dir


class ServerConfig(BaseModel):
    host: str
    port: int
    auth_secret_key: str | None = None


class LoggingConfig(BaseModel):
    level: str
    file: str | None = None


class AppConfig(BaseModel):
    provider: ProviderConfig
    context: ContextConfig
    store: StoreConfig
    server: ServerConfig
    logging: LoggingConfig
