"""Context-size lookup and response-token reservation per model."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from gpt_relay.l1_entities.errors import ConfigError


@dataclass(frozen=True)
class ModelLimits:
    max_model_tokens: int
    reserved_response_tokens: int

    @property
    def max_allowed(self) -> int:
        """Token budget left for the prompt window."""
        return self.max_model_tokens - self.reserved_response_tokens


def context_size_for(model: str, context_sizes: Mapping[str, int]) -> int:
    """Look up *model* by prefix. The longest matching prefix wins (``gpt-4-32k`` before ``gpt-4``)."""
    matches = [prefix for prefix in context_sizes if model.startswith(prefix)]
    if not matches:
        raise ConfigError(f'No context size known for model {model!r}')
    return context_sizes[max(matches, key=len)]


def reserved_response_tokens(model: str) -> int:
    """Tiered reserve: extended-context GPT-4 keeps 8192, other GPT-4 2048, everything else 1000."""
    if 'gpt-4' in model:
        return 8192 if '32k' in model else 2048
    return 1000


def resolve_limits(
    model: str,
    context_sizes: Mapping[str, int],
    reserved_override: int | None = None,
) -> ModelLimits:
    reserved = reserved_override if reserved_override is not None else reserved_response_tokens(model)
    return ModelLimits(
        max_model_tokens=context_size_for(model, context_sizes),
        reserved_response_tokens=reserved,
    )
