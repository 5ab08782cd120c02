"""Use case: rebuild a token-bounded conversation window from stored history."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from gpt_relay.l1_entities.chat_message import ChatMessage
from gpt_relay.l1_entities.message import RequestOptions
from gpt_relay.l2_use_cases.message_repository import MessageRepository
from gpt_relay.l2_use_cases.ports.token_estimator import TokenEstimator
from gpt_relay.l2_use_cases.utils.model_limits import resolve_limits

log = logging.getLogger('relay.context')


@dataclass(frozen=True)
class ContextWindow:
    """Messages to send (oldest first) and the token budget they leave."""

    messages: list[ChatMessage]
    max_response_tokens: int
    tokens_used: int


class ContextBuilder:
    """Walks the parent-link chain backward and keeps the largest window that fits.

    The system message and the current prompt are always kept. History is
    spliced in between them, newest ancestor last. The walk stops for good at
    the first ancestor that would overflow the budget; it never skips an
    oversized ancestor to reach older, smaller ones.
    """

    def __init__(
        self,
        repository: MessageRepository,
        estimator: TokenEstimator,
        context_sizes: Mapping[str, int],
        *,
        reserved_response_tokens: int | None = None,
        max_history_hops: int = 1000,
    ) -> None:
        self._repository = repository
        self._estimator = estimator
        self._context_sizes = context_sizes
        self._reserved_override = reserved_response_tokens
        self._max_hops = max_history_hops

    def build(self, model: str, options: RequestOptions) -> ContextWindow:
        """Raises ConfigError for a model without a known context size."""
        limits = resolve_limits(model, self._context_sizes, self._reserved_override)
        max_allowed = limits.max_allowed

        seed: list[ChatMessage] = []
        if options.system_message is not None:
            seed.append(ChatMessage(role='system', content=options.system_message))
        offset = len(seed)
        if options.prompt:
            seed.append(ChatMessage(role='user', content=options.prompt))

        candidate = list(seed)
        accepted = list(seed)
        tokens_used = 0
        hops = 0
        parent_id = options.last_context.parent_message_id

        while True:
            estimate = self._estimator.estimate(model, candidate)
            fits = estimate <= max_allowed
            if hops and not fits:
                break
            accepted = list(candidate)
            tokens_used = estimate
            if not fits:
                if candidate:
                    log.warning(
                        'System message and prompt alone exceed the budget (%d > %d tokens)',
                        estimate,
                        max_allowed,
                    )
                break

            if parent_id is None:
                break
            if hops >= self._max_hops:
                log.warning('History walk stopped after %d hops at %s', hops, parent_id)
                break
            parent = self._repository.get_message(parent_id)
            if parent is None:
                log.debug('Parent %s not found; history ends here', parent_id)
                break
            candidate.insert(offset, ChatMessage(role=parent.role or 'user', content=parent.text))
            parent_id = parent.parent_message_id
            hops += 1

        max_response_tokens = max(
            1,
            min(limits.reserved_response_tokens, limits.max_model_tokens - tokens_used),
        )
        log.debug(
            'Context for %s: %d messages, ~%d tokens, max_response_tokens=%d',
            model,
            len(accepted),
            tokens_used,
            max_response_tokens,
        )
        return ContextWindow(
            messages=accepted,
            max_response_tokens=max_response_tokens,
            tokens_used=tokens_used,
        )
