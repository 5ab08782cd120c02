"""Gateway: tiktoken-based token estimator — implements TokenEstimator port."""

from __future__ import annotations

import logging

import tiktoken

from gpt_relay.l1_entities.chat_message import ChatMessage

log = logging.getLogger('relay.context')

FALLBACK_ENCODING = 'cl100k_base'
REPLY_PRIMING_TOKENS = 3


class TiktokenEstimator:
    """Counts chat tokens the way OpenAI chat models frame messages.

    Models tiktoken does not know (local Ollama models, for instance) are
    counted with ``cl100k_base``; the result is an approximation either way.
    """

    def __init__(self) -> None:
        self._encodings: dict[str, tiktoken.Encoding] = {}

    def estimate(self, model: str, messages: list[ChatMessage]) -> int:
        enc = self._encoding_for(model)
        per_message = 4 if model.startswith('gpt-3.5-turbo-0301') else 3
        total = REPLY_PRIMING_TOKENS
        for m in messages:
            total += per_message
            total += len(enc.encode(m.role, disallowed_special=()))
            total += len(enc.encode(m.content, disallowed_special=()))
        return total

    def _encoding_for(self, model: str) -> tiktoken.Encoding:
        enc = self._encodings.get(model)
        if enc is None:
            try:
                enc = tiktoken.encoding_for_model(model)
            except KeyError:
                log.debug('No tiktoken encoding registered for %s, using %s', model, FALLBACK_ENCODING)
                enc = tiktoken.get_encoding(FALLBACK_ENCODING)
            self._encodings[model] = enc
        return enc
