"""Typed access to stored conversation turns."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from gpt_relay.l1_entities.errors import PersistenceError
from gpt_relay.l1_entities.message import Message
from gpt_relay.l2_use_cases.ports.message_store import MessageStore

log = logging.getLogger('relay.store')


class MessageRepository:
    """Serializes Messages onto a raw MessageStore.

    Lookups collapse "missing", "unreadable" and "undeserializable" into None:
    callers walking history treat all three as the end of the chain.
    """

    def __init__(self, store: MessageStore) -> None:
        self._store = store

    def get_message(self, message_id: str) -> Message | None:
        try:
            data = self._store.get(message_id)
        except PersistenceError as e:
            log.warning('Store read failed for %s: %s', message_id, e)
            return None
        if data is None:
            return None
        try:
            return Message.from_bytes(data)
        except ValidationError as e:
            log.warning('Discarding undeserializable record %s: %s', message_id, e)
            return None

    def put_message(self, message: Message) -> None:
        """Write *message* under its id. Raises PersistenceError."""
        self._store.put(message.id, message.to_bytes())

    def delete_message(self, message_id: str) -> None:
        self._store.delete(message_id)
