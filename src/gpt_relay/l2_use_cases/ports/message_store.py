"""Port: key/value persistence for serialized conversation turns."""

from __future__ import annotations

from typing import Protocol


class MessageStore(Protocol):
    """Abstract store keyed by message id. Values are opaque bytes.

    Implementations own their concurrency strategy. Failures are raised as
    PersistenceError; a missing key is not a failure.
    """

    def put(self, key: str, value: bytes) -> None: ...

    def get(self, key: str) -> bytes | None: ...

    def delete(self, key: str) -> None: ...
