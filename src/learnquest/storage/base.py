"""Key-value persistence contract used by the engine."""

from typing import Any, Protocol


class KeyValueStore(Protocol):
    """Get/put/delete of JSON-compatible values by string key.

    Implementations raise ``PersistenceError`` when a read or write fails.
    ``get`` returns None for a missing key.
    """

    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...
