"""In-memory key-value store."""

import json
from typing import Any

from learnquest.errors import PersistenceError


class InMemoryStore:
    """Dict-backed store. Values are copied through JSON on the way in and
    out, so callers never share mutable state with the store and anything
    that would not survive a real JSON store fails here too.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Any | None:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def put(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceError(key, f"value is not JSON-serializable: {e}") from e

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)
