"""File-backed key-value store (JSON + fcntl.flock + atomic write)."""

import fcntl
import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import structlog

from learnquest.errors import PersistenceError

logger = structlog.get_logger()

_KEY_RE = re.compile(r"^[A-Za-z0-9_.\-]{1,200}$")
LOCK_FILENAME = ".store.lock"


class JsonFileStore:
    """One JSON file per key under ``root``.

    Reads take a shared lock and writes an exclusive lock on a store-wide
    lock file; writes go to a temp file that replaces the target.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self._lock_path = self.root / LOCK_FILENAME

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key) or key.startswith("."):
            raise PersistenceError(key, "invalid key")
        return self.root / f"{key}.json"

    def get(self, key: str) -> Any | None:
        path = self._path(key)
        try:
            with open(self._lock_path, "a") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_SH)
                try:
                    if not path.exists():
                        return None
                    return json.loads(path.read_text(encoding="utf-8"))
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("store_read_failed", key=key, error=str(e))
            raise PersistenceError(key, f"read failed: {e}") from e

    def put(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_name: str | None = None
        try:
            with open(self._lock_path, "a") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                try:
                    with tempfile.NamedTemporaryFile(
                        "w", dir=self.root, delete=False, suffix=".json", encoding="utf-8"
                    ) as tmp:
                        tmp_name = tmp.name
                        json.dump(value, tmp, ensure_ascii=False, indent=2)
                    os.replace(tmp_name, path)
                    tmp_name = None
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)
        except (OSError, TypeError, ValueError) as e:
            logger.error("store_write_failed", key=key, error=str(e))
            raise PersistenceError(key, f"write failed: {e}") from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            with open(self._lock_path, "a") as lock_file:
                fcntl.flock(lock_file, fcntl.LOCK_EX)
                try:
                    path.unlink(missing_ok=True)
                finally:
                    fcntl.flock(lock_file, fcntl.LOCK_UN)
        except OSError as e:
            logger.error("store_delete_failed", key=key, error=str(e))
            raise PersistenceError(key, f"delete failed: {e}") from e
