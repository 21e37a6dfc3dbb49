import json
import logging
import os
import re
from typing import Dict, List, Optional

from filelock import FileLock, Timeout

log = logging.getLogger(__name__)

_SESSION_KEY_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class CartStorageError(Exception):
    pass


class InMemoryCartStorage:
    """Cart storage kept in process memory. Used by tests and embedded callers."""

    def __init__(self, raw: Optional[str] = None):
        self.raw = raw
        self.saves = 0

    def load(self) -> Optional[List[Dict]]:
        if self.raw is None:
            return None
        return json.loads(self.raw)

    def save(self, rows: List[Dict]) -> None:
        self.raw = json.dumps(rows)
        self.saves += 1


class JsonFileCartStorage:
    """
    One JSON document per cart session: <directory>/<session_key>.json

    Writes go to a temp file and are renamed into place while holding a
    FileLock on <session_key>.json.lock, so a reader never sees a half
    written document.
    """

    def __init__(self, directory: str, session_key: str, lock_timeout: float = 5.0):
        if not _SESSION_KEY_RE.match(session_key or ""):
            raise CartStorageError(f"Invalid cart session key: {session_key!r}")
        os.makedirs(directory, exist_ok=True)
        self.path = os.path.join(directory, f"{session_key}.json")
        self.lock = FileLock(self.path + ".lock", timeout=lock_timeout)

    def load(self) -> Optional[List[Dict]]:
        """Return the stored rows, or None when nothing was saved yet.

        Malformed content raises ValueError; callers decide how to recover.
        """
        if not os.path.exists(self.path):
            return None
        try:
            with self.lock:
                with open(self.path, "r", encoding="utf-8") as fh:
                    return json.load(fh)
        except Timeout as e:
            raise CartStorageError(f"Timed out waiting for cart lock {self.lock.lock_file}") from e

    def save(self, rows: List[Dict]) -> None:
        tmp = self.path + ".tmp"
        try:
            with self.lock:
                with open(tmp, "w", encoding="utf-8") as fh:
                    json.dump(rows, fh, ensure_ascii=False)
                os.replace(tmp, self.path)
        except Timeout as e:
            raise CartStorageError(f"Timed out waiting for cart lock {self.lock.lock_file}") from e
        log.debug("cart saved path=%s lines=%d", self.path, len(rows))
