from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List

from .errors import CorruptStoreError

logger = logging.getLogger(__name__)

# One lock per resolved file path, shared by every store instance in the process
_LOCKS: Dict[str, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path)
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _LOCKS[key] = lock
        return lock


class JsonFileStore:
    """Whole-file persistence of a JSON array of records.

    Every read goes to disk; there is no cache. Writes replace the file
    atomically, and `update()` serialises read-modify-write cycles on the same
    file within this process.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path).resolve()

    def ensure(self) -> bool:
        """Create the file holding an empty array. Returns True if it was created."""
        if self.path.exists():
            return False
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("[]", encoding="utf-8")
        logger.info(f"Created empty data file: {self.path}")
        return True

    def read(self) -> List[Dict[str, Any]]:
        self.ensure()
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return []
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Unparsable JSON in {self.path}: {e}")
            raise CorruptStoreError(f"Data file {self.path.name} is corrupt") from e
        if not isinstance(data, list):
            logger.error(f"Expected a JSON array in {self.path}, found {type(data).__name__}")
            raise CorruptStoreError(f"Data file {self.path.name} is corrupt")
        return data

    def write(self, records: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise

    @contextmanager
    def update(self) -> Iterator[List[Dict[str, Any]]]:
        """Yield the current records; write them back if the block succeeds."""
        with _lock_for(self.path):
            records = self.read()
            yield records
            self.write(records)


def max_id(records: List[Dict[str, Any]]) -> int:
    """Largest integer `id` among records, 0 when there is none."""
    best = 0
    for r in records:
        rid = r.get("id")
        if isinstance(rid, int) and not isinstance(rid, bool) and rid > best:
            best = rid
    return best
