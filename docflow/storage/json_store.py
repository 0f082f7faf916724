"""
JSON file record store.

Same semantics as the in-memory store, with the whole state kept in one JSON
file that several processes may share.

Every write runs under an exclusive file lock: the store re-reads the file
if another process replaced it, applies the change (so version checks see
the persisted record), and writes the result to a temporary file that
replaces the target. If the write fails the in-memory state is rolled back,
so a failed operation is never persisted later by accident. Reads re-read
the file when it changed; ``os.replace`` keeps them from ever seeing a
half-written store.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections import deque
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from filelock import FileLock, Timeout

from ..exceptions import PersistenceError
from .base import DEFAULT_MAX_AUDIT_ENTRIES
from .memory import InMemoryRecordStore, _parse_state

logger = logging.getLogger(__name__)

LOCK_TIMEOUT = 10.0


class JsonFileRecordStore(InMemoryRecordStore):
    """
    File-backed record store.

    Usage:
        store = JsonFileRecordStore('docflow.json')
        workflow = DocumentWorkflow(store)
    """

    def __init__(
        self,
        path: Union[str, Path],
        max_audit_entries: int = DEFAULT_MAX_AUDIT_ENTRIES,
        lock_timeout: float = LOCK_TIMEOUT,
    ):
        self.path = Path(path)
        self._file_lock = FileLock(str(self.path) + '.lock', timeout=lock_timeout)
        self._seen: Optional[Tuple[int, int, int]] = None
        super().__init__(max_audit_entries=max_audit_entries)

        with self._lock:
            self._refresh()

    @contextmanager
    def _read(self) -> Iterator[None]:
        with self._lock:
            self._refresh()
            yield

    @contextmanager
    def _write(self) -> Iterator[None]:
        with self._lock, self._locked_file():
            self._refresh()
            documents, users, audit = dict(self._documents), dict(self._users), list(self._audit)
            try:
                yield
                self._flush()
            except BaseException:
                self._documents, self._users = documents, users
                self._audit = deque(audit, maxlen=self.max_audit_entries)
                raise

    @contextmanager
    def _locked_file(self) -> Iterator[None]:
        try:
            self._file_lock.acquire()
        except Timeout as e:
            raise PersistenceError(
                f"Timed out waiting for store lock {self._file_lock.lock_file}",
                details={'path': str(self.path)},
            ) from e
        except OSError as e:
            raise PersistenceError(
                f"Cannot lock store file {self.path}: {e}",
                details={'path': str(self.path)},
            ) from e
        try:
            yield
        finally:
            self._file_lock.release()

    def _stamp(self) -> Optional[Tuple[int, int, int]]:
        # os.replace gives every write a new inode
        try:
            stat = os.stat(self.path)
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            raise PersistenceError(
                f"Cannot read store file {self.path}: {e}",
                details={'path': str(self.path)},
            ) from e
        return (stat.st_ino, stat.st_mtime_ns, stat.st_size)

    def _refresh(self) -> None:
        stamp = self._stamp()
        if stamp == self._seen:
            return
        if stamp is None:
            self._replace({'users': [], 'documents': [], 'audit_log': []})
        else:
            self._load()
        self._seen = stamp

    def _load(self) -> None:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(
                f"Cannot read store file {self.path}: {e}",
                details={'path': str(self.path)},
            ) from e

        try:
            sections = _parse_state(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise PersistenceError(
                f"Malformed store file {self.path}: {e}",
                details={'path': str(self.path)},
            ) from e

        sections.setdefault('users', [])
        sections.setdefault('documents', [])
        sections.setdefault('audit_log', [])
        self._replace(sections)

        logger.info(
            f"Loaded {len(self._documents)} documents and "
            f"{len(self._audit)} audit entries from {self.path}"
        )

    def _flush(self) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix='.tmp'
            )
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._state(), f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise PersistenceError(
                f"Cannot write store file {self.path}: {e}",
                details={'path': str(self.path)},
            ) from e

        self._seen = self._stamp()
