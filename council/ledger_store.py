#!/usr/bin/env python3
"""
LEDGER STORE - JSON persistence for the paper portfolio.

Writes go through a single background thread fed by a queue, so a write
never starts before the previous one has finished and the file on disk is
always one complete snapshot. Each write lands in a temp file first and is
swapped into place with os.replace.

A failed write is retried, then logged and remembered; flush() raises it.
The in-memory ledger is never rolled back because of a disk problem.
"""

import json
import logging
import os
import queue
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional

from .errors import LedgerCorruptError, PersistenceError

logger = logging.getLogger(__name__)

_STOP = object()


class LedgerStore:

    def __init__(self, path: Path, max_retries: int = 3, retry_delay: float = 0.05):
        self.path = Path(path)
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._queue: "queue.Queue" = queue.Queue()
        self._errors: List[Exception] = []
        self._errors_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._thread_lock = threading.Lock()

    # === Reads ===

    def load(self) -> Optional[Dict]:
        """Persisted snapshot, or None when nothing has been saved yet."""
        if not self.path.exists():
            return None
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Cannot read ledger {self.path}: {e}") from e
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise LedgerCorruptError(f"Ledger {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise LedgerCorruptError(f"Ledger {self.path} does not hold an object")
        return data

    # === Writes ===

    def save(self, snapshot: Dict):
        """Queue a snapshot for writing; returns immediately."""
        self._ensure_writer()
        self._queue.put(snapshot)

    def flush(self):
        """Block until queued writes finish; raise if any of them failed."""
        if self._thread is not None:
            self._queue.join()
        with self._errors_lock:
            errors, self._errors = self._errors, []
        if errors:
            raise PersistenceError(
                f"{len(errors)} ledger write(s) to {self.path} failed; last: {errors[-1]}"
            ) from errors[-1]

    def delete(self):
        """Wait for pending writes, then remove the file."""
        if self._thread is not None:
            self._queue.join()
        with self._errors_lock:
            self._errors = []
        if self.path.exists():
            self.path.unlink()

    def close(self):
        with self._thread_lock:
            thread = self._thread
            self._thread = None
        if thread is not None:
            self._queue.put(_STOP)
            thread.join()

    def _ensure_writer(self):
        with self._thread_lock:
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(target=self._run, name="ledger-writer", daemon=True)
                self._thread.start()

    def _run(self):
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._write_with_retry(item)
            finally:
                self._queue.task_done()

    def _write_with_retry(self, snapshot: Dict):
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                self._write(snapshot)
                return
            except (OSError, TypeError, ValueError) as e:
                last_error = e
                logger.warning(f"Ledger write attempt {attempt}/{self.max_retries} failed: {e}")
                time.sleep(self.retry_delay * attempt)

        logger.error(f"Giving up on ledger write to {self.path}: {last_error}")
        with self._errors_lock:
            self._errors.append(last_error)

    def _write(self, snapshot: Dict):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(snapshot, indent=2, default=str), encoding="utf-8")
        os.replace(tmp, self.path)
