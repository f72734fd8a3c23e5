#!/usr/bin/env python3
"""
File-backed usage counters.

A single JSON snapshot holds generation and visitor totals plus daily and
monthly buckets. Every mutation is a read-modify-write of the whole file,
serialized by a process-local mutex and an exclusive flock on a sibling
lock file so concurrent requests never lose an update.
"""

import fcntl
import json
import logging
import os
import stat
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, Iterator, Optional

from .models import StatsSnapshot

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DAY_FORMAT = "%Y-%m-%d"
MONTH_FORMAT = "%Y-%m"


class StorageError(Exception):
    """The statistics snapshot could not be read back or persisted."""


class CounterStore:
    """Handles all reads and increments of the statistics snapshot."""

    def __init__(self, path: str, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the counter store.

        Args:
            path: Path to the JSON snapshot file.
            clock: Source of the current local time; "today" and "this month" derive from it.
        """
        self.path = os.path.abspath(path)
        self.lock_path = f"{self.path}.lock"
        self.clock = clock
        self._mutex = threading.Lock()

    @contextmanager
    def _locked(self) -> Iterator[None]:
        with self._mutex:
            try:
                os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
                lock_file = open(self.lock_path, "a")
            except OSError as e:
                logger.error(f"Failed to open lock file {self.lock_path}: {e}")
                raise StorageError("Unable to lock the statistics file") from e

            with lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read(self) -> Optional[StatsSnapshot]:
        """Read the snapshot; None when the file does not exist yet."""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read statistics file {self.path}: {e}")
            raise StorageError(f"Unable to read statistics file: {e}") from e

        if not isinstance(data, dict):
            logger.error(f"Statistics file {self.path} does not contain a JSON object")
            raise StorageError("Statistics file does not contain a JSON object")

        try:
            return StatsSnapshot.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.error(f"Malformed statistics file {self.path}: {e}")
            raise StorageError(f"Malformed statistics file: {e}") from e

    def _write(self, snapshot: StatsSnapshot) -> None:
        """Replace the snapshot file atomically."""
        directory = os.path.dirname(self.path) or "."
        try:
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".stats-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(snapshot.to_dict(), f, indent=4)
                os.chmod(tmp_path, 0o644)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Failed to write statistics file {self.path}: {e}")
            raise StorageError("Unable to write to the statistics file") from e

    def _load_or_create(self) -> StatsSnapshot:
        snapshot = self._read()
        if snapshot is None:
            snapshot = StatsSnapshot()
            self._write(snapshot)
            logger.info(f"Created statistics file {self.path}")
        return snapshot

    def load(self) -> StatsSnapshot:
        """Return the current snapshot, creating the file with zeroed defaults if absent."""
        with self._locked():
            return self._load_or_create()

    def increment_generations(self) -> Dict:
        """Count one card generation.

        Raises:
            StorageError: if the snapshot cannot be read or written.
        """
        with self._locked():
            snapshot = self._load_or_create()
            now = self.clock()
            today, month = now.strftime(DAY_FORMAT), now.strftime(MONTH_FORMAT)

            snapshot.total_generations += 1
            snapshot.last_generation = now.strftime(TIMESTAMP_FORMAT)
            if not snapshot.first_generation:
                snapshot.first_generation = snapshot.last_generation
            snapshot.daily_stats[today] = snapshot.daily_stats.get(today, 0) + 1
            snapshot.monthly_stats[month] = snapshot.monthly_stats.get(month, 0) + 1

            self._write(snapshot)

        return {
            "success": True,
            "totalGenerations": snapshot.total_generations,
            "dailyGenerations": snapshot.daily_stats[today],
            "monthlyGenerations": snapshot.monthly_stats[month],
        }

    def increment_visitors(self) -> Dict:
        """Count one visit.

        Raises:
            StorageError: if the snapshot cannot be read or written.
        """
        with self._locked():
            snapshot = self._load_or_create()
            now = self.clock()
            today, month = now.strftime(DAY_FORMAT), now.strftime(MONTH_FORMAT)

            snapshot.total_visitors += 1
            snapshot.last_visit = now.strftime(TIMESTAMP_FORMAT)
            snapshot.daily_visitors[today] = snapshot.daily_visitors.get(today, 0) + 1
            snapshot.monthly_visitors[month] = snapshot.monthly_visitors.get(month, 0) + 1

            self._write(snapshot)

        return {
            "success": True,
            "totalVisitors": snapshot.total_visitors,
        }

    def get_stats(self) -> Dict:
        """Summarize the snapshot for today and this month. Never raises."""
        try:
            snapshot = self.load()
        except StorageError as e:
            logger.error(f"Serving default statistics: {e}")
            snapshot = StatsSnapshot()

        now = self.clock()
        today, month = now.strftime(DAY_FORMAT), now.strftime(MONTH_FORMAT)
        return {
            "totalGenerations": snapshot.total_generations,
            "totalVisitors": snapshot.total_visitors,
            "dailyGenerations": snapshot.daily_stats.get(today, 0),
            "monthlyGenerations": snapshot.monthly_stats.get(month, 0),
            "dailyVisitors": snapshot.daily_visitors.get(today, 0),
            "monthlyVisitors": snapshot.monthly_visitors.get(month, 0),
            "lastGeneration": snapshot.last_generation,
            "lastVisit": snapshot.last_visit,
            "firstGeneration": snapshot.first_generation,
        }

    def debug_info(self) -> Dict:
        """File path, permission bits and raw contents of the snapshot."""
        try:
            with self._locked():
                mode = stat.S_IMODE(os.stat(self.path).st_mode)
                with open(self.path, "r", encoding="utf-8") as f:
                    contents = json.load(f)
            permissions = f"{mode:04o}"
        except (OSError, ValueError, StorageError) as e:
            logger.warning(f"Unable to inspect statistics file: {e}")
            permissions, contents = None, None

        return {
            "file": self.path,
            "permissions": permissions,
            "contents": contents,
        }
