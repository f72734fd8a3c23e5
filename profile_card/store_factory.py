#!/usr/bin/env python3
"""
Statistics store factory: resolves where the snapshot file lives.
"""

import logging
import os
import threading
from typing import Optional

from .counter_store import CounterStore

# Global variables holding the resolved path and the shared store
_resolved_stats_path = None
_store: Optional[CounterStore] = None
_store_lock = threading.Lock()


def _check_directory_writable(path: str) -> None:
    parent_dir = os.path.dirname(path) or "."
    os.makedirs(parent_dir, mode=0o755, exist_ok=True)

    test_file = os.path.join(parent_dir, ".write_test")
    with open(test_file, 'w') as f:
        f.write("test")
    os.remove(test_file)


def get_resolved_stats_path() -> str:
    """
    Get the resolved statistics file path, testing the preferred path first and falling back if needed.
    This ensures every store instance in the process uses the same working path.
    """
    global _resolved_stats_path

    if _resolved_stats_path is not None:
        return _resolved_stats_path

    logger = logging.getLogger(__name__)

    primary_path = os.path.abspath(os.environ.get('STATS_PATH', 'stats.json'))

    try:
        _check_directory_writable(primary_path)
        _resolved_stats_path = primary_path
        logger.info(f"Using statistics file: {_resolved_stats_path}")
        return _resolved_stats_path
    except OSError as e:
        logger.warning(f"Statistics directory for {primary_path} is not writable: {e}")

    allow_fallback = os.environ.get("ALLOW_STATS_FALLBACK", "").lower() == "true"
    if allow_fallback:
        fallback_path = os.path.abspath(
            os.environ.get("STATS_FALLBACK_PATH", "/tmp/profile_card_stats.json")
        )
        try:
            _check_directory_writable(fallback_path)
            _resolved_stats_path = fallback_path
            logger.warning(f"Using fallback statistics file: {_resolved_stats_path}. Data may be ephemeral.")
            return _resolved_stats_path
        except OSError as fallback_error:
            logger.error(f"Fallback statistics path {fallback_path} also failed: {fallback_error}")

    # Both failed; keep the primary path and let writes surface StorageError
    _resolved_stats_path = primary_path
    logger.error(f"All statistics paths failed, using primary path anyway: {_resolved_stats_path}")
    return _resolved_stats_path


def get_counter_store() -> CounterStore:
    """Return the process-wide counter store, so its in-process lock is shared."""
    global _store

    with _store_lock:
        if _store is None:
            _store = CounterStore(get_resolved_stats_path())
        return _store


def reset_store() -> None:
    """Forget the resolved path and store; the next call re-reads the environment."""
    global _resolved_stats_path, _store

    with _store_lock:
        _resolved_stats_path = None
        _store = None
