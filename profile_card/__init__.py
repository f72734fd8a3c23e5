"""
GitHub Profile Card Generator

Renders self-contained SVG cards summarizing a public GitHub account and keeps
file-backed usage counters for the generator.
"""

__version__ = "1.0.0"

from .composer import CardComposer
from .counter_store import CounterStore, StorageError
from .models import AccountProfile, RepositorySummary, StatsSnapshot

__all__ = [
    "CardComposer",
    "CounterStore",
    "StorageError",
    "AccountProfile",
    "RepositorySummary",
    "StatsSnapshot",
]
