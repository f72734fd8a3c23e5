#!/usr/bin/env python3
"""
Data models for GitHub profile cards and usage statistics.

Contains the core data classes used throughout the application.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


def _parse_github_time(value: str) -> datetime:
    # GitHub returns ISO 8601 with a trailing "Z"
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass(frozen=True)
class AccountProfile:
    """A GitHub account as returned by the users endpoint."""
    login: str
    avatar_url: str
    created_at: datetime
    name: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    public_repos: int = 0
    followers: int = 0
    following: int = 0

    @property
    def display_name(self) -> str:
        return self.name or self.login

    @classmethod
    def from_github_entry(cls, entry: Dict[str, Any]) -> 'AccountProfile':
        """Create an AccountProfile from a GitHub API user payload.

        Raises:
            ValueError: if the payload lacks the login or creation date.
        """
        if not isinstance(entry, dict) or not entry.get("login") or not entry.get("created_at"):
            raise ValueError("Malformed user payload")

        company = entry.get("company") or None
        if company and company.startswith("@"):
            company = company[1:] or None

        return cls(
            login=entry["login"],
            avatar_url=entry.get("avatar_url") or "",
            created_at=_parse_github_time(entry["created_at"]),
            name=entry.get("name") or None,
            company=company,
            location=entry.get("location") or None,
            public_repos=int(entry.get("public_repos") or 0),
            followers=int(entry.get("followers") or 0),
            following=int(entry.get("following") or 0),
        )


@dataclass(frozen=True)
class RepositorySummary:
    """The per-repository numbers a profile card aggregates."""
    stars: int = 0
    forks: int = 0
    language: Optional[str] = None

    @classmethod
    def from_github_entry(cls, entry: Dict[str, Any]) -> 'RepositorySummary':
        """Create a RepositorySummary from a GitHub API repository payload."""
        return cls(
            stars=int(entry.get("stargazers_count") or 0),
            forks=int(entry.get("forks_count") or 0),
            language=entry.get("language") or None,
        )


def _counter(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"Counter must be a non-negative integer, got {value!r}")
    return value


def _buckets(value: Any) -> Dict[str, int]:
    # Older files store empty buckets as []
    if not value:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Buckets must be an object, got {type(value).__name__}")
    return {str(key): _counter(count) for key, count in value.items()}


def _timestamp(value: Any) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {value!r}")
    return value or None


@dataclass
class StatsSnapshot:
    """The complete persisted usage statistics at a point in time."""
    total_generations: int = 0
    total_visitors: int = 0
    daily_stats: Dict[str, int] = field(default_factory=dict)
    monthly_stats: Dict[str, int] = field(default_factory=dict)
    daily_visitors: Dict[str, int] = field(default_factory=dict)
    monthly_visitors: Dict[str, int] = field(default_factory=dict)
    last_generation: Optional[str] = None
    last_visit: Optional[str] = None
    first_generation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the on-disk JSON layout."""
        return {
            "totalGenerations": self.total_generations,
            "totalVisitors": self.total_visitors,
            "dailyStats": self.daily_stats,
            "monthlyStats": self.monthly_stats,
            "dailyVisitors": self.daily_visitors,
            "monthlyVisitors": self.monthly_visitors,
            "lastGeneration": self.last_generation,
            "lastVisit": self.last_visit,
            "firstGeneration": self.first_generation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StatsSnapshot':
        """Create a StatsSnapshot from the on-disk JSON layout, defaulting missing fields.

        Raises:
            ValueError: if a present field has the wrong type.
        """
        return cls(
            total_generations=_counter(data.get("totalGenerations")),
            total_visitors=_counter(data.get("totalVisitors")),
            daily_stats=_buckets(data.get("dailyStats")),
            monthly_stats=_buckets(data.get("monthlyStats")),
            daily_visitors=_buckets(data.get("dailyVisitors")),
            monthly_visitors=_buckets(data.get("monthlyVisitors")),
            last_generation=_timestamp(data.get("lastGeneration")),
            last_visit=_timestamp(data.get("lastVisit")),
            first_generation=_timestamp(data.get("firstGeneration")),
        )
