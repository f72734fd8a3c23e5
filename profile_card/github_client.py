#!/usr/bin/env python3
"""
GitHub REST API client for profile card generation.

Every request is attempted once. Each fetch has a total deadline: requests'
`timeout` bounds a single connect or read, so bodies are streamed and the
elapsed time is checked between chunks. Callers decide how a failure
degrades; this module only classifies it.
"""

import json
import logging
import os
from time import monotonic
from typing import List, Optional, Tuple
from urllib.parse import quote

import requests

from .models import AccountProfile, RepositorySummary
from .svg import data_uri

logger = logging.getLogger(__name__)

PROFILE_TIMEOUT = 10
REPOS_TIMEOUT = 10
AVATAR_TIMEOUT = 5
REPOS_PER_PAGE = 30
CHUNK_SIZE = 8192

# (prefix, mime) pairs for sniffing avatar bytes when no usable Content-Type is sent
_MAGIC_NUMBERS = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
]


class AccountNotFound(Exception):
    """The provider has no such account, or its answer could not be used."""


def sniff_image_type(data: bytes) -> str:
    """Guess an image MIME type from its leading bytes, defaulting to JPEG."""
    for prefix, mime in _MAGIC_NUMBERS:
        if data.startswith(prefix):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    head = data[:256].lstrip()
    if head.startswith(b"<?xml") or head.startswith(b"<svg"):
        return "image/svg+xml"
    return "image/jpeg"


class GitHubClient:
    """Fetches the public account data a profile card is built from."""

    def __init__(self, api_url: Optional[str] = None, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            api_url: Base URL of the REST API (from GITHUB_API_URL env if None)
            session: Optional preconfigured requests session
        """
        self.api_url = (api_url or os.environ.get("GITHUB_API_URL", "https://api.github.com")).rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "profile-card",
            "Accept": "application/vnd.github.v3+json"
        })

    def _user_url(self, handle: str) -> str:
        return f"{self.api_url}/users/{quote(handle, safe='')}"

    def _get(self, url: str, timeout: float, **kwargs) -> Tuple[requests.Response, bytes]:
        """GET a URL and read the whole body within `timeout` seconds in total.

        Raises:
            requests.RequestException: on HTTP errors, transport errors or an expired deadline.
        """
        deadline = monotonic() + timeout
        response = self.session.get(url, timeout=timeout, stream=True, **kwargs)
        try:
            response.raise_for_status()
            chunks = []
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if monotonic() > deadline:
                    raise requests.Timeout(f"Response from {url} took longer than {timeout}s")
                chunks.append(chunk)
            return response, b"".join(chunks)
        finally:
            response.close()

    def fetch_profile(self, handle: str) -> AccountProfile:
        """
        Fetch the account profile for a handle.

        Raises:
            AccountNotFound: on any HTTP, transport or payload failure.
        """
        try:
            _, body = self._get(self._user_url(handle), PROFILE_TIMEOUT)
            payload = json.loads(body)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Error fetching profile for {handle}: {e}")
            raise AccountNotFound(handle) from e

        if not isinstance(payload, dict) or "message" in payload:
            logger.warning(f"GitHub returned an error payload for {handle}")
            raise AccountNotFound(handle)

        try:
            return AccountProfile.from_github_entry(payload)
        except (TypeError, ValueError) as e:
            logger.warning(f"Malformed profile payload for {handle}: {e}")
            raise AccountNotFound(handle) from e

    def fetch_repositories(self, handle: str) -> List[RepositorySummary]:
        """Fetch up to 30 repositories, most recently updated first; [] on failure."""
        url = f"{self._user_url(handle)}/repos"
        params = {"sort": "updated", "per_page": REPOS_PER_PAGE}

        try:
            _, body = self._get(url, REPOS_TIMEOUT, params=params)
            payload = json.loads(body)
            if not isinstance(payload, list):
                logger.warning(f"Unexpected repository payload for {handle}")
                return []
            return [RepositorySummary.from_github_entry(entry)
                    for entry in payload[:REPOS_PER_PAGE] if isinstance(entry, dict)]
        except (requests.RequestException, TypeError, ValueError) as e:
            logger.warning(f"Error fetching repositories for {handle}: {e}")
            return []

    def fetch_avatar_data_uri(self, url: str) -> Optional[str]:
        """Download an avatar and return it as a base64 data URI, or None on failure."""
        if not url:
            return None

        try:
            response, content = self._get(url, AVATAR_TIMEOUT, headers={"Accept": "image/*"})
        except requests.RequestException as e:
            logger.warning(f"Error fetching avatar {url}: {e}")
            return None

        if not content:
            logger.warning(f"Empty avatar body from {url}")
            return None

        content_type = (response.headers.get("Content-Type") or "").split(";")[0].strip().lower()
        mime = content_type if content_type.startswith("image/") else sniff_image_type(content)
        return data_uri(content, mime)
