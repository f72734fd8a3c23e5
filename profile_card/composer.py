#!/usr/bin/env python3
"""
Profile card composition.

Turns a GitHub handle into a self-contained SVG card: profile header, info
block, top languages and a grid of stat cards. Every failure degrades to a
fallback or to one of two error cards; nothing is raised to the caller.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .github_client import AccountNotFound, GitHubClient
from .layout import (
    CANVAS_WIDTH, CARD_HEIGHT, CARD_WIDTH, INFO_X, CardLayout, compute_layout,
    format_number, language_color, language_percentage,
    language_x, rank_languages, tally_languages,
)
from .models import AccountProfile, RepositorySummary
from .svg import FALLBACK_AVATAR_URI, SvgDocument, error_document

logger = logging.getLogger(__name__)

MISSING_HANDLE_MESSAGE = "Please specify a GitHub username"
NOT_FOUND_MESSAGE = "GitHub user not found"


@dataclass
class StatCard:
    icon: str
    value: int
    label: str


@dataclass
class CardData:
    """Everything the renderer needs, already aggregated."""
    profile: AccountProfile
    avatar_uri: str
    total_stars: int
    total_forks: int
    languages: Dict[str, int]

    @property
    def top_languages(self) -> List[Tuple[str, int]]:
        return rank_languages(self.languages)

    @property
    def stat_cards(self) -> List[StatCard]:
        return [
            StatCard("📦", self.profile.public_repos, "Repos"),
            StatCard("⭐", self.total_stars, "Stars"),
            StatCard("🔀", self.total_forks, "Forks"),
            StatCard("👥", self.profile.followers, "Followers"),
            StatCard("👤", self.profile.following, "Following"),
        ]

    def info_lines(self) -> List[str]:
        lines = []
        if self.profile.company:
            lines.append(f"🏢 {self.profile.company}")
        if self.profile.location:
            lines.append(f"📍 {self.profile.location}")
        lines.append(f"📅 Joined {self.profile.created_at.strftime('%b %Y')}")
        return lines


def aggregate(profile: AccountProfile, repos: List[RepositorySummary], avatar_uri: str) -> CardData:
    """Sum stars and forks and tally languages over the fetched repositories."""
    return CardData(
        profile=profile,
        avatar_uri=avatar_uri,
        total_stars=sum(repo.stars for repo in repos),
        total_forks=sum(repo.forks for repo in repos),
        languages=tally_languages(repos),
    )


def render_card(data: CardData) -> str:
    """Lay out and serialize a card."""
    profile = data.profile
    info = data.info_lines()
    cards = data.stat_cards
    layout: CardLayout = compute_layout(len(info), len(cards))

    doc = SvgDocument(CANVAS_WIDTH, layout.height)
    doc.add(None, "rect", width=CANVAS_WIDTH, height=layout.height, fill="#292929", rx=12)

    # Avatar
    avatar = doc.group(30, 30)
    defs = doc.add(avatar, "defs")
    clip = doc.add(defs, "clipPath", id="avatarClip")
    doc.add(clip, "circle", cx=35, cy=35, r=35)
    doc.add(avatar, "circle", cx=35, cy=35, r=38, fill="rgba(255,255,255,0.1)")
    doc.add(avatar, "image", href=data.avatar_uri, x=0, y=0, width=70, height=70,
            clip_path="url(#avatarClip)")

    # Name and handle
    header = doc.group(120, 45)
    doc.text(header, profile.display_name, size=22, fill="#F9FAFB", font_weight=700)
    doc.text(header, f"@{profile.login}", y=25, size=14, fill="#6B7280")

    divider = doc.group(120, 85)
    doc.add(divider, "line", x1=0, y1=0, x2=200, y2=0, stroke="rgba(255,255,255,0.1)",
            stroke_width=1, stroke_dasharray="4,4")

    for line, y in zip(info, layout.info_rows):
        doc.text(doc.group(INFO_X, y), line)

    for index, (language, count) in enumerate(data.top_languages):
        item = doc.group(language_x(index), layout.language_y)
        doc.add(item, "circle", cx=10, cy=10, r=6, fill=language_color(language))
        doc.text(item, language, x=25, y=13, fill="#E5E7EB", font_weight=600)
        doc.text(item, f"{language_percentage(count, data.languages)}%", x=25, y=28, size=11)

    for stat, (x, y) in zip(cards, layout.card_positions):
        card = doc.group(x, y)
        doc.add(card, "rect", width=CARD_WIDTH, height=CARD_HEIGHT, rx=8, fill="rgba(255,255,255,0.05)",
                stroke="rgba(255,255,255,0.1)", stroke_width=1)
        doc.text(card, format_number(stat.value), x=CARD_WIDTH / 2, y=25, size=18, fill="#F3F4F6",
                 text_anchor="middle", font_weight=700)
        doc.text(card, f"{stat.icon} {stat.label}", x=CARD_WIDTH / 2, y=45,
                 text_anchor="middle")

    return doc.to_string()


class CardComposer:
    """Builds profile cards from live GitHub data."""

    def __init__(self, client: Optional[GitHubClient] = None):
        self.client = client or GitHubClient()

    def _avatar(self, url: str) -> str:
        uri = self.client.fetch_avatar_data_uri(url)
        if uri is None:
            logger.info("Using fallback avatar")
            return FALLBACK_AVATAR_URI
        return uri

    def compose_card(self, handle: Optional[str]) -> str:
        """
        Compose the SVG card for a handle.

        Args:
            handle: GitHub login; surrounding whitespace is ignored

        Returns:
            An SVG document; error cards for a missing handle or unknown account
        """
        handle = (handle or "").strip()
        if not handle:
            return error_document(MISSING_HANDLE_MESSAGE)

        try:
            profile = self.client.fetch_profile(handle)

            # Avatar and repositories only depend on the profile, not on each other
            with ThreadPoolExecutor(max_workers=2) as pool:
                avatar_future = pool.submit(self._avatar, profile.avatar_url)
                repos_future = pool.submit(self.client.fetch_repositories, handle)
                avatar_uri = avatar_future.result()
                repos = repos_future.result()

            logger.info(f"Composing card for {profile.login} from {len(repos)} repositories")
            return render_card(aggregate(profile, repos, avatar_uri))
        except AccountNotFound:
            return error_document(NOT_FOUND_MESSAGE)
        except Exception as e:
            logger.error(f"Failed to compose card for {handle}: {e}")
            return error_document(NOT_FOUND_MESSAGE)
