"""
Offline composer tests: GitHub responses are mocked so card rendering can be
checked without real network calls.
"""
import base64
import json
from unittest.mock import patch

import pytest
import requests
from lxml import etree

from profile_card.composer import MISSING_HANDLE_MESSAGE, NOT_FOUND_MESSAGE, CardComposer
from profile_card.github_client import GitHubClient
from profile_card.svg import FALLBACK_AVATAR_URI, SVG_NS

API = "https://api.test"
AVATAR_URL = "https://avatars.test/u/583231"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
NS = {"svg": SVG_NS}

USER_JSON = {
    "login": "octocat",
    "name": "The Octocat",
    "avatar_url": AVATAR_URL,
    "company": "@github",
    "location": "San Francisco",
    "created_at": "2011-01-25T18:44:36Z",
    "public_repos": 8,
    "followers": 15300,
    "following": 9,
}

REPOS_JSON = [
    {"stargazers_count": 1200, "forks_count": 40, "language": "Python"},
    {"stargazers_count": 250, "forks_count": 10, "language": "Go"},
    {"stargazers_count": 30, "forks_count": 3, "language": "Python"},
    {"stargazers_count": 20, "forks_count": 0, "language": None},
    {"stargazers_count": 0, "forks_count": 0, "language": "Go"},
    {"stargazers_count": 0, "forks_count": 1, "language": "Rust"},
    {"stargazers_count": 0, "forks_count": 0, "language": "Elixir"},
    {"stargazers_count": 0, "forks_count": 0, "language": "C"},
    {"stargazers_count": 0, "forks_count": 0, "language": "Python"},
    {"stargazers_count": 0, "forks_count": 0, "language": "Ruby"},
]


class FakeResp:
    def __init__(self, payload=None, status_code=200, content=None, headers=None, chunks=None):
        self.payload = payload
        self.status_code = status_code
        self.content = content if content is not None else json.dumps(payload).encode("utf-8")
        self.headers = headers or {}
        self.chunks = chunks if chunks is not None else [self.content]
        self.closed = False

    def iter_content(self, chunk_size=1):
        yield from self.chunks

    def close(self):
        self.closed = True

    def json(self):
        return json.loads(self.content)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


def make_fake_get(user=USER_JSON, repos=REPOS_JSON, avatar=None):
    """Route requests by URL; a value that is an exception class or instance is raised."""
    avatar = avatar if avatar is not None else FakeResp(content=PNG_BYTES, headers={"Content-Type": "image/png"})
    calls = []

    def respond(value):
        if isinstance(value, Exception):
            raise value
        if isinstance(value, FakeResp):
            return value
        return FakeResp(value)

    def fake_get(url, params=None, headers=None, timeout=None, stream=False):
        calls.append((url, params, timeout))
        if url == AVATAR_URL:
            return respond(avatar)
        if url.endswith("/repos"):
            return respond(repos)
        return respond(user)

    fake_get.calls = calls
    return fake_get


def compose(handle="octocat", **routes):
    fake_get = make_fake_get(**routes)
    with patch("requests.Session.get", side_effect=fake_get):
        svg = CardComposer(GitHubClient(api_url=API)).compose_card(handle)
    return svg, fake_get.calls


def parse(svg: str):
    return etree.fromstring(svg.encode("utf-8"))


def texts(root):
    return [el.text for el in root.iterfind(".//svg:text", NS)]


def translate_y(group):
    return int(group.get("transform").rstrip(")").split(",")[1])


def language_groups(root):
    return [g for g in root.iterfind(".//svg:g", NS) if g.find("svg:circle[@r='6']", NS) is not None]


def stat_values(root):
    values = {}
    for card in root.iterfind(".//svg:g", NS):
        rect = card.find("svg:rect[@rx='8']", NS)
        if rect is not None:
            value, label = [t.text for t in card.iterfind("svg:text", NS)]
            values[label.split(" ", 1)[1]] = value
    return values


def test_full_card():
    svg, calls = compose()
    root = parse(svg)

    assert svg.startswith("<?xml")
    assert root.tag == f"{{{SVG_NS}}}svg"
    assert root.get("width") == "600"
    assert root.get("height") == "400"

    all_text = texts(root)
    assert "The Octocat" in all_text
    assert "@octocat" in all_text
    assert "🏢 github" in all_text
    assert "📍 San Francisco" in all_text
    assert "📅 Joined Jan 2011" in all_text

    assert stat_values(root) == {
        "Repos": "8",
        "Stars": "1.5k",
        "Forks": "54",
        "Followers": "15.3k",
        "Following": "9",
    }

    langs = language_groups(root)
    names = [g.findall("svg:text", NS)[0].text for g in langs]
    percents = [g.findall("svg:text", NS)[1].text for g in langs]
    # Python 3, Go 2, then first-seen order among the singles
    assert names == ["Python", "Go", "Rust", "Elixir", "C"]
    assert percents == ["33%", "22%", "11%", "11%", "11%"]
    assert all(translate_y(g) == 174 for g in langs)
    assert langs[0].find("svg:circle", NS).get("fill") == "#3776AB"
    assert langs[3].find("svg:circle", NS).get("fill") == "#6B7280"

    repo_call = [c for c in calls if c[0].endswith("/repos")][0]
    assert repo_call == (f"{API}/users/octocat/repos", {"sort": "updated", "per_page": 30}, 10)


def test_avatar_is_embedded_as_data_uri():
    svg, calls = compose()
    image = parse(svg).find(".//svg:image", NS)
    assert image.get("href") == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
    assert image.get("clip-path") == "url(#avatarClip)"
    assert ("https://avatars.test/u/583231", None, 5) in calls
    assert AVATAR_URL not in svg


def test_avatar_mime_is_sniffed_without_content_type():
    svg, _ = compose(avatar=FakeResp(content=PNG_BYTES, headers={"Content-Type": "application/octet-stream"}))
    assert parse(svg).find(".//svg:image", NS).get("href").startswith("data:image/png;base64,")


@pytest.mark.parametrize("avatar", [
    requests.Timeout("timed out"),
    requests.ConnectionError("refused"),
    FakeResp(content=b"", status_code=200),
    FakeResp(content=b"nope", status_code=404),
])
def test_failed_avatar_uses_fallback_icon(avatar):
    svg, _ = compose(avatar=avatar)
    root = parse(svg)
    assert root.find(".//svg:image", NS).get("href") == FALLBACK_AVATAR_URI
    assert "The Octocat" in texts(root)
    assert len(stat_values(root)) == 5


def fetch_avatar(resp, clock):
    with patch("requests.Session.get", return_value=resp) as get, \
            patch("profile_card.github_client.monotonic", side_effect=clock):
        uri = GitHubClient(api_url=API).fetch_avatar_data_uri(AVATAR_URL)
    assert get.call_args.kwargs["stream"] is True
    assert resp.closed
    return uri


def test_avatar_read_in_chunks_within_deadline():
    resp = FakeResp(content=PNG_BYTES, headers={"Content-Type": "image/png"},
                    chunks=[PNG_BYTES[:8], PNG_BYTES[8:]])
    uri = fetch_avatar(resp, clock=[0, 1, 2])
    assert uri == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


def test_avatar_trickling_past_total_deadline_is_abandoned():
    # Each chunk arrives inside the per-read timeout but the whole body takes 6s
    resp = FakeResp(content=PNG_BYTES, headers={"Content-Type": "image/png"},
                    chunks=[PNG_BYTES[:4], PNG_BYTES[4:8], PNG_BYTES[8:16], PNG_BYTES[16:]])
    assert fetch_avatar(resp, clock=[0, 2, 4, 6, 8]) is None


def test_zero_repositories():
    svg, _ = compose(repos=[])
    root = parse(svg)
    values = stat_values(root)
    assert values["Stars"] == "0"
    assert values["Forks"] == "0"
    assert language_groups(root) == []


@pytest.mark.parametrize("repos", [requests.Timeout("slow"), {"message": "API rate limit exceeded"},
                                   FakeResp(status_code=500, content=b"oops")])
def test_repository_failure_degrades_to_empty(repos):
    svg, _ = compose(repos=repos)
    root = parse(svg)
    assert stat_values(root)["Stars"] == "0"
    assert language_groups(root) == []


def test_optional_info_lines_shift_layout():
    user = dict(USER_JSON, company=None, location=None, name=None)
    root = parse(compose(user=user)[0])
    all_text = texts(root)
    assert "octocat" in all_text
    assert not any(t.startswith("🏢") or t.startswith("📍") for t in all_text)
    assert all(translate_y(g) == 138 for g in language_groups(root))

    user = dict(USER_JSON, location=None)
    root = parse(compose(user=user)[0])
    assert all(translate_y(g) == 156 for g in language_groups(root))


def test_free_text_is_escaped():
    user = dict(USER_JSON, name='<script>alert("x")</script> & co', company="Acme & <Sons>")
    svg, _ = compose(user=user)
    assert "<script>" not in svg
    assert "&lt;script&gt;" in svg
    all_text = texts(parse(svg))
    assert '<script>alert("x")</script> & co' in all_text
    assert "🏢 Acme & <Sons>" in all_text


def test_control_characters_are_dropped():
    user = dict(USER_JSON, name="Bad\x08Name", company="Acme\x00", location="Bel\x1bgrade")
    svg, _ = compose(user=user)
    root = parse(svg)
    assert root.get("height") == "400"
    all_text = texts(root)
    assert "BadName" in all_text
    assert "🏢 Acme" in all_text
    assert "📍 Belgrade" in all_text
    assert len(stat_values(root)) == 5


@pytest.mark.parametrize("handle", ["", "   ", None])
def test_missing_handle(handle):
    svg, calls = compose(handle=handle)
    root = parse(svg)
    assert calls == []
    assert (root.get("width"), root.get("height")) == ("600", "200")
    assert root.find("svg:rect", NS).get("fill") == "#EF4444"
    [warning] = texts(root)
    assert warning.endswith(MISSING_HANDLE_MESSAGE)


@pytest.mark.parametrize("user", [
    FakeResp({"message": "Not Found"}, status_code=404),
    {"message": "Not Found"},
    requests.ConnectionError("down"),
    requests.Timeout("slow"),
    FakeResp(content=b"<html>", status_code=200),
    {"login": "octocat"},
])
def test_unknown_account(user):
    svg, calls = compose(user=user)
    root = parse(svg)
    assert (root.get("width"), root.get("height")) == ("600", "200")
    [warning] = texts(root)
    assert warning.endswith(NOT_FOUND_MESSAGE)
    assert len(calls) == 1


def test_handle_is_trimmed_and_quoted():
    _, calls = compose(handle="  octo cat ")
    assert calls[0][0] == f"{API}/users/octo%20cat"
    assert calls[0][2] == 10
