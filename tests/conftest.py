import pytest

from profile_card import store_factory


@pytest.fixture(autouse=True)
def fresh_store_factory(monkeypatch, tmp_path):
    """Point the shared store at a per-test file."""
    monkeypatch.setenv("STATS_PATH", str(tmp_path / "stats.json"))
    store_factory.reset_store()
    yield
    store_factory.reset_store()
