"""
Shared pytest fixtures.

Every test gets its own SQLite file; outbound HTTP goes through
httpx.MockTransport so nothing leaves the process.
"""

import os

# Keep test runs quiet and free of log files
os.environ["POLYTRANS_LOG_MODE"] = "off"

import httpx
import pytest

import polytrans.core.database as db
from polytrans import config
from polytrans.config import Settings
from polytrans.core.schema import initialize_database
from polytrans.providers.base import TranslationProvider, TranslationResult


class FakeProvider(TranslationProvider):
    """Provider double that records calls and returns a fixed result."""

    def __init__(self, provider_id="google", configured=True, result=None, name=None):
        super().__init__()
        self.id = provider_id
        self.name = name or provider_id.title()
        self.configured = configured
        self.result = result or TranslationResult.ok({"title": "Bonjour"})
        self.calls = []

    def is_configured(self, settings):
        return self.configured

    def translate(self, content, source_lang, target_lang, settings):
        self.calls.append((content, source_lang, target_lang))
        return self.result


def make_transport(handler):
    """MockTransport that keeps every request it saw in `.requests`."""
    requests = []

    def _handler(request):
        requests.append(request)
        return handler(request)

    transport = httpx.MockTransport(_handler)
    transport.requests = requests
    return transport


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Fresh database for each test."""
    monkeypatch.setattr(db, "DB_FILE", tmp_path / "polytrans-test.db")
    initialize_database()
    return db.DB_FILE


@pytest.fixture
def save_settings(temp_db):
    """Store a configuration (merged over defaults) and return its Settings."""

    def _save(**overrides):
        raw = config.merge_with_defaults(overrides)
        config.save_config(raw)
        return config.load_settings()

    return _save


@pytest.fixture
def settings_loader(temp_db):
    return config.load_settings


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def make_app(temp_db):
    """Build a Flask app against the temporary database."""
    from polytrans.web import create_app

    def _make(**kwargs):
        app = create_app(**kwargs)
        app.config["TESTING"] = True
        return app

    return _make


@pytest.fixture
def original_post(temp_db):
    """An English post with an author, SEO meta and one category."""
    author_id = db.create_user("Anna Author", "anna@example.com")
    post_id = db.create_post(
        title="Hello world",
        content="<p>Hello</p>",
        excerpt="Short",
        status="publish",
        author_id=author_id,
        language="en",
    )
    db.update_post_meta(post_id, "rank_math_title", "Hello SEO")
    db.update_post_meta(post_id, "custom_field", "keep me")
    db.update_post_meta(post_id, "_edit_lock", "123:1")
    db.save_post_translations({"en": post_id})
    return db.get_post(post_id)


def settings_from(**overrides) -> Settings:
    return Settings.from_dict(overrides)
