"""
Pytest configuration and shared fixtures for the video insights service.
"""
import os
import sys
from pathlib import Path

# Ensure backend package is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

# Settings are read at import time; keep tests off Postgres and the rate limiter
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

# Patch PostgreSQL UUID/JSONB types BEFORE any model imports
from sqlalchemy.dialects import postgresql
from sqlalchemy import JSON, TypeDecorator, CHAR
import uuid as uuid_module


class GUID(TypeDecorator):
    """Platform-independent GUID type. Uses PostgreSQL's UUID type, otherwise uses CHAR(36)."""
    impl = CHAR
    cache_ok = True

    def __init__(self, as_uuid=True):
        """Accept as_uuid parameter for compatibility with PostgreSQL UUID."""
        self.as_uuid = as_uuid
        super().__init__()

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(_original_uuid(as_uuid=self.as_uuid))
        else:
            return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid_module.UUID):
            return value
        return uuid_module.UUID(value)


class JSONB(TypeDecorator):
    """SQLite-friendly stand-in for PostgreSQL JSONB."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(_original_jsonb())
        return dialect.type_descriptor(JSON())


_original_uuid = postgresql.UUID
_original_jsonb = postgresql.JSONB
postgresql.UUID = GUID
postgresql.JSONB = JSONB

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from video_insights.services.caption_parser import CaptionFragment
from video_insights.services.llm_providers import LLMResponse, Message


@pytest.fixture(scope="function")
def db_session_factory():
    """
    Session factory bound to a fresh in-memory SQLite database.

    StaticPool shares one connection, so sessions created from the factory
    (e.g. one per thread) all see the same data.
    """
    from video_insights.db.base import Base
    from video_insights import models  # noqa: F401

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db(db_session_factory):
    """Create a fresh database session for each test."""
    session = db_session_factory()
    try:
        yield session
    finally:
        session.close()


class FakeLLMService:
    """Returns queued responses in order and records every prompt it receives."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.prompts = []

    def complete(self, messages, temperature=None, max_tokens=None, model=None, **kwargs):  # noqa: ANN001
        self.prompts.append(messages[-1].content)
        if not self.responses:
            raise AssertionError("FakeLLMService called more times than expected")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return LLMResponse(content=item, model="fake-model", provider="fake")

    def generate(self, prompt, model=None):  # noqa: ANN001
        return self.complete([Message(role="user", content=prompt)], model=model).content

    @property
    def call_count(self) -> int:
        return len(self.prompts)


class FakeCaptionSource:
    """Caption source returning fixed fragments; delegates key parsing to YouTubeService."""

    def __init__(self, fragments=None, error=None):
        from video_insights.services.youtube import YouTubeService

        self._youtube = YouTubeService()
        self.fragments = fragments if fragments is not None else [
            CaptionFragment(offset_ms=0, text="Hello"),
            CaptionFragment(offset_ms=95000, text="World"),
        ]
        self.error = error
        self.calls = []

    def video_key(self, url):  # noqa: ANN001
        return self._youtube.video_key(url)

    def fetch_captions(self, url):  # noqa: ANN001
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return list(self.fragments)


@pytest.fixture
def sample_video_url():
    """Fixture providing a sample YouTube URL."""
    return "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def fake_captions():
    return FakeCaptionSource()


@pytest.fixture
def make_llm():
    return FakeLLMService


@pytest.fixture
def make_captions():
    return FakeCaptionSource
