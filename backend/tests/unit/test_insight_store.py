import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from video_insights.core.exceptions import DuplicateKey, PersistenceError
from video_insights.models import InsightRecord
from video_insights.services.insight_store import InsightStore

MAIN_POINTS = [{"timestamp": "01:35", "title": "World", "description": "Greets the world"}]


def test_create_and_get_round_trip(db) -> None:  # noqa: ANN001
    store = InsightStore(db)

    created = store.create(
        "youtube:abc",
        {"video_url": "https://www.youtube.com/watch?v=abc", "summary": "S", "main_points": MAIN_POINTS},
    )
    fetched = store.get("youtube:abc")

    assert fetched is not None
    assert fetched.id == created.id
    assert fetched.summary == "S"
    assert fetched.main_points == MAIN_POINTS
    assert fetched.topics is None
    assert fetched.created_at is not None
    assert fetched.updated_at is not None


def test_get_missing_returns_none(db) -> None:  # noqa: ANN001
    assert InsightStore(db).get("youtube:missing") is None


def test_create_duplicate_key_raises(db) -> None:  # noqa: ANN001
    store = InsightStore(db)
    store.create("youtube:abc", {"summary": "first"})

    with pytest.raises(DuplicateKey):
        store.create("youtube:abc", {"summary": "second"})

    # Session is usable again after the rollback
    assert store.get("youtube:abc").summary == "first"


def test_update_overwrites_fields_and_refreshes_updated_at(db) -> None:  # noqa: ANN001
    store = InsightStore(db)
    record = store.create("youtube:abc", {"summary": "old", "main_points": MAIN_POINTS})
    first_updated_at = record.updated_at

    updated = store.update(record.id, {"summary": "new", "main_points": None})

    assert updated.summary == "new"
    assert updated.main_points is None
    assert updated.updated_at >= first_updated_at


def test_update_missing_record_raises(db) -> None:  # noqa: ANN001
    with pytest.raises(PersistenceError):
        InsightStore(db).update(uuid.uuid4(), {"summary": "x"})


def test_delete_removes_record(db) -> None:  # noqa: ANN001
    store = InsightStore(db)
    record = store.create("youtube:abc", {"summary": "S"})
    record_id = record.id

    assert store.delete(record_id) is True
    assert store.get("youtube:abc") is None
    assert store.delete(record_id) is False


def test_unknown_fields_are_rejected(db) -> None:  # noqa: ANN001
    with pytest.raises(ValueError):
        InsightStore(db).create("youtube:abc", {"video_key": "youtube:other"})


def test_database_errors_become_persistence_errors() -> None:
    session = MagicMock()
    session.query.side_effect = OperationalError("SELECT", {}, Exception("db down"))

    with pytest.raises(PersistenceError):
        InsightStore(session).get("youtube:abc")

    session.rollback.assert_called_once()


def test_record_repr_mentions_key(db) -> None:  # noqa: ANN001
    record = InsightStore(db).create("youtube:abc", {"summary": "S"})

    assert "youtube:abc" in repr(record)
    assert isinstance(record, InsightRecord)
