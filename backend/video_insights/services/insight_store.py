"""
Insight record store.

Thin get/create/update/delete wrapper over the insight_records table that
translates SQLAlchemy failures into pipeline errors.
"""
import logging
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from video_insights.core.exceptions import DuplicateKey, PersistenceError
from video_insights.models import InsightRecord

logger = logging.getLogger(__name__)

WRITABLE_FIELDS = {
    "video_url",
    "summary",
    "main_points",
    "transcript",
    "topics",
    "llm_provider",
    "llm_model",
}


def _check_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown insight record fields: {', '.join(sorted(unknown))}")


class InsightStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, video_key: str) -> Optional[InsightRecord]:
        try:
            return (
                self.db.query(InsightRecord)
                .filter(InsightRecord.video_key == video_key)
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to read insight record {video_key}: {str(e)}")

    def create(self, video_key: str, fields: Dict[str, Any]) -> InsightRecord:
        """
        Insert a new record.

        Raises:
            DuplicateKey: If a record with this video key already exists
            PersistenceError: On any other database failure
        """
        _check_fields(fields)
        now = datetime.utcnow()
        record = InsightRecord(video_key=video_key, created_at=now, updated_at=now, **fields)
        try:
            self.db.add(record)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateKey(f"Insight record already exists for {video_key}: {str(e.orig)}")
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to create insight record {video_key}: {str(e)}")

        self.db.refresh(record)
        return record

    def update(self, record_id: uuid.UUID, fields: Dict[str, Any]) -> InsightRecord:
        """Overwrite the given fields on an existing record and refresh updated_at."""
        _check_fields(fields)
        try:
            record = self.db.get(InsightRecord, record_id)
            if record is None:
                raise PersistenceError(f"Insight record {record_id} no longer exists")
            for key, value in fields.items():
                setattr(record, key, value)
            record.updated_at = datetime.utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to update insight record {record_id}: {str(e)}")

        self.db.refresh(record)
        return record

    def delete(self, record_id: uuid.UUID) -> bool:
        """Delete a record. Returns False if it was already gone."""
        try:
            record = self.db.get(InsightRecord, record_id)
            if record is None:
                return False
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to delete insight record {record_id}: {str(e)}")

        return True
