"""
InsightRecord model.

Stores the generated summary/main points and topic breakdown for a video so
repeat requests are served without calling the generation service again.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID

from video_insights.db.base import Base


class InsightRecord(Base):
    __tablename__ = "insight_records"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Canonical cache key, e.g. "youtube:dQw4w9WgXcQ"
    video_key = Column(String(100), nullable=False, unique=True, index=True)
    video_url = Column(String(500), nullable=True)

    # Summary pipeline
    summary = Column(Text, nullable=True)
    main_points = Column(JSONB, nullable=True)  # [{"timestamp": "01:35", "title": ..., "description": ...}]

    # Topic pipeline
    transcript = Column(JSONB, nullable=True)  # [{"timestamp": "00:00", "text": ...}]
    topics = Column(JSONB, nullable=True)  # [{"name", "description", "mentions": [{"timestamp", "context"}]}]

    llm_provider = Column(String(50), nullable=True)
    llm_model = Column(String(100), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<InsightRecord(video_key={self.video_key}, updated_at={self.updated_at})>"
