"""
Database models package.

All SQLAlchemy models are exported from this module for easy imports.
"""
from video_insights.models.insight_record import InsightRecord

__all__ = [
    "InsightRecord",
]
