"""
Pydantic schemas for API request/response validation.
"""
from video_insights.schemas.insights import (
    VideoRequest,
    MainPoint,
    TranscriptEntry,
    TopicMention,
    Topic,
    SummaryData,
    TopicData,
    SummaryResponse,
    TopicResponse,
    AnalyzeRequest,
    AnalyzeResponse,
)

__all__ = [
    "VideoRequest",
    "MainPoint",
    "TranscriptEntry",
    "TopicMention",
    "Topic",
    "SummaryData",
    "TopicData",
    "SummaryResponse",
    "TopicResponse",
    "AnalyzeRequest",
    "AnalyzeResponse",
]
