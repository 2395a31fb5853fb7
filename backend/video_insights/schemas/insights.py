"""
Pydantic schemas for the video insight endpoints.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class VideoRequest(BaseModel):
    # Any JSON value is accepted so a non-string URL gets the pipeline's 400 body
    videoUrl: Optional[Any] = Field(None, description="YouTube video URL")


class MainPoint(BaseModel):
    timestamp: str
    title: str
    description: str


class TranscriptEntry(BaseModel):
    timestamp: str
    text: str


class TopicMention(BaseModel):
    timestamp: str
    context: str


class Topic(BaseModel):
    name: str
    description: str
    mentions: List[TopicMention]


class SummaryData(BaseModel):
    summary: str
    main_points: List[MainPoint]


class TopicData(BaseModel):
    transcript: List[TranscriptEntry]
    topics: List[Topic]


class SummaryResponse(BaseModel):
    success: bool
    data: Optional[SummaryData] = None
    message: Optional[str] = None


class TopicResponse(BaseModel):
    success: bool
    data: Optional[TopicData] = None
    message: Optional[str] = None


class AnalyzeRequest(BaseModel):
    model: Optional[str] = None
    query: Optional[str] = None
    videoUrl: Optional[str] = None


class AnalyzeResponse(BaseModel):
    response: str
