"""
API endpoints for video insights.

Endpoints:
- POST /video-analysis - Summary and timestamped main points
- POST /video-transcript - Topic breakdown and full transcript
- POST /analyze - Free-form prompt against an allowed model
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from video_insights.core.config import settings
from video_insights.core.exceptions import GenerationFailure
from video_insights.core.rate_limit import limiter
from video_insights.db.base import get_db
from video_insights.schemas import (
    AnalyzeRequest,
    AnalyzeResponse,
    SummaryResponse,
    TopicResponse,
    VideoRequest,
)
from video_insights.services.insights import insights_service
from video_insights.services.llm_providers import get_llm_service
from video_insights.services.prompts import InsightKind

logger = logging.getLogger(__name__)

router = APIRouter()


def _run_pipeline(kind: InsightKind, payload: Optional[VideoRequest], db: Session) -> JSONResponse:
    raw_url = payload.videoUrl if payload else None
    if raw_url is not None and not isinstance(raw_url, str):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Invalid YouTube video URL"},
        )

    video_url = (raw_url or "").strip()
    if not video_url:
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "Video URL is required"},
        )

    result = insights_service.run(db=db, kind=kind, video_url=video_url)
    return JSONResponse(status_code=result.status_code, content=result.to_response())


@router.post("/video-analysis", response_model=SummaryResponse)
@limiter.limit(settings.insights_rate_limit)
def analyze_video(
    request: Request,
    payload: Optional[VideoRequest] = None,
    db: Session = Depends(get_db),
):
    """Summarize a video and extract 3-5 timestamped main points."""
    return _run_pipeline(InsightKind.SUMMARY, payload, db)


@router.post("/video-transcript", response_model=TopicResponse)
@limiter.limit(settings.insights_rate_limit)
def analyze_transcript(
    request: Request,
    payload: Optional[VideoRequest] = None,
    db: Session = Depends(get_db),
):
    """Return the timestamped transcript and a 3-5 topic breakdown."""
    return _run_pipeline(InsightKind.TOPICS, payload, db)


@router.post("/analyze", response_model=AnalyzeResponse)
@limiter.limit(settings.insights_rate_limit)
def analyze_query(request: Request, payload: AnalyzeRequest):
    """Run a free-form prompt against one of the allowed models."""
    if not payload.model or not payload.query:
        return JSONResponse(status_code=400, content={"error": "Model and query are required"})

    if payload.model not in settings.allowed_models:
        return JSONResponse(status_code=400, content={"error": "Invalid model selected"})

    try:
        text = get_llm_service().generate(payload.query, model=payload.model)
    except GenerationFailure as e:
        logger.error(f"[Analyze] Generation failed ({e.reason}) with {payload.model}: {e.message}")
        return JSONResponse(status_code=500, content={"error": e.message})

    return {"response": text}
