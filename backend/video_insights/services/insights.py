"""
Video insights pipeline.

Produces either a summary with timestamped main points or a topic breakdown
with the full transcript for a video, and caches the result per video so
repeat requests never reach the generation service.

Flow per request:
    check cache -> fetch captions -> generate (strict prompt) -> validate
    -> [one retry with the fallback prompt] -> persist -> return
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy.orm import Session

from video_insights.core.config import settings
from video_insights.core.exceptions import (
    AnalysisFailed,
    CaptionUnavailable,
    DuplicateKey,
    GenerationFailure,
    InsightError,
    InvalidIdentifier,
    PersistenceError,
    PipelineBusy,
    ValidationError,
)
from video_insights.models import InsightRecord
from video_insights.services.caption_parser import CaptionFragment
from video_insights.services.insight_store import InsightStore
from video_insights.services.llm_providers import LLMResponse, LLMService, Message
from video_insights.services.prompts import InsightKind, PromptVariant, build_prompt
from video_insights.services.response_validator import ParsedResult, validate
from video_insights.services.timestamps import format_timestamp

logger = logging.getLogger(__name__)


REQUIRED_FIELDS: Dict[InsightKind, Tuple[str, ...]] = {
    InsightKind.SUMMARY: ("summary", "main_points"),
    InsightKind.TOPICS: ("transcript", "topics"),
}


class CaptionSourceProtocol(Protocol):
    def video_key(self, url: str) -> str:
        ...

    def fetch_captions(self, url: str) -> List[CaptionFragment]:
        ...


@dataclass
class PipelineResult:
    success: bool
    data: Optional[Dict[str, Any]] = None
    message: Optional[str] = None
    status_code: int = 200
    cached: bool = False

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            body["data"] = self.data
        if self.message is not None:
            body["message"] = self.message
        return body


class KeyedLocks:
    """
    One mutex per key, created on demand and dropped once nobody holds or
    waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, List[Any]] = {}  # key -> [lock, refcount]

    @contextmanager
    def hold(self, key: str, timeout: Optional[float] = None) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        acquired = entry[0].acquire(timeout=-1 if timeout is None else timeout)
        try:
            if not acquired:
                raise PipelineBusy(f"Timed out waiting for in-flight analysis of {key}")
            yield
        finally:
            if acquired:
                entry[0].release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return True


def is_record_valid(record: InsightRecord, kind: InsightKind) -> bool:
    """A record is servable for a kind only if all of that kind's fields are non-empty."""
    return all(_is_filled(getattr(record, field)) for field in REQUIRED_FIELDS[InsightKind(kind)])


def format_transcript(captions: Sequence[CaptionFragment]) -> List[Dict[str, str]]:
    return [{"timestamp": format_timestamp(c.offset_ms), "text": c.text} for c in captions]


class InsightsService:
    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        caption_source: Optional[CaptionSourceProtocol] = None,
        locks: Optional[KeyedLocks] = None,
        lock_timeout: Optional[float] = None,
    ) -> None:
        if llm_service is None:
            from video_insights.services.llm_providers import get_llm_service

            llm_service = get_llm_service()
        self.llm_service = llm_service

        if caption_source is None:
            from video_insights.services.youtube import youtube_service

            caption_source = youtube_service
        self.caption_source = caption_source

        self.locks = locks if locks is not None else KeyedLocks()
        self.lock_timeout = (
            lock_timeout if lock_timeout is not None else settings.pipeline_lock_timeout_seconds
        )

    def run(self, db: Session, kind: InsightKind, video_url: str) -> PipelineResult:
        """
        Run the pipeline for one request.

        Never raises: every failure is mapped to an unsuccessful
        PipelineResult carrying a message and HTTP-style status code.
        """
        kind = InsightKind(kind)
        started = time.time()

        try:
            video_key = self.caption_source.video_key(video_url)
            with self.locks.hold(video_key, timeout=self.lock_timeout):
                data, cached = self._run_locked(db, kind, video_key, video_url)
        except InvalidIdentifier as e:
            logger.info(f"[Insights] Rejected identifier {video_url!r}: {e.message}")
            return PipelineResult(success=False, message="Invalid YouTube video URL", status_code=400)
        except PipelineBusy as e:
            logger.warning(f"[Insights] {e.message}")
            return PipelineResult(
                success=False,
                message="This video is already being analyzed, please retry shortly",
                status_code=503,
            )
        except CaptionUnavailable as e:
            logger.warning(f"[Insights] Captions unavailable ({e.reason}) for {video_url}: {e.message}")
            return PipelineResult(
                success=False,
                message="Could not retrieve captions for this video",
                status_code=500,
            )
        except GenerationFailure as e:
            logger.error(f"[Insights] Generation failed ({e.reason}) for {video_url}: {e.message}")
            return PipelineResult(success=False, message="Failed to generate analysis", status_code=500)
        except AnalysisFailed as e:
            logger.error(f"[Insights] Analysis failed for {video_url}: {e.message}")
            return PipelineResult(success=False, message="Failed to parse analysis result", status_code=500)
        except (PersistenceError, DuplicateKey) as e:
            logger.error(f"[Insights] Persistence failed for {video_url}: {e.message}")
            return PipelineResult(success=False, message="Failed to save analysis result", status_code=500)
        except InsightError as e:
            logger.error(f"[Insights] Pipeline error for {video_url}: {e.message}")
            return PipelineResult(success=False, message="Internal server error", status_code=500)
        except Exception:
            logger.exception(f"[Insights] Unexpected error for {video_url}")
            return PipelineResult(success=False, message="Internal server error", status_code=500)

        logger.info(
            f"[Insights] {kind.value} for {video_key} served "
            f"({'cache' if cached else 'generated'}) in {time.time() - started:.2f}s"
        )
        return PipelineResult(success=True, data=data, cached=cached)

    def _run_locked(
        self,
        db: Session,
        kind: InsightKind,
        video_key: str,
        video_url: str,
    ) -> Tuple[Dict[str, Any], bool]:
        store = InsightStore(db)

        record = store.get(video_key)
        surviving_id: Optional[uuid.UUID] = None
        kept_kinds: List[InsightKind] = []
        if record is not None:
            if is_record_valid(record, kind):
                logger.info(f"[Insights] Cache hit for {video_key} ({kind.value})")
                return self._record_data(record, kind), True

            kept_kinds = [k for k in InsightKind if k != kind and is_record_valid(record, k)]
            surviving_id = record.id
            if kept_kinds:
                logger.info(
                    f"[Insights] {kind.value} missing for {video_key}, keeping "
                    f"{', '.join(k.value for k in kept_kinds)}"
                )
            else:
                logger.info(f"[Insights] Stale record for {video_key} ({kind.value}), purging")
                try:
                    store.delete(record.id)
                    surviving_id = None
                except PersistenceError as e:
                    # Continue anyway; the fresh result overwrites this record on persist
                    logger.warning(f"[Insights] Could not purge stale record {video_key}: {e.message}")
        else:
            logger.info(f"[Insights] Cache miss for {video_key} ({kind.value})")

        captions = self.caption_source.fetch_captions(video_url)
        logger.info(f"[Insights] Fetched {len(captions)} caption fragments for {video_key}")

        result, response = self._generate_validated(kind, captions, video_key)

        data = result.to_dict()
        if kind == InsightKind.TOPICS:
            data = {"transcript": format_transcript(captions), **data}

        # Fields of every kind not kept are reset, so stale values never survive
        fields: Dict[str, Any] = {
            field: None
            for other in InsightKind
            if other not in kept_kinds
            for field in REQUIRED_FIELDS[other]
        }
        fields.update(data)
        fields.update(
            video_url=video_url,
            llm_provider=response.provider,
            llm_model=response.model,
        )
        self._persist(store, video_key, surviving_id, fields)

        return data, False

    def _generate(self, prompt: str) -> LLMResponse:
        return self.llm_service.complete([Message(role="user", content=prompt)])

    def _generate_validated(
        self,
        kind: InsightKind,
        captions: Sequence[CaptionFragment],
        video_key: str,
    ) -> Tuple[ParsedResult, LLMResponse]:
        response = self._generate(build_prompt(kind, captions, PromptVariant.STRICT))
        try:
            return validate(response.content, kind), response
        except ValidationError as e:
            logger.warning(
                f"[Insights] Strict output rejected for {video_key} ({e.message}); "
                "retrying with fallback prompt"
            )

        try:
            response = self._generate(build_prompt(kind, captions, PromptVariant.FALLBACK))
            result = validate(response.content, kind)
        except (GenerationFailure, ValidationError) as e:
            raise AnalysisFailed(f"Fallback attempt failed for {video_key}: {e.message}")

        logger.info(f"[Insights] Fallback prompt produced a valid result for {video_key}")
        return result, response

    @staticmethod
    def _persist(
        store: InsightStore,
        video_key: str,
        surviving_id: Optional[uuid.UUID],
        fields: Dict[str, Any],
    ) -> InsightRecord:
        if surviving_id is not None:
            return store.update(surviving_id, fields)

        try:
            return store.create(video_key, fields)
        except DuplicateKey:
            # Another process created the record between our read and write
            existing = store.get(video_key)
            if existing is None:
                raise PersistenceError(f"Insight record for {video_key} vanished during write")
            logger.warning(f"[Insights] Record for {video_key} created concurrently, overwriting")
            return store.update(existing.id, fields)

    @staticmethod
    def _record_data(record: InsightRecord, kind: InsightKind) -> Dict[str, Any]:
        if kind == InsightKind.SUMMARY:
            return {"summary": record.summary, "main_points": record.main_points}
        return {"transcript": record.transcript, "topics": record.topics}


# Global insights service instance
insights_service = InsightsService()
