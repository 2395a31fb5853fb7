"""
Parse and schema-check raw generation output into typed insight results.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from video_insights.core.exceptions import ValidationError
from video_insights.services.prompts import InsightKind


@dataclass(frozen=True)
class MainPoint:
    timestamp: str
    title: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "title": self.title, "description": self.description}


@dataclass(frozen=True)
class TopicMention:
    timestamp: str
    context: str

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "context": self.context}


@dataclass(frozen=True)
class Topic:
    name: str
    description: str
    mentions: List[TopicMention]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "mentions": [m.to_dict() for m in self.mentions],
        }


@dataclass(frozen=True)
class SummaryResult:
    summary: str
    main_points: List[MainPoint]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary,
            "main_points": [p.to_dict() for p in self.main_points],
        }


@dataclass(frozen=True)
class TopicResult:
    topics: List[Topic]

    def to_dict(self) -> Dict[str, Any]:
        return {"topics": [t.to_dict() for t in self.topics]}


ParsedResult = Union[SummaryResult, TopicResult]


def strip_markdown_code_fences(text: str) -> str:
    cleaned = (text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def _require_text(obj: Dict[str, Any], key: str, path: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(ValidationError.SCHEMA_VIOLATION, path)
    return value.strip()


def _require_list(obj: Dict[str, Any], key: str, path: str) -> List[Any]:
    value = obj.get(key)
    if not isinstance(value, list) or not value:
        raise ValidationError(ValidationError.SCHEMA_VIOLATION, path)
    return value


def _require_object(value: Any, path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(ValidationError.SCHEMA_VIOLATION, path)
    return value


def _parse_summary(data: Dict[str, Any]) -> SummaryResult:
    summary = _require_text(data, "summary", "summary")
    points: List[MainPoint] = []
    for i, item in enumerate(_require_list(data, "main_points", "main_points")):
        path = f"main_points[{i}]"
        item = _require_object(item, path)
        points.append(
            MainPoint(
                timestamp=_require_text(item, "timestamp", f"{path}.timestamp"),
                title=_require_text(item, "title", f"{path}.title"),
                description=_require_text(item, "description", f"{path}.description"),
            )
        )
    return SummaryResult(summary=summary, main_points=points)


def _parse_topics(data: Dict[str, Any]) -> TopicResult:
    topics: List[Topic] = []
    for i, item in enumerate(_require_list(data, "topics", "topics")):
        path = f"topics[{i}]"
        item = _require_object(item, path)
        name = _require_text(item, "name", f"{path}.name")
        description = _require_text(item, "description", f"{path}.description")
        mentions: List[TopicMention] = []
        for j, mention in enumerate(_require_list(item, "mentions", f"{path}.mentions")):
            mpath = f"{path}.mentions[{j}]"
            mention = _require_object(mention, mpath)
            mentions.append(
                TopicMention(
                    timestamp=_require_text(mention, "timestamp", f"{mpath}.timestamp"),
                    context=_require_text(mention, "context", f"{mpath}.context"),
                )
            )
        topics.append(Topic(name=name, description=description, mentions=mentions))
    return TopicResult(topics=topics)


def validate(raw_text: str, kind: InsightKind) -> ParsedResult:
    """
    Validate generated text for an insight kind.

    Code fences around the payload are removed before parsing.

    Raises:
        ValidationError: reason "malformed-json" when the text is not a JSON
            object, "schema-violation" (with the offending field path) when a
            required field is missing or empty
    """
    text = strip_markdown_code_fences(raw_text)
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ValidationError(ValidationError.MALFORMED_JSON, detail=str(e))

    if not isinstance(data, dict):
        raise ValidationError(ValidationError.MALFORMED_JSON, detail="top-level value is not an object")

    if InsightKind(kind) == InsightKind.SUMMARY:
        return _parse_summary(data)
    return _parse_topics(data)
