"""
Prompt templates for the insight pipeline.

Each insight kind has two variants:
- strict: full JSON shape, cardinality rules and a worked example
- fallback: same JSON shape with the rules removed, used once after the
  strict output fails validation
"""
from enum import Enum
from typing import Sequence

from video_insights.services.caption_parser import CaptionFragment
from video_insights.services.timestamps import format_timestamp


class InsightKind(str, Enum):
    SUMMARY = "summary"
    TOPICS = "topics"


class PromptVariant(str, Enum):
    STRICT = "strict"
    FALLBACK = "fallback"


SUMMARY_JSON_SHAPE = """{
  "summary": "Concise summary of the video",
  "main_points": [
    {
      "timestamp": "MM:SS",
      "title": "Short title of the point",
      "description": "What is said about it"
    }
  ]
}"""

SUMMARY_EXAMPLE = """{
  "summary": "The host explains how sourdough fermentation works, compares starter hydration levels and walks through a complete bake.",
  "main_points": [
    {"timestamp": "00:12", "title": "What a starter is", "description": "Wild yeast and lactic bacteria cultured in flour and water."},
    {"timestamp": "03:40", "title": "Hydration levels", "description": "Stiff starters ferment slower and taste milder than liquid ones."},
    {"timestamp": "09:05", "title": "Bulk fermentation", "description": "Dough should rise by roughly half before shaping."},
    {"timestamp": "14:30", "title": "Baking", "description": "Bake covered for 20 minutes, then uncovered to brown the crust."}
  ]
}"""

TOPICS_JSON_SHAPE = """{
  "topics": [
    {
      "name": "Topic name",
      "description": "Brief description of the topic",
      "mentions": [
        {
          "timestamp": "MM:SS",
          "context": "Brief context of when this topic was mentioned"
        }
      ]
    }
  ]
}"""

TOPICS_EXAMPLE = """{
  "topics": [
    {
      "name": "Starter maintenance",
      "description": "How to feed and store a sourdough starter.",
      "mentions": [
        {"timestamp": "00:12", "context": "Defines a starter and what lives in it"},
        {"timestamp": "02:05", "context": "Feeding schedule for a counter-top starter"}
      ]
    },
    {
      "name": "Fermentation",
      "description": "Bulk rise, temperature and timing.",
      "mentions": [
        {"timestamp": "09:05", "context": "Judging when bulk fermentation is done"},
        {"timestamp": "11:20", "context": "Effect of kitchen temperature on timing"}
      ]
    },
    {
      "name": "Baking technique",
      "description": "Oven setup and crust development.",
      "mentions": [
        {"timestamp": "14:30", "context": "Covered versus uncovered baking"}
      ]
    }
  ]
}"""


def render_captions(captions: Sequence[CaptionFragment]) -> str:
    """Render caption fragments as "[MM:SS] text" lines."""
    return "\n".join(f"[{format_timestamp(c.offset_ms)}] {c.text}" for c in captions)


def _summary_strict(transcript: str) -> str:
    return f"""Summarize the following video transcript and break it down into its main points.
IMPORTANT: You must respond with a valid JSON object in the exact format specified below, with no additional text or explanation.

<VideoTranscript>
{transcript}
</VideoTranscript>

Required JSON format:
{SUMMARY_JSON_SHAPE}

Rules:
1. The response must be a valid JSON object
2. "summary" must be a non-empty string of 2-4 sentences
3. Include 3-5 main points, in the order they occur in the video
4. Every main point must have a non-empty "timestamp", "title" and "description"
5. Use MM:SS format for timestamps, taken from the transcript markers
6. Keep titles short and descriptions concise
7. Do not include any text outside the JSON object

Example of a complete, valid response:
{SUMMARY_EXAMPLE}
"""


def _summary_fallback(transcript: str) -> str:
    return f"""Summarize this video transcript. Respond with JSON only, in this format:
{SUMMARY_JSON_SHAPE}

<VideoTranscript>
{transcript}
</VideoTranscript>
"""


def _topics_strict(transcript: str) -> str:
    return f"""Analyze the following video transcript and identify the main topics discussed.
IMPORTANT: You must respond with a valid JSON object in the exact format specified below, with no additional text or explanation.

<VideoTranscript>
{transcript}
</VideoTranscript>

Required JSON format:
{TOPICS_JSON_SHAPE}

Rules:
1. The response must be a valid JSON object
2. Identify 3-5 main topics
3. For each topic, include 2-3 key mentions with timestamps; never leave "mentions" empty
4. Use MM:SS format for timestamps, taken from the transcript markers
5. Every topic needs a non-empty "name" and "description"; every mention a non-empty "timestamp" and "context"
6. Keep descriptions and context concise
7. Do not include any text outside the JSON object

Example of a complete, valid response:
{TOPICS_EXAMPLE}
"""


def _topics_fallback(transcript: str) -> str:
    return f"""List the topics discussed in this video transcript. Respond with JSON only, in this format:
{TOPICS_JSON_SHAPE}

<VideoTranscript>
{transcript}
</VideoTranscript>
"""


_TEMPLATES = {
    (InsightKind.SUMMARY, PromptVariant.STRICT): _summary_strict,
    (InsightKind.SUMMARY, PromptVariant.FALLBACK): _summary_fallback,
    (InsightKind.TOPICS, PromptVariant.STRICT): _topics_strict,
    (InsightKind.TOPICS, PromptVariant.FALLBACK): _topics_fallback,
}


def build_prompt(
    kind: InsightKind,
    captions: Sequence[CaptionFragment],
    variant: PromptVariant = PromptVariant.STRICT,
) -> str:
    """
    Build the generation prompt for an insight kind.

    Args:
        kind: Which insight pipeline the prompt is for
        captions: Caption fragments ordered by offset
        variant: strict (first attempt) or fallback (single retry)

    Returns:
        Prompt text
    """
    template = _TEMPLATES[(InsightKind(kind), PromptVariant(variant))]
    return template(render_captions(captions))
