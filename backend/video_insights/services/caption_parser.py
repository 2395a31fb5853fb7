"""
WebVTT caption parser.

Turns a downloaded caption track into ordered caption fragments
(offset in milliseconds + text).
"""
import re
import logging
from dataclasses import dataclass
from typing import List, Dict

logger = logging.getLogger(__name__)

_CUE_TIMING_RE = re.compile(
    r"(\d{1,2}:)?(\d{2}):(\d{2}[.,]\d{3})\s*-->\s*(\d{1,2}:)?(\d{2}):(\d{2}[.,]\d{3})"
)


@dataclass(frozen=True)
class CaptionFragment:
    """A single piece of spoken text and where it starts in the video."""

    offset_ms: int
    text: str


def parse_vtt_timestamp(timestamp: str) -> float:
    """
    Parse VTT timestamp to seconds.

    Args:
        timestamp: VTT format timestamp (e.g., "00:01:23.456" or "01:23.456")

    Returns:
        Time in seconds as float
    """
    parts = timestamp.strip().replace(",", ".").split(":")
    if len(parts) == 3:
        hours, minutes, seconds = parts
        return int(hours) * 3600 + int(minutes) * 60 + float(seconds)
    elif len(parts) == 2:
        minutes, seconds = parts
        return int(minutes) * 60 + float(seconds)
    else:
        return float(parts[0])


def clean_vtt_text(text: str) -> str:
    """Strip inline VTT tags (<c>, <00:01:23.456>) and normalize whitespace."""
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"align:start position:\d+%", "", text)
    text = " ".join(text.split())
    return text.strip()


def parse_vtt_to_segments(vtt_content: str) -> List[Dict]:
    """
    Parse WebVTT captions into segments.

    Handles YouTube's VTT format which often has overlapping/duplicate cues
    where text is incrementally revealed.

    Args:
        vtt_content: Raw VTT file content

    Returns:
        List of segments: [{"start": 0.0, "end": 2.5, "text": "Hello world"}, ...]
    """
    segments: List[Dict] = []
    lines = vtt_content.replace("\r\n", "\n").split("\n")

    # Skip WEBVTT header block
    i = 0
    while i < len(lines):
        line = lines[i].strip()
        if line.startswith("WEBVTT") or line.startswith("Kind:") or line.startswith("Language:") or not line:
            i += 1
            continue
        break

    current_start = None
    current_end = None
    current_text_lines: List[str] = []

    def flush() -> None:
        if current_text_lines and current_start is not None:
            text = clean_vtt_text(" ".join(current_text_lines))
            if text:
                segments.append({"start": current_start, "end": current_end, "text": text})

    while i < len(lines):
        line = lines[i].strip()

        # Blank line ends a cue; numeric identifiers and NOTE blocks carry no text
        if not line or line.isdigit() or line.startswith("NOTE"):
            flush()
            current_text_lines = []
            current_start = None
            current_end = None
            i += 1
            continue

        if _CUE_TIMING_RE.match(line):
            flush()
            current_text_lines = []
            parts = line.split("-->")
            current_start = parse_vtt_timestamp(parts[0].strip().split()[0])
            # End timestamp may be followed by cue settings
            current_end = parse_vtt_timestamp(parts[1].strip().split()[0])
            i += 1
            continue

        if current_start is not None:
            current_text_lines.append(line)
        i += 1

    flush()

    merged_segments = merge_overlapping_segments(segments)
    logger.info(f"[Caption Parser] Parsed {len(segments)} raw cues, merged to {len(merged_segments)}")
    return merged_segments


def merge_overlapping_segments(segments: List[Dict]) -> List[Dict]:
    """
    Merge overlapping or near-duplicate segments.

    Auto-generated tracks repeat a line across consecutive cues while the next
    line is revealed; cues starting within 0.5s with overlapping text collapse
    into the longer one.
    """
    if not segments:
        return []

    sorted_segments = sorted(segments, key=lambda s: (s["start"], s["end"]))

    merged: List[Dict] = []
    current = None

    for segment in sorted_segments:
        if current is None:
            current = segment.copy()
            continue

        time_overlap = abs(segment["start"] - current["start"]) < 0.5

        current_text = current["text"].lower()
        new_text = segment["text"].lower()
        text_overlap = (
            new_text.startswith(current_text[:20]) or
            current_text.startswith(new_text[:20]) or
            new_text in current_text or
            current_text in new_text
        )

        if time_overlap and text_overlap:
            if len(segment["text"]) > len(current["text"]):
                current["text"] = segment["text"]
            current["end"] = max(current["end"], segment["end"])
        else:
            merged.append(current)
            current = segment.copy()

    if current:
        merged.append(current)

    return merged


def segments_to_fragments(segments: List[Dict]) -> List[CaptionFragment]:
    """Convert parsed segments to caption fragments ordered by offset."""
    fragments = [
        CaptionFragment(offset_ms=max(0, int(round(seg["start"] * 1000))), text=seg["text"])
        for seg in segments
        if seg.get("text")
    ]
    return sorted(fragments, key=lambda f: f.offset_ms)


def parse_vtt_to_fragments(vtt_content: str) -> List[CaptionFragment]:
    """Parse a WebVTT document straight into caption fragments."""
    return segments_to_fragments(parse_vtt_to_segments(vtt_content))
