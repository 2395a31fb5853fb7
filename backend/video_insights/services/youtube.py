"""
YouTube caption source using yt-dlp.

Resolves video URLs to canonical ids and fetches the caption track as ordered
caption fragments. Only metadata and the subtitle file are fetched; no media
is downloaded.
"""
import logging
import re
from typing import Dict, List, Optional, Tuple

import httpx
import yt_dlp

from video_insights.core.config import settings
from video_insights.core.exceptions import CaptionUnavailable, InvalidIdentifier
from video_insights.services.caption_parser import CaptionFragment, parse_vtt_to_fragments

logger = logging.getLogger(__name__)

_VIDEO_ID_PATTERNS = [
    re.compile(r"^https?://(?:www\.|m\.|music\.)?youtube\.com/watch\?(?:[^#]*&)?v=([^&\n?#/]+)"),
    re.compile(r"^https?://youtu\.be/([^&\n?#/]+)"),
    re.compile(r"^https?://(?:www\.|m\.)?youtube\.com/(?:embed|v|shorts|live)/([^&\n?#/]+)"),
]

_UNAVAILABLE_MARKERS = (
    "private video",
    "video unavailable",
    "has been removed",
    "account associated with this video has been terminated",
    "sign in to confirm your age",
)


class YouTubeService:
    """Service for resolving YouTube URLs and fetching their captions."""

    def __init__(self, languages: Optional[List[str]] = None, timeout: Optional[float] = None):
        self.languages = languages or list(settings.caption_languages)
        self.timeout = timeout if timeout is not None else settings.caption_timeout_seconds
        self._default_headers = {
            "User-Agent": (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
                "AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/120.0.0.0 Safari/537.36"
            ),
            "Accept-Language": "en-US,en;q=0.9",
        }

    def extract_video_id(self, url: str) -> str:
        """
        Extract YouTube video ID from URL.

        Args:
            url: YouTube URL

        Returns:
            YouTube video ID

        Raises:
            InvalidIdentifier: If the value is not a recognized YouTube URL
        """
        candidate = (url or "").strip()
        for pattern in _VIDEO_ID_PATTERNS:
            match = pattern.search(candidate)
            if match:
                return match.group(1)

        raise InvalidIdentifier(f"Could not extract video ID from URL: {url}")

    def video_key(self, url: str) -> str:
        """
        Canonical cache key for a video URL.

        Different URL shapes for the same video (youtu.be, watch?v=, extra
        query parameters) map to the same key.
        """
        return f"youtube:{self.extract_video_id(url)}"

    def _normalize_url(self, url: str) -> str:
        return f"https://www.youtube.com/watch?v={self.extract_video_id(url)}"

    def _ydl_opts(self) -> Dict:
        return {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "noplaylist": True,
            "socket_timeout": self.timeout,
            "http_headers": dict(self._default_headers),
            # Force IPv4 to avoid IPv6-only blocks that can manifest as 403s
            "source_address": "0.0.0.0",
        }

    def _extract_info(self, normalized_url: str) -> Dict:
        with yt_dlp.YoutubeDL(self._ydl_opts()) as ydl:
            return ydl.extract_info(normalized_url, download=False)

    def _download_track(self, track_url: str) -> str:
        with httpx.Client(timeout=self.timeout, headers=self._default_headers) as client:
            response = client.get(track_url)
            response.raise_for_status()
            return response.text

    def _match_language(self, tracks: Dict[str, List[Dict]]) -> Optional[str]:
        for lang in self.languages:
            if lang in tracks:
                return lang
        # Accept regional/original variants such as "en-orig" for "en"
        for lang in self.languages:
            base = lang.split("-")[0]
            for available in tracks:
                if available.split("-")[0] == base:
                    return available
        return None

    def select_caption_track(self, info: Dict) -> Optional[Tuple[str, str, bool]]:
        """
        Pick a WebVTT caption track from yt-dlp metadata.

        Manual subtitles in a preferred language win, then automatic captions
        in a preferred language, then any manual subtitle track.

        Returns:
            Tuple of (language, track_url, is_automatic), or None if no track exists
        """
        manual = info.get("subtitles") or {}
        automatic = info.get("automatic_captions") or {}

        candidates = [
            (manual, self._match_language(manual), False),
            (automatic, self._match_language(automatic), True),
            (manual, next(iter(manual), None), False),
        ]

        for tracks, lang, is_automatic in candidates:
            if not lang:
                continue
            for fmt in tracks.get(lang) or []:
                if fmt.get("ext") == "vtt" and fmt.get("url"):
                    return lang, fmt["url"], is_automatic

        return None

    def fetch_captions(self, url: str) -> List[CaptionFragment]:
        """
        Fetch the caption track for a video.

        Args:
            url: YouTube URL

        Returns:
            Caption fragments ordered by offset

        Raises:
            InvalidIdentifier: If the URL is not a recognized YouTube URL
            CaptionUnavailable: If the video is private/removed, has no
                captions, or the caption source timed out
        """
        normalized_url = self._normalize_url(url)

        try:
            info = self._extract_info(normalized_url)
        except yt_dlp.utils.DownloadError as e:
            message = str(e)
            lowered = message.lower()
            if "timed out" in lowered:
                raise CaptionUnavailable(f"Caption source timed out: {message}", reason="timeout")
            if any(marker in lowered for marker in _UNAVAILABLE_MARKERS):
                raise CaptionUnavailable(f"Video is unavailable: {message}", reason="unavailable")
            raise CaptionUnavailable(f"Failed to extract video info: {message}", reason="error")

        if not info:
            raise CaptionUnavailable(f"No metadata returned for {normalized_url}")

        track = self.select_caption_track(info)
        if track is None:
            raise CaptionUnavailable(
                f"No captions available for {normalized_url}", reason="no-captions"
            )

        lang, track_url, is_automatic = track
        logger.info(
            f"[Captions] Fetching {'automatic' if is_automatic else 'manual'} "
            f"'{lang}' track for {normalized_url}"
        )

        try:
            vtt_content = self._download_track(track_url)
        except httpx.TimeoutException as e:
            raise CaptionUnavailable(f"Caption download timed out: {str(e)}", reason="timeout")
        except httpx.HTTPError as e:
            raise CaptionUnavailable(f"Caption download failed: {str(e)}", reason="error")

        fragments = parse_vtt_to_fragments(vtt_content)
        if not fragments:
            raise CaptionUnavailable(
                f"Caption track for {normalized_url} is empty", reason="no-captions"
            )

        return fragments


# Global YouTube service instance
youtube_service = YouTubeService()
