"""
service.py — Orchestrates one get_video_info request.

    validate ID → cache check → fetch watch page → extract player response
    → playability check → metadata + caption tracks → cache
    → select track → fetch transcript (json3, srv3, vtt) → cache → response

Video-level failures (bad ID, 404, unplayable, unparsable page, network)
raise a VideoInfoError.  Transcript failures never do: get_video_info()
returns the metadata with `transcript=None` and an `error` string instead.

Concurrent requests for the same uncached video may both run the whole
pipeline; there is no request coalescing.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from yt_video_info.cache import Cache
from yt_video_info.cache import transcript_cache as shared_transcript_cache
from yt_video_info.cache import video_info_cache as shared_video_info_cache
from yt_video_info.config import Settings, get_settings
from yt_video_info.errors import (
    NetworkError,
    ParseError,
    RateLimitedError,
    TranscriptUnavailableError,
    UpstreamTimeoutError,
    VideoInfoError,
    VideoNotFoundError,
)
from yt_video_info.extractor import extract_player_response, validate_video_id
from yt_video_info.metadata import (
    CaptionTrack,
    VideoInfo,
    VideoMetadata,
    check_playability,
    extract_caption_tracks,
    extract_metadata,
)
from yt_video_info.retry import RetryPolicy, SleepFunc, with_retry
from yt_video_info.transcript import (
    TRANSCRIPT_FORMATS,
    Transcript,
    parse_transcript_payload,
    select_caption_track,
    with_format,
)

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

PAGE_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

CAPTION_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://www.youtube.com/",
}

NO_TRANSCRIPT_MESSAGE = "No transcript available for this video"
TRANSCRIPT_EXHAUSTED_MESSAGE = (
    "Transcript not available. The video may not have captions, "
    "or they may be restricted."
)
TRANSCRIPT_FAILED_MESSAGE = "Failed to fetch transcript"


def _is_transient_page_failure(exc: BaseException) -> bool:
    # Classified errors (e.g. 404 → VideoNotFoundError) are terminal;
    # every other failure gets another attempt.
    return not isinstance(exc, VideoInfoError)


# Watch page: 3 retries from a 1s base.  Captions: 2 retries from 0.5s,
# per format.
PAGE_RETRY = RetryPolicy(max_retries=3, base_delay=1.0, retry_on=_is_transient_page_failure)
TRANSCRIPT_RETRY = RetryPolicy(max_retries=2, base_delay=0.5)


# ---------------------------------------------------------------------------
# Response document
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VideoInfoResponse:
    """
    What get_video_info hands back.

    Attributes:
        metadata:   Always present.
        transcript: None when no transcript could be produced.
        error:      Why transcript is None; omitted from output otherwise.
    """
    metadata: VideoMetadata
    transcript: Transcript | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "metadata": self.metadata.to_dict(),
            "transcript": self.transcript.to_dict() if self.transcript else None,
        }
        if self.error and self.transcript is None:
            payload["error"] = self.error
        return payload

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

def _network_error(video_id: str, exc: httpx.HTTPError) -> NetworkError:
    """Classify an httpx failure that survived every retry."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        details = {"status": status}
        if status == 429:
            return RateLimitedError(f"Rate limited while fetching video {video_id}", details)
        return NetworkError(f"Failed to fetch video: HTTP error {status}", details)
    if isinstance(exc, httpx.TimeoutException):
        return UpstreamTimeoutError(f"Timed out fetching video {video_id}")
    return NetworkError(f"Failed to fetch video: {exc}")


class VideoInfoService:
    """
    Fetches video metadata and transcripts, fronted by TTL caches.

    Use as an async context manager so an internally created HTTP client is
    closed on exit:

        async with VideoInfoService() as service:
            response = await service.get_video_info("dQw4w9WgXcQ")

    Args:
        client:           Shared httpx.AsyncClient.  When omitted, one is
                          created (and owned) by the service.
        video_cache:      Cache of VideoInfo keyed by video ID.
        transcript_cache: Cache of Transcript keyed by caption base URL.
        page_retry:       Retry policy for watch-page fetches.
        transcript_retry: Retry policy for each caption format request.
        sleep:            Awaitable sleep used between retries.
        settings:         Runtime settings (HTTP timeout).
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        video_cache: Cache[VideoInfo] = shared_video_info_cache,
        transcript_cache: Cache[Transcript] = shared_transcript_cache,
        page_retry: RetryPolicy = PAGE_RETRY,
        transcript_retry: RetryPolicy = TRANSCRIPT_RETRY,
        sleep: SleepFunc = asyncio.sleep,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=settings.request_timeout,
            follow_redirects=True,
        )
        self.video_cache = video_cache
        self.transcript_cache = transcript_cache
        self.page_retry = page_retry
        self.transcript_retry = transcript_retry
        self._sleep = sleep

    async def __aenter__(self) -> VideoInfoService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    # -- video info ---------------------------------------------------------

    async def _fetch_page(self, video_id: str) -> str:
        url = WATCH_URL.format(video_id=video_id)

        async def attempt() -> str:
            response = await self.client.get(url, headers=PAGE_HEADERS)
            if response.status_code == 404:
                raise VideoNotFoundError(video_id)
            response.raise_for_status()
            return response.text

        try:
            return await with_retry(attempt, self.page_retry, sleep=self._sleep)
        except httpx.HTTPError as exc:
            raise _network_error(video_id, exc) from exc

    async def fetch_video_info(self, video_id: str) -> VideoInfo:
        """
        Return metadata and caption tracks for a video.

        Raises:
            InvalidVideoIdError:  Malformed ID (no network activity).
            VideoNotFoundError:   The watch page answered 404.
            ParseError:           No player response could be extracted.
            AgeRestrictedError, RegionBlockedError, PrivateVideoError:
                                  The video isn't playable.
            NetworkError:         (or RateLimitedError / UpstreamTimeoutError)
                                  The page couldn't be fetched.
        """
        validate_video_id(video_id)

        cached = self.video_cache.get(video_id)
        if cached is not None:
            logger.debug("Cache hit for video", video_id=video_id)
            return cached

        logger.info("Fetching video info", video_id=video_id)
        try:
            html = await self._fetch_page(video_id)

            player_response = extract_player_response(html)
            if player_response is None:
                raise ParseError("Could not extract video data from page")

            check_playability(player_response)

            info = VideoInfo(
                metadata=extract_metadata(player_response, video_id),
                caption_tracks=tuple(extract_caption_tracks(player_response)),
            )
        except VideoInfoError as exc:
            logger.error("Failed to fetch video", video_id=video_id, code=exc.code.value, error=exc.message)
            raise

        self.video_cache.set(video_id, info)
        logger.debug("Cached video info", video_id=video_id, tracks=len(info.caption_tracks))
        return info

    # -- transcripts --------------------------------------------------------

    async def _fetch_caption_body(self, url: str) -> str:
        async def attempt() -> str:
            response = await self.client.get(url, headers=CAPTION_HEADERS)
            response.raise_for_status()
            return response.text

        return await with_retry(attempt, self.transcript_retry, sleep=self._sleep)

    async def fetch_transcript(self, track: CaptionTrack) -> Transcript:
        """
        Fetch and parse a caption track, trying each format in turn.

        Fetch and parse failures for one format only move on to the next.

        Raises:
            TranscriptUnavailableError: Every format failed.
        """
        cached = self.transcript_cache.get(track.base_url)
        if cached is not None:
            logger.debug("Cache hit for transcript", language=track.language_code)
            return cached

        logger.info("Fetching transcript", language=track.language_code or "unknown")

        for fmt in TRANSCRIPT_FORMATS:
            try:
                body = await self._fetch_caption_body(with_format(track.base_url, fmt))
            except httpx.HTTPError as exc:
                logger.debug("Caption fetch failed", fmt=fmt, error=str(exc))
                continue

            if not body:
                logger.debug("Caption body empty", fmt=fmt)
                continue

            try:
                transcript = parse_transcript_payload(body, fmt)
            except ParseError as exc:
                logger.debug("Caption body unparsable", fmt=fmt, error=exc.message)
                continue

            self.transcript_cache.set(track.base_url, transcript)
            logger.debug("Parsed transcript", fmt=fmt, segments=len(transcript.segments))
            return transcript

        raise TranscriptUnavailableError(TRANSCRIPT_EXHAUSTED_MESSAGE)

    # -- the operation ------------------------------------------------------

    async def get_video_info(self, video_id: str) -> VideoInfoResponse:
        """
        Metadata plus (when possible) a transcript for one video.

        Raises:
            VideoInfoError: Only for video-level failures; see
                            fetch_video_info().
        """
        info = await self.fetch_video_info(video_id)

        track = select_caption_track(info.caption_tracks)
        if track is None:
            return VideoInfoResponse(metadata=info.metadata, error=NO_TRANSCRIPT_MESSAGE)

        try:
            transcript = await self.fetch_transcript(track)
        except VideoInfoError as exc:
            logger.info("Transcript unavailable", video_id=video_id, error=exc.message)
            return VideoInfoResponse(metadata=info.metadata, error=exc.message)
        except Exception:
            # A transcript problem never fails the call; metadata still goes out.
            logger.exception("Unexpected transcript failure", video_id=video_id)
            return VideoInfoResponse(metadata=info.metadata, error=TRANSCRIPT_FAILED_MESSAGE)

        return VideoInfoResponse(metadata=info.metadata, transcript=transcript)
