"""
yt_video_info — Extract YouTube video metadata and transcripts.

Scrapes the public watch page (no API key), pulls the embedded player
response out of the HTML, and fetches the best caption track in whichever
of YouTube's caption encodings parses first.

Public API:
    VideoInfoService     Async orchestrator; get_video_info() is the main call.
    VideoInfoResponse    {metadata, transcript | None, error?}.
    Cache                TTL cache; video_info_cache / transcript_cache instances.
    RetryPolicy          Backoff settings; with_retry() applies them.
    parse_video_id()     Parse a YouTube URL or validate a bare video ID.

Exception hierarchy (all importable from this package):
    VideoInfoError               Base; carries .code, .http_status, .to_dict().
    ├── InvalidVideoIdError      INVALID_ID
    ├── VideoNotFoundError       NOT_FOUND
    ├── PrivateVideoError        PRIVATE
    ├── AgeRestrictedError       AGE_RESTRICTED
    ├── RegionBlockedError       REGION_BLOCKED
    ├── TranscriptUnavailableError  NO_TRANSCRIPT
    ├── ParseError               PARSE_ERROR
    └── NetworkError             NETWORK_ERROR
        ├── RateLimitedError     RATE_LIMITED
        └── UpstreamTimeoutError TIMEOUT

Usage:
    import asyncio
    from yt_video_info import VideoInfoService

    async def main():
        async with VideoInfoService() as service:
            response = await service.get_video_info("dQw4w9WgXcQ")
            print(response.to_json())

    asyncio.run(main())
"""

__version__ = "1.0.0"

from yt_video_info.cache import Cache, transcript_cache, video_info_cache
from yt_video_info.errors import (
    AgeRestrictedError,
    ErrorCode,
    InvalidVideoIdError,
    NetworkError,
    ParseError,
    PrivateVideoError,
    RateLimitedError,
    RegionBlockedError,
    TranscriptUnavailableError,
    UpstreamTimeoutError,
    VideoInfoError,
    VideoNotFoundError,
)
from yt_video_info.extractor import parse_video_id, validate_video_id
from yt_video_info.metadata import CaptionTrack, VideoInfo, VideoMetadata
from yt_video_info.retry import RetryPolicy, is_retryable_error, with_retry
from yt_video_info.service import VideoInfoResponse, VideoInfoService
from yt_video_info.transcript import Transcript, TranscriptSegment

__all__ = [
    "__version__",
    "VideoInfoService",
    "VideoInfoResponse",
    "VideoInfo",
    "VideoMetadata",
    "CaptionTrack",
    "Transcript",
    "TranscriptSegment",
    "Cache",
    "video_info_cache",
    "transcript_cache",
    "RetryPolicy",
    "with_retry",
    "is_retryable_error",
    "parse_video_id",
    "validate_video_id",
    "ErrorCode",
    "VideoInfoError",
    "InvalidVideoIdError",
    "VideoNotFoundError",
    "PrivateVideoError",
    "AgeRestrictedError",
    "RegionBlockedError",
    "TranscriptUnavailableError",
    "ParseError",
    "NetworkError",
    "RateLimitedError",
    "UpstreamTimeoutError",
]
