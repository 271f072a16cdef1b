"""
errors.py — Exception hierarchy for yt-video-info.

Every exception carries a taxonomy `code` and an `http_status` attribute so
the FastAPI error handler can translate library-level errors directly into
the correct HTTP response, and the CLI can print a clean message, without a
separate mapping table.

Hierarchy:
    VideoInfoError (base, 500)
    ├── InvalidVideoIdError        INVALID_ID      (400)
    ├── VideoNotFoundError         NOT_FOUND       (404)
    ├── PrivateVideoError          PRIVATE         (403)
    ├── AgeRestrictedError         AGE_RESTRICTED  (403)
    ├── RegionBlockedError         REGION_BLOCKED  (451)
    ├── TranscriptUnavailableError NO_TRANSCRIPT   (404)
    ├── ParseError                 PARSE_ERROR     (502)
    ├── NetworkError               NETWORK_ERROR   (502)
    ├── RateLimitedError           RATE_LIMITED    (429)
    └── UpstreamTimeoutError       TIMEOUT         (504)
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """The flat set of failure kinds reported to callers."""

    INVALID_ID = "INVALID_ID"
    NOT_FOUND = "NOT_FOUND"
    PRIVATE = "PRIVATE"
    AGE_RESTRICTED = "AGE_RESTRICTED"
    REGION_BLOCKED = "REGION_BLOCKED"
    NO_TRANSCRIPT = "NO_TRANSCRIPT"
    PARSE_ERROR = "PARSE_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"


# Kinds worth retrying at a layer above the core.
RETRYABLE_CODES = frozenset({
    ErrorCode.NETWORK_ERROR,
    ErrorCode.RATE_LIMITED,
    ErrorCode.TIMEOUT,
})


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class VideoInfoError(Exception):
    """
    Root exception for every classified failure.

    Attributes:
        message:     Human-readable description of what went wrong.
        details:     Optional diagnostic payload (JSON-serialisable).
        code:        Taxonomy value, fixed per subclass.
        http_status: Suggested HTTP status code for the API layer.
    """

    code: ErrorCode = ErrorCode.NETWORK_ERROR
    http_status: int = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def is_retryable(self) -> bool:
        return self.code in RETRYABLE_CODES

    def to_dict(self) -> dict[str, Any]:
        """Build the structured failure object `{code, message, details?}`."""
        payload: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


# ---------------------------------------------------------------------------
# Input errors
# ---------------------------------------------------------------------------

class InvalidVideoIdError(VideoInfoError):
    """Raised before any network activity when the video ID is malformed."""

    code = ErrorCode.INVALID_ID
    http_status = 400


# ---------------------------------------------------------------------------
# Video-level availability errors
# ---------------------------------------------------------------------------

class VideoNotFoundError(VideoInfoError):
    """
    Raised when the watch page answers 404.

    Terminal: the page fetch never retries it.
    """

    code = ErrorCode.NOT_FOUND
    http_status = 404

    def __init__(self, video_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Video not found: {video_id}")
        self.video_id = video_id


class PrivateVideoError(VideoInfoError):
    """Playability check failed for a reason we can't classify further."""

    code = ErrorCode.PRIVATE
    http_status = 403


class AgeRestrictedError(VideoInfoError):
    """Playability reason mentions an age gate."""

    code = ErrorCode.AGE_RESTRICTED
    http_status = 403


class RegionBlockedError(VideoInfoError):
    """Playability reason mentions a region or country block."""

    code = ErrorCode.REGION_BLOCKED
    http_status = 451


class TranscriptUnavailableError(VideoInfoError):
    """
    Raised when every caption format was tried and none produced segments.

    Never fatal to a get_video_info call: the orchestrator turns it into the
    response's `error` string.
    """

    code = ErrorCode.NO_TRANSCRIPT
    http_status = 404


# ---------------------------------------------------------------------------
# Upstream / transport errors
# ---------------------------------------------------------------------------

class ParseError(VideoInfoError):
    """
    The upstream document didn't have a shape we understand.

    Maps to HTTP 502: our server is fine, the upstream markup moved.
    """

    code = ErrorCode.PARSE_ERROR
    http_status = 502


class NetworkError(VideoInfoError):
    """Fetching from the upstream failed after all retries."""

    code = ErrorCode.NETWORK_ERROR
    http_status = 502


class RateLimitedError(NetworkError):
    """Upstream kept answering 429 after all retries."""

    code = ErrorCode.RATE_LIMITED
    http_status = 429


class UpstreamTimeoutError(NetworkError):
    """Upstream kept timing out after all retries."""

    code = ErrorCode.TIMEOUT
    http_status = 504
