"""
extractor.py — Video ID handling and player-response extraction from HTML.

The watch page embeds everything we need in a JavaScript assignment of
`ytInitialPlayerResponse`.  YouTube changes the surrounding markup often, so
extraction is an ordered list of independent strategies; the first one whose
match decodes to JSON *and* validates as a PlayerResponse wins:

    1. var ytInitialPlayerResponse = {...};
    2. ytInitialPlayerResponse = {...};  /  window["ytInitialPlayerResponse"] = {...};
    3. "playerResponse":"{\"...\"}"      (JSON serialised inside a JS string)

Each strategy is a pure function `html -> PlayerResponse | None`, so adding
or reordering strategies can't affect the others.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable

import structlog
from pydantic import ValidationError

from yt_video_info.errors import InvalidVideoIdError
from yt_video_info.schemas import PlayerResponse

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# A video ID is exactly 11 characters from the base64url alphabet.
VIDEO_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{11}$")

# URL shapes accepted by parse_video_id().  Each captures the ID in "id".
#   - https://www.youtube.com/watch?v=VIDEO_ID
#   - https://youtu.be/VIDEO_ID
#   - https://www.youtube.com/embed|shorts|v/VIDEO_ID
_URL_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(?:https?://)?(?:www\.|m\.)?youtube\.com/watch\?(?:.*&)?v=(?P<id>[A-Za-z0-9_-]{11})"),
    re.compile(r"(?:https?://)?youtu\.be/(?P<id>[A-Za-z0-9_-]{11})"),
    re.compile(r"(?:https?://)?(?:www\.|m\.)?youtube\.com/(?:embed|shorts|v)/(?P<id>[A-Za-z0-9_-]{11})"),
]

_DECODER = json.JSONDecoder()


# ---------------------------------------------------------------------------
# Video IDs
# ---------------------------------------------------------------------------

def validate_video_id(video_id: Any) -> str:
    """
    Check that video_id is a well-formed 11-character YouTube ID.

    Returns:
        The ID, unchanged.

    Raises:
        InvalidVideoIdError: With a message saying which rule was broken.
    """
    if not isinstance(video_id, str):
        raise InvalidVideoIdError("Video ID must be a string")
    if VIDEO_ID_PATTERN.match(video_id):
        return video_id
    if len(video_id) != 11:
        raise InvalidVideoIdError("Video ID must be exactly 11 characters")
    raise InvalidVideoIdError("Video ID contains invalid characters")


def parse_video_id(url_or_id: str) -> str:
    """
    Extract a video ID from a YouTube URL, or validate a bare ID.

    Accepts watch, youtu.be, embed, shorts and /v/ URLs as well as a raw
    11-character ID (surrounding whitespace is ignored).

    Raises:
        InvalidVideoIdError: If the string matches none of the known forms.
    """
    url_or_id = url_or_id.strip()

    for pattern in _URL_PATTERNS:
        match = pattern.search(url_or_id)
        if match:
            return match.group("id")

    return validate_video_id(url_or_id)


# ---------------------------------------------------------------------------
# Extraction strategies
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtractionStrategy:
    """
    One way of finding the player response in a page.

    Attributes:
        name:    Short label used in log events.
        pattern: Locates the *start* of the JSON value; the value itself is
                 decoded from match.end() with JSONDecoder.raw_decode, so
                 nested braces and "};" inside strings don't truncate it.
        escaped: The value is a JSON string literal whose content is the
                 serialised player response (decode twice).
    """

    name: str
    pattern: re.Pattern[str]
    escaped: bool = False

    def __call__(self, html: str) -> PlayerResponse | None:
        match = self.pattern.search(html)
        if match is None:
            return None
        try:
            value, _ = _DECODER.raw_decode(html, match.end())
            if self.escaped:
                if not isinstance(value, str):
                    return None
                value = json.loads(value)
            return PlayerResponse.model_validate(value)
        except (json.JSONDecodeError, ValidationError, ValueError, RecursionError) as exc:
            # RecursionError: the blob nests deeper than the decoder allows.
            logger.debug("Extraction strategy rejected match", strategy=self.name, error=str(exc))
            return None


STRATEGIES: tuple[ExtractionStrategy, ...] = (
    ExtractionStrategy(
        name="var-assignment",
        pattern=re.compile(r"var\s+ytInitialPlayerResponse\s*=\s*(?=\{)"),
    ),
    ExtractionStrategy(
        name="assignment",
        pattern=re.compile(r"ytInitialPlayerResponse(?:\"\])?\s*=\s*(?=\{)"),
    ),
    ExtractionStrategy(
        name="escaped-player-response",
        pattern=re.compile(r"\"playerResponse\"\s*:\s*(?=\")"),
        escaped=True,
    ),
)


def extract_player_response(
    html: str,
    strategies: tuple[Callable[[str], PlayerResponse | None], ...] = STRATEGIES,
) -> PlayerResponse | None:
    """
    Find, decode and validate the player response embedded in a watch page.

    Args:
        html:       Raw watch-page HTML.
        strategies: Ordered extraction functions; the first non-None wins.

    Returns:
        The validated PlayerResponse, or None when no strategy succeeds
        (the caller reports that as a PARSE_ERROR).
    """
    for strategy in strategies:
        player_response = strategy(html)
        if player_response is not None:
            logger.debug("Extracted player response", strategy=getattr(strategy, "name", repr(strategy)))
            return player_response
    return None
