"""
metadata.py — Derive video metadata and caption tracks from a player response.

extract_player_response() (extractor.py) only checks the *shape* of the
embedded JSON.  This module turns a validated PlayerResponse into the
values the rest of the project works with:

    check_playability()       Raise a classified error if the video can't play.
    extract_metadata()        VideoMetadata with defaults for missing fields.
    extract_caption_tracks()  CaptionTrack list, keeping only usable URLs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urljoin

from yt_video_info.errors import (
    AgeRestrictedError,
    ParseError,
    PrivateVideoError,
    RegionBlockedError,
    VideoInfoError,
)
from yt_video_info.schemas import CaptionTrackSchema, PlayerResponse

# playabilityStatus.status value for a watchable video.
PLAYABLE_STATUS = "OK"

# Caption track kind YouTube uses for speech-recognition captions.
AUTO_GENERATED_KIND = "asr"

SITE_ROOT = "https://www.youtube.com/"

_LEADING_INT = re.compile(r"^\s*(\d+)")


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class VideoMetadata:
    """
    Descriptive fields of a single video, as shown on its watch page.

    frozen=True: built once from a page and never mutated afterwards, which
    matters because instances live in a shared cache.

    Attributes:
        title:          Video title ("Unknown Title" when missing).
        author:         Channel display name ("Unknown Author" when missing).
        length_seconds: Duration in whole seconds (0 when unknown).
        view_count:     View count (0 when unknown).
        description:    Full description text.
        video_id:       The 11-character ID reported by the page.
        channel_id:     YouTube's channel identifier (e.g. "UC...").
        keywords:       Tags the uploader attached to the video.
    """
    title: str
    author: str
    length_seconds: int
    view_count: int
    description: str
    video_id: str = ""
    channel_id: str = ""
    keywords: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "videoId": self.video_id,
            "title": self.title,
            "author": self.author,
            "channelId": self.channel_id,
            "lengthSeconds": self.length_seconds,
            "viewCount": self.view_count,
            "description": self.description,
            "keywords": list(self.keywords),
        }


@dataclass(frozen=True)
class CaptionTrack:
    """
    One subtitle stream offered for a video.

    Attributes:
        base_url:        Absolute timedtext URL; a `fmt` parameter is added
                         when fetching.
        language_code:   e.g. "en", "de".
        kind:            "asr" for auto-generated captions, else usually None.
        is_translatable: Whether YouTube offers machine translation of it.
        name:            Display name, e.g. "English (auto-generated)".
    """
    base_url: str
    language_code: str | None = None
    kind: str | None = None
    is_translatable: bool | None = None
    name: str | None = None

    @property
    def is_auto_generated(self) -> bool:
        return self.kind == AUTO_GENERATED_KIND


@dataclass(frozen=True)
class VideoInfo:
    """The unit stored in the video-info cache."""
    metadata: VideoMetadata
    caption_tracks: tuple[CaptionTrack, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Playability
# ---------------------------------------------------------------------------

def classify_unplayable(reason: str) -> VideoInfoError:
    """
    Pick the error class for an unplayable video from YouTube's reason text.

    "age" → AGE_RESTRICTED, "region" / "country" → REGION_BLOCKED, anything
    else → PRIVATE.  Case-insensitive substring checks, in that order.
    """
    lowered = reason.lower()
    if "age" in lowered:
        return AgeRestrictedError(reason)
    if "region" in lowered or "country" in lowered:
        return RegionBlockedError(reason)
    return PrivateVideoError(reason)


def check_playability(player_response: PlayerResponse) -> None:
    """
    Raise unless playabilityStatus.status is "OK".

    A missing playabilityStatus counts as unplayable.

    Raises:
        AgeRestrictedError, RegionBlockedError, PrivateVideoError
    """
    status = player_response.playability_status
    if status is not None and status.status == PLAYABLE_STATUS:
        return
    reason = (status.reason if status else None) or "Video is not available"
    raise classify_unplayable(reason)


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

def _parse_count(raw: str | int | None) -> int:
    """Parse YouTube's stringly-typed counters; 0 when missing or garbled."""
    if raw is None:
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    match = _LEADING_INT.match(raw)
    return int(match.group(1)) if match else 0


def extract_metadata(player_response: PlayerResponse, video_id: str = "") -> VideoMetadata:
    """
    Build VideoMetadata from the player response's videoDetails.

    Args:
        player_response: A validated PlayerResponse.
        video_id:        Fallback ID when the page doesn't report one.

    Raises:
        ParseError: If videoDetails is missing entirely.
    """
    details = player_response.video_details
    if details is None:
        raise ParseError("Video details not found")

    return VideoMetadata(
        title=details.title or "Unknown Title",
        author=details.author or "Unknown Author",
        length_seconds=_parse_count(details.length_seconds),
        view_count=_parse_count(details.view_count),
        description=details.short_description or "",
        video_id=details.video_id or video_id,
        channel_id=details.channel_id or "",
        keywords=tuple(details.keywords or ()),
    )


# ---------------------------------------------------------------------------
# Caption tracks
# ---------------------------------------------------------------------------

def _track_name(track: CaptionTrackSchema) -> str | None:
    if track.name is None:
        return None
    if track.name.simple_text:
        return track.name.simple_text
    if track.name.runs:
        return "".join(run.text or "" for run in track.name.runs) or None
    return None


def extract_caption_tracks(player_response: PlayerResponse) -> list[CaptionTrack]:
    """
    List the caption tracks that carry a usable source URL.

    Relative URLs are resolved against the site root.  A video without
    captions yields an empty list; that is not an error here.
    """
    captions = player_response.captions
    renderer = captions.player_captions_tracklist_renderer if captions else None
    raw_tracks = renderer.caption_tracks if renderer else None
    if not raw_tracks:
        return []

    tracks: list[CaptionTrack] = []
    for raw in raw_tracks:
        if not raw.base_url or not raw.base_url.strip():
            continue
        try:
            base_url = urljoin(SITE_ROOT, raw.base_url.strip())
        except ValueError:
            # e.g. an unbalanced "[" in the host part
            continue
        tracks.append(CaptionTrack(
            base_url=base_url,
            language_code=raw.language_code,
            kind=raw.kind,
            is_translatable=raw.is_translatable,
            name=_track_name(raw),
        ))
    return tracks
