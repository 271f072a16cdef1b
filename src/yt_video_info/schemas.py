"""
schemas.py — Pydantic models for the JSON shapes YouTube embeds and serves.

These describe an upstream we don't control, so every field is optional and
unknown fields are ignored: validation only rejects values of the wrong
*shape* (e.g. a list where an object belongs).  Field names are snake_case
in Python and camelCase on the wire via the alias generator.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class UpstreamModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# ---------------------------------------------------------------------------
# ytInitialPlayerResponse
# ---------------------------------------------------------------------------

class TextRun(UpstreamModel):
    text: str | None = None


class TrackName(UpstreamModel):
    simple_text: str | None = None
    runs: list[TextRun] | None = None


class CaptionTrackSchema(UpstreamModel):
    base_url: str | None = None
    name: TrackName | None = None
    language_code: str | None = None
    kind: str | None = None
    is_translatable: bool | None = None


class CaptionTracklistRenderer(UpstreamModel):
    caption_tracks: list[CaptionTrackSchema] | None = None


class Captions(UpstreamModel):
    player_captions_tracklist_renderer: CaptionTracklistRenderer | None = None


class VideoDetails(UpstreamModel):
    video_id: str | None = None
    title: str | None = None
    # YouTube sends the numeric fields as strings, but accept plain numbers.
    length_seconds: str | int | None = None
    keywords: list[str] | None = None
    channel_id: str | None = None
    short_description: str | None = None
    view_count: str | int | None = None
    author: str | None = None


class PlayabilityStatus(UpstreamModel):
    status: str | None = None
    reason: str | None = None


class PlayerResponse(UpstreamModel):
    """The subset of ytInitialPlayerResponse this project reads."""

    video_details: VideoDetails | None = None
    captions: Captions | None = None
    playability_status: PlayabilityStatus | None = None


# ---------------------------------------------------------------------------
# Caption payloads (json3 / srv3-as-JSON)
# ---------------------------------------------------------------------------

class EventSegment(UpstreamModel):
    utf8: str | None = None


class CaptionEvent(UpstreamModel):
    t_start_ms: float | None = None
    d_duration_ms: float | None = None
    segs: list[EventSegment] | None = None


class CaptionEntry(UpstreamModel):
    start: float | None = None
    text: str | None = None


class TranscriptPayload(UpstreamModel):
    """
    A timed-JSON caption document.

    `events` is YouTube's json3 layout; `captions` is a simpler
    `{start, text}` layout some endpoints return instead.
    """

    events: list[CaptionEvent] | None = None
    captions: list[CaptionEntry] | None = None
