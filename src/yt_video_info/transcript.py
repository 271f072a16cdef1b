"""
transcript.py — Caption payload parsing and caption track selection.

YouTube's timedtext endpoint serves the same captions in several encodings,
chosen with the `fmt` query parameter.  The orchestrator asks for them in
TRANSCRIPT_FORMATS order and feeds each body to parse_transcript_payload():

    json3 / srv3  → parse_timed_json()   (falls back to parse_xml() when the
                                          body isn't the JSON we expect)
    vtt           → parse_vtt()

Every parser returns a Transcript with at least one segment or raises
ParseError; an empty transcript is never a valid result.
"""

from __future__ import annotations

import html
import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import ValidationError

from yt_video_info.errors import ParseError
from yt_video_info.metadata import CaptionTrack
from yt_video_info.schemas import TranscriptPayload

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Encodings requested from the timedtext endpoint, most preferred first.
TRANSCRIPT_FORMATS: tuple[str, ...] = ("json3", "srv3", "vtt")

# Inline caption markup: <text start="1.23" dur="2.0">Hello</text>
_XML_TEXT_PATTERN = re.compile(r"<text[^>]*start=\"([^\"]*)\"[^>]*>(.*?)</text>", re.DOTALL)

# Cue boundaries are blank lines.
_VTT_CUE_SEPARATOR = re.compile(r"\n\s*\n+")
_VTT_TIMESTAMP = re.compile(r"(\d{2}):(\d{2}):(\d{2}\.\d{3})")


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TranscriptSegment:
    """One caption cue: start time in seconds and its trimmed text."""
    start: float
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "text": self.text}


@dataclass(frozen=True)
class Transcript:
    """
    A parsed transcript.

    Attributes:
        text:     All segment texts joined with single spaces.
        segments: Non-empty, in the order the upstream emitted them.
    """
    text: str
    segments: tuple[TranscriptSegment, ...]

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[float, str]]) -> Transcript:
        """
        Build a Transcript from (start, raw_text) pairs.

        Texts are trimmed and whitespace-only ones dropped.

        Raises:
            ParseError: If nothing is left.
        """
        segments = tuple(
            TranscriptSegment(start=start, text=text.strip())
            for start, text in pairs
            if text and text.strip()
        )
        if not segments:
            raise ParseError("Could not parse transcript format")
        return cls(text=" ".join(segment.text for segment in segments), segments=segments)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "segments": [segment.to_dict() for segment in self.segments],
        }


# ---------------------------------------------------------------------------
# Timed JSON (json3 / srv3)
# ---------------------------------------------------------------------------

def _event_pairs(payload: TranscriptPayload) -> list[tuple[float, str]]:
    pairs: list[tuple[float, str]] = []
    for event in payload.events or ():
        # Events without segs are non-text cues (music markers, window
        # styling) and carry nothing to read.
        if not event.segs:
            continue
        text = "".join(seg.utf8 for seg in event.segs if seg.utf8)
        pairs.append(((event.t_start_ms or 0) / 1000, text))
    return pairs


def _caption_pairs(payload: TranscriptPayload) -> list[tuple[float, str]]:
    return [
        (caption.start or 0.0, caption.text)
        for caption in payload.captions or ()
        if caption.text
    ]


def parse_timed_json(text: str) -> Transcript:
    """
    Parse a json3-style caption document.

    `events[]` is preferred; `captions[]` is only consulted when events
    produced no text.  Bodies that aren't valid JSON of that shape are
    handed to parse_xml(), since srv3 usually comes back as markup.

    Raises:
        ParseError: If no branch yields a non-empty segment.
    """
    try:
        payload = TranscriptPayload.model_validate(json.loads(text))
    except (json.JSONDecodeError, ValidationError, ValueError, RecursionError):
        # RecursionError: nesting deeper than the decoder allows.
        return parse_xml(text)

    pairs = [pair for pair in _event_pairs(payload) if pair[1].strip()]
    if not pairs:
        pairs = _caption_pairs(payload)
    return Transcript.from_pairs(pairs)


# ---------------------------------------------------------------------------
# Inline markup (srv1 / srv3 served as XML)
# ---------------------------------------------------------------------------

def decode_entities(text: str) -> str:
    """
    Decode character references such as &amp; &#39; &#x2F; in caption text.

    Handles every HTML5 named reference plus decimal and hex numeric ones.
    """
    return html.unescape(text)


def parse_xml(text: str) -> Transcript:
    """
    Parse `<text start="...">...</text>` spans; `start` is in seconds.

    Spans with an unparsable start are skipped.

    Raises:
        ParseError: If no span yields text.
    """
    pairs: list[tuple[float, str]] = []
    for match in _XML_TEXT_PATTERN.finditer(text):
        try:
            start = float(match.group(1))
        except ValueError:
            continue
        pairs.append((start, decode_entities(match.group(2))))
    return Transcript.from_pairs(pairs)


# ---------------------------------------------------------------------------
# WebVTT
# ---------------------------------------------------------------------------

def parse_vtt_timestamp(value: str) -> float:
    """Convert "HH:MM:SS.mmm" to seconds."""
    hours, minutes, seconds = value.split(":")
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_vtt(text: str) -> Transcript:
    """
    Parse a WebVTT document.

    Cues are separated by blank lines.  The WEBVTT header block and empty
    cues are skipped; a cue's first line must hold the start timestamp and
    the remaining lines are joined with spaces as its text.

    Raises:
        ParseError: If no cue yields text.
    """
    pairs: list[tuple[float, str]] = []
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    for cue in _VTT_CUE_SEPARATOR.split(normalized):
        cue = cue.strip()
        if not cue or cue.startswith("WEBVTT"):
            continue
        lines = cue.split("\n")
        if len(lines) < 2:
            continue
        match = _VTT_TIMESTAMP.search(lines[0])
        if match is None:
            continue
        start = parse_vtt_timestamp(match.group(0))
        pairs.append((start, " ".join(line.strip() for line in lines[1:])))

    try:
        return Transcript.from_pairs(pairs)
    except ParseError:
        raise ParseError("Could not parse VTT transcript format") from None


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

def parse_transcript_payload(text: str, fmt: str) -> Transcript:
    """
    Parse a caption body fetched with the given `fmt` value.

    Raises:
        ParseError: If the body yields no segments in that format.
    """
    if fmt == "vtt":
        return parse_vtt(text)
    return parse_timed_json(text)


def with_format(base_url: str, fmt: str) -> str:
    """Return base_url with its `fmt` query parameter set to fmt."""
    parts = urlsplit(base_url)
    query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != "fmt"]
    query.append(("fmt", fmt))
    return urlunsplit(parts._replace(query=urlencode(query)))


# ---------------------------------------------------------------------------
# Track selection
# ---------------------------------------------------------------------------

def select_caption_track(tracks: Sequence[CaptionTrack]) -> CaptionTrack | None:
    """
    Pick the track to transcribe.

    Prefers the first manually authored track (kind != "asr"), falls back to
    the first track of any kind, and returns None for an empty list.
    """
    for track in tracks:
        if not track.is_auto_generated:
            return track
    return tracks[0] if tracks else None
