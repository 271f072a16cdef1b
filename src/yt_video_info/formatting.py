"""
formatting.py — Render a VideoInfoResponse for humans or machines.

    format_json()  The response document, pretty-printed (the default).
    format_text()  Just the transcript text, or the reason there is none.
    format_doc()   Markdown: metadata header plus timestamped paragraphs.
"""

from __future__ import annotations

from typing import Iterable

from yt_video_info.service import VideoInfoResponse
from yt_video_info.transcript import TranscriptSegment

FORMATS = ("json", "text", "doc")

# A new doc paragraph starts once a segment is this many seconds past the
# start of the current paragraph.
_DOC_PARAGRAPH_INTERVAL_SECS = 30


def format_json(response: VideoInfoResponse) -> str:
    return response.to_json()


def format_text(response: VideoInfoResponse) -> str:
    """
    Plain transcript text.

    When there is no transcript, the response's error string is returned
    instead so the caller always has something to show.
    """
    if response.transcript is None:
        return response.error or ""
    return response.transcript.text


def _seconds_to_mmss(seconds: float) -> str:
    """92.5 → "01:32".  Minutes don't wrap into hours (3661 → "61:01")."""
    mins, secs = divmod(int(seconds), 60)
    return f"{mins:02d}:{secs:02d}"


def _paragraphs(segments: Iterable[TranscriptSegment]) -> list[str]:
    paragraphs: list[str] = []
    current: list[str] = []
    paragraph_start: float | None = None

    for segment in segments:
        if paragraph_start is not None and segment.start - paragraph_start >= _DOC_PARAGRAPH_INTERVAL_SECS:
            paragraphs.append(f"**[{_seconds_to_mmss(paragraph_start)}]** {' '.join(current)}")
            current = []
            paragraph_start = None
        if paragraph_start is None:
            paragraph_start = segment.start
        current.append(segment.text)

    if current and paragraph_start is not None:
        paragraphs.append(f"**[{_seconds_to_mmss(paragraph_start)}]** {' '.join(current)}")
    return paragraphs


def format_doc(response: VideoInfoResponse) -> str:
    """
    Markdown document for reading.

    Layout:
        # Title
        *Author · MM:SS · N views*

        **[00:00]** first thirty seconds of speech ...

        **[00:31]** ...

    Without a transcript, the body is the error string in italics.
    """
    meta = response.metadata
    lines = [
        f"# {meta.title}",
        f"*{meta.author} · {_seconds_to_mmss(meta.length_seconds)} · {meta.view_count:,} views*",
    ]

    if response.transcript is None:
        lines.append(f"_{response.error or 'No transcript'}_")
    else:
        lines.extend(_paragraphs(response.transcript.segments))

    return "\n\n".join(lines)


def render(response: VideoInfoResponse, fmt: str = "json") -> str:
    """
    Dispatch on fmt ("json", "text" or "doc").

    Raises:
        ValueError: For any other fmt.
    """
    if fmt == "json":
        return format_json(response)
    if fmt == "text":
        return format_text(response)
    if fmt == "doc":
        return format_doc(response)
    raise ValueError(f"Unknown format {fmt!r}; expected 'json', 'text', or 'doc'")
