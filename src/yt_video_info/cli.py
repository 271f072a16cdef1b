"""
cli.py — Command-line interface for yt-video-info.

Provides the `yt-info` command group (registered as a console script in
pyproject.toml):

    get    Fetch metadata and transcript for one video.
    serve  Run the HTTP API with uvicorn.

Usage examples:
    yt-info get dQw4w9WgXcQ
    yt-info get "https://youtu.be/dQw4w9WgXcQ" --format doc -o rick.md
    yt-info serve --port 8080

Logs go to stderr (enable with MCP_DEBUG=true); stdout only ever carries
the rendered result.
"""

from __future__ import annotations

import asyncio
import sys

import click

from yt_video_info.errors import VideoInfoError
from yt_video_info.extractor import parse_video_id
from yt_video_info.formatting import FORMATS, render
from yt_video_info.logs import configure_logging
from yt_video_info.service import VideoInfoResponse, VideoInfoService


async def _fetch(video_id: str) -> VideoInfoResponse:
    async with VideoInfoService() as service:
        return await service.get_video_info(video_id)


# ---------------------------------------------------------------------------
# CLI group — the top-level `yt-info` command
# ---------------------------------------------------------------------------

@click.group()
def main() -> None:
    """
    YouTube video info — metadata and transcripts from public watch pages.
    """
    configure_logging()


# ---------------------------------------------------------------------------
# Subcommand: get
# ---------------------------------------------------------------------------

@main.command()
@click.argument("video", metavar="URL_OR_ID")
@click.option(
    "--format", "-f",
    "fmt",                           # avoid shadowing the builtin "format"
    type=click.Choice(FORMATS, case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format: JSON response document, transcript text, or markdown document.",
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write output to a file instead of stdout.",
)
def get(video: str, fmt: str, output: str | None) -> None:
    """
    Fetch metadata and transcript for a YouTube video.

    VIDEO can be a full YouTube URL or an 11-character video ID.
    A missing transcript is reported in the output, not as a failure.
    """
    try:
        video_id = parse_video_id(video)
        response = asyncio.run(_fetch(video_id))
    except VideoInfoError as exc:
        # A clean message, no traceback: the message already says what broke.
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    text = render(response, fmt.lower())

    if output:
        with open(output, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.write("\n")
        click.echo(f"Output written to {output}", err=True)
    else:
        click.echo(text)


# ---------------------------------------------------------------------------
# Subcommand: serve
# ---------------------------------------------------------------------------

@main.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to listen on.")
def serve(host: str, port: int) -> None:
    """
    Run the HTTP API (GET /video/{video_id}, POST /tools/get_video_info).
    """
    import uvicorn

    uvicorn.run("yt_video_info.api:app", host=host, port=port)
