"""
api.py — FastAPI app exposing the get_video_info operation over HTTP.

Endpoints:
    GET  /video/{video_id}        — Metadata plus transcript for one video.
    POST /tools/get_video_info    — Same operation, tool-call style JSON body.
    GET  /health                  — Health-check for load balancers / monitoring.

Run with:
    yt-info serve
    (or: uvicorn yt_video_info.api:app)

One VideoInfoService, with one shared httpx.AsyncClient, is created when the
app starts and closed when it stops.  Endpoints get it through the
get_service dependency, which tests override.

The global exception handler converts any VideoInfoError into
`{code, message, details?}` with the status code stored on the exception.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from yt_video_info import __version__
from yt_video_info.errors import VideoInfoError
from yt_video_info.extractor import VIDEO_ID_PATTERN
from yt_video_info.logs import configure_logging
from yt_video_info.service import VideoInfoService

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    async with VideoInfoService() as service:
        app.state.service = service
        yield


app = FastAPI(
    title="YouTube Video Info API",
    description="Extract YouTube video metadata and transcripts from public watch pages.",
    version=__version__,
    lifespan=lifespan,
)


def get_service(request: Request) -> VideoInfoService:
    return request.app.state.service


class GetVideoInfoArgs(BaseModel):
    """Arguments of the get_video_info tool call."""

    video_id: str = Field(
        description="The YouTube video ID (11 characters)",
        pattern=VIDEO_ID_PATTERN.pattern,
    )


# ---------------------------------------------------------------------------
# Global error handler
# ---------------------------------------------------------------------------

@app.exception_handler(VideoInfoError)
async def video_info_error_handler(request: Request, exc: VideoInfoError) -> JSONResponse:
    """
    Translate any VideoInfoError into an HTTP error response.

    Endpoint code just raises the right library exception; this handler
    picks the status from exc.http_status and the body from exc.to_dict().
    """
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/video/{video_id}")
async def get_video(
    video_id: str,
    service: VideoInfoService = Depends(get_service),
) -> JSONResponse:
    """
    Fetch metadata and, when available, the transcript of one video.

    **video_id** is the 11-character YouTube video identifier
    (e.g. `dQw4w9WgXcQ`).  A malformed ID is answered with 400 and code
    `INVALID_ID` before anything is fetched.

    A missing transcript is not an error: the body then has
    `"transcript": null` and an `error` string explaining why.
    """
    response = await service.get_video_info(video_id)
    return JSONResponse(content=response.to_dict())


@app.post("/tools/get_video_info")
async def call_get_video_info(
    args: GetVideoInfoArgs,
    service: VideoInfoService = Depends(get_service),
) -> JSONResponse:
    """
    Tool-call form of GET /video/{video_id}.

    The body is validated against the tool's input schema, so invalid
    parameters are rejected with 422 before any network activity.
    """
    response = await service.get_video_info(args.video_id)
    return JSONResponse(content=response.to_dict())


@app.get("/health")
async def health() -> dict:
    """Returns HTTP 200 with {"status": "ok"}."""
    return {"status": "ok"}
