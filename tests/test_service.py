"""
test_service.py — Tests for the get_video_info orchestration.

The service talks to a FakeYouTube served through httpx.MockTransport, so
every request is recorded and nothing leaves the process.  Retries use a
recording sleep and each test gets fresh caches.

Covers:
    - Invalid IDs (no network activity)
    - Happy path, with and without a transcript
    - Unplayable videos, 404s and retry exhaustion
    - Caching of video info and transcripts
    - Caption format fallback and track preference
    - Malformed caption data that must not fail the call
"""

from __future__ import annotations

import asyncio
import json
from typing import Callable
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from yt_video_info.cache import Cache
from yt_video_info.errors import (
    AgeRestrictedError,
    InvalidVideoIdError,
    NetworkError,
    ParseError,
    PrivateVideoError,
    RateLimitedError,
    RegionBlockedError,
    UpstreamTimeoutError,
    VideoNotFoundError,
)
from yt_video_info.service import (
    NO_TRANSCRIPT_MESSAGE,
    TRANSCRIPT_EXHAUSTED_MESSAGE,
    TRANSCRIPT_FAILED_MESSAGE,
    VideoInfoResponse,
    VideoInfoService,
)

VIDEO_ID = "dQw4w9WgXcQ"
CAPTION_URL = "https://www.youtube.com/api/timedtext?v=dQw4w9WgXcQ&lang=en"

JSON3_BODY = json.dumps({
    "events": [
        {"tStartMs": 0, "segs": [{"utf8": "Never gonna"}]},
        {"tStartMs": 1500, "segs": [{"utf8": "give you up"}]},
    ],
})
VTT_BODY = "WEBVTT\n\n00:00:01.500 --> 00:00:03.000\nHello world\n"


# ---------------------------------------------------------------------------
# Helpers — a fake YouTube
# ---------------------------------------------------------------------------

class RecordingSleep:
    """Async stand-in for asyncio.sleep that records delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _player_response(
    *,
    status: str = "OK",
    reason: str | None = None,
    tracks: list[dict] | None = None,
) -> dict:
    if tracks is None:
        tracks = [{"baseUrl": CAPTION_URL, "languageCode": "en", "name": {"simpleText": "English"}}]
    playability: dict = {"status": status}
    if reason:
        playability["reason"] = reason
    return {
        "playabilityStatus": playability,
        "videoDetails": {
            "videoId": VIDEO_ID,
            "title": "Rick Astley - Never Gonna Give You Up",
            "author": "Rick Astley",
            "lengthSeconds": "213",
            "viewCount": "1500000000",
            "shortDescription": "The official video",
        },
        "captions": {"playerCaptionsTracklistRenderer": {"captionTracks": tracks}},
    }


def _watch_page(player_response: dict) -> str:
    return (
        "<html><body><script>"
        f"var ytInitialPlayerResponse = {json.dumps(player_response)};"
        "</script></body></html>"
    )


Responder = Callable[[httpx.Request], httpx.Response]


class FakeYouTube:
    """
    Routes watch-page and timedtext requests to queued responders.

    `pages` is consumed one per watch request (the last one repeats);
    `captions` maps a fmt value to a responder.
    """

    def __init__(
        self,
        pages: list[Responder] | None = None,
        captions: dict[str, Responder] | None = None,
    ) -> None:
        self.pages = pages or [_ok_page()]
        self.captions = captions if captions is not None else {"json3": _text(JSON3_BODY)}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/watch":
            responder = self.pages[0] if len(self.pages) == 1 else self.pages.pop(0)
            return responder(request)
        if request.url.path == "/api/timedtext":
            fmt = parse_qs(urlsplit(str(request.url)).query).get("fmt", [""])[0]
            return self.captions.get(fmt, _status(404))(request)
        return httpx.Response(404)

    @property
    def page_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/watch"]

    @property
    def caption_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/api/timedtext"]


def _text(body: str, status: int = 200) -> Responder:
    return lambda request: httpx.Response(status, text=body)


def _status(status: int) -> Responder:
    return lambda request: httpx.Response(status, text="")


def _ok_page(**kwargs) -> Responder:
    return _text(_watch_page(_player_response(**kwargs)))


def _raise(exc_type: type[httpx.TransportError]) -> Responder:
    def responder(request: httpx.Request) -> httpx.Response:
        raise exc_type("boom", request=request)
    return responder


def _make_service(fake: FakeYouTube) -> tuple[VideoInfoService, RecordingSleep]:
    sleep = RecordingSleep()
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    service = VideoInfoService(
        client,
        video_cache=Cache(3600),
        transcript_cache=Cache(7200),
        sleep=sleep,
    )
    return service, sleep


def _get(service: VideoInfoService, video_id: str = VIDEO_ID) -> VideoInfoResponse:
    return asyncio.run(service.get_video_info(video_id))


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

class TestInvalidInput:
    """Malformed IDs fail before any request is made."""

    @pytest.mark.parametrize("video_id", ["short", "", "dQw4w9WgXc!", "dQw4w9WgXcQQ"])
    def test_invalid_id(self, video_id: str) -> None:
        fake = FakeYouTube()
        service, _ = _make_service(fake)

        with pytest.raises(InvalidVideoIdError):
            _get(service, video_id)

        assert fake.requests == []


# ---------------------------------------------------------------------------
# Happy paths
# ---------------------------------------------------------------------------

class TestHappyPath:
    """Metadata plus transcript, or metadata plus an explanation."""

    def test_metadata_and_transcript(self) -> None:
        fake = FakeYouTube()
        service, _ = _make_service(fake)

        response = _get(service)

        assert response.metadata.title == "Rick Astley - Never Gonna Give You Up"
        assert response.metadata.length_seconds == 213
        assert response.transcript is not None
        assert response.transcript.text == "Never gonna give you up"
        assert [s.start for s in response.transcript.segments] == [0.0, 1.5]
        assert response.error is None
        assert "error" not in response.to_dict()

    def test_page_request_headers(self) -> None:
        fake = FakeYouTube()
        service, _ = _make_service(fake)

        _get(service)

        page = fake.page_requests[0]
        assert str(page.url) == f"https://www.youtube.com/watch?v={VIDEO_ID}"
        assert "Mozilla/5.0" in page.headers["user-agent"]
        assert page.headers["accept-language"].startswith("en-US")
        assert fake.caption_requests[0].headers["referer"] == "https://www.youtube.com/"

    def test_no_caption_tracks(self) -> None:
        fake = FakeYouTube(pages=[_ok_page(tracks=[])])
        service, _ = _make_service(fake)

        response = _get(service)

        assert response.transcript is None
        assert response.error == NO_TRANSCRIPT_MESSAGE
        assert fake.caption_requests == []

    def test_to_json_shape(self) -> None:
        service, _ = _make_service(FakeYouTube())
        data = json.loads(_get(service).to_json())

        assert set(data) == {"metadata", "transcript"}
        assert data["metadata"]["viewCount"] == 1500000000
        assert data["transcript"]["segments"][1] == {"start": 1.5, "text": "give you up"}


# ---------------------------------------------------------------------------
# Video-level failures
# ---------------------------------------------------------------------------

class TestVideoFailures:
    """Errors that abort the whole request."""

    @pytest.mark.parametrize("reason, error_cls", [
        ("Sign in to confirm your age", AgeRestrictedError),
        ("The uploader has not made this video available in your country", RegionBlockedError),
        ("This video is private", PrivateVideoError),
    ])
    def test_unplayable(self, reason: str, error_cls: type) -> None:
        fake = FakeYouTube(pages=[_ok_page(status="LOGIN_REQUIRED", reason=reason)])
        service, _ = _make_service(fake)

        with pytest.raises(error_cls):
            _get(service)

        assert fake.caption_requests == []

    def test_not_found_is_not_retried(self) -> None:
        fake = FakeYouTube(pages=[_status(404)])
        service, sleep = _make_service(fake)

        with pytest.raises(VideoNotFoundError) as exc_info:
            _get(service)

        assert exc_info.value.code.value == "NOT_FOUND"
        assert len(fake.page_requests) == 1
        assert sleep.delays == []

    def test_server_errors_exhaust_retries(self) -> None:
        fake = FakeYouTube(pages=[_status(500)])
        service, sleep = _make_service(fake)

        with pytest.raises(NetworkError) as exc_info:
            _get(service)

        assert exc_info.value.code.value == "NETWORK_ERROR"
        assert exc_info.value.details == {"status": 500}
        assert len(fake.page_requests) == 4
        assert len(sleep.delays) == 3

    def test_rate_limited(self) -> None:
        service, _ = _make_service(FakeYouTube(pages=[_status(429)]))

        with pytest.raises(RateLimitedError) as exc_info:
            _get(service)

        assert exc_info.value.code.value == "RATE_LIMITED"

    def test_timeout(self) -> None:
        service, _ = _make_service(FakeYouTube(pages=[_raise(httpx.ReadTimeout)]))

        with pytest.raises(UpstreamTimeoutError):
            _get(service)

    def test_connection_error(self) -> None:
        service, _ = _make_service(FakeYouTube(pages=[_raise(httpx.ConnectError)]))

        with pytest.raises(NetworkError) as exc_info:
            _get(service)

        assert exc_info.value.code.value == "NETWORK_ERROR"

    def test_transient_failure_then_success(self) -> None:
        fake = FakeYouTube(pages=[_status(503), _ok_page()])
        service, sleep = _make_service(fake)

        response = _get(service)

        assert response.metadata.author == "Rick Astley"
        assert len(fake.page_requests) == 2
        assert len(sleep.delays) == 1

    def test_page_without_player_response(self) -> None:
        fake = FakeYouTube(pages=[_text("<html><body>consent wall</body></html>")])
        service, _ = _make_service(fake)

        with pytest.raises(ParseError, match="Could not extract video data"):
            _get(service)

        assert len(fake.page_requests) == 1


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------

class TestCaching:
    """Repeated requests are served from the caches."""

    def test_second_request_is_cached(self) -> None:
        fake = FakeYouTube()
        service, _ = _make_service(fake)

        async def twice() -> tuple[VideoInfoResponse, VideoInfoResponse]:
            return await service.get_video_info(VIDEO_ID), await service.get_video_info(VIDEO_ID)

        first, second = asyncio.run(twice())

        assert first == second
        assert len(fake.page_requests) == 1
        assert len(fake.caption_requests) == 1

    def test_failures_are_not_cached(self) -> None:
        fake = FakeYouTube(pages=[_text("<html></html>"), _ok_page()])
        service, _ = _make_service(fake)

        with pytest.raises(ParseError):
            _get(service)
        assert service.video_cache.get(VIDEO_ID) is None

        assert _get(service).metadata.title == "Rick Astley - Never Gonna Give You Up"

    def test_transcript_cached_by_base_url(self) -> None:
        fake = FakeYouTube()
        service, _ = _make_service(fake)

        _get(service)

        assert service.transcript_cache.get(CAPTION_URL) is not None


# ---------------------------------------------------------------------------
# Transcript fallback
# ---------------------------------------------------------------------------

class TestTranscriptFallback:
    """Format fallback and track preference."""

    def test_falls_through_formats_to_vtt(self) -> None:
        fake = FakeYouTube(captions={
            "json3": _status(500),
            "srv3": _text("garbage that is neither JSON nor markup"),
            "vtt": _text(VTT_BODY),
        })
        service, sleep = _make_service(fake)

        response = _get(service)

        assert response.transcript is not None
        assert response.transcript.text == "Hello world"
        fmts = [parse_qs(urlsplit(str(r.url)).query)["fmt"][0] for r in fake.caption_requests]
        assert fmts == ["json3", "json3", "json3", "srv3", "vtt"]
        assert len(sleep.delays) == 2

    def test_all_formats_fail(self) -> None:
        fake = FakeYouTube(captions={"json3": _text(""), "srv3": _text("nope"), "vtt": _text("WEBVTT\n\n")})
        service, _ = _make_service(fake)

        response = _get(service)

        assert response.transcript is None
        assert response.error == TRANSCRIPT_EXHAUSTED_MESSAGE
        assert response.to_dict()["error"] == TRANSCRIPT_EXHAUSTED_MESSAGE
        assert response.metadata.title == "Rick Astley - Never Gonna Give You Up"

    def test_existing_fmt_parameter_is_replaced(self) -> None:
        tracks = [{"baseUrl": CAPTION_URL + "&fmt=srv1"}]
        fake = FakeYouTube(pages=[_ok_page(tracks=tracks)])
        service, _ = _make_service(fake)

        _get(service)

        query = parse_qs(urlsplit(str(fake.caption_requests[0].url)).query)
        assert query["fmt"] == ["json3"]

    def test_manual_track_preferred_over_asr(self) -> None:
        tracks = [
            {"baseUrl": "https://www.youtube.com/api/timedtext?lang=en&kind=asr", "kind": "asr"},
            {"baseUrl": "https://www.youtube.com/api/timedtext?lang=de", "languageCode": "de"},
        ]
        fake = FakeYouTube(pages=[_ok_page(tracks=tracks)])
        service, _ = _make_service(fake)

        _get(service)

        assert parse_qs(urlsplit(str(fake.caption_requests[0].url)).query)["lang"] == ["de"]


# ---------------------------------------------------------------------------
# Malformed upstream data
# ---------------------------------------------------------------------------

class TestMalformedUpstream:
    """Bad caption data costs the transcript, never the whole call."""

    def test_unresolvable_caption_url(self) -> None:
        fake = FakeYouTube(pages=[_ok_page(tracks=[{"baseUrl": "https://[bad/api/timedtext?v=x"}])])
        service, _ = _make_service(fake)

        response = _get(service)

        assert response.metadata.title == "Rick Astley - Never Gonna Give You Up"
        assert response.transcript is None
        assert response.error == NO_TRANSCRIPT_MESSAGE
        assert fake.caption_requests == []

    def test_deeply_nested_caption_body(self) -> None:
        fake = FakeYouTube(captions={"json3": _text("[" * 100_000 + "]" * 100_000)})
        service, _ = _make_service(fake)

        response = _get(service)

        assert response.transcript is None
        assert response.error == TRANSCRIPT_EXHAUSTED_MESSAGE

    def test_unexpected_transcript_failure(self) -> None:
        def explode(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("unexpected")

        fake = FakeYouTube(captions={"json3": explode})
        service, _ = _make_service(fake)

        response = _get(service)

        assert response.transcript is None
        assert response.error == TRANSCRIPT_FAILED_MESSAGE
        assert response.metadata.author == "Rick Astley"
