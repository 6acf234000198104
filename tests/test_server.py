import asyncio
import json

import pytest

from gaze_probe.models import DetectionResult
from gaze_probe.server import HttpResponse, ProbeHttpServer, parse_request_line
from gaze_probe.session import ProbeSession, SessionSettings


class _Camera:
    async def capture(self) -> object:
        return object()


class _Detector:
    async def detect_faces(self, image: object) -> DetectionResult:
        return DetectionResult()


def _server() -> tuple[ProbeHttpServer, ProbeSession]:
    settings = SessionSettings(countdown_interval_s=3600.0, sample_interval_s=3600.0, screen_width=320.0)
    session = ProbeSession(_Camera(), _Detector(), settings=settings)
    return ProbeHttpServer(session, screen_height=120), session


def test_status_and_start_routes() -> None:
    async def scenario() -> None:
        server, session = _server()

        response = await server.handle_request("GET", "/status")
        assert response.status == 200
        assert response.content_type == "application/json"
        assert json.loads(response.body)["state"] == "idle"

        response = await server.handle_request("POST", "/start")
        payload = json.loads(response.body)
        assert payload["started"] is True
        assert payload["state"] == "running"
        assert payload["seconds_remaining"] == 10

        response = await server.handle_request("POST", "/start?again=1")
        assert json.loads(response.body)["started"] is False
        await session.aclose()

    asyncio.run(scenario())


def test_frame_route_returns_jpeg() -> None:
    async def scenario() -> None:
        server, _session = _server()
        response = await server.handle_request("GET", "/frame.jpg")
        assert response.status == 200
        assert response.content_type == "image/jpeg"
        assert response.body[:2] == b"\xff\xd8"

    asyncio.run(scenario())


def test_unknown_route_and_wrong_method() -> None:
    async def scenario() -> None:
        server, _session = _server()
        assert (await server.handle_request("GET", "/nope")).status == 404
        assert (await server.handle_request("GET", "/start")).status == 405
        assert (await server.handle_request("POST", "/status")).status == 405

    asyncio.run(scenario())


def test_request_line_parsing() -> None:
    assert parse_request_line(b"get /status HTTP/1.1\r\n") == ("GET", "/status")
    for line in (b"GET\r\n", b"GET /status\r\n", b"GET /status FTP/1.0\r\n"):
        with pytest.raises(ValueError):
            parse_request_line(line)


def test_response_encoding() -> None:
    raw = HttpResponse(404, b"Not Found").encode()
    head, body = raw.split(b"\r\n\r\n", 1)
    lines = head.split(b"\r\n")
    assert lines[0] == b"HTTP/1.1 404 Not Found"
    assert b"Content-Length: 9" in lines
    assert b"Connection: close" in lines
    assert body == b"Not Found"


def test_stream_request_is_routed() -> None:
    async def scenario() -> None:
        server, session = _server()

        reader = asyncio.StreamReader()
        reader.feed_data(b"POST /start HTTP/1.1\r\nHost: probe\r\nContent-Length: 0\r\n\r\n")
        reader.feed_eof()
        response = await server._read_and_route(reader)
        assert response.status == 200
        assert json.loads(response.body)["started"] is True

        garbage = asyncio.StreamReader()
        garbage.feed_data(b"hello\r\n")
        garbage.feed_eof()
        assert (await server._read_and_route(garbage)).status == 400

        empty = asyncio.StreamReader()
        empty.feed_eof()
        assert await server._read_and_route(empty) is None
        await session.aclose()

    asyncio.run(scenario())
