"""HTTP control and rendering surface for a probe session."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Optional, Sequence

import numpy as np

from .display import encode_jpeg, render_frame
from .session import ProbeSession

_LOGGER = logging.getLogger(__name__)

STATUS_PATH = "/status"
START_PATH = "/start"
FRAME_PATH = "/frame.jpg"
READ_TIMEOUT_S = 2.0


@dataclass
class HttpResponse:
    status: int
    body: bytes
    content_type: str = "text/plain"

    def encode(self) -> bytes:
        head = (
            f"HTTP/1.1 {self.status} {HTTPStatus(self.status).phrase}\r\n"
            f"Content-Type: {self.content_type}\r\n"
            f"Content-Length: {len(self.body)}\r\n"
            "Cache-Control: no-store\r\n"
            "Connection: close\r\n"
            "\r\n"
        )
        return head.encode("ascii") + self.body


def _text_response(status: HTTPStatus) -> HttpResponse:
    return HttpResponse(int(status), status.phrase.encode("ascii"))


def _json_response(status: int, payload: dict[str, object]) -> HttpResponse:
    return HttpResponse(status, json.dumps(payload).encode("utf-8"), "application/json")


def parse_request_line(line: bytes) -> tuple[str, str]:
    """Split `METHOD /path HTTP/1.1` into (method, path). Raises ValueError."""
    parts = line.decode("iso-8859-1").split()
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        raise ValueError(f"malformed request line: {line!r}")
    return parts[0].upper(), parts[1]


class ProbeHttpServer:
    """One request per connection, HTTP/1.1 with Connection: close."""

    def __init__(
        self,
        session: ProbeSession,
        *,
        host: str = "0.0.0.0",
        port: int = 8090,
        screen_height: int = 450,
        stimuli: Sequence[Optional[np.ndarray]] = (None, None),
        jpeg_quality: int = 80,
    ) -> None:
        self._session = session
        self._host = str(host)
        self._port = int(port)
        self._screen_height = int(screen_height)
        self._stimuli = tuple(stimuli)
        self._jpeg_quality = int(jpeg_quality)
        self._server: Optional[asyncio.base_events.Server] = None

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self._handle_client,
            host=self._host,
            port=self._port,
        )
        _LOGGER.info("Probe HTTP surface ready (http://%s:%s)", self._host, self._port)

    def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            self._server = None

    async def handle_request(self, method: str, path: str) -> HttpResponse:
        route = path.split("?", 1)[0]
        if route == STATUS_PATH:
            if method != "GET":
                return _text_response(HTTPStatus.METHOD_NOT_ALLOWED)
            return _json_response(200, self._session.snapshot().to_dict())

        if route == START_PATH:
            if method != "POST":
                return _text_response(HTTPStatus.METHOD_NOT_ALLOWED)
            started = self._session.start()
            payload: dict[str, object] = {"started": started}
            payload.update(self._session.snapshot().to_dict())
            return _json_response(200, payload)

        if route == FRAME_PATH:
            if method != "GET":
                return _text_response(HTTPStatus.METHOD_NOT_ALLOWED)
            snapshot = self._session.snapshot()
            body = await asyncio.to_thread(self._render_jpeg, snapshot)
            return HttpResponse(200, body, "image/jpeg")

        return _text_response(HTTPStatus.NOT_FOUND)

    def _render_jpeg(self, snapshot) -> bytes:
        frame = render_frame(snapshot, self._screen_height, self._stimuli)
        return encode_jpeg(frame, self._jpeg_quality)

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            response = await self._read_and_route(reader)
        except Exception:  # noqa: BLE001
            _LOGGER.debug("HTTP request failed", exc_info=True)
            response = _text_response(HTTPStatus.INTERNAL_SERVER_ERROR)

        try:
            if response is not None:
                writer.write(response.encode())
                await writer.drain()
        except ConnectionError as err:
            _LOGGER.debug("HTTP client disconnected: %s", err)
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()

    async def _read_and_route(self, reader: asyncio.StreamReader) -> Optional[HttpResponse]:
        request_line = await asyncio.wait_for(reader.readline(), timeout=READ_TIMEOUT_S)
        if not request_line:
            return None
        try:
            method, path = parse_request_line(request_line)
        except ValueError:
            return _text_response(HTTPStatus.BAD_REQUEST)

        # Headers are ignored; requests carry no body.
        header_line = request_line
        while header_line not in (b"", b"\r\n", b"\n"):
            header_line = await asyncio.wait_for(reader.readline(), timeout=READ_TIMEOUT_S)

        return await self.handle_request(method, path)
