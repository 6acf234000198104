#!/usr/bin/env python3
"""Gaze probe: run a timed left/right attention session."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

from .camera import OpenCvCamera
from .config import AppConfig, load_config, resolve_repo_path
from .detector import HaarFaceDetector
from .display import describe_verdict, load_stimulus
from .models import SessionSnapshot
from .server import ProbeHttpServer
from .session import ProbeSession

_LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gaze-probe",
        description="Sample face position for a fixed time and report which side was looked at more.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=("run", "serve"),
        default="run",
        help="run: one session on the console; serve: HTTP surface with POST /start",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to config.json")
    parser.add_argument("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--camera-index", type=int, default=None)
    parser.add_argument("--seconds", type=int, default=None, help="Session length in seconds")
    return parser


def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> None:
    if args.log_level:
        config.log_level = args.log_level
    if args.camera_index is not None:
        config.camera.camera_index = args.camera_index
    if args.seconds is not None:
        config.session.session_seconds = args.seconds


def _load_detector() -> Optional[HaarFaceDetector]:
    detector = HaarFaceDetector()
    if not detector.available:
        _LOGGER.error("Face detector unavailable (OpenCV Haar cascade not found); refusing to run")
        return None
    return detector


async def run_once(config: AppConfig) -> int:
    camera = OpenCvCamera(
        camera_index=config.camera.camera_index,
        width=config.camera.width,
        height=config.camera.height,
    )
    detector = _load_detector()
    if detector is None:
        return 1
    session = ProbeSession(camera, detector, settings=config.session.to_settings())
    session.subscribe(_countdown_logger())

    try:
        await camera.open()
    except RuntimeError as err:
        _LOGGER.warning("Camera unavailable: %s", err)

    try:
        session.start()
        finished = await session.wait_finished()
    finally:
        await session.aclose()
        await camera.close()

    print(f"{finished.tally.left} left vs {finished.tally.right} right")
    print(describe_verdict(finished.verdict))
    return 0


def _countdown_logger() -> Callable[[SessionSnapshot], None]:
    last_seconds: list[Optional[int]] = [None]

    def _log(snapshot: SessionSnapshot) -> None:
        if not snapshot.running or snapshot.seconds_remaining == last_seconds[0]:
            return
        last_seconds[0] = snapshot.seconds_remaining
        _LOGGER.info("Time left: %s s", snapshot.seconds_remaining)

    return _log


async def serve(config: AppConfig) -> int:
    camera = OpenCvCamera(
        camera_index=config.camera.camera_index,
        width=config.camera.width,
        height=config.camera.height,
    )
    detector = _load_detector()
    if detector is None:
        return 1
    session = ProbeSession(camera, detector, settings=config.session.to_settings())
    stimuli = (
        load_stimulus(_stimulus_path(config.display.left_image)),
        load_stimulus(_stimulus_path(config.display.right_image)),
    )
    server = ProbeHttpServer(
        session,
        host=config.display.host,
        port=config.display.port,
        screen_height=config.session.screen_height,
        stimuli=stimuli,
        jpeg_quality=config.display.jpeg_quality,
    )

    try:
        await camera.open()
    except RuntimeError as err:
        _LOGGER.warning("Camera unavailable: %s", err)

    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        server.stop()
        await session.aclose()
        await camera.close()
    return 0


def _stimulus_path(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return str(resolve_repo_path(value))


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(args.config)
    _apply_overrides(config, args)
    log_level_name = str(config.log_level).strip().upper()
    logging.basicConfig(level=getattr(logging, log_level_name, logging.INFO))

    if args.command == "serve":
        return asyncio.run(serve(config))
    return asyncio.run(run_once(config))


def cli() -> None:
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        _LOGGER.info("Interrupted")


if __name__ == "__main__":
    cli()
