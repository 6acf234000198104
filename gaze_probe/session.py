"""Timed sampling session that decides which stimulus was looked at more."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .aggregator import SampleAggregator
from .camera import ImageSource
from .detector import FaceDetector
from .mapper import REFERENCE_WIDTH, average_face_x, map_to_screen
from .models import DetectionResult, Finished, Idle, Running, SessionSnapshot, SessionState

_LOGGER = logging.getLogger(__name__)

SessionListener = Callable[[SessionSnapshot], None]


class OverlapPolicy(str, Enum):
    """What the sampling driver does when the previous sample is still running."""

    SKIP = "skip"
    QUEUE = "queue"


@dataclass
class SessionSettings:
    session_seconds: int = 10
    countdown_interval_s: float = 1.0
    sample_interval_s: float = 0.5
    reference_width: float = REFERENCE_WIDTH
    screen_width: float = 800.0
    overlap_policy: OverlapPolicy = OverlapPolicy.SKIP

    def validate(self) -> None:
        if int(self.session_seconds) <= 0:
            raise ValueError(f"session_seconds must be positive, got {self.session_seconds}")
        if self.countdown_interval_s <= 0 or self.sample_interval_s <= 0:
            raise ValueError("countdown_interval_s and sample_interval_s must be positive")
        if self.reference_width <= 0:
            raise ValueError(f"reference_width must be positive, got {self.reference_width}")
        if self.screen_width < 0:
            raise ValueError(f"screen_width must not be negative, got {self.screen_width}")


class ProbeSession:
    """Idle -> Running -> Finished state machine driven by two asyncio tasks.

    - The countdown driver calls countdown_tick() every countdown_interval_s.
    - The sampling driver runs sampling_tick() every sample_interval_s.

    Every state mutation happens in a synchronous handler, so the two drivers
    can interleave freely without locks. Results of a sample that resolves
    after the session left Running (or was restarted) are dropped.
    """

    def __init__(
        self,
        image_source: ImageSource,
        detector: FaceDetector,
        *,
        settings: Optional[SessionSettings] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings or SessionSettings()
        self.settings.validate()
        self._image_source = image_source
        self._detector = detector
        self._clock = clock

        self._state: SessionState = Idle()
        self._aggregator = SampleAggregator()
        self._screen_width = float(self.settings.screen_width)
        self._sample_x = self._screen_width / 2.0
        self._generation = 0
        self.samples_attempted = 0
        self.samples_failed = 0

        self._countdown_task: Optional[asyncio.Task[None]] = None
        self._sampling_task: Optional[asyncio.Task[None]] = None
        self._sample_task: Optional[asyncio.Task[bool]] = None
        self._listeners: list[SessionListener] = []
        self._finished_waiters: list[asyncio.Future[Finished]] = []

    # ------------------------------------------------------------------
    # Control surface

    def current_state(self) -> SessionState:
        return self._state

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            sample_x=self._sample_x,
            tally=self._aggregator.tally.copy(),
            screen_width=self._screen_width,
            samples_attempted=self.samples_attempted,
            samples_failed=self.samples_failed,
        )

    @property
    def screen_width(self) -> float:
        return self._screen_width

    def set_screen_width(self, width: float) -> None:
        if width < 0:
            raise ValueError(f"screen width must not be negative, got {width}")
        self._screen_width = float(width)
        self._sample_x = max(0.0, min(self._screen_width, self._sample_x))
        self._notify()

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a state-change listener. Returns the unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def start(self) -> bool:
        """Start a new session. Returns False if one is already running."""
        if isinstance(self._state, Running):
            _LOGGER.debug("Session already running, start ignored")
            return False

        loop = asyncio.get_running_loop()
        self._cancel_drivers()
        self._generation += 1
        self._aggregator.reset()
        self._sample_x = self._screen_width / 2.0
        self.samples_attempted = 0
        self.samples_failed = 0
        self._state = Running(
            seconds_remaining=int(self.settings.session_seconds),
            started_at=self._clock(),
        )
        self._countdown_task = loop.create_task(
            self._countdown_loop(), name=f"gaze-probe-countdown-{self._generation}"
        )
        self._sampling_task = loop.create_task(
            self._sampling_loop(), name=f"gaze-probe-sampling-{self._generation}"
        )
        _LOGGER.info(
            "Session started (%ss, sampling every %.2fs)",
            self.settings.session_seconds,
            self.settings.sample_interval_s,
        )
        self._notify()
        return True

    def stop(self) -> None:
        """Tear the session down without a verdict. Pending waiters are cancelled."""
        self._cancel_drivers()
        for waiter in self._finished_waiters:
            if not waiter.done():
                waiter.cancel()
        self._finished_waiters.clear()
        if not isinstance(self._state, Running):
            return
        self._generation += 1
        self._state = Idle()
        _LOGGER.info("Session stopped before completion")
        self._notify()

    async def aclose(self) -> None:
        tasks = [
            task
            for task in (self._countdown_task, self._sampling_task, self._sample_task)
            if task is not None
        ]
        self.stop()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def wait_finished(self) -> Finished:
        """Wait for the current session to finish.

        Returns the last result right away if the session is already Finished.
        Cancelled by stop().
        """
        if isinstance(self._state, Finished):
            return self._state
        waiter: asyncio.Future[Finished] = asyncio.get_running_loop().create_future()
        self._finished_waiters.append(waiter)
        return await waiter

    # ------------------------------------------------------------------
    # Tick handlers

    def countdown_tick(self) -> None:
        state = self._state
        if not isinstance(state, Running):
            return
        remaining = state.seconds_remaining - 1
        if remaining > 0:
            self._state = Running(seconds_remaining=remaining, started_at=state.started_at)
            self._notify()
            return
        self._finish()

    async def sampling_tick(self) -> bool:
        """Capture, detect and record one sample. Returns True if a sample was counted."""
        if not isinstance(self._state, Running):
            return False

        generation = self._generation
        self.samples_attempted += 1
        try:
            image = await self._image_source.capture()
            result = await self._detector.detect_faces(image)
        except Exception as err:  # noqa: BLE001
            if generation == self._generation:
                self.samples_failed += 1
            _LOGGER.warning("Sample skipped: %s", err)
            return False

        if (generation != self._generation) or (not isinstance(self._state, Running)):
            _LOGGER.debug("Discarding detection result from an ended session")
            return False
        return self.apply_detection(result)

    def apply_detection(self, result: DetectionResult) -> bool:
        if not isinstance(self._state, Running):
            return False
        face_x = average_face_x(result)
        if face_x is None:
            return False

        normalized_x = map_to_screen(face_x, self.settings.reference_width, self._screen_width)
        self._sample_x = normalized_x
        self._aggregator.record(normalized_x, self._screen_width)
        _LOGGER.debug(
            "Sample faces=%s face_x=%.1f screen_x=%.1f tally=%s",
            len(result.faces),
            face_x,
            normalized_x,
            self._aggregator.tally,
        )
        self._notify()
        return True

    # ------------------------------------------------------------------
    # Drivers

    async def _countdown_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while isinstance(self._state, Running):
            next_at += self.settings.countdown_interval_s
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            self.countdown_tick()

    async def _sampling_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while isinstance(self._state, Running):
            next_at += self.settings.sample_interval_s
            await asyncio.sleep(max(0.0, next_at - loop.time()))

            if self.settings.overlap_policy == OverlapPolicy.QUEUE:
                await self.sampling_tick()
                continue

            if (self._sample_task is not None) and (not self._sample_task.done()):
                _LOGGER.debug("Previous sample still in flight, skipping tick")
                continue
            self._sample_task = loop.create_task(self.sampling_tick(), name="gaze-probe-sample")

    def _cancel_drivers(self) -> None:
        current = asyncio.current_task() if _loop_running() else None
        for attr in ("_countdown_task", "_sampling_task", "_sample_task"):
            task = getattr(self, attr)
            if task is not None and task is not current and not task.done():
                task.cancel()
            setattr(self, attr, None)

    def _finish(self) -> None:
        self._cancel_drivers()
        tally = self._aggregator.tally.copy()
        finished = Finished(verdict=self._aggregator.verdict(), tally=tally)
        self._state = finished
        _LOGGER.info(
            "Session finished: %s left vs %s right -> %s",
            tally.left,
            tally.right,
            finished.verdict.value,
        )
        for waiter in self._finished_waiters:
            if not waiter.done():
                waiter.set_result(finished)
        self._finished_waiters.clear()
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:  # noqa: BLE001
                _LOGGER.exception("Session listener failed")


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True
