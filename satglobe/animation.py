"""
Animation Loop

A cooperative, single-threaded frame loop. Each tick recomputes every
tracked object's position, runs the callbacks that asked for this frame and
submits one render pass. Callbacks that want to keep animating (camera
transitions) request the next frame again from inside the callback.
"""

import threading
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from satglobe.logging_config import get_logger
from satglobe.pipeline import PositionPipeline
from satglobe.render import Camera, Renderer

logger = get_logger(__name__)

FrameCallback = Callable[[float], None]


class FrameScheduler:
    """requestAnimationFrame-style callback queue"""

    def __init__(self):
        self._pending: List[FrameCallback] = []
        self._lock = threading.Lock()

    def request_frame(self, callback: FrameCallback) -> None:
        with self._lock:
            self._pending.append(callback)

    def run_frame(self, frame_time: float) -> int:
        """
        Run the callbacks queued before this frame.

        Callbacks requested while the frame runs are deferred to the next one.

        Returns:
            Number of callbacks run
        """
        with self._lock:
            callbacks, self._pending = self._pending, []
        for callback in callbacks:
            callback(frame_time)
        return len(callbacks)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)


class AnimationLoop:
    """
    Fixed-rate driver for the pipeline, frame callbacks and renderer.

    Args:
        pipeline: Position pipeline updated on every tick
        renderer: Receives one render() call per tick
        camera: Camera passed to the renderer
        scheduler: Frame callback queue
        before_tick: Optional hook run first on every tick (e.g. to install
            objects loaded in the background)
    """

    def __init__(self, pipeline: PositionPipeline, renderer: Renderer, camera: Camera,
                 scheduler: Optional[FrameScheduler] = None,
                 before_tick: Optional[Callable[[], None]] = None):
        self.pipeline = pipeline
        self.renderer = renderer
        self.camera = camera
        self.scheduler = scheduler or FrameScheduler()
        self.before_tick = before_tick
        self.ticks = 0

    def tick(self, now: Optional[datetime] = None, frame_time: Optional[float] = None) -> None:
        now = now or datetime.now(timezone.utc)
        frame_time = time.monotonic() if frame_time is None else frame_time

        if self.before_tick is not None:
            self.before_tick()
        self.pipeline.update(now)
        self.scheduler.run_frame(frame_time)
        self.renderer.render(self.camera)
        self.ticks += 1

    def run(self, stop_event: threading.Event, fps: float = 60.0,
            max_ticks: Optional[int] = None) -> int:
        """
        Tick at ``fps`` until ``stop_event`` is set (or ``max_ticks`` is reached).

        Returns:
            Number of ticks run by this call
        """
        interval = 1.0 / fps
        start_ticks = self.ticks
        logger.info(f"Animation loop started at {fps:g} fps")

        while not stop_event.is_set():
            started = time.monotonic()
            self.tick()
            if max_ticks is not None and self.ticks - start_ticks >= max_ticks:
                break
            stop_event.wait(max(0.0, interval - (time.monotonic() - started)))

        logger.info(f"Animation loop stopped after {self.ticks - start_ticks} ticks")
        return self.ticks - start_ticks
