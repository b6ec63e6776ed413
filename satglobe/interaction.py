"""
Interaction Controller

Selection state machine over the tracked objects:

    Idle         --select(a)-->  Selected(a)
    Selected(a)  --select(a)-->  Idle          (toggle)
    Selected(a)  --select(b)-->  Selected(b)
    any          --escape---->   Idle          (camera eases back to the default view)

Pointer clicks and name searches both resolve to select(). The selection
lives in an explicit SelectionState object so the controller can be driven
without a render loop.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Protocol, Tuple

import numpy as np

from satglobe.animation import FrameScheduler
from satglobe.config import (
    CAMERA_DEFAULT_VIEW,
    CAMERA_FOCUS_LERP,
    CAMERA_RESET_DURATION_MS,
    DEFAULT_COLOR,
    HIGHLIGHT_COLOR,
)
from satglobe.logging_config import get_logger
from satglobe.pipeline import TrackedObject
from satglobe.render import Camera, Renderer, lerp

logger = get_logger(__name__)

NOT_FOUND_MESSAGE = "No satellite found matching that name."


@dataclass
class SelectionState:
    """At most one selected object"""
    selected: Optional[TrackedObject] = None

    @property
    def is_idle(self) -> bool:
        return self.selected is None


class InfoPanel(Protocol):
    def show(self, info: Dict) -> None:
        ...

    def hide(self) -> None:
        ...


class Notifier(Protocol):
    def notify(self, message: str) -> None:
        ...


class LoggingInfoPanel:
    """Info surface that records what it shows and logs it"""

    def __init__(self):
        self.visible = False
        self.info: Optional[Dict] = None

    def show(self, info: Dict) -> None:
        self.visible = True
        self.info = dict(info)
        logger.info(f"Selected {info.get('name', 'Unknown')} (NORAD ID: {info.get('id', 'N/A')})")

    def hide(self) -> None:
        self.visible = False


class LoggingNotifier:
    def __init__(self):
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)
        logger.info(message)


class CameraTransition:
    """
    Eases the camera back to a fixed view over ``duration_ms``.

    Every step sets the camera position to lerp(start, destination, t) and
    pulls the orbit target toward ``target_destination`` by t * 0.1, where t
    is the elapsed fraction clamped to 1.
    """

    def __init__(self, camera: Camera, start_time: float,
                 destination=CAMERA_DEFAULT_VIEW, target_destination=(0.0, 0.0, 0.0),
                 duration_ms: float = CAMERA_RESET_DURATION_MS):
        self.camera = camera
        self.start_time = start_time
        self.start_position = camera.position.copy()
        self.destination = np.array(destination, dtype=float)
        self.target_destination = np.array(target_destination, dtype=float)
        self.duration_ms = duration_ms
        self.t = 0.0

    def step(self, frame_time: float) -> bool:
        """Advance to ``frame_time`` (seconds); returns True once finished."""
        elapsed_ms = (frame_time - self.start_time) * 1000.0
        self.t = min(max(elapsed_ms, 0.0) / self.duration_ms, 1.0) if self.duration_ms > 0 else 1.0

        self.camera.position[:] = lerp(self.start_position, self.destination, self.t)
        self.camera.target[:] = lerp(self.camera.target, self.target_destination, self.t * 0.1)
        return self.t >= 1.0

    @property
    def done(self) -> bool:
        return self.t >= 1.0


class InteractionController:
    """Drives selection, info display and camera focus"""

    def __init__(self, state: SelectionState, renderer: Renderer, camera: Camera,
                 scheduler: FrameScheduler,
                 info_panel: Optional[InfoPanel] = None,
                 notifier: Optional[Notifier] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.state = state
        self.renderer = renderer
        self.camera = camera
        self.scheduler = scheduler
        self.info_panel = info_panel or LoggingInfoPanel()
        self.notifier = notifier or LoggingNotifier()
        self._clock = clock
        self._objects: List[TrackedObject] = []
        self._by_handle: Dict[Hashable, TrackedObject] = {}

    def set_objects(self, objects: Iterable[TrackedObject]) -> None:
        self._objects = list(objects)
        self._by_handle = {obj.render_handle: obj for obj in self._objects}

    @property
    def objects(self) -> List[TrackedObject]:
        return self._objects

    def select(self, obj: TrackedObject) -> None:
        current = self.state.selected

        if current is obj:
            self.renderer.set_color(obj.render_handle, DEFAULT_COLOR)
            self.state.selected = None
            self.info_panel.hide()
            return

        if current is not None:
            self.renderer.set_color(current.render_handle, DEFAULT_COLOR)

        self.renderer.set_color(obj.render_handle, HIGHLIGHT_COLOR)
        self.state.selected = obj
        self.info_panel.show(obj.info)

        # Move toward the object without jumping onto it
        self.camera.position[:] = lerp(self.camera.position, obj.position * 2.0, CAMERA_FOCUS_LERP)
        self.camera.target[:] = obj.position

    def deselect(self) -> None:
        if self.state.selected is None:
            return
        self.renderer.set_color(self.state.selected.render_handle, DEFAULT_COLOR)
        self.state.selected = None
        self.info_panel.hide()

    def escape(self) -> CameraTransition:
        """Clear the selection and ease the camera back to the default view."""
        self.info_panel.hide()
        if self.state.selected is not None:
            self.renderer.set_color(self.state.selected.render_handle, DEFAULT_COLOR)
            self.state.selected = None

        transition = CameraTransition(self.camera, self._clock())

        def animate(frame_time: float) -> None:
            if not transition.step(frame_time):
                self.scheduler.request_frame(animate)

        self.scheduler.request_frame(animate)
        return transition

    def pointer(self, x: float, y: float, width: float, height: float) -> Optional[TrackedObject]:
        """Handle a click at pixel (x, y) in a viewport of ``width`` x ``height``."""
        return self.pointer_ndc(pixel_to_ndc(x, y, width, height))

    def pointer_ndc(self, ndc: Tuple[float, float]) -> Optional[TrackedObject]:
        handle = self.renderer.hit_test(ndc, self.camera)

        if handle is None:
            self.deselect()
            return None

        obj = self._by_handle.get(handle)
        if obj is not None:
            self.select(obj)
        return obj

    def search(self, query: str) -> Optional[TrackedObject]:
        """
        Select the first object (catalog order) whose name contains ``query``.

        Blank queries do nothing. When nothing matches, the notifier is told
        and the selection is left as it was.
        """
        needle = (query or "").strip().lower()
        if not needle:
            return None

        for obj in self._objects:
            if needle in obj.name.lower():
                self.select(obj)
                return obj

        self.notifier.notify(NOT_FOUND_MESSAGE)
        return None


def pixel_to_ndc(x: float, y: float, width: float, height: float) -> Tuple[float, float]:
    """Pixel coordinates (origin top-left) to normalized device coordinates."""
    return (x / width) * 2.0 - 1.0, -(y / height) * 2.0 + 1.0
