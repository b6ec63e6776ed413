"""
Render Collaborator

The Renderer protocol is the only rendering surface the pipeline and the
interaction controller depend on. HeadlessScene implements it in memory:
points are small spheres, hit tests cast a ray from the camera through the
pointer's normalized device coordinates, and render() only counts frames.
A GPU-backed renderer can be dropped in by implementing the same methods.

Render space is y-up and right handed; the globe sits at the origin.
"""

import itertools
import math
from dataclasses import dataclass, field
from typing import Dict, Hashable, Optional, Protocol, Sequence, Tuple

import numpy as np

from satglobe.config import CAMERA_FOV_DEG, CAMERA_START_POSITION, POINT_RADIUS, RENDER_EARTH_RADIUS

UP = np.array([0.0, 1.0, 0.0])


def lerp(start: np.ndarray, end: np.ndarray, t: float) -> np.ndarray:
    """Linear interpolation between two vectors."""
    return start + (end - start) * t


class Renderer(Protocol):
    def create_point(self, position: Sequence[float], color: int) -> Hashable:
        ...

    def set_position(self, handle: Hashable, position: Sequence[float]) -> None:
        ...

    def set_color(self, handle: Hashable, color: int) -> None:
        ...

    def hit_test(self, pointer: Tuple[float, float], camera: "Camera") -> Optional[Hashable]:
        ...

    def render(self, camera: "Camera") -> None:
        ...


@dataclass
class Camera:
    """Perspective camera orbiting ``target``"""
    position: np.ndarray = field(default_factory=lambda: np.array(CAMERA_START_POSITION, dtype=float))
    target: np.ndarray = field(default_factory=lambda: np.zeros(3))
    fov_deg: float = CAMERA_FOV_DEG
    aspect: float = 16.0 / 9.0

    def ray(self, ndc: Tuple[float, float]) -> Tuple[np.ndarray, np.ndarray]:
        """
        World-space ray through a point in normalized device coordinates.

        Args:
            ndc: (x, y), both in [-1, 1], y pointing up

        Returns:
            Tuple of (origin, unit direction)
        """
        forward = self.target - self.position
        forward = forward / np.linalg.norm(forward)

        right = np.cross(forward, UP)
        if np.linalg.norm(right) < 1e-12:
            # Looking straight up or down
            right = np.array([1.0, 0.0, 0.0])
        right = right / np.linalg.norm(right)
        up = np.cross(right, forward)

        tan_half = math.tan(math.radians(self.fov_deg) / 2.0)
        direction = forward + right * (ndc[0] * tan_half * self.aspect) + up * (ndc[1] * tan_half)
        return self.position.copy(), direction / np.linalg.norm(direction)


@dataclass
class _Body:
    position: np.ndarray
    radius: float
    color: Optional[int] = None


def ray_sphere_distance(origin: np.ndarray, direction: np.ndarray,
                        center: np.ndarray, radius: float) -> Optional[float]:
    """Distance along the ray to the first intersection with a sphere, if any."""
    oc = origin - center
    b = float(np.dot(oc, direction))
    c = float(np.dot(oc, oc)) - radius * radius
    disc = b * b - c
    if disc < 0:
        return None
    root = math.sqrt(disc)
    t = -b - root
    if t < 0:
        t = -b + root
    return t if t >= 0 else None


class HeadlessScene:
    """In-memory Renderer implementation"""

    def __init__(self, point_radius: float = POINT_RADIUS):
        self.point_radius = point_radius
        self.frames_rendered = 0
        self._bodies: Dict[int, _Body] = {}
        self._ids = itertools.count(1)

    def add_globe(self, radius: float = RENDER_EARTH_RADIUS) -> int:
        """Add the (uncolored) Earth sphere at the origin; it occludes points behind it."""
        handle = next(self._ids)
        self._bodies[handle] = _Body(np.zeros(3), radius)
        return handle

    def create_point(self, position: Sequence[float], color: int) -> int:
        handle = next(self._ids)
        self._bodies[handle] = _Body(np.array(position, dtype=float), self.point_radius, color)
        return handle

    def set_position(self, handle: int, position: Sequence[float]) -> None:
        self._bodies[handle].position[:] = position

    def set_color(self, handle: int, color: int) -> None:
        self._bodies[handle].color = color

    def position_of(self, handle: int) -> np.ndarray:
        return self._bodies[handle].position.copy()

    def color_of(self, handle: int) -> Optional[int]:
        return self._bodies[handle].color

    def __len__(self) -> int:
        return len(self._bodies)

    def hit_test(self, pointer: Tuple[float, float], camera: Camera) -> Optional[int]:
        """Nearest body intersected by the pointer ray, or None."""
        origin, direction = camera.ray(pointer)
        nearest, nearest_t = None, math.inf
        for handle, body in self._bodies.items():
            t = ray_sphere_distance(origin, direction, body.position, body.radius)
            if t is not None and t < nearest_t:
                nearest, nearest_t = handle, t
        return nearest

    def render(self, camera: Camera) -> None:
        self.frames_rendered += 1
