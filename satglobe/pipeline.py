"""
Position Pipeline

Turns cached element-set records into tracked objects and keeps their
render-space positions current.

Each record is parsed once into a propagable handle when the session loads.
On every animation tick the handle is propagated to the current time and
the geodetic result is mapped onto a sphere around the render globe:

    r = base_radius + height / reference_radius
    x = r * cos(lat) * cos(lon)
    y = r * sin(lat)
    z = r * cos(lat) * sin(lon)

The same mapping is used for the initial placement and for every tick.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Hashable, Iterable, List, Optional, Tuple, Union

import numpy as np

from satglobe.catalog import index_by_id
from satglobe.config import DEFAULT_COLOR, EARTH_RADIUS_KM, RENDER_EARTH_RADIUS
from satglobe.exceptions import ElementSetError
from satglobe.logging_config import get_logger
from satglobe.models import CacheSnapshot, CatalogEntry, ElementSetRecord
from satglobe.propagation import Geodetic, Propagator
from satglobe.render import Renderer

logger = get_logger(__name__)

UNKNOWN_NAME = "Unknown"
UNKNOWN_ID = "N/A"

_LINE_SPLIT = re.compile(r"\r?\n")


@dataclass
class TrackedObject:
    """A satellite on the globe; owns its render handle"""
    name: str
    norad_id: Union[int, str]
    propagable: Any
    render_handle: Optional[Hashable]
    position: np.ndarray

    @property
    def info(self) -> Dict[str, Union[int, str]]:
        return {"name": self.name, "id": self.norad_id}


def split_element_set(text: str) -> Tuple[str, str]:
    """
    Split raw element-set text into its two trimmed, non-empty lines.

    Raises:
        ElementSetError: if fewer than two usable lines are present
    """
    lines = [line.strip() for line in _LINE_SPLIT.split(text)]
    lines = [line for line in lines if line]
    if len(lines) < 2:
        raise ElementSetError(f"Expected two element-set lines, got {len(lines)}")
    return lines[0], lines[1]


def geodetic_to_render(geodetic: Geodetic,
                       base_radius: float = RENDER_EARTH_RADIUS,
                       reference_radius: float = EARTH_RADIUS_KM) -> np.ndarray:
    """Map geodetic coordinates onto the render-space sphere (y up)."""
    r = base_radius + geodetic.height / reference_radius
    cos_lat = np.cos(geodetic.latitude)
    return np.array([
        r * cos_lat * np.cos(geodetic.longitude),
        r * np.sin(geodetic.latitude),
        r * cos_lat * np.sin(geodetic.longitude),
    ])


def compute_position(propagator: Propagator, propagable: Any, at_time: datetime,
                     base_radius: float = RENDER_EARTH_RADIUS,
                     reference_radius: float = EARTH_RADIUS_KM) -> Optional[np.ndarray]:
    """Render-space position at ``at_time``, or None if propagation gives no position."""
    geodetic = propagator.position_at(propagable, at_time)
    if geodetic is None:
        return None
    return geodetic_to_render(geodetic, base_radius, reference_radius)


def resolve_display_info(record: ElementSetRecord,
                         catalog_index: Dict[int, CatalogEntry]) -> Tuple[str, Union[int, str]]:
    """Name and id for the selection UI: record info, then catalog, then sentinels."""
    entry = catalog_index.get(record.id)
    info = record.info

    name = (info.satname if info else None) or (entry.name if entry else None) or UNKNOWN_NAME
    if info and info.satid is not None:
        norad_id = info.satid
    elif entry is not None:
        norad_id = entry.id
    else:
        norad_id = UNKNOWN_ID
    return name, norad_id


def prepare_tracked_objects(snapshot: CacheSnapshot,
                            propagator: Propagator,
                            catalog: Optional[Iterable[CatalogEntry]] = None,
                            now: Optional[datetime] = None,
                            base_radius: float = RENDER_EARTH_RADIUS) -> List[TrackedObject]:
    """
    Parse every successful record once and compute its initial position.

    Records carrying an error, with fewer than two element-set lines, rejected
    by the propagator, or without a position at ``now`` are skipped. Nothing
    touches the renderer, so this may run off the render thread.

    Returns:
        Unplaced tracked objects (no render handle yet), in snapshot order
    """
    now = now or datetime.now(timezone.utc)
    catalog_index = index_by_id(catalog or [])
    objects = []

    for record in snapshot.records:
        if not record.ok:
            continue
        try:
            line1, line2 = split_element_set(record.tle)
            propagable = propagator.parse(line1, line2)
        except ElementSetError as e:
            logger.warning(f"Skipping satellite {record.id}: {e}")
            continue

        position = compute_position(propagator, propagable, now, base_radius)
        if position is None:
            logger.warning(f"Skipping satellite {record.id}: no position at {now.isoformat()}")
            continue

        name, norad_id = resolve_display_info(record, catalog_index)
        objects.append(TrackedObject(name, norad_id, propagable, None, position))

    return objects


def place_tracked_objects(objects: List[TrackedObject], renderer: Renderer,
                          color: int = DEFAULT_COLOR) -> List[TrackedObject]:
    """Create one render point per object at its current position."""
    for obj in objects:
        obj.render_handle = renderer.create_point(obj.position, color)
    logger.info(f"Loaded satellites: {len(objects)}")
    return objects


def build_tracked_objects(snapshot: CacheSnapshot,
                          propagator: Propagator,
                          renderer: Renderer,
                          catalog: Optional[Iterable[CatalogEntry]] = None,
                          now: Optional[datetime] = None,
                          color: int = DEFAULT_COLOR,
                          base_radius: float = RENDER_EARTH_RADIUS) -> List[TrackedObject]:
    """
    Parse every successful record once and place it on the globe.

    Returns:
        Tracked objects in snapshot (catalog) order
    """
    objects = prepare_tracked_objects(snapshot, propagator, catalog, now, base_radius)
    return place_tracked_objects(objects, renderer, color)


class PositionPipeline:
    """Per-tick position recompute for a fixed set of tracked objects"""

    def __init__(self, propagator: Propagator, renderer: Renderer,
                 objects: Optional[List[TrackedObject]] = None,
                 base_radius: float = RENDER_EARTH_RADIUS):
        self.propagator = propagator
        self.renderer = renderer
        self.objects: List[TrackedObject] = list(objects or [])
        self.base_radius = base_radius

    def update(self, now: datetime) -> int:
        """
        Move every object to its position at ``now``.

        Objects whose propagation yields no position keep their last position
        for this tick.

        Returns:
            Number of objects updated
        """
        updated = 0
        for obj in self.objects:
            position = compute_position(self.propagator, obj.propagable, now, self.base_radius)
            if position is None:
                continue
            obj.position[:] = position
            self.renderer.set_position(obj.render_handle, obj.position)
            updated += 1
        return updated
