"""
Globe Client Session

Visualization-side wiring: fetches the records once from the element-set
service, builds the tracked objects and runs the animation loop with the
interaction controller on top.

The network round trip runs on a worker thread. Until it completes the
loop keeps ticking with zero tracked objects; the built objects are handed
over at the start of the next tick.
"""

import argparse
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List, Optional

import requests
from pydantic import ValidationError

from satglobe.animation import AnimationLoop, FrameScheduler
from satglobe.catalog import load_catalog
from satglobe.config import DEFAULT_CATALOG_PATH
from satglobe.interaction import InteractionController, SelectionState
from satglobe.logging_config import configure_logging, get_logger
from satglobe.models import CacheSnapshot, CatalogEntry, ElementSetRecord
from satglobe.pipeline import (
    PositionPipeline,
    TrackedObject,
    place_tracked_objects,
    prepare_tracked_objects,
)
from satglobe.propagation import Propagator, SGP4Propagator
from satglobe.render import Camera, HeadlessScene

logger = get_logger(__name__)

DEFAULT_SERVICE_URL = "http://localhost:3000/tle-first-1000"


def fetch_records(url: str = DEFAULT_SERVICE_URL,
                  session: Optional[requests.Session] = None,
                  timeout: float = 60.0) -> List[ElementSetRecord]:
    """
    Fetch element-set records from the service.

    Any failure is logged and yields an empty list; malformed items are skipped.
    """
    http = session or requests
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Error fetching satellites: {e}")
        return []

    if not isinstance(data, list):
        logger.error(f"Error fetching satellites: expected a list, got {type(data).__name__}")
        return []

    records = []
    for item in data:
        try:
            records.append(ElementSetRecord.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Ignoring malformed record: {e.error_count()} validation errors")
    logger.info(f"Fetched satellites: {len(records)}")
    return records


class GlobeSession:
    """
    One visualization session: scene, camera, selection and animation loop.

    Args:
        service_url: Element-set endpoint
        catalog: Catalog used to name records without upstream info
        propagator: Orbital mechanics collaborator (SGP4 by default)
        renderer: Render collaborator (headless scene by default)
    """

    def __init__(self, service_url: str = DEFAULT_SERVICE_URL,
                 catalog: Optional[List[CatalogEntry]] = None,
                 propagator: Optional[Propagator] = None,
                 renderer: Optional[HeadlessScene] = None,
                 session: Optional[requests.Session] = None):
        self.service_url = service_url
        self.catalog = list(catalog or [])
        self.propagator = propagator or SGP4Propagator()
        self.renderer = renderer or HeadlessScene()
        self.http = session
        self.camera = Camera()
        self.scheduler = FrameScheduler()
        self.selection = SelectionState()
        self.pipeline = PositionPipeline(self.propagator, self.renderer)
        self.controller = InteractionController(
            self.selection, self.renderer, self.camera, self.scheduler
        )
        self.loop = AnimationLoop(
            self.pipeline, self.renderer, self.camera, self.scheduler,
            before_tick=self.install_pending,
        )
        self._pending: Optional[List[TrackedObject]] = None
        self._lock = threading.Lock()

    @property
    def objects(self) -> List[TrackedObject]:
        return self.pipeline.objects

    def load(self, now: Optional[datetime] = None) -> List[TrackedObject]:
        """
        Fetch records and prepare tracked objects.

        Safe to run on a worker thread: the scene is not touched here. The
        objects get their render points when installed on the next tick.
        """
        records = fetch_records(self.service_url, self.http)
        snapshot = CacheSnapshot(fetched_at=now or datetime.now(timezone.utc), records=records)
        objects = prepare_tracked_objects(snapshot, self.propagator, catalog=self.catalog, now=now)
        with self._lock:
            self._pending = objects
        return objects

    def start_loading(self, executor: ThreadPoolExecutor) -> Future:
        return executor.submit(self.load)

    def install_pending(self) -> bool:
        """Place objects prepared by load() in the scene; returns True if anything was installed."""
        with self._lock:
            objects, self._pending = self._pending, None
        if objects is None:
            return False
        place_tracked_objects(objects, self.renderer)
        self.pipeline.objects = objects
        self.controller.set_objects(objects)
        return True


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Headless satellite globe session")
    parser.add_argument("--url", default=DEFAULT_SERVICE_URL, help="Element-set service endpoint")
    parser.add_argument("--catalog", default=str(DEFAULT_CATALOG_PATH), help="Catalog JSON file")
    parser.add_argument("--seconds", type=float, default=3.0, help="How long to animate")
    parser.add_argument("--fps", type=float, default=30.0, help="Ticks per second")
    parser.add_argument("--search", default=None, help="Select the first satellite matching this name")
    args = parser.parse_args(argv)

    configure_logging()

    session = GlobeSession(args.url, catalog=load_catalog(args.catalog))
    session.renderer.add_globe()
    stop = threading.Event()

    with ThreadPoolExecutor(max_workers=1) as executor:
        future = session.start_loading(executor)
        timer = threading.Timer(args.seconds, stop.set)
        timer.start()
        try:
            if args.search:
                future.add_done_callback(lambda _: session.scheduler.request_frame(
                    lambda _t: session.controller.search(args.search)
                ))
            session.loop.run(stop, fps=args.fps)
        finally:
            timer.cancel()

    logger.info(f"Tracked satellites: {len(session.objects)}, frames rendered: {session.renderer.frames_rendered}")
    if session.selection.selected is not None:
        obj = session.selection.selected
        x, y, z = obj.position
        logger.info(f"{obj.name} at ({x:.4f}, {y:.4f}, {z:.4f})")


if __name__ == "__main__":
    main()
