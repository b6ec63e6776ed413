"""
satglobe - Satellite Tracking Globe

Acquires and caches two-line element sets for a catalog of satellites,
propagates them with SGP4 and drives selection/search over the live
positions around a render-space globe.

Modules:
    acquisition: Rate-limited N2YO fetcher and cache-first freshness policy
    cache_store: File and Redis backed snapshot storage
    app: Flask service exposing the cached records
    propagation: SGP4 propagator and TEME/ECEF/geodetic conversion
    pipeline: Tracked objects and per-tick render positions
    interaction: Selection state machine, search and camera focus
    animation: Frame scheduler and fixed-rate animation loop
    client: Visualization session wiring the pieces together
"""

__version__ = "1.0.0"
