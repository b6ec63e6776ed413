"""
satglobe Configuration and Constants

This module contains the physical and render-space constants used by the
position pipeline, plus the environment-driven service configuration.

Constants:
    Earth radii used to map geodetic coordinates into render space. The
    render globe is the real Earth scaled down by 10^4 (radius 0.6371 units).

Environment:
    N2YO_API_KEY        Upstream API key (server side only, never returned)
    N2YO_API_BASE       Upstream REST base URL
    CACHE_BACKEND       "file" (default) or "redis"
    CACHE_PATH          JSON cache document for the file backend
    REDIS_URL           Redis connection URL for the redis backend
    CACHE_TTL           Snapshot lifetime in seconds (default 24 hours)
    REQUEST_DELAY_MS    Minimum delay between upstream requests
    CATALOG_SLICE_SIZE  Number of catalog entries acquired per refresh
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

# Mean Earth radius used to normalize heights (km)
EARTH_RADIUS_KM: float = 6371.0
# Globe radius in render units
RENDER_EARTH_RADIUS: float = 0.6371

# WGS-84 ellipsoid
WGS84_A_KM: float = 6378.137
WGS84_F: float = 1.0 / 298.257223563

# Point colors (0xRRGGBB)
DEFAULT_COLOR: int = 0xFF0000
HIGHLIGHT_COLOR: int = 0x00FFFF
POINT_RADIUS: float = 0.02

# Camera
CAMERA_START_POSITION = (0.0, 0.0, 8.0)
CAMERA_DEFAULT_VIEW = (0.0, 0.0, 2.0)
CAMERA_FOV_DEG: float = 75.0
CAMERA_FOCUS_LERP: float = 0.2
CAMERA_RESET_DURATION_MS: float = 1000.0

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "satellites.json"


class ServiceConfig(BaseModel):
    """Element-set service configuration"""
    api_key: Optional[str] = None
    api_base: str = "https://api.n2yo.com/rest/v1"
    cache_backend: str = "file"
    cache_path: str = "./cache/satellitesCache.json"
    redis_url: str = "redis://localhost:6379"
    cache_key: str = "satglobe:tle-cache"
    cache_ttl: int = Field(default=24 * 60 * 60, gt=0)  # 24 hours
    request_delay_ms: int = Field(default=200, ge=0)
    request_timeout: float = Field(default=30.0, gt=0)
    catalog_path: str = str(DEFAULT_CATALOG_PATH)
    catalog_slice_size: int = Field(default=100, gt=0)
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build a configuration from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            api_key=os.getenv("N2YO_API_KEY") or None,
            api_base=os.getenv("N2YO_API_BASE", defaults.api_base),
            cache_backend=os.getenv("CACHE_BACKEND", defaults.cache_backend).lower(),
            cache_path=os.getenv("CACHE_PATH", defaults.cache_path),
            redis_url=os.getenv("REDIS_URL", defaults.redis_url),
            cache_key=os.getenv("CACHE_KEY", defaults.cache_key),
            cache_ttl=int(os.getenv("CACHE_TTL", str(defaults.cache_ttl))),
            request_delay_ms=int(os.getenv("REQUEST_DELAY_MS", str(defaults.request_delay_ms))),
            request_timeout=float(os.getenv("REQUEST_TIMEOUT", str(defaults.request_timeout))),
            catalog_path=os.getenv("CATALOG_PATH", defaults.catalog_path),
            catalog_slice_size=int(os.getenv("CATALOG_SLICE_SIZE", str(defaults.catalog_slice_size))),
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", str(defaults.port))),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )
