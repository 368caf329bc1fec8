"""Spatial helpers: extent normalisation, Web Mercator transforms, scale buckets."""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional, Tuple

EARTH_RADIUS_M = 6378137.0
WEB_MERCATOR_WKID = 102100
WGS84_WKID = 4326
_MAX_LAT = 85.0511287798

# (max extent height in metres, scale, zoom level)
_SCALE_BUCKETS = (
    (500, 500, 20),
    (1_000, 1_000, 19),
    (5_000, 5_000, 17),
    (10_000, 10_000, 16),
    (50_000, 50_000, 14),
    (100_000, 100_000, 13),
    (500_000, 500_000, 11),
    (1_000_000, 1_000_000, 10),
    (5_000_000, 5_000_000, 8),
    (10_000_000, 10_000_000, 7),
)
_FALLBACK_SCALE = (25_000_000, 6)


def lonlat_to_mercator(lon: float, lat: float) -> Tuple[float, float]:
    clamped = max(min(lat, _MAX_LAT), -_MAX_LAT)
    x = math.radians(lon) * EARTH_RADIUS_M
    y = math.log(math.tan(math.pi / 4 + math.radians(clamped) / 2)) * EARTH_RADIUS_M
    return x, y


def mercator_to_lonlat(x: float, y: float) -> Tuple[float, float]:
    lon = math.degrees(x / EARTH_RADIUS_M)
    lat = math.degrees(2 * math.atan(math.exp(y / EARTH_RADIUS_M)) - math.pi / 2)
    return lon, lat


def looks_projected(x: float, y: float) -> bool:
    """True when a coordinate pair is outside lon/lat range."""
    return abs(x) > 180 or abs(y) > 90


def _wkid(extent: Mapping[str, Any]) -> Any:
    sr = extent.get("spatialReference")
    if not isinstance(sr, Mapping):
        return None
    return sr.get("wkid") or sr.get("latestWkid") or sr.get("wkt")


def normalize_extent(extent: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Project a WGS84 extent to Web Mercator; other extents pass through.

    Returns ``None`` for missing input or extents lacking numeric bounds.
    """

    if not isinstance(extent, Mapping):
        return None
    try:
        xmin, ymin, xmax, ymax = (float(extent[key]) for key in ("xmin", "ymin", "xmax", "ymax"))
    except (KeyError, TypeError, ValueError):
        return None
    if _wkid(extent) not in (WGS84_WKID, "WGS84", "WGS 84"):
        return {**dict(extent), "xmin": xmin, "ymin": ymin, "xmax": xmax, "ymax": ymax}
    mxmin, mymin = lonlat_to_mercator(xmin, ymin)
    mxmax, mymax = lonlat_to_mercator(xmax, ymax)
    return {
        "xmin": mxmin,
        "ymin": mymin,
        "xmax": mxmax,
        "ymax": mymax,
        "spatialReference": {"wkid": WEB_MERCATOR_WKID, "latestWkid": 3857},
    }


def scale_zoom_for_extent(extent: Optional[Mapping[str, Any]]) -> Optional[Tuple[int, int]]:
    """Pick a (scale, zoom) bucket from an extent's height in map units."""

    if not isinstance(extent, Mapping):
        return None
    try:
        height = abs(float(extent["ymax"]) - float(extent["ymin"]))
    except (KeyError, TypeError, ValueError):
        return None
    for limit, scale, zoom in _SCALE_BUCKETS:
        if height <= limit:
            return scale, zoom
    return _FALLBACK_SCALE


def extent_center(extent: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "x": (float(extent["xmin"]) + float(extent["xmax"])) / 2,
        "y": (float(extent["ymin"]) + float(extent["ymax"])) / 2,
        "spatialReference": extent.get("spatialReference"),
    }


def viewpoint_for_extent(extent: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Return ``{"viewpoint": ..., "zoom": ...}`` fields for a map node, or ``{}``."""

    bucket = scale_zoom_for_extent(extent)
    if bucket is None or extent is None:
        return {}
    scale, zoom = bucket
    return {"viewpoint": {"targetGeometry": dict(extent), "scale": scale}, "zoom": zoom}
