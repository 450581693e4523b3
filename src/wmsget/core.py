"""
Coordinate reference system helpers for map geometry.
"""

import logging
import math
from functools import lru_cache
from typing import Optional, Tuple

from pyproj import CRS as ProjCRS
from pyproj.database import get_codes
from pyproj.exceptions import CRSError
from pyproj.transformer import Transformer

from .errors import UnknownSourceEPSGError, UnknownTargetEPSGError
from .types import BBoxTuple

logger = logging.getLogger(__name__)

WGS84_EPSG = 4326
MILLIMETERS_PER_INCH = 25.4
UTM_ZONE_WIDTH = 6
UTM_ZONE_OFFSET = 31
UTM_SCALE_FACTOR = 0.9996
UTM_FALSE_EASTING = 500000.0
UTM_FALSE_NORTHING_SOUTH = 10000000.0


# EPSG registry


@lru_cache(maxsize=1)
def known_epsg_codes() -> Tuple[int, ...]:
    """All EPSG coordinate reference system codes known to PROJ."""
    codes = []
    for code in get_codes("EPSG", "CRS"):
        try:
            codes.append(int(code))
        except ValueError:
            logger.debug("Skipping non-numeric EPSG code '%s'", code)
    return tuple(sorted(codes))


@lru_cache(maxsize=None)
def crs_by_code(code: int) -> Optional[ProjCRS]:
    """Look up an EPSG code, returning None when PROJ does not know it."""
    try:
        return ProjCRS.from_epsg(code)
    except CRSError:
        return None


# Transformations


def transform_point(from_epsg: int, to_epsg: int, x: float, y: float) -> Tuple[float, float]:
    """
    Transform a single coordinate between two EPSG codes.

    Coordinates are always in (x, y) / (lon, lat) order.

    Raises:
        UnknownSourceEPSGError: If ``from_epsg`` is not a known code
        UnknownTargetEPSGError: If ``to_epsg`` is not a known code
    """
    source = crs_by_code(from_epsg)
    if source is None:
        raise UnknownSourceEPSGError(from_epsg)
    target = crs_by_code(to_epsg)
    if target is None:
        raise UnknownTargetEPSGError(to_epsg)
    transformer = Transformer.from_crs(source, target, always_xy=True)
    return transformer.transform(x, y)


def transform_bbox(min_x: float, min_y: float, max_x: float, max_y: float, from_epsg: int, to_epsg: int) -> BBoxTuple:
    """
    Transform the two corners of a bounding box to another EPSG code.

    Args:
        min_x: Minimum X coordinate
        min_y: Minimum Y coordinate
        max_x: Maximum X coordinate
        max_y: Maximum Y coordinate
        from_epsg: Source EPSG code
        to_epsg: Destination EPSG code

    Returns:
        Transformed (min_x, min_y, max_x, max_y)
    """
    x1, y1 = transform_point(from_epsg, to_epsg, min_x, min_y)
    x2, y2 = transform_point(from_epsg, to_epsg, max_x, max_y)
    return (x1, y1, x2, y2)


def utm_zone(longitude: float) -> float:
    return math.floor(longitude / UTM_ZONE_WIDTH) + UTM_ZONE_OFFSET


def utm_crs(zone: float, northern: bool) -> ProjCRS:
    """
    Transverse Mercator CRS centred on the meridian of a (possibly fractional) UTM zone.
    """
    return ProjCRS.from_dict({
        "proj": "tmerc",
        "lat_0": 0,
        "lon_0": zone * UTM_ZONE_WIDTH - 183,
        "k": UTM_SCALE_FACTOR,
        "x_0": UTM_FALSE_EASTING,
        "y_0": 0 if northern else UTM_FALSE_NORTHING_SOUTH,
        "datum": "WGS84",
        "units": "m",
    })


def utm_bounds(min_x: float, min_y: float, max_x: float, max_y: float, epsg: int) -> BBoxTuple:
    """
    Project a bounding box into a locally appropriate metric frame.

    The corners are converted to WGS84, the UTM zone is taken as the mean of
    the zones of both corners and the southern hemisphere is used as soon as
    either corner lies south of the equator.
    """
    lon1, lat1 = transform_point(epsg, WGS84_EPSG, min_x, min_y)
    lon2, lat2 = transform_point(epsg, WGS84_EPSG, max_x, max_y)
    zone = (utm_zone(lon1) + utm_zone(lon2)) / 2
    northern = not (lat1 < 0 or lat2 < 0)

    transformer = Transformer.from_crs(crs_by_code(WGS84_EPSG), utm_crs(zone, northern), always_xy=True)
    x1, y1 = transformer.transform(lon1, lat1)
    x2, y2 = transformer.transform(lon2, lat2)
    logger.debug("Projected bbox to UTM zone %s (%s): %s", zone, "N" if northern else "S", (x1, y1, x2, y2))
    return (x1, y1, x2, y2)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))
