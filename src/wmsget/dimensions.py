"""
Strategies for computing GetMap pixel dimensions.

Bounding boxes are usually angular (lon/lat) or otherwise not metric, so
every strategy that needs an aspect ratio or a scale first projects the box
into a local UTM frame (see :func:`wmsget.core.utm_bounds`).
"""

import logging
from dataclasses import dataclass

from .core import MILLIMETERS_PER_INCH, round_half_away, utm_bounds
from .errors import DimensionNotSpecifiedError, SizeNotSpecifiedError
from .typing import DimensionStrategy, ImageSize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FromWidth:
    """Fixed width, height derived from the metric aspect ratio."""

    width: int

    def resolve(self, min_x: float, min_y: float, max_x: float, max_y: float, epsg: int) -> ImageSize:
        if self.width == 0:
            raise DimensionNotSpecifiedError()
        x1, y1, x2, y2 = utm_bounds(min_x, min_y, max_x, max_y, epsg)
        height = round_half_away((y2 - y1) / (x2 - x1) * self.width)
        return self.width, height


@dataclass(frozen=True)
class FromHeight:
    """Fixed height, width derived from the metric aspect ratio."""

    height: int

    def resolve(self, min_x: float, min_y: float, max_x: float, max_y: float, epsg: int) -> ImageSize:
        if self.height == 0:
            raise DimensionNotSpecifiedError()
        x1, y1, x2, y2 = utm_bounds(min_x, min_y, max_x, max_y, epsg)
        width = round_half_away((x2 - x1) / (y2 - y1) * self.height)
        return width, self.height


@dataclass(frozen=True)
class ExplicitDimensions:
    """
    Explicit width and height.

    When only one of the two is given the missing one is derived from the
    aspect ratio, as :class:`FromWidth` or :class:`FromHeight` would.
    """

    width: int
    height: int

    def resolve(self, min_x: float, min_y: float, max_x: float, max_y: float, epsg: int) -> ImageSize:
        if self.width == 0:
            return FromHeight(self.height).resolve(min_x, min_y, max_x, max_y, epsg)
        if self.height == 0:
            return FromWidth(self.width).resolve(min_x, min_y, max_x, max_y, epsg)
        return self.width, self.height


@dataclass(frozen=True)
class ScaleDPI:
    """Dimensions from a cartographic scale denominator and a print resolution."""

    scale: int
    dpi: int

    def resolve(self, min_x: float, min_y: float, max_x: float, max_y: float, epsg: int) -> ImageSize:
        if self.scale == 0 or self.dpi == 0:
            raise SizeNotSpecifiedError()
        x1, y1, x2, y2 = utm_bounds(min_x, min_y, max_x, max_y, epsg)
        width = round_half_away((x2 - x1) / self.scale * self.dpi * MILLIMETERS_PER_INCH)
        height = round_half_away((y2 - y1) / self.scale * self.dpi * MILLIMETERS_PER_INCH)
        logger.debug("Scale 1:%s at %s dpi -> %sx%s px", self.scale, self.dpi, width, height)
        return width, height


def dimensions_for(width: int = 0, height: int = 0, scale: int = 0, dpi: int = 0) -> DimensionStrategy:
    """
    Pick the dimension strategy for a set of user options.

    Explicit dimensions win whenever either of them is set; otherwise the
    scale and DPI are used.
    """
    if width or height:
        return ExplicitDimensions(width, height)
    return ScaleDPI(scale, dpi)
