"""
Type definitions and models for WMS capabilities and map requests.
"""

import re
from typing import Dict, List, Optional, Tuple
from enum import Enum

import requests
from pydantic import BaseModel, ConfigDict, Field

BBoxTuple = Tuple[float, float, float, float]

_INTEGER = re.compile(r"[+-]?[0-9]+")


class Format(str, Enum):
    """Image formats with a known file extension."""
    GEOTIFF = "image/tiff"
    PNG = "image/png"
    JPEG = "image/jpeg"
    GIF = "image/gif"

    @property
    def extension(self) -> str:
        return self.value.split("/", 1)[1]


def file_extension(fmt: str) -> str:
    """File extension for a MIME type, or an empty string if unknown."""
    try:
        return Format(fmt).extension
    except ValueError:
        return ""


class SchemaVariant(str, Enum):
    """The two GetCapabilities document schemas, keyed by root element."""
    WMS_1_3_0 = "WMS_Capabilities"
    WMS_1_1_X = "WMT_MS_Capabilities"

    @property
    def root_element(self) -> str:
        return self.value


class BoundingBox(BaseModel):
    """Bounding box as advertised in a capabilities document."""
    srs: str = Field(default="", description="SRS attribute (WMS 1.1.x)")
    crs: str = Field(default="", description="CRS attribute (WMS 1.3.0)")
    min_x: float = Field(default=0.0, description="Minimum X coordinate")
    min_y: float = Field(default=0.0, description="Minimum Y coordinate")
    max_x: float = Field(default=0.0, description="Maximum X coordinate")
    max_y: float = Field(default=0.0, description="Maximum Y coordinate")
    has_extent: bool = Field(default=True, description="Whether the extent attributes were present")

    model_config = ConfigDict(frozen=True)

    @property
    def identifier(self) -> str:
        return self.crs + self.srs

    @property
    def epsg(self) -> int:
        """
        EPSG code of the coordinate system identifier.

        Returns 0 unless the identifier is exactly ``EPSG:<integer>``.
        """
        parts = self.identifier.split(":")
        if len(parts) != 2 or parts[0] != "EPSG" or not _INTEGER.fullmatch(parts[1]):
            return 0
        return int(parts[1])

    @property
    def is_unset(self) -> bool:
        return self.min_x == 0 and self.max_x == 0

    def as_tuple(self) -> BBoxTuple:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    def contains(self, min_x: float, min_y: float, max_x: float, max_y: float) -> bool:
        """Check that every coordinate lies within this box (edges inclusive)."""
        return (
            self.min_x <= min_x <= self.max_x
            and self.min_x <= max_x <= self.max_x
            and self.min_y <= min_y <= self.max_y
            and self.min_y <= max_y <= self.max_y
        )

    def __str__(self) -> str:
        return f"{self.identifier} {self.min_x},{self.min_y},{self.max_x},{self.max_y}"


class Layer(BaseModel):
    """A named (or unnamed container) layer."""
    name: str = ""
    title: Optional[str] = None
    styles: List[str] = Field(default_factory=list)
    bounding_boxes: List[BoundingBox] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class Capabilities(BaseModel):
    """WMS service capabilities."""
    version: str = ""
    name: str = ""
    title: str = ""
    abstract: str = ""
    formats: List[str] = Field(default_factory=list)
    layers: List[Layer] = Field(default_factory=list)
    bounding_boxes: List[BoundingBox] = Field(default_factory=list)
    schema_variant: Optional[SchemaVariant] = None

    model_config = ConfigDict(frozen=True)

    def layer_by_name(self, name: str) -> Layer:
        """Return the layer called ``name`` or an empty ``Layer`` if absent."""
        for layer in self.layers:
            if layer.name == name:
                return layer
        return Layer()

    def layers_by_name(self, *names: str) -> List[Layer]:
        return [self.layer_by_name(name) for name in names if self.layer_by_name(name).name]

    def layer_names(self) -> List[str]:
        return [layer.name for layer in self.layers]

    def merged_bounding_boxes(self, zero_means_unset: bool = True) -> List[BoundingBox]:
        """
        Union of the layer and document bounding boxes.

        Boxes are deduplicated by coordinate system identifier (a later box
        replaces an earlier one). Boxes without an identifier or extent are
        dropped, and so are boxes whose MinX and MaxX are both zero unless
        ``zero_means_unset`` is False.

        Args:
            zero_means_unset: Treat a zero MinX/MaxX pair as an unset box

        Returns:
            Merged bounding boxes in first-seen order
        """
        merged: Dict[str, BoundingBox] = {}
        for layer in self.layers:
            for bbox in layer.bounding_boxes:
                merged[bbox.identifier] = bbox
        for bbox in self.bounding_boxes:
            merged[bbox.identifier] = bbox

        result: List[BoundingBox] = []
        for bbox in merged.values():
            if not bbox.identifier or not bbox.has_extent:
                continue
            if zero_means_unset and bbox.is_unset:
                continue
            result.append(bbox)
        return result

    def bounding_box_by_epsg(self, code: int) -> BoundingBox:
        for bbox in self.merged_bounding_boxes():
            if bbox.epsg == code:
                return bbox
        return BoundingBox()

    def epsg_codes(self) -> List[int]:
        return [bbox.epsg for bbox in self.merged_bounding_boxes() if bbox.epsg != 0]

    def summary(self) -> str:
        """Human readable description of the service."""
        lines = [
            f"Version: {self.version}",
            f"Name: {self.name}",
            f"Title: {self.title}",
            f"Abstract: {self.abstract}",
            f"Formats: {self.formats}",
            f"Layers: {self.layer_names()}",
            f"EPSG: {self.epsg_codes()}",
        ]
        return "\n".join(lines)


class LayerSelection(BaseModel):
    """A requested layer together with its style (empty for the server default)."""
    layer: str
    style: str = ""

    model_config = ConfigDict(frozen=True)


class MapRequest(BaseModel):
    """Immutable snapshot of a negotiated GetMap session."""
    url: str
    version: str
    format: str
    selections: Tuple[LayerSelection, ...]
    epsg: int
    capabilities: Capabilities

    model_config = ConfigDict(frozen=True)

    @property
    def layers(self) -> List[str]:
        return [selection.layer for selection in self.selections]

    @property
    def styles(self) -> List[str]:
        return [selection.style for selection in self.selections]


class TileRequest(BaseModel):
    """HTTP request for a single image or document."""

    url: str
    params: Dict[str, str] = Field(default_factory=dict)
    headers: Optional[Dict[str, str]] = None
    timeout: float = 30
    width: Optional[int] = None
    height: Optional[int] = None
    bbox: Optional[BBoxTuple] = None
    epsg: Optional[int] = None

    @property
    def full_url(self) -> str:
        return requests.Request("GET", self.url, params=self.params).prepare().url or self.url


class TileResponse(BaseModel):
    """Response from a tile request."""
    data: bytes
    content_type: str
    status_code: int
    headers: Dict[str, str]
    url: str


class MapResult(BaseModel):
    """Image bytes returned by GetMap plus the geometry that produced them."""
    data: bytes
    width: int
    height: int
    epsg: int
    bbox: BBoxTuple
    url: str
