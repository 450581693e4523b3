"""wmsget - capability-driven WMS GetMap client."""

from ._version import __version__

from .batch import fetch_batch, fetch_configured, parse_bbox, read_bbox_file
from .dimensions import ExplicitDimensions, FromHeight, FromWidth, ScaleDPI, dimensions_for
from .ogc import CapabilitiesParser, build_capabilities_request, build_getmap_request
from .service import GetMapPipeline, ServiceConfig, WMSService, resolve_request_epsg
from .types import (
    BBoxTuple,
    BoundingBox,
    Capabilities,
    Format,
    Layer,
    LayerSelection,
    MapRequest,
    MapResult,
    SchemaVariant,
    TileRequest,
    TileResponse,
)

__all__ = [
    "__version__",
    "fetch_batch",
    "fetch_configured",
    "parse_bbox",
    "read_bbox_file",
    "ExplicitDimensions",
    "FromHeight",
    "FromWidth",
    "ScaleDPI",
    "dimensions_for",
    "CapabilitiesParser",
    "build_capabilities_request",
    "build_getmap_request",
    "GetMapPipeline",
    "ServiceConfig",
    "WMSService",
    "resolve_request_epsg",
    "BBoxTuple",
    "BoundingBox",
    "Capabilities",
    "Format",
    "Layer",
    "LayerSelection",
    "MapRequest",
    "MapResult",
    "SchemaVariant",
    "TileRequest",
    "TileResponse",
]
