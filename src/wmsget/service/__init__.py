"""Negotiated WMS sessions and their configuration."""

from .config import ServiceConfig
from .wms import GetMapPipeline, WMSService, resolve_request_epsg

__all__ = [
    "GetMapPipeline",
    "ServiceConfig",
    "WMSService",
    "resolve_request_epsg",
]
