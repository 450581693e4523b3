"""
OGC WMS protocol specifics.

This module contains the GetCapabilities parser and the request builders.
"""

from .capabilities import CapabilitiesParser
from .getmap import build_capabilities_request, build_getmap_request, crs_parameter, merge_query

__all__ = [
    "CapabilitiesParser",
    "build_capabilities_request",
    "build_getmap_request",
    "crs_parameter",
    "merge_query",
]
