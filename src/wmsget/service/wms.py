"""WMS session negotiation and GetMap retrieval."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import requests

from ..core import WGS84_EPSG, known_epsg_codes, transform_bbox
from ..errors import (
    BoundingBoxOutOfRangeError,
    ConfigurationError,
    ImageTooLargeError,
    InvalidCapabilitiesError,
    MalformedURLError,
    NoEPSGAdvertisedError,
    UnsupportedValueError,
    ValidationError,
)
from ..ogc.capabilities import CapabilitiesParser
from ..ogc.getmap import build_capabilities_request, build_getmap_request
from ..tiles import fetch_tile
from ..types import BBoxTuple, Capabilities, LayerSelection, MapRequest, MapResult, file_extension
from ..typing import Credentials, DimensionStrategy

logger = logging.getLogger(__name__)

DEFAULT_MAX_PIXELS = 64_000_000
DEFAULT_TIMEOUT = 30.0


def resolve_request_epsg(capabilities: Capabilities, epsg: int, bbox: BBoxTuple) -> Tuple[BBoxTuple, int]:
    """
    Express a bounding box in an EPSG code the server advertises.

    The box is returned unchanged when ``epsg`` is advertised; otherwise its
    corners are transformed into the first advertised code.

    Returns:
        The (possibly transformed) box and the EPSG code it is expressed in
    """
    advertised = capabilities.epsg_codes()
    if epsg in advertised:
        return bbox, epsg
    if not advertised:
        raise NoEPSGAdvertisedError()

    target = advertised[0]
    transformed = transform_bbox(*bbox, from_epsg=epsg, to_epsg=target)
    logger.debug("Reprojected bbox from EPSG:%s to EPSG:%s: %s", epsg, target, transformed)
    return transformed, target


class GetMapPipeline:
    """Resolve, validate and fetch a single GetMap image."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        *,
        auth: Optional[Credentials] = None,
        max_pixels: int = DEFAULT_MAX_PIXELS,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.session = session or requests.Session()
        self.auth = auth
        self.max_pixels = max_pixels
        self.timeout = timeout

    def fetch(
        self,
        request: MapRequest,
        min_x: float,
        min_y: float,
        max_x: float,
        max_y: float,
        strategy: DimensionStrategy,
    ) -> MapResult:
        """
        Fetch the map image for one bounding box.

        Args:
            request: Negotiated session snapshot
            min_x: Minimum X coordinate in ``request.epsg``
            min_y: Minimum Y coordinate in ``request.epsg``
            max_x: Maximum X coordinate in ``request.epsg``
            max_y: Maximum Y coordinate in ``request.epsg``
            strategy: How to compute the output pixel dimensions

        Returns:
            Image bytes with the resolved dimensions and request geometry
        """
        width, height = strategy.resolve(min_x, min_y, max_x, max_y, request.epsg)
        if width * height > self.max_pixels:
            raise ImageTooLargeError(width * height, self.max_pixels)

        bbox, epsg = resolve_request_epsg(request.capabilities, request.epsg, (min_x, min_y, max_x, max_y))

        valid = request.capabilities.bounding_box_by_epsg(epsg)
        if not valid.contains(*bbox):
            raise BoundingBoxOutOfRangeError(bbox, valid.as_tuple())

        tile_request = build_getmap_request(request, bbox, width, height, epsg, timeout=self.timeout)
        response = fetch_tile(tile_request, self.session, self.auth)
        return MapResult(
            data=response.data,
            width=width,
            height=height,
            epsg=epsg,
            bbox=bbox,
            url=tile_request.full_url,
        )


class WMSService:
    """
    A GetMap session validated against a server's capabilities.

    Every ``set_*`` method either succeeds completely or raises and leaves
    the session as it was.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        version: str = "",
        session: Optional[requests.Session] = None,
        auth: Optional[Credentials] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_pixels: int = DEFAULT_MAX_PIXELS,
    ) -> None:
        self.session = session or requests.Session()
        self.auth = auth
        self.timeout = timeout
        self.max_pixels = max_pixels
        self.parser = CapabilitiesParser()

        self.url = ""
        self.version = version
        self.format = ""
        self.selections: Tuple[LayerSelection, ...] = ()
        self.epsg = 0
        self.capabilities: Optional[Capabilities] = None

        if url:
            self.set_url(url)

    @property
    def layers(self) -> List[str]:
        return [selection.layer for selection in self.selections]

    @property
    def styles(self) -> List[str]:
        return [selection.style for selection in self.selections]

    @property
    def is_ready(self) -> bool:
        return bool(self.capabilities is not None and self.format and self.selections and self.epsg)

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------
    def get_capabilities(self, url: Optional[str] = None, version: Optional[str] = None) -> Capabilities:
        """Fetch and decode the capabilities document without validating it."""

        tile_request = build_capabilities_request(
            url or self.url,
            self.version if version is None else version,
            timeout=self.timeout,
        )
        response = fetch_tile(tile_request, self.session, self.auth)
        return self.parser.decode(response.data)

    def set_url(self, url: str) -> None:
        """Point the session at a new server and adopt its defaults."""

        try:
            parsed = urlparse(url)
        except ValueError as exc:
            raise MalformedURLError(url, exc) from exc
        if not parsed.scheme or not parsed.netloc:
            raise MalformedURLError(url)
        self._load(url, self.version)

    def set_version(self, version: str) -> None:
        """Request a protocol version; every other selection is re-derived."""

        if not self.url:
            raise ConfigurationError("A URL must be set before the version")
        self._load(self.url, version)

    def _load(self, url: str, version: str) -> None:
        capabilities = self.get_capabilities(url, version)
        fmt, selections, epsg = _defaults(capabilities)

        self.url = url
        self.version = capabilities.version
        self.format = fmt
        self.selections = selections
        self.epsg = epsg
        self.capabilities = capabilities
        logger.debug("Loaded capabilities from %s (version %s)", url, capabilities.version)

    # ------------------------------------------------------------------
    # Selections
    # ------------------------------------------------------------------
    def set_format(self, fmt: str) -> None:
        formats = self._require_capabilities().formats
        if fmt not in formats:
            raise UnsupportedValueError("Format", fmt, formats)
        self.format = fmt

    def set_layers(self, *layers: str) -> None:
        """Replace the requested layers; all styles fall back to the server default."""

        capabilities = self._require_capabilities()
        if not layers:
            raise ValidationError("At least one layer is required")
        for layer in layers:
            if not capabilities.layer_by_name(layer).name:
                raise UnsupportedValueError("Layer", layer, capabilities.layer_names())
        self.selections = tuple(LayerSelection(layer=layer) for layer in layers)

    def set_style(self, layer: str, style: str) -> None:
        """
        Set the style of every selected occurrence of ``layer``.

        The style must be advertised for the layer. Selecting no occurrence
        (the layer is advertised but not selected) is not an error.
        """

        styles = self._require_capabilities().layer_by_name(layer).styles
        if style not in styles:
            raise UnsupportedValueError("Style", style, styles)
        self._assign_style(layer, style)

    def clear_style(self, layer: str) -> None:
        """Fall back to the server default style for every selected occurrence of ``layer``."""

        capabilities = self._require_capabilities()
        if not capabilities.layer_by_name(layer).name:
            raise UnsupportedValueError("Layer", layer, capabilities.layer_names())
        self._assign_style(layer, "")

    def _assign_style(self, layer: str, style: str) -> None:
        self.selections = tuple(
            LayerSelection(layer=selection.layer, style=style) if selection.layer == layer else selection
            for selection in self.selections
        )

    def set_epsg(self, code: int) -> None:
        advertised = self._require_capabilities().epsg_codes()
        if not advertised:
            raise NoEPSGAdvertisedError()
        candidates = list(dict.fromkeys([*advertised, *known_epsg_codes()]))
        if code not in set(candidates):
            raise UnsupportedValueError("EPSG", code, candidates)
        self.epsg = code

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------
    def snapshot(self) -> MapRequest:
        """Freeze the current selections into a request-scoped ``MapRequest``."""

        if not self.is_ready:
            raise ConfigurationError("Service is not ready: URL, format, layers and EPSG are required")
        return MapRequest(
            url=self.url,
            version=self.version,
            format=self.format,
            selections=self.selections,
            epsg=self.epsg,
            capabilities=self._require_capabilities(),
        )

    def pipeline(self) -> GetMapPipeline:
        return GetMapPipeline(
            self.session,
            auth=self.auth,
            max_pixels=self.max_pixels,
            timeout=self.timeout,
        )

    def get_map(
        self,
        min_x: float,
        min_y: float,
        max_x: float,
        max_y: float,
        strategy: DimensionStrategy,
    ) -> MapResult:
        """Fetch one map image; the session's EPSG is left untouched."""

        return self.pipeline().fetch(self.snapshot(), min_x, min_y, max_x, max_y, strategy)

    def file_extension(self) -> str:
        return file_extension(self.format)

    def describe(self) -> str:
        return "\n".join([
            f"URL: {self.url}",
            f"Version: {self.version}",
            f"Format: {self.format}",
            f"Layers: {self.layers}",
            f"Styles: {self.styles}",
            f"EPSG: {self.epsg}",
        ])

    def _require_capabilities(self) -> Capabilities:
        if self.capabilities is None:
            raise ConfigurationError("No capabilities loaded; set a URL first")
        return self.capabilities


def _defaults(capabilities: Capabilities) -> Tuple[str, Tuple[LayerSelection, ...], int]:
    formats = capabilities.formats
    layers = capabilities.layers
    bboxes = capabilities.merged_bounding_boxes()
    if not formats or not layers or not bboxes or not capabilities.version:
        raise InvalidCapabilitiesError("Invalid capabilities: please check URL and version")

    if any(bbox.epsg == WGS84_EPSG for bbox in bboxes):
        epsg = WGS84_EPSG
    else:
        epsg = next((bbox.epsg for bbox in bboxes if bbox.epsg != 0), 0)
    if epsg == 0:
        raise InvalidCapabilitiesError("Invalid capabilities: no EPSG bounding box advertised")

    return formats[0], (LayerSelection(layer=layers[0].name),), epsg
