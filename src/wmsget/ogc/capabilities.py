"""
WMS GetCapabilities XML parsing.

WMS 1.3.0 documents use a ``WMS_Capabilities`` root element and WMS 1.1.x
documents a ``WMT_MS_Capabilities`` one. Nothing before the root element
tells them apart reliably, so the document is buffered once and each schema
is tried in turn against the buffer.
"""

import logging
from typing import IO, Iterator, List, Optional, Tuple, Union
import xml.etree.ElementTree as ET

from ..errors import CapabilitiesDecodeError
from ..types import BoundingBox, Capabilities, Layer, SchemaVariant

logger = logging.getLogger(__name__)

CapabilitiesSource = Union[bytes, str, IO[bytes]]

_EXTENT_ATTRIBUTES = ("minx", "miny", "maxx", "maxy")


class CapabilitiesParser:
    """Parser for WMS GetCapabilities documents."""

    variants: Tuple[SchemaVariant, ...] = (SchemaVariant.WMS_1_3_0, SchemaVariant.WMS_1_1_X)

    def decode(self, source: CapabilitiesSource) -> Capabilities:
        """
        Decode a GetCapabilities document.

        Args:
            source: Document as bytes, text or a binary file object

        Returns:
            Capabilities from the first schema that decodes cleanly

        Raises:
            CapabilitiesDecodeError: If no schema matches the document
        """
        buffer = self._read(source)

        failures: List[str] = []
        for variant in self.variants:
            try:
                capabilities = self._decode_variant(buffer, variant)
            except (ET.ParseError, ValueError) as exc:
                logger.debug("Document is not %s: %s", variant.root_element, exc)
                failures.append(f"{variant.root_element}: {exc}")
                continue
            logger.debug(
                "Decoded %s document (version %s, %d layers)",
                variant.root_element,
                capabilities.version,
                len(capabilities.layers),
            )
            return capabilities

        raise CapabilitiesDecodeError(
            "Unable to parse as WMS 1.3.0 or 1.1.x format: " + "; ".join(failures)
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _read(self, source: CapabilitiesSource) -> bytes:
        if isinstance(source, bytes):
            return source
        if isinstance(source, str):
            return source.encode("utf-8")
        return source.read()

    def _decode_variant(self, buffer: bytes, variant: SchemaVariant) -> Capabilities:
        root = ET.fromstring(buffer)
        root_name = _local_name(root.tag)
        if root_name != variant.root_element:
            raise ValueError(f"expected root element <{variant.root_element}>, found <{root_name}>")

        formats = [
            elem.text.strip()
            for elem in _find_all(root, "Capability/Request/GetMap/Format")
            if elem.text and elem.text.strip()
        ]

        root_layer = _find(root, "Capability/Layer")
        layers: List[Layer] = []
        bounding_boxes: List[BoundingBox] = []
        if root_layer is not None:
            layers = list(self._walk_layers(root_layer))
            bounding_boxes = [self._parse_bbox(elem) for elem in _children(root_layer, "BoundingBox")]

        return Capabilities(
            version=root.get("version", ""),
            name=_find_text(root, "Service/Name"),
            title=_find_text(root, "Service/Title"),
            abstract=_find_text(root, "Service/Abstract"),
            formats=formats,
            layers=layers,
            bounding_boxes=bounding_boxes,
            schema_variant=variant,
        )

    def _walk_layers(self, parent: ET.Element) -> Iterator[Layer]:
        for elem in _children(parent, "Layer"):
            yield self._parse_layer(elem)
            yield from self._walk_layers(elem)

    def _parse_layer(self, elem: ET.Element) -> Layer:
        styles = [
            _find_text(style, "Name")
            for style in _children(elem, "Style")
            if _find_text(style, "Name")
        ]
        return Layer(
            name=_find_text(elem, "Name"),
            title=_find_text(elem, "Title") or None,
            styles=styles,
            bounding_boxes=[self._parse_bbox(bbox) for bbox in _children(elem, "BoundingBox")],
        )

    def _parse_bbox(self, elem: ET.Element) -> BoundingBox:
        values: List[float] = []
        for attribute in _EXTENT_ATTRIBUTES:
            raw = elem.get(attribute)
            if raw is None:
                break
            try:
                values.append(float(raw))
            except ValueError:
                logger.debug("Ignoring bounding box with invalid %s '%s'", attribute, raw)
                break

        has_extent = len(values) == len(_EXTENT_ATTRIBUTES)
        min_x, min_y, max_x, max_y = values if has_extent else (0.0, 0.0, 0.0, 0.0)
        return BoundingBox(
            srs=elem.get("SRS", ""),
            crs=elem.get("CRS", ""),
            min_x=min_x,
            min_y=min_y,
            max_x=max_x,
            max_y=max_y,
            has_extent=has_extent,
        )


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in elem if _local_name(child.tag) == name]


def _find_all(elem: ET.Element, path: str) -> List[ET.Element]:
    current = [elem]
    for step in path.split("/"):
        current = [child for parent in current for child in _children(parent, step)]
    return current


def _find(elem: ET.Element, path: str) -> Optional[ET.Element]:
    found = _find_all(elem, path)
    return found[0] if found else None


def _find_text(elem: ET.Element, path: str) -> str:
    found = _find(elem, path)
    return found.text.strip() if found is not None and found.text else ""
