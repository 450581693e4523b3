"""
WMS request construction (GetCapabilities and GetMap).
"""

from typing import Dict, Iterable, Tuple
from urllib.parse import parse_qsl, urlparse, urlunparse

from ..types import BBoxTuple, MapRequest, TileRequest

WMS_1_3_0 = "1.3.0"
COORDINATE_SYSTEM_PARAMETERS = ("CRS", "SRS")


def merge_query(url: str, params: Dict[str, str], drop: Iterable[str] = ()) -> Tuple[str, Dict[str, str]]:
    """
    Split ``url`` into its base and query parameters, adding ``params``.

    Parameters already present in the URL are kept unless ``params`` sets the
    same name or ``drop`` lists it (compared case-insensitively, as WMS
    parameter names are).

    Args:
        url: Service URL, possibly with a query string
        params: Parameters to add or replace
        drop: Parameter names removed from the URL query

    Returns:
        URL without query string and the merged parameters
    """
    parsed = urlparse(url)
    replaced = {key.upper() for key in params} | {key.upper() for key in drop}
    merged = {
        key: value
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key.upper() not in replaced
    }
    merged.update(params)
    return urlunparse(parsed._replace(query="")), merged


def crs_parameter(version: str) -> str:
    """Name of the coordinate system parameter: ``CRS`` in 1.3.0, ``SRS`` before."""
    return "CRS" if version == WMS_1_3_0 else "SRS"


def format_bbox(bbox: BBoxTuple) -> str:
    return "{:.7f},{:.7f},{:.7f},{:.7f}".format(*bbox)


def build_capabilities_request(url: str, version: str = "", timeout: float = 30) -> TileRequest:
    """
    Create a WMS GetCapabilities request.

    Args:
        url: WMS service URL
        version: Requested protocol version, omitted when empty
        timeout: Request timeout in seconds

    Returns:
        Request for the capabilities document
    """
    params = {"SERVICE": "WMS", "REQUEST": "GetCapabilities"}
    if version:
        params["VERSION"] = version
    base_url, merged = merge_query(url, params)
    return TileRequest(url=base_url, params=merged, timeout=timeout)


def build_getmap_request(
    request: MapRequest,
    bbox: BBoxTuple,
    width: int,
    height: int,
    epsg: int,
    timeout: float = 30,
) -> TileRequest:
    """
    Create a WMS GetMap request.

    Args:
        request: Negotiated session snapshot
        bbox: Bounding box expressed in ``epsg``
        width: Output width in pixels
        height: Output height in pixels
        epsg: EPSG code of ``bbox``
        timeout: Request timeout in seconds

    Returns:
        Tile request for the map image
    """
    params = {
        "SERVICE": "WMS",
        "REQUEST": "GetMap",
        "VERSION": request.version,
        "FORMAT": request.format,
        "LAYERS": ",".join(request.layers),
        "STYLES": ",".join(request.styles),
        crs_parameter(request.version): f"EPSG:{epsg}",
        "HEIGHT": str(height),
        "WIDTH": str(width),
        "BBOX": format_bbox(bbox),
    }
    # Only one of CRS and SRS may reach the server
    base_url, merged = merge_query(request.url, params, drop=COORDINATE_SYSTEM_PARAMETERS)
    return TileRequest(
        url=base_url,
        params=merged,
        timeout=timeout,
        width=width,
        height=height,
        bbox=bbox,
        epsg=epsg,
    )
