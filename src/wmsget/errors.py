"""Custom exception hierarchy for wmsget."""

from typing import Any, Optional, Sequence, Tuple

_MAX_SHOWN = 20


class WMSGetError(Exception):
    """Base exception for wmsget library."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


# Input validation


class ValidationError(WMSGetError):
    """User input that does not match what the server advertises."""
    pass


class MalformedURLError(ValidationError):
    """The service URL could not be parsed."""

    def __init__(self, url: str, cause: Optional[Exception] = None):
        super().__init__(f"Malformed URL: {url!r}", cause)
        self.url = url


class UnsupportedValueError(ValidationError):
    """A value is not among the values advertised by the server."""

    def __init__(self, field: str, value: Any, allowed: Sequence[Any]):
        self.field = field
        self.value = value
        self.allowed = list(allowed)
        shown = ", ".join(str(item) for item in self.allowed[:_MAX_SHOWN])
        if len(self.allowed) > _MAX_SHOWN:
            shown += f", ... ({len(self.allowed)} in total)"
        super().__init__(f"Invalid {field}: {value}\nValid {field}s: [{shown}]")


class NoEPSGAdvertisedError(ValidationError):
    """The server does not advertise a single EPSG bounding box."""

    def __init__(self) -> None:
        super().__init__("Server advertises no EPSG bounding boxes")


class InvalidBBoxError(ValidationError):
    """A bounding box input could not be parsed into four coordinates."""
    pass


# Capability documents


class CapabilitiesError(WMSGetError):
    """Errors related to GetCapabilities documents."""
    pass


class CapabilitiesDecodeError(CapabilitiesError):
    """The document could not be decoded with any known schema."""
    pass


class InvalidCapabilitiesError(CapabilitiesError):
    """The document decoded but lacks formats, layers, bounding boxes or version."""
    pass


# Geometry


class GeometryError(WMSGetError):
    """Errors computing the geometry of a single map request."""
    pass


class SizeNotSpecifiedError(GeometryError):
    """Scale and DPI must both be set."""

    def __init__(self) -> None:
        super().__init__("Size must be set (width, height or scale/dpi)")


class DimensionNotSpecifiedError(GeometryError):
    """Width or height must be set."""

    def __init__(self) -> None:
        super().__init__("Width or height must be set")


class ImageTooLargeError(GeometryError):
    def __init__(self, pixels: int, max_pixels: int):
        super().__init__(f"Image is too big: {pixels} pixels, max pixels: {max_pixels}")
        self.pixels = pixels
        self.max_pixels = max_pixels


class UnknownSourceEPSGError(GeometryError):
    def __init__(self, code: int, cause: Optional[Exception] = None):
        super().__init__(f"Invalid source EPSG: {code}", cause)
        self.code = code


class UnknownTargetEPSGError(GeometryError):
    def __init__(self, code: int, cause: Optional[Exception] = None):
        super().__init__(f"Invalid target EPSG: {code}", cause)
        self.code = code


class BoundingBoxOutOfRangeError(GeometryError):
    """The requested bounding box leaves the advertised extent."""

    def __init__(
        self,
        requested: Tuple[float, float, float, float],
        valid: Tuple[float, float, float, float],
    ):
        self.requested = requested
        self.valid = valid
        super().__init__(
            "BBox is out of bounds: {},{},{},{}\nValid BBox: {},{},{},{}".format(*requested, *valid)
        )


# Transport


class NetworkError(WMSGetError):
    """Network-related errors."""
    pass


class TransportError(NetworkError):
    """The HTTP request could not be completed."""
    pass


class UnexpectedStatusError(NetworkError):
    """The server answered with a status other than 200."""

    def __init__(self, code: int, url: str = ""):
        super().__init__(f"Status code error {code}" + (f" for {url}" if url else ""))
        self.code = code
        self.url = url


# Images


class ImageError(WMSGetError):
    """Errors handling a fetched map image."""
    pass


class ImageDecodeError(ImageError):
    """The GetMap response body is not a decodable image (often a service exception document)."""
    pass


class ImageWriteError(ImageError):
    """A decoded image could not be written to disk."""

    def __init__(self, path: str, cause: Optional[Exception] = None):
        super().__init__(f"Unable to write image {path}: {cause}", cause)
        self.path = path


class ConfigurationError(WMSGetError):
    """Configuration and setup errors."""
    pass
