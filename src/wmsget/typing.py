"""Type aliases and protocols for wmsget."""

from typing import Protocol, Sequence, Tuple, TypeAlias

# Type aliases for better user experience
BBoxInput: TypeAlias = Sequence[float]
ImageSize: TypeAlias = Tuple[int, int]  # (width, height)
Credentials: TypeAlias = Tuple[str, str]  # (username, password)


# Protocols for pluggable pieces
class DimensionStrategy(Protocol):
    """Protocol for turning an area of interest into output pixel dimensions."""

    def resolve(
        self,
        min_x: float,
        min_y: float,
        max_x: float,
        max_y: float,
        epsg: int,
    ) -> ImageSize:
        """Return (width, height) for the bounding box expressed in ``epsg``."""
        ...
