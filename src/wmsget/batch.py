"""
Concurrent GetMap batches: one image file per bounding box.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

import requests

from .core import round_half_away
from .dimensions import dimensions_for
from .errors import InvalidBBoxError, ValidationError
from .service.config import ServiceConfig
from .service.wms import GetMapPipeline, WMSService
from .tiles import crop_center, decode_image, save_image
from .types import BBoxTuple, MapRequest, file_extension
from .typing import BBoxInput

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8
DEFAULT_EXTENSION = "png"
PERCENT = 100


def parse_bbox(values: Union[str, BBoxInput]) -> BBoxTuple:
    """
    Parse a bounding box from ``"minx,miny,maxx,maxy"`` or four values.

    Raises:
        InvalidBBoxError: If there are not exactly four numeric values
    """
    parts = values.split(",") if isinstance(values, str) else list(values)
    if len(parts) != 4:
        raise InvalidBBoxError(f"Invalid BBox {values!r}: expected minx,miny,maxx,maxy")
    try:
        min_x, min_y, max_x, max_y = (float(part) for part in parts)
    except (TypeError, ValueError) as exc:
        raise InvalidBBoxError(f"Invalid BBox {values!r}: {exc}", cause=exc) from exc
    return (min_x, min_y, max_x, max_y)


def read_bbox_file(path: Union[str, Path]) -> List[BBoxTuple]:
    """Read one ``minx,miny,maxx,maxy`` bounding box per line, skipping blank lines."""
    bboxes: List[BBoxTuple] = []
    with open(path, encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                bboxes.append(parse_bbox(line.strip()))
            except InvalidBBoxError as exc:
                raise InvalidBBoxError(f"Invalid BBox file {path} line {line_number}: {exc}", cause=exc) from exc
    return bboxes


def expand_bbox(bbox: BBoxTuple, expand: float) -> BBoxTuple:
    """Grow a box by ``expand`` percent per axis, half on each side."""
    min_x, min_y, max_x, max_y = bbox
    expand_x = (max_x - min_x) * expand / PERCENT
    expand_y = (max_y - min_y) * expand / PERCENT
    return (min_x - expand_x / 2, min_y - expand_y / 2, max_x + expand_x / 2, max_y + expand_y / 2)


def output_path(output_dir: Union[str, Path], file_name: str, extension: str, index: int, total: int) -> Path:
    if total > 1:
        return Path(output_dir) / f"{index + 1:02d}_{file_name}.{extension}"
    return Path(output_dir) / f"{file_name}.{extension}"


def fetch_batch(
    service: Union[WMSService, MapRequest],
    bboxes: Iterable[Union[str, BBoxInput]],
    *,
    width: int = 0,
    height: int = 0,
    scale: int = 0,
    dpi: int = 0,
    expand: float = 0,
    cut: bool = False,
    file_name: str = "example",
    output_dir: Union[str, Path] = "output",
    max_workers: int = DEFAULT_MAX_WORKERS,
    pipeline: Optional[GetMapPipeline] = None,
) -> List[Path]:
    """
    Fetch one image per bounding box concurrently and save them to disk.

    The session is snapshotted once, so every image is requested with the
    same layers, styles and EPSG regardless of reprojection in other units.
    All units run to completion; afterwards the first error (in completion
    order) is raised. Files written by successful units are kept.

    Args:
        service: Negotiated session or a snapshot of one
        bboxes: Bounding boxes in the session's EPSG code
        width: Output width in pixels (0 to derive it)
        height: Output height in pixels (0 to derive it)
        scale: Scale denominator, used when neither width nor height is set
        dpi: Print resolution, used with ``scale``
        expand: Percentage by which every box (and explicit size) is grown
        cut: Crop each image back to the unexpanded size
        file_name: Base name of the written files
        output_dir: Directory for the written files
        max_workers: Maximum number of concurrent requests (at least 1)
        pipeline: GetMap pipeline, the session's own when omitted

    Returns:
        Paths of the written files in input order

    Raises:
        ValidationError: If ``max_workers`` is below 1 or no box is given
    """
    if max_workers < 1:
        raise ValidationError(f"max_workers must be at least 1, got {max_workers}")

    if isinstance(service, WMSService):
        request = service.snapshot()
        pipeline = pipeline or service.pipeline()
    else:
        request = service
        pipeline = pipeline or GetMapPipeline()

    boxes = [parse_bbox(bbox) for bbox in bboxes]
    if not boxes:
        raise InvalidBBoxError("At least one bounding box is required")

    extension = file_extension(request.format) or DEFAULT_EXTENSION
    paths = [output_path(output_dir, file_name, extension, index, len(boxes)) for index in range(len(boxes))]

    errors: List[BaseException] = []
    with ThreadPoolExecutor(max_workers=min(max_workers, len(boxes))) as executor:
        futures: Dict[Future, int] = {
            executor.submit(
                _fetch_to_file,
                pipeline,
                request,
                bbox,
                path,
                width=width,
                height=height,
                scale=scale,
                dpi=dpi,
                expand=expand,
                cut=cut,
            ): index
            for index, (bbox, path) in enumerate(zip(boxes, paths))
        }
        for future in as_completed(futures):
            exc = future.exception()
            if exc is not None:
                logger.warning("BBox %d of %d failed: %s", futures[future] + 1, len(boxes), exc)
                errors.append(exc)

    if errors:
        raise errors[0]
    logger.debug("Wrote %d images to %s", len(paths), output_dir)
    return paths


def fetch_configured(
    config: ServiceConfig,
    bboxes: Sequence[Union[str, BBoxInput]],
    *,
    session: Optional[requests.Session] = None,
    **geometry: object,
) -> List[Path]:
    """Build the session described by ``config`` and run a batch with its output settings."""
    service = config.build_service(session=session)
    return fetch_batch(
        service,
        bboxes,
        file_name=config.file_name,
        output_dir=config.output_dir,
        max_workers=config.max_workers,
        **geometry,  # type: ignore[arg-type]
    )


def _fetch_to_file(
    pipeline: GetMapPipeline,
    request: MapRequest,
    bbox: BBoxTuple,
    path: Path,
    *,
    width: int,
    height: int,
    scale: int,
    dpi: int,
    expand: float,
    cut: bool,
) -> Path:
    factor = 1 + expand / PERCENT
    strategy = dimensions_for(round_half_away(width * factor), round_half_away(height * factor), scale, dpi)

    result = pipeline.fetch(request, *expand_bbox(bbox, expand), strategy)
    image = decode_image(result.data)
    if cut:
        image = crop_center(image, round_half_away(result.width / factor), round_half_away(result.height / factor))
    return save_image(image, path)
