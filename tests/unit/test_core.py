import pytest

from wmsget.core import (
    known_epsg_codes,
    round_half_away,
    transform_bbox,
    transform_point,
    utm_bounds,
    utm_zone,
)
from wmsget.errors import UnknownSourceEPSGError, UnknownTargetEPSGError


@pytest.mark.unit
@pytest.mark.parametrize(
    "value, expected",
    [(0.5, 1), (1.5, 2), (2.5, 3), (-0.5, -1), (-2.5, -3), (2.4, 2), (-2.4, -2), (0.0, 0)],
)
def test_round_half_away(value: float, expected: int) -> None:
    assert round_half_away(value) == expected


@pytest.mark.unit
@pytest.mark.parametrize("longitude, zone", [(0.0, 31), (5.9, 31), (6.0, 32), (-0.1, 30), (-180.0, 1), (179.9, 60)])
def test_utm_zone(longitude: float, zone: int) -> None:
    assert utm_zone(longitude) == zone


@pytest.mark.unit
def test_known_epsg_codes_include_common_codes() -> None:
    codes = known_epsg_codes()

    assert 4326 in codes
    assert 3857 in codes
    assert 25832 in codes
    assert list(codes) == sorted(codes)


@pytest.mark.unit
def test_transform_point_lon_lat_order() -> None:
    x, y = transform_point(4326, 3857, 0.0, 0.0)

    assert x == pytest.approx(0.0, abs=1e-6)
    assert y == pytest.approx(0.0, abs=1e-6)


@pytest.mark.unit
def test_transform_bbox_to_web_mercator() -> None:
    min_x, min_y, max_x, max_y = transform_bbox(-1.0, -1.0, 1.0, 1.0, from_epsg=4326, to_epsg=3857)

    assert min_x == pytest.approx(-111319.49, abs=1)
    assert max_x == pytest.approx(111319.49, abs=1)
    assert min_y == pytest.approx(-111325.14, abs=1)
    assert max_y == pytest.approx(111325.14, abs=1)


@pytest.mark.unit
def test_transform_unknown_codes() -> None:
    with pytest.raises(UnknownSourceEPSGError) as source:
        transform_point(999999, 4326, 0, 0)
    with pytest.raises(UnknownTargetEPSGError) as target:
        transform_point(4326, 999999, 0, 0)

    assert source.value.code == 999999
    assert target.value.code == 999999


@pytest.mark.unit
def test_utm_bounds_southern_hemisphere_uses_false_northing() -> None:
    _, min_y, _, max_y = utm_bounds(0.0, -2.0, 1.0, -1.0, 4326)

    assert 9_000_000 < min_y < max_y < 10_000_000
