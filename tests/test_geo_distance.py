import math

import pytest

from geoattend.core.geo import (
    EARTH_RADIUS_M,
    GeoPoint,
    classify_within_radius,
    compute_distance_meters,
    format_distance,
    measure,
)

DUBAI = GeoPoint(lat=25.2048, lon=55.2708)
RIYADH = GeoPoint(lat=24.7136, lon=46.6753)
JEDDAH = GeoPoint(lat=21.4858, lon=39.1925)


def test_identical_points_are_zero_meters_apart():
    d = compute_distance_meters(DUBAI, GeoPoint(lat=25.2048, lon=55.2708))
    assert d == 0
    assert format_distance(d) == "0 meters"


def test_distance_is_symmetric():
    pairs = [
        (DUBAI, RIYADH),
        (RIYADH, JEDDAH),
        (GeoPoint(lat=-33.8688, lon=151.2093), GeoPoint(lat=51.5074, lon=-0.1278)),
        (GeoPoint(lat=0.0, lon=179.9), GeoPoint(lat=0.0, lon=-179.9)),
    ]
    for a, b in pairs:
        assert compute_distance_meters(a, b) == compute_distance_meters(b, a)


def test_small_offset_in_dubai_is_about_thirty_meters():
    d = compute_distance_meters(DUBAI, GeoPoint(lat=25.2050, lon=55.2710))
    assert 29.0 < d < 31.0
    assert classify_within_radius(d, 50) is True


def test_riyadh_to_jeddah_is_about_844_km():
    d = compute_distance_meters(RIYADH, JEDDAH)
    assert d == pytest.approx(844_000, abs=5_000)
    label = format_distance(d)
    assert label.endswith(" km")
    assert label == f"{d / 1000:.1f} km"


def test_distance_grows_along_a_meridian():
    origin = GeoPoint(lat=0.0, lon=30.0)
    distances = [compute_distance_meters(origin, GeoPoint(lat=float(lat), lon=30.0)) for lat in range(0, 91, 10)]
    assert distances == sorted(distances)
    assert len(set(distances)) == len(distances)


def test_antipodal_points_are_half_the_circumference():
    d = compute_distance_meters(GeoPoint(lat=0.0, lon=0.0), GeoPoint(lat=0.0, lon=180.0))
    assert d == pytest.approx(math.pi * EARTH_RADIUS_M)


def test_nan_propagates_without_raising():
    d = compute_distance_meters(GeoPoint(lat=float("nan"), lon=0.0), DUBAI)
    assert math.isnan(d)


def test_measure_combines_distance_and_classification():
    result = measure(DUBAI, GeoPoint(lat=25.2050, lon=55.2710), 50)
    assert result.within_radius is True
    assert result.distance_m == compute_distance_meters(DUBAI, GeoPoint(lat=25.2050, lon=55.2710))

    far = measure(RIYADH, JEDDAH, 1_000)
    assert far.within_radius is False
