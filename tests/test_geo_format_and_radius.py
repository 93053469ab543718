from geoattend.core.geo import classify_within_radius, format_distance


def test_radius_boundary_is_inclusive():
    assert classify_within_radius(100.0, 100) is True
    assert classify_within_radius(100.01, 100) is False
    assert classify_within_radius(0.0, 0) is True


def test_format_switches_to_kilometers_at_1000_meters():
    assert format_distance(999) == "999 meters"
    assert format_distance(1000) == "1.0 km"
    assert format_distance(1049.9) == "1.0 km"
    assert format_distance(12_345) == "12.3 km"


def test_format_rounds_meters_half_up():
    assert format_distance(0.4) == "0 meters"
    assert format_distance(0.5) == "1 meters"
    assert format_distance(42.5) == "43 meters"
    assert format_distance(999.5) == "1000 meters"


def test_format_uses_configured_labels_and_decimals():
    assert format_distance(250, meters_label="متر") == "250 متر"
    assert format_distance(845_126, kilometers_label="كم") == "845.1 كم"
    assert format_distance(1500, decimals=2) == "1.50 km"
