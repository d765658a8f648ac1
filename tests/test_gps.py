import math

import pytest

from planar_plugins.gps import WGS84_A, GpsConfig, GpsConverter, geodetic_to_ecef
from planar_plugins.model_tf_publisher import Transform2D, quaternion_from_yaw

BODIES = ["base", "mast"]


def make(extra=None, namespace=""):
    config = {"body": "base"}
    config.update(extra or {})
    return GpsConverter(GpsConfig.from_mapping(config, BODIES, "gps"), namespace)


def test_ecef_on_equator_and_pole():
    assert geodetic_to_ecef(0.0, 0.0) == pytest.approx((WGS84_A, 0.0, 0.0))
    x, y, z = geodetic_to_ecef(math.pi / 2, 0.0)
    assert abs(x) < 1e-6 and abs(y) < 1e-6
    assert z == pytest.approx(6356752.3142, rel=1e-9)


def test_config_defaults():
    cfg = GpsConfig.from_mapping({"body": "base"}, BODIES, "gps")
    assert cfg.topic == "gps/fix"
    assert cfg.frame == "gps"
    assert cfg.broadcast_tf is True
    assert cfg.update_rate == 10.0
    assert cfg.origin == Transform2D(0.0, 0.0, 0.0)


def test_missing_body_raises():
    with pytest.raises(ValueError, match='Entry "body" does not exist'):
        GpsConfig.from_mapping({}, BODIES, "gps")


def test_unknown_body_raises():
    with pytest.raises(ValueError, match="Cannot find body with name ghost"):
        GpsConfig.from_mapping({"body": "ghost"}, BODIES, "gps")


def test_bad_origin_raises():
    with pytest.raises(ValueError):
        GpsConfig.from_mapping({"body": "base", "origin": [1, 2]}, BODIES, "gps")


def test_transform_frames_and_rotation():
    converter = make({"frame": "antenna", "origin": [0.5, -0.25, 0.3]}, namespace="r")
    assert converter.parent_frame_id == "r_base"
    assert converter.frame_id == "r_antenna"
    assert converter.transform.translation == (0.5, -0.25, 0.0)
    assert converter.transform.rotation == quaternion_from_yaw(0.3)


def test_fix_at_reference_point():
    lat, lon, alt = make().fix(0.0, 0.0, 0.0)
    assert lat == pytest.approx(0.0, abs=1e-9)
    assert lon == pytest.approx(0.0, abs=1e-9)
    assert alt == 0.0


def test_fix_at_nonzero_reference():
    lat, lon, _ = make({"ref_lat": 45.0, "ref_lon": 10.0}).fix(0.0, 0.0, 0.0)
    assert lat == pytest.approx(45.0, abs=1e-6)
    assert lon == pytest.approx(10.0, abs=1e-9)


def test_north_and_east_directions():
    converter = make({"ref_lat": 30.0, "ref_lon": -20.0})
    lat0, lon0, _ = converter.fix(0.0, 0.0, 0.0)
    lat_n, lon_n, _ = converter.fix(0.0, 500.0, 0.0)
    lat_s, _, _ = converter.fix(0.0, -500.0, 0.0)
    lat_e, lon_e, _ = converter.fix(500.0, 0.0, 0.0)
    assert lat_n > lat0 > lat_s
    assert lat_n - lat0 == pytest.approx(lat0 - lat_s, rel=1e-3)
    assert lon_n == pytest.approx(lon0, abs=1e-9)
    assert lon_e > lon0


def test_origin_offset_matches_moved_body():
    with_origin = make({"ref_lat": 12.0, "origin": [10.0, 0.0, 0.0]})
    plain = make({"ref_lat": 12.0})
    assert with_origin.fix(0.0, 0.0, 0.0) == pytest.approx(plain.fix(10.0, 0.0, 0.0))
    assert with_origin.fix(0.0, 0.0, math.pi / 2) == pytest.approx(
        plain.fix(0.0, 10.0, 0.0)
    )