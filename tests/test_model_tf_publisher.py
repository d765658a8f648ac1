import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from planar_plugins.model_tf_publisher import (
    ModelTfPublisher,
    ModelTfPublisherConfig,
    Transform2D,
    TransformStamped,
    quaternion_from_yaw,
)

BODIES = ["base", "left_wheel", "right_wheel", "antenna", "front_bumper", "rear_bumper"]
BASE = Transform2D(8, 6, -0.575958653)


def robot_poses():
    return {
        "base": BASE,
        "left_wheel": BASE.compose(Transform2D(-0.25, 1, 0)),
        "right_wheel": BASE.compose(Transform2D(-0.25, -1, 0)),
        "antenna": BASE.compose(Transform2D(0, 0, 0)),
        "front_bumper": BASE.compose(Transform2D(2, 0, 0)),
        "rear_bumper": BASE.compose(Transform2D(-2, 0, 0)),
    }


def yaw_of(tf: TransformStamped) -> float:
    x, y, z, w = tf.rotation
    assert x == 0.0 and y == 0.0
    return math.atan2(math.sin(2 * math.atan2(z, w)), math.cos(2 * math.atan2(z, w)))


def assert_tf(tf, x, y, a):
    assert tf.translation[0] == pytest.approx(x, abs=1e-5)
    assert tf.translation[1] == pytest.approx(y, abs=1e-5)
    assert tf.translation[2] == 0
    assert yaw_of(tf) == pytest.approx(a, abs=1e-5)


def by_child(tfs):
    return {(tf.frame_id, tf.child_frame_id): tf for tf in tfs}


def test_publish_test_a():
    config = ModelTfPublisherConfig.from_mapping(
        {
            "reference": "antenna",
            "publish_tf_world": True,
            "world_frame_id": "world",
            "update_rate": 5000,
            "exclude": ["front_bumper", "rear_bumper"],
        },
        BODIES,
    )
    assert config.update_rate == 5000.0
    assert config.reference == "antenna"
    tfs = by_child(ModelTfPublisher(config, "my_robot").transforms(robot_poses(), 1.0))

    assert_tf(tfs[("world", "my_robot_antenna")], 8, 6, -0.575958653)
    assert_tf(tfs[("my_robot_antenna", "my_robot_base")], 0, 0, 0)
    assert_tf(tfs[("my_robot_antenna", "my_robot_left_wheel")], -0.25, 1, 0)
    assert_tf(tfs[("my_robot_antenna", "my_robot_right_wheel")], -0.25, -1, 0)
    children = {child for _, child in tfs}
    assert "my_robot_front_bumper" not in children
    assert "my_robot_rear_bumper" not in children


def test_publish_test_b():
    config = ModelTfPublisherConfig.from_mapping({}, BODIES)
    assert config.update_rate == math.inf
    assert config.reference == "base"
    tfs = by_child(ModelTfPublisher(config).transforms(robot_poses(), 0.0))

    assert_tf(tfs[("base", "antenna")], 0, 0, 0)
    assert_tf(tfs[("base", "left_wheel")], -0.25, 1, 0)
    assert_tf(tfs[("base", "right_wheel")], -0.25, -1, 0)
    assert_tf(tfs[("base", "front_bumper")], 2, 0, 0)
    assert_tf(tfs[("base", "rear_bumper")], -2, 0, 0)
    assert all(parent != "map" for parent, _ in tfs)


def test_invalid_reference():
    with pytest.raises(ValueError, match='Body with name "random_body" does not exist'):
        ModelTfPublisherConfig.from_mapping({"reference": "random_body"}, BODIES)


def test_invalid_exclude():
    with pytest.raises(ValueError, match='Body with name "random_body_1" does not exist'):
        ModelTfPublisherConfig.from_mapping({"exclude": ["random_body_1"]}, BODIES)


def test_unknown_key():
    with pytest.raises(ValueError, match="Unused entries"):
        ModelTfPublisherConfig.from_mapping({"bogus": True}, BODIES)


def test_missing_reference_pose():
    config = ModelTfPublisherConfig.from_mapping({}, BODIES)
    with pytest.raises(ValueError, match="base"):
        ModelTfPublisher(config).transforms({"antenna": BASE}, 0.0)


def test_stamp_is_carried():
    config = ModelTfPublisherConfig.from_mapping({"publish_tf_world": True}, BODIES)
    tfs = ModelTfPublisher(config).transforms(robot_poses(), 12.5)
    assert {tf.stamp for tf in tfs} == {12.5}
    assert tfs[-1].frame_id == "map"


def test_quaternion_of_zero_yaw():
    assert quaternion_from_yaw(0.0) == (0.0, 0.0, 0.0, 1.0)


coords = st.floats(min_value=-100, max_value=100, allow_nan=False)
angles = st.floats(min_value=-3.0, max_value=3.0, allow_nan=False)


@given(coords, coords, angles)
def test_inverse_composes_to_identity(x, y, theta):
    t = Transform2D(x, y, theta)
    identity = t.inverse().compose(t)
    assert identity.x == pytest.approx(0, abs=1e-9)
    assert identity.y == pytest.approx(0, abs=1e-9)
    assert identity.theta == pytest.approx(0, abs=1e-9)


@given(coords, coords, angles, coords, coords, angles)
def test_relative_round_trip(x1, y1, a1, x2, y2, a2):
    ref = Transform2D(x1, y1, a1)
    rel = Transform2D(x2, y2, a2)
    back = ref.inverse().compose(ref.compose(rel))
    assert back.x == pytest.approx(x2, abs=1e-6)
    assert back.y == pytest.approx(y2, abs=1e-6)
    assert back.theta == pytest.approx(a2, abs=1e-9)


@given(angles)
def test_quaternion_is_unit_and_recovers_yaw(yaw):
    x, y, z, w = quaternion_from_yaw(yaw)
    assert x * x + y * y + z * z + w * w == pytest.approx(1.0)
    assert 2 * math.atan2(z, w) == pytest.approx(yaw)