import math
import random

import pytest

from planar_plugins.pedsim_movement import (
    AgentState,
    PedsimMovement,
    footprint_fixture_def,
)

BODIES = ["base", "left_leg", "right_leg"]
NAMESPACE = "pedsim_agent_7"


def make_config(**extra):
    config = {
        "toggle_leg_movement": False,
        "leg_offset": 0.4,
        "var_leg_offset": 0.0,
        "step_time": 1.0,
        "var_step_time": 0.0,
        "leg_radius": 0.1,
        "var_leg_radius": 0.0,
        "agent_topic": "agent_states",
        "update_rate": 10.0,
        "base_body": "base",
        "left_leg_body": "left_leg",
        "right_leg_body": "right_leg",
    }
    config.update(extra)
    return config


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_footprint_fixture_def_collides_with_nothing():
    fixture = footprint_fixture_def(0.25)
    assert fixture.radius == 0.25
    assert fixture.category_bits == 0x000A
    assert fixture.mask_bits == 0
    assert fixture.is_sensor is False
    assert fixture.center == (0.0, 0.0)


def test_zero_variance_keeps_means():
    movement = PedsimMovement(make_config(), BODIES, rng=random.Random(3))
    assert movement.leg_offset == 0.4
    assert movement.leg_radius == 0.1
    assert movement.profile.step_time == 1.0
    assert movement.leg_fixture.radius == 0.1


def test_missing_entry_raises():
    config = make_config()
    del config["leg_offset"]
    with pytest.raises(ValueError, match='Entry "leg_offset" does not exist'):
        PedsimMovement(config, BODIES)


def test_unknown_body_raises():
    with pytest.raises(ValueError, match="does not exist"):
        PedsimMovement(make_config(left_leg_body="tail"), BODIES)


@pytest.mark.parametrize("angle", [0.0, 0.7, -2.1])
def test_leg_positions_are_symmetric(angle):
    movement = PedsimMovement(make_config(), BODIES)
    (lx, ly), (rx, ry) = movement.leg_positions(1.0, -2.0, angle)
    assert (lx + rx) / 2 == pytest.approx(1.0)
    assert (ly + ry) / 2 == pytest.approx(-2.0)
    assert math.hypot(lx - rx, ly - ry) == pytest.approx(movement.leg_offset)


def test_step_without_agents_does_nothing():
    movement = PedsimMovement(make_config(), BODIES)
    assert movement.step(None, NAMESPACE) is None


def test_step_with_missing_agent_does_nothing():
    movement = PedsimMovement(make_config(), BODIES)
    agents = [AgentState(id=3, x=0.0, y=0.0, vx=1.0, vy=0.0)]
    assert movement.step(agents, NAMESPACE) is None


def test_step_with_bad_namespace_raises():
    movement = PedsimMovement(make_config(), BODIES)
    with pytest.raises(ValueError):
        movement.step([], "pedsim_agent_x")


def test_step_follows_agent_without_leg_movement():
    movement = PedsimMovement(make_config(), BODIES)
    agent = AgentState(id=7, x=2.0, y=3.0, vx=1.0, vy=1.0)
    motions = movement.step([agent], NAMESPACE)
    angle = math.atan2(1.0, 1.0)
    assert motions["base"].transform == (2.0, 3.0, angle)
    assert motions["base"].linear_velocity == (1.0, 1.0)
    left, right = movement.leg_positions(2.0, 3.0, angle)
    assert motions["left_leg"].transform == (*left, angle)
    assert motions["right_leg"].transform == (*right, angle)
    assert motions["left_leg"].linear_velocity is None


def test_step_alternates_moving_leg():
    clock = FakeClock()
    movement = PedsimMovement(make_config(toggle_leg_movement=True), BODIES, clock=clock)
    agent = AgentState(id=7, x=0.0, y=0.0, vx=1.0, vy=0.0)

    first = movement.step([agent], NAMESPACE)
    assert first["left_leg"].linear_velocity is not None
    assert first["right_leg"].linear_velocity is None

    clock.now = 0.5
    second = movement.step([agent], NAMESPACE)
    # the step finished: the left leg stops and the right leg takes over
    assert second["left_leg"].linear_velocity == (0.0, 0.0)

    clock.now = 0.6
    third = movement.step([agent], NAMESPACE)
    assert "left_leg" not in third
    assert third["right_leg"].angular_velocity == 0.0
    assert third["right_leg"].linear_velocity[0] > 0