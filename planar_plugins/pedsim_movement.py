"""Moves a pedestrian model and its legs along with an external crowd simulation."""

from __future__ import annotations

import enum
import logging
import math
import random
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from planar_plugins.triangle_profile import TriangleProfile

Vec2 = tuple[float, float]

_log = logging.getLogger(__name__)

# namespaces look like "pedsim_agent_<id>"
_ID_OFFSET = 13
# the legs are seen only in the "2D" and "ped" layers
_FOOTPRINT_CATEGORY_BITS = 0x000A


@dataclass(frozen=True)
class AgentState:
    """Position and velocity of one agent of the crowd simulation."""

    id: int
    x: float
    y: float
    vx: float
    vy: float


@dataclass(frozen=True)
class FixtureDef:
    """Physical and collision properties of a circular fixture."""

    radius: float
    center: Vec2 = (0.0, 0.0)
    density: float = 0.0
    friction: float = 0.0
    restitution: float = 0.0
    is_sensor: bool = False
    group_index: int = 0
    category_bits: int = 0
    mask_bits: int = 0


def footprint_fixture_def(radius: float) -> FixtureDef:
    """Return the leg footprint: visible to the sensors, colliding with nothing."""
    return FixtureDef(
        radius=radius,
        category_bits=_FOOTPRINT_CATEGORY_BITS,
        mask_bits=0,
    )


@dataclass
class _Motion:
    transform: tuple[float, float, float] | None = None
    linear_velocity: Vec2 | None = None
    angular_velocity: float | None = None


class _Leg(enum.Enum):
    LEFT = enum.auto()
    RIGHT = enum.auto()


def _required(config: Mapping[str, Any], key: str) -> Any:
    if key not in config:
        raise ValueError(f'Entry "{key}" does not exist')
    return config[key]


def _req_float(config: Mapping[str, Any], key: str) -> float:
    value = _required(config, key)
    if isinstance(value, bool):
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}')
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}') from exc


def _req_spread(config: Mapping[str, Any], key: str) -> float:
    value = _req_float(config, key)
    if value < 0:
        raise ValueError(f'Entry "{key}" must not be negative')
    return value


def _req_str(config: Mapping[str, Any], key: str) -> str:
    value = _required(config, key)
    if not isinstance(value, str):
        raise ValueError(f'Entry "{key}" must be a string, got {value!r}')
    return value


def _req_bool(config: Mapping[str, Any], key: str) -> bool:
    value = _required(config, key)
    if not isinstance(value, bool):
        raise ValueError(f'Entry "{key}" must be a boolean, got {value!r}')
    return value


class PedsimMovement:
    """Follows one crowd agent and moves its legs in a walking pattern."""

    def __init__(
        self,
        config: Mapping[str, Any],
        body_names: Sequence[str],
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not isinstance(config, Mapping):
            raise ValueError(f"Pedestrian configuration must be a mapping, got {config!r}")
        rng = rng if rng is not None else random.Random()

        self.toggle_leg_movement = _req_bool(config, "toggle_leg_movement")
        # every pedestrian walks slightly differently
        self.leg_offset = rng.gauss(
            _req_float(config, "leg_offset"), _req_spread(config, "var_leg_offset")
        )
        step_time = rng.gauss(
            _req_float(config, "step_time"), _req_spread(config, "var_step_time")
        )
        self.leg_radius = rng.gauss(
            _req_float(config, "leg_radius"), _req_spread(config, "var_leg_radius")
        )
        self.agent_topic = _req_str(config, "agent_topic")
        self.update_rate = _req_float(config, "update_rate")
        self.profile = TriangleProfile(step_time, clock)

        self.base_body = _req_str(config, "base_body")
        self.left_leg_body = _req_str(config, "left_leg_body")
        self.right_leg_body = _req_str(config, "right_leg_body")
        for name in (self.base_body, self.left_leg_body, self.right_leg_body):
            if name not in body_names:
                raise ValueError("Body with the given name does not exist")

        self.leg_fixture = footprint_fixture_def(self.leg_radius)
        self.base_angle = 0.0
        self._leg = _Leg.LEFT
        self._initialised = False

    def leg_positions(self, x: float, y: float, angle: float) -> tuple[Vec2, Vec2]:
        """Return the left and right leg positions around a body position."""
        half = self.leg_offset / 2
        dx = half * math.cos(math.pi / 2 - angle)
        dy = half * math.sin(math.pi / 2 - angle)
        return (x + dx, y - dy), (x - dx, y + dy)

    def _place_legs(
        self, motions: dict[str, _Motion], x: float, y: float, angle: float
    ) -> None:
        left, right = self.leg_positions(x, y, angle)
        motions.setdefault(self.left_leg_body, _Motion()).transform = (*left, angle)
        motions.setdefault(self.right_leg_body, _Motion()).transform = (*right, angle)

    def _move_leg(
        self, motions: dict[str, _Motion], body: str, velocity: Vec2, angle_diff: float
    ) -> None:
        motion = motions.setdefault(body, _Motion())
        motion.linear_velocity = velocity
        motion.angular_velocity = angle_diff

    def step(
        self, agents: Sequence[AgentState] | None, namespace: str
    ) -> dict[str, _Motion] | None:
        """Return what to set on each body, or None when there is nothing to do."""
        if agents is None:
            return None
        agent_id = int(namespace[_ID_OFFSET:])
        person = next((agent for agent in agents if agent.id == agent_id), None)
        if person is None:
            _log.warning("Couldn't find agent: %d", agent_id)
            return None

        motions: dict[str, _Motion] = {}
        if not self._initialised:
            self._place_legs(motions, person.vx, person.vy, 0.0)
            self._initialised = True

        vel_x, vel_y = person.vx, person.vy
        angle_target = math.atan2(vel_y, vel_x)
        angle_current = self.base_angle

        base = motions.setdefault(self.base_body, _Motion())
        base.transform = (person.x, person.y, angle_target)
        base.linear_velocity = (vel_x, vel_y)
        self.base_angle = angle_target

        if self.toggle_leg_movement:
            multiplier = self.profile.speed_multiplier(vel_x)
            velocity = (vel_x * multiplier, vel_y * multiplier)
            angle_diff = angle_target - angle_current
            if self._leg is _Leg.RIGHT:
                self._move_leg(motions, self.right_leg_body, velocity, angle_diff)
                if multiplier == 0.0:
                    self._leg = _Leg.LEFT
            else:
                self._move_leg(motions, self.left_leg_body, velocity, angle_diff)
                if multiplier == 0.0:
                    self._leg = _Leg.RIGHT
            # resynchronise the legs with the agent whenever they pass the centre
            if self.profile.is_leg_in_center():
                self._place_legs(motions, person.x, person.y, angle_target)
        else:
            self._place_legs(motions, person.x, person.y, angle_target)
        return motions