"""Acceleration, deceleration and velocity bounding for a single velocity axis."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any


def _read_float(config: Mapping[str, Any], key: str, default: float) -> float:
    value = config.get(key, default)
    if isinstance(value, bool):
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}')
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}') from exc


@dataclass
class DynamicsLimits:
    """Limits applied to a commanded velocity; a limit of 0.0 disables it."""

    acceleration_limit: float = 0.0
    deceleration_limit: float = 0.0
    velocity_limit: float = 0.0

    def configure(self, config: Mapping[str, Any] | None) -> None:
        """Load the limits from a mapping; missing keys disable the limit."""
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ValueError(f"Dynamics limits must be a mapping, got {config!r}")

        self.acceleration_limit = _read_float(config, "acceleration_limit", 0.0)
        self.deceleration_limit = _read_float(config, "deceleration_limit", math.inf)
        # deceleration defaults to the acceleration limit when not given
        if self.deceleration_limit == math.inf:
            self.deceleration_limit = self.acceleration_limit
        self.velocity_limit = _read_float(config, "velocity_limit", 0.0)

    @staticmethod
    def saturate(value: float, lower: float, upper: float) -> float:
        """Clamp value into [lower, upper]; invalid bounds leave it unchanged."""
        if lower > upper:
            return value
        return min(max(value, lower), upper)

    def limit(self, velocity: float, target_velocity: float, timestep: float) -> float:
        """Return the velocity reached after one timestep towards the target."""
        if self.velocity_limit != 0.0:
            target_velocity = self.saturate(
                target_velocity, -self.velocity_limit, self.velocity_limit
            )

        accel = self.acceleration_limit
        decel = self.deceleration_limit

        if target_velocity == 0:
            acceleration_limit = decel
        elif velocity == 0:
            acceleration_limit = accel
        elif velocity * target_velocity < 0:
            # opposite directions: at least the start of the step decelerates
            if decel != 0.0:
                initial_deceleration = self.saturate(
                    (target_velocity - velocity) / timestep, -decel, decel
                )
                new_velocity = velocity + initial_deceleration * timestep
                if new_velocity * velocity > 0 and accel != 0.0:
                    acceleration_limit = decel
                elif accel == 0:
                    acceleration_limit = 0.0
                else:
                    # both limits apply in proportion to the time spent on each side of zero
                    deceleration_time = abs(velocity) / decel
                    share = deceleration_time / timestep
                    acceleration_limit = decel * share + accel * (1 - share)
            else:
                velocity = 0.0
                acceleration_limit = accel
        elif abs(velocity) < abs(target_velocity):
            acceleration_limit = accel
        else:
            acceleration_limit = decel

        acceleration = (target_velocity - velocity) / timestep
        if acceleration_limit != 0.0:
            acceleration = self.saturate(
                acceleration, -acceleration_limit, acceleration_limit
            )
        return velocity + acceleration * timestep