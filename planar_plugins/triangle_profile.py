"""A triangular leg speed profile for a simple walking pattern."""

from __future__ import annotations

import enum
import math
import time
from collections.abc import Callable


class ProfileState(enum.Enum):
    """Phases of one step of the walking pattern."""

    INIT = enum.auto()
    SWING_PHASE1 = enum.auto()
    CENTER = enum.auto()
    SWING_PHASE2 = enum.auto()


_NEXT_STATE = {
    ProfileState.INIT: ProfileState.SWING_PHASE2,
    ProfileState.SWING_PHASE1: ProfileState.CENTER,
    ProfileState.CENTER: ProfileState.SWING_PHASE2,
    ProfileState.SWING_PHASE2: ProfileState.SWING_PHASE1,
}


class TriangleProfile:
    """Leg speed that ramps up and down linearly over each step time."""

    def __init__(self, step_time: float, clock: Callable[[], float] = time.monotonic):
        self.step_time = step_time
        self.state = ProfileState.INIT
        self._clock = clock
        self._start_time = 0.0

    def _advance(self) -> None:
        self.state = _NEXT_STATE[self.state]

    def speed_multiplier(self, body_speed: float) -> float:
        """Return the factor by which the moving leg's speed exceeds the body's."""
        now = self._clock()
        half_step = self.step_time * 0.5
        max_vel = 4 * body_speed
        m = max_vel / half_step
        leg_vel = -max_vel
        diff = now - self._start_time

        if self.state is ProfileState.INIT:
            self._start_time = now - half_step
            self._advance()
        elif self.state is ProfileState.SWING_PHASE1:
            leg_vel = m * diff
            if diff >= half_step:
                self._advance()
        elif self.state is ProfileState.CENTER:
            leg_vel = max_vel - m * (diff - half_step)
            self._advance()
        else:
            leg_vel = max_vel - m * (diff - half_step)
            if diff >= self.step_time:
                leg_vel = 0.0
                self._start_time = now
                self._advance()

        if body_speed == 0:
            # the leg speed scales with the body speed, so the ratio is undefined
            return math.nan
        return leg_vel / body_speed

    def is_leg_in_center(self) -> bool:
        """True while both legs pass the body's centre."""
        return self.state is ProfileState.CENTER