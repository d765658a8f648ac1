"""A bumper that reports every contact of a model with its average forces."""

from __future__ import annotations

import math
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

Vec2 = tuple[float, float]

_KNOWN_KEYS = frozenset(
    {"world_frame_id", "topic", "publish_all_collisions", "update_rate", "exclude"}
)


def _get_str(config: Mapping[str, Any], key: str, default: str) -> str:
    value = config.get(key, default)
    if not isinstance(value, str):
        raise ValueError(f'Entry "{key}" must be a string, got {value!r}')
    return value


def _get_bool(config: Mapping[str, Any], key: str, default: bool) -> bool:
    value = config.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f'Entry "{key}" must be a boolean, got {value!r}')
    return value


def _get_float(config: Mapping[str, Any], key: str, default: float) -> float:
    value = config.get(key, default)
    if isinstance(value, bool):
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}')
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}') from exc


def _get_names(config: Mapping[str, Any], key: str) -> tuple[str, ...]:
    value = config.get(key, [])
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ValueError(f'Entry "{key}" must be a list of strings, got {value!r}')
    if not all(isinstance(name, str) for name in value):
        raise ValueError(f'Entry "{key}" must be a list of strings, got {value!r}')
    return tuple(value)


@dataclass
class ContactState:
    """What is known about one live contact of the model."""

    entity_b: str
    body_a: str
    body_b: str
    normal_sign: int = 1
    num_count: int = 0
    sum_normal_impulses: list[float] = field(default_factory=lambda: [0.0, 0.0])
    sum_tangential_impulses: list[float] = field(default_factory=lambda: [0.0, 0.0])
    points: list[Vec2] = field(default_factory=list)
    normal: Vec2 = (0.0, 0.0)

    def reset(self) -> None:
        """Clear the impulses gathered during the last physics step."""
        self.num_count = 0
        self.sum_normal_impulses = [0.0, 0.0]
        self.sum_tangential_impulses = [0.0, 0.0]


@dataclass
class Collision:
    """One contact between this model and another entity."""

    entity_a: str
    body_a: str
    entity_b: str
    body_b: str
    magnitude_forces: list[float] = field(default_factory=list)
    contact_positions: list[Vec2] = field(default_factory=list)
    contact_normals: list[Vec2] = field(default_factory=list)


@dataclass
class Collisions:
    """All contacts of the model at one instant."""

    frame_id: str
    stamp: float
    collisions: list[Collision] = field(default_factory=list)


@dataclass(frozen=True)
class BumperConfig:
    """Settings of a bumper."""

    world_frame_id: str = "map"
    topic: str = "collisions"
    publish_all_collisions: bool = True
    update_rate: float = math.inf
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_mapping(
        cls, config: Mapping[str, Any] | None, body_names: Sequence[str]
    ) -> BumperConfig:
        """Build the settings, checking keys and excluded bodies against the model."""
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ValueError(f"Bumper configuration must be a mapping, got {config!r}")

        world_frame_id = _get_str(config, "world_frame_id", "map")
        topic = _get_str(config, "topic", "collisions")
        publish_all = _get_bool(config, "publish_all_collisions", True)
        update_rate = _get_float(config, "update_rate", math.inf)
        exclude = _get_names(config, "exclude")

        unknown = sorted(set(config) - _KNOWN_KEYS)
        if unknown:
            raise ValueError(f"Unused entries in configuration: {{{', '.join(unknown)}}}")

        for name in exclude:
            if name not in body_names:
                raise ValueError(f'Body with name "{name}" does not exist')

        return cls(
            world_frame_id=world_frame_id,
            topic=topic,
            publish_all_collisions=publish_all,
            update_rate=update_rate,
            exclude=exclude,
        )


class Bumper:
    """Tracks the contacts of a model and turns solver impulses into forces."""

    def __init__(self, config: BumperConfig):
        self.config = config
        self.contact_states: dict[Hashable, ContactState] = {}

    def needs_timer(self) -> bool:
        """True when publishing now is governed by the update rate.

        Non-empty collisions are always published when every collision is to
        be published; otherwise the update rate decides.
        """
        return not self.config.publish_all_collisions or not self.contact_states

    def before_step(self) -> None:
        """Clear gathered impulses; the solver computes them anew each step."""
        for state in self.contact_states.values():
            state.reset()

    def begin_contact(
        self,
        contact: Hashable,
        this_body: str,
        other_body: str,
        other_entity: str,
        this_is_a: bool,
    ) -> None:
        """Start tracking a contact unless it is known or its body is excluded."""
        if contact in self.contact_states or this_body in self.config.exclude:
            return
        # the solver's normal points from fixture A to B; flip it so it always
        # points from this model to the other entity
        self.contact_states[contact] = ContactState(
            entity_b=other_entity,
            body_a=this_body,
            body_b=other_body,
            normal_sign=1 if this_is_a else -1,
        )

    def end_contact(self, contact: Hashable) -> None:
        """Stop tracking a contact that has ended."""
        self.contact_states.pop(contact, None)

    def post_solve(
        self,
        contact: Hashable,
        normal_impulses: Sequence[float],
        tangent_impulses: Sequence[float],
        points: Sequence[Vec2],
        normal: Vec2,
    ) -> None:
        """Add the impulses of one solver substep; points and normal are kept latest."""
        state = self.contact_states.get(contact)
        if state is None:
            return
        if len(points) > 2:
            raise ValueError(f"A contact has at most 2 points, got {len(points)}")

        state.num_count += 1
        for index, impulse in enumerate(normal_impulses[:2]):
            state.sum_normal_impulses[index] += impulse
        for index, impulse in enumerate(tangent_impulses[:2]):
            state.sum_tangential_impulses[index] += impulse
        state.points = [(float(x), float(y)) for x, y in points]
        state.normal = (normal[0] * state.normal_sign, normal[1] * state.normal_sign)

    def collisions(self, model_name: str, step_size: float, stamp: float) -> Collisions:
        """Report every tracked contact with average force magnitudes."""
        report = Collisions(frame_id=self.config.world_frame_id, stamp=stamp)
        for state in self.contact_states.values():
            collision = Collision(
                entity_a=model_name,
                body_a=state.body_a,
                entity_b=state.entity_b,
                body_b=state.body_b,
            )
            # without a solver call the contact involves a sensor: no points
            if state.num_count > 0:
                for index, point in enumerate(state.points):
                    normal_force = (
                        state.sum_normal_impulses[index] / state.num_count / step_size
                    )
                    tangential_force = (
                        state.sum_tangential_impulses[index] / state.num_count / step_size
                    )
                    collision.magnitude_forces.append(
                        math.hypot(normal_force, tangential_force)
                    )
                    collision.contact_positions.append(point)
                    collision.contact_normals.append(state.normal)
            report.collisions.append(collision)
        return report