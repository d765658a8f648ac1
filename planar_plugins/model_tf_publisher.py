"""Transforms between the bodies of a model, relative to a reference body."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

_KNOWN_KEYS = frozenset(
    {"publish_tf_world", "world_frame_id", "update_rate", "reference", "exclude"}
)


def _wrap(angle: float) -> float:
    return math.atan2(math.sin(angle), math.cos(angle))


@dataclass(frozen=True)
class Transform2D:
    """A planar rigid transform: a translation followed by a rotation."""

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0

    def compose(self, other: Transform2D) -> Transform2D:
        """Return self applied after other, as a product of matrices."""
        c, s = math.cos(self.theta), math.sin(self.theta)
        return Transform2D(
            self.x + c * other.x - s * other.y,
            self.y + s * other.x + c * other.y,
            _wrap(self.theta + other.theta),
        )

    def inverse(self) -> Transform2D:
        """Return the transform that undoes this one."""
        c, s = math.cos(self.theta), math.sin(self.theta)
        return Transform2D(
            -(c * self.x + s * self.y),
            s * self.x - c * self.y,
            _wrap(-self.theta),
        )


def quaternion_from_yaw(yaw: float) -> tuple[float, float, float, float]:
    """Return the (x, y, z, w) quaternion of a rotation about the z axis."""
    return (0.0, 0.0, math.sin(0.5 * yaw), math.cos(0.5 * yaw))


@dataclass(frozen=True)
class TransformStamped:
    """A transform from a parent frame to a child frame at an instant."""

    stamp: float
    frame_id: str
    child_frame_id: str
    translation: tuple[float, float, float]
    rotation: tuple[float, float, float, float]


@dataclass(frozen=True)
class ModelTfPublisherConfig:
    """Settings of the model transform publisher."""

    reference: str
    publish_tf_world: bool = False
    world_frame_id: str = "map"
    update_rate: float = math.inf
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_mapping(
        cls, config: Mapping[str, Any] | None, body_names: Sequence[str]
    ) -> ModelTfPublisherConfig:
        """Build the settings; the reference defaults to the model's first body."""
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ValueError(f"Publisher configuration must be a mapping, got {config!r}")

        publish_tf_world = config.get("publish_tf_world", False)
        if not isinstance(publish_tf_world, bool):
            raise ValueError(
                f'Entry "publish_tf_world" must be a boolean, got {publish_tf_world!r}'
            )
        world_frame_id = config.get("world_frame_id", "map")
        if not isinstance(world_frame_id, str):
            raise ValueError(
                f'Entry "world_frame_id" must be a string, got {world_frame_id!r}'
            )
        rate = config.get("update_rate", math.inf)
        if isinstance(rate, bool):
            raise ValueError(f'Entry "update_rate" must be a number, got {rate!r}')
        try:
            update_rate = float(rate)
        except (TypeError, ValueError) as exc:
            raise ValueError(f'Entry "update_rate" must be a number, got {rate!r}') from exc
        reference = config.get("reference", "")
        if not isinstance(reference, str):
            raise ValueError(f'Entry "reference" must be a string, got {reference!r}')
        exclude = config.get("exclude", [])
        if (
            isinstance(exclude, str)
            or not isinstance(exclude, Sequence)
            or not all(isinstance(name, str) for name in exclude)
        ):
            raise ValueError(f'Entry "exclude" must be a list of strings, got {exclude!r}')

        unknown = sorted(set(config) - _KNOWN_KEYS)
        if unknown:
            raise ValueError(f"Unused entries in configuration: {{{', '.join(unknown)}}}")

        if reference:
            if reference not in body_names:
                raise ValueError(f'Body with name "{reference}" does not exist')
        elif body_names:
            # the reference changes how the tree looks, not the final result
            reference = body_names[0]
        else:
            raise ValueError("You didn't provide any bodies for model")

        for name in exclude:
            if name not in body_names:
                raise ValueError(f'Body with name "{name}" does not exist')

        return cls(
            reference=reference,
            publish_tf_world=publish_tf_world,
            world_frame_id=world_frame_id,
            update_rate=update_rate,
            exclude=tuple(exclude),
        )


class ModelTfPublisher:
    """Computes the transforms from the reference body to each other body."""

    def __init__(self, config: ModelTfPublisherConfig, namespace: str = ""):
        self.config = config
        self.namespace = namespace

    def _frame(self, body_name: str) -> str:
        return f"{self.namespace}_{body_name}" if self.namespace else body_name

    def transforms(
        self, poses: Mapping[str, Transform2D], stamp: float
    ) -> list[TransformStamped]:
        """Return the transforms for the given world poses of the model's bodies."""
        reference = self.config.reference
        if reference not in poses:
            raise ValueError(f'Body with name "{reference}" does not exist')
        ref_pose = poses[reference]
        ref_inverse = ref_pose.inverse()
        parent = self._frame(reference)

        result = []
        for name, pose in poses.items():
            if name in self.config.exclude or name == reference:
                continue
            relative = ref_inverse.compose(pose)
            result.append(
                TransformStamped(
                    stamp=stamp,
                    frame_id=parent,
                    child_frame_id=self._frame(name),
                    translation=(relative.x, relative.y, 0.0),
                    rotation=quaternion_from_yaw(relative.theta),
                )
            )

        if self.config.publish_tf_world:
            result.append(
                TransformStamped(
                    stamp=stamp,
                    frame_id=self.config.world_frame_id,
                    child_frame_id=parent,
                    translation=(ref_pose.x, ref_pose.y, 0.0),
                    rotation=quaternion_from_yaw(ref_pose.theta),
                )
            )
        return result