"""A planar laser range finder built on ray casts against the world."""

from __future__ import annotations

import math
import random
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from planar_plugins.model_tf_publisher import (
    Transform2D,
    TransformStamped,
    quaternion_from_yaw,
)

Vec2 = tuple[float, float]

_KNOWN_KEYS = frozenset(
    {
        "body",
        "topic",
        "frame",
        "broadcast_tf",
        "update_rate",
        "origin",
        "range",
        "noise_std_dev",
        "flipped",
        "layers",
        "angle",
    }
)
_ANGLE_KEYS = frozenset({"min", "max", "increment"})
_REFLECTANCE_LAYER = "reflectance"
_REFLECTIVE_INTENSITY = 255.0
_MISSING = object()


@dataclass(frozen=True)
class RayHit:
    """One fixture crossed by a ray, at a fraction of the ray's length."""

    fraction: float
    category_bits: int
    is_sensor: bool = False


RayCast = Callable[[Vec2, Vec2], Iterable[RayHit]]


@dataclass
class LaserScan:
    """One sweep of the laser."""

    stamp: float
    frame_id: str
    angle_min: float
    angle_max: float
    angle_increment: float
    range_max: float
    ranges: list[float] = field(default_factory=list)
    intensities: list[float] = field(default_factory=list)
    time_increment: float = 0.0
    scan_time: float = 0.0
    range_min: float = 0.0


def _to_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}')
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}') from exc


def _get_float(config: Mapping[str, Any], key: str, default: Any = _MISSING) -> float:
    if key not in config:
        if default is _MISSING:
            raise ValueError(f'Entry "{key}" does not exist')
        return float(default)
    return _to_float(key, config[key])


def _get_str(config: Mapping[str, Any], key: str, default: str | None = None) -> str:
    if key not in config:
        if default is None:
            raise ValueError(f'Entry "{key}" does not exist')
        return default
    value = config[key]
    if not isinstance(value, str):
        raise ValueError(f'Entry "{key}" must be a string, got {value!r}')
    return value


def _get_bool(config: Mapping[str, Any], key: str, default: bool) -> bool:
    value = config.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f'Entry "{key}" must be a boolean, got {value!r}')
    return value


def _check_keys(config: Mapping[str, Any], known: frozenset[str]) -> None:
    unknown = sorted(set(config) - known)
    if unknown:
        raise ValueError(f"Unused entries in configuration: {{{', '.join(unknown)}}}")


def _category_bits(
    names: Sequence[str], layer_bits: Mapping[str, int]
) -> tuple[int, list[str]]:
    bits = 0
    invalid = []
    for name in names:
        if name == "all":
            for value in layer_bits.values():
                bits |= value
        elif name in layer_bits:
            bits |= layer_bits[name]
        else:
            invalid.append(name)
    return bits, invalid


@dataclass(frozen=True)
class LaserConfig:
    """Settings of a laser; angles are in radians."""

    body: str
    range: float
    angle_min: float
    angle_max: float
    angle_increment: float
    frame: str
    topic: str = "scan"
    broadcast_tf: bool = True
    update_rate: float = math.inf
    origin: Transform2D = Transform2D()
    noise_std_dev: float = 0.0
    flipped: bool = False
    layers: tuple[str, ...] = ("all",)
    layers_bits: int = 0
    reflectance_layers_bits: int = 0

    @classmethod
    def from_mapping(
        cls,
        config: Mapping[str, Any] | None,
        body_names: Sequence[str],
        default_frame: str,
        layer_bits: Mapping[str, int],
    ) -> LaserConfig:
        """Build the settings, resolving layer names into category bits."""
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ValueError(f"Laser configuration must be a mapping, got {config!r}")

        body = _get_str(config, "body")
        topic = _get_str(config, "topic", "scan")
        frame = _get_str(config, "frame", default_frame)
        broadcast_tf = _get_bool(config, "broadcast_tf", True)
        update_rate = _get_float(config, "update_rate", math.inf)

        origin_value = config.get("origin", (0.0, 0.0, 0.0))
        if (
            isinstance(origin_value, (str, bytes))
            or not isinstance(origin_value, Sequence)
            or len(origin_value) != 3
        ):
            raise ValueError(
                f'Entry "origin" must be a pose [x, y, theta], got {origin_value!r}'
            )
        origin = Transform2D(*(_to_float("origin", v) for v in origin_value))

        laser_range = _get_float(config, "range")
        noise_std_dev = _get_float(config, "noise_std_dev", 0.0)
        flipped = _get_bool(config, "flipped", False)

        layers = config.get("layers", ["all"])
        if (
            isinstance(layers, str)
            or not isinstance(layers, Sequence)
            or not all(isinstance(name, str) for name in layers)
        ):
            raise ValueError(f'Entry "layers" must be a list of strings, got {layers!r}')

        if "angle" not in config:
            raise ValueError('Entry "angle" does not exist')
        angle = config["angle"]
        if not isinstance(angle, Mapping):
            raise ValueError(f'Entry "angle" must be a mapping, got {angle!r}')
        angle_min = _get_float(angle, "min")
        angle_max = _get_float(angle, "max")
        increment = _get_float(angle, "increment")

        _check_keys(angle, _ANGLE_KEYS)
        _check_keys(config, _KNOWN_KEYS)

        if angle_max < angle_min:
            raise ValueError('Invalid "angle" params, must have max > min')
        if increment <= 0:
            raise ValueError('Invalid "angle" params, increment must be positive')
        if noise_std_dev < 0:
            raise ValueError('Entry "noise_std_dev" must not be negative')

        if body not in body_names:
            raise ValueError(f"Cannot find body with name {body}")

        bits, invalid = _category_bits(layers, layer_bits)
        if invalid:
            raise ValueError(f"Cannot find layer(s): {{{','.join(invalid)}}}")
        reflectance_bits, _ = _category_bits([_REFLECTANCE_LAYER], layer_bits)

        return cls(
            body=body,
            range=laser_range,
            angle_min=angle_min,
            angle_max=angle_max,
            angle_increment=increment,
            frame=frame,
            topic=topic,
            broadcast_tf=broadcast_tf,
            update_rate=update_rate,
            origin=origin,
            noise_std_dev=noise_std_dev,
            flipped=flipped,
            layers=tuple(layers),
            layers_bits=bits,
            reflectance_layers_bits=reflectance_bits,
        )


class Laser:
    """Casts the laser's rays and turns the closest hits into a scan."""

    def __init__(
        self,
        config: LaserConfig,
        namespace: str = "",
        rng: random.Random | None = None,
    ):
        self.config = config
        self.namespace = namespace
        self.rng = rng if rng is not None else random.Random()
        span = (config.angle_max - config.angle_min) / config.angle_increment
        self.num_points = math.floor(span + 0.5) + 1
        self._points = [
            (
                config.range * math.cos(config.angle_min + i * config.angle_increment),
                config.range * math.sin(config.angle_min + i * config.angle_increment),
            )
            for i in range(self.num_points)
        ]
        self._last_fractions = [1.0] * self.num_points
        self.frame_id = self._frame(config.frame)
        origin = config.origin
        # constant transform from the body to the laser; stamp it when sending
        self.transform = TransformStamped(
            stamp=0.0,
            frame_id=self._frame(config.body),
            child_frame_id=self.frame_id,
            translation=(origin.x, origin.y, 0.0),
            rotation=quaternion_from_yaw(origin.theta),
        )

    def _frame(self, name: str) -> str:
        return f"{self.namespace}_{name}" if self.namespace else name

    def laser_points(self) -> list[Vec2]:
        """Return the end points of the rays in the laser frame."""
        return list(self._points)

    def _cast(
        self, raycast: RayCast, start: Vec2, end: Vec2, max_fraction: float
    ) -> tuple[float, float] | None:
        # keep the closest valid hit, as the physics engine's clipping callback does
        limit = max_fraction
        fraction = None
        intensity = 0.0
        for hit in raycast(start, end):
            if hit.fraction > limit:
                continue
            if not hit.category_bits & self.config.layers_bits:
                continue
            if hit.is_sensor:
                continue
            if hit.category_bits & self.config.reflectance_layers_bits:
                intensity = _REFLECTIVE_INTENSITY
            fraction = hit.fraction
            limit = hit.fraction
        return None if fraction is None else (fraction, intensity)

    def _expansion(self) -> float:
        product = self.config.range * self.config.update_rate
        term = 4.0 / product if product else math.inf
        return 1.0 + max(term, 0.05)

    def scan(self, pose: Transform2D, raycast: RayCast, stamp: float) -> LaserScan:
        """Cast every ray from the body's world pose and return the scan."""
        world_laser = pose.compose(self.config.origin)
        origin = (world_laser.x, world_laser.y)
        # a hit near the last one is likely; try the shortened ray first
        expansion = self._expansion()

        ranges = []
        intensities = []
        for index, (px, py) in enumerate(self._points):
            end_pose = world_laser.compose(Transform2D(px, py, 0.0))
            end = (end_pose.x, end_pose.y)

            fraction = min(expansion * self._last_fractions[index], 1.0)
            result = self._cast(raycast, origin, end, fraction)
            if result is None and fraction < 1.0:
                start = (
                    fraction * end[0] + (1 - fraction) * origin[0],
                    fraction * end[1] + (1 - fraction) * origin[1],
                )
                second = self._cast(raycast, start, end, 1.0)
                if second is not None:
                    part, intensity = second
                    result = (fraction + part - part * fraction, intensity)

            if result is None:
                self._last_fractions[index] = 1.0
                ranges.append(math.nan)
                intensities.append(0.0)
            else:
                hit_fraction, intensity = result
                self._last_fractions[index] = hit_fraction
                noise = self.rng.gauss(0.0, self.config.noise_std_dev)
                ranges.append(hit_fraction * self.config.range + noise)
                intensities.append(intensity)

        if self.config.flipped:
            ranges.reverse()
            intensities.reverse()
        if not self.config.reflectance_layers_bits:
            intensities = []

        return LaserScan(
            stamp=stamp,
            frame_id=self.frame_id,
            angle_min=self.config.angle_min,
            angle_max=self.config.angle_max,
            angle_increment=self.config.angle_increment,
            range_max=self.config.range,
            ranges=ranges,
            intensities=intensities,
        )