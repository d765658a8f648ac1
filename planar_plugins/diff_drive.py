"""A differential drive: velocity commands in, odometry and ground truth out."""

from __future__ import annotations

import dataclasses
import math
import random
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from planar_plugins.dynamics_limits import DynamicsLimits
from planar_plugins.model_tf_publisher import quaternion_from_yaw

Vec2 = tuple[float, float]

_KNOWN_KEYS = frozenset(
    {
        "enable_odom_pub",
        "enable_twist_pub",
        "body",
        "odom_frame_id",
        "ground_truth_frame_id",
        "twist_sub",
        "odom_pub",
        "ground_truth_pub",
        "twist_pub",
        "odom_pose",
        "odom_twist_noise",
        "odom_pose_noise",
        "pub_rate",
        "angular_dynamics",
        "linear_dynamics",
        "odom_twist_covariance",
        "odom_pose_covariance",
    }
)

_ZERO_COVARIANCE = (0.0,) * 36


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


def _to_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}')
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}') from exc


def _get_floats(
    config: Mapping[str, Any], key: str, default: Sequence[float], size: int
) -> tuple[float, ...]:
    value = config.get(key, default)
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ValueError(f'Entry "{key}" must be a list of numbers, got {value!r}')
    if len(value) != size:
        raise ValueError(f'Entry "{key}" must have exactly {size} elements, got {len(value)}')
    return tuple(_to_float(key, item) for item in value)


def _get_dynamics(config: Mapping[str, Any], key: str) -> DynamicsLimits:
    sub = config.get(key)
    if sub is not None and not isinstance(sub, Mapping):
        raise ValueError(f'Entry "{key}" must be a mapping, got {sub!r}')
    limits = DynamicsLimits()
    limits.configure(sub)
    return limits


def _diagonal_covariance(variances: Sequence[float]) -> tuple[float, ...]:
    # only x, y and yaw matter in the plane; the noises are independent
    covariance = [0.0] * 36
    covariance[0], covariance[7], covariance[35] = variances
    return tuple(covariance)


@dataclass(frozen=True)
class Odometry:
    """A planar pose and velocity estimate of a body."""

    stamp: float
    frame_id: str
    child_frame_id: str
    x: float
    y: float
    yaw: float
    linear_x: float
    linear_y: float
    angular_z: float
    pose_covariance: tuple[float, ...] = _ZERO_COVARIANCE
    twist_covariance: tuple[float, ...] = _ZERO_COVARIANCE

    @property
    def orientation(self) -> tuple[float, float, float, float]:
        """The (x, y, z, w) quaternion of the yaw."""
        return quaternion_from_yaw(self.yaw)


@dataclass(frozen=True)
class DiffDriveConfig:
    """Settings of a differential drive."""

    body: str
    enable_odom_pub: bool = True
    enable_twist_pub: bool = True
    odom_frame_id: str = "odom"
    ground_truth_frame_id: str = "odom"
    twist_sub: str = "cmd_vel"
    odom_pub: str = "odometry/filtered"
    ground_truth_pub: str = "odometry/ground_truth"
    twist_pub: str = "twist"
    odom_pose: tuple[float, float, float] = (0.0, 0.0, 0.0)
    odom_twist_noise: tuple[float, float, float] = (0.0, 0.0, 0.0)
    odom_pose_noise: tuple[float, float, float] = (0.0, 0.0, 0.0)
    pub_rate: float = math.inf
    angular_dynamics: DynamicsLimits = field(default_factory=DynamicsLimits)
    linear_dynamics: DynamicsLimits = field(default_factory=DynamicsLimits)
    odom_twist_covariance: tuple[float, ...] = _ZERO_COVARIANCE
    odom_pose_covariance: tuple[float, ...] = _ZERO_COVARIANCE

    @classmethod
    def from_mapping(
        cls, config: Mapping[str, Any] | None, body_names: Sequence[str]
    ) -> DiffDriveConfig:
        """Build the settings, checking keys and the body against the model."""
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ValueError(f"Drive configuration must be a mapping, got {config!r}")

        enable_odom_pub = _get_bool(config, "enable_odom_pub", True)
        enable_twist_pub = _get_bool(config, "enable_twist_pub", True)
        body = _get_str(config, "body")
        odom_frame_id = _get_str(config, "odom_frame_id", "odom")
        ground_truth_frame_id = _get_str(config, "ground_truth_frame_id", odom_frame_id)
        twist_sub = _get_str(config, "twist_sub", "cmd_vel")
        odom_pub = _get_str(config, "odom_pub", "odometry/filtered")
        ground_truth_pub = _get_str(config, "ground_truth_pub", "odometry/ground_truth")
        twist_pub = _get_str(config, "twist_pub", "twist")
        odom_pose = _get_floats(config, "odom_pose", (0.0, 0.0, 0.0), 3)
        # noises are variances of linear x, linear y and angular
        twist_noise = _get_floats(config, "odom_twist_noise", (0.0, 0.0, 0.0), 3)
        pose_noise = _get_floats(config, "odom_pose_noise", (0.0, 0.0, 0.0), 3)
        for key, noise in (("odom_twist_noise", twist_noise), ("odom_pose_noise", pose_noise)):
            if any(variance < 0 for variance in noise):
                raise ValueError(f'Entry "{key}" must hold non-negative variances')
        pub_rate = _to_float("pub_rate", config.get("pub_rate", math.inf))
        angular_dynamics = _get_dynamics(config, "angular_dynamics")
        linear_dynamics = _get_dynamics(config, "linear_dynamics")
        twist_covariance = _get_floats(
            config, "odom_twist_covariance", _diagonal_covariance(twist_noise), 36
        )
        pose_covariance = _get_floats(
            config, "odom_pose_covariance", _diagonal_covariance(pose_noise), 36
        )

        unknown = sorted(set(config) - _KNOWN_KEYS)
        if unknown:
            raise ValueError(f"Unused entries in configuration: {{{', '.join(unknown)}}}")

        if body not in body_names:
            raise ValueError(f'Body with name "{body}" does not exist')

        return cls(
            body=body,
            enable_odom_pub=enable_odom_pub,
            enable_twist_pub=enable_twist_pub,
            odom_frame_id=odom_frame_id,
            ground_truth_frame_id=ground_truth_frame_id,
            twist_sub=twist_sub,
            odom_pub=odom_pub,
            ground_truth_pub=ground_truth_pub,
            twist_pub=twist_pub,
            odom_pose=odom_pose,
            odom_twist_noise=twist_noise,
            odom_pose_noise=pose_noise,
            pub_rate=pub_rate,
            angular_dynamics=angular_dynamics,
            linear_dynamics=linear_dynamics,
            odom_twist_covariance=twist_covariance,
            odom_pose_covariance=pose_covariance,
        )


class DiffDrive:
    """Turns twist commands into body velocities and produces noisy odometry."""

    def __init__(
        self,
        config: DiffDriveConfig,
        namespace: str = "",
        rng: random.Random | None = None,
    ):
        self.config = config
        self.namespace = namespace
        self.rng = rng if rng is not None else random.Random()
        self.linear_dynamics = dataclasses.replace(config.linear_dynamics)
        self.angular_dynamics = dataclasses.replace(config.angular_dynamics)
        self.linear_velocity = 0.0
        self.angular_velocity = 0.0
        self.target_linear = 0.0
        self.target_angular = 0.0
        self.child_frame_id = f"{namespace}_{config.body}" if namespace else config.body
        self._pose_sigma = tuple(math.sqrt(v) for v in config.odom_pose_noise)
        self._twist_sigma = tuple(math.sqrt(v) for v in config.odom_twist_noise)

    def _noise(self, sigma: float) -> float:
        return self.rng.gauss(0.0, sigma)

    def set_twist(self, linear_x: float, angular_z: float) -> None:
        """Set the commanded forward and angular velocity in the body frame."""
        self.target_linear = float(linear_x)
        self.target_angular = float(angular_z)

    def compute_velocity(
        self, angle: float, position: Vec2, world_center: Vec2, dt: float
    ) -> tuple[Vec2, float]:
        """Return the world velocity of the centre of mass and the angular velocity."""
        self.linear_velocity = self.linear_dynamics.limit(
            self.linear_velocity, self.target_linear, dt
        )
        self.angular_velocity = self.angular_dynamics.limit(
            self.angular_velocity, self.target_angular, dt
        )
        speed = self.linear_velocity
        omega = self.angular_velocity
        vx, vy = speed * math.cos(angle), speed * math.sin(angle)
        # V_cm = V_o + w x r, with r from the body origin to the centre of mass
        rx = world_center[0] - position[0]
        ry = world_center[1] - position[1]
        return (vx - omega * ry, vy + omega * rx), omega

    def measure(
        self,
        position: Vec2,
        angle: float,
        linear_velocity: Vec2,
        angular_velocity: float,
        stamp: float,
    ) -> tuple[Odometry, Odometry, tuple[float, float] | None]:
        """Return ground truth, noisy odometry and, if enabled, encoder twist.

        The encoder twist is the noisy forward speed and angular velocity.
        """
        vx, vy = linear_velocity
        ground_truth = Odometry(
            stamp=stamp,
            frame_id=self.config.ground_truth_frame_id,
            child_frame_id=self.child_frame_id,
            x=position[0],
            y=position[1],
            yaw=angle,
            linear_x=vx,
            linear_y=vy,
            angular_z=angular_velocity,
        )
        odom = Odometry(
            stamp=stamp,
            frame_id=self.config.odom_frame_id,
            child_frame_id=self.child_frame_id,
            x=position[0] + self._noise(self._pose_sigma[0]),
            y=position[1] + self._noise(self._pose_sigma[1]),
            yaw=angle + self._noise(self._pose_sigma[2]),
            linear_x=vx + self._noise(self._twist_sigma[0]),
            linear_y=vy + self._noise(self._twist_sigma[1]),
            angular_z=angular_velocity + self._noise(self._twist_sigma[2]),
            pose_covariance=self.config.odom_pose_covariance,
            twist_covariance=self.config.odom_twist_covariance,
        )

        encoder = None
        if self.config.enable_twist_pub:
            forward = (
                math.cos(angle) * vx
                + math.sin(angle) * vy
                + self._noise(self._twist_sigma[0])
            )
            encoder = (forward, angular_velocity + self._noise(self._twist_sigma[2]))
        return ground_truth, odom, encoder