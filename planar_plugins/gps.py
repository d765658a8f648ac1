"""A GPS receiver converting simulated planar positions into latitude and longitude."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from planar_plugins.model_tf_publisher import (
    Transform2D,
    TransformStamped,
    quaternion_from_yaw,
)

WGS84_A = 6378137.0
WGS84_E2 = 0.0066943799831668


def geodetic_to_ecef(lat_rad: float, lon_rad: float) -> tuple[float, float, float]:
    """Return the earth-centred coordinates of a point on the WGS84 ellipsoid."""
    s_lat, c_lat = math.sin(lat_rad), math.cos(lat_rad)
    s_lon, c_lon = math.sin(lon_rad), math.cos(lon_rad)
    n = WGS84_A / math.sqrt(1.0 - WGS84_E2 * s_lat * s_lat)
    return n * c_lat * c_lon, n * c_lat * s_lon, n * (1.0 - WGS84_E2) * s_lat


def _atan_ratio(numerator: float, denominator: float) -> float:
    # atan(n / d) that yields +-pi/2 instead of failing when d is zero
    return math.atan2(math.copysign(1.0, denominator) * numerator, abs(denominator))


def _to_float(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}')
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f'Entry "{key}" must be a number, got {value!r}') from exc


def _get_str(config: Mapping[str, Any], key: str, default: str | None = None) -> str:
    if key not in config:
        if default is None:
            raise ValueError(f'Entry "{key}" does not exist')
        return default
    value = config[key]
    if not isinstance(value, str):
        raise ValueError(f'Entry "{key}" must be a string, got {value!r}')
    return value


@dataclass(frozen=True)
class GpsConfig:
    """Settings of a GPS receiver; reference coordinates are in degrees."""

    body: str
    frame: str
    topic: str = "gps/fix"
    broadcast_tf: bool = True
    update_rate: float = 10.0
    ref_lat: float = 0.0
    ref_lon: float = 0.0
    origin: Transform2D = Transform2D()

    @classmethod
    def from_mapping(
        cls,
        config: Mapping[str, Any] | None,
        body_names: Sequence[str],
        default_frame: str,
    ) -> GpsConfig:
        """Build the settings; the frame defaults to the given name."""
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ValueError(f"GPS configuration must be a mapping, got {config!r}")

        body = _get_str(config, "body")
        topic = _get_str(config, "topic", "gps/fix")
        frame = _get_str(config, "frame", default_frame)
        broadcast_tf = config.get("broadcast_tf", True)
        if not isinstance(broadcast_tf, bool):
            raise ValueError(f'Entry "broadcast_tf" must be a boolean, got {broadcast_tf!r}')
        update_rate = _to_float("update_rate", config.get("update_rate", 10.0))
        ref_lat = _to_float("ref_lat", config.get("ref_lat", 0.0))
        ref_lon = _to_float("ref_lon", config.get("ref_lon", 0.0))

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

        if body not in body_names:
            raise ValueError(f"Cannot find body with name {body}")

        return cls(
            body=body,
            frame=frame,
            topic=topic,
            broadcast_tf=broadcast_tf,
            update_rate=update_rate,
            ref_lat=ref_lat,
            ref_lon=ref_lon,
            origin=origin,
        )


class GpsConverter:
    """Turns the pose of the carrying body into a latitude, longitude fix."""

    def __init__(self, config: GpsConfig, namespace: str = ""):
        self.config = config
        self.namespace = namespace
        self.ref_lat_rad = math.radians(config.ref_lat)
        self.ref_lon_rad = math.radians(config.ref_lon)
        self.ref_ecef = geodetic_to_ecef(self.ref_lat_rad, self.ref_lon_rad)
        self.parent_frame_id = self._frame(config.body)
        self.frame_id = self._frame(config.frame)
        origin = config.origin
        # constant transform from the body to the receiver; stamp it when sending
        self.transform = TransformStamped(
            stamp=0.0,
            frame_id=self.parent_frame_id,
            child_frame_id=self.frame_id,
            translation=(origin.x, origin.y, 0.0),
            rotation=quaternion_from_yaw(origin.theta),
        )

    def _frame(self, name: str) -> str:
        return f"{self.namespace}_{name}" if self.namespace else name

    def fix(self, x: float, y: float, theta: float) -> tuple[float, float, float]:
        """Return (latitude, longitude, altitude) in degrees for a body pose."""
        gps = Transform2D(x, y, theta).compose(self.config.origin)

        s_lat, c_lat = math.sin(self.ref_lat_rad), math.cos(self.ref_lat_rad)
        s_lon, c_lon = math.sin(self.ref_lon_rad), math.cos(self.ref_lon_rad)
        ref_x, ref_y, ref_z = self.ref_ecef

        # the simulation plane is tangent to the ellipsoid: x east, y north
        ecef_x = ref_x - s_lon * gps.x - s_lat * c_lon * gps.y
        ecef_y = ref_y + c_lon * gps.x - s_lat * s_lon * gps.y
        ecef_z = ref_z + c_lat * gps.y

        longitude = math.degrees(math.atan2(ecef_y, ecef_x))

        p = math.hypot(ecef_x, ecef_y)
        lat_rad = _atan_ratio(p, ecef_z)
        for _ in range(4):
            s = math.sin(lat_rad)
            r = WGS84_A / math.sqrt(1.0 - WGS84_E2 * s * s)
            alt = p / math.cos(lat_rad) - r
            lat_rad = _atan_ratio(ecef_z / (1 - WGS84_E2 * r / (r + alt)), p)
        return math.degrees(lat_rad), longitude, 0.0