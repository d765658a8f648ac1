# planar_plugins

This package provides building blocks for simulating mobile robots in a 2D
world. Each module holds the logic of one sensor or actuator. You pass in body
poses, contacts and ray-cast results, and you get back plain Python values:
dataclasses, tuples, lists and floats. The package has no dependencies outside
the standard library.

## Installation

```
pip install .
```

To install the test dependencies and run the tests:

```
pip install .[test]
pytest
```

## Modules

- `planar_plugins.dynamics_limits`
  - `DynamicsLimits` caps velocity, acceleration and deceleration on one axis.
  - It handles steps where the velocity changes sign. In those steps both
    limits apply in proportion to the time spent on each side of zero.
  - A limit of `0.0` disables that limit.
  - `configure(mapping)` reads `acceleration_limit`, `deceleration_limit` and
    `velocity_limit`. If `deceleration_limit` is not given, it takes the value
    of `acceleration_limit`.
  - `DynamicsLimits.saturate(value, lower, upper)` clamps a value. If the
    bounds are invalid, it returns the value unchanged.
- `planar_plugins.triangle_profile`
  - `TriangleProfile(step_time, clock=time.monotonic)` is a triangular
    leg-swing speed profile.
  - `speed_multiplier(body_speed)` returns the ratio of leg speed to body
    speed. If `body_speed` is zero, it returns `nan`.
  - `is_leg_in_center()` tells whether the legs are at the centre.
  - `ProfileState` lists the phases.
- `planar_plugins.bool_sensor`
  - `BoolSensor` counts contacts between distinct bodies.
  - `read()` returns `True` if there is a live contact, or if any contact
    started since the last read. This means a contact that starts and ends
    between two reads is still reported once.
- `planar_plugins.bumper`
  - `Bumper` tracks contacts through `begin_contact`, `end_contact` and
    `post_solve`. Contacts on excluded bodies are ignored.
  - `collisions(model_name, step_size, stamp)` returns a `Collisions` value.
    It holds one `Collision` per tracked contact, with:
    - average force magnitudes, computed from the summed impulses;
    - contact points;
    - normals, flipped so that they point away from the model.
  - `before_step()` clears the impulses at the start of each step.
  - `needs_timer()` tells whether the update rate decides when to report.
- `planar_plugins.model_tf_publisher`
  - `Transform2D` is a planar rigid transform. It has `compose` and `inverse`.
  - `quaternion_from_yaw(yaw)` returns a quaternion as `(x, y, z, w)`.
  - `ModelTfPublisher.transforms(poses, stamp)` returns one `TransformStamped`
    from the reference body to each other body that is not excluded.
  - If `publish_tf_world` is set, it also returns the transform from the world
    frame to the reference body.
- `planar_plugins.diff_drive`
  - `DiffDrive` is a differential drive.
  - `set_twist` stores a velocity command.
  - `compute_velocity` applies the linear and angular `DynamicsLimits`. It
    returns the world velocity of the centre of mass and the angular velocity.
  - `measure` returns three values:
    - ground-truth `Odometry`;
    - noisy `Odometry`, drawn from Gaussian noise with the configured
      variances;
    - an optional noisy encoder twist, as `(forward speed, angular velocity)`.
- `planar_plugins.gps`
  - `geodetic_to_ecef(lat_rad, lon_rad)` converts to earth-centred
    coordinates on the WGS84 ellipsoid.
  - `GpsConverter.fix(x, y, theta)` returns `(latitude, longitude, altitude)`
    in degrees. It treats the simulation plane as tangent to the ellipsoid at
    the reference point, with x pointing east and y pointing north. The
    altitude is always `0.0`.
- `planar_plugins.laser`
  - `Laser.scan(pose, raycast, stamp)` casts every ray and returns a
    `LaserScan`.
  - `raycast(start, end)` is a callback that you supply. It must return the
    `RayHit` values along the segment.
  - For each ray the laser keeps the closest hit that is on its layers and is
    not a sensor. Rays that hit nothing give `nan`.
  - Hits on the `reflectance` layer get intensity 255.
  - If no `reflectance` layer exists, the intensities list is empty.
- `planar_plugins.pedsim_movement`
  - `PedsimMovement` follows one `AgentState` of a crowd simulation. It picks
    the agent whose id follows the 13-character namespace prefix, as in
    `pedsim_agent_7`.
  - `step(agents, namespace)` returns, for each body name, the transform and
    velocities to set on that body.
  - `leg_positions` places the legs either side of the body.
  - `footprint_fixture_def(radius)` describes the circular leg fixture, which
    collides with nothing.

## Configuration

These classes build their settings from a mapping, such as loaded YAML:

- `BoolSensorConfig`
- `BumperConfig`
- `ModelTfPublisherConfig`
- `DiffDriveConfig`
- `GpsConfig`
- `LaserConfig`

Each has a `from_mapping` classmethod. It applies the same defaults as the
plugin settings, checks body names against the list of bodies in the model,
and raises `ValueError` for bad values. All of them except `GpsConfig` also
reject keys they do not know.

`PedsimMovement` takes its mapping directly and requires every key. It also
raises `ValueError` for bad values.

## Example

```python
from planar_plugins.dynamics_limits import DynamicsLimits
from planar_plugins.bool_sensor import BoolSensor, BoolSensorConfig

limits = DynamicsLimits()
limits.configure({"acceleration_limit": 9.0})
print(limits.limit(0.0, 1.0, 0.05))  # 0.45

sensor = BoolSensor(BoolSensorConfig.from_mapping({}, ["base"]))
sensor.begin_contact("base", "wall")
sensor.end_contact("base", "wall")
print(sensor.read())  # True: the brief contact is reported once
print(sensor.read())  # False
```

## What this package does not do

- It has no physics engine. Poses, velocities, contacts, impulses and
  ray-cast hits must come from your own simulation.
- It has no messaging layer. Nothing is published or subscribed.
- It has no update timer. Configured rates such as `update_rate` and
  `pub_rate` are stored, but the caller decides when to call each step.
- It has no world loader and no command-line program.