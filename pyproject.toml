[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "planar_plugins"
version = "0.1.0"
description = "Sensor and drive models for 2D robot simulation: dynamics limits, contacts, lasers, GPS, odometry and transforms"
requires-python = ">=3.10"
dependencies = []
keywords = ["robotics", "simulation", "2d", "odometry", "laser", "gps", "kinematics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["planar_plugins"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
