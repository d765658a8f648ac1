"""Sensor, drive and transform models for 2D robot simulation, without a physics engine."""

__version__ = "0.1.0"