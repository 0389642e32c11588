"""Workout composition and fragmentation engine."""

__version__ = "0.1.0"
