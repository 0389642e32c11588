"""Shared infrastructure (logging)."""
