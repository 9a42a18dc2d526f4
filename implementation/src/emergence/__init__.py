"""Particle Emergence simulation core."""
