"""Layered wall assemblies: materials, wall types and thermal values."""
