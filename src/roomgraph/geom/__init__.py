"""Geometry utilities for walls and rooms.

This module provides the polygon and segment kernel used by detection and
validation, and the editing functions that insert, split and move walls.
"""
