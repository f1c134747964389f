"""Shared wall fixtures for roomgraph tests."""
import pytest

from roomgraph.core.model import Plan, Point, Wall


def _wall(wall_id, x1, y1, x2, y2):
    return Wall(id=wall_id, start=Point(x1, y1), end=Point(x2, y2))


def _rectangle(prefix, x0, y0, x1, y1):
    return [
        _wall(f"{prefix}-top", x0, y0, x1, y0),
        _wall(f"{prefix}-right", x1, y0, x1, y1),
        _wall(f"{prefix}-bottom", x1, y1, x0, y1),
        _wall(f"{prefix}-left", x0, y1, x0, y0),
    ]


@pytest.fixture
def make_wall():
    """Factory: make_wall(id, x1, y1, x2, y2) -> Wall."""
    return _wall


@pytest.fixture
def make_rectangle():
    """Factory: make_rectangle(prefix, x0, y0, x1, y1) -> four walls."""
    return _rectangle


@pytest.fixture
def rectangle_walls():
    """400 x 300 rectangle, area 120000."""
    return _rectangle("w", 0, 0, 400, 300)


@pytest.fixture
def nested_walls():
    """Outer 400 x 300 rectangle with a detached 200 x 100 rectangle inside."""
    return _rectangle("outer", 0, 0, 400, 300) + _rectangle("inner", 100, 100, 300, 200)


@pytest.fixture
def split_walls():
    """400 x 300 rectangle divided at x=200 into two 200 x 300 rooms."""
    return [
        _wall("top-left", 0, 0, 200, 0),
        _wall("top-right", 200, 0, 400, 0),
        _wall("right", 400, 0, 400, 300),
        _wall("bottom-right", 400, 300, 200, 300),
        _wall("bottom-left", 200, 300, 0, 300),
        _wall("left", 0, 300, 0, 0),
        _wall("mid", 200, 0, 200, 300),
    ]


@pytest.fixture
def overlapping_walls():
    """Two 200 x 200 squares whose edges cross without shared nodes."""
    return _rectangle("a", 0, 0, 200, 200) + _rectangle("b", 100, 100, 300, 300)


@pytest.fixture
def empty_plan():
    return Plan()
