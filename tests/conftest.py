import pytest

from cube_status import CubeStatus
from phases import CubeView


@pytest.fixture
def cube():
    return CubeStatus()


@pytest.fixture
def view(cube):
    return CubeView(cube)


def snapshot(cube):
    """Comparable copy of the full piece state."""
    return cube.current_positions(), {p.id: tuple(p.stickers) for p in cube.registry}
