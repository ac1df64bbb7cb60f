import pytest

from waypoint.server.env import EnvironmentSettings
from waypoint.server.routing import Router


@pytest.fixture
def settings():
    return EnvironmentSettings()


@pytest.fixture
def router(settings):
    return Router(settings=settings)
