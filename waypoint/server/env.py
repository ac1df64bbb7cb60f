import os
from dataclasses import dataclass

from waypoint.utils import truthy


def get_env() -> str:
    return os.environ.get("APP_ENV", "production")


def get_global_route_prefix() -> str:
    """
    Returns the global route prefix, if any, defined by the `APP_ROUTE_PREFIX`
    environment variable.
    """
    return os.environ.get("APP_ROUTE_PREFIX", "")


@dataclass(frozen=True)
class EnvironmentSettings:
    env: str = "production"
    route_prefix: str = ""
    raise_not_found: bool = True
    strict_placeholders: bool = False

    @classmethod
    def from_env(cls) -> "EnvironmentSettings":
        return cls(
            env=get_env(),
            route_prefix=get_global_route_prefix(),
            raise_not_found=truthy(os.environ.get("APP_RAISE_NOT_FOUND", "1")),
            strict_placeholders=truthy(os.environ.get("APP_STRICT_PLACEHOLDERS", "")),
        )
