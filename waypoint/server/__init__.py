from .routing import Route as Route
from .routing import RouteGroup as RouteGroup
from .routing import Router as Router
