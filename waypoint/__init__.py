"""
Root module of the library. This module re-exports the most commonly used types to
reduce the verbosity of the imports statements.
"""

__version__ = "1.0.0"

from .exceptions import HTTPException as HTTPException
from .exceptions import InvalidHandlerKind as InvalidHandlerKind
from .exceptions import NoRoutesRegistered as NoRoutesRegistered
from .exceptions import NotFoundException as NotFoundException
from .exceptions import RouteException as RouteException
from .exceptions import UnsupportedMethod as UnsupportedMethod
from .messages import Request as Request
from .messages import Response as Response
from .server.routing import Route as Route
from .server.routing import RouteGroup as RouteGroup
from .server.routing import RouteMapper as RouteMapper
from .server.routing import RouteMatch as RouteMatch
from .server.routing import RouteMethod as RouteMethod
from .server.routing import Router as Router
from .server.routing import normalize_path as normalize_path
