from typing import Iterable


class InvalidOperation(Exception):
    def __init__(self, message: str, inner_exception=None):
        super().__init__(message)
        self.inner_exception = inner_exception


class HTTPException(Exception):
    def __init__(self, status: int, message: str = "HTTP exception"):
        super().__init__(message)
        self.status = status


class NotFoundException(HTTPException):
    def __init__(self, method: str = "", path: str = ""):
        if method or path:
            message = f"No route matched the current request: {method} {path}".rstrip()
        else:
            message = "No route matched the current request."
        super().__init__(404, message)
        self.method = method
        self.path = path


class RouteException(Exception):
    """Base class for routing exceptions."""


class InvalidHandlerKind(RouteException, TypeError):
    def __init__(self, handler, message: str = ""):
        super().__init__(
            message
            or (
                f"Invalid handler: {handler!r}. A handler must be a callable or a "
                "(class, method name) pair."
            )
        )
        self.handler = handler


class UnsupportedMethod(RouteException):
    def __init__(self, methods: Iterable[str]):
        self.methods = list(methods)
        super().__init__(f"Unsupported HTTP method(s): {', '.join(self.methods)}")


class NoRoutesRegistered(RouteException):
    def __init__(self):
        super().__init__("No routes registered.")


class InvalidPattern(RouteException):
    def __init__(self, pattern: str, message: str):
        super().__init__(f"Invalid route pattern {pattern!r}: {message}")
        self.pattern = pattern


class UnconstrainedPlaceholder(RouteException):
    def __init__(self, pattern: str, placeholder: str):
        super().__init__(
            f"The placeholder {{{placeholder}}} of route pattern {pattern!r} "
            "has no constraint. Define one using `Route.where`."
        )
        self.pattern = pattern
        self.placeholder = placeholder


class MissingRouteParameter(RouteException):
    def __init__(self, route_name: str, parameter_name: str):
        super().__init__(
            f"Missing value for parameter '{parameter_name}' "
            f"of route '{route_name}'."
        )
        self.route_name = route_name
        self.parameter_name = parameter_name
