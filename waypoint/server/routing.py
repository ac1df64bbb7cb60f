import logging
import re
from contextlib import contextmanager
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)
from urllib.parse import quote, unquote

from essentials.meta import deprecated
from rodi import ContainerProtocol

from waypoint.exceptions import (
    InvalidHandlerKind,
    InvalidOperation,
    InvalidPattern,
    MissingRouteParameter,
    NoRoutesRegistered,
    NotFoundException,
    UnconstrainedPlaceholder,
    UnsupportedMethod,
)
from waypoint.messages import Request, Response
from waypoint.server.env import EnvironmentSettings
from waypoint.server.handlers import (
    RequestHandler,
    get_request_handler,
    is_valid_handler,
)

logger = logging.getLogger("waypoint.server")


class RouteMethod:
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"


SUPPORTED_METHODS = (
    RouteMethod.GET,
    RouteMethod.POST,
    RouteMethod.PUT,
    RouteMethod.PATCH,
    RouteMethod.DELETE,
    RouteMethod.OPTIONS,
)

DEFAULT_VALUE_PATTERN = r"[^/]+"

_whitespace_rx = re.compile(r"\s+")
_slashes_rx = re.compile(r"/+")
_placeholder_rx = re.compile(r"{([A-Za-z_][A-Za-z0-9_]*)(\??)}")
_template_token_rx = re.compile(r"(/?){([A-Za-z_][A-Za-z0-9_]*)(\??)}")
_named_group_rx = re.compile(r"\(\?P<([^>]+)>")


HandlerType = Union[Callable[..., Any], Tuple[Union[type, str], str]]


def normalize_path(path: str) -> str:
    """
    Returns the canonical form of a path: whitespace and repeated slashes are replaced
    by a single slash, the path starts with a slash and never ends with one, except
    for the root path "/".
    """
    path = _whitespace_rx.sub("/", path or "")
    path = _slashes_rx.sub("/", path)
    return "/" + path.strip("/")


def normalize_methods(methods: Union[str, Iterable[str]]) -> Tuple[str, ...]:
    if isinstance(methods, str):
        methods = [methods]

    normalized = tuple(dict.fromkeys(method.upper() for method in methods))

    if not normalized:
        raise ValueError("At least one HTTP method is required.")

    unsupported = [method for method in normalized if method not in SUPPORTED_METHODS]
    if unsupported:
        raise UnsupportedMethod(unsupported)
    return normalized


def resolve_value_pattern(type_pattern: str) -> str:
    """
    Returns the regular expression for a placeholder constraint, which can be either
    the name of one of the built-in value patterns, or a regular expression.
    """
    return Route.value_patterns.get(type_pattern, type_pattern)


def apply_constraints(path: str, constraints: Mapping[str, str]) -> str:
    """
    Replaces the {name} and {name?} placeholders of a path with named capture groups,
    using the pattern given for each name. Placeholders without a constraint are kept
    as they are.

    All placeholders are replaced in a single pass, so the text of a replacement is
    never scanned again for other placeholders.
    """
    replacements: Dict[str, str] = {}

    for name, type_pattern in constraints.items():
        value_pattern = resolve_value_pattern(type_pattern)
        optional_token = "{" + name + "?}"

        if optional_token in path:
            # an optional value after a slash makes the slash optional, too
            replacements["/" + optional_token] = f"(?:/(?P<{name}>{value_pattern}))?"
            replacements[optional_token] = f"(?P<{name}>{value_pattern})?"
        else:
            replacements["{" + name + "}"] = f"(?P<{name}>{value_pattern})"

    if not replacements:
        return path

    rx = re.compile(
        "|".join(
            re.escape(token)
            for token in sorted(replacements, key=len, reverse=True)
        )
    )
    return rx.sub(lambda match: replacements[match.group(0)], path)


def get_placeholders(path: str) -> List[str]:
    """Returns the names of the placeholders still present in a path."""
    return list(
        dict.fromkeys(match.group(1) for match in _placeholder_rx.finditer(path))
    )


class Middlewares:
    """Ordered lists of middlewares executed before and after a request handler."""

    __slots__ = ("before", "after")

    def __init__(
        self,
        before: Optional[Iterable[Any]] = None,
        after: Optional[Iterable[Any]] = None,
    ) -> None:
        self.before: List[Any] = list(before or [])
        self.after: List[Any] = list(after or [])

    def __repr__(self) -> str:
        return f"<Middlewares before={self.before!r} after={self.after!r}>"

    def __eq__(self, other):
        if isinstance(other, Middlewares):
            return self.before == other.before and self.after == other.after
        return NotImplemented

    def copy(self) -> "Middlewares":
        return Middlewares(self.before, self.after)

    def extend(
        self,
        before: Optional[Iterable[Any]] = None,
        after: Optional[Iterable[Any]] = None,
    ) -> None:
        if before:
            self.before.extend(before)
        if after:
            self.after.extend(after)


class RouteGroup:
    """
    Common attributes of a group of routes: a name prefix, a path prefix and the
    middlewares executed around their handlers. A nested group starts from a copy of
    its parent's attributes, and every method adds to the inherited values.
    """

    __slots__ = ("_name_prefix", "_path_prefix", "_middlewares")

    def __init__(self, parent: Optional["RouteGroup"] = None) -> None:
        if parent is not None:
            self._name_prefix = parent.name_prefix
            self._path_prefix = parent.path_prefix
            self._middlewares = parent.middlewares.copy()
        else:
            self._name_prefix = ""
            self._path_prefix = ""
            self._middlewares = Middlewares()

    def __repr__(self) -> str:
        return (
            f"<RouteGroup name_prefix={self._name_prefix!r} "
            f"path_prefix={self._path_prefix!r}>"
        )

    @property
    def name_prefix(self) -> str:
        return self._name_prefix

    @property
    def path_prefix(self) -> str:
        return self._path_prefix

    @property
    def middlewares(self) -> Middlewares:
        return self._middlewares

    def with_name_prefix(self, prefix: str) -> "RouteGroup":
        self._name_prefix = self._name_prefix + prefix
        return self

    def with_path_prefix(self, prefix: str) -> "RouteGroup":
        self._path_prefix = _slashes_rx.sub("/", f"{self._path_prefix}/{prefix}/")
        return self

    def with_middlewares(
        self,
        before: Optional[Sequence[Any]] = None,
        after: Optional[Sequence[Any]] = None,
    ) -> "RouteGroup":
        self._middlewares.extend(before, after)
        return self


class RouteMatch:
    """
    The result of a successful match: the matched route and the values extracted from
    the request path. Matching never writes on routes, so that the same routes can be
    used by concurrent requests.
    """

    __slots__ = ("route", "handler", "pattern", "_values")

    def __init__(self, route: "Route", values: Optional[Dict[str, Optional[str]]]):
        self.route = route
        self.handler = route.handler
        self.pattern = route.path
        self._values = MappingProxyType(
            {
                key: unquote(value.strip("/"))
                for key, value in values.items()
                if value is not None
            }
            if values
            else {}
        )

    def __repr__(self) -> str:
        return f"<RouteMatch {self.route!r} {dict(self._values)!r}>"

    @property
    def values(self) -> Mapping[str, str]:
        return self._values


class Route:
    __slots__ = (
        "_name",
        "_name_prefix",
        "_template",
        "_path",
        "_methods",
        "_handler",
        "_request_handler",
        "_middlewares",
        "_rx",
    )

    value_patterns = {
        "string": r"[^/]+",
        "str": r"[^/]+",
        "path": r".*",
        "int": r"\d+",
        "float": r"\d+(?:\.\d+)?",
        "slug": r"[a-zA-Z0-9_-]+",
        "alpha": r"[a-zA-Z]+",
        "alnum": r"[a-zA-Z0-9]+",
        "uuid": r"[a-zA-Z0-9]{8}-[a-zA-Z0-9]{4}-[a-zA-Z0-9]"
        + r"{4}-[a-zA-Z0-9]{4}-[a-zA-Z0-9]{12}",
    }

    def __init__(self, group: Optional[RouteGroup] = None, *, base_path: str = ""):
        self._name: Optional[str] = None
        self._name_prefix = ""
        self._methods: frozenset = frozenset()
        self._handler: Any = None
        self._request_handler: Optional[RequestHandler] = None
        self._middlewares = Middlewares()

        path = base_path
        if group is not None:
            self._name_prefix = group.name_prefix
            path = f"{path}/{group.path_prefix}"
            self._middlewares = group.middlewares.copy()

        self._template = normalize_path(path)
        self._path = self._template
        self._rx = self._get_regex_for_pattern(self._path)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__} "{self._template}">'

    @property
    def name(self) -> Optional[str]:
        return self._name

    @property
    def path(self) -> str:
        """The path of this route, with constrained placeholders compiled."""
        return self._path

    @property
    def template(self) -> str:
        """The path of this route as registered, with its placeholders."""
        return self._template

    @property
    def methods(self) -> frozenset:
        return self._methods

    @property
    def handler(self) -> Any:
        return self._handler

    @property
    def request_handler(self) -> Optional[RequestHandler]:
        return self._request_handler

    @property
    def middlewares(self) -> Middlewares:
        return self._middlewares

    @property
    def rx(self) -> re.Pattern:
        return self._rx

    @property
    def param_names(self) -> List[str]:
        return list(self.rx.groupindex)

    @property
    def unconstrained_placeholders(self) -> List[str]:
        return get_placeholders(self._path)

    def set_name(self, name: Optional[str]) -> "Route":
        """Sets the name of this route, after the name prefix of its group, if any."""
        if name:
            self._name = (self._name or self._name_prefix) + name
        return self

    def set_path(self, path: str) -> "Route":
        """Sets the path of this route, after the path prefix of its group, if any."""
        pattern = normalize_path(f"{self._path}/{path}")
        self._rx = self._get_regex_for_pattern(pattern)
        self._template = normalize_path(f"{self._template}/{path}")
        self._path = pattern
        return self

    def set_methods(self, methods: Union[str, Iterable[str]]) -> "Route":
        self._methods = frozenset(normalize_methods(methods))
        return self

    def set_handler(
        self,
        handler: HandlerType,
        services: Optional[ContainerProtocol] = None,
        namespace: str = "",
    ) -> "Route":
        if not is_valid_handler(handler):
            raise InvalidHandlerKind(handler)
        self._request_handler = get_request_handler(handler, services, namespace)
        self._handler = handler
        return self

    def where(
        self, constraints: Optional[Mapping[str, str]] = None, **kwargs: str
    ) -> "Route":
        """
        Applies constraints to the placeholders of this route, by name, for example:

            router.get("/users/{id}", get_user).where(id="int")
            router.get("/posts/{slug?}", get_post).where({"slug": "[a-z0-9-]+"})

        A constraint is either the name of a built-in value pattern (see
        `Route.value_patterns`) or a regular expression. Constraints can be applied
        in several calls, but only once for the same placeholder. An invalid pattern
        raises InvalidPattern and leaves the route unchanged.
        """
        merged = dict(constraints or {})
        merged.update(kwargs)
        pattern = apply_constraints(self._path, merged)
        self._rx = self._get_regex_for_pattern(pattern)
        self._path = pattern
        return self

    def add_middlewares(
        self,
        before: Optional[Sequence[Any]] = None,
        after: Optional[Sequence[Any]] = None,
    ) -> "Route":
        self._middlewares.extend(before, after)
        return self

    def before(self, *middlewares: Any) -> "Route":
        return self.add_middlewares(before=middlewares)

    def after(self, *middlewares: Any) -> "Route":
        return self.add_middlewares(after=middlewares)

    def _get_regex_for_pattern(self, pattern: str) -> re.Pattern:
        source = pattern
        placeholders = get_placeholders(pattern)
        if placeholders:
            pattern = apply_constraints(
                pattern, {name: DEFAULT_VALUE_PATTERN for name in placeholders}
            )

        # NB: the regex would fail anyway for duplicated group names, but with a
        # less clear message
        param_names = []
        for match in _named_group_rx.finditer(pattern):
            param_name = match.group(1)
            if param_name in param_names:
                raise InvalidPattern(
                    source,
                    f"cannot have multiple parameters with name: {param_name}",
                )
            param_names.append(param_name)

        try:
            return re.compile(pattern)
        except re.error as regex_error:
            raise InvalidPattern(source, str(regex_error)) from regex_error

    def match(self, path: str) -> Optional[RouteMatch]:
        """
        Returns a match for a normalized request path, or None. The path must match
        the whole route pattern.
        """
        match = self._rx.fullmatch(path)

        if not match and path == "/":
            # the root path matches patterns made only of optional values
            match = self._rx.fullmatch("")

        if not match:
            return None

        return RouteMatch(self, match.groupdict())

    def url(self, parameters: Optional[Mapping[str, Any]] = None) -> str:
        """
        Returns the path of this route, with its placeholders replaced by the given
        values. Missing optional values are removed together with the slash before
        them.
        """
        parameters = parameters or {}

        def replace(match: re.Match) -> str:
            slash, name, optional = match.groups()
            value = parameters.get(name)

            if value is None:
                if optional:
                    return ""
                raise MissingRouteParameter(self._name or self._template, name)
            return slash + quote(str(value), safe="")

        return _template_token_rx.sub(replace, self._template) or "/"


class RouteMapper:
    """
    Registers handlers for the same path and different HTTP methods, for example:

        router.map("/cats").get(list_cats).post(create_cat)
    """

    __slots__ = ("path", "router")

    def __init__(self, path: str, router: "Router") -> None:
        self.path = path
        self.router = router

    def get(self, handler: HandlerType, name: Optional[str] = None) -> "RouteMapper":
        self.router.get(self.path, handler, name)
        return self

    def post(self, handler: HandlerType, name: Optional[str] = None) -> "RouteMapper":
        self.router.post(self.path, handler, name)
        return self

    def put(self, handler: HandlerType, name: Optional[str] = None) -> "RouteMapper":
        self.router.put(self.path, handler, name)
        return self

    def patch(self, handler: HandlerType, name: Optional[str] = None) -> "RouteMapper":
        self.router.patch(self.path, handler, name)
        return self

    def delete(
        self, handler: HandlerType, name: Optional[str] = None
    ) -> "RouteMapper":
        self.router.delete(self.path, handler, name)
        return self

    def options(
        self, handler: HandlerType, name: Optional[str] = None
    ) -> "RouteMapper":
        self.router.options(self.path, handler, name)
        return self

    def any(self, handler: HandlerType, name: Optional[str] = None) -> "RouteMapper":
        self.router.any(self.path, handler, name)
        return self

    def add_attributes(self, callback: Callable[[Route], Any]) -> "RouteMapper":
        """
        Calls the given function with the last route registered in the router, to
        configure it further (name, constraints, middlewares).
        """
        routes = self.router.registered_routes
        if not routes:
            raise InvalidOperation("There is no registered route to configure.")
        callback(routes[-1])
        return self


class Router:
    """
    Keeps the ordered table of routes, and dispatches requests to the first route
    matching their method and path.
    """

    def __init__(
        self,
        *,
        services: Optional[ContainerProtocol] = None,
        settings: Optional[EnvironmentSettings] = None,
        base_path: str = "",
    ):
        self.settings = settings or EnvironmentSettings.from_env()
        self.services = services
        self._routes: List[Route] = []
        self._groups: List[RouteGroup] = []
        self._base_path = ""
        self._handlers_namespace = ""
        self._middlewares_namespace = ""
        self._not_found_handler: Optional[RequestHandler] = None
        self._handler_arguments: Tuple[Any, ...] = ()
        self.set_base_path(base_path)

    def __iter__(self) -> Iterator[Route]:
        yield from self._routes

    def __len__(self) -> int:
        return len(self._routes)

    @property
    def registered_routes(self) -> List[Route]:
        return list(self._routes)

    @property
    def base_path(self) -> str:
        return self._base_path

    @property
    def active_group(self) -> Optional[RouteGroup]:
        return self._groups[-1] if self._groups else None

    @property
    def not_found_handler(self) -> Optional[RequestHandler]:
        return self._not_found_handler

    @property
    def handler_arguments(self) -> Tuple[Any, ...]:
        return self._handler_arguments

    def _combine_with_global_prefix(self, prefix: str) -> str:
        """
        Combines a router specific base path with the global prefix, if one is
        defined using env variables.
        """
        global_prefix = self.settings.route_prefix
        if global_prefix:
            if not prefix:
                return global_prefix

            global_prefix = global_prefix.rstrip("/")
            prefix = prefix.lstrip("/")
            return f"{global_prefix}/{prefix}"
        return prefix

    def set_base_path(self, path: str) -> None:
        value = self._combine_with_global_prefix(path)
        self._base_path = normalize_path(value) if value else ""

    def set_handlers_namespace(self, namespace: str) -> None:
        self._handlers_namespace = namespace

    def set_middlewares_namespace(self, namespace: str) -> None:
        self._middlewares_namespace = namespace

    def set_not_found_handler(self, handler: HandlerType) -> None:
        self._not_found_handler = get_request_handler(
            handler, self.services, self._handlers_namespace
        )

    @deprecated("Use `set_not_found_handler` instead.")
    def set_not_found(self, handler: HandlerType) -> None:
        self.set_not_found_handler(handler)

    def set_handler_arguments(self, *args: Any) -> None:
        """
        Sets extra arguments passed to handlers and middlewares, after the request.
        """
        self._handler_arguments = args

    def add_route(
        self,
        methods: Union[str, Iterable[str]],
        path: str,
        handler: HandlerType,
        name: Optional[str] = None,
    ) -> Route:
        """
        Registers a route for the given HTTP methods, path and handler, inside the
        active group, if any. Returns the new route, which can be configured further.
        """
        methods = normalize_methods(methods)

        route = Route(self.active_group, base_path=self._base_path)
        route.set_path(path)
        route.set_methods(methods)
        route.set_handler(handler, self.services, self._handlers_namespace)
        route.set_name(name)

        self._routes.append(route)

        logger.debug(
            "Registered route %s %s (%s)",
            ",".join(methods),
            route.template,
            route.name or "unnamed",
        )
        return route

    def get(
        self, path: str, handler: HandlerType, name: Optional[str] = None
    ) -> Route:
        return self.add_route([RouteMethod.GET], path, handler, name)

    def post(
        self, path: str, handler: HandlerType, name: Optional[str] = None
    ) -> Route:
        return self.add_route([RouteMethod.POST], path, handler, name)

    def put(
        self, path: str, handler: HandlerType, name: Optional[str] = None
    ) -> Route:
        return self.add_route([RouteMethod.PUT], path, handler, name)

    def patch(
        self, path: str, handler: HandlerType, name: Optional[str] = None
    ) -> Route:
        return self.add_route([RouteMethod.PATCH], path, handler, name)

    def delete(
        self, path: str, handler: HandlerType, name: Optional[str] = None
    ) -> Route:
        return self.add_route([RouteMethod.DELETE], path, handler, name)

    def options(
        self, path: str, handler: HandlerType, name: Optional[str] = None
    ) -> Route:
        return self.add_route([RouteMethod.OPTIONS], path, handler, name)

    def any(
        self, path: str, handler: HandlerType, name: Optional[str] = None
    ) -> Route:
        return self.add_route(SUPPORTED_METHODS, path, handler, name)

    def map(self, path: str) -> RouteMapper:
        return RouteMapper(path, self)

    @contextmanager
    def grouping(self) -> Iterator[RouteGroup]:
        """
        Activates a new group, nested in the active one, for the duration of a with
        statement. The previous group is restored on exit, including on errors.
        """
        group = RouteGroup(self.active_group)
        self._groups.append(group)
        try:
            yield group
        finally:
            self._groups.pop()

    def group(
        self,
        callback: Callable[[RouteGroup], Any],
        *,
        prefix: Optional[str] = None,
        name: Optional[str] = None,
        before: Optional[Sequence[Any]] = None,
        after: Optional[Sequence[Any]] = None,
    ) -> RouteGroup:
        """
        Calls the given function with a new group, nested in the active one; routes
        registered by the function inherit the group's name prefix, path prefix and
        middlewares. Returns the group.
        """
        with self.grouping() as group:
            if prefix is not None:
                group.with_path_prefix(prefix)
            if name is not None:
                group.with_name_prefix(name)
            if before or after:
                group.with_middlewares(before, after)
            callback(group)
        return group

    def apply_routes(self) -> None:
        """
        Validates the routes of the table, and can be called at application start.
        Patterns are compiled when routes are registered; with strict placeholders,
        this method raises for the first route having unconstrained placeholders.
        """
        for route in self._routes:
            self._check_placeholders(route)

        logger.info("Applied %d route(s)", len(self._routes))

    def _check_placeholders(self, route: Route) -> None:
        if not self.settings.strict_placeholders:
            return
        placeholders = route.unconstrained_placeholders
        if placeholders:
            raise UnconstrainedPlaceholder(route.template, placeholders[0])

    def get_match(self, method: str, path: str) -> Optional[RouteMatch]:
        """
        Gets the first route matching the given method and path, in registration order.
        HEAD requests are matched against GET routes.
        """
        method = method.upper()
        if method == RouteMethod.HEAD:
            method = RouteMethod.GET

        path = normalize_path(path)

        for route in self._routes:
            if method not in route.methods:
                continue

            match = route.match(path)
            if match:
                return match
        return None

    def get_matching_route(self, method: str, path: str) -> Optional[Route]:
        match = self.get_match(method, path)
        return match.route if match else None

    def get_matched_route(self, request: Request) -> Optional[Route]:
        return request.route.route if request.route else None

    def get_route_by_name(self, name: str) -> Optional[Route]:
        for route in self._routes:
            if route.name == name:
                return route
        return None

    def url(
        self, name: str, parameters: Optional[Mapping[str, Any]] = None
    ) -> Optional[str]:
        """
        Returns the path of the route with the given name, with the given parameters
        replacing its placeholders; None if no route has the given name.
        """
        route = self.get_route_by_name(name)
        if route is None:
            return None
        return route.url(parameters)

    def invoke_middleware(self, middleware: Any, args: Tuple[Any, ...]) -> Any:
        handler = get_request_handler(
            middleware, self.services, self._middlewares_namespace
        )
        return handler.invoke(*args)

    def dispatch(self, request: Request) -> Any:
        """
        Finds the route matching the request and executes its before middlewares,
        its handler and its after middlewares, in this order. Returns the value
        returned by the handler.
        """
        if not self._routes:
            raise NoRoutesRegistered()

        args = (request, *self._handler_arguments)
        match = self.get_match(request.method, request.path)

        if match is None:
            logger.debug("No route matched %s %s", request.method, request.path)
            return self._suppress_body(request, self.handle_not_found(request, args))

        logger.debug("%s %s matched %r", request.method, request.path, match.route)

        self._check_placeholders(match.route)

        request.route = match
        request.route_values.update(match.values)
        route = match.route

        for middleware in route.middlewares.before:
            self.invoke_middleware(middleware, args)

        result = route.request_handler.invoke(*args)

        for middleware in route.middlewares.after:
            self.invoke_middleware(middleware, args)

        return self._suppress_body(request, result)

    @deprecated("Use `dispatch` instead.")
    def run(self, request: Request) -> Any:
        return self.dispatch(request)

    def handle_not_found(self, request: Request, args: Tuple[Any, ...]) -> Any:
        if self._not_found_handler is not None:
            return self._not_found_handler.invoke(*args)

        if self.settings.raise_not_found:
            raise NotFoundException(request.method, request.path)

        logger.warning(
            "No route matched %s %s, responding with status 404",
            request.method,
            request.path,
        )
        return Response(404)

    def _suppress_body(self, request: Request, result: Any) -> Any:
        # responses to HEAD requests have the same status and headers of GET
        # responses, but no body
        if request.method.upper() == RouteMethod.HEAD and isinstance(result, Response):
            result.content = None
        return result
