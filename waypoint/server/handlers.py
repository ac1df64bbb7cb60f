"""
This module defines the two kinds of request handlers supported by the router:

* any callable, invoked as-is with the request and the configured extra arguments;
* a (class, method name) pair, meaning: instantiate the class, then invoke the named
  method with the same arguments.

The class of a pair can be given as a type or as an import string. When the router is
configured with a rodi container and the class is registered in it, instances are
activated by the container, so that their dependencies are injected.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Union

from rodi import ContainerProtocol

from waypoint.exceptions import InvalidHandlerKind
from waypoint.utils.imports import import_string, join_namespace


class RequestHandler(ABC):
    @abstractmethod
    def invoke(self, *args: Any) -> Any:
        """Invokes the handler with the given arguments, returning its result."""

    def __call__(self, *args: Any) -> Any:
        return self.invoke(*args)


class DirectHandler(RequestHandler):
    __slots__ = ("target",)

    def __init__(self, target) -> None:
        self.target = target

    def __repr__(self) -> str:
        name = getattr(self.target, "__qualname__", repr(self.target))
        return f"<DirectHandler {name}>"

    def invoke(self, *args: Any) -> Any:
        return self.target(*args)


class MethodHandler(RequestHandler):
    __slots__ = ("class_identifier", "method_name", "services", "_cls")

    def __init__(
        self,
        class_identifier: Union[type, str],
        method_name: str,
        services: Optional[ContainerProtocol] = None,
    ) -> None:
        self.class_identifier = class_identifier
        self.method_name = method_name
        self.services = services
        self._cls: Optional[type] = (
            class_identifier if isinstance(class_identifier, type) else None
        )

    def __repr__(self) -> str:
        cls = self.class_identifier
        name = cls.__qualname__ if isinstance(cls, type) else cls
        return f"<MethodHandler {name}.{self.method_name}>"

    def get_class(self) -> type:
        if self._cls is None:
            try:
                value = import_string(self.class_identifier)
            except ImportError as import_error:
                raise InvalidHandlerKind(
                    (self.class_identifier, self.method_name),
                    f"Cannot import handler class {self.class_identifier!r}: "
                    f"{import_error}",
                ) from import_error
            if not isinstance(value, type):
                raise InvalidHandlerKind(
                    (self.class_identifier, self.method_name),
                    f"{self.class_identifier!r} does not refer to a class.",
                )
            self._cls = value
        return self._cls

    def activate(self) -> Any:
        cls = self.get_class()
        if self.services is not None and cls in self.services:
            return self.services.resolve(cls)
        return cls()

    def invoke(self, *args: Any) -> Any:
        instance = self.activate()
        method = getattr(instance, self.method_name, None)

        if method is None or not callable(method):
            raise InvalidHandlerKind(
                (self.class_identifier, self.method_name),
                f"{type(instance).__qualname__} does not define a method "
                f"named {self.method_name!r}.",
            )
        return method(*args)


def is_method_reference(value: Any) -> bool:
    return (
        isinstance(value, (tuple, list))
        and len(value) == 2
        and isinstance(value[0], (type, str))
        and isinstance(value[1], str)
        and bool(value[0])
        and bool(value[1])
    )


def is_valid_handler(value: Any) -> bool:
    return callable(value) or is_method_reference(value)


def get_request_handler(
    value: Any,
    services: Optional[ContainerProtocol] = None,
    namespace: str = "",
) -> RequestHandler:
    """
    Normalizes a handler-like value into a RequestHandler, raising InvalidHandlerKind
    if the value is neither a callable nor a (class, method name) pair.
    """
    if isinstance(value, RequestHandler):
        return value

    if callable(value):
        return DirectHandler(value)

    if is_method_reference(value):
        class_identifier, method_name = value
        if isinstance(class_identifier, str):
            class_identifier = join_namespace(namespace, class_identifier)
        return MethodHandler(class_identifier, method_name, services)

    raise InvalidHandlerKind(value)
