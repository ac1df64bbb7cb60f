import pytest
from rodi import Container

from waypoint.exceptions import InvalidHandlerKind
from waypoint.messages import Request
from waypoint.server.handlers import (
    DirectHandler,
    MethodHandler,
    get_request_handler,
    is_method_reference,
)
from waypoint.server.routing import Router
from tests.controllers import HomeController


class CatsRepository:
    def get_cats(self):
        return ["Celine", "Sphynx"]


class CatsController:
    def __init__(self, repository: CatsRepository) -> None:
        self.repository = repository

    def list(self, request):
        return self.repository.get_cats()


class Counter:
    instances = 0

    def __init__(self) -> None:
        Counter.instances += 1

    def count(self, request):
        return Counter.instances


def test_direct_handler():
    def handler(request):
        return request

    request_handler = get_request_handler(handler)

    assert isinstance(request_handler, DirectHandler)
    assert request_handler.target is handler
    assert request_handler("x") == "x"


@pytest.mark.parametrize(
    "value",
    [
        (HomeController, "index"),
        ["tests.controllers.HomeController", "index"],
    ],
)
def test_method_handler(value):
    request_handler = get_request_handler(value)

    assert isinstance(request_handler, MethodHandler)
    assert request_handler.get_class() is HomeController
    assert request_handler.invoke(Request("GET", "/")) == "home"


def test_method_handler_namespace():
    request_handler = get_request_handler(
        ("HomeController", "index"), None, "tests.controllers"
    )

    assert request_handler.class_identifier == "tests.controllers.HomeController"
    assert request_handler.get_class() is HomeController


def test_get_request_handler_returns_request_handlers_as_they_are():
    request_handler = DirectHandler(lambda request: None)

    assert get_request_handler(request_handler) is request_handler


@pytest.mark.parametrize(
    "value,expected_result",
    [
        ((HomeController, "index"), True),
        (("tests.controllers.HomeController", "index"), True),
        ([HomeController, "index"], True),
        ((HomeController,), False),
        ((HomeController, "index", "x"), False),
        ((HomeController, 1), False),
        (("", "index"), False),
        ((HomeController, ""), False),
        ((1, "index"), False),
        ("HomeController@index", False),
        (None, False),
    ],
)
def test_is_method_reference(value, expected_result):
    assert is_method_reference(value) is expected_result


@pytest.mark.parametrize("value", [None, 1, "index", (1, 2), {"a": "b"}])
def test_get_request_handler_raises_for_invalid_values(value):
    with pytest.raises(InvalidHandlerKind) as error:
        get_request_handler(value)

    assert error.value.handler == value


def test_invalid_handler_kind_is_type_error():
    with pytest.raises(TypeError):
        get_request_handler(1)


def test_method_handler_creates_an_instance_per_call():
    Counter.instances = 0
    request_handler = get_request_handler((Counter, "count"))

    assert request_handler.invoke(None) == 1
    assert request_handler.invoke(None) == 2


def test_method_handler_activated_by_services():
    container = Container()
    container.add_instance(CatsRepository())
    container.register(CatsController)

    router = Router(services=container)
    router.get("/cats", (CatsController, "list"))

    assert router.dispatch(Request("GET", "/cats")) == ["Celine", "Sphynx"]


def test_method_handler_not_registered_in_services_is_created_without_arguments():
    container = Container()

    router = Router(services=container)
    router.get("/", (HomeController, "index"))

    assert router.dispatch(Request("GET", "/")) == "home"


def test_method_handler_requiring_arguments_without_services():
    request_handler = get_request_handler((CatsController, "list"))

    with pytest.raises(TypeError):
        request_handler.invoke(Request("GET", "/"))
