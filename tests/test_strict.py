import pytest

from waypoint.exceptions import NotFoundException, UnconstrainedPlaceholder
from waypoint.messages import Request
from waypoint.server.env import EnvironmentSettings
from waypoint.server.routing import Router


def handler(request):
    return request.route_values


@pytest.fixture
def strict_router():
    return Router(settings=EnvironmentSettings(strict_placeholders=True))


def test_unconstrained_placeholder_raises_in_strict_mode(strict_router: Router):
    strict_router.get("/users/{id}", handler)

    with pytest.raises(UnconstrainedPlaceholder) as error:
        strict_router.apply_routes()

    assert error.value.placeholder == "id"
    assert error.value.pattern == "/users/{id}"


def test_unconstrained_placeholder_raises_at_dispatch(strict_router: Router):
    strict_router.get("/posts/{slug?}", handler)

    with pytest.raises(UnconstrainedPlaceholder):
        strict_router.dispatch(Request("GET", "/posts"))


def test_unconstrained_placeholder_does_not_break_other_routes(
    strict_router: Router,
):
    strict_router.get("/posts/{slug?}", handler)
    strict_router.get("/users/{id}", handler).where(id="int")

    with pytest.raises(UnconstrainedPlaceholder):
        strict_router.dispatch(Request("GET", "/posts/hello"))

    assert strict_router.dispatch(Request("GET", "/users/1")) == {"id": "1"}


def test_constrained_placeholders_in_strict_mode(strict_router: Router):
    strict_router.get("/users/{id}/{slug?}", handler).where(id="int", slug="slug")

    strict_router.apply_routes()

    assert strict_router.dispatch(Request("GET", "/users/3/hello")) == {
        "id": "3",
        "slug": "hello",
    }


def test_unconstrained_placeholders_default_to_a_path_segment(router: Router):
    route = router.get("/users/{id}", handler)

    assert route.unconstrained_placeholders == ["id"]

    router.apply_routes()

    assert router.dispatch(Request("GET", "/users/john")) == {"id": "john"}
    with pytest.raises(NotFoundException):
        router.dispatch(Request("GET", "/users/john/doe"))
