import pytest

from waypoint.messages import Request, Response
from waypoint.url import URL, InvalidURL


def test_empty_url():
    with pytest.raises(InvalidURL):
        URL("")


def test_invalid_schema():
    with pytest.raises(InvalidURL):
        URL("ftp://example.com/files")


def test_relative_url():
    url = URL(b"/api/cat/001?foo=power&hello=world")

    assert url.path == "/api/cat/001"
    assert url.schema is None
    assert url.query == "foo=power&hello=world"


def test_absolute_url():
    url = URL("https://example.com:8080/cats?page=2#top")

    assert url.path == "/cats"
    assert url.schema == "https"
    assert url.query == "page=2"


def test_url_equality():
    assert URL("/") == URL(b"/")
    assert URL("/api/cats") != URL("/api/cat/001")


@pytest.mark.parametrize(
    "url,expected_path",
    [
        ("/", "/"),
        ("/cats?x=1", "/cats"),
        (b"/cats/1", "/cats/1"),
        ("https://example.com/dogs", "/dogs"),
        ("", ""),
    ],
)
def test_request_path(url, expected_path):
    assert Request("GET", url).path == expected_path


def test_request_defaults():
    request = Request("GET", "/")

    assert request.route_values == {}
    assert request.route is None
    assert request.query == {}
    assert request.headers == []
    assert repr(request) == "<Request GET />"


def test_headers():
    response = Response(200, [("Content-Type", "text/plain")])

    assert response.get_first_header("content-type") == "text/plain"
    assert response.get_first_header("X-Foo") is None

    response.add_header("X-Foo", "1")
    response.add_header("x-foo", "2")
    assert response.get_first_header("X-FOO") == "1"


def test_response():
    response = Response(404)

    assert response.content is None
    assert response.headers == []
    assert repr(response) == "<Response 404>"
