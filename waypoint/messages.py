from typing import TYPE_CHECKING, Any, AnyStr, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

from .url import URL

if TYPE_CHECKING:
    from waypoint.server.routing import RouteMatch


HeadersType = List[Tuple[str, str]]


class Message:
    def __init__(self, headers: Optional[HeadersType]):
        self._raw_headers = headers or []

    @property
    def headers(self) -> HeadersType:
        return self._raw_headers

    def get_first_header(self, key: str) -> Optional[str]:
        key = key.lower()
        for header in self._raw_headers:
            if header[0].lower() == key:
                return header[1]
        return None

    def add_header(self, name: str, value: str) -> None:
        self._raw_headers.append((name, value))


class Request(Message):
    """
    Incoming request, as seen by the router: the method and the path are used to
    find a route, the values extracted from the path are written to `route_values`.
    """

    def __init__(
        self, method: str, url: AnyStr, headers: Optional[HeadersType] = None
    ):
        super().__init__(headers)
        self.method = method
        self._url = URL(url) if url else None
        self.route_values: Dict[str, str] = {}
        self.route: Optional["RouteMatch"] = None

    def __repr__(self):
        return f"<Request {self.method} {self.url}>"

    @property
    def url(self) -> Optional[URL]:
        return self._url

    @property
    def path(self) -> str:
        return self._url.path if self._url else ""

    @property
    def query(self) -> Dict[str, List[str]]:
        if self._url is None or not self._url.query:
            return {}
        return parse_qs(self._url.query)


class Response(Message):
    def __init__(
        self,
        status: int,
        headers: Optional[HeadersType] = None,
        content: Any = None,
    ):
        super().__init__(headers)
        self.status = status
        self.content = content

    def __repr__(self):
        return f"<Response {self.status}>"
