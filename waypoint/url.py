from typing import AnyStr
from urllib.parse import urlparse

from waypoint.utils import ensure_str


class InvalidURL(Exception):
    def __init__(self, message: str):
        super().__init__(message)


def valid_schema(schema):
    if schema and schema != "https" and schema != "http":
        raise InvalidURL(f"Expected http or https schema; got instead {schema}")


class URL:
    """
    Parsed request URL. Only the path is relevant for routing: the query string and
    the fragment are kept apart and never take part in matching.
    """

    def __init__(self, value: AnyStr):
        if not value:
            raise InvalidURL("Input empty or null.")
        try:
            s = ensure_str(value)
            if s[0] == ".":
                s = "/" + s
            parsed = urlparse(s)
        except ValueError:
            raise InvalidURL(f"The value cannot be parsed as URL ({value!r})")
        schema = parsed.scheme
        valid_schema(schema)
        self.value = s
        self.schema = schema or None
        self.path = parsed.path or ""
        self.query = parsed.query or None

    def __repr__(self):
        return f"<URL {self.value}>"

    def __str__(self):
        return self.value

    def __eq__(self, other):
        if isinstance(other, URL):
            return self.value == other.value
        return NotImplemented
