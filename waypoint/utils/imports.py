import importlib
from typing import Any


def import_string(value: str) -> Any:
    """
    Imports an object by its import string. Both the "module:attribute" and the
    dotted "module.attribute" forms are supported, e.g.

        app.controllers:HomeController
        app.controllers.HomeController
    """
    if ":" in value:
        module_path, _, attr_name = value.partition(":")
    else:
        module_path, _, attr_name = value.rpartition(".")

    if not module_path or not attr_name:
        raise ImportError(f"{value!r} is not a valid import string.")

    module = importlib.import_module(module_path)
    try:
        return getattr(module, attr_name)
    except AttributeError:
        raise ImportError(
            f"Module {module_path!r} does not define an attribute {attr_name!r}."
        ) from None


def join_namespace(namespace: str, value: str) -> str:
    """Prefixes a class identifier with a namespace, when one is configured."""
    if not namespace:
        return value
    return f"{namespace.rstrip('.:')}.{value}"
