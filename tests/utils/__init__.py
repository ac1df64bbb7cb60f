import os
from contextlib import contextmanager
from unittest.mock import patch


@contextmanager
def modified_env(**kwargs):
    """Runs the wrapped code with the given environment variables set."""
    with patch.dict(os.environ, kwargs):
        yield
