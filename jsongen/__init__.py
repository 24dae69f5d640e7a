"""jsongen - Codec generator for JSON serialization of Python classes."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("jsongen")
except PackageNotFoundError:
    __version__ = "(local)"

# records are only shown when the application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
