"""
Host layer: an express-style handler stack served over ASGI.
"""

from .application import ALL_METHODS, Application, Layer, is_error_handler
from .paths import compile_path, join_paths, match_path, normalize_path
from .request import Request
from .response import Response

__all__ = [
    "ALL_METHODS",
    "Application",
    "Layer",
    "is_error_handler",
    "Request",
    "Response",
    "compile_path",
    "join_paths",
    "match_path",
    "normalize_path",
]
