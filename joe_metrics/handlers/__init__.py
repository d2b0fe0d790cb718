"""
Request handlers for the metrics service.

- api_handler.handle: route template + path parameters -> response dict
- api_handler.handler: AWS Lambda entrypoint around handle()
"""

from .api_handler import ROUTES, handle, handler, serialize

__all__ = [
    "ROUTES",
    "handle",
    "handler",
    "serialize",
]
