"""
Middleware package for the Catalog API.
"""

from .security import RequestIDMiddleware, get_request_id

__all__ = ["RequestIDMiddleware", "get_request_id"]
