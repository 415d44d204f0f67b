"""
FastAPI middleware components.
"""

from .admin_key import require_admin_key
from .error_handler import ErrorHandlerMiddleware, error_response, register_exception_handlers

__all__ = [
    "require_admin_key",
    "ErrorHandlerMiddleware",
    "error_response",
    "register_exception_handlers",
]
