"""
Core module initialization.
Exports configuration, errors and logging utilities.
"""

from pos_backend.core.config import get_settings, Settings, EnvironmentMode
from pos_backend.core.errors import (
    POSError,
    ValidationError,
    AuthError,
    AuthForbiddenError,
    NotFoundError,
    ConflictError,
    PersistenceError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "POSError",
    "ValidationError",
    "AuthError",
    "AuthForbiddenError",
    "NotFoundError",
    "ConflictError",
    "PersistenceError",
]
