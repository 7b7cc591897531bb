"""
Domain Error Taxonomy

Services raise these; the exception handlers in main.py translate them
into JSON error bodies with the matching HTTP status.
"""

from typing import Optional


class POSError(Exception):
    """Base class for all handled application errors."""

    status_code: int = 500
    default_message: str = "Error interno del servidor"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.message}


class ValidationError(POSError):
    """Missing or malformed input."""
    status_code = 400
    default_message = "Datos incompletos"


class AuthError(POSError):
    """Missing, malformed or expired credential."""
    status_code = 401
    default_message = "Token requerido o mal formado"


class AuthForbiddenError(AuthError):
    """Credential present but its signature or claims are invalid."""
    status_code = 403
    default_message = "Token inválido"


class NotFoundError(POSError):
    """Referenced entity does not exist."""
    status_code = 404
    default_message = "Recurso no encontrado"


class ConflictError(POSError):
    """Referential-integrity or state-transition guard refused the change."""
    status_code = 409
    default_message = "Conflicto con el estado actual"


class PersistenceError(POSError):
    """Storage failure. The message never carries driver details."""
    status_code = 500
    default_message = "Error interno del servidor"
