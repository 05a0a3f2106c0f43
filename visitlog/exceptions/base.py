"""
Custom Exceptions for the Application.
"""

class AppError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

class ValidationError(AppError):
    """Raised when input validation fails (Pydantic or Business Rule)."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, details=details)

class NotFoundError(AppError):
    """Raised when a resource is not found."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class ConflictError(AppError):
    """Raised when a write would break a uniqueness rule."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, code="CONFLICT", status_code=409, details=details)

class NoActiveSessionError(AppError):
    """Raised when a check-out is requested for a student who is not checked in."""
    def __init__(self, message: str = "No active session found"):
        super().__init__(message, code="NO_ACTIVE_SESSION", status_code=400)

class UnauthorizedError(AppError):
    """Raised when authentication fails."""
    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message, code="UNAUTHORIZED", status_code=401)

class ForbiddenError(AppError):
    """Raised when an authenticated caller is not allowed to do something."""
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="FORBIDDEN", status_code=403)

class DatabaseError(AppError):
    """Raised when a database operation fails."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, code="DATABASE_ERROR", status_code=500, details=details)

class ExternalServiceError(AppError):
    """Raised when an external service (AWS S3) fails."""
    def __init__(self, message: str, service_name: str, details: dict = None):
        super().__init__(f"{service_name} Error: {message}", code=f"{service_name.upper()}_ERROR", status_code=502, details=details)
