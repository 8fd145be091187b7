class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationError(AppError):
    """Raised when user input fails a check that spans more than one entity."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class DuplicateResourceError(AppError):
    """Raised when a resource with the same identity already exists."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} already exists", status_code=409)

class PersistenceError(AppError):
    """Raised when the backing store cannot be read or written."""
    def __init__(self, message: str = "Could not save your changes. Please try again."):
        super().__init__(message, status_code=503)
