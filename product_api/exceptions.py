from fastapi import status


class ProductServiceError(Exception):
    """Base exception for product operations. Carries the HTTP status to report."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ProductServiceError):
    """Exception raised when request data is missing, malformed or out of range."""
    status_code = status.HTTP_400_BAD_REQUEST


class ProductNotFoundError(ProductServiceError):
    """Exception raised when the requested product doesn't exist."""
    status_code = status.HTTP_404_NOT_FOUND


class StorageError(ProductServiceError):
    """Exception raised when a query or connection fails."""
    pass


class StorageUnavailableError(StorageError):
    """Exception raised when no pooled connection could be acquired in time."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
