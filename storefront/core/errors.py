"""
Domain exceptions raised by services and translated to HTTP errors by routers
"""
from fastapi import HTTPException, status


class StorefrontError(Exception):
    """Base class for expected business-rule failures"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(StorefrontError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(StorefrontError):
    status_code = status.HTTP_409_CONFLICT


def to_http_exception(error: StorefrontError) -> HTTPException:
    """Map a domain exception to the HTTPException a router should raise"""
    return HTTPException(status_code=error.status_code, detail=error.message)
