from fastapi import HTTPException, status


class DigitalFormsException(HTTPException):
    """Base class for domain errors; carries a stable machine-readable code."""

    error_code: str = "error"

    def __init__(self, detail: str, status_code: int):
        super().__init__(status_code=status_code, detail=detail)


class InvalidArgumentException(DigitalFormsException):
    """Exception raised when caller input is missing or malformed."""

    error_code = "invalid_argument"

    def __init__(self, detail: str = "Invalid request"):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST)


class InvalidCredentialsException(DigitalFormsException):
    """
    Exception raised when a credential check fails.

    The message is identical for an unknown username and a wrong password.
    """

    error_code = "invalid_credentials"

    def __init__(
        self,
        detail: str = "Invalid username or password",
        status_code: int = status.HTTP_401_UNAUTHORIZED
    ):
        super().__init__(detail=detail, status_code=status_code)
        if status_code == status.HTTP_401_UNAUTHORIZED:
            self.headers = {"WWW-Authenticate": "Bearer"}


class ForbiddenException(DigitalFormsException):
    """Exception raised when an authenticated user may not act on a resource."""

    error_code = "forbidden"

    def __init__(self, detail: str = "Access denied"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class NotFoundException(DigitalFormsException):
    """Exception raised when an id or code does not resolve."""

    error_code = "not_found"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class LinkExpiredException(DigitalFormsException):
    """Exception raised when a form link resolved but is no longer usable."""

    error_code = "expired"

    def __init__(self, detail: str = "Form link has expired"):
        super().__init__(detail=detail, status_code=status.HTTP_410_GONE)


class StoreUnavailableException(DigitalFormsException):
    """Exception raised when the database cannot be reached in time."""

    error_code = "store_unavailable"

    def __init__(self, detail: str = "Service temporarily unavailable. Please try again later."):
        super().__init__(detail=detail, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
