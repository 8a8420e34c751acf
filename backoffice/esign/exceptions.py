# backoffice/esign/exceptions.py

"""
Custom exceptions for the E-sign module.

Every failure of the DocuSign integration surfaces to the immediate caller as
one of these; nothing is retried or recovered here.
"""

from typing import Optional

from fastapi import HTTPException, status


class ESignBaseException(Exception):
    """Base exception for all E-sign errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(ESignBaseException):
    """Raised when a required DocuSign setting is missing or unusable."""
    def __init__(self, key: str, reason: str = "is missing or empty"):
        self.key = key
        super().__init__(f"DocuSign configuration {key} {reason}", {"key": key})


class ProviderRequestError(ESignBaseException):
    """A DocuSign call that failed or returned something unusable."""
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(
            message,
            {"status_code": status_code, "error_code": error_code, **(details or {})},
        )


class AuthenticationError(ProviderRequestError):
    """Raised when the JWT grant is rejected or yields no access token."""


class EnvelopeSubmissionError(ProviderRequestError):
    """Raised when an envelope could not be created."""


class EnvelopeStatusError(ProviderRequestError):
    """Raised when envelope status could not be read."""


class DocumentRetrievalError(ProviderRequestError):
    """Raised when the signed document could not be downloaded."""
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body_excerpt: str = "",
    ):
        self.body_excerpt = body_excerpt
        super().__init__(message, status_code, details={"body_excerpt": body_excerpt})


def convert_to_http_exception(exc: ESignBaseException) -> HTTPException:
    """
    Convert an ESignBaseException to an HTTPException with appropriate status code.

    Args:
        exc: The e-sign exception to convert

    Returns:
        HTTPException with appropriate status code and detail
    """
    if isinstance(exc, ConfigurationError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": exc.message, "details": exc.details}
        )
    elif isinstance(exc, ProviderRequestError) and exc.status_code == status.HTTP_404_NOT_FOUND:
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"message": exc.message, "details": exc.details}
        )
    elif isinstance(exc, ProviderRequestError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"message": exc.message, "details": exc.details}
        )
    else:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": str(exc), "details": {}}
        )
