"""HTTP errors raised by routes and dependencies.

Each class pins a status code and a default message so call sites only pass
a message when the default does not fit. The JSON body (``{"message": ...}``)
is produced by the handlers registered in ``backend.main``.
"""

from fastapi import HTTPException, status


class ApiError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Server error'

    def __init__(self, message: str | None = None, headers: dict[str, str] | None = None) -> None:
        super().__init__(
            status_code=type(self).status_code,
            detail=message or self.default_message,
            headers=headers,
        )


class Unauthenticated(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'No token, authorization denied'


class InvalidToken(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'Invalid token'


class TokenExpired(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'Token expired'


class AccountNotFound(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'User not found'


class AccountDeactivated(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Account is deactivated'


class IncorrectPassword(ApiError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = 'Current password is incorrect'


class Forbidden(ApiError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Access denied'


class NotFound(ApiError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found'


class SchedulingConflict(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'You already have an interview scheduled at this time'


class InvalidState(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Operation not allowed in the current state'


class ValidationFailed(ApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Validation failed'

    def __init__(self, message: str | None = None, errors: list[dict] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [{'field': None, 'message': self.detail}]


class InternalError(ApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Server error'

    def __init__(self, error: str | None = None, message: str | None = None) -> None:
        super().__init__(message)
        self.error = error


def error_body(exc: HTTPException) -> dict:
    body = {'message': exc.detail}
    errors = getattr(exc, 'errors', None)
    if errors:
        body['errors'] = errors
    error = getattr(exc, 'error', None)
    if error:
        body['error'] = error
    return body
