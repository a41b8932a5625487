GENERIC_FAILURE = 'Something went wrong. Please try again.'


class ApiError(Exception):
    """Base class for every failure surfaced by the backend client."""

    def __init__(self, message=GENERIC_FAILURE):
        super().__init__(message)
        self.message = message


class NetworkError(ApiError):
    """The backend could not be reached or the connection broke."""


class RequestCancelled(ApiError):
    def __init__(self, message='Request cancelled'):
        super().__init__(message)


class SchemaError(ApiError):
    """The backend answered 2xx but with a body we cannot use."""

    def __init__(self, message='Unexpected response from server', path=None):
        super().__init__(message)
        self.path = path


class HttpError(ApiError):
    def __init__(self, status, message, payload=None):
        super().__init__(message)
        self.status = status
        self.payload = payload if payload is not None else {}


class AuthenticationError(HttpError):
    pass


class NotFoundError(HttpError):
    pass


def error_for_status(status, message, payload=None):
    if status == 401:
        return AuthenticationError(status, message, payload)
    if status == 404:
        return NotFoundError(status, message, payload)
    return HttpError(status, message, payload)
