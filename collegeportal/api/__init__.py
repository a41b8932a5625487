from collegeportal.api.client import BackendClient, CancellationToken
from collegeportal.api.errors import (
    ApiError, AuthenticationError, HttpError, NetworkError, NotFoundError, RequestCancelled, SchemaError,
)
from collegeportal.api.resources import PortalApi

__all__ = [
    'ApiError', 'AuthenticationError', 'BackendClient', 'CancellationToken', 'HttpError',
    'NetworkError', 'NotFoundError', 'PortalApi', 'RequestCancelled', 'SchemaError',
]
