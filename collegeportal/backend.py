from flask import current_app

from collegeportal.api import BackendClient, PortalApi
from collegeportal.session_store import current_tokens


def init_backend(app, session=None):
    """Attach the backend client for ``app``.

    ``session`` is a ``requests.Session`` stand-in; tests pass a fake one.
    """
    client = BackendClient(app.config['BACKEND_URL'], timeout=app.config['BACKEND_TIMEOUT'], session=session)
    app.extensions['backend'] = client
    return client


def get_backend():
    return current_app.extensions['backend']


def get_api(role=None):
    """A ``PortalApi`` carrying the bearer token stored for ``role``."""
    token = current_tokens().get_token(role) if role else None
    return PortalApi(get_backend(), token)
