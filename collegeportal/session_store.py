"""Per-role bearer token storage.

Two storages back every browser: a session-only one (the Flask session
cookie, gone when the browser closes) and a persistent "remember" cookie
signed with the app secret. Tokens for different roles live under
different keys so one browser can hold admin, teacher and student
sessions side by side.
"""
from collections.abc import MutableMapping
from datetime import timedelta

from flask import current_app, g, request, session
from itsdangerous import BadSignature, URLSafeSerializer

ROLE_TOKEN_KEYS = {
    'teacher': 'token',
    'admin': 'token_admin',
    'superadmin': 'token_admin',
    'student': 'token_student',
}


def token_key(role):
    try:
        return ROLE_TOKEN_KEYS[role]
    except KeyError:
        raise ValueError(f'Unknown role: {role}') from None


class TokenStore:
    def __init__(self, persistent, volatile):
        self.persistent = persistent
        self.volatile = volatile

    def set(self, key, value, persistent=False):
        target, other = (self.persistent, self.volatile) if persistent else (self.volatile, self.persistent)
        other.pop(key, None)
        target[key] = value

    def get(self, key):
        return self.persistent.get(key) or self.volatile.get(key)

    def remove(self, key):
        self.persistent.pop(key, None)
        self.volatile.pop(key, None)

    def get_token(self, role):
        return self.get(token_key(role))

    def set_token(self, role, value, persistent=False):
        self.set(token_key(role), value, persistent)

    def clear_token(self, role):
        self.remove(token_key(role))


class SessionStorage(MutableMapping):
    """Session-only storage kept in the Flask session cookie."""

    namespace = 'tokens'

    def _data(self):
        return session.setdefault(self.namespace, {})

    def __getitem__(self, key):
        return self._data()[key]

    def __setitem__(self, key, value):
        self._data()[key] = value
        session.modified = True

    def __delitem__(self, key):
        del self._data()[key]
        session.modified = True

    def __iter__(self):
        return iter(list(self._data()))

    def __len__(self):
        return len(self._data())


class RememberCookieStorage(MutableMapping):
    """Persistent storage in a signed cookie; written back after the request."""

    def __init__(self, cookie_name, secret_key, cookies):
        self.cookie_name = cookie_name
        self.serializer = URLSafeSerializer(secret_key, salt='remember-tokens')
        self.modified = False
        self._values = self._load(cookies.get(cookie_name))

    def _load(self, raw):
        if not raw:
            return {}
        try:
            values = self.serializer.loads(raw)
        except BadSignature:
            return {}
        return values if isinstance(values, dict) else {}

    def __getitem__(self, key):
        return self._values[key]

    def __setitem__(self, key, value):
        self._values[key] = value
        self.modified = True

    def __delitem__(self, key):
        del self._values[key]
        self.modified = True

    def __iter__(self):
        return iter(list(self._values))

    def __len__(self):
        return len(self._values)

    def save(self, response, max_age):
        if not self.modified:
            return
        if self._values:
            response.set_cookie(self.cookie_name, self.serializer.dumps(self._values),
                                max_age=int(max_age.total_seconds()), httponly=True, samesite='Lax')
        else:
            response.delete_cookie(self.cookie_name)


def current_tokens():
    """The token store for the current request."""
    store = g.get('_token_store')
    if store is None:
        remember = RememberCookieStorage(current_app.config['TOKEN_COOKIE_NAME'],
                                         current_app.config['SECRET_KEY'], request.cookies)
        store = g._token_store = TokenStore(remember, SessionStorage())
    return store


def save_remembered_tokens(response):
    store = g.get('_token_store')
    if store is not None:
        store.persistent.save(response, timedelta(days=current_app.config['TOKEN_COOKIE_DAYS']))
    return response


def init_app(app):
    app.after_request(save_remembered_tokens)
