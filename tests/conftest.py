import json
from collections import namedtuple

import pytest

from collegeportal import create_app
from collegeportal.config import TestConfig
from collegeportal.session_store import token_key

BASE_URL = TestConfig.BACKEND_URL

Call = namedtuple('Call', 'method path params json data files headers')


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason='OK', raw=None):
        self.status_code = status_code
        self.reason = reason
        if raw is not None:
            self.content = raw
        else:
            self.content = b'' if body is None else json.dumps(body).encode()

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return json.loads(self.content)


class FakeBackend:
    """Drop-in for ``requests.Session`` that replays canned responses.

    Responses are queued per ``(method, path)``; the last one queued keeps
    answering. Unknown routes answer 404.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, body=None, status=200, reason=None, raw=None):
        reason = reason or ('OK' if status < 400 else 'Error')
        self.routes.setdefault((method, path), []).append(FakeResponse(status, body, reason, raw))

    def add_error(self, method, path, exc):
        self.routes.setdefault((method, path), []).append(exc)

    def request(self, method, url, params=None, json=None, data=None, files=None, headers=None, timeout=None):
        path = url[len(BASE_URL):] if url.startswith(BASE_URL) else url
        self.calls.append(Call(method, path, params, json, data, files, headers or {}))
        queue = self.routes.get((method, path))
        if not queue:
            return FakeResponse(404, {'message': 'Route not found'}, 'Not Found')
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response

    def calls_to(self, method, path):
        return [call for call in self.calls if call.method == method and call.path == path]


PROFILES = {
    'student': {'_id': 'stu1', 'username': 'sam', 'email': 'sam@gpkmc.edu.np', 'role': 'student'},
    'teacher': {'_id': 'tea1', 'username': 'tina', 'email': 'tina@gpkmc.edu.np', 'role': 'teacher'},
    'admin': {'_id': 'adm1', 'username': 'ada', 'email': 'ada@gpkmc.edu.np', 'role': 'admin'},
    'superadmin': {'_id': 'sup1', 'username': 'sue', 'email': 'sue@gpkmc.edu.np', 'role': 'superadmin'},
}


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def app(backend):
    app = create_app(TestConfig, backend_session=backend)
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sign_in(client, backend):
    """Store a session token for ``role`` and make the profile check accept it."""
    def _sign_in(role, token='good-token'):
        with client.session_transaction() as sess:
            tokens = dict(sess.get('tokens', {}))
            tokens[token_key(role)] = token
            sess['tokens'] = tokens
        backend.add('GET', '/userAuth/me', {'user': PROFILES[role]})
        return token
    return _sign_in
