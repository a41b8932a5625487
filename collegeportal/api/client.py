import logging
import threading

import requests
from pydantic import TypeAdapter, ValidationError

from collegeportal.api.errors import NetworkError, RequestCancelled, SchemaError, error_for_status

log = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation for a backend call.

    The client checks the token before sending and again before handing the
    decoded body back, so a consumer that stopped listening never receives a
    late result.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self):
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise RequestCancelled()


def extract_message(payload, fallback):
    if isinstance(payload, dict):
        for key in ('message', 'error'):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return fallback


def parse(payload, model, key=None, many=False, path=None):
    """Validate a decoded body against ``model``.

    ``key`` names the envelope field holding the record(s); ``None`` means
    the body itself is the record (or list of records).
    """
    if key is not None:
        if not isinstance(payload, dict) or key not in payload:
            raise SchemaError(f'Missing "{key}" in response', path=path)
        payload = payload[key]
    adapter = TypeAdapter(list[model]) if many else TypeAdapter(model)
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        log.warning('Response from %s failed validation: %s', path, exc.errors()[:3])
        raise SchemaError(path=path) from exc


class BackendClient:
    def __init__(self, base_url, timeout=15, session=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()

    def url(self, path):
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(self, method, path, token=None, params=None, json=None, data=None,
                files=None, cancel=None):
        if cancel is not None:
            cancel.raise_if_cancelled()

        headers = {'Accept': 'application/json'}
        if token:
            headers['Authorization'] = f'Bearer {token}'

        try:
            response = self.session.request(
                method, self.url(path),
                params=params, json=json, data=data, files=files,
                headers=headers, timeout=self.timeout,
            )
        except requests.RequestException as exc:
            log.warning('%s %s failed: %s', method, path, exc)
            raise NetworkError() from exc

        if cancel is not None:
            cancel.raise_if_cancelled()

        payload = self._decode(response)
        if not response.ok:
            message = extract_message(payload, f'{response.status_code} {response.reason}')
            log.warning('%s %s -> %s %s', method, path, response.status_code, message)
            raise error_for_status(response.status_code, message,
                                   payload if isinstance(payload, dict) else None)
        if payload is None:
            raise SchemaError('Response was not JSON', path=path)
        return payload

    @staticmethod
    def _decode(response):
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return None

    def fetch(self, method, path, model, key=None, many=False, **kwargs):
        payload = self.request(method, path, **kwargs)
        return parse(payload, model, key=key, many=many, path=path)

    def get(self, path, **kwargs):
        return self.request('GET', path, **kwargs)

    def post(self, path, **kwargs):
        return self.request('POST', path, **kwargs)

    def patch(self, path, **kwargs):
        return self.request('PATCH', path, **kwargs)

    def put(self, path, **kwargs):
        return self.request('PUT', path, **kwargs)

    def delete(self, path, **kwargs):
        return self.request('DELETE', path, **kwargs)
