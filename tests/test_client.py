import pytest
import requests

from collegeportal.api import (
    AuthenticationError, BackendClient, CancellationToken, HttpError, NetworkError, NotFoundError, PortalApi,
    RequestCancelled, SchemaError,
)
from collegeportal.api.errors import GENERIC_FAILURE
from tests.conftest import BASE_URL, FakeBackend


@pytest.fixture
def fake():
    return FakeBackend()


@pytest.fixture
def api(fake):
    return PortalApi(BackendClient(BASE_URL + '/', session=fake), token='abc')


def test_bearer_token_is_attached(fake, api):
    fake.add('GET', '/faculty-api/faculties', {'faculties': []})
    api.faculties()
    assert fake.calls[0].headers['Authorization'] == 'Bearer abc'


def test_no_token_no_authorization_header(fake):
    fake.add('POST', '/userAuth/login', {'message': 'ok', 'token': 't'})
    PortalApi(BackendClient(BASE_URL, session=fake)).login('a@b.com', 'x', 'student')
    assert 'Authorization' not in fake.calls[0].headers
    assert fake.calls[0].json == {'email': 'a@b.com', 'password': 'x', 'role': 'student'}


def test_list_is_parsed_into_models(fake, api):
    fake.add('GET', '/course-api/courseInstance', {'instances': [
        {'_id': 'ci1', 'course': {'_id': 'c1', 'name': 'Databases', 'code': 'DB101'},
         'batch': 'b1', 'teacher': {'_id': 't1', 'username': 'tina'}, 'isActive': True},
    ]})
    [instance] = api.course_instances()
    assert instance.id == 'ci1'
    assert instance.course.name == 'Databases'
    assert instance.batch.id == 'b1'
    assert instance.teacher.label == 'tina'
    assert instance.is_active is True


def test_missing_envelope_key_is_a_schema_error(fake, api):
    fake.add('GET', '/faculty-api/faculties', {'data': []})
    with pytest.raises(SchemaError):
        api.faculties()


def test_non_json_success_is_a_schema_error(fake, api):
    fake.add('GET', '/faculty-api/faculties', raw=b'<html>oops</html>')
    with pytest.raises(SchemaError):
        api.faculties()


def test_error_message_from_body(fake, api):
    fake.add('GET', '/userAuth/me', {'error': 'Token expired'}, status=401)
    with pytest.raises(AuthenticationError) as info:
        api.me()
    assert info.value.status == 401
    assert info.value.message == 'Token expired'


def test_error_message_falls_back_to_status_line(fake, api):
    fake.add('DELETE', '/course-api/course/c1', status=500, reason='Internal Server Error')
    with pytest.raises(HttpError) as info:
        api.delete_course('c1')
    assert info.value.message == '500 Internal Server Error'


def test_not_found_has_its_own_type(fake, api):
    with pytest.raises(NotFoundError):
        api.pending_leave_count()


def test_transport_failure_is_a_network_error(fake, api):
    fake.add_error('GET', '/faculty-api/faculties', requests.ConnectionError('refused'))
    with pytest.raises(NetworkError) as info:
        api.faculties()
    assert info.value.message == GENERIC_FAILURE


def test_cancelled_request_is_never_sent(fake, api):
    token = CancellationToken()
    token.cancel()
    with pytest.raises(RequestCancelled):
        api.me(cancel=token)
    assert fake.calls == []


def test_faculty_update_uses_put(fake, api):
    fake.add('PUT', '/faculty-api/faculties/f1', {'message': 'Faculty saved'})
    assert api.update_faculty('f1', {'name': 'BCA'}) == 'Faculty saved'


def test_send_uses_default_message_for_empty_body(fake, api):
    fake.add('PATCH', '/leave/admin/l1/approve')
    assert api.approve_leave('l1') == 'Leave approved'
