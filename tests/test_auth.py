from itsdangerous import URLSafeSerializer

from tests.conftest import PROFILES


def student_dashboard_routes(backend):
    backend.add('GET', '/student/my-batch-semesters', {'courseInstances': []})
    backend.add('GET', '/leave/student/mine', {'items': []})


def test_no_token_redirects_to_portal_login(client, backend):
    res = client.get('/student/dashboard')
    assert res.status_code == 302
    assert res.headers['Location'].endswith('/')
    # no profile check without a token
    assert backend.calls_to('GET', '/userAuth/me') == []


def test_each_portal_redirects_to_its_own_login(client):
    assert client.get('/teacher/dashboard').headers['Location'].endswith('/teacher/login')
    assert client.get('/admin/dashboard').headers['Location'].endswith('/admin_login')


def test_invalid_token_is_cleared_then_redirects(client, backend):
    with client.session_transaction() as sess:
        sess['tokens'] = {'token_student': 'stale'}
    backend.add('GET', '/userAuth/me', {'message': 'Invalid token'}, status=401)

    res = client.get('/student/dashboard')

    assert res.status_code == 302
    assert backend.calls_to('GET', '/userAuth/me')[0].headers['Authorization'] == 'Bearer stale'
    with client.session_transaction() as sess:
        assert 'token_student' not in sess.get('tokens', {})


def test_wrong_role_is_rejected(client, backend):
    with client.session_transaction() as sess:
        sess['tokens'] = {'token_student': 'teacher-token'}
    backend.add('GET', '/userAuth/me', {'user': PROFILES['teacher']})

    res = client.get('/student/dashboard')

    assert res.status_code == 302
    with client.session_transaction() as sess:
        assert 'token_student' not in sess.get('tokens', {})


def test_valid_token_renders_dashboard(client, backend, sign_in):
    sign_in('student')
    student_dashboard_routes(backend)

    res = client.get('/student/dashboard')

    assert res.status_code == 200
    assert b'Welcome, sam' in res.data


def test_superadmin_uses_admin_portal(client, backend, sign_in):
    sign_in('superadmin')
    backend.add('GET', '/leave/admin/pending/count', {'count': 3})
    res = client.get('/admin/leave/pending-count', headers={'Accept': 'application/json'})
    assert res.status_code == 200
    assert res.get_json() == {'success': True, 'count': 3, 'label': '3'}


def test_json_request_without_token_gets_401(client):
    res = client.get('/admin/leave/pending-count', headers={'Accept': 'application/json'})
    assert res.status_code == 401
    assert res.get_json() == {'success': False, 'message': 'Authentication required'}


def test_student_login_remembers_token_and_redirects(app, client, backend):
    backend.add('POST', '/userAuth/login', {'message': 'Login successful', 'token': 'abc',
                                           'user': PROFILES['student']})

    res = client.post('/', data={'email': 'a@b.com', 'password': 'x', 'remember': 'y'})

    assert res.status_code == 200
    assert backend.calls_to('POST', '/userAuth/login')[0].json == {
        'email': 'a@b.com', 'password': 'x', 'role': 'student'}
    page = res.get_data(as_text=True)
    assert '/student/dashboard' in page
    assert 'setTimeout' in page and '900' in page

    cookie = client.get_cookie('remember_tokens')
    stored = URLSafeSerializer(app.config['SECRET_KEY'], salt='remember-tokens').loads(cookie.value)
    assert stored == {'token_student': 'abc'}


def test_login_without_remember_uses_session(client, backend):
    backend.add('POST', '/userAuth/login', {'token': 'abc', 'user': PROFILES['teacher']})

    client.post('/teacher/login', data={'email': 'tina@gpkmc.edu.np', 'password': 'x'})

    assert client.get_cookie('remember_tokens') is None
    with client.session_transaction() as sess:
        assert sess['tokens'] == {'token': 'abc'}


def test_login_failure_shows_backend_message(client, backend):
    backend.add('POST', '/userAuth/login', {'message': 'Invalid credentials'}, status=401)
    res = client.post('/', data={'email': 'a@b.com', 'password': 'bad'})
    assert res.status_code == 200
    assert b'Invalid credentials' in res.data


def test_login_failure_without_message(client, backend):
    backend.add('POST', '/userAuth/login', status=500, reason='Internal Server Error')
    res = client.post('/admin_login', data={'email': 'a@b.com', 'password': 'bad'})
    assert b'Login failed' in res.data


def test_logout_clears_only_that_portal(client, backend, sign_in):
    sign_in('student')
    sign_in('teacher', token='teacher-token')

    res = client.post('/logout/teacher')

    assert res.headers['Location'].endswith('/teacher/login')
    with client.session_transaction() as sess:
        assert sess['tokens'] == {'token_student': 'good-token'}


def test_google_hand_off_stores_token(client):
    res = client.get('/google-success?token=g-token&role=teacher')
    assert res.headers['Location'].endswith('/teacher/dashboard')
    assert client.get_cookie('remember_tokens') is not None


def test_remembered_token_opens_the_dashboard(client, backend):
    backend.add('POST', '/userAuth/login', {'token': 'abc', 'user': PROFILES['student']})
    backend.add('GET', '/userAuth/me', {'user': PROFILES['student']})
    student_dashboard_routes(backend)
    client.post('/', data={'email': 'a@b.com', 'password': 'x', 'remember': 'y'})
    with client.session_transaction() as sess:
        assert 'token_student' not in sess.get('tokens', {})

    res = client.get('/student/dashboard')

    assert res.status_code == 200
    assert backend.calls_to('GET', '/userAuth/me')[0].headers['Authorization'] == 'Bearer abc'


def test_google_hand_off_then_dashboard(client, backend):
    backend.add('GET', '/userAuth/me', {'user': PROFILES['teacher']})
    backend.add('GET', '/teacher-routes/my-course-instances', {'instances': []})
    backend.add('GET', '/leave/teacher/mine', {'items': []})
    client.get('/google-success?token=g-token&role=teacher')

    res = client.get('/teacher/dashboard')

    assert res.status_code == 200
    assert backend.calls_to('GET', '/userAuth/me')[0].headers['Authorization'] == 'Bearer g-token'


def test_token_cookie_is_not_flask_logins_remember_cookie(app):
    assert app.config['TOKEN_COOKIE_NAME'] != app.config.get('REMEMBER_COOKIE_NAME', 'remember_token')
