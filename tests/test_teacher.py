import pytest


@pytest.fixture
def teacher_client(client, sign_in):
    sign_in('teacher')
    return client


def test_quiz_payload_skips_blank_questions(teacher_client, backend):
    backend.add('POST', '/quizrouter', {'message': 'Quiz created'})

    res = teacher_client.post('/teacher/classes/ci1/quizzes/new', data={
        'title': ' Quiz 1 ', 'submit': 'Create quiz',
        'questions-0-text': 'What is SQL?', 'questions-0-options': 'A language, , A database',
        'questions-0-points': '2',
        'questions-1-text': '   ', 'questions-1-points': '1',
    })

    assert res.status_code == 302
    assert backend.calls_to('POST', '/quizrouter')[0].json == {
        'courseInstance': 'ci1', 'title': 'Quiz 1', 'description': '',
        'questions': [{'text': 'What is SQL?', 'options': ['A language', 'A database'], 'points': 2}],
    }


def test_quiz_without_questions_is_not_sent(teacher_client, backend):
    res = teacher_client.post('/teacher/classes/ci1/quizzes/new', data={'title': 'Empty', 'submit': 'Create quiz'})
    assert res.status_code == 200
    assert backend.calls_to('POST', '/quizrouter') == []


def test_add_question_grows_the_form(teacher_client, backend):
    res = teacher_client.post('/teacher/classes/ci1/quizzes/new', data={
        'title': 'Quiz', 'questions-0-text': 'Q1', 'add_question': 'y'})
    assert b'questions-1-text' in res.data
    assert backend.calls_to('POST', '/quizrouter') == []


def test_open_session_remembers_live_session(teacher_client, backend):
    backend.add('POST', '/attendance/sessions', {'sessionId': 'sess1'})

    res = teacher_client.post('/teacher/classes/ci1/attendance/open', data={})

    assert res.status_code == 302
    assert backend.calls_to('POST', '/attendance/sessions')[0].json == {'courseInstanceId': 'ci1', 'rotating': True}
    with teacher_client.session_transaction() as sess:
        assert sess['attendance_sessions'] == {'ci1': 'sess1'}


def test_open_session_for_a_past_date(teacher_client, backend):
    backend.add('POST', '/attendance/sessions', {'sessionId': 'sess2'})
    teacher_client.post('/teacher/classes/ci1/attendance/open', data={'for_date': '2025-03-04'})
    assert backend.calls_to('POST', '/attendance/sessions')[0].json == {
        'courseInstanceId': 'ci1', 'rotating': False, 'forDate': '2025-03-04', 'reuse': True}


def test_close_session_forgets_it(teacher_client, backend):
    backend.add('POST', '/attendance/sessions/sess1/close', {'message': 'Session closed'})
    with teacher_client.session_transaction() as sess:
        sess['attendance_sessions'] = {'ci1': 'sess1'}

    teacher_client.post('/teacher/classes/ci1/attendance/close', data={})

    assert len(backend.calls_to('POST', '/attendance/sessions/sess1/close')) == 1
    with teacher_client.session_transaction() as sess:
        assert sess['attendance_sessions'] == {}


def test_session_qr_is_a_png(teacher_client, backend):
    backend.add('GET', '/attendance/sessions/sess1/token', {'token': 'rotating-1'})

    res = teacher_client.get('/teacher/attendance/sessions/sess1/qr.png')

    assert res.status_code == 200
    assert res.mimetype == 'image/png'
    assert res.headers['Cache-Control'] == 'no-store'
    assert res.data.startswith(b'\x89PNG')


def test_mark_attendance_validates_status(teacher_client, backend):
    res = teacher_client.post('/teacher/attendance/sessions/sess1/mark', json={'studentId': 's1', 'status': 'gone'})
    assert res.status_code == 400
    assert backend.calls_to('POST', '/attendance/sessions/sess1/manual') == []


def test_mark_attendance(teacher_client, backend):
    backend.add('POST', '/attendance/sessions/sess1/manual', {'record': {'student': 's1', 'status': 'late'}})

    res = teacher_client.post('/teacher/attendance/sessions/sess1/mark', json={'studentId': 's1', 'status': 'late'})

    body = res.get_json()
    assert body['success'] is True
    assert body['message'] == 'Marked late'
    assert body['record']['status'] == 'late'
