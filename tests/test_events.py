import base64

import cv2
import numpy as np
import pytest

from collegeportal import events
from collegeportal.extensions import socketio
from collegeportal.services.attendance_scan import MISSING_AUTH, POINT_CAMERA
from collegeportal.services.leave_badge import PENDING_CHANGED, PENDING_COUNT, BadgePoller


class WatchedPoller:
    def __init__(self):
        self.triggered = 0

    def trigger(self):
        self.triggered += 1


@pytest.fixture(autouse=True)
def no_pollers(monkeypatch):
    monkeypatch.setattr(events, 'pollers', {})
    started = []
    monkeypatch.setattr(socketio, 'start_background_task', lambda target, *a, **kw: started.append(target))
    return started


def connect(app, client):
    return socketio.test_client(app, flask_test_client=client)


def received(sio, name):
    return [msg['args'][0] for msg in sio.get_received() if msg['name'] == name]


def test_subscribe_starts_a_poller(app, client, sign_in, no_pollers):
    sign_in('admin')
    sio = connect(app, client)

    sio.emit('leave:subscribe', {'role': 'teacher'})

    assert len(events.pollers) == 1
    poller = next(iter(events.pollers.values()))
    assert isinstance(poller, BadgePoller)
    assert poller.interval == app.config['LEAVE_BADGE_POLL_SECONDS']
    assert no_pollers == [poller.run]


def test_subscribe_without_admin_token_is_refused(app, client, no_pollers):
    sio = connect(app, client)

    sio.emit('leave:subscribe')

    assert events.pollers == {}
    assert no_pollers == []
    assert received(sio, PENDING_COUNT) == [{'success': False, 'message': 'Unauthorized access!'}]


def test_disconnect_stops_the_poller(app, client, sign_in):
    sign_in('admin')
    sio = connect(app, client)
    sio.emit('leave:subscribe')
    poller = next(iter(events.pollers.values()))

    sio.disconnect()

    assert poller.stopped
    assert events.pollers == {}


def test_anonymous_pending_changed_is_ignored(app, client, backend):
    watched = events.pollers['other'] = WatchedPoller()
    sio = connect(app, client)

    sio.emit(PENDING_CHANGED)

    assert watched.triggered == 0
    assert backend.calls_to('GET', '/userAuth/me') == []


def test_admin_pending_changed_wakes_pollers(app, client, sign_in):
    sign_in('admin')
    watched = events.pollers['other'] = WatchedPoller()
    sio = connect(app, client)

    sio.emit(PENDING_CHANGED)

    assert watched.triggered == 1


def test_frame_without_image(app, client):
    sio = connect(app, client)

    sio.emit('attendance:frame', {})

    assert received(sio, 'attendance:result') == [
        {'success': False, 'status': 'error', 'message': 'No image received'}]


def blank_frame():
    ok, buf = cv2.imencode('.png', np.full((120, 120, 3), 255, dtype=np.uint8))
    assert ok
    return base64.b64encode(buf.tobytes()).decode()


def test_frame_needs_a_student_token(app, client, backend):
    sio = connect(app, client)

    sio.emit('attendance:frame', {'image': blank_frame()})

    [result] = received(sio, 'attendance:result')
    assert result['status'] == 'error'
    assert result['message'] == MISSING_AUTH


def test_frame_without_qr_keeps_scanning(app, client, sign_in, backend):
    sign_in('student')
    sio = connect(app, client)

    sio.emit('attendance:frame', {'image': blank_frame()})

    [result] = received(sio, 'attendance:result')
    assert result == {'success': False, 'status': 'scanning', 'message': POINT_CAMERA, 'record': None}
    assert backend.calls_to('POST', '/attendance/scan') == []


@pytest.mark.parametrize('payload', [{'image': 42}, 'not-a-dict'])
def test_frame_with_unusable_payload(app, client, payload):
    sio = connect(app, client)

    sio.emit('attendance:frame', payload)

    assert received(sio, 'attendance:result')[0]['message'] == 'No image received'
