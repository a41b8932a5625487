import logging

from flask import current_app, request
from flask_socketio import emit

from collegeportal.auth_gate import PORTALS, AuthGate, GateState
from collegeportal.backend import get_api, get_backend
from collegeportal.extensions import socketio
from collegeportal.services.attendance_scan import scan_frame
from collegeportal.services.leave_badge import PENDING_CHANGED, PENDING_COUNT, BadgePoller, fetch_pending_count
from collegeportal.session_store import current_tokens

log = logging.getLogger(__name__)

# One poller per subscribed Socket.IO connection, keyed by request.sid.
pollers = {}


def _gate(portal_name):
    gate = AuthGate(PORTALS[portal_name], current_tokens(), get_backend())
    return gate.check() is GateState.AUTHENTICATED


@socketio.on('leave:subscribe')
def subscribe_pending_leaves(data=None):
    if not _gate('admin'):
        emit(PENDING_COUNT, {'success': False, 'message': 'Unauthorized access!'})
        return

    sid = request.sid
    role = data.get('role', 'all') if isinstance(data, dict) else 'all'
    api = get_api('admin')
    config = current_app.config

    def publish(count, label):
        socketio.emit(PENDING_COUNT, {'count': count, 'label': label, 'role': role}, to=sid)

    old = pollers.pop(sid, None)
    if old is not None:
        old.stop()
    poller = BadgePoller(
        lambda cancel: fetch_pending_count(api, role, cancel=cancel),
        publish,
        interval=config['LEAVE_BADGE_POLL_SECONDS'],
        maximum=config['LEAVE_BADGE_MAX'],
    )
    pollers[sid] = poller
    socketio.start_background_task(poller.run)


@socketio.on(PENDING_CHANGED)
def pending_changed(data=None):
    if not _gate('admin'):
        return
    notify_pending_changed()


@socketio.on('disconnect')
def handle_disconnect(*args):
    poller = pollers.pop(request.sid, None)
    if poller is not None:
        poller.stop()


@socketio.on('attendance:frame')
def handle_attendance_frame(data):
    image_data = data.get('image') if isinstance(data, dict) else None
    if not isinstance(image_data, str) or not image_data:
        emit('attendance:result', {'success': False, 'status': 'error', 'message': 'No image received'})
        return
    outcome = scan_frame(get_api('student'), image_data)
    emit('attendance:result', outcome.as_dict())


def notify_pending_changed():
    """Refetch every live badge now instead of waiting for the next tick."""
    for poller in list(pollers.values()):
        poller.trigger()
