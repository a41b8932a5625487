from flask import g, redirect, request, url_for
from flask_login import UserMixin

from collegeportal.auth_gate import PORTALS, AuthGate, GateState
from collegeportal.backend import get_backend
from collegeportal.extensions import login_manager
from collegeportal.notify import json_result, wants_json
from collegeportal.session_store import current_tokens


class User(UserMixin):
    def __init__(self, id, username, email, role, portal):
        self.id = id  # backend user _id
        self.username = username
        self.email = email
        self.role = role  # 'student', 'teacher', 'admin' or 'superadmin'
        self.portal = portal  # portal whose token authenticated this request

    @property
    def name(self):
        return self.username

    @classmethod
    def from_profile(cls, profile, portal):
        return cls(profile.id, profile.username, profile.email, profile.role, portal)


@login_manager.request_loader
def load_portal_user(req):
    portal = PORTALS.get(req.blueprint)
    if portal is None:
        return None
    gate = AuthGate(portal, current_tokens(), get_backend())
    g.auth_gate = gate
    if gate.check() is GateState.AUTHENTICATED:
        return User.from_profile(gate.profile, portal.name)
    return None


@login_manager.unauthorized_handler
def redirect_to_login():
    if wants_json():
        return json_result(False, 'Authentication required', 401)
    portal = PORTALS.get(request.blueprint, PORTALS['student'])
    return redirect(url_for(portal.login_endpoint))
