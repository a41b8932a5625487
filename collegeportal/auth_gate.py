"""Session check that guards each portal.

A gate starts in ``checking``. With no stored token it goes straight to
``redirecting``; otherwise it asks the backend who the token belongs to.
Any failure clears the token and ends in ``redirecting``. There is no
retry: one failed check logs the user out of that portal.
"""
import logging
from dataclasses import dataclass
from enum import Enum

from collegeportal.api import ApiError, PortalApi

log = logging.getLogger(__name__)


class GateState(str, Enum):
    CHECKING = 'checking'
    AUTHENTICATED = 'authenticated'
    REDIRECTING = 'redirecting'


@dataclass(frozen=True)
class Portal:
    name: str
    token_role: str
    roles: tuple
    login_endpoint: str
    home_endpoint: str


PORTALS = {
    'admin': Portal('admin', 'admin', ('admin', 'superadmin'), 'auth.admin_login', 'admin.dashboard'),
    'teacher': Portal('teacher', 'teacher', ('teacher',), 'auth.teacher_login', 'teacher.dashboard'),
    'student': Portal('student', 'student', ('student',), 'auth.student_login', 'student.dashboard'),
}


class AuthGate:
    def __init__(self, portal, tokens, client):
        self.portal = portal
        self.tokens = tokens
        self.client = client
        self.state = GateState.CHECKING
        self.profile = None

    def check(self):
        token = self.tokens.get_token(self.portal.token_role)
        if not token:
            self.state = GateState.REDIRECTING
            return self.state

        try:
            profile = PortalApi(self.client, token).me()
        except ApiError as exc:
            log.info('%s session rejected: %s', self.portal.name, exc.message)
            return self._reject()

        if profile.role not in self.portal.roles:
            log.info('%s session belongs to a %s account', self.portal.name, profile.role)
            return self._reject()

        self.profile = profile
        self.state = GateState.AUTHENTICATED
        return self.state

    def _reject(self):
        self.tokens.clear_token(self.portal.token_role)
        self.state = GateState.REDIRECTING
        return self.state
