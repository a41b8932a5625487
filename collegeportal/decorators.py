from functools import wraps

from flask import redirect, url_for
from flask_login import current_user

from collegeportal.auth_gate import PORTALS
from collegeportal.notify import json_result, toast, wants_json


def role_required(*roles):
    """
    Decorator that restricts access to users with the specified role(s).
    Usage: @role_required('admin') or @role_required('admin', 'superadmin')
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if current_user.role not in roles:
                if wants_json():
                    return json_result(False, 'Unauthorized access!', 403)
                toast('You do not have permission to access this page.', 'danger')
                return redirect(url_for(PORTALS[current_user.portal].home_endpoint))
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def admin_required(f):
    """Restricts access to admin and superadmin users."""
    return role_required('admin', 'superadmin')(f)


def teacher_required(f):
    """Restricts access to teacher users only."""
    return role_required('teacher')(f)


def student_required(f):
    """Restricts access to student users only."""
    return role_required('student')(f)
