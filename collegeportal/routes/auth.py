from flask import Blueprint, abort, current_app, redirect, render_template, request, url_for

from collegeportal.api import ApiError, HttpError
from collegeportal.api.client import extract_message
from collegeportal.auth_gate import PORTALS
from collegeportal.backend import get_api
from collegeportal.forms import ForgotPasswordForm, LoginForm, ResetPasswordForm
from collegeportal.notify import GENERIC_ERROR, toast, toast_error
from collegeportal.session_store import current_tokens

auth = Blueprint('auth', __name__)

LOGIN_FAILED = 'Login failed'


def _login(portal_name, title):
    portal = PORTALS[portal_name]
    form = LoginForm()
    error = None
    if form.validate_on_submit():
        try:
            result = get_api().login(form.email.data.strip(), form.password.data, portal.token_role)
        except HttpError as exc:
            error = extract_message(exc.payload, LOGIN_FAILED)
        except ApiError as exc:
            error = exc.message or GENERIC_ERROR
        else:
            if not result.token:
                error = result.message or LOGIN_FAILED
            elif result.user is not None and result.user.role not in portal.roles:
                error = 'This account cannot sign in here.'
            else:
                current_tokens().set_token(portal.token_role, result.token, persistent=form.remember.data)
                current_app.logger.info('%s signed in to the %s portal',
                                        result.user.email if result.user else form.email.data, portal.name)
                toast(result.message or 'Login successful')
                return render_template('auth/login_success.html',
                                       next_url=url_for(portal.home_endpoint),
                                       delay_ms=current_app.config['LOGIN_REDIRECT_DELAY_MS'])
    return render_template('auth/login.html', form=form, error=error, portal=portal, title=title)


@auth.route('/', methods=['GET', 'POST'])
def student_login():
    return _login('student', 'Student Login')


@auth.route('/teacher/login', methods=['GET', 'POST'])
def teacher_login():
    return _login('teacher', 'Teacher Login')


@auth.route('/admin_login', methods=['GET', 'POST'])
def admin_login():
    return _login('admin', 'Admin Login')


@auth.route('/logout/<portal_name>', methods=['POST'])
def logout(portal_name):
    portal = PORTALS.get(portal_name)
    if portal is None:
        abort(404)
    current_tokens().clear_token(portal.token_role)
    toast('You have been logged out.', 'info')
    return redirect(url_for(portal.login_endpoint))


@auth.route('/google-success')
def google_success():
    """Hand-off from the backend's Google OAuth callback."""
    token = request.args.get('token')
    role = request.args.get('role', 'student')
    portal = PORTALS.get('admin' if role == 'superadmin' else role)
    if not token or portal is None:
        toast('Google sign-in failed.', 'danger')
        return redirect(url_for('auth.student_login'))
    current_tokens().set_token(portal.token_role, token, persistent=True)
    toast('Login successful')
    return redirect(url_for(portal.home_endpoint))


@auth.route('/forgot-password', methods=['GET', 'POST'])
@auth.route('/teacher/forgot-password', methods=['GET', 'POST'], defaults={'role': 'teacher'})
def forgot_password(role=None):
    role = role or request.args.get('role', 'student')
    if role not in PORTALS:
        role = 'student'
    form = ForgotPasswordForm()
    if form.validate_on_submit():
        try:
            toast(get_api().forgot_password(form.email.data.strip(), role))
        except ApiError as exc:
            toast_error(exc)
        else:
            return redirect(url_for(PORTALS[role].login_endpoint))
    return render_template('auth/forgot_password.html', form=form, role=role)


@auth.route('/reset-password', methods=['GET', 'POST'])
def reset_password():
    form = ResetPasswordForm()
    if request.method == 'GET':
        form.token.data = request.args.get('token', '')
    if form.validate_on_submit():
        try:
            toast(get_api().reset_password(form.token.data, form.password.data))
        except ApiError as exc:
            toast_error(exc)
        else:
            return redirect(url_for('auth.student_login'))
    return render_template('auth/reset_password.html', form=form)

