"""Toasts, JSON replies and confirmation dialogs shared by every screen."""
from flask import flash, jsonify, render_template, request

from collegeportal.forms import ConfirmForm

GENERIC_ERROR = 'Something went wrong. Please try again.'


def toast(message, category='success'):
    flash(message, category)


def toast_error(error):
    flash(getattr(error, 'message', None) or str(error) or GENERIC_ERROR, 'danger')


def wants_json():
    if request.is_json or request.headers.get('X-Requested-With') == 'XMLHttpRequest':
        return True
    return request.accept_mimetypes.best_match(['text/html', 'application/json']) == 'application/json'


def json_result(success, message=None, code=200, **extra):
    body = {'success': success}
    if message:
        body['message'] = message
    body.update(extra)
    return jsonify(body), code


def changed_fields(original, submitted):
    """The subset of ``submitted`` that differs from ``original``."""
    return {key: value for key, value in submitted.items() if original.get(key) != value}


def is_dirty(original, submitted):
    return bool(changed_fields(original, submitted))


class ConfirmDialog:
    """Gate for destructive or discard actions.

    ``confirmed`` is true only for a valid POST of the dialog form; anything
    else should answer with ``render()``.
    """

    def __init__(self, title, message, cancel_url, confirm_label='Confirm', danger=True, form=None, action=None):
        self.action = action
        self.title = title
        self.message = message
        self.cancel_url = cancel_url
        self.confirm_label = confirm_label
        self.danger = danger
        self.form = form if form is not None else ConfirmForm()
        self._confirmed = None

    @property
    def confirmed(self):
        if self._confirmed is None:
            self._confirmed = self.form.validate_on_submit()
        return self._confirmed

    def render(self, status=200):
        return render_template('confirm.html', dialog=self, form=self.form), status
