"""Screens the teacher and student portals share: own leave, notifications, profile."""
from flask import redirect, render_template, request, url_for

from collegeportal.api import ApiError
from collegeportal.backend import get_api
from collegeportal.forms import ChangePasswordForm, ConfirmForm, LeaveRequestForm
from collegeportal.notify import ConfirmDialog, json_result, toast, toast_error, wants_json
from collegeportal.services.leave import request_payload


def load(call, default=()):
    try:
        return call()
    except ApiError as exc:
        toast_error(exc)
        return default


def request_leave(role):
    form = LeaveRequestForm()
    if form.validate_on_submit():
        try:
            toast(get_api(role).request_leave(role, request_payload(form)))
        except ApiError as exc:
            toast_error(exc)
    else:
        for errors in form.errors.values():
            toast(errors[0], 'danger')
    return redirect(url_for(f'{role}.dashboard'))


def cancel_leave(role, leave_id):
    done = url_for(f'{role}.dashboard')
    dialog = ConfirmDialog('Cancel leave request', 'The request will be withdrawn.', done,
                           confirm_label='Cancel request')
    if not dialog.confirmed:
        return dialog.render()
    try:
        toast(get_api(role).cancel_leave(role, leave_id))
    except ApiError as exc:
        toast_error(exc)
    return redirect(done)


def notifications(role):
    instance_id = request.args.get('courseInstance') or None
    items = load(lambda: get_api(role).notifications(instance_id))
    return render_template('notifications.html', notifications=items, portal=role,
                           instance_id=instance_id, form=ConfirmForm())


def notification_action(role, action, notification_id=None):
    api = get_api(role)
    if ConfirmForm().validate_on_submit():
        try:
            if action == 'read':
                message = api.mark_notification_read(notification_id)
            elif action == 'archive':
                message = api.archive_notification(notification_id)
            else:
                message = api.mark_all_notifications_read(request.args.get('courseInstance') or None)
        except ApiError as exc:
            if wants_json():
                return json_result(False, exc.message, getattr(exc, 'status', 502))
            toast_error(exc)
        else:
            if wants_json():
                return json_result(True, message)
            toast(message)
    return redirect(url_for(f'{role}.notifications', courseInstance=request.args.get('courseInstance')))


def profile(role):
    form = ChangePasswordForm()
    if form.validate_on_submit():
        try:
            toast(get_api(role).change_password(form.current_password.data, form.new_password.data))
        except ApiError as exc:
            toast_error(exc)
        else:
            return redirect(url_for(f'{role}.profile'))
    return render_template('profile.html', form=form, portal=role)
