from flask import Blueprint, redirect, render_template, request, url_for
from flask_login import login_required

from collegeportal.api import ApiError
from collegeportal.backend import get_api
from collegeportal.decorators import student_required
from collegeportal.forms import ConfirmForm, LeaveRequestForm, SubmissionForm
from collegeportal.notify import json_result, toast, toast_error
from collegeportal.routes import common
from collegeportal.services.attendance_scan import POINT_CAMERA, ScanStatus, scan_frame, submit_token
from collegeportal.services.grades import MY_GRADE_SORTS, MY_GRADE_STATUSES, my_grade_rows, overall_percent

student = Blueprint('student', __name__)


@student.before_request
@login_required
@student_required
def require_student():
    pass


def _api():
    return get_api('student')


@student.route('/dashboard')
def dashboard():
    api = _api()
    return render_template('student/dashboard.html',
                           classes=common.load(api.my_batch_semesters),
                           leaves=common.load(lambda: api.my_leaves('student')),
                           form=LeaveRequestForm(), confirm_form=ConfirmForm())


@student.route('/leave', methods=['POST'])
def request_leave():
    return common.request_leave('student')


@student.route('/leave/<leave_id>/cancel', methods=['GET', 'POST'])
def cancel_leave(leave_id):
    return common.cancel_leave('student', leave_id)


# --- class page -------------------------------------------------------------

@student.route('/classes/<instance_id>')
def class_feed(instance_id):
    return render_template('student/class_feed.html', instance_id=instance_id,
                           announcements=common.load(lambda: _api().course_feed(instance_id)))


@student.route('/classes/<instance_id>/materials')
def materials(instance_id):
    return render_template('student/materials.html', instance_id=instance_id,
                           materials=common.load(lambda: _api().student_materials(instance_id)))


@student.route('/classes/<instance_id>/quizzes')
def quizzes(instance_id):
    return render_template('student/quizzes.html', instance_id=instance_id,
                           quizzes=common.load(lambda: _api().quizzes(instance_id)))


@student.route('/classes/<instance_id>/quizzes/<quiz_id>', methods=['GET', 'POST'])
def take_quiz(instance_id, quiz_id):
    api = _api()
    try:
        quiz = api.quiz(quiz_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('student.quizzes', instance_id=instance_id))
    form = ConfirmForm()
    if form.validate_on_submit():
        answers = [{'questionId': q.id, 'answer': request.form.get(f'answer-{q.id}', '')} for q in quiz.questions]
        try:
            toast(api.submit_quiz(quiz_id, answers))
        except ApiError as exc:
            toast_error(exc)
        else:
            return redirect(url_for('student.quizzes', instance_id=instance_id))
    return render_template('student/quiz.html', quiz=quiz, form=form, instance_id=instance_id)


# --- assignments and grades -------------------------------------------------

@student.route('/classes/<instance_id>/assignments')
def assignments(instance_id):
    return render_template('student/assignments.html', instance_id=instance_id,
                           assignments=common.load(lambda: _api().student_assignments(instance_id)))


@student.route('/classes/<instance_id>/assignments/<assignment_id>', methods=['GET', 'POST'])
def assignment(instance_id, assignment_id):
    api = _api()
    try:
        item = api.assignment(assignment_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('student.assignments', instance_id=instance_id))
    form = SubmissionForm()
    if form.validate_on_submit():
        files = [f for f in form.files.data or () if f and f.filename]
        if not item.accepting_submissions:
            toast('This assignment is no longer accepting submissions.', 'warning')
        elif not files:
            toast('Attach at least one file.', 'warning')
        else:
            try:
                toast(api.submit_assignment(assignment_id, files))
            except ApiError as exc:
                toast_error(exc)
            else:
                return redirect(url_for('student.assignment', instance_id=instance_id, assignment_id=assignment_id))
    return render_template('student/assignment.html', instance_id=instance_id, assignment=item, form=form,
                           submission=common.load(lambda: api.my_submission(assignment_id), None))


@student.route('/classes/<instance_id>/grades')
def grades(instance_id):
    status = request.args.get('status', 'all')
    sort = request.args.get('sort', 'due')
    data = common.load(lambda: _api().my_grades(instance_id), None)
    return render_template('student/grades.html', instance_id=instance_id, status=status, sort=sort,
                           statuses=MY_GRADE_STATUSES, sorts=MY_GRADE_SORTS,
                           rows=my_grade_rows(data, status, sort) if data is not None else [],
                           overall=overall_percent(data) if data is not None else None)


# --- attendance scanner -----------------------------------------------------

@student.route('/attendance')
def attendance_scanner():
    return render_template('student/scanner.html', idle_message=POINT_CAMERA)


@student.route('/attendance/scan', methods=['POST'])
def scan_attendance():
    """Accepts either a decoded QR ``token`` or a camera frame ``image``."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    api = _api()
    qr_token = data.get('token')
    if isinstance(qr_token, str) and qr_token.strip():
        outcome = submit_token(api, qr_token.strip())
    elif isinstance(data.get('image'), str) and data['image']:
        outcome = scan_frame(api, data['image'])
    else:
        return json_result(False, 'token or image is required', 400, status=ScanStatus.ERROR.value)
    body = outcome.as_dict()
    success = body.pop('success')
    message = body.pop('message')
    code = 200 if outcome.status is not ScanStatus.ERROR else 400
    if success:
        toast(message)
    return json_result(success, message, code, **body)


# --- notifications and profile ----------------------------------------------

@student.route('/notifications')
def notifications():
    return common.notifications('student')


@student.route('/notifications/<notification_id>/read', methods=['POST'])
def mark_notification_read(notification_id):
    return common.notification_action('student', 'read', notification_id)


@student.route('/notifications/<notification_id>/archive', methods=['POST'])
def archive_notification(notification_id):
    return common.notification_action('student', 'archive', notification_id)


@student.route('/notifications/read-all', methods=['POST'])
def mark_all_notifications_read():
    return common.notification_action('student', 'read-all')


@student.route('/profile', methods=['GET', 'POST'])
def profile():
    return common.profile('student')
