from datetime import date, datetime

from flask import Blueprint, Response, redirect, render_template, request, send_file, session, url_for
from flask_login import login_required

from collegeportal.api import ApiError
from collegeportal.backend import get_api
from collegeportal.decorators import teacher_required
from collegeportal.forms import (
    AnnouncementForm, AssignmentForm, ConfirmForm, GradeForm, LeaveRequestForm, MaterialForm, QuizForm,
)
from collegeportal.notify import ConfirmDialog, json_result, toast, toast_error
from collegeportal.routes import common
from collegeportal.services.attendance_scan import qr_png
from collegeportal.services.grades import GRADE_FILTERS, build_gradebook, grade_error, gradebook_csv

teacher = Blueprint('teacher', __name__)

ATTENDANCE_STATUSES = ('present', 'absent', 'late')


@teacher.before_request
@login_required
@teacher_required
def require_teacher():
    pass


def _api():
    return get_api('teacher')


def _lines(text):
    return [line.strip() for line in (text or '').splitlines() if line.strip()]


def _instance(instance_id):
    """The teacher's own course instance, or None."""
    for ci in common.load(_api().my_course_instances):
        if ci.id == instance_id:
            return ci
    return None


@teacher.route('/dashboard')
def dashboard():
    api = _api()
    return render_template('teacher/dashboard.html',
                           instances=common.load(api.my_course_instances),
                           leaves=common.load(lambda: api.my_leaves('teacher')),
                           form=LeaveRequestForm(), confirm_form=ConfirmForm())


@teacher.route('/leave', methods=['POST'])
def request_leave():
    return common.request_leave('teacher')


@teacher.route('/leave/<leave_id>/cancel', methods=['GET', 'POST'])
def cancel_leave(leave_id):
    return common.cancel_leave('teacher', leave_id)


# --- class page -------------------------------------------------------------

@teacher.route('/classes/<instance_id>', methods=['GET', 'POST'])
def class_feed(instance_id):
    api = _api()
    instance = _instance(instance_id)
    if instance is None:
        toast('Class not found.', 'warning')
        return redirect(url_for('teacher.dashboard'))
    form = AnnouncementForm()
    if form.validate_on_submit():
        try:
            toast(api.post_course_announcement(instance_id, {'title': form.title.data.strip(),
                                                             'content': form.content.data.strip()}))
        except ApiError as exc:
            toast_error(exc)
        else:
            return redirect(url_for('teacher.class_feed', instance_id=instance_id))
    return render_template('teacher/class_feed.html', instance=instance, form=form,
                           announcements=common.load(lambda: api.course_feed(instance_id)))


@teacher.route('/classes/<instance_id>/materials', methods=['GET', 'POST'])
def materials(instance_id):
    api = _api()
    form = MaterialForm()
    if form.validate_on_submit():
        try:
            links = _lines(form.links.data)
            toast(api.post_material(instance_id, form.content.data.strip(), links, form.files.data or ()))
        except ApiError as exc:
            toast_error(exc)
        else:
            return redirect(url_for('teacher.materials', instance_id=instance_id))
    return render_template('teacher/materials.html', instance_id=instance_id, form=form,
                           materials=common.load(lambda: api.course_materials(instance_id)))


@teacher.route('/classes/<instance_id>/materials/<material_id>/delete', methods=['GET', 'POST'])
def delete_material(instance_id, material_id):
    done = url_for('teacher.materials', instance_id=instance_id)
    dialog = ConfirmDialog('Delete material', 'This material and its files will be removed.', done,
                           confirm_label='Delete')
    if not dialog.confirmed:
        return dialog.render()
    try:
        toast(_api().delete_material(material_id))
    except ApiError as exc:
        toast_error(exc)
    return redirect(done)


# --- quizzes ----------------------------------------------------------------

@teacher.route('/classes/<instance_id>/quizzes')
def quizzes(instance_id):
    return render_template('teacher/quizzes.html', instance_id=instance_id,
                           quizzes=common.load(lambda: _api().quizzes(instance_id)))


def _quiz_payload(instance_id, form):
    questions = []
    for entry in form.questions.entries:
        question = entry.form
        text = (question.text.data or '').strip()
        if not text:
            continue
        options = [opt.strip() for opt in (question.options.data or '').split(',') if opt.strip()]
        questions.append({'text': text, 'options': options, 'points': question.points.data or 0})
    payload = {
        'courseInstance': instance_id,
        'title': form.title.data.strip(),
        'description': (form.description.data or '').strip(),
        'questions': questions,
    }
    if form.due_date.data:
        payload['dueDate'] = form.due_date.data.isoformat()
    return payload


@teacher.route('/classes/<instance_id>/quizzes/new', methods=['GET', 'POST'])
def create_quiz(instance_id):
    form = QuizForm()
    if request.form.get('add_question'):
        form.questions.append_entry()
    elif form.validate_on_submit():
        payload = _quiz_payload(instance_id, form)
        if not payload['questions']:
            toast('Add at least one question.', 'warning')
        else:
            try:
                toast(_api().create_quiz(payload))
            except ApiError as exc:
                toast_error(exc)
            else:
                return redirect(url_for('teacher.quizzes', instance_id=instance_id))
    return render_template('teacher/quiz_form.html', form=form, instance_id=instance_id)


@teacher.route('/classes/<instance_id>/quizzes/<quiz_id>')
def quiz_detail(instance_id, quiz_id):
    api = _api()
    try:
        quiz = api.quiz(quiz_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('teacher.quizzes', instance_id=instance_id))
    return render_template('teacher/quiz_detail.html', quiz=quiz, instance_id=instance_id,
                           submissions=common.load(lambda: api.quiz_submissions(quiz_id)),
                           stats=common.load(lambda: api.quiz_stats(quiz_id), None))


# --- assignments ------------------------------------------------------------

@teacher.route('/classes/<instance_id>/assignments', methods=['GET', 'POST'])
def assignments(instance_id):
    api = _api()
    form = AssignmentForm()
    if form.validate_on_submit():
        payload = {
            'title': form.title.data.strip(),
            'content': (form.content.data or '').strip(),
            'points': str(form.points.data),
            'dueDate': form.due_date.data.isoformat(),
        }
        try:
            toast(api.create_assignment(instance_id, payload, _lines(form.links.data), form.documents.data or ()))
        except ApiError as exc:
            toast_error(exc)
        else:
            return redirect(url_for('teacher.assignments', instance_id=instance_id))
    return render_template('teacher/assignments.html', instance_id=instance_id, form=form,
                           assignments=common.load(lambda: api.course_assignments(instance_id)))


def _next_ungraded(submissions, after_id):
    for sub in submissions:
        if sub.id != after_id and sub.status == 'submitted' and sub.grade is None:
            return sub.id
    return after_id


@teacher.route('/classes/<instance_id>/assignments/<assignment_id>', methods=['GET', 'POST'])
def assignment_detail(instance_id, assignment_id):
    api = _api()
    try:
        listing = api.assignment_submissions(assignment_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('teacher.assignments', instance_id=instance_id))

    form = GradeForm()
    if form.validate_on_submit():
        error = grade_error(form.grade.data, listing.assignment.max_points)
        if error:
            form.grade.errors.append(error)
        else:
            submission_id = form.submission_id.data
            try:
                toast(api.grade_submission(submission_id, form.grade.data, (form.feedback.data or '').strip()))
            except ApiError as exc:
                toast_error(exc)
            else:
                return redirect(url_for('teacher.assignment_detail', instance_id=instance_id,
                                        assignment_id=assignment_id,
                                        selected=_next_ungraded(listing.submissions, submission_id)))

    submissions = listing.submissions
    selected_id = form.submission_id.data or request.args.get('selected')
    selected = next((sub for sub in submissions if sub.id == selected_id), submissions[0] if submissions else None)
    if selected is not None and not form.is_submitted():
        form.submission_id.data = selected.id
        form.grade.data = selected.grade
        form.feedback.data = selected.feedback
    return render_template('teacher/assignment_detail.html', instance_id=instance_id, listing=listing,
                           selected=selected, form=form, confirm_form=ConfirmForm())


@teacher.route('/classes/<instance_id>/assignments/<assignment_id>/accepting', methods=['POST'])
def assignment_accepting(instance_id, assignment_id):
    done = url_for('teacher.assignment_detail', instance_id=instance_id, assignment_id=assignment_id)
    if not ConfirmForm().validate_on_submit():
        return redirect(done)
    action = request.form.get('action')
    if action in ('open', 'close'):
        change = {'acceptingSubmissions': action == 'open'}
    elif action == 'close_at':
        raw = request.form.get('close_at') or ''
        try:
            close_at = datetime.strptime(raw, '%Y-%m-%dT%H:%M') if raw else None
        except ValueError:
            toast('Invalid close date.', 'danger')
            return redirect(done)
        change = {'closeAt': close_at.isoformat() if close_at else None}
    else:
        toast('Unknown action.', 'warning')
        return redirect(done)
    try:
        toast(_api().set_accepting(assignment_id, **change))
    except ApiError as exc:
        toast_error(exc)
    return redirect(done)


@teacher.route('/classes/<instance_id>/assignments/<assignment_id>/close', methods=['GET', 'POST'])
def close_assignment(instance_id, assignment_id):
    done = url_for('teacher.assignment_detail', instance_id=instance_id, assignment_id=assignment_id)
    dialog = ConfirmDialog('Close submissions', 'Close submissions immediately? This will prevent any new '
                           'submissions.', done, confirm_label='Close now')
    if not dialog.confirmed:
        return dialog.render()
    try:
        toast(_api().set_accepting(assignment_id, closeNow=True))
    except ApiError as exc:
        toast_error(exc)
    return redirect(done)


# --- grades and people ------------------------------------------------------

def _gradebook_view(book):
    return build_gradebook(book, request.args.get('filter', 'all'), request.args.get('q', ''))


@teacher.route('/classes/<instance_id>/grades')
def grades(instance_id):
    book = common.load(lambda: _api().gradebook(instance_id), None)
    view = _gradebook_view(book) if book is not None else None
    return render_template('teacher/grades.html', instance_id=instance_id, view=view, filters=GRADE_FILTERS,
                           grade_filter=request.args.get('filter', 'all'), search=request.args.get('q', ''))


@teacher.route('/classes/<instance_id>/grades.csv')
def grades_csv(instance_id):
    try:
        book = _api().gradebook(instance_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('teacher.grades', instance_id=instance_id))
    return Response(gradebook_csv(_gradebook_view(book)), mimetype='text/csv',
                    headers={'Content-Disposition': 'attachment; filename=gradebook.csv'})


@teacher.route('/classes/<instance_id>/people')
def people(instance_id):
    instance = common.load(lambda: _api().course_instance(instance_id), None)
    if instance is None:
        return redirect(url_for('teacher.dashboard'))
    return render_template('teacher/people.html', instance=instance)


# --- attendance -------------------------------------------------------------

def _live_sessions():
    return session.setdefault('attendance_sessions', {})


@teacher.route('/classes/<instance_id>/attendance')
def attendance(instance_id):
    today = date.today()
    year = request.args.get('year', today.year, type=int)
    month = request.args.get('month', today.month, type=int)
    if not 1 <= month <= 12:
        month = today.month
    report = common.load(lambda: _api().attendance_month(instance_id, year, month), None)
    return render_template('teacher/attendance.html', instance_id=instance_id, report=report,
                           year=year, month=month, session_id=_live_sessions().get(instance_id),
                           statuses=ATTENDANCE_STATUSES, form=ConfirmForm())


@teacher.route('/classes/<instance_id>/attendance/open', methods=['POST'])
def open_session(instance_id):
    if ConfirmForm().validate_on_submit():
        for_date = request.form.get('for_date')
        try:
            live = _api().open_attendance_session(instance_id, date.fromisoformat(for_date) if for_date else None)
        except ValueError:
            toast('Invalid date.', 'danger')
        except ApiError as exc:
            toast_error(exc)
        else:
            _live_sessions()[instance_id] = live.session_id
            session.modified = True
            toast('Attendance session opened.')
    return redirect(url_for('teacher.attendance', instance_id=instance_id))


@teacher.route('/classes/<instance_id>/attendance/close', methods=['POST'])
def close_session(instance_id):
    session_id = _live_sessions().get(instance_id)
    if session_id and ConfirmForm().validate_on_submit():
        try:
            toast(_api().close_attendance_session(session_id))
        except ApiError as exc:
            toast_error(exc)
        else:
            _live_sessions().pop(instance_id, None)
            session.modified = True
    return redirect(url_for('teacher.attendance', instance_id=instance_id))


@teacher.route('/attendance/sessions/<session_id>/qr.png')
def session_qr(session_id):
    try:
        token = _api().attendance_session_token(session_id)
    except ApiError as exc:
        return json_result(False, exc.message, getattr(exc, 'status', 502))
    response = send_file(qr_png(token.token), mimetype='image/png')
    response.headers['Cache-Control'] = 'no-store'
    return response


@teacher.route('/attendance/sessions/<session_id>/mark', methods=['POST'])
def mark_attendance(session_id):
    data = request.get_json(silent=True) or request.form
    student_id = data.get('studentId')
    status = data.get('status')
    if not student_id or status not in ATTENDANCE_STATUSES:
        return json_result(False, 'studentId and a valid status are required', 400)
    try:
        record = _api().mark_attendance(session_id, student_id, status)
    except ApiError as exc:
        return json_result(False, exc.message, getattr(exc, 'status', 502))
    return json_result(True, f'Marked {status}', record=record.model_dump(mode='json'))


# --- notifications and profile ----------------------------------------------

@teacher.route('/notifications')
def notifications():
    return common.notifications('teacher')


@teacher.route('/notifications/<notification_id>/read', methods=['POST'])
def mark_notification_read(notification_id):
    return common.notification_action('teacher', 'read', notification_id)


@teacher.route('/notifications/<notification_id>/archive', methods=['POST'])
def archive_notification(notification_id):
    return common.notification_action('teacher', 'archive', notification_id)


@teacher.route('/notifications/read-all', methods=['POST'])
def mark_all_notifications_read():
    return common.notification_action('teacher', 'read-all')


@teacher.route('/profile', methods=['GET', 'POST'])
def profile():
    return common.profile('teacher')
