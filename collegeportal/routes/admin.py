from flask import Blueprint, Response, current_app, redirect, render_template, request, url_for
from flask_login import login_required

from collegeportal.api import ApiError, HttpError, NotFoundError
from collegeportal.backend import get_api
from collegeportal.decorators import admin_required
from collegeportal.events import notify_pending_changed
from collegeportal.forms import (
    AnnouncementForm, BatchForm, BatchPeriodForm, BulkUserForm, ConfirmForm, CourseForm, CourseInstanceEditForm,
    CourseInstanceForm, FacultyForm, RejectLeaveForm, ScheduleForm, SemesterForm, UserEditForm, form_payload,
)
from collegeportal.notify import ConfirmDialog, changed_fields, json_result, toast, toast_error, wants_json
from collegeportal.services import bulk_users, leave as leave_service, schedule as scheduling
from collegeportal.services.dashboard import load_dashboard
from collegeportal.services.leave_badge import badge_label, fetch_pending_count

admin = Blueprint('admin', __name__)


@admin.before_request
@login_required
@admin_required
def require_admin():
    pass


def _api():
    return get_api('admin')


def _load(call, default=()):
    """Run a list fetch; on failure toast the error and render ``default``."""
    try:
        return call()
    except ApiError as exc:
        toast_error(exc)
        return default


def _choices(items, label=lambda item: item.name):
    return [(item.id, label(item)) for item in items]


def _confirm(title, message, cancel_url, action, confirm_label='Delete'):
    dialog = ConfirmDialog(title, message, cancel_url, confirm_label=confirm_label)
    if not dialog.confirmed:
        return dialog.render()
    try:
        toast(action())
    except ApiError as exc:
        toast_error(exc)
    return redirect(cancel_url)


def _save(form, action, done_url, template, **context):
    """Shared create/edit flow: validate, send, toast and go back to the list."""
    if form.validate_on_submit():
        try:
            toast(action(form_payload(form)))
        except ApiError as exc:
            toast_error(exc)
        else:
            return redirect(done_url)
    return render_template(template, form=form, **context)


# --- dashboard --------------------------------------------------------------

@admin.route('/dashboard')
def dashboard():
    try:
        data = load_dashboard(_api())
    except ApiError as exc:
        toast_error(exc)
        data = None
    return render_template('admin/dashboard.html', data=data)


@admin.route('/dashboard/students-by-batch')
def students_by_batch():
    faculty_id = request.args.get('facultyId')
    if not faculty_id:
        return json_result(False, 'facultyId is required', 400)
    try:
        items = _api().students_by_batch(faculty_id)
    except ApiError as exc:
        return json_result(False, exc.message, getattr(exc, 'status', 502))
    return json_result(True, items=[item.model_dump(mode='json') for item in items])


# --- faculties --------------------------------------------------------------

@admin.route('/faculties')
def faculties():
    return render_template('admin/faculties.html', faculties=_load(_api().faculties))


@admin.route('/faculties/new', methods=['GET', 'POST'])
def create_faculty():
    return _save(FacultyForm(), _api().create_faculty, url_for('admin.faculties'),
                 'form.html', title='New Faculty', cancel_url=url_for('admin.faculties'))


@admin.route('/faculties/<faculty_id>/edit', methods=['GET', 'POST'])
def edit_faculty(faculty_id):
    api = _api()
    try:
        faculty = api.faculty(faculty_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('admin.faculties'))
    form = FacultyForm(obj=faculty)
    return _save(form, lambda payload: api.update_faculty(faculty_id, payload), url_for('admin.faculties'),
                 'form.html', title=f'Edit {faculty.name}', cancel_url=url_for('admin.faculties'))


@admin.route('/faculties/<faculty_id>/delete', methods=['GET', 'POST'])
def delete_faculty(faculty_id):
    return _confirm('Delete faculty', 'This faculty will be permanently removed.', url_for('admin.faculties'),
                    lambda: _api().delete_faculty(faculty_id))


# --- batches and batch periods ----------------------------------------------

@admin.route('/batches')
def batches():
    api = _api()
    faculty = request.args.get('faculty') or None
    return render_template('admin/batches.html', batches=_load(lambda: api.batches(faculty)),
                           faculties=_load(api.faculties), faculty=faculty)


def _batch_form(api, batch=None):
    form = BatchForm(obj=batch)
    form.faculty.choices = _choices(_load(api.faculties))
    if batch is not None and request.method == 'GET' and batch.faculty:
        form.faculty.data = batch.faculty.id
    return form


@admin.route('/batches/new', methods=['GET', 'POST'])
def create_batch():
    api = _api()
    return _save(_batch_form(api), api.create_batch, url_for('admin.batches'),
                 'form.html', title='New Batch', cancel_url=url_for('admin.batches'))


@admin.route('/batches/<batch_id>/edit', methods=['GET', 'POST'])
def edit_batch(batch_id):
    api = _api()
    try:
        batch = api.batch(batch_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('admin.batches'))
    return _save(_batch_form(api, batch), lambda payload: api.update_batch(batch_id, payload),
                 url_for('admin.batches'), 'form.html', title=f'Edit {batch.batchname}',
                 cancel_url=url_for('admin.batches'))


@admin.route('/batches/<batch_id>/delete', methods=['GET', 'POST'])
def delete_batch(batch_id):
    return _confirm('Delete batch', 'This batch will be permanently removed.', url_for('admin.batches'),
                    lambda: _api().delete_batch(batch_id))


@admin.route('/batches/<batch_id>/periods')
def batch_periods(batch_id):
    api = _api()
    try:
        batch = api.batch(batch_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('admin.batches'))
    return render_template('admin/batch_periods.html', batch=batch,
                           periods=_load(lambda: api.batch_periods(batch_id)))


def _period_form(api, batch_id, period=None):
    form = BatchPeriodForm(obj=period)
    try:
        faculty = api.batch(batch_id).faculty
    except ApiError as exc:
        toast_error(exc)
        faculty = None
    form.semester_or_year.choices = _choices(_load(lambda: api.semesters(faculty.id if faculty else None)))
    if period is not None and request.method == 'GET' and period.semester_or_year:
        form.semester_or_year.data = period.semester_or_year.id
    return form


@admin.route('/batches/<batch_id>/periods/new', methods=['GET', 'POST'])
def create_batch_period(batch_id):
    api = _api()
    done = url_for('admin.batch_periods', batch_id=batch_id)
    return _save(_period_form(api, batch_id), lambda payload: api.create_batch_period(dict(payload, batch=batch_id)),
                 done, 'form.html', title='New Batch Period', cancel_url=done)


@admin.route('/batches/<batch_id>/periods/<period_id>/edit', methods=['GET', 'POST'])
def edit_batch_period(batch_id, period_id):
    api = _api()
    done = url_for('admin.batch_periods', batch_id=batch_id)
    try:
        period = api.batch_period(period_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(done)
    return _save(_period_form(api, batch_id, period), lambda payload: api.update_batch_period(period_id, payload),
                 done, 'form.html', title='Edit Batch Period', cancel_url=done)


@admin.route('/batches/<batch_id>/periods/<period_id>/delete', methods=['GET', 'POST'])
def delete_batch_period(batch_id, period_id):
    return _confirm('Delete batch period', 'This batch period will be permanently removed.',
                    url_for('admin.batch_periods', batch_id=batch_id),
                    lambda: _api().delete_batch_period(period_id))


# --- semesters / years ------------------------------------------------------

@admin.route('/semesters')
def semesters():
    api = _api()
    faculty = request.args.get('faculty') or None
    return render_template('admin/semesters.html', semesters=_load(lambda: api.semesters(faculty)),
                           faculties=_load(api.faculties), faculty=faculty)


def _semester_form(api, semester=None):
    form = SemesterForm(obj=semester)
    form.faculty.choices = _choices(_load(api.faculties))
    if semester is not None and request.method == 'GET' and semester.faculty:
        form.faculty.data = semester.faculty.id
    return form


@admin.route('/semesters/new', methods=['GET', 'POST'])
def create_semester():
    api = _api()
    return _save(_semester_form(api), api.create_semester, url_for('admin.semesters'),
                 'form.html', title='New Semester/Year', cancel_url=url_for('admin.semesters'))


@admin.route('/semesters/<semester_id>/edit', methods=['GET', 'POST'])
def edit_semester(semester_id):
    api = _api()
    try:
        semester = api.semester(semester_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('admin.semesters'))
    return _save(_semester_form(api, semester), lambda payload: api.update_semester(semester_id, payload),
                 url_for('admin.semesters'), 'form.html', title=f'Edit {semester.name}',
                 cancel_url=url_for('admin.semesters'))


@admin.route('/semesters/<semester_id>/delete', methods=['GET', 'POST'])
def delete_semester(semester_id):
    return _confirm('Delete semester/year', 'This semester/year will be permanently removed.',
                    url_for('admin.semesters'), lambda: _api().delete_semester(semester_id))


# --- courses ----------------------------------------------------------------

@admin.route('/courses')
def courses():
    return render_template('admin/courses.html', courses=_load(_api().courses))


def _course_form(api, course=None):
    form = CourseForm(obj=course)
    form.semester_or_year.choices = _choices(_load(api.semesters))
    if course is not None and request.method == 'GET' and course.semester_or_year:
        form.semester_or_year.data = course.semester_or_year.id
    return form


@admin.route('/courses/new', methods=['GET', 'POST'])
def create_course():
    api = _api()
    return _save(_course_form(api), api.create_course, url_for('admin.courses'),
                 'form.html', title='New Course', cancel_url=url_for('admin.courses'))


@admin.route('/courses/<course_id>/edit', methods=['GET', 'POST'])
def edit_course(course_id):
    api = _api()
    try:
        course = api.course(course_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('admin.courses'))
    return _save(_course_form(api, course), lambda payload: api.update_course(course_id, payload),
                 url_for('admin.courses'), 'form.html', title=f'Edit {course.name}',
                 cancel_url=url_for('admin.courses'))


@admin.route('/courses/<course_id>/delete', methods=['GET', 'POST'])
def delete_course(course_id):
    return _confirm('Delete course', 'This course will be permanently removed.', url_for('admin.courses'),
                    lambda: _api().delete_course(course_id))


# --- course instances -------------------------------------------------------

def _teacher_choices(api):
    return _choices(_load(lambda: api.users('teacher')), label=lambda u: u.username)


@admin.route('/course-instances')
def course_instances():
    return render_template('admin/course_instances.html', instances=_load(_api().course_instances))


@admin.route('/course-instances/new', methods=['GET', 'POST'])
def create_course_instance():
    api = _api()
    form = CourseInstanceForm()
    form.course.choices = _choices(_load(api.courses), label=lambda c: f'{c.code} {c.name}'.strip())
    form.batch.choices = _choices(_load(api.batches), label=lambda b: b.batchname)
    form.teacher.choices = _teacher_choices(api)
    return _save(form, api.create_course_instance, url_for('admin.course_instances'),
                 'form.html', title='New Course Instance', cancel_url=url_for('admin.course_instances'))


@admin.route('/course-instances/<instance_id>/edit', methods=['GET', 'POST'])
def edit_course_instance(instance_id):
    api = _api()
    done = url_for('admin.course_instances')
    try:
        instance = api.course_instance(instance_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(done)

    original = {'teacher': instance.teacher.id if instance.teacher else '', 'isActive': instance.is_active}
    form = CourseInstanceEditForm()
    form.teacher.choices = [('', '—')] + _teacher_choices(api)
    if request.method == 'GET':
        form.teacher.data = original['teacher']
        form.is_active.data = original['isActive']

    if form.validate_on_submit():
        submitted = {'teacher': form.teacher.data or '', 'isActive': form.is_active.data}
        changes = changed_fields(original, submitted)
        if form.discard.data:
            if not changes:
                return redirect(done)
            dialog = ConfirmDialog('Discard changes?', 'You have unsaved changes that will be lost.',
                                   url_for('admin.edit_course_instance', instance_id=instance_id),
                                   confirm_label='Discard', form=ConfirmForm(formdata=None),
                                   action=url_for('admin.discard_course_instance', instance_id=instance_id))
            return dialog.render()
        if not changes:
            toast('No changes to save.', 'info')
            return redirect(done)
        try:
            toast(api.update_course_instance(instance_id, changes))
        except ApiError as exc:
            toast_error(exc)
        else:
            return redirect(done)
    return render_template('admin/course_instance_edit.html', form=form, instance=instance)


@admin.route('/course-instances/<instance_id>/discard', methods=['POST'])
def discard_course_instance(instance_id):
    form = ConfirmForm()
    if form.validate_on_submit():
        toast('Changes discarded.', 'info')
        return redirect(url_for('admin.course_instances'))
    return redirect(url_for('admin.edit_course_instance', instance_id=instance_id))


@admin.route('/course-instances/<instance_id>/delete', methods=['GET', 'POST'])
def delete_course_instance(instance_id):
    return _confirm('Delete course instance', 'This course instance will be permanently removed.',
                    url_for('admin.course_instances'), lambda: _api().delete_course_instance(instance_id))


# --- users ------------------------------------------------------------------

@admin.route('/users')
def users():
    role = request.args.get('role') or None
    return render_template('admin/users.html', users=_load(lambda: _api().users(role)), role=role)


@admin.route('/users/<user_id>')
def view_user(user_id):
    try:
        portal_user = _api().user(user_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('admin.users'))
    return render_template('admin/user_detail.html', portal_user=portal_user)


@admin.route('/users/<user_id>/edit', methods=['GET', 'POST'])
def edit_user(user_id):
    api = _api()
    try:
        portal_user = api.user(user_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('admin.users'))
    return _save(UserEditForm(obj=portal_user), lambda payload: api.update_user(user_id, payload),
                 url_for('admin.view_user', user_id=user_id), 'form.html',
                 title=f'Edit {portal_user.username}', cancel_url=url_for('admin.view_user', user_id=user_id))


@admin.route('/users/<user_id>/delete', methods=['GET', 'POST'])
def delete_user(user_id):
    return _confirm('Delete user', 'This account will be permanently removed.', url_for('admin.users'),
                    lambda: _api().delete_user(user_id))


@admin.route('/users/bulk', methods=['GET', 'POST'])
def bulk_users_create():
    form = BulkUserForm()
    if form.add_row.data:
        form.rows.append_entry()
        return render_template('admin/bulk_users.html', form=form)

    if form.validate_on_submit():
        upload = form.csv_file.data
        rows = [row for row in bulk_users.rows_payload(form.rows.data) if row['username'] or row['email']]
        if not upload and not rows:
            toast('Add at least one user row or upload a CSV file.', 'warning')
            return render_template('admin/bulk_users.html', form=form)
        try:
            if upload:
                message = _api().bulk_create_users(csv_file=upload)
            else:
                message = _api().bulk_create_users(rows=rows)
        except HttpError as exc:
            pinned = bulk_users.row_error(exc.payload)
            if pinned and not upload and pinned[0] < len(form.rows):
                index, field, error = pinned
                row_form = form.rows[index].form
                if field in row_form:
                    row_form[field].errors = list(row_form[field].errors) + [error]
            toast_error(exc)
        except ApiError as exc:
            toast_error(exc)
        else:
            toast(message)
            return redirect(url_for('admin.bulk_users_create'))
    return render_template('admin/bulk_users.html', form=form)


@admin.route('/users/sample.csv')
def sample_users_csv():
    return Response(bulk_users.sample_csv(), mimetype='text/csv',
                    headers={'Content-Disposition': 'attachment; filename=sample-users.csv'})


# --- leave requests ---------------------------------------------------------

@admin.route('/leave')
def leave_requests():
    role, status = leave_service.normalize_filters(request.args.get('role'), request.args.get('status'))
    items = _load(lambda: leave_service.list_leaves(_api(), role, status))
    return render_template('admin/leave.html', items=items, role=role, status=status,
                           roles=leave_service.ROLE_FILTERS, statuses=leave_service.STATUS_FILTERS,
                           form=ConfirmForm())


def _back_to_leave():
    return redirect(url_for('admin.leave_requests', role=request.args.get('role', 'all'),
                            status=request.args.get('status', 'pending')))


@admin.route('/leave/<leave_id>/approve', methods=['POST'])
def approve_leave(leave_id):
    form = ConfirmForm()
    if form.validate_on_submit():
        try:
            message = _api().approve_leave(leave_id)
        except ApiError as exc:
            if wants_json():
                return json_result(False, exc.message, getattr(exc, 'status', 502))
            toast_error(exc)
        else:
            notify_pending_changed()
            if wants_json():
                return json_result(True, message)
            toast(message)
    return _back_to_leave()


@admin.route('/leave/<leave_id>/reject', methods=['GET', 'POST'])
def reject_leave(leave_id):
    dialog = ConfirmDialog('Reject leave request', 'Optionally tell the requester why.',
                           url_for('admin.leave_requests', role=request.args.get('role', 'all'),
                                   status=request.args.get('status', 'pending')),
                           confirm_label='Reject', form=RejectLeaveForm())
    if not dialog.confirmed:
        return dialog.render()
    try:
        toast(_api().reject_leave(leave_id, (dialog.form.reason.data or '').strip()))
    except ApiError as exc:
        toast_error(exc)
    else:
        notify_pending_changed()
    return redirect(dialog.cancel_url)


@admin.route('/leave/pending-count')
def pending_leave_count():
    role, _ = leave_service.normalize_filters(request.args.get('role'), 'pending')
    try:
        count = fetch_pending_count(_api(), role)
    except ApiError as exc:
        return json_result(False, exc.message, getattr(exc, 'status', 502))
    return json_result(True, count=count, label=badge_label(count, current_app.config['LEAVE_BADGE_MAX']))


# --- announcements ----------------------------------------------------------

@admin.route('/announcements')
def announcements():
    folder = request.args.get('folder') or None
    return render_template('admin/announcements.html', folder=folder, form=ConfirmForm(),
                           announcements=_load(lambda: _api().announcements(folder)))


@admin.route('/announcements/new', methods=['GET', 'POST'])
def create_announcement():
    return _save(AnnouncementForm(), _api().create_announcement, url_for('admin.announcements'),
                 'form.html', title='New Announcement', cancel_url=url_for('admin.announcements'))


@admin.route('/announcements/<announcement_id>/edit', methods=['GET', 'POST'])
def edit_announcement(announcement_id):
    api = _api()
    try:
        announcement = api.announcement(announcement_id)
    except ApiError as exc:
        toast_error(exc)
        return redirect(url_for('admin.announcements'))
    return _save(AnnouncementForm(obj=announcement),
                 lambda payload: api.update_announcement(announcement_id, payload),
                 url_for('admin.announcements'), 'form.html', title='Edit Announcement',
                 cancel_url=url_for('admin.announcements'))


@admin.route('/announcements/<announcement_id>/archive', methods=['POST'])
@admin.route('/announcements/<announcement_id>/unarchive', methods=['POST'], defaults={'archived': False})
def archive_announcement(announcement_id, archived=True):
    if ConfirmForm().validate_on_submit():
        try:
            toast(_api().archive_announcement(announcement_id, archived))
        except ApiError as exc:
            toast_error(exc)
    return redirect(url_for('admin.announcements', folder=request.args.get('folder')))


@admin.route('/announcements/<announcement_id>/delete', methods=['GET', 'POST'])
def delete_announcement(announcement_id):
    return _confirm('Delete announcement', 'This announcement will be permanently removed.',
                    url_for('admin.announcements'), lambda: _api().delete_announcement(announcement_id))


# --- schedule builder -------------------------------------------------------

def _schedule_filters():
    return {key: request.args.get(key) or None for key in ('faculty', 'batch', 'semesterOrYear')}


def _ongoing_windows(api, filters):
    if not (filters['batch'] and filters['semesterOrYear']):
        return []
    try:
        return [api.ongoing_batch_period(filters['batch'], filters['semesterOrYear'])]
    except NotFoundError:
        return []
    except ApiError as exc:
        toast_error(exc)
        return []


def _schedule_rows(form, base_rows):
    """Merge the submitted per-row settings onto the rows loaded for the filters."""
    by_id = {row.course_instance_id: row for row in base_rows}
    rows = []
    for entry in form.rows:
        row = by_id.get(entry.course_instance_id.data)
        if row is None:
            continue
        row.sessions_per_week = entry.sessions_per_week.data or 0
        row.duration_minutes = entry.duration_minutes.data or 0
        row.allowed_days = list(entry.allowed_days.data or [])
        rows.append(row)
    return rows


def _schedule_context(api):
    filters = _schedule_filters()
    faculties = _load(api.faculties)
    batches, semesters, instances = [], [], []
    if filters['faculty']:
        batches = _load(lambda: api.batches(filters['faculty']))
        semesters = _load(lambda: api.semesters(filters['faculty']))
        instances = _load(lambda: api.overall_course_instances(filters['faculty'], filters['batch'],
                                                               filters['semesterOrYear']))
    return {
        'filters': filters,
        'faculties': faculties,
        'batches': batches,
        'semesters': semesters,
        'rows': scheduling.rows_from_instances(instances),
        'windows': _ongoing_windows(api, filters),
    }


@admin.route('/schedule', methods=['GET', 'POST'])
def schedule():
    api = _api()
    context = _schedule_context(api)
    form = ScheduleForm()
    result = None

    if request.method == 'GET':
        for row in context['rows']:
            form.rows.append_entry({
                'course_instance_id': row.course_instance_id,
                'sessions_per_week': row.sessions_per_week,
                'duration_minutes': row.duration_minutes,
                'allowed_days': row.allowed_days,
            })
        if context['windows']:
            form.start_date.data = context['windows'][0].start_date
            form.end_date.data = context['windows'][0].end_date
    elif form.validate_on_submit():
        rows = _schedule_rows(form, context['rows'])
        context['rows'] = rows
        try:
            result = scheduling.solve(api, rows, form.start_date.data, form.end_date.data,
                                      context['windows'], dry_run=not form.commit.data)
        except scheduling.ScheduleNotReady as exc:
            toast(str(exc), 'danger')
        except ApiError as exc:
            toast_error(exc)
        else:
            toast(result.message)

    return render_template('admin/schedule.html', form=form, result=result, **context)


@admin.route('/schedule/eligibility', methods=['POST'])
def schedule_eligibility():
    api = _api()
    context = _schedule_context(api)
    form = ScheduleForm()
    form.validate()
    rows = _schedule_rows(form, context['rows'])
    ready = scheduling.can_run(rows, form.start_date.data, form.end_date.data, context['windows'])
    return json_result(True, None if ready else scheduling.not_ready_message(context['windows']),
                       canRun=ready, tasks=len(scheduling.build_tasks(rows)),
                       datesValid=scheduling.dates_valid(form.start_date.data, form.end_date.data,
                                                         context['windows']))


@admin.route('/schedule/events')
def schedule_events():
    return render_template('admin/schedule_events.html', events=_load(_api().schedule_events),
                           form=ConfirmForm())


@admin.route('/schedule/events/<event_id>/cancel', methods=['GET', 'POST'])
def cancel_schedule_event(event_id):
    return _confirm('Cancel event', 'This recurring event will be cancelled.', url_for('admin.schedule_events'),
                    lambda: _api().cancel_schedule_event(event_id), confirm_label='Cancel event')
