import json

from collegeportal.api import schemas as s
from collegeportal.api.client import extract_message
from collegeportal.api.errors import HttpError, NotFoundError

GRADEBOOK_PREFIXES = ('/grades', '', '/grade')


class PortalApi:
    """Typed calls against the college backend for one bearer token.

    List endpoints name the single envelope key they are read from; a body
    without it raises ``SchemaError`` rather than rendering as empty.
    """

    def __init__(self, client, token=None):
        self.client = client
        self.token = token

    def _fetch(self, method, path, model, key=None, many=False, **kwargs):
        return self.client.fetch(method, path, model, key=key, many=many, token=self.token, **kwargs)

    def _send(self, method, path, default='Saved', **kwargs):
        payload = self.client.request(method, path, token=self.token, **kwargs)
        return extract_message(payload, default)

    # --- identity -----------------------------------------------------------

    def login(self, email, password, role):
        return self._fetch('POST', '/userAuth/login', s.LoginResponse,
                           json={'email': email, 'password': password, 'role': role})

    def me(self, cancel=None):
        return self._fetch('GET', '/userAuth/me', s.UserProfile, key='user', cancel=cancel)

    def forgot_password(self, email, role):
        return self._send('POST', '/userAuth/forgot-password', 'Reset link sent',
                          json={'email': email, 'role': role})

    def reset_password(self, reset_token, password):
        return self._send('POST', '/userAuth/reset-password', 'Password updated',
                          json={'token': reset_token, 'password': password})

    def change_password(self, current_password, new_password):
        return self._send('PATCH', '/user-api/users/me/password', 'Password updated',
                          json={'currentPassword': current_password, 'newPassword': new_password})

    # --- faculties ----------------------------------------------------------

    def faculties(self):
        return self._fetch('GET', '/faculty-api/faculties', s.Faculty, key='faculties', many=True)

    def faculty(self, faculty_id):
        return self._fetch('GET', f'/faculty-api/faculties/{faculty_id}', s.Faculty, key='faculty')

    def create_faculty(self, payload):
        return self._send('POST', '/faculty-api/faculties', 'Faculty created', json=payload)

    def update_faculty(self, faculty_id, payload):
        return self._send('PUT', f'/faculty-api/faculties/{faculty_id}', 'Faculty updated', json=payload)

    def delete_faculty(self, faculty_id):
        return self._send('DELETE', f'/faculty-api/faculties/{faculty_id}', 'Faculty deleted')

    # --- batches and batch periods ------------------------------------------

    def batches(self, faculty=None):
        params = {'faculty': faculty} if faculty else None
        return self._fetch('GET', '/batch-api/batch', s.Batch, key='batches', many=True, params=params)

    def batch(self, batch_id):
        return self._fetch('GET', f'/batch-api/batch/{batch_id}', s.Batch, key='batch')

    def create_batch(self, payload):
        return self._send('POST', '/batch-api/batch', 'Batch created', json=payload)

    def update_batch(self, batch_id, payload):
        return self._send('PATCH', f'/batch-api/batch/{batch_id}', 'Batch updated', json=payload)

    def delete_batch(self, batch_id):
        return self._send('DELETE', f'/batch-api/batch/{batch_id}', 'Batch deleted')

    def batch_periods(self, batch_id):
        return self._fetch('GET', '/batch-api/batchPeriod', s.BatchPeriod, key='periods', many=True,
                           params={'batch': batch_id})

    def batch_period(self, period_id):
        return self._fetch('GET', f'/batch-api/batchPeriod/{period_id}', s.BatchPeriod, key='period')

    def ongoing_batch_period(self, batch_id, semester_or_year_id):
        return self._fetch('GET', '/batch-api/batchPeriod/ongoing', s.BatchPeriod, key='period',
                           params={'batch': batch_id, 'semesterOrYear': semester_or_year_id})

    def create_batch_period(self, payload):
        return self._send('POST', '/batch-api/batchPeriod', 'Batch period created', json=payload)

    def update_batch_period(self, period_id, payload):
        return self._send('PATCH', f'/batch-api/batchPeriod/{period_id}', 'Batch period updated', json=payload)

    def delete_batch_period(self, period_id):
        return self._send('DELETE', f'/batch-api/batchPeriod/{period_id}', 'Batch period deleted')

    # --- semesters / years --------------------------------------------------

    def semesters(self, faculty=None):
        params = {'faculty': faculty} if faculty else None
        return self._fetch('GET', '/sem-api/semesterOrYear', s.SemesterOrYear, key='semesters', many=True,
                           params=params)

    def semester(self, semester_id):
        return self._fetch('GET', f'/sem-api/semesterOrYear/{semester_id}', s.SemesterOrYear,
                           key='semesterOrYear')

    def create_semester(self, payload):
        return self._send('POST', '/sem-api/semesterOrYear', 'Semester/year created', json=payload)

    def update_semester(self, semester_id, payload):
        return self._send('PATCH', f'/sem-api/semesterOrYear/{semester_id}', 'Semester/year updated',
                          json=payload)

    def delete_semester(self, semester_id):
        return self._send('DELETE', f'/sem-api/semesterOrYear/{semester_id}', 'Semester/year deleted')

    # --- courses and course instances ---------------------------------------

    def courses(self):
        return self._fetch('GET', '/course-api/course', s.Course, key='courses', many=True)

    def course(self, course_id):
        return self._fetch('GET', f'/course-api/course/{course_id}', s.Course, key='course')

    def create_course(self, payload):
        return self._send('POST', '/course-api/course', 'Course created', json=payload)

    def update_course(self, course_id, payload):
        return self._send('PATCH', f'/course-api/course/{course_id}', 'Course updated', json=payload)

    def delete_course(self, course_id):
        return self._send('DELETE', f'/course-api/course/{course_id}', 'Course deleted')

    def course_instances(self):
        return self._fetch('GET', '/course-api/courseInstance', s.CourseInstance, key='instances', many=True)

    def overall_course_instances(self, faculty, batch=None, semester_or_year=None):
        params = {'faculty': faculty, 'limit': 1000}
        if batch:
            params['batch'] = batch
        if semester_or_year:
            params['semesterOrYear'] = semester_or_year
        return self._fetch('GET', '/course-api/overallCourseInstance', s.CourseInstance, key='items',
                           many=True, params=params)

    def course_instance(self, instance_id):
        return self._fetch('GET', f'/course-api/courseInstance/{instance_id}', s.CourseInstance,
                           key='instance')

    def create_course_instance(self, payload):
        return self._send('POST', '/course-api/courseInstance', 'Course instance created', json=payload)

    def update_course_instance(self, instance_id, payload):
        return self._send('PATCH', f'/course-api/courseInstance/{instance_id}', 'Course instance updated',
                          json=payload)

    def delete_course_instance(self, instance_id):
        return self._send('DELETE', f'/course-api/courseInstance/{instance_id}', 'Course instance deleted')

    # --- users --------------------------------------------------------------

    def users(self, role=None):
        params = {'role': role} if role else None
        return self._fetch('GET', '/user-api/users', s.PortalUser, key='users', many=True, params=params)

    def user(self, user_id):
        return self._fetch('GET', f'/user-api/users/{user_id}', s.PortalUser, key='user')

    def update_user(self, user_id, payload):
        return self._send('PATCH', f'/user-api/users/{user_id}', 'User updated', json=payload)

    def delete_user(self, user_id):
        return self._send('DELETE', f'/user-api/users/{user_id}', 'User deleted')

    def bulk_create_users(self, rows=None, csv_file=None):
        if csv_file is not None:
            files = {'file': (csv_file.filename or 'users.csv', csv_file.stream, 'text/csv')}
            return self._send('POST', '/user-api/users/bulk', 'Users created', files=files)
        return self._send('POST', '/user-api/users/bulk', 'Users created', json={'users': rows})

    # --- leave --------------------------------------------------------------

    def pending_leave_count(self, role='all', cancel=None):
        params = None if role == 'all' else {'role': role}
        result = self._fetch('GET', '/leave/admin/pending/count', s.PendingCount, params=params, cancel=cancel)
        return result.count

    def pending_leaves(self, role='all', cancel=None):
        params = None if role == 'all' else {'role': role}
        return self._fetch('GET', '/leave/admin/pending', s.LeaveItem, key='items', many=True,
                           params=params, cancel=cancel)

    def leave_requests(self, role='all', status='all'):
        params = {}
        if role != 'all':
            params['role'] = role
        if status != 'all':
            params['status'] = status
        return self._fetch('GET', '/leave/admin/requests', s.LeaveItem, key='items', many=True,
                           params=params or None)

    def approve_leave(self, leave_id):
        return self._send('PATCH', f'/leave/admin/{leave_id}/approve', 'Leave approved')

    def reject_leave(self, leave_id, reason=''):
        return self._send('PATCH', f'/leave/admin/{leave_id}/reject', 'Leave rejected',
                          json={'rejectionReason': reason})

    def my_leaves(self, role):
        return self._fetch('GET', f'/leave/{role}/mine', s.LeaveItem, key='items', many=True)

    def request_leave(self, role, payload):
        return self._send('POST', f'/leave/{role}/request', 'Leave requested successfully.', json=payload)

    def cancel_leave(self, role, leave_id):
        return self._send('PATCH', f'/leave/{role}/{leave_id}/cancel', 'Leave cancelled.')

    # --- dashboard ----------------------------------------------------------

    def dashboard_summary(self):
        return self._fetch('GET', '/admin-api/summary', s.DashboardSummary)

    def students_by_faculty(self):
        return self._fetch('GET', '/admin-api/students-by-faculty', s.GroupItem, key='items', many=True)

    def students_by_batch(self, faculty_id):
        return self._fetch('GET', '/admin-api/students-by-batch', s.GroupItem, key='items', many=True,
                           params={'facultyId': faculty_id})

    def attendance_overview(self, days=14):
        return self._fetch('GET', '/admin-api/attendance/overview', s.AttendanceOverview,
                           params={'days': days})

    def recent_leaves(self, limit=5, status='pending'):
        return self._fetch('GET', '/admin-api/leaves/recent', s.LeaveItem, key='items', many=True,
                           params={'limit': limit, 'status': status})

    # --- schedule -----------------------------------------------------------

    def solve_schedule(self, tasks, start_date, end_date, dry_run):
        body = {
            'tasks': tasks,
            'startDate': start_date.isoformat(),
            'endDate': end_date.isoformat(),
            'dryRun': dry_run,
            'checkExisting': True,
        }
        return self._fetch('POST', '/schedule/solve', s.ScheduleEvent, key='events', many=True, json=body)

    def schedule_events(self):
        return self._fetch('GET', '/schedule/schedule-events', s.ScheduleEvent, key='events', many=True)

    def cancel_schedule_event(self, event_id):
        return self._send('PATCH', f'/schedule/schedule-events/{event_id}/cancel', 'Event cancelled')

    # --- announcements ------------------------------------------------------

    def announcements(self, folder=None):
        params = {'folder': folder} if folder else None
        return self._fetch('GET', '/announcement', s.Announcement, key='announcements', many=True,
                           params=params)

    def announcement(self, announcement_id):
        return self._fetch('GET', f'/announcement/{announcement_id}', s.Announcement, key='announcement',
                           params={'adminView': 'true'})

    def create_announcement(self, payload):
        return self._send('POST', '/announcement', 'Announcement published', json=payload)

    def update_announcement(self, announcement_id, payload):
        return self._send('PATCH', f'/announcement/{announcement_id}', 'Announcement updated', json=payload)

    def archive_announcement(self, announcement_id, archived=True):
        action = 'archive' if archived else 'unarchive'
        return self._send('PATCH', f'/announcement/{announcement_id}/{action}',
                          'Announcement archived' if archived else 'Announcement restored')

    def delete_announcement(self, announcement_id):
        return self._send('DELETE', f'/announcement/{announcement_id}', 'Announcement deleted')

    def course_feed(self, instance_id):
        return self._fetch('GET', f'/announcement-routes/course/{instance_id}', s.Announcement,
                           key='announcements', many=True)

    def post_course_announcement(self, instance_id, payload):
        return self._send('POST', f'/announcement-routes/course/{instance_id}', 'Announcement posted',
                          json=payload)

    # --- teacher / student classes ------------------------------------------

    def my_course_instances(self):
        return self._fetch('GET', '/teacher-routes/my-course-instances', s.CourseInstance, key='instances',
                           many=True)

    def my_batch_semesters(self):
        return self._fetch('GET', '/student/my-batch-semesters', s.CourseInstance, key='courseInstances',
                           many=True)

    # --- materials ----------------------------------------------------------

    def course_materials(self, instance_id):
        return self._fetch('GET', f'/course-materials/course/{instance_id}', s.Material, key='materials',
                           many=True)

    def student_materials(self, instance_id):
        return self._fetch('GET', f'/student/materials/{instance_id}', s.Material, key='materials', many=True)

    def material(self, material_id):
        return self._fetch('GET', f'/course-materials/material/{material_id}', s.Material, key='material')

    def post_material(self, instance_id, content, links=(), files=()):
        data = {'courseInstance': instance_id, 'content': content}
        if links:
            data['links'] = list(links)
        upload = [('files', (f.filename, f.stream, f.mimetype)) for f in files if f and f.filename]
        return self._send('POST', '/materials/course-material', 'Material posted', data=data,
                          files=upload or None)

    def delete_material(self, material_id):
        return self._send('DELETE', f'/materials/{material_id}', 'Material deleted')

    # --- quizzes ------------------------------------------------------------

    def quizzes(self, instance_id):
        return self._fetch('GET', '/quizrouter', s.Quiz, key='quizzes', many=True,
                           params={'courseInstance': instance_id})

    def quiz(self, quiz_id):
        return self._fetch('GET', f'/quizrouter/{quiz_id}', s.Quiz, key='quiz')

    def create_quiz(self, payload):
        return self._send('POST', '/quizrouter', 'Quiz created', json=payload)

    def quiz_submissions(self, quiz_id):
        return self._fetch('GET', '/quiz-submissions', s.QuizSubmission, key='submissions', many=True,
                           params={'quiz': quiz_id, 'status': 'submitted'})

    def quiz_stats(self, quiz_id):
        return self._fetch('GET', '/quiz-submissions/stats', s.QuizStats, key='stats',
                           params={'quizId': quiz_id})

    def submit_quiz(self, quiz_id, answers):
        return self._send('POST', '/quiz-submissions', 'Quiz submitted',
                          json={'quiz': quiz_id, 'answers': answers})

    # --- assignments --------------------------------------------------------

    def course_assignments(self, instance_id):
        groups = self._fetch('GET', f'/Coursefeeds/{instance_id}', s.CourseFeedGroup, many=True)
        return [assignment for group in groups for assignment in group.assignments]

    def student_assignments(self, instance_id):
        items = self._fetch('GET', f'/student/feed/{instance_id}', s.Assignment, many=True)
        return [item for item in items if item.type == 'assignment']

    def assignment(self, assignment_id):
        return self._fetch('GET', f'/assignment/{assignment_id}', s.Assignment, key='assignment')

    def create_assignment(self, instance_id, payload, links=(), files=()):
        data = dict(payload, courseInstance=instance_id, mutedStudents='[]', visibleTo='[]')
        if links:
            data['links'] = json.dumps(list(links))
        upload = [('documents', (f.filename, f.stream, f.mimetype)) for f in files if f and f.filename]
        return self._send('POST', '/assignment/', 'Assignment created', data=data, files=upload or None)

    def assignment_submissions(self, assignment_id):
        return self._fetch('GET', f'/assignmentgrading/assignments/{assignment_id}/submissions',
                           s.SubmissionList, params={'includeDrafts': 1})

    def grade_submission(self, submission_id, grade, feedback=''):
        return self._send('PATCH', f'/assignmentgrading/submissions/{submission_id}/grade', 'Grade saved',
                          json={'grade': grade, 'feedback': feedback})

    def set_accepting(self, assignment_id, **change):
        """``change`` is one of ``acceptingSubmissions``, ``closeNow`` or ``closeAt``."""
        return self._send('PATCH', f'/assignmentgrading/assignments/{assignment_id}/accepting',
                          'Submission settings updated', json=change)

    def my_submission(self, assignment_id):
        try:
            return self._fetch('GET', f'/submission/by-assignment/{assignment_id}/submission',
                               s.AssignmentSubmission, key='submission')
        except NotFoundError:
            return None

    def submit_assignment(self, assignment_id, files):
        upload = [('files', (f.filename, f.stream, f.mimetype)) for f in files if f and f.filename]
        return self._send('POST', f'/submission/by-assignment/{assignment_id}/submission',
                          'Assignment submitted', files=upload)

    # --- grades -------------------------------------------------------------

    def gradebook(self, instance_id):
        # The gradebook is mounted under different prefixes on older backends.
        error = None
        for prefix in GRADEBOOK_PREFIXES:
            try:
                return self._fetch('GET', f'{prefix}/courseInstance/{instance_id}/gradebook', s.Gradebook)
            except HttpError as exc:
                if exc.status not in (404, 405):
                    raise
                error = exc
        raise error

    def my_grades(self, instance_id):
        return self._fetch('GET', f'/grade/courseInstance/{instance_id}/my/assignments', s.MyGrades)

    # --- notifications ------------------------------------------------------

    def notifications(self, instance_id=None):
        params = {'courseInstance': instance_id} if instance_id else None
        return self._fetch('GET', '/notification', s.Notification, key='notifications', many=True,
                           params=params)

    def mark_notification_read(self, notification_id):
        return self._send('PATCH', f'/notification/{notification_id}/mark-read', 'Marked as read')

    def archive_notification(self, notification_id):
        return self._send('PATCH', f'/notification/{notification_id}/archive', 'Notification archived')

    def mark_all_notifications_read(self, instance_id=None):
        params = {'courseInstance': instance_id} if instance_id else None
        return self._send('PATCH', '/notification/mark-all-read', 'All notifications marked as read',
                          params=params)

    # --- attendance ---------------------------------------------------------

    def scan_attendance(self, qr_token):
        return self._fetch('POST', '/attendance/scan', s.AttendanceRecord, key='record', json={'token': qr_token})

    def attendance_month(self, instance_id, year, month):
        return self._fetch('GET', f'/attendance/course-instances/{instance_id}/month', s.AttendanceMonth,
                           params={'year': year, 'month': month, 'includeStats': 1})

    def open_attendance_session(self, instance_id, for_date=None):
        body = {'courseInstanceId': instance_id, 'rotating': for_date is None}
        if for_date is not None:
            body.update(forDate=for_date.isoformat(), reuse=True)
        return self._fetch('POST', '/attendance/sessions', s.AttendanceSession, json=body)

    def close_attendance_session(self, session_id):
        return self._send('POST', f'/attendance/sessions/{session_id}/close', 'Session closed')

    def attendance_session_token(self, session_id):
        return self._fetch('GET', f'/attendance/sessions/{session_id}/token', s.AttendanceToken)

    def mark_attendance(self, session_id, student_id, status):
        return self._fetch('POST', f'/attendance/sessions/{session_id}/manual', s.AttendanceRecord,
                           key='record', json={'studentId': student_id, 'status': status})
