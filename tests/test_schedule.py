from datetime import date

import pytest

from collegeportal.api import BackendClient, PortalApi, schemas
from collegeportal.services.schedule import (
    CourseRow, ScheduleNotReady, build_tasks, can_run, dates_valid, event_days, minutes_to_12h, not_ready_message,
    rows_from_instances, solve,
)
from tests.conftest import BASE_URL

WINDOW = schemas.BatchPeriod.model_validate({'_id': 'p1', 'startDate': '2025-01-01', 'endDate': '2025-06-30'})


class FakeApi:
    def __init__(self, events):
        self.events = events
        self.calls = []

    def solve_schedule(self, tasks, start, end, dry_run):
        self.calls.append((tasks, start, end, dry_run))
        return self.events


def test_rows_default_to_two_sessions_of_an_hour():
    instance = schemas.CourseInstance.model_validate({
        '_id': 'ci1', 'course': {'_id': 'c1', 'name': 'Databases', 'code': 'DB101'},
        'teacher': {'_id': 't1', 'username': 'tina'}, 'batch': 'b1',
    })
    [row] = rows_from_instances([instance])
    assert row.sessions_per_week == 2
    assert row.duration_minutes == 60
    assert row.allowed_days == []
    assert row.teacher_name == 'tina'
    # unpopulated batch reference
    assert row.batch_name == '—'


def test_bare_teacher_id_shows_a_dash():
    instance = schemas.CourseInstance.model_validate({
        '_id': 'ci1', 'course': {'_id': 'c1', 'name': 'Databases'}, 'teacher': 't1', 'batch': 'b1',
    })
    [row] = rows_from_instances([instance])
    assert row.teacher_name == '—'
    assert instance.teacher.label == 't1'
    assert schemas.Ref.model_validate({'_id': 't2', 'name': 'Tina T', 'username': 'tina'}).person_label == 'Tina T'


def test_tasks_skip_empty_rows_and_omit_unset_days():
    rows = [
        CourseRow('a'),
        CourseRow('b', sessions_per_week=0),
        CourseRow('c', duration_minutes=0),
        CourseRow('d', sessions_per_week=3, duration_minutes=90, allowed_days=[5, 1]),
    ]
    assert build_tasks(rows) == [
        {'courseInstanceId': 'a', 'sessionsPerWeek': 2, 'durationMinutes': 60, 'type': 'lecture'},
        {'courseInstanceId': 'd', 'sessionsPerWeek': 3, 'durationMinutes': 90, 'type': 'lecture',
         'allowedDays': [1, 5]},
    ]


@pytest.mark.parametrize('start, end, expected', [
    (date(2025, 2, 1), date(2025, 2, 1), True),
    (date(2025, 2, 2), date(2025, 2, 1), False),
    (None, date(2025, 2, 1), False),
    (date(2025, 1, 1), date(2025, 6, 30), True),
    (date(2024, 12, 31), date(2025, 2, 1), False),
    (date(2025, 2, 1), date(2025, 7, 1), False),
])
def test_dates_must_sit_inside_ongoing_window(start, end, expected):
    assert dates_valid(start, end, [WINDOW]) is expected


def test_any_ordered_range_is_fine_without_windows():
    assert dates_valid(date(2020, 1, 1), date(2030, 1, 1))


def test_can_run_needs_a_task():
    start, end = date(2025, 2, 1), date(2025, 2, 28)
    assert not can_run([CourseRow('a', sessions_per_week=0)], start, end)
    assert can_run([CourseRow('a')], start, end)


def test_solve_refuses_when_not_ready():
    api = FakeApi([])
    with pytest.raises(ScheduleNotReady) as info:
        solve(api, [CourseRow('a')], date(2025, 8, 1), date(2025, 8, 2), [WINDOW])
    assert str(info.value) == not_ready_message([WINDOW])
    assert api.calls == []


def test_dry_run_and_commit_messages():
    api = FakeApi(['e1', 'e2', 'e3'])
    start, end = date(2025, 2, 1), date(2025, 2, 28)

    dry = solve(api, [CourseRow('a')], start, end)
    assert dry.message == 'Dry-run found 3 weekly slots.'
    assert api.calls[0][3] is True

    real = solve(api, [CourseRow('a')], start, end, dry_run=False)
    assert real.message == 'Created 3 events.'


def test_twelve_hour_times():
    assert minutes_to_12h(0) == '12:00 AM'
    assert minutes_to_12h(9 * 60 + 5) == '9:05 AM'
    assert minutes_to_12h(12 * 60) == '12:00 PM'
    assert minutes_to_12h(13 * 60 + 30) == '1:30 PM'
    assert minutes_to_12h(None) == ''


def test_event_days():
    event = schemas.ScheduleEvent.model_validate({'daysOfWeek': [1, 3], 'startMinutes': 600, 'endMinutes': 660})
    assert event_days(event) == 'Mon, Wed'


def test_solve_request_body(backend):
    backend.add('POST', '/schedule/solve', {'events': []})
    api = PortalApi(BackendClient(BASE_URL, session=backend), token='t')
    api.solve_schedule([{'courseInstanceId': 'a'}], date(2025, 2, 1), date(2025, 2, 28), True)

    assert backend.calls_to('POST', '/schedule/solve')[0].json == {
        'tasks': [{'courseInstanceId': 'a'}], 'startDate': '2025-02-01', 'endDate': '2025-02-28',
        'dryRun': True, 'checkExisting': True,
    }


def test_eligibility_endpoint(client, backend, sign_in):
    sign_in('admin')
    backend.add('GET', '/faculty-api/faculties', {'faculties': []})
    backend.add('GET', '/batch-api/batch', {'batches': []})
    backend.add('GET', '/sem-api/semesterOrYear', {'semesters': []})
    backend.add('GET', '/course-api/overallCourseInstance', {'items': [{'_id': 'ci1'}]})
    backend.add('GET', '/batch-api/batchPeriod/ongoing', {'period': {'_id': 'p1', 'startDate': '2025-01-01',
                                                                     'endDate': '2025-06-30'}})
    url = '/admin/schedule/eligibility?faculty=f1&batch=b1&semesterOrYear=s1'
    row = {'rows-0-course_instance_id': 'ci1', 'rows-0-sessions_per_week': '2', 'rows-0-duration_minutes': '60'}

    ok = client.post(url, data=dict(row, start_date='2025-02-01', end_date='2025-02-28')).get_json()
    outside = client.post(url, data=dict(row, start_date='2025-02-01', end_date='2025-08-01')).get_json()

    assert ok['canRun'] is True
    assert outside['canRun'] is False
    assert outside['message'] == not_ready_message([WINDOW])
