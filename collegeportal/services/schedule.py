"""Weekly schedule builder.

Rows are course instances with a weekly load; the actual slotting is done
by the backend solver. This module only decides what may be sent and
shapes the request.
"""
from dataclasses import dataclass, field
from typing import List

DEFAULT_SESSIONS_PER_WEEK = 2
DEFAULT_DURATION_MINUTES = 60
DAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')


class ScheduleNotReady(ValueError):
    pass


@dataclass
class CourseRow:
    course_instance_id: str
    course_name: str = '—'
    course_code: str = ''
    teacher_name: str = '—'
    batch_name: str = '—'
    sessions_per_week: int = DEFAULT_SESSIONS_PER_WEEK
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    allowed_days: List[int] = field(default_factory=list)

    @property
    def schedulable(self):
        return self.sessions_per_week > 0 and self.duration_minutes > 0


@dataclass
class ScheduleResult:
    events: list
    message: str
    dry_run: bool


def rows_from_instances(instances):
    rows = []
    for ci in instances:
        rows.append(CourseRow(
            course_instance_id=ci.id,
            course_name=ci.course.name if ci.course and ci.course.name else '—',
            course_code=ci.course.code if ci.course else '',
            teacher_name=ci.teacher.person_label if ci.teacher else '—',
            batch_name=ci.batch.batchname if ci.batch and ci.batch.batchname else '—',
        ))
    return rows


def build_tasks(rows):
    tasks = []
    for row in rows:
        if not row.schedulable:
            continue
        task = {
            'courseInstanceId': row.course_instance_id,
            'sessionsPerWeek': int(row.sessions_per_week),
            'durationMinutes': int(row.duration_minutes),
            'type': 'lecture',
        }
        if row.allowed_days:
            task['allowedDays'] = sorted(row.allowed_days)
        tasks.append(task)
    return tasks


def _within(start, end, period):
    if period.start_date and start < period.start_date:
        return False
    if period.end_date and end > period.end_date:
        return False
    return True


def dates_valid(start, end, windows=()):
    """A usable range: both ends set, ordered, and inside one of ``windows``
    when any batch-period window is known."""
    if not start or not end or start > end:
        return False
    if not windows:
        return True
    return any(_within(start, end, period) for period in windows)


def can_run(rows, start, end, windows=()):
    return bool(build_tasks(rows)) and dates_valid(start, end, windows)


def not_ready_message(windows):
    if windows:
        return 'Pick dates within the ongoing BatchPeriod and add at least one course with sessions/duration.'
    return 'Pick a valid date range and add at least one course with sessions/duration.'


def solve(api, rows, start, end, windows=(), dry_run=True):
    if not can_run(rows, start, end, windows):
        raise ScheduleNotReady(not_ready_message(windows))
    events = api.solve_schedule(build_tasks(rows), start, end, dry_run)
    if dry_run:
        message = f'Dry-run found {len(events)} weekly slots.'
    else:
        message = f'Created {len(events)} events.'
    return ScheduleResult(events=events, message=message, dry_run=dry_run)


def minutes_to_12h(minutes):
    if minutes is None:
        return ''
    hours, mins = divmod(int(minutes), 60)
    period = 'PM' if hours % 24 >= 12 else 'AM'
    return f'{(hours + 11) % 12 + 1}:{mins:02d} {period}'


def event_days(event):
    days = event.days_of_week or ([event.day] if event.day is not None else [])
    return ', '.join(DAY_NAMES[d][:3] for d in days if 0 <= d < 7)
