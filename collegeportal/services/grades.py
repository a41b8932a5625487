"""Gradebook views for teachers and the per-class grade list for students.

A student with no grade cell for an item was never assigned it. Such cells
are left blank and count toward neither the row total nor the filters.
"""
import csv
import io
import math
from dataclasses import dataclass, field

GRADE_FILTERS = ('all', 'ungraded', 'missing')
MY_GRADE_STATUSES = ('all', 'graded', 'submitted', 'missing')
MY_GRADE_SORTS = ('due', 'title', 'score')


@dataclass
class GradebookRow:
    student: object
    cells: list
    earned: float = 0
    possible: float = 0

    @property
    def percent(self):
        return self.earned / self.possible * 100 if self.possible > 0 else 0


@dataclass
class GradebookView:
    items: list = field(default_factory=list)
    rows: list = field(default_factory=list)


def cell_status(cell):
    if cell is None:
        return None
    if cell.status == 'missing':
        return 'missing'
    if cell.status == 'submitted' or cell.score is None:
        return 'pending'
    return 'graded'


def stars(percent):
    """0-5 stars for a percentage, rounding halves up."""
    safe = max(0, min(100, percent or 0))
    return math.floor(safe / 20 + 0.5)


def _matches(student, query):
    return query in (student.username or '').lower() or query in (student.email or '').lower()


def build_gradebook(book, grade_filter='all', search=''):
    if grade_filter not in GRADE_FILTERS:
        grade_filter = 'all'
    query = (search or '').strip().lower()
    roster = [student for student in book.roster if not query or _matches(student, query)]
    roster.sort(key=lambda student: student.username or '')
    cells = {(cell.student_id, cell.item_id): cell for cell in book.grades}

    def shown(item):
        if grade_filter == 'all':
            return True
        for student in book.roster:
            cell = cells.get((student.id, item.id))
            if cell is None:
                continue
            if grade_filter == 'missing' and cell.status == 'missing':
                return True
            if grade_filter == 'ungraded' and (cell.status == 'submitted' or cell.score is None):
                return True
        return False

    items = [item for item in book.items if shown(item)]
    rows = []
    for student in roster:
        row = GradebookRow(student, [cells.get((student.id, item.id)) for item in items])
        for cell in row.cells:
            if cell is None:
                continue
            row.possible += cell.max_points or 0
            if cell.score is not None:
                row.earned += cell.score
        rows.append(row)
    return GradebookView(items, rows)


def _number(value):
    return f'{value:g}'


def gradebook_csv(view):
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator='\n')
    writer.writerow(['Student', 'Email'] + [f'{item.title} ({_number(item.max_points)})' for item in view.items]
                    + ['Total', 'Out of', '%'])
    for row in view.rows:
        scores = ['' if cell is None or cell.score is None else _number(cell.score) for cell in row.cells]
        writer.writerow([row.student.username or '', row.student.email or ''] + scores
                        + [_number(row.earned), _number(row.possible), f'{row.percent:.1f}%'])
    return buf.getvalue().rstrip('\n')


def my_grade_rows(grades, status='all', sort='due'):
    rows = list(grades.items)
    if status in MY_GRADE_STATUSES and status != 'all':
        rows = [row for row in rows if row.my.status == status]
    if sort == 'title':
        rows.sort(key=lambda row: row.title)
    elif sort == 'score':
        rows.sort(key=lambda row: -math.inf if row.my.score is None else row.my.score, reverse=True)
    else:
        # undated items last
        rows.sort(key=lambda row: (row.due_at is None, row.due_at.timestamp() if row.due_at else 0))
    return rows


def overall_percent(grades):
    totals = grades.summary
    return totals.earned / totals.possible * 100 if totals.possible > 0 else 0


def grade_error(value, max_points):
    """Why a grade can't be saved, or None. A blank grade clears it."""
    if value is None:
        return None
    if value < 0 or value > max_points:
        return f'Grade must be between 0 and {_number(max_points)}'
    return None
