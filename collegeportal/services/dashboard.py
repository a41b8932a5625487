from dataclasses import dataclass


@dataclass
class StatCard:
    title: str
    value: int
    sub: str = ''


def total_cards(summary):
    totals = summary.totals
    return [
        StatCard('Total Users', totals.users),
        StatCard('Students', totals.students),
        StatCard('Teachers', totals.teachers),
        StatCard('Admins', totals.admins + totals.superadmins),
    ]


def active_share(summary):
    totals = summary.totals
    return round(totals.active_users / max(1, totals.users) * 100)


def entity_cards(summary):
    entities = summary.entities
    return [
        StatCard('Faculties', entities.faculties),
        StatCard('Batches', entities.batches),
        StatCard('Courses', entities.courses),
        StatCard('Active Users', summary.totals.active_users, f'{active_share(summary)}% active'),
    ]


def load_dashboard(api):
    summary = api.dashboard_summary()
    return {
        'summary': summary,
        'total_cards': total_cards(summary),
        'entity_cards': entity_cards(summary),
        'by_faculty': api.students_by_faculty(),
        'attendance': api.attendance_overview(days=14),
        'recent_leaves': api.recent_leaves(limit=5, status='pending'),
    }
