ROLE_FILTERS = ('all', 'teacher', 'student')
STATUS_FILTERS = ('pending', 'approved', 'rejected', 'cancelled', 'all')

DAY_PART_LABELS = {'first_half': 'First Half', 'second_half': 'Second Half'}
TYPE_LABELS = {
    'sick': 'Sick Leave',
    'emergency': 'Emergency Leave',
    'function': 'Function/Program',
    'puja': 'Puja/Worship',
    'personal': 'Personal Work',
    'other': 'Other',
}


def normalize_filters(role, status):
    role = role if role in ROLE_FILTERS else 'all'
    status = status if status in STATUS_FILTERS else 'pending'
    return role, status


def list_leaves(api, role='all', status='pending'):
    # Pending requests come from the older dedicated endpoint.
    if status == 'pending':
        return api.pending_leaves(role)
    return api.leave_requests(role, status)


def day_part_label(day_part):
    return DAY_PART_LABELS.get(day_part, 'Full Day')


def type_label(leave_type):
    return TYPE_LABELS.get(leave_type, leave_type)


def request_payload(form):
    return {
        'leaveDate': form.leave_date.data.isoformat(),
        'dayPart': form.day_part.data,
        'type': form.type.data,
        'reason': (form.reason.data or '').strip(),
    }
