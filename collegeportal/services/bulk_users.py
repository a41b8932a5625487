import csv
import io

CSV_HEADER = ('username', 'email', 'password', 'role', 'faculty', 'batch')

SAMPLE_USERS = (
    {'username': 'john doe', 'email': 'john.1@gpkmc.edu.np', 'password': 'Password@123', 'role': 'student',
     'faculty': 'Bachelor of Computer Application', 'batch': 'BCA_2029'},
    {'username': 'jane smith', 'email': 'jane.2@gpkmc.edu.np', 'password': 'Password@123', 'role': 'student',
     'faculty': 'Bachelor of Computer Application', 'batch': 'BCA_2027'},
    {'username': 'teachermike', 'email': 'teachermike@gpkmc.edu.np', 'password': 'Password@123',
     'role': 'teacher', 'faculty': '', 'batch': ''},
    {'username': 'adminjane', 'email': 'adminjane@gpkmc.edu.np', 'password': 'Password@123', 'role': 'admin',
     'faculty': '', 'batch': ''},
)


def sample_csv(users=SAMPLE_USERS):
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator='\r\n')
    buf.write(','.join(CSV_HEADER) + '\r\n')
    for user in users:
        writer.writerow([user.get(field, '') for field in CSV_HEADER])
    return buf.getvalue().rstrip('\r\n')


def row_payload(row):
    """Trimmed request body for one form row; faculty/batch only for students."""
    data = {
        'username': (row.get('username') or '').strip(),
        'email': (row.get('email') or '').strip(),
        'password': (row.get('password') or '').strip(),
        'role': (row.get('role') or '').strip(),
    }
    if data['role'] == 'student':
        for key in ('faculty', 'batch'):
            value = (row.get(key) or '').strip()
            if value:
                data[key] = value
    return data


def rows_payload(rows):
    return [row_payload(row) for row in rows]


def row_error(payload):
    """``(row_index, field, message)`` when the backend pinned the failure to a row."""
    if not isinstance(payload, dict):
        return None
    index, field, message = payload.get('rowIndex'), payload.get('field'), payload.get('message')
    if isinstance(index, int) and field and message:
        return index, field, message
    return None
