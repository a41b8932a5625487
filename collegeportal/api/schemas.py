"""Response schemas for the college backend.

Every payload the portals render is validated into one of these models at
the client boundary. The backend speaks camelCase and Mongo-style ``_id``;
the models expose snake_case attributes.
"""
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

ROLES = ('student', 'teacher', 'admin', 'superadmin')
Role = Literal['student', 'teacher', 'admin', 'superadmin']
LeaveStatus = Literal['pending', 'approved', 'rejected', 'cancelled']


def _to_day(value):
    # '2025-03-01T00:00:00.000Z' -> '2025-03-01'
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


def _as_ref(value):
    if isinstance(value, str):
        return {'_id': value}
    return value


def _as_id(value):
    if isinstance(value, dict):
        return value.get('_id') or value.get('id')
    return value


Day = Annotated[date, BeforeValidator(_to_day)]


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')


class Document(Record):
    id: str = Field(validation_alias=AliasChoices('_id', 'id'))


class Ref(Document):
    """A populated (or bare id) reference to another document."""

    name: str = ''
    code: str = ''
    batchname: str = ''
    username: str = ''
    email: str = ''

    @property
    def label(self):
        return self.name or self.batchname or self.username or self.code or self.id

    @property
    def person_label(self):
        """Display name of a user reference; a bare id shows as a dash."""
        return self.name or self.username or '—'


RefField = Annotated[Ref, BeforeValidator(_as_ref)]
IdField = Annotated[Optional[str], BeforeValidator(_as_id)]


# --- identity ---------------------------------------------------------------

class UserProfile(Document):
    username: str
    email: str = ''
    role: Role


class LoginResponse(Record):
    message: str = ''
    token: Optional[str] = None
    user: Optional[UserProfile] = None


class UserRef(Document):
    username: str = ''
    email: str = ''
    role: Optional[str] = None


class PortalUser(Document):
    username: str
    email: str
    role: Role
    is_active: bool = True
    is_verified: bool = False
    created_at: Optional[datetime] = None


# --- academic structure -----------------------------------------------------

class Faculty(Document):
    name: str
    code: str
    program_level: Literal['bachelor', 'master'] = 'bachelor'
    type: Literal['semester', 'yearly'] = 'semester'
    total_semesters_or_years: int = 0
    description: str = ''


class Batch(Document):
    batchname: str = ''
    faculty: Optional[RefField] = None
    start_year: Optional[int] = None
    end_year: Optional[int] = None
    is_completed: bool = False
    current_semester_or_year: Optional[int] = None
    slug: str = ''


class BatchPeriod(Document):
    batch: Optional[RefField] = None
    semester_or_year: Optional[RefField] = None
    start_date: Optional[Day] = None
    end_date: Optional[Day] = None
    status: Literal['not_started', 'ongoing', 'completed'] = 'not_started'
    description: str = ''
    slug: str = ''


class SemesterOrYear(Document):
    name: str
    faculty: Optional[RefField] = None
    semester_number: Optional[int] = None
    year_number: Optional[int] = None
    description: str = ''
    courses: List[RefField] = []
    slug: str = ''


class Course(Document):
    name: str
    code: str
    slug: str = ''
    description: str = ''
    type: Literal['compulsory', 'elective'] = 'compulsory'
    semester_or_year: Optional[RefField] = None


class CourseInstance(Document):
    batch: Optional[RefField] = None
    course: Optional[RefField] = None
    teacher: Optional[RefField] = None
    is_active: bool = False
    # only on the single-instance endpoint
    students: List[UserRef] = []
    student_count: Optional[int] = None


# --- leave, feed, notifications ---------------------------------------------

class LeaveItem(Document):
    user: Optional[UserRef] = None
    role: str
    leave_date: Day
    day_part: str = 'full'
    type: str = 'other'
    status: LeaveStatus
    reason: str = ''
    rejection_reason: str = ''
    created_at: Optional[datetime] = None


class Notification(Document):
    title: str = ''
    message: str = ''
    type: str = ''
    is_read: bool = False
    is_archived: bool = False
    created_at: Optional[datetime] = None


class Announcement(Document):
    title: str = ''
    content: str = ''
    is_archived: bool = False
    posted_by: Optional[UserRef] = None
    created_at: Optional[datetime] = None


class MaterialFile(Record):
    filename: str
    url: str
    mimetype: str = ''
    size: Optional[int] = None


class MaterialLink(Record):
    url: str
    title: str = ''
    type: str = ''


class Material(Document):
    title: str = ''
    content: str = ''
    files: List[MaterialFile] = []
    links: List[MaterialLink] = []
    posted_by: Optional[UserRef] = None
    created_at: Optional[datetime] = None


class QuizQuestion(Document):
    text: str = Field('', validation_alias=AliasChoices('text', 'question', 'prompt'))
    options: List[str] = []
    points: float = 1


class Quiz(Document):
    title: str
    description: str = ''
    due_date: Optional[datetime] = None
    questions: List[QuizQuestion] = []


class QuizSubmission(Document):
    student: Optional[UserRef] = None
    status: str = 'submitted'
    score: Optional[float] = None
    submitted_at: Optional[datetime] = None


class QuizStats(Record):
    submitted: int = 0
    graded: int = 0
    average_score: Optional[float] = None


# --- assignments and grades -------------------------------------------------

class Assignment(Document):
    type: str = 'assignment'
    title: str = ''
    content: str = ''
    points: Optional[float] = None
    due_date: Optional[datetime] = None
    accepting_submissions: bool = True
    close_at: Optional[datetime] = None
    topic: IdField = None

    @property
    def max_points(self):
        return self.points if self.points is not None else 100


class TopicRef(Record):
    id: Optional[str] = Field(None, validation_alias=AliasChoices('_id', 'id'))
    title: str = ''


class CourseFeedGroup(Record):
    topic: TopicRef = TopicRef()
    assignments: List[Assignment] = []


class SubmissionFile(Record):
    url: str
    originalname: str = ''
    filetype: str = ''


class AssignmentSubmission(Document):
    student: Optional[UserRef] = None
    files: List[SubmissionFile] = []
    submitted_at: Optional[datetime] = None
    grade: Optional[float] = None
    feedback: str = ''
    status: str = 'submitted'


class SubmissionList(Record):
    assignment: Assignment
    count: int = 0
    submissions: List[AssignmentSubmission] = []


class GradebookItem(Record):
    id: str
    type: str = 'assignment'
    title: str = ''
    max_points: float = 0
    due_at: Optional[datetime] = None
    topic: Optional[str] = None


class GradeCell(Record):
    student_id: str
    item_id: str
    type: str = 'assignment'
    score: Optional[float] = None
    max_points: float = 0
    status: Literal['missing', 'submitted', 'graded'] = 'missing'
    graded_at: Optional[datetime] = None


class Gradebook(Record):
    roster: List[UserRef] = []
    items: List[GradebookItem] = []
    grades: List[GradeCell] = []


class MyGrade(Record):
    score: Optional[float] = None
    percentage: Optional[float] = None
    status: Literal['missing', 'submitted', 'graded'] = 'missing'
    graded_at: Optional[datetime] = None


class MyGradeRow(Record):
    assignment_id: str
    title: str = ''
    topic: Optional[str] = None
    due_at: Optional[datetime] = None
    max_points: float = 0
    my: MyGrade = MyGrade()


class GradeTotals(Record):
    earned: float = 0
    possible: float = 0


class MyGrades(Record):
    items: List[MyGradeRow] = []
    summary: GradeTotals = GradeTotals()


# --- attendance -------------------------------------------------------------

class AttendanceRecord(Record):
    id: Optional[str] = Field(None, validation_alias=AliasChoices('_id', 'id'))
    student: IdField = None
    session: IdField = None
    status: str
    marked_at: Optional[datetime] = None


class AttendanceSession(Record):
    session_id: str


class AttendanceToken(Record):
    token: str
    expires_at: Optional[datetime] = None


class AttendanceMonth(Record):
    year: int
    month: int
    days_in_month: int
    students: List[UserRef] = []
    sessions_by_day: Dict[str, str] = {}
    matrix: Dict[str, Dict[str, Optional[str]]] = {}
    stats: Optional[Dict[str, Any]] = None


# --- schedule ---------------------------------------------------------------

class ScheduleEvent(Record):
    id: Optional[str] = Field(None, validation_alias=AliasChoices('_id', 'id'))
    course_instance: IdField = None
    day: Optional[int] = None
    days_of_week: List[int] = []
    start_minutes: int
    end_minutes: int
    start_date: Optional[Day] = None
    end_date: Optional[Day] = None
    status: str = ''


# --- admin dashboard --------------------------------------------------------

class Totals(Record):
    users: int = 0
    students: int = 0
    teachers: int = 0
    admins: int = 0
    superadmins: int = 0
    active_users: int = 0
    inactive_users: int = 0
    verified_users: int = 0
    unverified_users: int = 0


class Entities(Record):
    faculties: int = 0
    batches: int = 0
    courses: int = 0
    semester_or_years: int = 0


class DashboardSummary(Record):
    totals: Totals
    entities: Entities
    generated_at: Optional[datetime] = None


class GroupItem(Document):
    name: str = ''
    code: str = ''
    slug: str = ''
    count: int = 0
    batchname: str = ''
    start_year: Optional[int] = None
    current_semester_or_year: Optional[int] = None
    is_completed: bool = False


class AttendanceCounts(Record):
    present: int = 0
    absent: int = 0
    late: int = 0
    total: int = 0


class DailyAttendance(AttendanceCounts):
    date: Day


class AttendanceOverview(Record):
    counts: AttendanceCounts
    daily: List[DailyAttendance] = []


class PendingCount(Record):
    count: int = 0
