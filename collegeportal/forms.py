from datetime import date

from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField, MultipleFileField
from wtforms import (
    BooleanField, DateField, DateTimeLocalField, FieldList, FloatField, Form, FormField, HiddenField, IntegerField,
    PasswordField, SelectField, SelectMultipleField, StringField, SubmitField, TextAreaField,
)
from wtforms.validators import DataRequired, EqualTo, Length, NumberRange, Optional, Regexp
from pydantic.alias_generators import to_camel

EMAIL = Regexp(r'[^@]+@[^@]+\.[^@]+', message='Invalid email address')

ROLE_CHOICES = [('student', 'Student'), ('teacher', 'Teacher'), ('admin', 'Admin'), ('superadmin', 'Superadmin')]
LEAVE_TYPE_CHOICES = [
    ('sick', 'Sick Leave'),
    ('emergency', 'Emergency Leave'),
    ('function', 'Function/Program'),
    ('puja', 'Puja/Worship'),
    ('personal', 'Personal Work'),
    ('other', 'Other'),
]
DAY_PART_CHOICES = [('full', 'Full Day'), ('first_half', 'First Half'), ('second_half', 'Second Half')]
WEEKDAY_CHOICES = list(enumerate(['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']))


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), EMAIL])
    password = PasswordField('Password', validators=[DataRequired()])
    remember = BooleanField('Remember me')
    submit = SubmitField('Login')


class ForgotPasswordForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(), EMAIL])
    submit = SubmitField('Send reset link')


class ResetPasswordForm(FlaskForm):
    token = HiddenField(validators=[DataRequired()])
    password = PasswordField('New password', validators=[DataRequired(), Length(min=8)])
    confirm = PasswordField('Confirm password', validators=[EqualTo('password', message='Passwords must match')])
    submit = SubmitField('Reset password')


class ChangePasswordForm(FlaskForm):
    current_password = PasswordField('Current password', validators=[DataRequired()])
    new_password = PasswordField('New password', validators=[DataRequired(), Length(min=8)])
    confirm = PasswordField('Confirm password', validators=[EqualTo('new_password', message='Passwords must match')])
    submit = SubmitField('Update password')


class ConfirmForm(FlaskForm):
    submit = SubmitField('Confirm')


class RejectLeaveForm(ConfirmForm):
    reason = TextAreaField('Reason', validators=[Optional(), Length(max=500)])


class FacultyForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired()])
    code = StringField('Code', validators=[DataRequired()])
    program_level = SelectField('Program level', choices=[('bachelor', 'Bachelor'), ('master', 'Master')])
    type = SelectField('Type', choices=[('semester', 'Semester'), ('yearly', 'Yearly')])
    total_semesters_or_years = IntegerField('Total semesters/years', validators=[DataRequired(), NumberRange(min=1)])
    description = TextAreaField('Description', validators=[Optional()])
    submit = SubmitField('Save')


class BatchForm(FlaskForm):
    batchname = StringField('Batch name', validators=[DataRequired()])
    faculty = SelectField('Faculty', validators=[DataRequired()])
    start_year = IntegerField('Start year', validators=[DataRequired(), NumberRange(min=1990, max=2200)])
    end_year = IntegerField('End year', validators=[Optional(), NumberRange(min=1990, max=2200)])
    current_semester_or_year = IntegerField('Current semester/year', validators=[Optional(), NumberRange(min=1)])
    is_completed = BooleanField('Completed')
    submit = SubmitField('Save')


class BatchPeriodForm(FlaskForm):
    semester_or_year = SelectField('Semester/year', validators=[DataRequired()])
    start_date = DateField('Start date', validators=[Optional()])
    end_date = DateField('End date', validators=[Optional()])
    status = SelectField('Status', choices=[('not_started', 'Not started'), ('ongoing', 'Ongoing'),
                                            ('completed', 'Completed')])
    description = TextAreaField('Description', validators=[Optional()])
    submit = SubmitField('Save')

    def validate(self, extra_validators=None):
        if not super().validate(extra_validators):
            return False
        if self.start_date.data and self.end_date.data and self.start_date.data > self.end_date.data:
            self.end_date.errors.append('End date must be on or after the start date.')
            return False
        return True


class SemesterForm(FlaskForm):
    faculty = SelectField('Faculty', validators=[DataRequired()])
    name = StringField('Name', validators=[DataRequired()])
    semester_number = IntegerField('Semester number', validators=[Optional(), NumberRange(min=1)])
    year_number = IntegerField('Year number', validators=[Optional(), NumberRange(min=1)])
    description = TextAreaField('Description', validators=[Optional()])
    submit = SubmitField('Save')


class CourseForm(FlaskForm):
    name = StringField('Name', validators=[DataRequired()])
    code = StringField('Code', validators=[DataRequired()])
    type = SelectField('Type', choices=[('compulsory', 'Compulsory'), ('elective', 'Elective')])
    semester_or_year = SelectField('Semester/year', validators=[DataRequired()])
    description = TextAreaField('Description', validators=[Optional()])
    submit = SubmitField('Save')


class CourseInstanceForm(FlaskForm):
    course = SelectField('Course', validators=[DataRequired()])
    batch = SelectField('Batch', validators=[DataRequired()])
    teacher = SelectField('Teacher', validators=[DataRequired()])
    is_active = BooleanField('Active', default=True)
    submit = SubmitField('Create')


class CourseInstanceEditForm(FlaskForm):
    teacher = SelectField('Teacher', validators=[Optional()])
    is_active = BooleanField('Active')
    submit = SubmitField('Save changes')
    discard = SubmitField('Discard')


class UserEditForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired()])
    email = StringField('Email', validators=[DataRequired(), EMAIL])
    role = SelectField('Role', choices=ROLE_CHOICES)
    is_active = BooleanField('Active')
    is_verified = BooleanField('Verified')
    submit = SubmitField('Save')


class BulkUserRowForm(Form):
    username = StringField('Username', validators=[Optional()])
    email = StringField('Email', validators=[Optional()])
    password = PasswordField('Password', validators=[Optional()])
    role = SelectField('Role', choices=ROLE_CHOICES, default='student')
    faculty = StringField('Faculty', validators=[Optional()])
    batch = StringField('Batch', validators=[Optional()])


class BulkUserForm(FlaskForm):
    rows = FieldList(FormField(BulkUserRowForm), min_entries=1)
    csv_file = FileField('CSV file', validators=[FileAllowed(['csv'], 'CSV files only')])
    add_row = SubmitField('Add row')
    submit = SubmitField('Create users')


class LeaveRequestForm(FlaskForm):
    leave_date = DateField('Date', validators=[DataRequired()])
    day_part = SelectField('Day part', choices=DAY_PART_CHOICES)
    type = SelectField('Type', choices=LEAVE_TYPE_CHOICES)
    reason = TextAreaField('Reason', validators=[Optional(), Length(max=1000)])
    submit = SubmitField('Request leave')


class AnnouncementForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    content = TextAreaField('Content', validators=[DataRequired()])
    submit = SubmitField('Publish')


class MaterialForm(FlaskForm):
    content = TextAreaField('Content', validators=[DataRequired()])
    links = TextAreaField('Links (one per line)', validators=[Optional()])
    files = MultipleFileField('Files')
    submit = SubmitField('Post material')


class AssignmentForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    content = TextAreaField('Instructions', validators=[Optional()])
    points = IntegerField('Points', default=100, validators=[DataRequired(), NumberRange(min=1, max=1000)])
    due_date = DateTimeLocalField('Due', format='%Y-%m-%dT%H:%M', validators=[DataRequired()])
    links = TextAreaField('Links (one per line)', validators=[Optional()])
    documents = MultipleFileField('Attachments')
    submit = SubmitField('Assign')


class GradeForm(FlaskForm):
    submission_id = HiddenField(validators=[DataRequired()])
    grade = FloatField('Grade', validators=[Optional()])
    feedback = TextAreaField('Feedback', validators=[Optional(), Length(max=2000)])
    submit = SubmitField('Save grade')


class SubmissionForm(FlaskForm):
    files = MultipleFileField('Your work')
    submit = SubmitField('Turn in')


class QuizQuestionForm(Form):
    text = StringField('Question', validators=[Optional()])
    options = StringField('Options (comma separated)', validators=[Optional()])
    points = IntegerField('Points', default=1, validators=[Optional(), NumberRange(min=0)])


class QuizForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired()])
    description = TextAreaField('Description', validators=[Optional()])
    due_date = DateField('Due date', validators=[Optional()])
    questions = FieldList(FormField(QuizQuestionForm), min_entries=1)
    submit = SubmitField('Create quiz')


class ScheduleRowForm(Form):
    course_instance_id = HiddenField()
    sessions_per_week = IntegerField('Sessions/week', default=2, validators=[Optional(), NumberRange(min=0, max=14)])
    duration_minutes = IntegerField('Minutes', default=60, validators=[Optional(), NumberRange(min=0, max=480)])
    allowed_days = SelectMultipleField('Days', choices=WEEKDAY_CHOICES, coerce=int)


class ScheduleForm(FlaskForm):
    start_date = DateField('Start date', validators=[Optional()])
    end_date = DateField('End date', validators=[Optional()])
    rows = FieldList(FormField(ScheduleRowForm))
    dry_run = SubmitField('Dry-Run')
    commit = SubmitField('Generate schedule')


def form_payload(form, skip=('submit', 'discard', 'csrf_token')):
    """Request body for a flat form: camelCase keys, trimmed strings, ISO dates."""
    data = {}
    for field in form:
        if field.name in skip:
            continue
        value = field.data
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, str):
            value = value.strip()
        data[to_camel(field.name)] = value
    return data
