"""
WTForms Form Classes for the Relocation Portal

Forms are bound to JSON request bodies (Flask-WTF wraps ``request.get_json()``
for JSON requests). CSRF is disabled per form because the API authenticates
with bearer tokens or an HTTP-only cookie rather than a session form token.
"""

from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, PasswordField, StringField, TextAreaField
from wtforms.validators import AnyOf, DataRequired, Email, Length, Optional, Regexp

from portal.domain.content_policy import (
    CATEGORY_DESCRIPTION_MAX,
    CATEGORY_NAME_MAX,
    ESTIMATED_DURATIONS,
    ESTIMATED_TIME_FRAMES,
    TASK_DESCRIPTION_MAX,
    TASK_TITLE_MAX,
)
from portal.domain.enums import LEGACY_TIER_NAMES, Difficulty, NotificationPriority, NotificationType, PackageTier


PACKAGE_CHOICES = tuple(p.value for p in PackageTier) + tuple(LEGACY_TIER_NAMES)


class JsonForm(FlaskForm):
    """Base for API forms: no CSRF token, first error message helper."""

    class Meta:
        csrf = False

    def first_error(self):
        for field_name, messages in self.errors.items():
            if messages:
                return messages[0]
        return 'Invalid request'


class SignupForm(JsonForm):
    first_name = StringField('First name', validators=[
        DataRequired(message='First name is required'),
        Length(min=2, max=80, message='First name must be at least 2 characters'),
    ])
    last_name = StringField('Last name', validators=[Length(max=80)])
    email = StringField('Email', validators=[
        DataRequired(message='Email is required'),
        Email(message='Please provide a valid email address'),
        Length(max=255),
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Password is required'),
        Length(min=6, message='Password must be at least 6 characters'),
    ])


class SigninForm(JsonForm):
    email = StringField('Email', validators=[
        DataRequired(message='Please provide email and password'),
        Email(message='Please provide a valid email address'),
    ])
    password = PasswordField('Password', validators=[
        DataRequired(message='Please provide email and password'),
    ])


class ProfileForm(JsonForm):
    first_name = StringField('First name', validators=[
        Optional(),
        Length(min=2, max=80, message='First name must be at least 2 characters'),
    ])
    last_name = StringField('Last name', validators=[Optional(), Length(max=80)])
    phone_number = StringField('Phone number', validators=[
        Optional(),
        Regexp(r'^[6-9]\d{9}$', message='Please provide a valid 10-digit phone number'),
    ])


class ContactForm(JsonForm):
    """Contact form for customer enquiries"""

    name = StringField('Name', validators=[DataRequired(message='Missing required fields'), Length(max=100)])
    email = StringField('Email', validators=[
        DataRequired(message='Missing required fields'),
        Email(message='Invalid email format'),
    ])
    phone = StringField('Phone', validators=[DataRequired(message='Missing required fields'), Length(max=20)])
    subject = StringField('Subject', validators=[DataRequired(message='Missing required fields'), Length(max=200)])
    message = TextAreaField('Message', validators=[
        DataRequired(message='Missing required fields'),
        Length(max=2000, message='Message must be 2000 characters or less'),
    ])


class CategoryForm(JsonForm):
    display_name = StringField('Display name', validators=[
        DataRequired(message=f'Display name is required and must be {CATEGORY_NAME_MAX} characters or less'),
        Length(max=CATEGORY_NAME_MAX, message=f'Display name is required and must be {CATEGORY_NAME_MAX} characters or less'),
    ])
    description = TextAreaField('Description', validators=[
        Optional(),
        Length(max=CATEGORY_DESCRIPTION_MAX, message=f'Description must be {CATEGORY_DESCRIPTION_MAX} characters or less'),
    ])
    icon = StringField('Icon', validators=[Optional(), Length(max=50)])
    color = StringField('Color', validators=[Optional(), Length(max=20)])
    estimated_time_frame = StringField('Estimated time frame', validators=[
        Optional(),
        AnyOf(ESTIMATED_TIME_FRAMES, message='Invalid estimated time frame'),
    ])


class TaskForm(JsonForm):
    title = StringField('Title', validators=[
        DataRequired(message='Title, description, and category are required'),
        Length(max=TASK_TITLE_MAX, message=f'Title must be {TASK_TITLE_MAX} characters or less'),
    ])
    description = TextAreaField('Description', validators=[
        DataRequired(message='Title, description, and category are required'),
        Length(max=TASK_DESCRIPTION_MAX, message=f'Description must be {TASK_DESCRIPTION_MAX} characters or less'),
    ])
    category_id = IntegerField('Category', validators=[
        DataRequired(message='Title, description, and category are required'),
    ])
    estimated_duration = StringField('Estimated duration', validators=[
        Optional(),
        AnyOf(ESTIMATED_DURATIONS, message='Invalid estimated duration'),
    ])
    difficulty = StringField('Difficulty', default=Difficulty.MEDIUM, validators=[
        Optional(),
        AnyOf(Difficulty.ALL, message='Invalid difficulty'),
    ])
    is_required = BooleanField('Required')


class PackageAssignmentForm(JsonForm):
    package = StringField('Package', validators=[
        DataRequired(message='Invalid package type'),
        AnyOf(PACKAGE_CHOICES, message='Invalid package type'),
    ])


class CustomNotificationForm(JsonForm):
    title = StringField('Title', validators=[
        DataRequired(message='Title and message are required'),
        Length(max=100, message='Title must be 100 characters or less'),
    ])
    message = TextAreaField('Message', validators=[
        DataRequired(message='Title and message are required'),
        Length(max=500, message='Message must be 500 characters or less'),
    ])
    type = StringField('Type', default=NotificationType.INFO, validators=[
        Optional(),
        AnyOf(NotificationType.ALL, message='Invalid notification type'),
    ])
    priority = StringField('Priority', default=NotificationPriority.MEDIUM, validators=[
        Optional(),
        AnyOf(NotificationPriority.ALL, message='Invalid priority level'),
    ])
    action_url = StringField('Action URL', validators=[Optional(), Length(max=500)])
