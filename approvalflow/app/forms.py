from __future__ import annotations
from flask_wtf import FlaskForm
from wtforms import Form, StringField, PasswordField, TextAreaField, BooleanField, SelectField, FieldList, FormField
from wtforms.validators import DataRequired, Length, Email, Optional, EqualTo

from .services.organizations import INDUSTRIES, COMPANY_SIZES
from .services.roles import DEFAULT_ROLES
from .services.workflows import DEPARTMENTS

ROLE_CHOICES = [(name, name.capitalize()) for name in DEFAULT_ROLES]


class SignUpForm(FlaskForm):
    name = StringField("name", validators=[DataRequired(), Length(max=255)])
    email = StringField("email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("password", validators=[DataRequired(), Length(min=6, message="Password must be at least 6 characters")])
    confirm = PasswordField("confirm", validators=[DataRequired(), EqualTo("password", message="Passwords do not match")])


class SignInForm(FlaskForm):
    email = StringField("email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("password", validators=[DataRequired()])


class ResendConfirmationForm(FlaskForm):
    email = StringField("email", validators=[DataRequired(), Email(), Length(max=255)])


# Onboarding wizard, one form per step
class OrgDetailsForm(FlaskForm):
    name = StringField("name", validators=[DataRequired(), Length(min=2, max=128)])
    industry = SelectField("industry", choices=[(i, i) for i in INDUSTRIES], validators=[DataRequired()])
    size = SelectField("size", choices=[(s, s) for s in COMPANY_SIZES], validators=[DataRequired()])
    description = TextAreaField("description", validators=[Optional(), Length(max=2000)])


class AdminProfileForm(FlaskForm):
    admin_name = StringField("admin_name", validators=[DataRequired(), Length(max=255)])
    admin_email = StringField("admin_email", validators=[DataRequired(), Email(), Length(max=255)])
    admin_title = StringField("admin_title", validators=[DataRequired(), Length(max=128)])


class InviteUserForm(FlaskForm):
    email = StringField("email", validators=[DataRequired(), Email(), Length(max=255)])
    name = StringField("name", validators=[Optional(), Length(max=255)])
    role = SelectField("role", choices=ROLE_CHOICES, default="user", validators=[DataRequired()])


class ChangeRoleForm(FlaskForm):
    role = SelectField("role", choices=ROLE_CHOICES, validators=[DataRequired()])


class AcceptInvitationForm(FlaskForm):
    email = StringField("email", validators=[DataRequired(), Email(), Length(max=255)])
    name = StringField("name", validators=[DataRequired(message="Name is required"), Length(max=255)])
    password = PasswordField("password", validators=[DataRequired(), Length(min=6, message="Password must be at least 6 characters")])
    confirm_password = PasswordField(
        "confirm_password", validators=[DataRequired(), EqualTo("password", message="Passwords do not match")]
    )


class WorkflowStepForm(Form):
    # nested inside WorkflowForm; the parent form carries the CSRF token
    name = StringField("name", validators=[DataRequired(), Length(max=200)])
    approver_email = StringField("approver_email", validators=[DataRequired(), Email(), Length(max=255)])
    required = BooleanField("required", default=True)


class WorkflowForm(FlaskForm):
    name = StringField("name", validators=[DataRequired(), Length(max=200)])
    # industry templates may name departments outside the default list
    department = SelectField(
        "department", choices=[("", "Select department")] + [(d, d) for d in DEPARTMENTS], validate_choice=False, validators=[Optional()]
    )
    type = StringField("type", validators=[Optional(), Length(max=128)])
    description = StringField("description", validators=[Optional(), Length(max=2000)])
    steps = FieldList(FormField(WorkflowStepForm), min_entries=1)
