"""Forms for account requests."""

from wtforms import Form, StringField, PasswordField, TextAreaField
from wtforms.validators import DataRequired, Email, Length, Regexp, \
    optional, ValidationError


class RegistrationForm(Form):
    """User registration form."""

    username = StringField('Username', validators=[
        DataRequired(), Length(max=50),
        Regexp(r'^[^,\s]+$',
               message='Usernames may not contain commas or spaces')
    ])
    email = StringField('Email address',
                        validators=[optional(), Email(), Length(max=255)])
    password = PasswordField('Password', validators=[DataRequired()])
    confirm_password = PasswordField('Re-enter password',
                                     validators=[DataRequired()])

    def validate_password(self, field: PasswordField) -> None:
        """Verify that the password is the same in both fields."""
        if self.password.data != self.confirm_password.data:
            raise ValidationError('Passwords do not match')


class LoginForm(Form):
    """Log in with username and password."""

    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])


class EmailForm(Form):
    """Ask for something to be sent to an email address."""

    email = StringField('Email address', validators=[DataRequired(), Email()])


class ResetPasswordForm(Form):
    """Choose a new password with a reset token."""

    token = StringField('Token', validators=[DataRequired()])
    new_password = PasswordField('New password', validators=[DataRequired()])
    confirm_password = PasswordField('Re-enter password',
                                     validators=[DataRequired()])

    def validate_new_password(self, field: PasswordField) -> None:
        """Verify that the password is the same in both fields."""
        if self.new_password.data != self.confirm_password.data:
            raise ValidationError('Passwords do not match')


class ProfileForm(Form):
    """Profile fields; any of them may be left out."""

    display_name = StringField('Display name',
                               validators=[optional(), Length(max=100)])
    biography = TextAreaField('Biography',
                              validators=[optional(), Length(max=500)])
    avatar = StringField('Avatar', validators=[optional(), Length(max=255)])


class BanEmailForm(Form):
    """Add an address to the ban registry."""

    email = StringField('Email address', validators=[DataRequired(), Email()])
    reason = StringField('Reason', validators=[optional(), Length(max=255)])
