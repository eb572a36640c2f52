"""Controllers for registration, login and account recovery."""

from typing import Optional
from http import HTTPStatus
import logging

from werkzeug.datastructures import MultiDict

from .. import accounts, domain
from ..exceptions import TokenInvalidOrExpired, ValidationError
from . import Response, validate, account_to_json
from .forms import RegistrationForm, LoginForm, EmailForm, ResetPasswordForm

logger = logging.getLogger(__name__)

CHECK_INBOX = 'If that address belongs to an account, an email is on its way.'
INVALID_TOKEN = 'Invalid or expired token'


def register(params: MultiDict) -> Response:
    """Handle a registration request."""
    form = RegistrationForm(params)
    validate(form)
    logger.debug('Registration form is valid')
    account = accounts.register(form.username.data, form.password.data,
                                form.email.data or None)
    data = account_to_json(account, private=True)
    if account.email_verified:
        data['message'] = 'Registration successful.'
    else:
        data['message'] = 'Registration successful. Please check your ' \
                          'email to verify your account.'
    return data, HTTPStatus.CREATED, {}


def login(params: MultiDict) -> Response:
    """
    Check credentials.

    On success the data is the :class:`.domain.Identity` to keep in the
    session, as a dict.
    """
    form = LoginForm(params)
    validate(form)
    identity = accounts.login(form.username.data, form.password.data)
    logger.debug('Account %s logged in', identity.user_id)
    return domain.to_dict(identity), HTTPStatus.OK, {}


def logout(identity: Optional[domain.Identity] = None) -> Response:
    if identity is not None:
        logger.debug('Account %s logged out', identity.user_id)
    return {'message': 'Logged out'}, HTTPStatus.OK, {}


def verify_email(params: MultiDict) -> Response:
    token = params.get('token')
    if not token:
        raise ValidationError('token: This field is required.')
    if not accounts.verify_email(token):
        raise TokenInvalidOrExpired(INVALID_TOKEN)
    return {'message': 'Email verified. You can now log in.'}, \
        HTTPStatus.OK, {}


def resend_verification(params: MultiDict) -> Response:
    """
    Send a new verification email.

    The response is the same whether or not anything was sent, so that it
    cannot be used to find out which addresses have accounts.
    """
    form = EmailForm(params)
    validate(form)
    accounts.resend_verification(form.email.data)
    return {'message': CHECK_INBOX}, HTTPStatus.ACCEPTED, {}


def forgot_password(params: MultiDict) -> Response:
    """Send password reset instructions; same response in every case."""
    form = EmailForm(params)
    validate(form)
    accounts.request_password_reset(form.email.data)
    return {'message': CHECK_INBOX}, HTTPStatus.ACCEPTED, {}


def reset_password(params: MultiDict) -> Response:
    form = ResetPasswordForm(params)
    validate(form)
    if not accounts.reset_password(form.token.data, form.new_password.data):
        raise TokenInvalidOrExpired(INVALID_TOKEN)
    return {'message': 'Password changed. You can now log in.'}, \
        HTTPStatus.OK, {}
