"""Flask configuration."""
import secrets
import os

#################### General config for app ####################
BASE_URL = os.environ.get('BASE_URL', 'http://localhost:5000')
"""Used to build the links in verification and password reset emails."""

SECRET_KEY = os.environ.get('SECRET_KEY', secrets.token_urlsafe(16))
"""Sets the `Flask` secret key used to sign the session cookie."""

SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SECURE = bool(int(os.environ.get('SESSION_COOKIE_SECURE', '0')))


#################### Database ####################
SQLALCHEMY_DATABASE_URI = os.environ.get('SQLALCHEMY_DATABASE_URI',
                                         'sqlite:///noteboard.db')
SQLALCHEMY_TRACK_MODIFICATIONS = False

CREATE_DB = bool(int(os.environ.get('CREATE_DB', 0)))
"""Create the tables on startup."""


#################### Accounts ####################
REQUIRE_EMAIL_VERIFICATION = \
    bool(int(os.environ.get('REQUIRE_EMAIL_VERIFICATION', '1')))
"""New accounts must verify their email address before they can be used.

If off, accounts are usable right after registration and email is optional.
"""

VERIFICATION_TOKEN_TTL = int(os.environ.get('VERIFICATION_TOKEN_TTL', 86400))
"""Seconds an email verification token stays valid."""

PASSWORD_RESET_TOKEN_TTL = int(os.environ.get('PASSWORD_RESET_TOKEN_TTL',
                                              3600))
"""Seconds a password reset token stays valid."""

BCRYPT_ROUNDS = int(os.environ.get('BCRYPT_ROUNDS', 12))
"""Cost factor for newly hashed passwords."""


#################### Mail ####################
MAIL_SERVER = os.environ.get('MAIL_SERVER', 'localhost')
MAIL_PORT = int(os.environ.get('MAIL_PORT', 25))
MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER',
                                     'noreply@localhost')
MAIL_SUPPRESS_SEND = bool(int(os.environ.get('MAIL_SUPPRESS_SEND', '0')))
"""Render messages but do not send them. Useful for testing, dev."""


#################### Logging ####################
LOGLEVEL = os.environ.get('LOGLEVEL', 'INFO')
LOG_JSON = bool(int(os.environ.get('LOG_JSON', '0')))
"""Write log records as JSON objects, one per line."""
