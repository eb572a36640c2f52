"""
Notification gateway: sends account emails over SMTP.

Sending is best-effort. :func:`send` reports failure as ``False`` and logs
it; it never raises into the operation that asked for the message.
"""

from typing import Any, Dict, Optional
from email.message import EmailMessage
import logging
import smtplib

from flask import current_app, g, render_template
from jinja2 import TemplateError

logger = logging.getLogger(__name__)

VERIFICATION = 'verification'
PASSWORD_RESET = 'password_reset'
BAN_NOTICE = 'ban_notice'


class MailSession(object):
    """An open session with an SMTP service."""

    def __init__(self, host: str = "", port: int = 0,
                 sender: str = "") -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._conn: Optional[smtplib.SMTP] = None

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(host=self._host, port=self._port, timeout=10)

    def send_message(self, to: str, subject: str, body: str) -> None:
        """Send a plain text message, connecting on first use."""
        message = EmailMessage()
        message['From'] = self._sender
        message['To'] = to
        message['Subject'] = subject
        message.set_content(body)
        if self._conn is None:
            self._conn = self._new_connection()
        self._conn.send_message(message)

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.quit()
            except (smtplib.SMTPException, OSError) as e:
                logger.debug('Error closing SMTP connection: %s', e)
            self._conn = None


def get_session() -> MailSession:
    """Get or create a :class:`MailSession` for the current context."""
    if 'mail' not in g:
        config = current_app.config
        g.mail = MailSession(
            host=config.get('MAIL_SERVER', 'localhost'),
            port=int(config.get('MAIL_PORT', 25)),
            sender=config.get('MAIL_DEFAULT_SENDER', 'noreply@localhost')
        )
    return g.mail


def close_session(exception: Optional[BaseException] = None) -> None:
    """Close the SMTP connection of the current context, if any."""
    session = g.pop('mail', None)
    if session is not None:
        session.close()


def init_app(app: Any) -> None:
    app.config.setdefault('MAIL_SERVER', 'localhost')
    app.config.setdefault('MAIL_PORT', 25)
    app.config.setdefault('MAIL_DEFAULT_SENDER', 'noreply@localhost')
    app.config.setdefault('MAIL_SUPPRESS_SEND', False)
    app.teardown_appcontext(close_session)


def link(path: str, token: str) -> str:
    """Build an absolute link carrying a token, e.g. ``/verify-email``."""
    base = current_app.config.get('BASE_URL', 'http://localhost:5000')
    return f'{base.rstrip("/")}{path}?token={token}'


def send(to: str, subject: str, template: str,
         variables: Dict[str, Any]) -> bool:
    """
    Render ``mail/<template>.txt`` and send it to ``to``.

    Returns
    -------
    bool
        ``True`` if the message was handed to the SMTP server (or sending is
        suppressed by configuration), ``False`` otherwise.

    """
    try:
        body = render_template(f'mail/{template}.txt', **variables)
    except TemplateError as e:
        logger.error('Could not render %s email: %s', template, e)
        return False
    if current_app.config.get('MAIL_SUPPRESS_SEND'):
        logger.debug('Suppressed %s email', template)
        return True
    try:
        get_session().send_message(to, subject, body)
    except (smtplib.SMTPException, OSError) as e:
        logger.error('Failed to send %s email: %s', template, e)
        close_session()
        return False
    logger.debug('Sent %s email', template)
    return True
