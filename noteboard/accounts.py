"""
Account lifecycle: registration, verification, password reset and bans.

An account is in one of three states (see :class:`.domain.AccountState`).
Registration creates it ``UNVERIFIED`` when email verification is in use,
:func:`verify_email` makes it ``ACTIVE``, and :func:`ban_user` /
:func:`unban_user` move it in and out of ``BANNED``. Administrator
privileges are a separate flag; an administrator cannot be banned until the
flag is revoked.

Lookups that find nothing are reported as ``False`` or an empty result.
Operations addressed to an account ID that does not exist raise
:class:`.NotFound`.

The identity gates at the bottom of this module (:func:`require_usable`,
:func:`require_admin`) are consulted on every request before notes are
touched, so a ban takes effect on the next request of the banned user.
"""

from typing import List, Optional
from datetime import datetime, timedelta
import logging
import uuid

from flask import current_app
from pytz import UTC

from . import domain, passwords, bans
from .exceptions import NotFound, DuplicateUsername, DuplicateEmail, \
    EmailBanned, CannotBanAdmin, AuthenticationFailed, EmailNotVerified, \
    AccountBanned, Forbidden, Unauthenticated, ValidationError, NotBanned
from .services import mail
from .services.datastore import accounts as store, transaction, now

logger = logging.getLogger(__name__)

VERIFICATION_TOKEN_TTL = 24 * 60 * 60
PASSWORD_RESET_TOKEN_TTL = 60 * 60
SEARCH_LIMIT = 10


def verification_required() -> bool:
    """Whether new accounts must verify their email address."""
    return bool(current_app.config.get('REQUIRE_EMAIL_VERIFICATION', True))


def _current_time() -> datetime:
    return datetime.fromtimestamp(now(), tz=UTC)


def _new_token(ttl: int) -> domain.Token:
    return domain.Token(value=str(uuid.uuid4()),
                        expires=_current_time() + timedelta(seconds=ttl))


def _encode(password: str) -> str:
    rounds = int(current_app.config.get('BCRYPT_ROUNDS',
                                        passwords.DEFAULT_ROUNDS))
    return passwords.encode(password, rounds=rounds)


def _send_verification(account: domain.Account) -> bool:
    assert account.email is not None and account.verification is not None
    return mail.send(account.email, 'Please verify your email address',
                     mail.VERIFICATION,
                     {'name': account.name,
                      'link': mail.link('/verify-email',
                                        account.verification.value)})


def _send_password_reset(account: domain.Account) -> bool:
    assert account.email is not None and account.password_reset is not None
    return mail.send(account.email, 'Reset your password',
                     mail.PASSWORD_RESET,
                     {'name': account.name,
                      'link': mail.link('/reset-password',
                                        account.password_reset.value)})


def _send_ban_notice(account: domain.Account, reason: Optional[str]) -> bool:
    assert account.email is not None
    return mail.send(account.email, 'Your account has been suspended',
                     mail.BAN_NOTICE, {'name': account.name, 'reason': reason})


def register(username: str, password: str,
             email: Optional[str] = None) -> domain.Account:
    """
    Create a new account.

    When email verification is in use the account starts unverified, holds
    a verification token and a message with the verification link is sent.
    Otherwise it is usable right away.

    Parameters
    ----------
    username : str
    password : str
        Plain password as entered; it is encoded before storage.
    email : str or None
        Required when email verification is in use.

    Returns
    -------
    :class:`.domain.Account`

    Raises
    ------
    :class:`.DuplicateUsername`
    :class:`.DuplicateEmail`
    :class:`.EmailBanned`
        If the address is in the ban registry. No account is created.
    :class:`.ValidationError`
        If a required field is missing or the password cannot be encoded.

    """
    username = (username or '').strip()
    email = (email or '').strip() or None
    if not username:
        raise ValidationError('A username is required')
    if ',' in username:
        # Share lists are comma-separated; such a name could never match.
        raise ValidationError('Usernames may not contain commas')
    if email is None and verification_required():
        raise ValidationError('An email address is required')

    if store.username_exists(username):
        raise DuplicateUsername('Username already exists')
    if email is not None and store.email_exists(email):
        raise DuplicateEmail('Email already exists')
    if email is not None and bans.is_banned(email):
        logger.info('Registration refused for a banned email address')
        raise EmailBanned('This email address has been banned')

    credential = _encode(password)
    if verification_required():
        account = domain.Account(
            username=username,
            email=email,
            verification=_new_token(int(current_app.config.get(
                'VERIFICATION_TOKEN_TTL', VERIFICATION_TOKEN_TTL
            )))
        )
    else:
        account = domain.Account(username=username, email=email,
                                 email_verified=True)
    account = store.save(account, credential=credential)
    logger.info('Registered account %s', account.user_id)

    if account.verification is not None and not _send_verification(account):
        logger.warning('Verification email for account %s was not sent',
                       account.user_id)
    return account


def verify_email(token: str) -> bool:
    """
    Mark the account holding ``token`` as verified.

    Returns ``False`` if no account holds the token or it has expired; the
    account is left unchanged in that case.
    """
    account = store.get_by_verification_token(token)
    if account is None or account.verification is None:
        logger.debug('No account holds that verification token')
        return False
    if account.verification.expired(_current_time()):
        logger.info('Verification token for account %s has expired',
                    account.user_id)
        return False
    if store.mark_verified(account.user_id, token) is None:
        logger.info('Verification token for account %s was already used',
                    account.user_id)
        return False
    logger.info('Verified email of account %s', account.user_id)
    return True


def resend_verification(email: str) -> bool:
    """
    Issue a fresh verification token and send it again.

    Returns ``False`` when there is no account with ``email`` and when the
    account is already verified; callers should not tell the two apart to
    the requester. Otherwise returns whether the message was sent.
    """
    account = store.get_by_email(email)
    if account is None:
        logger.info('Verification resend requested for an unknown address')
        return False
    if account.email_verified:
        logger.info('Verification resend requested for verified account %s',
                    account.user_id)
        return False
    account = store.set_verification_token(account.user_id, _new_token(int(
        current_app.config.get('VERIFICATION_TOKEN_TTL',
                               VERIFICATION_TOKEN_TTL)
    )))
    return _send_verification(account)


def request_password_reset(email: str) -> bool:
    """
    Issue a password reset token and send it.

    Returns ``False`` if there is no such account or it is banned. The token
    is stored before sending, so it stays valid even when sending fails.
    """
    account = store.get_by_email(email)
    if account is None or account.is_banned:
        logger.info('Password reset refused')
        return False
    account = store.set_password_reset_token(account.user_id, _new_token(int(
        current_app.config.get('PASSWORD_RESET_TOKEN_TTL',
                               PASSWORD_RESET_TOKEN_TTL)
    )))
    sent = _send_password_reset(account)
    if not sent:
        logger.warning('Password reset email for account %s was not sent',
                       account.user_id)
    return sent


def reset_password(token: str, new_password: str) -> bool:
    """
    Replace the password of the account holding a reset ``token``.

    Returns ``False`` if no account holds the token or it has expired.
    """
    account = store.get_by_password_reset_token(token)
    if account is None or account.password_reset is None:
        logger.debug('No account holds that password reset token')
        return False
    if account.password_reset.expired(_current_time()):
        logger.info('Password reset token for account %s has expired',
                    account.user_id)
        return False
    if store.reset_credential(account.user_id, token,
                              _encode(new_password)) is None:
        logger.info('Password reset token for account %s was already used',
                    account.user_id)
        return False
    logger.info('Password reset for account %s', account.user_id)
    return True


def _authenticate(username: str, password: str) -> Optional[domain.Account]:
    """Get the account matching the credentials, if it is not banned."""
    account = store.get_by_username(username)
    if account is None:
        logger.debug('No account with that username')
        return None
    if account.is_banned:
        logger.info('Banned account %s tried to log in', account.user_id)
        return None
    if not passwords.verify(password, store.get_credential(account.user_id)):
        logger.debug('Password mismatch for account %s', account.user_id)
        return None
    return account


def _record_login(account: domain.Account) -> bool:
    assert account.user_id is not None
    if not store.record_login(account.user_id, _current_time()):
        logger.info('Account %s was banned while logging in',
                    account.user_id)
        return False
    return True


def check_credentials(username: str, password: str) -> bool:
    """
    Check a username and password.

    Banned accounts never pass, whatever the password, including accounts
    banned while the password was being checked. On success the time of
    the login is recorded.
    """
    account = _authenticate(username, password)
    return account is not None and _record_login(account)


def login(username: str, password: str) -> domain.Identity:
    """
    Authenticate, and get the identity to carry in the session.

    The login time is only recorded once every check has passed.

    Raises
    ------
    :class:`.AuthenticationFailed`
        If the credentials do not match or the account is banned.
    :class:`.EmailNotVerified`
        If verification is in use and the account is not yet verified.

    """
    account = _authenticate(username, password)
    if account is None:
        raise AuthenticationFailed('Invalid username or password')
    if verification_required() and not account.email_verified:
        raise EmailNotVerified('Please verify your email address first')
    if not _record_login(account):
        raise AuthenticationFailed('Invalid username or password')
    return identity_of(account)


def identity_of(account: domain.Account) -> domain.Identity:
    """The session payload for a stored account."""
    assert account.user_id is not None
    return domain.Identity(user_id=account.user_id, username=account.username,
                           is_admin=account.is_admin)


def get_account(user_id: int) -> domain.Account:
    """Load an account, or raise :class:`.NotFound`."""
    account = store.get_by_id(user_id)
    if account is None:
        raise NotFound(f'No account with ID {user_id}')
    return account


def list_accounts() -> List[domain.Account]:
    return store.get_all()


def list_admins() -> List[domain.Account]:
    return store.get_admins()


def is_admin(user_id: int) -> bool:
    """Whether the account exists and has administrator privileges."""
    account = store.get_by_id(user_id)
    return account is not None and account.is_admin


def search_users(term: str,
                 exclude_user_id: Optional[int] = None) -> List[domain.Account]:
    """
    Find accounts by part of their username or email address.

    At most ten accounts are returned; ``exclude_user_id`` (normally the
    requester) is left out.
    """
    return store.search(term or '', exclude_user_id=exclude_user_id,
                        limit=SEARCH_LIMIT)


def update_profile(user_id: int, display_name: Optional[str] = None,
                   biography: Optional[str] = None,
                   avatar: Optional[str] = None) -> domain.Account:
    """Change the fields that are provided; a blank avatar is ignored."""
    account = get_account(user_id)
    changes = {}
    if display_name is not None:
        changes['display_name'] = display_name
    if biography is not None:
        changes['biography'] = biography
    if avatar is not None and avatar.strip():
        changes['avatar'] = avatar
    if not changes:
        return account
    return store.update_profile(user_id, **changes)


def display_name(account: domain.Account) -> str:
    return account.name


def ban_user(user_id: int, reason: Optional[str] = None,
             actor_id: Optional[int] = None) -> domain.Account:
    """
    Ban an account and its email address.

    The account flag and the ban registry entry are written in the same
    transaction. If the address is already in the registry the existing
    entry is kept. A notice is then sent to the account holder; failing to
    send it does not undo the ban.

    Raises
    ------
    :class:`.CannotBanAdmin`
        If the account has administrator privileges. Nothing is changed.
    :class:`.NotFound`

    """
    account = get_account(user_id)
    if account.is_admin:
        raise CannotBanAdmin('Administrators cannot be banned')
    with transaction():
        banned = store.set_banned(user_id, True, commit=False)
        if account.email is not None and not bans.is_banned(account.email):
            bans.ban(account.email, reason=reason, actor_id=actor_id,
                     commit=False)
    logger.info('Account %s banned by %s', user_id, actor_id)
    if account.email is not None and not _send_ban_notice(account, reason):
        logger.warning('Ban notice for account %s was not sent', user_id)
    return banned


def unban_user(user_id: int) -> domain.Account:
    """Lift the ban on an account and, if present, on its email address."""
    account = get_account(user_id)
    with transaction():
        unbanned = store.set_banned(user_id, False, commit=False)
        if account.email is not None:
            try:
                bans.unban(account.email, commit=False)
            except NotBanned:
                logger.debug('Email of account %s was not in the registry',
                             user_id)
    logger.info('Account %s unbanned', user_id)
    return unbanned


def grant_admin(user_id: int) -> domain.Account:
    logger.info('Granting administrator privileges to account %s', user_id)
    return store.set_admin(user_id, True)


def revoke_admin(user_id: int) -> domain.Account:
    logger.info('Revoking administrator privileges of account %s', user_id)
    return store.set_admin(user_id, False)


def usable_account(
        identity: Optional[domain.Identity]) -> Optional[domain.Account]:
    """Get the account behind ``identity`` if it may be used right now."""
    try:
        return require_usable(identity)
    except (Unauthenticated, Forbidden):
        return None


def require_usable(identity: Optional[domain.Identity]) -> domain.Account:
    """
    Get the current account behind ``identity``.

    Raises
    ------
    :class:`.Unauthenticated`
        If there is no identity, or its account no longer exists.
    :class:`.AccountBanned`
    :class:`.EmailNotVerified`

    """
    if identity is None:
        raise Unauthenticated('Please log in')
    account = store.get_by_id(identity.user_id)
    if account is None:
        logger.debug('Identity refers to a missing account')
        raise Unauthenticated('Please log in')
    if account.is_banned:
        raise AccountBanned('This account has been banned')
    if verification_required() and not account.email_verified:
        raise EmailNotVerified('Please verify your email address first')
    return account


def require_admin(identity: Optional[domain.Identity]) -> domain.Account:
    """Like :func:`require_usable`, and the stored account must be admin."""
    account = require_usable(identity)
    if not account.is_admin:
        logger.debug('Account %s is not an administrator', account.user_id)
        raise Forbidden('Administrator privileges required')
    return account
