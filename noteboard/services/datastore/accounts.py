"""Account store."""

from typing import Any, Dict, Optional, List
from datetime import datetime
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ... import domain
from ...exceptions import NotFound, DuplicateUsername, DuplicateEmail
from . import util
from .models import DBUser

logger = logging.getLogger(__name__)


def _to_domain(db_user: DBUser) -> domain.Account:
    verification = None
    if db_user.verification_token is not None:
        verification = domain.Token(
            value=db_user.verification_token,
            expires=util.from_epoch(db_user.verification_token_expiry)
        )
    password_reset = None
    if db_user.password_reset_token is not None:
        password_reset = domain.Token(
            value=db_user.password_reset_token,
            expires=util.from_epoch(db_user.password_reset_token_expiry)
        )
    return domain.Account(
        user_id=db_user.user_id,
        username=db_user.username,
        email=db_user.email,
        display_name=db_user.display_name,
        biography=db_user.biography,
        avatar=db_user.avatar,
        is_admin=bool(db_user.flag_admin),
        is_banned=bool(db_user.flag_banned),
        email_verified=bool(db_user.flag_email_verified),
        verification=verification,
        password_reset=password_reset,
        created_at=util.from_epoch(db_user.created_at),
        last_login=util.from_epoch(db_user.last_login)
    )


def _load(**criteria: object) -> Optional[DBUser]:
    with util.transaction(commit=False) as session:
        db_user: Optional[DBUser] = session.query(DBUser) \
            .filter_by(**criteria) \
            .first()
    return db_user


def _get(**criteria: object) -> Optional[domain.Account]:
    db_user = _load(**criteria)
    if db_user is None:
        return None
    return _to_domain(db_user)


def get_by_id(user_id: int) -> Optional[domain.Account]:
    """Load an account by its ID."""
    return _get(user_id=user_id)


def get_by_username(username: str) -> Optional[domain.Account]:
    """Load an account by its username."""
    return _get(username=username)


def get_by_email(email: str) -> Optional[domain.Account]:
    """Load an account by its email address."""
    return _get(email=email)


def get_by_verification_token(token: str) -> Optional[domain.Account]:
    """Load the account holding an email verification token."""
    return _get(verification_token=token)


def get_by_password_reset_token(token: str) -> Optional[domain.Account]:
    """Load the account holding a password reset token."""
    return _get(password_reset_token=token)


def username_exists(username: str) -> bool:
    """Determine whether or not a username already exists in the DB."""
    return _load(username=username) is not None


def email_exists(email: str) -> bool:
    """Determine whether or not a email address already exists in the DB."""
    return _load(email=email) is not None


def get_admins() -> List[domain.Account]:
    """Load all accounts with administrator privileges."""
    with util.transaction(commit=False) as session:
        db_users = session.query(DBUser) \
            .filter(DBUser.flag_admin == 1) \
            .order_by(DBUser.user_id) \
            .all()
    return [_to_domain(db_user) for db_user in db_users]


def get_all() -> List[domain.Account]:
    """Load every account, oldest first."""
    with util.transaction(commit=False) as session:
        db_users = session.query(DBUser).order_by(DBUser.user_id).all()
    return [_to_domain(db_user) for db_user in db_users]


def get_credential(user_id: int) -> str:
    """Get the stored credential of an account."""
    db_user = _load(user_id=user_id)
    if db_user is None:
        raise NotFound(f'No account with ID {user_id}')
    return str(db_user.password)


def save(account: domain.Account, credential: Optional[str] = None,
         commit: bool = True) -> domain.Account:
    """
    Persist an :class:`domain.Account`.

    Every field is written. Changes to part of an existing account, such
    as a login time or a flag, go through the narrower writers below so
    that they cannot undo a concurrent change to another field.

    Parameters
    ----------
    account : :class:`domain.Account`
        If ``user_id`` is set, the existing record is updated. Otherwise a
        new record is created, and ``credential`` is required.
    credential : str or None
        Encoded credential to store; see :mod:`noteboard.passwords`.
    commit : bool
        Set to ``False`` to leave committing to an enclosing transaction.

    Returns
    -------
    :class:`domain.Account`
        The stored account, with ``user_id`` set.

    Raises
    ------
    :class:`.DuplicateUsername`
    :class:`.DuplicateEmail`
        If the store's uniqueness constraints reject the record.
    :class:`.NotFound`
        If ``user_id`` is set but no such record exists.

    """
    with util.transaction(commit) as session:
        if account.user_id is not None:
            db_user = session.get(DBUser, account.user_id)
            if db_user is None:
                raise NotFound(f'No account with ID {account.user_id}')
        else:
            if credential is None:
                raise ValueError('A new account needs a credential')
            db_user = DBUser(created_at=util.now())
        if credential is not None:
            db_user.password = credential
        _update(db_user, account)
        session.add(db_user)
        try:
            session.flush()
        except IntegrityError as e:
            session.rollback()
            raise _conflict(account) from e
        return _to_domain(db_user)


def _update(db_user: DBUser, account: domain.Account) -> None:
    db_user.username = account.username
    db_user.email = account.email
    db_user.display_name = account.display_name
    db_user.biography = account.biography
    db_user.avatar = account.avatar
    db_user.flag_admin = int(account.is_admin)
    db_user.flag_banned = int(account.is_banned)
    db_user.flag_email_verified = int(account.email_verified)
    if account.verification is None:
        db_user.verification_token = None
        db_user.verification_token_expiry = None
    else:
        db_user.verification_token = account.verification.value
        db_user.verification_token_expiry = \
            util.epoch(account.verification.expires)
    if account.password_reset is None:
        db_user.password_reset_token = None
        db_user.password_reset_token_expiry = None
    else:
        db_user.password_reset_token = account.password_reset.value
        db_user.password_reset_token_expiry = \
            util.epoch(account.password_reset.expires)
    if account.last_login is not None:
        db_user.last_login = util.epoch(account.last_login)


def _set(user_id: int, values: Dict[str, Any], commit: bool = True,
         **criteria: Any) -> Optional[domain.Account]:
    """
    Write only ``values`` to an account, leaving every other column alone.

    ``criteria`` further restrict the row that is written. Returns the
    updated account, or ``None`` if no row matched.
    """
    with util.transaction(commit) as session:
        updated = session.query(DBUser) \
            .filter_by(user_id=user_id, **criteria) \
            .update(values, synchronize_session='fetch')
        if not updated:
            return None
        db_user = session.get(DBUser, user_id)
        return _to_domain(db_user)


def _set_or_fail(user_id: int, values: Dict[str, Any],
                 commit: bool = True) -> domain.Account:
    account = _set(user_id, values, commit=commit)
    if account is None:
        raise NotFound(f'No account with ID {user_id}')
    return account


def record_login(user_id: int, when: datetime) -> bool:
    """
    Record the time of a successful login.

    Returns ``False`` without writing anything if the account has been
    banned since its credentials were checked.
    """
    account = _set(user_id, {'last_login': util.epoch(when)}, flag_banned=0)
    return account is not None


def set_banned(user_id: int, banned: bool,
               commit: bool = True) -> domain.Account:
    return _set_or_fail(user_id, {'flag_banned': int(banned)}, commit=commit)


def set_admin(user_id: int, is_admin: bool) -> domain.Account:
    return _set_or_fail(user_id, {'flag_admin': int(is_admin)})


def set_verification_token(user_id: int,
                           token: domain.Token) -> domain.Account:
    """Replace the email verification token of an account."""
    return _set_or_fail(user_id, {
        'verification_token': token.value,
        'verification_token_expiry': util.epoch(token.expires)
    })


def set_password_reset_token(user_id: int,
                             token: domain.Token) -> domain.Account:
    """Replace the password reset token of an account."""
    return _set_or_fail(user_id, {
        'password_reset_token': token.value,
        'password_reset_token_expiry': util.epoch(token.expires)
    })


def mark_verified(user_id: int, token: str) -> Optional[domain.Account]:
    """
    Verify the email address of an account and consume its token.

    Nothing is written, and ``None`` is returned, if the account no longer
    holds ``token``.
    """
    return _set(user_id, {'flag_email_verified': 1,
                          'verification_token': None,
                          'verification_token_expiry': None},
                verification_token=token)


def reset_credential(user_id: int, token: str,
                     credential: str) -> Optional[domain.Account]:
    """
    Store a new credential and consume the password reset ``token``.

    Nothing is written, and ``None`` is returned, if the account no longer
    holds ``token``.
    """
    return _set(user_id, {'password': credential,
                          'password_reset_token': None,
                          'password_reset_token_expiry': None},
                password_reset_token=token)


PROFILE_FIELDS = ('display_name', 'biography', 'avatar')


def update_profile(user_id: int, **changes: Optional[str]) -> domain.Account:
    """Write the given profile fields; see :const:`PROFILE_FIELDS`."""
    unknown = set(changes) - set(PROFILE_FIELDS)
    if unknown:
        raise ValueError(f'Not profile fields: {", ".join(sorted(unknown))}')
    return _set_or_fail(user_id, dict(changes))


def _conflict(account: domain.Account) -> Exception:
    """Work out which uniqueness constraint a rejected write ran into."""
    logger.info('Uniqueness conflict while saving account %s',
                account.username)
    with util.transaction(commit=False) as session:
        same_name = session.query(DBUser) \
            .filter(DBUser.username == account.username)
        if account.user_id is not None:
            same_name = same_name.filter(DBUser.user_id != account.user_id)
        if same_name.first() is not None:
            return DuplicateUsername('Username already exists')
    if account.email is not None:
        return DuplicateEmail('Email already exists')
    return DuplicateUsername('Username already exists')


def search(term: str, exclude_user_id: Optional[int] = None,
           limit: int = 10) -> List[domain.Account]:
    """
    Find accounts whose username or email contains ``term``.

    Matching is case-insensitive. A blank term matches every account.
    """
    with util.transaction(commit=False) as session:
        query = session.query(DBUser)
        term = term.strip()
        if term:
            query = query.filter(or_(
                DBUser.username.icontains(term, autoescape=True),
                DBUser.email.icontains(term, autoescape=True)
            ))
        if exclude_user_id is not None:
            query = query.filter(DBUser.user_id != exclude_user_id)
        db_users = query.order_by(DBUser.username).limit(limit).all()
    return [_to_domain(db_user) for db_user in db_users]
