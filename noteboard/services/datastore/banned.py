"""Ban registry persistence."""

from typing import Optional, List
import logging

from sqlalchemy.exc import IntegrityError

from ... import domain
from ...exceptions import AlreadyBanned
from . import util
from .models import DBBannedEmail

logger = logging.getLogger(__name__)


def _to_domain(db_banned: DBBannedEmail) -> domain.BannedEmail:
    return domain.BannedEmail(
        email=db_banned.email,
        reason=db_banned.reason,
        banned_at=util.from_epoch(db_banned.banned_at),
        banned_by=db_banned.banned_by
    )


def exists(email: str) -> bool:
    """Determine whether an email address is in the registry."""
    with util.transaction(commit=False) as session:
        return session.get(DBBannedEmail, email) is not None


def get(email: str) -> Optional[domain.BannedEmail]:
    with util.transaction(commit=False) as session:
        db_banned = session.get(DBBannedEmail, email)
    if db_banned is None:
        return None
    return _to_domain(db_banned)


def get_all() -> List[domain.BannedEmail]:
    """Load every entry, most recent first."""
    with util.transaction(commit=False) as session:
        db_banned = session.query(DBBannedEmail) \
            .order_by(DBBannedEmail.banned_at.desc(), DBBannedEmail.email) \
            .all()
    return [_to_domain(entry) for entry in db_banned]


def save(entry: domain.BannedEmail, commit: bool = True) -> domain.BannedEmail:
    """
    Add an entry to the registry.

    Raises :class:`.AlreadyBanned` if the store already holds the address.
    """
    with util.transaction(commit) as session:
        db_banned = DBBannedEmail(
            email=entry.email,
            reason=entry.reason,
            banned_at=util.epoch(entry.banned_at) if entry.banned_at
            else util.now(),
            banned_by=entry.banned_by
        )
        session.add(db_banned)
        try:
            session.flush()
        except IntegrityError as e:
            session.rollback()
            raise AlreadyBanned(f'{entry.email} is already banned') from e
        return _to_domain(db_banned)


def delete(email: str, commit: bool = True) -> bool:
    """Remove an entry. Returns ``False`` if there was nothing to remove."""
    with util.transaction(commit) as session:
        db_banned = session.get(DBBannedEmail, email)
        if db_banned is None:
            return False
        session.delete(db_banned)
    return True
