"""
Ban registry: email addresses that may not be used to register.

Entries are keyed by the exact email string. An entry may exist with no
matching account; account bans add to the registry through
:func:`noteboard.accounts.ban_user`.
"""

from typing import List, Optional
import logging

from . import domain
from .exceptions import AlreadyBanned, NotBanned
from .services.datastore import banned

logger = logging.getLogger(__name__)


def is_banned(email: str) -> bool:
    """Whether ``email`` is in the registry."""
    return banned.exists(email)


def ban(email: str, reason: Optional[str] = None,
        actor_id: Optional[int] = None,
        commit: bool = True) -> domain.BannedEmail:
    """
    Add ``email`` to the registry.

    Raises
    ------
    :class:`.AlreadyBanned`
        If the address is already in the registry.

    """
    if banned.exists(email):
        raise AlreadyBanned(f'{email} is already banned')
    entry = banned.save(domain.BannedEmail(email=email, reason=reason,
                                           banned_by=actor_id),
                        commit=commit)
    logger.info('Email banned by %s', actor_id)
    return entry


def unban(email: str, commit: bool = True) -> None:
    """Remove ``email`` from the registry, or raise :class:`.NotBanned`."""
    if not banned.delete(email, commit=commit):
        raise NotBanned(f'{email} is not banned')
    logger.info('Email unbanned')


def list_banned() -> List[domain.BannedEmail]:
    """All registry entries, most recent first."""
    return banned.get_all()


def get_banned(email: str) -> Optional[domain.BannedEmail]:
    return banned.get(email)
