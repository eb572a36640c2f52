"""
Decides which notes a requester may read and edit.

A requester sees the union of

1. the notes they own, at any privacy level,
2. every note marked :attr:`.PrivacyLevel.EVERYONE`, and
3. notes marked :attr:`.PrivacyLevel.SOME_PEOPLE` whose share list contains
   their username exactly (case-sensitive, after trimming each entry).

Each note appears once. Banned or unverified requesters, and requests
without an identity, see nothing.
"""

from typing import Iterable, List, Optional
import logging

from . import domain, accounts
from .exceptions import Forbidden
from .services.datastore import notes as store

logger = logging.getLogger(__name__)


def is_shared_with(note: domain.Note, username: str) -> bool:
    """Whether ``username`` is one of the entries of the share list."""
    return username in domain.split_usernames(note.shared_with)


def can_read(identity: domain.Identity, note: domain.Note) -> bool:
    if note.owner_id == identity.user_id:
        return True
    if note.privacy_level is domain.PrivacyLevel.EVERYONE:
        return True
    return note.privacy_level is domain.PrivacyLevel.SOME_PEOPLE \
        and is_shared_with(note, identity.username)


def can_edit(identity: domain.Identity, note: domain.Note) -> bool:
    """Owners may edit; so may readers of a collaborative note."""
    if note.owner_id == identity.user_id:
        return True
    return note.editing_permission is domain.EditingPermission.COLLABORATIVE \
        and can_read(identity, note)


def authorize_edit(identity: domain.Identity, note: domain.Note) -> None:
    """Raise :class:`.Forbidden` unless :func:`can_edit`."""
    if not can_edit(identity, note):
        logger.debug('Account %s may not edit note %s', identity.user_id,
                     note.note_id)
        raise Forbidden('You may not edit this note')


def resolve(identity: domain.Identity,
            candidates: Iterable[domain.Note]) -> List[domain.Note]:
    """
    Select the notes ``identity`` may read from ``candidates``.

    Order is kept and each note ID appears at most once.
    """
    seen = set()
    visible = []
    for note in candidates:
        if note.note_id is not None:
            if note.note_id in seen:
                continue
            seen.add(note.note_id)
        if can_read(identity, note):
            visible.append(note)
    return visible


def with_defaults(note: domain.Note) -> domain.Note:
    """Fill in the position and color shown for notes without their own."""
    return note._replace(
        position=note.position or domain.DEFAULT_POSITION,
        color=note.color or domain.DEFAULT_COLOR
    )


def _usable_identity(
        identity: Optional[domain.Identity]) -> Optional[domain.Identity]:
    account = accounts.usable_account(identity)
    if account is None:
        return None
    # The stored username and flag win over the session copy.
    return accounts.identity_of(account)


def visible_notes(
        identity: Optional[domain.Identity]) -> List[domain.Note]:
    """All notes the requester may read, with display defaults filled in."""
    requester = _usable_identity(identity)
    if requester is None:
        return []
    candidates = store.get_candidates(requester.user_id, requester.username)
    return [with_defaults(note) for note in resolve(requester, candidates)]


def search(identity: Optional[domain.Identity],
           term: Optional[str]) -> List[domain.Note]:
    """
    Visible notes whose title, tag or content contains ``term``.

    Matching ignores case. A blank term returns every visible note.
    """
    notes = visible_notes(identity)
    if term is None or not term.strip():
        return notes
    needle = term.lower()
    return [note for note in notes
            if needle in (note.title or '').lower()
            or needle in (note.tag or '').lower()
            or needle in (note.content or '').lower()]
