"""
Note operations on behalf of a requester.

Every operation first checks that the requester's account is usable (see
:func:`noteboard.accounts.require_usable`). Notes the requester may not
read are reported as :class:`.NotFound`; notes they may read but not change
are reported as :class:`.Forbidden`.
"""

from typing import List, Optional, Tuple
import logging

from . import domain, accounts, visibility
from .exceptions import NotFound, Forbidden, ValidationError
from .services.datastore import notes as store

logger = logging.getLogger(__name__)


def _requester(identity: Optional[domain.Identity]) -> domain.Identity:
    return accounts.identity_of(accounts.require_usable(identity))


def _load(requester: domain.Identity, note_id: int) -> domain.Note:
    note = store.get(note_id)
    if note is None or not visibility.can_read(requester, note):
        raise NotFound(f'No note with ID {note_id}')
    return note


def _load_editable(identity: Optional[domain.Identity],
                   note_id: int) -> Tuple[domain.Identity, domain.Note]:
    requester = _requester(identity)
    note = _load(requester, note_id)
    visibility.authorize_edit(requester, note)
    return requester, note


def create(identity: Optional[domain.Identity],
           draft: domain.NoteDraft) -> domain.Note:
    """Store a new note owned by the requester."""
    requester = _requester(identity)
    note = store.save(draft.to_note(requester.user_id))
    logger.debug('Account %s created note %s', requester.user_id,
                 note.note_id)
    return visibility.with_defaults(note)


def get(identity: Optional[domain.Identity], note_id: int) -> domain.Note:
    """Load a note the requester may read."""
    return visibility.with_defaults(_load(_requester(identity), note_id))


def update(identity: Optional[domain.Identity], note_id: int,
           changes: domain.NoteUpdate) -> domain.Note:
    """
    Apply a partial update.

    Requires edit permission. Only the owner may change the privacy level,
    the share list or the editing permission.

    Raises
    ------
    :class:`.NotFound`
    :class:`.Forbidden`
    :class:`.ValidationError`
        If the update would leave the note without a title.

    """
    requester, note = _load_editable(identity, note_id)
    if changes.changes_sharing and note.owner_id != requester.user_id:
        logger.debug('Account %s tried to change sharing of note %s',
                     requester.user_id, note_id)
        raise Forbidden('Only the owner may change who can see or edit this '
                        'note')
    updated = changes.apply(note)
    if not updated.title or not updated.title.strip():
        raise ValidationError('A note needs a title')
    return visibility.with_defaults(store.save(updated))


def move(identity: Optional[domain.Identity], note_id: int,
         x: int, y: int) -> domain.Note:
    """Change only the board position of a note."""
    _, note = _load_editable(identity, note_id)
    moved = store.save(note._replace(position=domain.Position(x, y)))
    return visibility.with_defaults(moved)


def delete(identity: Optional[domain.Identity], note_id: int) -> None:
    """
    Delete a note. Only its owner or an administrator may do so.

    Administrators may delete notes they cannot read.
    """
    requester = _requester(identity)
    note = store.get(note_id)
    if note is None:
        raise NotFound(f'No note with ID {note_id}')
    if note.owner_id != requester.user_id and not requester.is_admin:
        if visibility.can_read(requester, note):
            raise Forbidden('Only the owner may delete this note')
        raise NotFound(f'No note with ID {note_id}')
    store.delete(note_id)
    logger.info('Account %s deleted note %s', requester.user_id, note_id)


def notes_owned_by(identity: Optional[domain.Identity],
                   owner_id: int) -> List[domain.Note]:
    """All notes of an account, whatever their privacy. Admin only."""
    accounts.require_admin(identity)
    accounts.get_account(owner_id)
    return [visibility.with_defaults(note)
            for note in store.get_by_owner(owner_id)]


def public_notes_of(identity: Optional[domain.Identity],
                    owner_id: int) -> List[domain.Note]:
    """
    The notes an account shares with everyone, as shown on its profile.

    Raises
    ------
    :class:`.Unauthenticated`
    :class:`.NotFound`
        If there is no account ``owner_id``.

    """
    _requester(identity)
    accounts.get_account(owner_id)
    return [visibility.with_defaults(note)
            for note in store.get_by_owner(owner_id)
            if note.privacy_level is domain.PrivacyLevel.EVERYONE]
