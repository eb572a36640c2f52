"""Note store."""

from typing import Optional, List
import logging

from sqlalchemy import or_, and_

from ... import domain
from ...exceptions import NotFound
from . import util
from .models import DBNote

logger = logging.getLogger(__name__)


def _join(values: List[str]) -> Optional[str]:
    return ','.join(values) if values else None


def _to_domain(db_note: DBNote) -> domain.Note:
    position = None
    if db_note.position_x is not None and db_note.position_y is not None:
        position = domain.Position(db_note.position_x, db_note.position_y)
    return domain.Note(
        note_id=db_note.note_id,
        owner_id=db_note.owner_id,
        title=db_note.title,
        tag=db_note.tag or '',
        content=db_note.content or '',
        position=position,
        color=db_note.color,
        note_type=domain.NoteType.parse(db_note.note_type),
        privacy_level=domain.PrivacyLevel.parse(db_note.privacy_level),
        shared_with=domain.split_usernames(db_note.shared_with),
        image_paths=domain.split_usernames(db_note.image_paths),
        editing_permission=domain.EditingPermission.parse(
            db_note.editing_permission
        )
    )


def get(note_id: int) -> Optional[domain.Note]:
    """Load a note by its ID."""
    with util.transaction(commit=False) as session:
        db_note: Optional[DBNote] = session.get(DBNote, note_id)
    if db_note is None:
        return None
    return _to_domain(db_note)


def get_by_owner(owner_id: int) -> List[domain.Note]:
    """Load all of the notes that belong to an account."""
    with util.transaction(commit=False) as session:
        db_notes = session.query(DBNote) \
            .filter(DBNote.owner_id == owner_id) \
            .order_by(DBNote.note_id) \
            .all()
    return [_to_domain(db_note) for db_note in db_notes]


def get_candidates(user_id: int, username: str) -> List[domain.Note]:
    """
    Load notes that a user might be able to see.

    This is a superset of the visible notes: the share list is only matched
    as a substring here, so callers must still apply exact membership.
    """
    with util.transaction(commit=False) as session:
        db_notes = session.query(DBNote) \
            .filter(or_(
                DBNote.owner_id == user_id,
                DBNote.privacy_level == domain.PrivacyLevel.EVERYONE.value,
                and_(
                    DBNote.privacy_level
                    == domain.PrivacyLevel.SOME_PEOPLE.value,
                    DBNote.shared_with.contains(username, autoescape=True)
                )
            )) \
            .order_by(DBNote.note_id) \
            .all()
    return [_to_domain(db_note) for db_note in db_notes]


def save(note: domain.Note, commit: bool = True) -> domain.Note:
    """
    Persist a :class:`domain.Note`.

    If ``note_id`` is set the existing record is updated, otherwise a new
    record is created. Returns the stored note.
    """
    with util.transaction(commit) as session:
        if note.note_id is not None:
            db_note = session.get(DBNote, note.note_id)
            if db_note is None:
                raise NotFound(f'No note with ID {note.note_id}')
        else:
            db_note = DBNote(owner_id=note.owner_id)
        db_note.title = note.title
        db_note.tag = note.tag
        db_note.content = note.content
        db_note.position_x = note.position.x if note.position else None
        db_note.position_y = note.position.y if note.position else None
        db_note.color = note.color
        db_note.note_type = note.note_type.value
        db_note.privacy_level = note.privacy_level.value
        db_note.shared_with = _join(note.shared_with)
        db_note.image_paths = _join(note.image_paths)
        db_note.flag_has_images = int(note.has_images)
        db_note.editing_permission = note.editing_permission.value
        session.add(db_note)
        session.flush()
        return _to_domain(db_note)


def delete(note_id: int, commit: bool = True) -> None:
    """Remove a note. Raises :class:`.NotFound` if there is no such note."""
    with util.transaction(commit) as session:
        db_note = session.get(DBNote, note_id)
        if db_note is None:
            raise NotFound(f'No note with ID {note_id}')
        session.delete(db_note)
    logger.debug('Deleted note %s', note_id)
