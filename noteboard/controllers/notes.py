"""Controllers for notes on the board."""

from typing import Any, Optional
from http import HTTPStatus

from .. import domain, notes, visibility
from ..exceptions import ValidationError
from . import Response, note_to_json


def list_notes(identity: Optional[domain.Identity]) -> Response:
    """Every note the requester may see; empty when not logged in."""
    visible = visibility.visible_notes(identity)
    return {'notes': [note_to_json(note) for note in visible]}, \
        HTTPStatus.OK, {}


def search_notes(identity: Optional[domain.Identity],
                 term: Optional[str]) -> Response:
    found = visibility.search(identity, term)
    return {'notes': [note_to_json(note) for note in found]}, \
        HTTPStatus.OK, {}


def get_note(identity: Optional[domain.Identity], note_id: int) -> Response:
    return note_to_json(notes.get(identity, note_id)), HTTPStatus.OK, {}


def create_note(identity: Optional[domain.Identity], payload: Any) -> Response:
    """
    Create a note owned by the requester.

    Parameters
    ----------
    payload : dict
        Note fields with the keys used by :func:`.note_to_json`; ``title``
        is required.

    """
    draft = domain.NoteDraft.from_payload(payload)
    note = notes.create(identity, draft)
    return note_to_json(note), HTTPStatus.CREATED, {}


def update_note(identity: Optional[domain.Identity], note_id: int,
                payload: Any) -> Response:
    """Apply the keys present in ``payload`` to the note."""
    changes = domain.NoteUpdate.from_payload(payload)
    note = notes.update(identity, note_id, changes)
    return note_to_json(note), HTTPStatus.OK, {}


def move_note(identity: Optional[domain.Identity], note_id: int,
              payload: Any) -> Response:
    changes = domain.NoteUpdate.from_payload(payload)
    if changes.position is domain.ABSENT:
        raise ValidationError('positionX and positionY are required')
    note = notes.move(identity, note_id, changes.position.x,
                      changes.position.y)
    return note_to_json(note), HTTPStatus.OK, {}


def delete_note(identity: Optional[domain.Identity], note_id: int) -> Response:
    notes.delete(identity, note_id)
    return {'id': note_id, 'deleted': True}, HTTPStatus.OK, {}
