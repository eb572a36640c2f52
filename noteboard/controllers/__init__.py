"""
Request controllers.

Controllers take request data (and, where needed, the requester's
:class:`.domain.Identity`) and return a ``(data, status_code, headers)``
tuple. Failures are raised as :class:`.NoteboardError` subclasses and turned
into responses by the error handlers registered in :mod:`noteboard.factory`.
"""

from typing import Tuple, Optional, Dict, Any

from wtforms import Form

from .. import domain
from ..exceptions import ValidationError

Response = Tuple[Optional[dict], int, dict]


def validate(form: Form) -> None:
    """Raise :class:`.ValidationError` with the first error of ``form``."""
    if form.validate():
        return
    field, errors = next(iter(form.errors.items()))
    raise ValidationError(f'{field}: {errors[0]}')


def account_to_json(account: domain.Account,
                    private: bool = False) -> Dict[str, Any]:
    """
    Public view of an account.

    With ``private`` set, the fields only the account holder and
    administrators should see are included too.
    """
    data: Dict[str, Any] = {
        'userId': account.user_id,
        'username': account.username,
        'displayName': account.name,
        'biography': account.biography,
        'avatar': account.avatar,
    }
    if private:
        data.update({
            'email': account.email,
            'isAdmin': account.is_admin,
            'isBanned': account.is_banned,
            'emailVerified': account.email_verified,
            'state': account.state.value,
            'createdAt': account.created_at.isoformat()
            if account.created_at else None,
            'lastLogin': account.last_login.isoformat()
            if account.last_login else None,
        })
    return data


def note_to_json(note: domain.Note) -> Dict[str, Any]:
    position = note.position or domain.DEFAULT_POSITION
    return {
        'id': note.note_id,
        'ownerId': note.owner_id,
        'title': note.title,
        'tag': note.tag,
        'content': note.content,
        'positionX': position.x,
        'positionY': position.y,
        'color': note.color or domain.DEFAULT_COLOR,
        'noteType': note.note_type.value,
        'privacyLevel': note.privacy_level.value,
        'sharedWith': list(note.shared_with),
        'hasImages': note.has_images,
        'imagePaths': list(note.image_paths),
        'editingPermission': note.editing_permission.value,
    }


def banned_to_json(entry: domain.BannedEmail) -> Dict[str, Any]:
    return {
        'email': entry.email,
        'reason': entry.reason,
        'bannedAt': entry.banned_at.isoformat() if entry.banned_at else None,
        'bannedBy': entry.banned_by,
    }
