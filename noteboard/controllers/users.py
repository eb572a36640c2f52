"""Controllers for profiles and finding other users."""

from typing import Optional
from http import HTTPStatus

from werkzeug.datastructures import MultiDict

from .. import accounts, domain, notes
from . import Response, validate, account_to_json, note_to_json
from .forms import ProfileForm


def search_users(identity: Optional[domain.Identity],
                 term: Optional[str]) -> Response:
    """Find accounts to share notes with. The requester is left out."""
    account = accounts.require_usable(identity)
    found = accounts.search_users(term or '', exclude_user_id=account.user_id)
    return {'users': [account_to_json(other) for other in found]}, \
        HTTPStatus.OK, {}


def get_profile(identity: Optional[domain.Identity]) -> Response:
    account = accounts.require_usable(identity)
    return account_to_json(account, private=True), HTTPStatus.OK, {}


def update_profile(identity: Optional[domain.Identity],
                   params: MultiDict) -> Response:
    """Change the profile fields present in ``params``."""
    account = accounts.require_usable(identity)
    form = ProfileForm(params)
    validate(form)
    updated = accounts.update_profile(
        account.user_id,
        display_name=form.display_name.data
        if 'display_name' in params else None,
        biography=form.biography.data if 'biography' in params else None,
        avatar=form.avatar.data if 'avatar' in params else None
    )
    return account_to_json(updated, private=True), HTTPStatus.OK, {}


def get_user_profile(identity: Optional[domain.Identity],
                     user_id: int) -> Response:
    """Public profile of any account, as seen by a logged-in user."""
    requester = accounts.require_usable(identity)
    data = account_to_json(accounts.get_account(user_id))
    data['isOwnProfile'] = user_id == requester.user_id
    return data, HTTPStatus.OK, {}


def public_notes(identity: Optional[domain.Identity],
                 user_id: int) -> Response:
    owned = notes.public_notes_of(identity, user_id)
    return {'notes': [note_to_json(note) for note in owned]}, \
        HTTPStatus.OK, {}
