"""Controllers for administrators: accounts, bans and privileges."""

from typing import Optional
from http import HTTPStatus

from werkzeug.datastructures import MultiDict

from .. import accounts, bans, domain, notes
from . import Response, validate, account_to_json, banned_to_json, \
    note_to_json
from .forms import BanEmailForm


def list_users(identity: Optional[domain.Identity]) -> Response:
    accounts.require_admin(identity)
    return {'users': [account_to_json(account, private=True)
                      for account in accounts.list_accounts()]}, \
        HTTPStatus.OK, {}


def list_admins(identity: Optional[domain.Identity]) -> Response:
    accounts.require_admin(identity)
    return {'users': [account_to_json(account, private=True)
                      for account in accounts.list_admins()]}, \
        HTTPStatus.OK, {}


def user_details(identity: Optional[domain.Identity],
                 user_id: int) -> Response:
    """Everything about one account, with how many notes it owns."""
    owned = notes.notes_owned_by(identity, user_id)
    data = account_to_json(accounts.get_account(user_id), private=True)
    data['notesCount'] = len(owned)
    return data, HTTPStatus.OK, {}


def user_notes(identity: Optional[domain.Identity], user_id: int) -> Response:
    owned = notes.notes_owned_by(identity, user_id)
    return {'notes': [note_to_json(note) for note in owned]}, \
        HTTPStatus.OK, {}


def ban_user(identity: Optional[domain.Identity], user_id: int,
             params: MultiDict) -> Response:
    """Ban an account, and its email address with it."""
    admin = accounts.require_admin(identity)
    reason = (params.get('reason') or '').strip() or None
    account = accounts.ban_user(user_id, reason=reason, actor_id=admin.user_id)
    return account_to_json(account, private=True), HTTPStatus.OK, {}


def unban_user(identity: Optional[domain.Identity], user_id: int) -> Response:
    accounts.require_admin(identity)
    account = accounts.unban_user(user_id)
    return account_to_json(account, private=True), HTTPStatus.OK, {}


def grant_admin(identity: Optional[domain.Identity],
                user_id: int) -> Response:
    accounts.require_admin(identity)
    account = accounts.grant_admin(user_id)
    return account_to_json(account, private=True), HTTPStatus.OK, {}


def revoke_admin(identity: Optional[domain.Identity],
                 user_id: int) -> Response:
    accounts.require_admin(identity)
    account = accounts.revoke_admin(user_id)
    return account_to_json(account, private=True), HTTPStatus.OK, {}


def list_banned_emails(identity: Optional[domain.Identity]) -> Response:
    accounts.require_admin(identity)
    return {'bannedEmails': [banned_to_json(entry)
                             for entry in bans.list_banned()]}, \
        HTTPStatus.OK, {}


def ban_email(identity: Optional[domain.Identity],
              params: MultiDict) -> Response:
    """Add an address to the ban registry, with or without an account."""
    admin = accounts.require_admin(identity)
    form = BanEmailForm(params)
    validate(form)
    entry = bans.ban(form.email.data, reason=form.reason.data or None,
                     actor_id=admin.user_id)
    return banned_to_json(entry), HTTPStatus.CREATED, {}


def unban_email(identity: Optional[domain.Identity], email: str) -> Response:
    accounts.require_admin(identity)
    bans.unban(email)
    return {'email': email, 'banned': False}, HTTPStatus.OK, {}
