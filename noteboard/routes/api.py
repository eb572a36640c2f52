"""
Provides routes for the JSON API.

Account forms (registration, login, password reset, profile) take their
fields either as form data or as a JSON object with the same keys. Note
payloads are JSON objects; see :func:`noteboard.controllers.note_to_json`.
"""

from typing import Any, Optional
from http import HTTPStatus
import logging

from flask import Blueprint, request, session
from flask.json import jsonify
from werkzeug.datastructures import MultiDict

from .. import domain
from ..controllers import auth, notes, users, admin
from ..exceptions import ValidationError
from ..services import datastore

logger = logging.getLogger(__name__)
blueprint = Blueprint('api', __name__, url_prefix='/api')

IDENTITY = 'identity'
"""Session key under which the logged-in :class:`.domain.Identity` lives."""


def current_identity() -> Optional[domain.Identity]:
    """Restore the requester's identity from the session cookie, if any."""
    data = session.get(IDENTITY)
    if not data:
        return None
    try:
        identity: domain.Identity = domain.from_dict(domain.Identity, data)
    except (TypeError, ValueError) as e:
        logger.debug('Discarding malformed session identity: %s', e)
        session.pop(IDENTITY, None)
        return None
    return identity


def _params() -> MultiDict:
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return MultiDict(payload)
    return MultiDict(request.values)


def _payload() -> Any:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValidationError('Expected a JSON object')
    return payload


@blueprint.route('/status', methods=['GET'])
def ok() -> tuple:
    """Health check endpoint."""
    if not datastore.is_available():
        return jsonify({'status': 'database unavailable'}), \
            HTTPStatus.SERVICE_UNAVAILABLE
    return jsonify({'status': 'ok'}), HTTPStatus.OK


@blueprint.route('/auth/register', methods=['POST'])
def register() -> tuple:
    data, status_code, headers = auth.register(_params())
    return jsonify(data), status_code, headers


@blueprint.route('/auth/login', methods=['POST'])
def login() -> tuple:
    """Log in; the identity is kept in the signed session cookie."""
    data, status_code, headers = auth.login(_params())
    session.clear()
    session[IDENTITY] = data
    return jsonify(data), status_code, headers


@blueprint.route('/auth/logout', methods=['POST'])
def logout() -> tuple:
    data, status_code, headers = auth.logout(current_identity())
    session.clear()
    return jsonify(data), status_code, headers


@blueprint.route('/auth/verify-email', methods=['GET', 'POST'])
def verify_email() -> tuple:
    data, status_code, headers = auth.verify_email(_params())
    return jsonify(data), status_code, headers


@blueprint.route('/auth/resend-verification', methods=['POST'])
def resend_verification() -> tuple:
    data, status_code, headers = auth.resend_verification(_params())
    return jsonify(data), status_code, headers


@blueprint.route('/auth/forgot-password', methods=['POST'])
def forgot_password() -> tuple:
    data, status_code, headers = auth.forgot_password(_params())
    return jsonify(data), status_code, headers


@blueprint.route('/auth/reset-password', methods=['POST'])
def reset_password() -> tuple:
    data, status_code, headers = auth.reset_password(_params())
    return jsonify(data), status_code, headers


@blueprint.route('/notes', methods=['GET'])
def list_notes() -> tuple:
    data, status_code, headers = notes.list_notes(current_identity())
    return jsonify(data), status_code, headers


@blueprint.route('/notes/search', methods=['GET'])
def search_notes() -> tuple:
    data, status_code, headers = notes.search_notes(current_identity(),
                                                    request.args.get('q'))
    return jsonify(data), status_code, headers


@blueprint.route('/notes', methods=['POST'])
def create_note() -> tuple:
    data, status_code, headers = notes.create_note(current_identity(),
                                                   _payload())
    return jsonify(data), status_code, headers


@blueprint.route('/notes/<int:note_id>', methods=['GET'])
def get_note(note_id: int) -> tuple:
    data, status_code, headers = notes.get_note(current_identity(), note_id)
    return jsonify(data), status_code, headers


@blueprint.route('/notes/<int:note_id>', methods=['PUT', 'PATCH'])
def update_note(note_id: int) -> tuple:
    """Partial update: only the keys present in the body change."""
    data, status_code, headers = notes.update_note(current_identity(),
                                                   note_id, _payload())
    return jsonify(data), status_code, headers


@blueprint.route('/notes/<int:note_id>/position', methods=['PUT'])
def move_note(note_id: int) -> tuple:
    data, status_code, headers = notes.move_note(current_identity(), note_id,
                                                 _payload())
    return jsonify(data), status_code, headers


@blueprint.route('/notes/<int:note_id>', methods=['DELETE'])
def delete_note(note_id: int) -> tuple:
    data, status_code, headers = notes.delete_note(current_identity(),
                                                   note_id)
    return jsonify(data), status_code, headers


@blueprint.route('/users/search', methods=['GET'])
def search_users() -> tuple:
    data, status_code, headers = users.search_users(current_identity(),
                                                    request.args.get('q'))
    return jsonify(data), status_code, headers


@blueprint.route('/users/profile', methods=['GET'])
def get_profile() -> tuple:
    data, status_code, headers = users.get_profile(current_identity())
    return jsonify(data), status_code, headers


@blueprint.route('/users/profile', methods=['POST'])
def update_profile() -> tuple:
    data, status_code, headers = users.update_profile(current_identity(),
                                                      _params())
    return jsonify(data), status_code, headers


@blueprint.route('/users/profile/<int:user_id>', methods=['GET'])
def get_user_profile(user_id: int) -> tuple:
    data, status_code, headers = users.get_user_profile(current_identity(),
                                                        user_id)
    return jsonify(data), status_code, headers


@blueprint.route('/users/profile/<int:user_id>/public-notes', methods=['GET'])
def public_notes(user_id: int) -> tuple:
    data, status_code, headers = users.public_notes(current_identity(),
                                                    user_id)
    return jsonify(data), status_code, headers


@blueprint.route('/admin/users', methods=['GET'])
def list_users() -> tuple:
    data, status_code, headers = admin.list_users(current_identity())
    return jsonify(data), status_code, headers


@blueprint.route('/admin/admins', methods=['GET'])
def list_admins() -> tuple:
    data, status_code, headers = admin.list_admins(current_identity())
    return jsonify(data), status_code, headers


@blueprint.route('/admin/users/<int:user_id>', methods=['GET'])
def user_details(user_id: int) -> tuple:
    data, status_code, headers = admin.user_details(current_identity(),
                                                    user_id)
    return jsonify(data), status_code, headers


@blueprint.route('/admin/users/<int:user_id>/notes', methods=['GET'])
def user_notes(user_id: int) -> tuple:
    data, status_code, headers = admin.user_notes(current_identity(), user_id)
    return jsonify(data), status_code, headers


@blueprint.route('/admin/users/<int:user_id>/ban', methods=['POST'])
def ban_user(user_id: int) -> tuple:
    data, status_code, headers = admin.ban_user(current_identity(), user_id,
                                                _params())
    return jsonify(data), status_code, headers


@blueprint.route('/admin/users/<int:user_id>/unban', methods=['POST'])
def unban_user(user_id: int) -> tuple:
    data, status_code, headers = admin.unban_user(current_identity(), user_id)
    return jsonify(data), status_code, headers


@blueprint.route('/admin/users/<int:user_id>/grant-admin', methods=['POST'])
def grant_admin(user_id: int) -> tuple:
    data, status_code, headers = admin.grant_admin(current_identity(),
                                                   user_id)
    return jsonify(data), status_code, headers


@blueprint.route('/admin/users/<int:user_id>/revoke-admin', methods=['POST'])
def revoke_admin(user_id: int) -> tuple:
    data, status_code, headers = admin.revoke_admin(current_identity(),
                                                    user_id)
    return jsonify(data), status_code, headers


@blueprint.route('/admin/banned-emails', methods=['GET'])
def list_banned_emails() -> tuple:
    data, status_code, headers = admin.list_banned_emails(current_identity())
    return jsonify(data), status_code, headers


@blueprint.route('/admin/banned-emails', methods=['POST'])
def ban_email() -> tuple:
    data, status_code, headers = admin.ban_email(current_identity(),
                                                 _params())
    return jsonify(data), status_code, headers


@blueprint.route('/admin/banned-emails/<path:email>', methods=['DELETE'])
def unban_email(email: str) -> tuple:
    data, status_code, headers = admin.unban_email(current_identity(), email)
    return jsonify(data), status_code, headers
