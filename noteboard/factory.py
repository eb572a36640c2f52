"""Application factory for the note board."""

from typing import Any, Dict, Mapping, Optional, Type
from http import HTTPStatus
import logging

from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException

from . import exceptions
from .app_logging import setup_logger
from .routes import api
from .services import datastore, mail

logger = logging.getLogger(__name__)

STATUS_CODES: Dict[Type[exceptions.NoteboardError], int] = {
    exceptions.NotFound: HTTPStatus.NOT_FOUND,
    exceptions.Unauthenticated: HTTPStatus.UNAUTHORIZED,
    exceptions.AuthenticationFailed: HTTPStatus.UNAUTHORIZED,
    exceptions.Forbidden: HTTPStatus.FORBIDDEN,
    exceptions.CannotBanAdmin: HTTPStatus.FORBIDDEN,
    exceptions.DuplicateUsername: HTTPStatus.BAD_REQUEST,
    exceptions.DuplicateEmail: HTTPStatus.BAD_REQUEST,
    exceptions.EmailBanned: HTTPStatus.BAD_REQUEST,
    exceptions.AlreadyBanned: HTTPStatus.BAD_REQUEST,
    exceptions.NotBanned: HTTPStatus.BAD_REQUEST,
    exceptions.TokenInvalidOrExpired: HTTPStatus.BAD_REQUEST,
    exceptions.ValidationError: HTTPStatus.BAD_REQUEST,
    exceptions.Unavailable: HTTPStatus.SERVICE_UNAVAILABLE,
}
"""Status code for each kind of failure; subclasses inherit theirs."""


def create_web_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Initialize and configure the note board application.

    Parameters
    ----------
    config : mapping
        Settings that take precedence over :mod:`noteboard.config`. They are
        applied before the database is set up.

    """
    app = Flask('noteboard')
    app.config.from_pyfile('config.py')
    if config:
        app.config.update(config)

    setup_logger(app.config['LOGLEVEL'], app.config['LOG_JSON'])

    datastore.init_app(app)
    mail.init_app(app)
    app.register_blueprint(api.blueprint)

    if app.config['CREATE_DB']:
        with app.app_context():
            datastore.create_all()

    register_error_handlers(app)
    return app


def register_error_handlers(app: Flask) -> None:
    """Register error handlers for the Flask app."""
    app.errorhandler(exceptions.NoteboardError)(jsonify_error)
    app.errorhandler(HTTPException)(jsonify_exception)


def status_for(error: exceptions.NoteboardError) -> int:
    """Get the status code for a failure, by its nearest mapped class."""
    for klass in type(error).__mro__:
        if klass in STATUS_CODES:
            return STATUS_CODES[klass]
    return HTTPStatus.INTERNAL_SERVER_ERROR


def jsonify_error(error: exceptions.NoteboardError) -> Response:
    """Render a failure as ``{"kind": ..., "reason": ...}``."""
    status_code = status_for(error)
    if status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
        logger.error('%s: %s', error.kind, error.reason)
    else:
        logger.debug('%s: %s', error.kind, error.reason)
    response: Response = jsonify(kind=error.kind, reason=error.reason)
    response.status_code = status_code
    return response


def jsonify_exception(error: HTTPException) -> Response:
    """Render exceptions as JSON."""
    exc_resp = error.get_response()
    response: Response = jsonify(kind=type(error).__name__,
                                 reason=error.description)
    response.status_code = exc_resp.status_code
    return response
