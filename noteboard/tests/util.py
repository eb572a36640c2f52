"""Helpers for tests that need an application and a database."""

from typing import Any, Generator, Optional, Mapping
from contextlib import contextmanager

from flask import Flask

from ..factory import create_web_app
from ..services import datastore

TEST_CONFIG = {
    'TESTING': True,
    'SECRET_KEY': 'not-a-secret',
    'SQLALCHEMY_DATABASE_URI': 'sqlite://',
    'CREATE_DB': False,
    'BCRYPT_ROUNDS': 4,
    'MAIL_SUPPRESS_SEND': True,
    'BASE_URL': 'https://notes.example.org',
    'LOGLEVEL': 'DEBUG',
    'LOG_JSON': False,
}


def make_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """An application configured for tests, with an in-memory database."""
    return create_web_app({**TEST_CONFIG, **(config or {})})


@contextmanager
def temporary_app(config: Optional[Mapping[str, Any]] = None) \
        -> Generator[Flask, None, None]:
    """Provide an application context with freshly created tables."""
    app = make_app(config)
    with app.app_context():
        datastore.create_all()
        try:
            yield app
        finally:
            datastore.db.session.remove()
            datastore.drop_all()
