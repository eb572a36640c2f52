"""
Stored credentials and how to check passwords against them.

Credentials come in two encodings. New credentials are always bcrypt hashes,
which are recognized by their ``$2`` prefix. Accounts created before hashing
was introduced may still hold their password as plain text; those are read
for backward compatibility but never written.
"""

from typing import NamedTuple, Union
import logging
import secrets

import bcrypt

from .exceptions import ValidationError

logger = logging.getLogger(__name__)

HASH_PREFIX = '$2'
MAX_PASSWORD_BYTES = 72
"""bcrypt ignores (or refuses) anything past this many bytes."""

DEFAULT_ROUNDS = 12


class PlaintextCredential(NamedTuple):
    """Legacy credential: the password itself."""

    secret: str


class HashedCredential(NamedTuple):
    """A bcrypt hash of the password."""

    digest: str


Credential = Union[PlaintextCredential, HashedCredential]


def parse(stored: str) -> Credential:
    """Determine which encoding a stored credential uses."""
    if stored.startswith(HASH_PREFIX):
        return HashedCredential(stored)
    return PlaintextCredential(stored)


def is_legacy(stored: str) -> bool:
    """Whether a stored credential still uses the plaintext encoding."""
    return isinstance(parse(stored), PlaintextCredential)


def encode(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """
    Generate a stored credential for ``password``.

    Always produces the hashed encoding.

    Raises
    ------
    :class:`.ValidationError`
        If the password is empty or too long to hash.

    """
    raw = password.encode('utf-8')
    if not raw:
        raise ValidationError('Password may not be empty')
    if len(raw) > MAX_PASSWORD_BYTES:
        raise ValidationError(
            f'Password may not be longer than {MAX_PASSWORD_BYTES} bytes'
        )
    return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=rounds)).decode('ascii')


def verify(password: str, stored: str) -> bool:
    """Check a password against a stored credential of either encoding."""
    credential = parse(stored)
    raw = password.encode('utf-8')
    if isinstance(credential, HashedCredential):
        if len(raw) > MAX_PASSWORD_BYTES:
            return False
        try:
            return bcrypt.checkpw(raw, credential.digest.encode('ascii'))
        except ValueError:
            logger.error('Stored credential is not a valid bcrypt hash')
            return False
    if not credential.secret:
        logger.error('Stored plaintext credential is empty')
        return False
    return secrets.compare_digest(raw, credential.secret.encode('utf-8'))
