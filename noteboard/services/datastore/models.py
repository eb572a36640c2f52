"""SQLAlchemy models for database integration."""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, ForeignKey, Integer, String, Text, text
from sqlalchemy.orm import relationship

db: SQLAlchemy = SQLAlchemy()


class DBUser(db.Model):  # type: ignore
    """
    Persistence for :class:`domain.Account`.

    Token columns are written in pairs: a token and its expiry are either
    both set or both null.
    """

    __tablename__ = 'users'

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True, unique=True, index=True)
    password = Column(String(255), nullable=False)
    """Stored credential; see :mod:`noteboard.passwords`."""

    display_name = Column(String(100), nullable=True)
    biography = Column(Text, nullable=True)
    avatar = Column(String(255), nullable=True)

    flag_admin = Column(Integer, nullable=False, index=True,
                        server_default=text("'0'"))
    flag_banned = Column(Integer, nullable=False, index=True,
                         server_default=text("'0'"))
    flag_email_verified = Column(Integer, nullable=False,
                                 server_default=text("'0'"))

    verification_token = Column(String(64), nullable=True, unique=True,
                                index=True)
    verification_token_expiry = Column(Integer, nullable=True)
    """Epoch time."""
    password_reset_token = Column(String(64), nullable=True, unique=True,
                                  index=True)
    password_reset_token_expiry = Column(Integer, nullable=True)
    """Epoch time."""

    created_at = Column(Integer, nullable=False, server_default=text("'0'"))
    last_login = Column(Integer, nullable=True)


class DBBannedEmail(db.Model):  # type: ignore
    """Persistence for :class:`domain.BannedEmail`."""

    __tablename__ = 'banned_emails'

    email = Column(String(255), primary_key=True)
    reason = Column(String(255), nullable=True)
    banned_at = Column(Integer, nullable=False, server_default=text("'0'"))
    """Epoch time."""
    banned_by = Column(ForeignKey('users.user_id'), nullable=True)


class DBNote(db.Model):  # type: ignore
    """Persistence for :class:`domain.Note`."""

    __tablename__ = 'notes'

    note_id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    tag = Column(String(255), nullable=False, server_default=text("''"))
    content = Column(Text, nullable=True)
    owner_id = Column(ForeignKey('users.user_id'), nullable=False, index=True)

    position_x = Column(Integer, nullable=True)
    position_y = Column(Integer, nullable=True)
    color = Column(String(16), nullable=True)

    note_type = Column(String(8), nullable=False,
                       server_default=text("'text'"))
    privacy_level = Column(String(16), nullable=False, index=True,
                           server_default=text("'private'"))
    shared_with = Column(Text, nullable=True)
    """Comma-separated usernames."""

    flag_has_images = Column(Integer, nullable=False,
                             server_default=text("'0'"))
    image_paths = Column(Text, nullable=True)
    """Comma-separated storage references."""

    editing_permission = Column(String(16), nullable=False,
                                server_default=text("'creator_only'"))

    owner = relationship('DBUser')
