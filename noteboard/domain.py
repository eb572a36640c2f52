"""Defines accounts, bans and notes for the note board."""

from typing import Any, Optional, NamedTuple, List, Callable, Dict, \
    Iterable, Union, get_type_hints
from datetime import datetime
from enum import Enum
from functools import partial
import typing

import dateutil.parser
from pytz import UTC

from .exceptions import ValidationError

DEFAULT_COLOR = '#FFFF88'
"""Color of a note that has none of its own."""


class _WireEnum(Enum):
    """An enum with a total mapping to and from its stored string."""

    @classmethod
    def parse(cls, value: Any) -> Any:
        """Get the member for ``value``, or raise :class:`.ValidationError`."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise ValidationError(f'Unknown {cls.__name__}: {value!r}') from e


class PrivacyLevel(_WireEnum):
    """Who, besides the owner, may see a note."""

    PRIVATE = 'private'
    SOME_PEOPLE = 'some_people'
    EVERYONE = 'everyone'


class EditingPermission(_WireEnum):
    """Whether readers other than the owner may change a note."""

    CREATOR_ONLY = 'creator_only'
    COLLABORATIVE = 'collaborative'


class NoteType(_WireEnum):
    """How the content of a note is rendered."""

    TEXT = 'text'
    CODE = 'code'
    RICH = 'rich'


class AccountState(Enum):
    """Lifecycle state of an account. Admin is a flag, not a state."""

    UNVERIFIED = 'unverified'
    ACTIVE = 'active'
    BANNED = 'banned'


class Token(NamedTuple):
    """A one-time token and the moment it stops being valid."""

    value: str
    expires: datetime

    def expired(self, at: datetime) -> bool:
        """Whether the token is no longer valid at ``at``."""
        return at > self.expires


class Account(NamedTuple):
    """A registered user of the board."""

    username: str
    """Unique login name."""

    email: Optional[str] = None
    """Unique email address. Optional when verification is not in use."""

    user_id: Optional[int] = None
    """Unique identifier. If ``None``, the account has not been stored."""

    display_name: Optional[str] = None
    biography: Optional[str] = None
    avatar: Optional[str] = None
    """Reference to an image in external storage."""

    is_admin: bool = False
    is_banned: bool = False
    email_verified: bool = False

    verification: Optional[Token] = None
    """Pending email verification token."""

    password_reset: Optional[Token] = None
    """Pending password reset token."""

    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @property
    def state(self) -> AccountState:
        """Current lifecycle state; a ban outranks verification."""
        if self.is_banned:
            return AccountState.BANNED
        if not self.email_verified:
            return AccountState.UNVERIFIED
        return AccountState.ACTIVE

    @property
    def name(self) -> str:
        """The display name, or the username when no display name is set."""
        if self.display_name and self.display_name.strip():
            return self.display_name
        return self.username


class Identity(NamedTuple):
    """The requester, as established at login and carried by the session."""

    user_id: int
    username: str
    is_admin: bool = False


class BannedEmail(NamedTuple):
    """An email address that may not be used to register."""

    email: str
    reason: Optional[str] = None
    banned_at: Optional[datetime] = None
    banned_by: Optional[int] = None
    """Account ID of the administrator who imposed the ban."""


class Position(NamedTuple):
    """Board coordinates of a note."""

    x: int
    y: int


DEFAULT_POSITION = Position(50, 50)
"""Where a note without a stored position is shown."""


class Note(NamedTuple):
    """A note on the board."""

    title: str
    owner_id: int

    note_id: Optional[int] = None
    """Unique identifier. If ``None``, the note has not been stored."""

    tag: str = ''
    content: str = ''

    position: Optional[Position] = None
    """Stored position, if any. See :data:`DEFAULT_POSITION`."""

    color: Optional[str] = None
    """Stored color, if any. See :data:`DEFAULT_COLOR`."""

    note_type: NoteType = NoteType.TEXT
    privacy_level: PrivacyLevel = PrivacyLevel.PRIVATE

    shared_with: List[str] = []
    """Usernames; only consulted for :attr:`PrivacyLevel.SOME_PEOPLE`."""

    image_paths: List[str] = []
    """References to images in external storage."""

    editing_permission: EditingPermission = EditingPermission.CREATOR_ONLY

    @property
    def has_images(self) -> bool:
        """Whether any images are attached."""
        return bool(self.image_paths)


class _Absent:
    """Marks a field that is not part of a partial update."""

    def __repr__(self) -> str:
        return 'ABSENT'

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()


class NoteUpdate(NamedTuple):
    """
    A partial update to a :class:`.Note`.

    Each field is either :data:`ABSENT` (leave as is) or the new value.
    """

    title: Any = ABSENT
    tag: Any = ABSENT
    content: Any = ABSENT
    position: Any = ABSENT
    color: Any = ABSENT
    note_type: Any = ABSENT
    privacy_level: Any = ABSENT
    shared_with: Any = ABSENT
    image_paths: Any = ABSENT
    editing_permission: Any = ABSENT

    SHARING_FIELDS = ('privacy_level', 'shared_with',  # type: ignore
                      'editing_permission')

    def present(self) -> Dict[str, Any]:
        """Fields that carry a value."""
        return {field: value for field, value in self._asdict().items()
                if value is not ABSENT}

    @property
    def changes_sharing(self) -> bool:
        """Whether the update touches who can see or edit the note."""
        return any(field in self.SHARING_FIELDS for field in self.present())

    def apply(self, note: Note) -> Note:
        """Generate a copy of ``note`` with the present fields replaced."""
        return note._replace(**self.present())

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'NoteUpdate':
        """Build an update from request data, validating each present key."""
        return cls(**_parse_payload(payload))


class NoteDraft(NamedTuple):
    """The fields accepted when creating a :class:`.Note`."""

    title: str
    tag: str = ''
    content: str = ''
    position: Optional[Position] = None
    color: Optional[str] = None
    note_type: NoteType = NoteType.TEXT
    privacy_level: PrivacyLevel = PrivacyLevel.PRIVATE
    shared_with: List[str] = []
    image_paths: List[str] = []
    editing_permission: EditingPermission = EditingPermission.CREATOR_ONLY

    def to_note(self, owner_id: int) -> Note:
        """An unsaved note owned by ``owner_id``."""
        return Note(owner_id=owner_id, **self._asdict())

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'NoteDraft':
        """Build a draft from request data; a title is required."""
        fields = _parse_payload(payload)
        if not fields.get('title', '').strip():
            raise ValidationError('A note needs a title')
        return cls(**fields)


def split_usernames(raw: Union[str, Iterable[str], None]) -> List[str]:
    """
    Normalize a share list.

    Accepts either comma-separated text or a sequence of usernames. Tokens
    are whitespace-trimmed and empty tokens dropped; order is kept.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    return [name.strip() for item in raw if item
            for name in item.split(',') if name.strip()]


def _text(key: str, value: Any) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationError(f'{key} must be text')
    return value


def _coordinate(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{key} must be an integer')
    return value


def _string_list(key: str, value: Any) -> List[str]:
    if value is None or isinstance(value, str):
        return split_usernames(value)
    if isinstance(value, (list, tuple)) \
            and all(isinstance(item, str) for item in value):
        return split_usernames(value)
    raise ValidationError(f'{key} must be a list of strings')


def _parse_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ValidationError('Expected an object')
    fields: Dict[str, Any] = {}
    for key in ('title', 'tag', 'content'):
        if key in payload:
            fields[key] = _text(key, payload[key])
    if 'color' in payload:
        fields['color'] = _text('color', payload['color']) or None
    if 'positionX' in payload or 'positionY' in payload:
        if 'positionX' not in payload or 'positionY' not in payload:
            raise ValidationError('positionX and positionY go together')
        fields['position'] = Position(
            _coordinate('positionX', payload['positionX']),
            _coordinate('positionY', payload['positionY'])
        )
    if 'noteType' in payload:
        fields['note_type'] = NoteType.parse(payload['noteType'])
    if 'privacyLevel' in payload:
        fields['privacy_level'] = PrivacyLevel.parse(payload['privacyLevel'])
    if 'editingPermission' in payload:
        fields['editing_permission'] = \
            EditingPermission.parse(payload['editingPermission'])
    if 'sharedWith' in payload:
        fields['shared_with'] = _string_list('sharedWith',
                                             payload['sharedWith'])
    if 'imagePaths' in payload:
        fields['image_paths'] = _string_list('imagePaths',
                                             payload['imagePaths'])
    return fields


# Helpers and private functions.


def to_dict(obj: tuple) -> dict:
    """
    Generate a dict representation of a NamedTuple instance.

    This just uses the built-in ``_asdict`` method on the intance, but also
    calls this on any child NamedTuple instances (recursively) so that the
    entire tree is cast to ``dict``. Enum members become their values.
    """
    if not hasattr(obj, '_asdict'):  # NamedTuple-generated classes have this.
        return {}
    data = obj._asdict()  # type: ignore

    def _cast(obj: Any) -> Any:
        if hasattr(obj, '_asdict'):
            obj = to_dict(obj)
        elif isinstance(obj, datetime):
            obj = obj.isoformat()
        elif isinstance(obj, Enum):
            obj = obj.value
        elif isinstance(obj, (list, tuple)):
            obj = [_cast(o) for o in obj]
        return obj

    return {key: _cast(value) for key, value in data.items()}


def from_dict(cls: type, data: dict) -> Any:
    """
    Generate a NamedTuple instance from a dict, with recursion.

    This is the inverse of :func:`to_dict`. Fields typed with another
    NamedTuple, a ``datetime`` or an enum are cast from their dict, ISO-8601
    or value representations.
    """
    _data = {}
    for field, field_type in get_type_hints(cls).items():
        if field not in data or field not in cls._fields:  # type: ignore
            continue
        value = data[field]
        target_type = _get_cast_type(field_type, value)
        if target_type:
            value = target_type(value)
        _data[field] = value
    return cls(**_data)


def _candidate_types(field_type: Any) -> List[Any]:
    """Unpack ``Optional[X]`` and friends into their member types."""
    if typing.get_origin(field_type) is Union:
        return [t for t in typing.get_args(field_type) if t is not type(None)]
    return [field_type]


def _get_cast_type(field_type: Any, value: Any) -> Optional[Callable]:
    """Get a casting callable for a field type/value."""
    for s_type in _candidate_types(field_type):
        if not isinstance(s_type, type):
            continue
        if type(value) is dict and hasattr(s_type, '_fields'):
            return partial(from_dict, s_type)
        if type(value) is str and s_type is datetime:
            return _parse_datetime
        if issubclass(s_type, Enum) and not isinstance(value, s_type):
            return s_type
    return None


def _parse_datetime(value: str) -> datetime:
    parsed = dateutil.parser.parse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
