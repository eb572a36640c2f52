"""Tests for :mod:`noteboard.domain`."""

from unittest import TestCase
from datetime import datetime, timedelta

from pytz import UTC

from .. import domain
from ..exceptions import ValidationError


class TestSplitUsernames(TestCase):
    """Share lists are normalized before membership is tested."""

    def test_comma_separated(self):
        """Entries are trimmed and empty entries dropped."""
        self.assertEqual(domain.split_usernames(' bob, carol ,, '),
                         ['bob', 'carol'])

    def test_list(self):
        """A list is trimmed item by item, keeping order."""
        self.assertEqual(domain.split_usernames(['carol ', '', ' bob']),
                         ['carol', 'bob'])

    def test_list_with_commas(self):
        """Items that hold several names are split too."""
        self.assertEqual(domain.split_usernames(['bob,carol', 'dave']),
                         ['bob', 'carol', 'dave'])

    def test_none(self):
        self.assertEqual(domain.split_usernames(None), [])


class TestEnums(TestCase):
    """Enums map to and from their stored strings."""

    def test_parse_value(self):
        self.assertIs(domain.PrivacyLevel.parse('some_people'),
                      domain.PrivacyLevel.SOME_PEOPLE)
        self.assertIs(domain.EditingPermission.parse('collaborative'),
                      domain.EditingPermission.COLLABORATIVE)
        self.assertIs(domain.NoteType.parse('code'), domain.NoteType.CODE)

    def test_parse_member(self):
        self.assertIs(domain.NoteType.parse(domain.NoteType.RICH),
                      domain.NoteType.RICH)

    def test_parse_unknown(self):
        """Unknown values are a :class:`.ValidationError`."""
        with self.assertRaises(ValidationError):
            domain.PrivacyLevel.parse('friends')
        with self.assertRaises(ValidationError):
            domain.EditingPermission.parse('CREATOR_ONLY')


class TestAccount(TestCase):

    def test_state(self):
        """A ban outranks verification."""
        account = domain.Account(username='alice')
        self.assertEqual(account.state, domain.AccountState.UNVERIFIED)
        account = account._replace(email_verified=True)
        self.assertEqual(account.state, domain.AccountState.ACTIVE)
        account = account._replace(is_banned=True)
        self.assertEqual(account.state, domain.AccountState.BANNED)
        account = account._replace(email_verified=False)
        self.assertEqual(account.state, domain.AccountState.BANNED)

    def test_name(self):
        """Display name falls back to the username."""
        self.assertEqual(domain.Account(username='alice').name, 'alice')
        self.assertEqual(
            domain.Account(username='alice', display_name='  ').name, 'alice'
        )
        self.assertEqual(
            domain.Account(username='alice', display_name='Alice').name,
            'Alice'
        )


class TestToken(TestCase):

    def test_expired(self):
        now = datetime.now(tz=UTC)
        token = domain.Token('abc', now)
        self.assertFalse(token.expired(now))
        self.assertTrue(token.expired(now + timedelta(seconds=1)))
        self.assertFalse(token.expired(now - timedelta(hours=1)))


class TestNoteDraft(TestCase):
    """Drafts are built from request data."""

    def test_minimal(self):
        """Only a title is needed; the rest has defaults."""
        draft = domain.NoteDraft.from_payload({'title': 'Groceries'})
        note = draft.to_note(owner_id=3)
        self.assertEqual(note.owner_id, 3)
        self.assertEqual(note.title, 'Groceries')
        self.assertIsNone(note.note_id)
        self.assertIsNone(note.position)
        self.assertIsNone(note.color)
        self.assertEqual(note.privacy_level, domain.PrivacyLevel.PRIVATE)
        self.assertEqual(note.editing_permission,
                         domain.EditingPermission.CREATOR_ONLY)
        self.assertEqual(note.note_type, domain.NoteType.TEXT)
        self.assertFalse(note.has_images)

    def test_full(self):
        draft = domain.NoteDraft.from_payload({
            'title': 'Plan',
            'tag': 'work',
            'content': 'print(1)',
            'positionX': 10,
            'positionY': 20,
            'color': '#ABCDEF',
            'noteType': 'code',
            'privacyLevel': 'some_people',
            'sharedWith': ' bob, carol ',
            'imagePaths': ['a.png', 'b.png'],
            'editingPermission': 'collaborative',
        })
        self.assertEqual(draft.position, domain.Position(10, 20))
        self.assertEqual(draft.shared_with, ['bob', 'carol'])
        self.assertEqual(draft.image_paths, ['a.png', 'b.png'])
        self.assertTrue(draft.to_note(1).has_images)
        self.assertEqual(draft.privacy_level,
                         domain.PrivacyLevel.SOME_PEOPLE)

    def test_missing_title(self):
        with self.assertRaises(ValidationError):
            domain.NoteDraft.from_payload({'content': 'no title'})
        with self.assertRaises(ValidationError):
            domain.NoteDraft.from_payload({'title': '   '})

    def test_bad_values(self):
        """Types and enum values are checked."""
        for payload in ({'title': 'x', 'privacyLevel': 'friends'},
                        {'title': 'x', 'positionX': 'left', 'positionY': 1},
                        {'title': 'x', 'positionX': 1},
                        {'title': 'x', 'positionX': True, 'positionY': 1},
                        {'title': 7},
                        {'title': 'x', 'sharedWith': [1, 2]}):
            with self.assertRaises(ValidationError, msg=str(payload)):
                domain.NoteDraft.from_payload(payload)

    def test_not_an_object(self):
        with self.assertRaises(ValidationError):
            domain.NoteDraft.from_payload(['title'])


class TestNoteUpdate(TestCase):
    """Partial updates only touch the fields that are present."""

    def setUp(self):
        self.note = domain.Note(
            note_id=1,
            owner_id=2,
            title='Original',
            tag='tag',
            content='body',
            position=domain.Position(5, 6),
            shared_with=['bob'],
        )

    def test_absent_fields(self):
        update = domain.NoteUpdate.from_payload({'content': 'new body'})
        self.assertEqual(update.present(), {'content': 'new body'})
        self.assertIs(update.title, domain.ABSENT)
        updated = update.apply(self.note)
        self.assertEqual(updated.content, 'new body')
        self.assertEqual(updated.title, 'Original')
        self.assertEqual(updated.position, domain.Position(5, 6))
        self.assertEqual(updated.shared_with, ['bob'])

    def test_empty_update(self):
        update = domain.NoteUpdate.from_payload({})
        self.assertEqual(update.apply(self.note), self.note)
        self.assertFalse(update.changes_sharing)

    def test_changes_sharing(self):
        for payload in ({'privacyLevel': 'everyone'},
                        {'sharedWith': []},
                        {'editingPermission': 'collaborative'}):
            update = domain.NoteUpdate.from_payload(payload)
            self.assertTrue(update.changes_sharing, msg=str(payload))
        update = domain.NoteUpdate.from_payload({'title': 'x', 'tag': 'y'})
        self.assertFalse(update.changes_sharing)

    def test_clear_color(self):
        """An explicit null color goes back to the default."""
        note = self.note._replace(color='#000000')
        update = domain.NoteUpdate.from_payload({'color': None})
        self.assertIsNone(update.apply(note).color)

    def test_absent_is_falsy(self):
        self.assertFalse(domain.ABSENT)
        self.assertEqual(repr(domain.ABSENT), 'ABSENT')


class TestDictConversion(TestCase):

    def test_identity(self):
        identity = domain.Identity(user_id=4, username='alice', is_admin=True)
        data = domain.to_dict(identity)
        self.assertEqual(data, {'user_id': 4, 'username': 'alice',
                                'is_admin': True})
        self.assertEqual(domain.from_dict(domain.Identity, data), identity)

    def test_note(self):
        """Nested tuples, enums and lists survive the trip."""
        note = domain.Note(note_id=1, owner_id=2, title='t',
                           position=domain.Position(1, 2),
                           privacy_level=domain.PrivacyLevel.EVERYONE,
                           shared_with=['bob'])
        data = domain.to_dict(note)
        self.assertEqual(data['privacy_level'], 'everyone')
        self.assertEqual(data['position'], {'x': 1, 'y': 2})
        self.assertEqual(domain.from_dict(domain.Note, data), note)

    def test_datetime(self):
        banned_at = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
        entry = domain.BannedEmail(email='a@x.com', banned_at=banned_at)
        data = domain.to_dict(entry)
        self.assertEqual(data['banned_at'], banned_at.isoformat())
        self.assertEqual(domain.from_dict(domain.BannedEmail, data), entry)
