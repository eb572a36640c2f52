"""Tests for :mod:`noteboard.accounts`."""

from unittest import TestCase, mock
from datetime import timedelta

from .. import accounts, bans, domain, passwords
from ..exceptions import DuplicateUsername, DuplicateEmail, EmailBanned, \
    CannotBanAdmin, AuthenticationFailed, EmailNotVerified, NotFound, \
    Unauthenticated, AccountBanned, Forbidden, ValidationError
from ..services import mail
from ..services.datastore import accounts as store
from .util import temporary_app


class AccountsTestCase(TestCase):
    """Runs each test against an empty database."""

    config: dict = {}

    def setUp(self):
        self.context = temporary_app(self.config)
        self.app = self.context.__enter__()

    def tearDown(self):
        self.context.__exit__(None, None, None)

    def register_alice(self):
        return accounts.register('alice', 'pw1', 'a@x.com')

    def expire(self, account, field):
        """Move a token of ``account`` into the past."""
        token = getattr(account, field)
        past = token._replace(expires=token.expires - timedelta(days=2))
        return store.save(account._replace(**{field: past}))


class TestRegister(AccountsTestCase):

    def test_register_unverified(self):
        """New accounts wait for verification and get a token by email."""
        with mock.patch.object(mail, 'send', return_value=True) as send:
            account = self.register_alice()
        self.assertIsNotNone(account.user_id)
        self.assertFalse(account.email_verified)
        self.assertFalse(account.is_admin)
        self.assertFalse(account.is_banned)
        self.assertEqual(account.state, domain.AccountState.UNVERIFIED)
        self.assertIsNotNone(account.verification)
        self.assertIsNotNone(account.created_at)

        send.assert_called_once()
        to, subject, template, variables = send.call_args[0]
        self.assertEqual(to, 'a@x.com')
        self.assertEqual(template, mail.VERIFICATION)
        self.assertEqual(
            variables['link'],
            'https://notes.example.org/verify-email?token='
            f'{account.verification.value}'
        )

    def test_token_window(self):
        """The verification token is valid for 24 hours."""
        account = self.register_alice()
        window = account.verification.expires - account.created_at
        self.assertAlmostEqual(window.total_seconds(), 24 * 60 * 60,
                               delta=5)

    def test_unique_tokens(self):
        alice = self.register_alice()
        bob = accounts.register('bob', 'pw2', 'b@x.com')
        self.assertNotEqual(alice.verification.value, bob.verification.value)

    def test_credential_is_hashed(self):
        account = self.register_alice()
        stored = store.get_credential(account.user_id)
        self.assertFalse(passwords.is_legacy(stored))
        self.assertTrue(passwords.verify('pw1', stored))

    def test_duplicate_username(self):
        self.register_alice()
        with self.assertRaises(DuplicateUsername):
            accounts.register('alice', 'pw2', 'other@x.com')

    def test_duplicate_email(self):
        self.register_alice()
        with self.assertRaises(DuplicateEmail):
            accounts.register('alicia', 'pw2', 'a@x.com')

    def test_username_checked_first(self):
        self.register_alice()
        with self.assertRaises(DuplicateUsername):
            accounts.register('alice', 'pw2', 'a@x.com')

    def test_banned_email(self):
        """A banned address cannot register, and nothing is created."""
        bans.ban('a@x.com', reason='spam')
        with self.assertRaises(EmailBanned):
            self.register_alice()
        self.assertIsNone(store.get_by_username('alice'))
        self.assertEqual(accounts.list_accounts(), [])

    def test_store_conflict(self):
        """A uniqueness violation at write time is a duplicate, not a crash."""
        self.register_alice()
        with mock.patch.object(store, 'username_exists', return_value=False):
            with self.assertRaises(DuplicateUsername):
                accounts.register('alice', 'pw2', 'new@x.com')
        with mock.patch.object(store, 'email_exists', return_value=False):
            with self.assertRaises(DuplicateEmail):
                accounts.register('alicia', 'pw2', 'a@x.com')
        self.assertEqual(len(accounts.list_accounts()), 1)

    def test_mail_failure_is_not_fatal(self):
        with mock.patch.object(mail, 'send', return_value=False):
            account = self.register_alice()
        self.assertIsNotNone(store.get_by_id(account.user_id))

    def test_email_required(self):
        with self.assertRaises(ValidationError):
            accounts.register('alice', 'pw1')
        with self.assertRaises(ValidationError):
            accounts.register('  ', 'pw1', 'a@x.com')

    def test_empty_password(self):
        with self.assertRaises(ValidationError):
            accounts.register('alice', '', 'a@x.com')

    def test_comma_in_username(self):
        with self.assertRaises(ValidationError):
            accounts.register('a,b', 'pw1', 'a@x.com')
        self.assertFalse(store.username_exists('a,b'))


class TestRegisterWithoutVerification(AccountsTestCase):
    """Variant where accounts are usable right after registration."""

    config = {'REQUIRE_EMAIL_VERIFICATION': False}

    def test_usable(self):
        with mock.patch.object(mail, 'send') as send:
            account = accounts.register('alice', 'pw1')
        send.assert_not_called()
        self.assertTrue(account.email_verified)
        self.assertIsNone(account.verification)
        self.assertIsNone(account.email)
        self.assertEqual(accounts.login('alice', 'pw1').username, 'alice')


class TestVerifyEmail(AccountsTestCase):

    def test_scenario(self):
        """Wrong token fails; the right one verifies and is consumed."""
        account = self.register_alice()
        self.assertFalse(accounts.verify_email('wrong-token'))
        self.assertFalse(store.get_by_id(account.user_id).email_verified)

        self.assertTrue(accounts.verify_email(account.verification.value))
        verified = store.get_by_id(account.user_id)
        self.assertTrue(verified.email_verified)
        self.assertIsNone(verified.verification)
        self.assertEqual(verified.state, domain.AccountState.ACTIVE)

        self.assertFalse(accounts.verify_email(account.verification.value))

    def test_expired(self):
        """Tokens older than 24 hours fail and change nothing."""
        account = self.expire(self.register_alice(), 'verification')
        self.assertFalse(accounts.verify_email(account.verification.value))
        unchanged = store.get_by_id(account.user_id)
        self.assertFalse(unchanged.email_verified)
        self.assertEqual(unchanged.verification, account.verification)


class TestResendVerification(AccountsTestCase):

    def test_resend(self):
        account = self.register_alice()
        with mock.patch.object(mail, 'send', return_value=True) as send:
            self.assertTrue(accounts.resend_verification('a@x.com'))
        send.assert_called_once()
        fresh = store.get_by_id(account.user_id)
        self.assertNotEqual(fresh.verification.value,
                            account.verification.value)
        self.assertFalse(accounts.verify_email(account.verification.value))
        self.assertTrue(accounts.verify_email(fresh.verification.value))

    def test_send_failure(self):
        self.register_alice()
        with mock.patch.object(mail, 'send', return_value=False):
            self.assertFalse(accounts.resend_verification('a@x.com'))

    def test_unknown(self):
        with mock.patch.object(mail, 'send') as send:
            self.assertFalse(accounts.resend_verification('nobody@x.com'))
        send.assert_not_called()

    def test_already_verified(self):
        account = self.register_alice()
        accounts.verify_email(account.verification.value)
        with mock.patch.object(mail, 'send') as send:
            self.assertFalse(accounts.resend_verification('a@x.com'))
        send.assert_not_called()


class TestPasswordReset(AccountsTestCase):

    def test_reset(self):
        """The old password stops working and the new one works."""
        account = self.register_alice()
        accounts.verify_email(account.verification.value)
        with mock.patch.object(mail, 'send', return_value=True) as send:
            self.assertTrue(accounts.request_password_reset('a@x.com'))
        token = store.get_by_id(account.user_id).password_reset
        self.assertIsNotNone(token)
        self.assertIn(token.value, send.call_args[0][3]['link'])
        self.assertIn('/reset-password?token=', send.call_args[0][3]['link'])

        self.assertTrue(accounts.reset_password(token.value, 'pw2'))
        self.assertFalse(accounts.check_credentials('alice', 'pw1'))
        self.assertTrue(accounts.check_credentials('alice', 'pw2'))
        self.assertIsNone(store.get_by_id(account.user_id).password_reset)
        self.assertFalse(accounts.reset_password(token.value, 'pw3'))

    def test_token_window(self):
        """Reset tokens are valid for an hour."""
        self.register_alice()
        accounts.request_password_reset('a@x.com')
        account = store.get_by_username('alice')
        window = account.password_reset.expires - account.created_at
        self.assertAlmostEqual(window.total_seconds(), 60 * 60, delta=5)

    def test_expired(self):
        self.register_alice()
        accounts.request_password_reset('a@x.com')
        account = self.expire(store.get_by_username('alice'),
                              'password_reset')
        self.assertFalse(accounts.reset_password(account.password_reset.value,
                                                 'pw2'))
        self.assertTrue(passwords.verify(
            'pw1', store.get_credential(account.user_id)
        ))

    def test_send_failure_keeps_token(self):
        self.register_alice()
        with mock.patch.object(mail, 'send', return_value=False):
            self.assertFalse(accounts.request_password_reset('a@x.com'))
        token = store.get_by_username('alice').password_reset
        self.assertTrue(accounts.reset_password(token.value, 'pw2'))

    def test_unknown(self):
        self.assertFalse(accounts.request_password_reset('nobody@x.com'))

    def test_banned(self):
        account = self.register_alice()
        accounts.ban_user(account.user_id)
        with mock.patch.object(mail, 'send') as send:
            self.assertFalse(accounts.request_password_reset('a@x.com'))
        send.assert_not_called()

    def test_wrong_token(self):
        self.register_alice()
        self.assertFalse(accounts.reset_password('nope', 'pw2'))


class TestCredentials(AccountsTestCase):

    def test_check(self):
        account = self.register_alice()
        self.assertIsNone(account.last_login)
        self.assertTrue(accounts.check_credentials('alice', 'pw1'))
        self.assertIsNotNone(store.get_by_id(account.user_id).last_login)
        self.assertFalse(accounts.check_credentials('alice', 'pw2'))
        self.assertFalse(accounts.check_credentials('nobody', 'pw1'))

    def test_legacy_plaintext(self):
        """Accounts from before hashing can still log in."""
        store.save(domain.Account(username='old', email='old@x.com',
                                  email_verified=True),
                   credential='hunter2')
        self.assertTrue(accounts.check_credentials('old', 'hunter2'))
        self.assertFalse(accounts.check_credentials('old', 'hunter3'))

    def test_login(self):
        account = self.register_alice()
        with self.assertRaises(EmailNotVerified):
            accounts.login('alice', 'pw1')
        accounts.verify_email(account.verification.value)
        identity = accounts.login('alice', 'pw1')
        self.assertEqual(identity, domain.Identity(
            user_id=account.user_id, username='alice', is_admin=False
        ))
        with self.assertRaises(AuthenticationFailed):
            accounts.login('alice', 'wrong')

    def test_not_verified_is_forbidden(self):
        self.assertTrue(issubclass(EmailNotVerified, Forbidden))

    def test_refused_login_is_not_recorded(self):
        """An unverified account is turned away without a login time."""
        account = self.register_alice()
        with self.assertRaises(EmailNotVerified):
            accounts.login('alice', 'pw1')
        self.assertIsNone(store.get_by_id(account.user_id).last_login)

    def test_empty_legacy_credential(self):
        store.save(domain.Account(username='old', email='old@x.com',
                                  email_verified=True),
                   credential='')
        self.assertFalse(accounts.check_credentials('old', ''))


class TestBanDuringLogin(AccountsTestCase):
    """An account banned while its password is checked stays banned."""

    def setUp(self):
        super().setUp()
        account = self.register_alice()
        accounts.verify_email(account.verification.value)
        self.alice = store.get_by_id(account.user_id)
        verify = passwords.verify

        def ban_meanwhile(password, stored):
            accounts.ban_user(self.alice.user_id, reason='spam')
            return verify(password, stored)

        self.verify = mock.patch.object(passwords, 'verify',
                                        side_effect=ban_meanwhile)

    def assertStillBanned(self):
        account = store.get_by_id(self.alice.user_id)
        self.assertTrue(account.is_banned)
        self.assertIsNone(account.last_login)
        self.assertTrue(bans.is_banned('a@x.com'))

    def test_check_credentials(self):
        with self.verify:
            self.assertFalse(accounts.check_credentials('alice', 'pw1'))
        self.assertStillBanned()

    def test_login(self):
        with self.verify:
            with self.assertRaises(AuthenticationFailed):
                accounts.login('alice', 'pw1')
        self.assertStillBanned()

    def test_profile_update_keeps_ban(self):
        """Other writes to the account do not lift the ban either."""
        accounts.ban_user(self.alice.user_id)
        accounts.update_profile(self.alice.user_id, biography='Hi')
        accounts.grant_admin(self.alice.user_id)
        self.assertTrue(store.get_by_id(self.alice.user_id).is_banned)


class TestBan(AccountsTestCase):

    def setUp(self):
        super().setUp()
        account = self.register_alice()
        accounts.verify_email(account.verification.value)
        self.alice = store.get_by_id(account.user_id)
        self.admin = store.save(
            domain.Account(username='root', email='root@x.com', is_admin=True,
                           email_verified=True),
            credential=passwords.encode('rootpw', rounds=4)
        )

    def test_ban_cascades(self):
        """Banning an account bans its email and blocks login."""
        with mock.patch.object(mail, 'send', return_value=True) as send:
            banned = accounts.ban_user(self.alice.user_id, reason='spam',
                                       actor_id=self.admin.user_id)
        self.assertTrue(banned.is_banned)
        self.assertEqual(banned.state, domain.AccountState.BANNED)
        entry = bans.get_banned('a@x.com')
        self.assertEqual(entry.reason, 'spam')
        self.assertEqual(entry.banned_by, self.admin.user_id)
        self.assertEqual(send.call_args[0][2], mail.BAN_NOTICE)
        self.assertFalse(accounts.check_credentials('alice', 'pw1'))
        with self.assertRaises(AuthenticationFailed):
            accounts.login('alice', 'pw1')

    def test_ban_notice_failure(self):
        with mock.patch.object(mail, 'send', return_value=False):
            banned = accounts.ban_user(self.alice.user_id)
        self.assertTrue(store.get_by_id(banned.user_id).is_banned)

    def test_ban_unban_round_trip(self):
        accounts.ban_user(self.alice.user_id, reason='spam')
        unbanned = accounts.unban_user(self.alice.user_id)
        self.assertFalse(unbanned.is_banned)
        self.assertFalse(bans.is_banned('a@x.com'))
        self.assertTrue(accounts.check_credentials('alice', 'pw1'))

    def test_unban_without_registry_entry(self):
        accounts.ban_user(self.alice.user_id)
        bans.unban('a@x.com')
        self.assertFalse(accounts.unban_user(self.alice.user_id).is_banned)

    def test_ban_with_email_already_banned(self):
        """An existing registry entry is kept as it is."""
        bans.ban('a@x.com', reason='earlier')
        accounts.ban_user(self.alice.user_id, reason='later')
        self.assertTrue(store.get_by_id(self.alice.user_id).is_banned)
        self.assertEqual(bans.get_banned('a@x.com').reason, 'earlier')

    def test_ban_twice(self):
        accounts.ban_user(self.alice.user_id)
        accounts.ban_user(self.alice.user_id)
        self.assertTrue(bans.is_banned('a@x.com'))

    def test_cannot_ban_admin(self):
        """Admins must lose the flag before they can be banned."""
        with self.assertRaises(CannotBanAdmin):
            accounts.ban_user(self.admin.user_id)
        self.assertEqual(store.get_by_id(self.admin.user_id), self.admin)
        self.assertFalse(bans.is_banned('root@x.com'))

        accounts.revoke_admin(self.admin.user_id)
        self.assertTrue(accounts.ban_user(self.admin.user_id).is_banned)

    def test_ban_unknown(self):
        with self.assertRaises(NotFound):
            accounts.ban_user(999)

    def test_admin_flag(self):
        self.assertFalse(accounts.is_admin(self.alice.user_id))
        self.assertTrue(accounts.grant_admin(self.alice.user_id).is_admin)
        self.assertTrue(accounts.is_admin(self.alice.user_id))
        self.assertEqual([a.username for a in accounts.list_admins()],
                         ['alice', 'root'])
        self.assertFalse(accounts.revoke_admin(self.alice.user_id).is_admin)
        self.assertFalse(accounts.is_admin(999))


class TestGates(AccountsTestCase):
    """Whether an identity may be used for a request."""

    def setUp(self):
        super().setUp()
        account = self.register_alice()
        self.unverified = accounts.identity_of(account)
        self.token = account.verification.value

    def test_no_identity(self):
        with self.assertRaises(Unauthenticated):
            accounts.require_usable(None)
        self.assertIsNone(accounts.usable_account(None))

    def test_unknown_account(self):
        with self.assertRaises(Unauthenticated):
            accounts.require_usable(domain.Identity(999, 'ghost'))

    def test_unverified(self):
        with self.assertRaises(EmailNotVerified):
            accounts.require_usable(self.unverified)
        accounts.verify_email(self.token)
        self.assertEqual(accounts.require_usable(self.unverified).username,
                         'alice')

    def test_banned(self):
        accounts.verify_email(self.token)
        accounts.ban_user(self.unverified.user_id)
        with self.assertRaises(AccountBanned):
            accounts.require_usable(self.unverified)
        self.assertIsNone(accounts.usable_account(self.unverified))

    def test_admin_uses_stored_flag(self):
        """A stale admin flag in the session does not grant anything."""
        accounts.verify_email(self.token)
        claimed = self.unverified._replace(is_admin=True)
        with self.assertRaises(Forbidden):
            accounts.require_admin(claimed)
        accounts.grant_admin(claimed.user_id)
        self.assertTrue(accounts.require_admin(self.unverified).is_admin)


class TestProfiles(AccountsTestCase):

    def setUp(self):
        super().setUp()
        self.alice = self.register_alice()
        for name in ('bob', 'bobby', 'carol'):
            accounts.register(name, 'pw', f'{name}@x.com')

    def test_update_profile(self):
        updated = accounts.update_profile(self.alice.user_id,
                                          display_name='Alice A.',
                                          biography='Hi', avatar='me.png')
        self.assertEqual(accounts.display_name(updated), 'Alice A.')
        self.assertEqual(updated.biography, 'Hi')
        self.assertEqual(updated.avatar, 'me.png')

        updated = accounts.update_profile(self.alice.user_id, avatar='  ',
                                          biography='Hello')
        self.assertEqual(updated.avatar, 'me.png')
        self.assertEqual(updated.biography, 'Hello')
        self.assertEqual(updated.display_name, 'Alice A.')

    def test_update_unknown(self):
        with self.assertRaises(NotFound):
            accounts.update_profile(999, display_name='x')

    def test_display_name_fallback(self):
        self.assertEqual(accounts.display_name(self.alice), 'alice')

    def test_search_users(self):
        found = accounts.search_users('BOB', exclude_user_id=self.alice.user_id)
        self.assertEqual([a.username for a in found], ['bob', 'bobby'])
        found = accounts.search_users('x.com',
                                      exclude_user_id=self.alice.user_id)
        self.assertNotIn('alice', [a.username for a in found])
        self.assertEqual(len(found), 3)

    def test_search_limit(self):
        for i in range(12):
            accounts.register(f'user{i}', 'pw', f'user{i}@x.com')
        self.assertEqual(len(accounts.search_users('user')), 10)
        self.assertEqual(len(accounts.search_users('')), 10)

    def test_search_wildcards(self):
        """LIKE wildcards in the term are matched literally."""
        self.assertEqual(accounts.search_users('%'), [])
        self.assertEqual(accounts.search_users('_'), [])

    def test_get_account(self):
        self.assertEqual(accounts.get_account(self.alice.user_id).username,
                         'alice')
        with self.assertRaises(NotFound):
            accounts.get_account(999)
