import threading
from datetime import datetime, timedelta, timezone as dt_timezone
from unittest import mock

from django.core.exceptions import ValidationError
from django.db import connection
from django.test import TestCase, TransactionTestCase, override_settings, skipUnlessDBFeature

from chat import accounts
from chat.models import ChatUser, Device, SavedAccount

BASE = datetime(2026, 1, 1, tzinfo=dt_timezone.utc)


def at(seconds):
    """Freeze django.utils.timezone.now at BASE + seconds."""
    return mock.patch('django.utils.timezone.now', return_value=BASE + timedelta(seconds=seconds))


def save(device_id, username, when, color="#111111", **kwargs):
    with at(when):
        accounts.save_account(device_id, username, color, kwargs.pop('status', ''), **kwargs)


def usernames(device_id):
    return [a.username for a in accounts.list_accounts(device_id)]


class SaveAccountTests(TestCase):

    def test_first_save_creates_device_and_account(self):
        save("D1", "alice", 1, status="hi", preferences={"theme": "dark"})

        self.assertTrue(Device.objects.filter(device_id="D1").exists())
        account = SavedAccount.objects.get(device_id="D1", username="alice")
        self.assertEqual(account.status, "hi")
        self.assertEqual(account.preferences, {"theme": "dark"})
        self.assertEqual(account.last_used, BASE + timedelta(seconds=1))

    def test_fourth_account_evicts_least_recently_used(self):
        save("D1", "alice", 1)
        save("D1", "bob", 2)
        save("D1", "carol", 3)
        self.assertEqual(accounts.account_count("D1"), {"count": 3, "maxAccounts": 3})

        save("D1", "dave", 4)

        self.assertEqual(usernames("D1"), ["dave", "carol", "bob"])
        self.assertEqual(accounts.account_count("D1")["count"], 3)

    def test_resave_updates_in_place(self):
        for when, name in enumerate(["alice", "bob", "carol", "dave"], start=1):
            save("D1", name, when)

        save("D1", "bob", 5, color="#ff0000")

        listed = accounts.list_accounts("D1")
        self.assertEqual([a.username for a in listed], ["bob", "dave", "carol"])
        self.assertEqual(listed[0].color, "#ff0000")
        self.assertEqual(listed[0].last_used, BASE + timedelta(seconds=5))
        self.assertEqual(accounts.account_count("D1")["count"], 3)

    def test_resave_refreshes_lru_position(self):
        save("D1", "alice", 1)
        save("D1", "bob", 2)
        save("D1", "carol", 3)
        save("D1", "alice", 4)

        save("D1", "dave", 5)

        self.assertEqual(usernames("D1"), ["dave", "alice", "carol"])

    def test_resave_overwrites_avatar_and_preferences(self):
        save("D1", "alice", 1, avatar="https://img/a.png", preferences={"sound": True})
        save("D1", "alice", 2)

        account = SavedAccount.objects.get(device_id="D1", username="alice")
        self.assertIsNone(account.avatar)
        self.assertEqual(account.preferences, {})

    def test_ties_evict_first_seen(self):
        save("D1", "alice", 1)
        save("D1", "bob", 1)
        save("D1", "carol", 1)

        save("D1", "dave", 2)

        self.assertNotIn("alice", usernames("D1"))
        self.assertIn("bob", usernames("D1"))

    def test_devices_are_independent(self):
        for when, name in enumerate(["a", "b", "c"], start=1):
            save("D1", name, when)
        save("D2", "z", 10)

        self.assertEqual(accounts.account_count("D1")["count"], 3)
        self.assertEqual(usernames("D2"), ["z"])

    def test_count_never_exceeds_cap(self):
        names = ["u%d" % i for i in range(6)]
        for when in range(20):
            save("D1", names[(when * 5) % len(names)], when)
            self.assertLessEqual(accounts.account_count("D1")["count"], 3)

    @override_settings(CHAT_MAX_SAVED_ACCOUNTS=2)
    def test_lowered_cap_trims_on_next_new_account(self):
        device = Device.objects.create(device_id="D1")
        for i in range(4):
            SavedAccount.objects.create(
                device=device, username=f"u{i}", color="", status="",
                last_used=BASE + timedelta(seconds=i),
            )

        save("D1", "new", 10)

        self.assertEqual(usernames("D1"), ["new", "u3"])

    def test_new_account_creates_chat_user(self):
        save("D1", "alice", 1, color="#00ff00", status="here")

        user = ChatUser.objects.get(username="alice")
        self.assertEqual(user.color, "#00ff00")
        self.assertEqual(user.status, "here")
        self.assertTrue(user.is_online)

    def test_new_account_patches_existing_chat_user(self):
        ChatUser.objects.create(username="alice", color="#000000", is_online=False)

        save("D1", "alice", 1, color="#123456")

        user = ChatUser.objects.get(username="alice")
        self.assertEqual(user.color, "#123456")
        self.assertTrue(user.is_online)
        self.assertEqual(ChatUser.objects.count(), 1)

    def test_blank_identifiers_rejected_before_store(self):
        for device_id, username in [("", "alice"), ("D1", ""), ("  ", "bob"), (None, "bob")]:
            with self.subTest(device_id=device_id, username=username):
                with self.assertRaises(ValidationError):
                    accounts.save_account(device_id, username, "#000", "")
        self.assertFalse(Device.objects.exists())
        self.assertFalse(SavedAccount.objects.exists())

    def test_unknown_preference_rejected(self):
        with self.assertRaises(ValidationError):
            accounts.save_account("D1", "alice", "#000", "", preferences={"volume": 3})
        with self.assertRaises(ValidationError):
            accounts.save_account("D1", "alice", "#000", "", preferences={"sound": "yes"})


class ListAndCountTests(TestCase):

    def test_count_for_unseen_device(self):
        self.assertEqual(accounts.account_count("D2"), {"count": 0, "maxAccounts": 3})

    def test_list_respects_limit(self):
        save("D1", "alice", 1)
        save("D1", "bob", 2)

        self.assertEqual([a.username for a in accounts.list_accounts("D1", limit=1)], ["bob"])

    def test_list_returns_snapshot(self):
        save("D1", "alice", 1)
        listed = accounts.list_accounts("D1")
        save("D1", "bob", 2)

        self.assertIsInstance(listed, list)
        self.assertEqual(len(listed), 1)

    def test_forget_account(self):
        save("D1", "alice", 1)

        self.assertTrue(accounts.forget_account("D1", "alice"))
        self.assertFalse(accounts.forget_account("D1", "alice"))
        self.assertEqual(accounts.account_count("D1")["count"], 0)

    def test_reads_normalize_device_id_like_saves(self):
        save(" D1 ", "alice", 1)

        self.assertEqual(usernames(" D1"), ["alice"])
        self.assertEqual(usernames("D1"), ["alice"])
        self.assertEqual(accounts.account_count("D1 ")["count"], 1)


class DeviceLockTests(TransactionTestCase):

    def test_device_row_locked_before_accounts_are_read(self):
        events = []
        lock = Device.objects.select_for_update
        read = SavedAccount.objects.filter

        def locking(*args, **kwargs):
            events.append(("lock", connection.in_atomic_block))
            return lock(*args, **kwargs)

        def reading(*args, **kwargs):
            events.append(("read", connection.in_atomic_block))
            return read(*args, **kwargs)

        with mock.patch.object(Device.objects, "select_for_update", side_effect=locking), \
                mock.patch.object(SavedAccount.objects, "filter", side_effect=reading):
            accounts.save_account("D1", "alice", "#000", "")

        self.assertEqual(events[0], ("lock", True))
        self.assertIn(("read", True), events[1:])
        self.assertTrue(all(inside for _, inside in events))

    @skipUnlessDBFeature('has_select_for_update')
    def test_concurrent_new_accounts_never_exceed_cap(self):
        save("D1", "alice", 1)
        save("D1", "bob", 2)
        barrier = threading.Barrier(2)
        errors = []

        def worker(username):
            try:
                barrier.wait()
                accounts.save_account("D1", username, "#000", "")
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(name,)) for name in ("carol", "dave")]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(errors, [])
        self.assertEqual(accounts.account_count("D1")["count"], 3)
        self.assertNotIn("alice", usernames("D1"))
