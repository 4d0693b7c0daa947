import json

from django.test import TestCase, override_settings
from django.urls import reverse

from chat.models import ChatUser, Message, SavedAccount


class ApiTestCase(TestCase):

    def post(self, name, payload=None, **kwargs):
        return self.client.post(
            reverse(name, kwargs=kwargs),
            data=json.dumps(payload or {}),
            content_type="application/json",
        )

    def get(self, name, params=None, **kwargs):
        return self.client.get(reverse(name, kwargs=kwargs), params or {})


class SavedAccountApiTests(ApiTestCase):

    def save(self, username, **extra):
        payload = {"deviceId": "D1", "username": username, "color": "#111", "status": ""}
        payload.update(extra)
        return self.post("save_account", payload)

    def test_save_list_and_count(self):
        for name in ["alice", "bob", "carol", "dave"]:
            self.assertEqual(self.save(name).status_code, 200)

        response = self.get("saved_accounts", device_id="D1")
        self.assertEqual(
            [a["username"] for a in response.json()["accounts"]],
            ["dave", "carol", "bob"],
        )
        self.assertEqual(
            self.get("account_count", device_id="D1").json(),
            {"count": 3, "maxAccounts": 3},
        )

    def test_save_rejects_blank_username(self):
        response = self.save("  ")

        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())
        self.assertFalse(SavedAccount.objects.exists())

    def test_save_rejects_bad_json(self):
        response = self.client.post(
            reverse("save_account"), data="{nope", content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)

    def test_save_requires_post(self):
        self.assertEqual(self.client.get(reverse("save_account")).status_code, 405)

    def test_forget(self):
        self.save("alice")

        response = self.post("forget_account", {"username": "alice"}, device_id="D1")

        self.assertEqual(response.json(), {"success": True, "removed": True})

    def test_unseen_device_count(self):
        self.assertEqual(
            self.get("account_count", device_id="D2").json(),
            {"count": 0, "maxAccounts": 3},
        )


class MessageApiTests(ApiTestCase):

    def test_send_and_list(self):
        response = self.post("send_message", {"text": "hi", "username": "alice", "color": "#f00"})
        self.assertEqual(response.status_code, 201)

        messages = self.get("message_list").json()["messages"]
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0]["text"], "hi")
        self.assertTrue(messages[0]["delivered"])

    def test_edit_permissions_and_missing(self):
        message = Message.objects.create(text="x", username="alice")

        other = self.post("edit_message", {"newText": "y", "username": "bob"}, message_id=message.pk)
        missing = self.post("edit_message", {"newText": "y", "username": "alice"}, message_id=message.pk + 1)
        ok = self.post("edit_message", {"newText": "y", "username": "alice"}, message_id=message.pk)

        self.assertEqual(other.status_code, 403)
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(ok.status_code, 200)
        self.assertTrue(ok.json()["message"]["edited"])

    def test_react_and_read(self):
        message = Message.objects.create(text="x", username="alice")

        reacted = self.post("react_to_message", {"user": "bob", "emoji": "👍"}, message_id=message.pk)
        read = self.post("mark_read", {"username": "bob"}, message_id=message.pk)

        self.assertEqual(reacted.json()["message"]["reactions"], [{"user": "bob", "emoji": "👍"}])
        self.assertEqual(read.json(), {"success": True})

    def test_search(self):
        Message.objects.create(text="Find me", username="alice")

        response = self.get("search_messages", {"q": "find"})

        self.assertEqual([m["text"] for m in response.json()["messages"]], ["Find me"])

    def test_typing(self):
        self.post("set_typing", {"username": "alice", "isTyping": True})
        self.post("set_typing", {"username": "bob", "isTyping": True})

        response = self.get("typing_users", {"exclude": "bob"})

        self.assertEqual([t["username"] for t in response.json()["typing"]], ["alice"])


class UserApiTests(ApiTestCase):

    def test_status_then_detail(self):
        self.post("update_status", {"status": "away"}, username="alice")

        user = self.get("user_detail", username="alice").json()["user"]
        self.assertEqual(user["status"], "away")
        self.assertIsNone(self.get("user_detail", username="ghost").json()["user"])

    def test_preferences_get_and_post(self):
        posted = self.post("preferences", {"preferences": {"theme": "dark"}}, username="alice")
        fetched = self.get("preferences", username="alice")

        self.assertEqual(posted.json()["preferences"], {"theme": "dark"})
        self.assertEqual(fetched.json(), {"preferences": {"theme": "dark"}})

    def test_presence_and_online_list(self):
        ChatUser.objects.create(username="alice")

        self.post("update_presence", {"isOnline": True}, username="alice")

        users = self.get("online_users").json()["users"]
        self.assertEqual([u["username"] for u in users], ["alice"])

    def test_check_username(self):
        ChatUser.objects.create(username="alice")

        self.assertEqual(self.get("check_username", {"username": "alice"}).json(), {"isTaken": True})

    def test_activity_history(self):
        self.post("update_appearance", {"color": "#123"}, username="alice")

        activities = self.get("activity_history", username="alice").json()["activities"]
        self.assertEqual([a["type"] for a in activities], ["color_change"])

    def test_bad_limit(self):
        response = self.get("activity_history", {"limit": "many"}, username="alice")
        self.assertEqual(response.status_code, 400)

    def test_preferences_rejects_other_methods(self):
        response = self.client.put(reverse("preferences", kwargs={"username": "alice"}))
        self.assertEqual(response.status_code, 405)


class LimitParameterTests(ApiTestCase):

    def test_non_positive_limits_rejected(self):
        routes = [
            ("saved_accounts", {"device_id": "D1"}),
            ("message_list", {}),
            ("activity_history", {"username": "alice"}),
        ]
        for name, kwargs in routes:
            for limit in ("-1", "0"):
                with self.subTest(route=name, limit=limit):
                    response = self.get(name, {"limit": limit}, **kwargs)
                    self.assertEqual(response.status_code, 400)
                    self.assertIn("error", response.json())

    def test_positive_limit_accepted(self):
        Message.objects.create(text="a", username="alice")
        Message.objects.create(text="b", username="alice")

        response = self.get("message_list", {"limit": "1"})

        self.assertEqual([m["text"] for m in response.json()["messages"]], ["b"])


@override_settings(STORAGES={
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"},
})
class AdminSiteTests(TestCase):

    def test_admin_login_page_loads(self):
        response = self.client.get("/admin/login/")
        self.assertEqual(response.status_code, 200)
