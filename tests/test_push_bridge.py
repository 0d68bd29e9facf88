import json
import unittest

from tests.support import ORIGIN, make_state

from offline_gateway.worker.clients import ClientRegistry
from offline_gateway.worker.events import NotificationClickEvent, PushEvent, dispatch
from offline_gateway.worker.push import (
    NotificationCenter,
    NotificationDefaults,
    notification_click,
    parse_push_payload,
    show_push,
)

DEFAULTS = NotificationDefaults()


class ParsePushPayloadTests(unittest.TestCase):
    def test_missing_fields_take_defaults(self):
        intent = parse_push_payload(json.dumps({"title": "Hi", "body": "test"}).encode("utf-8"))
        self.assertEqual(intent.title, "Hi")
        self.assertEqual(intent.body, "test")
        self.assertEqual(intent.icon, DEFAULTS.icon)
        self.assertEqual(intent.badge, DEFAULTS.badge)
        self.assertEqual(intent.target_url, "/")
        self.assertGreater(intent.timestamp, 0)

    def test_empty_payload_uses_all_defaults(self):
        intent = parse_push_payload(None)
        self.assertEqual(intent.title, "New Message")
        self.assertEqual(intent.body, "You have a new message from Career Assistant")

    def test_malformed_payload_uses_defaults(self):
        for data in (b"{not json", b"\xff\xfe", b"[1, 2, 3]", b'"just a string"'):
            intent = parse_push_payload(data)
            self.assertEqual(intent.title, DEFAULTS.title, data)
            self.assertEqual(intent.body, DEFAULTS.body, data)

    def test_custom_defaults_and_url(self):
        defaults = NotificationDefaults(title="Zewed", body="Ping")
        intent = parse_push_payload('{"url": "/jobs.html", "tag": "jobs"}', defaults)
        self.assertEqual(intent.title, "Zewed")
        self.assertEqual(intent.target_url, "/jobs.html")
        self.assertEqual(intent.tag, "jobs")


class NotificationClickTests(unittest.TestCase):
    def setUp(self):
        self.center = NotificationCenter()
        self.clients = ClientRegistry()

    def _show(self, url="/"):
        return show_push(self.center, json.dumps({"title": "Hi", "url": url}))

    def test_notification_carries_actions_and_vibration(self):
        notification = self._show().to_dict()
        self.assertEqual([a["action"] for a in notification["actions"]], ["open", "dismiss"])
        self.assertEqual(notification["vibrate"], [200, 100, 200])
        self.assertEqual(notification["data"]["url"], "/")

    def test_open_focuses_existing_window(self):
        other = self.clients.register(f"{ORIGIN}/jobs.html")
        home = self.clients.register(f"{ORIGIN}/")
        self.clients.focus(other.id)
        notification = self._show("/")

        client = notification_click(self.center, self.clients, notification, "open", origin=ORIGIN)

        self.assertIs(client, home)
        self.assertTrue(home.focused)
        self.assertFalse(other.focused)
        self.assertEqual(len(self.clients.match_all()), 2)
        self.assertIsNone(self.center.get(notification.id))

    def test_body_click_opens_new_window_when_none_matches(self):
        self.clients.register(f"{ORIGIN}/jobs.html")
        notification = self._show("/interview-prep.html")

        client = notification_click(self.center, self.clients, notification, None, origin=ORIGIN)

        self.assertEqual(client.url, f"{ORIGIN}/interview-prep.html")
        self.assertTrue(client.focused)
        self.assertEqual(len(self.clients.match_all()), 2)

    def test_dismiss_only_closes(self):
        notification = self._show()
        result = notification_click(self.center, self.clients, notification, "dismiss", origin=ORIGIN)
        self.assertIsNone(result)
        self.assertEqual(self.center.list(), [])
        self.assertEqual(self.clients.match_all(), [])

    def test_same_tag_replaces_previous_notification(self):
        show_push(self.center, '{"title": "one", "tag": "chat"}')
        show_push(self.center, '{"title": "two", "tag": "chat"}')
        show_push(self.center, '{"title": "untagged"}')
        self.assertEqual(sorted(n.title for n in self.center.list()), ["two", "untagged"])


class PushDispatchTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.state = make_state()

    async def asyncTearDown(self):
        await self.state.aclose()

    async def test_push_then_click_round_trip(self):
        notification = await dispatch(self.state, PushEvent(data=b'{"title": "Hi", "body": "test"}'))
        self.assertEqual(notification.icon, self.state.notification_defaults.icon)

        client = await dispatch(self.state, NotificationClickEvent(notification_id=notification.id, action="open"))

        self.assertEqual(client.url, f"{ORIGIN}/")
        self.assertEqual(self.state.notifications.list(), [])

    async def test_click_on_unknown_notification_is_ignored(self):
        result = await dispatch(self.state, NotificationClickEvent(notification_id="missing"))
        self.assertIsNone(result)
        self.assertEqual(self.state.clients.match_all(), [])


if __name__ == "__main__":
    unittest.main()
