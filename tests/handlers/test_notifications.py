#
# This file is licensed under the Affero General Public License (AGPL) version 3.
#
# Copyright (C) 2026 Element Creations Ltd
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# See the GNU Affero General Public License for more details:
# <https://www.gnu.org/licenses/agpl-3.0.html>.
#
#
from mxclient.handlers.notifications import NotificationTimeline

from tests import unittest


def _notification(event_id: str, actions: list | None = None) -> dict:
    return {
        "room_id": "!room:test",
        "event": {
            "event_id": event_id,
            "type": "m.room.message",
            "sender": "@bob:test",
            "content": {"body": event_id},
        },
        "actions": actions if actions is not None else ["notify"],
        "read": False,
        "ts": 1,
    }


class NotificationsTestCase(unittest.ClientTestCase):
    def test_paginate(self) -> None:
        """Pages are prepended oldest first, until the homeserver runs out."""
        timeline = NotificationTimeline()
        self.transport.expect(
            "GET",
            "/notifications",
            {
                "notifications": [_notification("$3"), _notification("$2")],
                "next_token": "t1",
            },
        )
        self.transport.expect(
            "GET", "/notifications", {"notifications": [_notification("$1")]}
        )

        self.assertTrue(self.get_success(self.client.paginate_notifications(timeline)))
        self.assertEqual([e.event_id for e in timeline.events], ["$2", "$3"])
        self.assertEqual(timeline.pagination_token, "t1")

        self.assertFalse(
            self.get_success(self.client.paginate_notifications(timeline))
        )
        self.assertEqual([e.event_id for e in timeline.events], ["$1", "$2", "$3"])
        self.assertTrue(timeline.at_start)
        self.assertIsNone(timeline.pagination_token)

        first, second = self.transport.get_requests("GET", "/notifications")
        self.assertEqual(first.query_params, {"limit": "30"})
        self.assertEqual(second.query_params, {"limit": "30", "from": "t1"})

        # There's nothing more to fetch.
        self.assertFalse(
            self.get_success(self.client.paginate_notifications(timeline))
        )
        self.assertEqual(len(self.transport.get_requests("GET", "/notifications")), 2)

    def test_highlights_only(self) -> None:
        timeline = NotificationTimeline(highlight_only=True)
        self.transport.expect(
            "GET",
            "/notifications",
            {
                "notifications": [
                    _notification(
                        "$1", ["notify", {"set_tweak": "highlight"}, "dont_know"]
                    )
                ]
            },
        )

        self.get_success(self.client.paginate_notifications(timeline))

        request = self.transport.get_requests("GET", "/notifications")[0]
        self.assertEqual(request.query_params, {"limit": "30", "only": "highlight"})

        event = timeline.events[0]
        self.assertEqual(event.room_id, "!room:test")
        assert event.push_actions is not None
        self.assertTrue(event.push_actions.notify)
        self.assertTrue(event.push_actions.highlight)

    def test_malformed_notifications_are_dropped(self) -> None:
        timeline = NotificationTimeline()
        self.transport.expect(
            "GET",
            "/notifications",
            {"notifications": [{"room_id": "!room:test"}, _notification("$1")]},
        )

        self.get_success(self.client.paginate_notifications(timeline))

        self.assertEqual([e.event_id for e in timeline.events], ["$1"])

    def test_invalid_room_ids_are_dropped(self) -> None:
        """Notifications whose room ID isn't a room ID are dropped."""
        timeline = NotificationTimeline()
        bad = _notification("$bad")
        bad["room_id"] = "__proto__"
        self.transport.expect(
            "GET",
            "/notifications",
            {"notifications": [bad, _notification("$1")]},
        )

        self.get_success(self.client.paginate_notifications(timeline))

        self.assertEqual([e.event_id for e in timeline.events], ["$1"])

    def test_cannot_paginate_forwards(self) -> None:
        self.get_failure(
            self.client.paginate_notifications(NotificationTimeline(), backwards=False),
            ValueError,
        )
        self.assertEqual(self.transport.requests, [])
