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
from mxclient.api.errors import InvalidEventStateError
from mxclient.events import EventStatus, MatrixEvent
from mxclient.rooms import Room, set_event_status

from tests import unittest
from tests.utils import make_message, make_state_event

ROOM_ID = "!room:test"


def _local_echo(txn_id: str, thread_id: str | None = None) -> MatrixEvent:
    content: dict = {"body": "hi"}
    if thread_id is not None:
        content["m.relates_to"] = {"rel_type": "m.thread", "event_id": thread_id}
    return MatrixEvent(
        {
            "event_id": "~%s:%s" % (ROOM_ID, txn_id),
            "room_id": ROOM_ID,
            "sender": "@alice:test",
            "type": "m.room.message",
            "content": content,
        },
        txn_id=txn_id,
        status=EventStatus.QUEUED,
    )


class EventStatusTestCase(unittest.TestCase):
    def test_valid_transitions(self) -> None:
        event = _local_echo("t1")
        for status in (EventStatus.ENCRYPTING, EventStatus.SENDING, EventStatus.SENT):
            set_event_status(event, status)
            self.assertEqual(event.status, status)

    def test_invalid_transitions(self) -> None:
        event = _local_echo("t1")
        set_event_status(event, EventStatus.SENDING)

        e = self.assertRaises(
            InvalidEventStateError, set_event_status, event, EventStatus.QUEUED
        )
        self.assertEqual(str(e), "Invalid EventStatus transition sending->queued")
        self.assertRaises(
            InvalidEventStateError, set_event_status, event, EventStatus.CANCELLED
        )

    def test_remote_events_have_no_status(self) -> None:
        event = MatrixEvent(make_message("$1"))
        self.assertIsNone(event.status)
        self.assertRaises(
            InvalidEventStateError, set_event_status, event, EventStatus.SENT
        )


class RoomTimelineTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.room = Room(ROOM_ID)

    def test_add_live_events(self) -> None:
        self.room.add_live_events([make_message("$1"), make_message("$2")])

        timeline = self.room.get_live_timeline()
        self.assertEqual([e.event_id for e in timeline], ["$1", "$2"])
        # Sync leaves out the room ID.
        self.assertEqual(timeline[0].room_id, ROOM_ID)

    def test_duplicates_are_ignored(self) -> None:
        self.room.add_live_events([make_message("$1")])
        self.room.add_live_events([make_message("$1"), make_message("$2")])

        self.assertEqual(
            [e.event_id for e in self.room.get_live_timeline()], ["$1", "$2"]
        )

    def test_threads(self) -> None:
        """Thread events go in the thread's timeline; the root goes in both."""
        root = make_message(
            "$root", unsigned={"m.relations": {"m.thread": {"count": 1}}}
        )
        reply = make_message(
            "$reply", relates_to={"rel_type": "m.thread", "event_id": "$root"}
        )
        self.room.add_live_events([root, reply, make_message("$after")])

        self.assertEqual(
            [e.event_id for e in self.room.get_live_timeline()], ["$root", "$after"]
        )
        self.assertEqual(
            [e.event_id for e in self.room.get_thread_timeline("$root")],
            ["$root", "$reply"],
        )
        self.assertEqual(self.room.get_thread_ids(), ["$root"])
        self.assertIsNotNone(self.room.find_event_by_id("$reply"))

    def test_threads_disabled(self) -> None:
        room = Room(ROOM_ID, thread_support=False)
        reply = make_message(
            "$reply", relates_to={"rel_type": "m.thread", "event_id": "$root"}
        )
        room.add_live_events([reply])

        self.assertEqual([e.event_id for e in room.get_live_timeline()], ["$reply"])
        self.assertEqual(room.get_thread_ids(), [])

    def test_timeline_state_events(self) -> None:
        self.room.add_live_events(
            [make_state_event("m.room.topic", {"topic": "Cats"}, event_id="$t")]
        )

        topic = self.room.get_state_event("m.room.topic")
        assert topic is not None
        self.assertEqual(topic.content, {"topic": "Cats"})

    def test_state_events_need_state_key(self) -> None:
        self.room.add_state_events(
            [{"event_id": "$x", "type": "m.room.topic", "content": {}}]
        )
        self.assertIsNone(self.room.get_state_event("m.room.topic"))


class PendingEventsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.room = Room(ROOM_ID)

    def test_pending_event_lifecycle(self) -> None:
        event = _local_echo("t1")
        self.room.add_pending_event(event, "t1")

        self.assertEqual(self.room.get_pending_events(), [event])
        self.assertEqual(self.room.get_live_timeline(), [event])
        self.assertIs(self.room.find_event_by_id("~!room:test:t1"), event)

        self.room.update_pending_event(event, EventStatus.SENDING)
        self.room.update_pending_event(event, EventStatus.SENT, "$ev1")

        self.assertEqual(event.event_id, "$ev1")
        self.assertEqual(self.room.get_pending_events(), [])
        self.assertEqual(self.room.get_event_id_for_txn_id("t1"), "$ev1")
        self.assertIsNone(self.room.find_event_by_id("~!room:test:t1"))
        self.assertIs(self.room.find_event_by_id("$ev1"), event)

    def test_pending_event_needs_status(self) -> None:
        self.assertRaises(
            ValueError, self.room.add_pending_event, MatrixEvent(make_message("$1")), "t1"
        )

    def test_threaded_local_echo(self) -> None:
        event = _local_echo("t1", thread_id="$root")
        self.room.add_pending_event(event, "t1")

        self.assertEqual(self.room.get_live_timeline(), [])
        self.assertEqual(self.room.get_thread_timeline("$root"), [event])

    def test_remote_echo_by_txn_id(self) -> None:
        """The homeserver's copy of one of our events replaces the local echo."""
        event = _local_echo("t1")
        self.room.add_pending_event(event, "t1")
        self.room.update_pending_event(event, EventStatus.SENDING)

        self.room.add_live_events(
            [
                make_message(
                    "$ev1", sender="@alice:test", unsigned={"transaction_id": "t1"}
                )
            ]
        )

        self.assertEqual(self.room.get_live_timeline(), [event])
        self.assertEqual(event.event_id, "$ev1")
        self.assertIsNone(event.status)
        self.assertEqual(self.room.get_pending_events(), [])

    def test_cancelled_events_stay_visible(self) -> None:
        event = _local_echo("t1")
        self.room.add_pending_event(event, "t1")

        self.room.update_pending_event(event, EventStatus.CANCELLED)

        self.assertEqual(self.room.get_pending_events(), [])
        self.assertEqual(self.room.get_live_timeline(), [event])
