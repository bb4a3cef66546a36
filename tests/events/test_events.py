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
from mxclient.events import EventStatus, MatrixEvent, PushActions, make_event

from tests import unittest
from tests.utils import make_message, make_state_event


class MatrixEventTestCase(unittest.TestCase):
    def test_properties(self) -> None:
        event = MatrixEvent(make_message("$1", body="hello", sender="@bob:test"))

        self.assertEqual(event.event_id, "$1")
        self.assertEqual(event.type, "m.room.message")
        self.assertEqual(event.sender, "@bob:test")
        self.assertEqual(event.content["body"], "hello")
        self.assertEqual(event.unsigned, {})
        self.assertEqual(event.origin_server_ts, 1)
        self.assertFalse(event.is_state())
        self.assertIsNone(event.get_state_key())
        self.assertIsNone(event.status)
        self.assertIsNone(event.thread_root_id)

        # A missing key looks like a missing attribute.
        self.assertFalse(hasattr(event, "state_key"))

    def test_state_event(self) -> None:
        event = MatrixEvent(make_state_event("m.room.name", {"name": "Lounge"}))
        self.assertTrue(event.is_state())
        self.assertEqual(event.get_state_key(), "")

    def test_redacts(self) -> None:
        # Older room versions put `redacts` at the top level.
        event = MatrixEvent(
            {"type": "m.room.redaction", "redacts": "$target", "content": {}}
        )
        self.assertTrue(event.is_redaction())
        self.assertEqual(event.redacts, "$target")

        event = MatrixEvent({"type": "m.room.redaction", "content": {"redacts": "$x"}})
        self.assertEqual(event.redacts, "$x")

    def test_thread_relations(self) -> None:
        reply = MatrixEvent(
            make_message("$2", relates_to={"rel_type": "m.thread", "event_id": "$1"})
        )
        self.assertTrue(reply.is_relation_to_thread())
        self.assertEqual(reply.relation_type, "m.thread")
        self.assertEqual(reply.thread_root_id, "$1")

        root = MatrixEvent(
            make_message("$1", unsigned={"m.relations": {"m.thread": {"count": 1}}})
        )
        self.assertTrue(root.is_thread_root())
        self.assertEqual(root.thread_root_id, "$1")

        # A malformed summary doesn't make a thread root.
        not_root = MatrixEvent(
            make_message("$3", unsigned={"m.relations": {"m.thread": "nope"}})
        )
        self.assertFalse(not_root.is_thread_root())

    def test_encrypted_payload(self) -> None:
        event = MatrixEvent(make_message("$1"), txn_id="t1", status=EventStatus.QUEUED)
        self.assertFalse(event.is_encrypted())
        self.assertEqual(event.wire_type, "m.room.message")

        event.set_encrypted_payload("m.room.encrypted", {"ciphertext": "x"})

        self.assertTrue(event.is_encrypted())
        self.assertEqual(event.wire_type, "m.room.encrypted")
        self.assertEqual(event.wire_content, {"ciphertext": "x"})
        self.assertEqual(event.type, "m.room.message")

    def test_handle_remote_echo(self) -> None:
        local = MatrixEvent(
            {"event_id": "~!r:test:t1", "type": "m.room.message", "content": {}},
            txn_id="t1",
            status=EventStatus.SENDING,
        )
        local.error = Exception("Earlier failure")

        local.handle_remote_echo(
            MatrixEvent(make_message("$1", unsigned={"transaction_id": "t1"}))
        )

        self.assertEqual(local.event_id, "$1")
        self.assertEqual(local.unsigned_txn_id, "t1")
        self.assertIsNone(local.status)
        self.assertIsNone(local.error)
        # The transaction ID we sent it with is kept.
        self.assertEqual(local.txn_id, "t1")

    def test_make_event(self) -> None:
        event = make_event(make_message("$1"), "!room:test")
        self.assertEqual(event.room_id, "!room:test")
        self.assertIs(make_event(event), event)

        # A room ID in the event wins.
        event = make_event({**make_message("$2"), "room_id": "!other:test"}, "!r:test")
        self.assertEqual(event.room_id, "!other:test")


class PushActionsTestCase(unittest.TestCase):
    def test_from_actions(self) -> None:
        actions = PushActions.from_actions(
            [
                "notify",
                {"set_tweak": "sound", "value": "default"},
                {"set_tweak": "highlight"},
                "coalesce",
            ]
        )

        self.assertTrue(actions.notify)
        self.assertTrue(actions.highlight)
        self.assertEqual(actions.tweaks, {"sound": "default", "highlight": True})

    def test_no_highlight(self) -> None:
        actions = PushActions.from_actions(
            ["notify", {"set_tweak": "highlight", "value": False}]
        )
        self.assertFalse(actions.highlight)
        self.assertFalse(PushActions.from_actions([]).notify)
