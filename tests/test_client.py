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
import logging

from twisted.internet.testing import MemoryReactorClock

from mxclient.api.errors import NetworkError, NotLoggedInError
from mxclient.client import MatrixClient, cache_in_self
from mxclient.config import ClientConfig
from mxclient.handlers.sync import SyncState
from mxclient.logging import setup_logging
from mxclient.rooms import Room
from mxclient.storage.memory import MemoryStore
from mxclient.types import JsonDict

from tests import unittest
from tests.server import FakeTransport
from tests.utils import (
    default_config,
    make_joined_room,
    make_state_event,
    make_sync_response,
)


class MatrixClientTestCase(unittest.ClientTestCase):
    def test_handlers_are_cached(self) -> None:
        self.assertIs(self.client.get_sync_handler(), self.client.get_sync_handler())
        self.assertIs(self.client.get_clock(), self.client.get_clock())

    def test_cache_in_self_needs_getter(self) -> None:
        def build_thing(client: MatrixClient) -> object:
            return object()

        self.assertRaises(Exception, cache_in_self, build_thing)

    def test_start_tolerates_versions_failure(self) -> None:
        """A homeserver that won't tell us its versions doesn't stop us syncing."""
        self.transport.versions_error = NetworkError("Connection refused")
        self.start_syncing()

        self.assertEqual(self.client.get_sync_state(), SyncState.PREPARED)

    def test_stop_before_start(self) -> None:
        self.client.stop()
        self.assertEqual(self.client.get_sync_state(), SyncState.STOPPED)
        self.assertEqual(self.transport.requests, [])

    def test_safe_user_id(self) -> None:
        self.assertEqual(self.client.get_safe_user_id(), "@alice:test")
        self.assertFalse(self.client.is_guest())

    def test_visible_rooms(self) -> None:
        """Rooms which have been upgraded are hidden."""
        self.start_syncing(
            make_sync_response(
                "s1",
                join={
                    "!old:test": make_joined_room(
                        state=[
                            make_state_event("m.room.create", {}),
                            make_state_event(
                                "m.room.tombstone", {"replacement_room": "!new:test"}
                            ),
                        ]
                    ),
                    "!new:test": make_joined_room(
                        state=[
                            make_state_event(
                                "m.room.create",
                                {"predecessor": {"room_id": "!old:test"}},
                            )
                        ]
                    ),
                },
            )
        )

        self.assertEqual(
            {room.room_id for room in self.client.get_rooms()},
            {"!old:test", "!new:test"},
        )
        self.assertEqual(
            [room.room_id for room in self.client.get_visible_rooms()], ["!new:test"]
        )
        self.assertEqual(
            [
                room.room_id
                for room in self.client.get_room_upgrade_history(
                    "!new:test", verify_links=True
                )
            ],
            ["!old:test", "!new:test"],
        )


class LoggedOutClientTestCase(unittest.ClientTestCase):
    user_id = None  # type: ignore[assignment]

    def default_config(self) -> JsonDict:
        return default_config(None)

    def test_safe_user_id(self) -> None:
        self.assertIsNone(self.client.get_user_id())
        self.assertRaises(NotLoggedInError, self.client.get_safe_user_id)

    def test_account_data_needs_user(self) -> None:
        self.get_failure(
            self.client.set_account_data("m.foo", {"a": 1}), NotLoggedInError
        )
        self.assertEqual(self.transport.requests, [])


class CustomStoreTestCase(unittest.ClientTestCase):
    def make_client(
        self, reactor: MemoryReactorClock, transport: FakeTransport
    ) -> MatrixClient:
        self.store = MemoryStore()
        self.store.set_sync_token("saved")
        self.store.store_room(Room("!saved:test"))
        return MatrixClient(self.config, transport, reactor=reactor, store=self.store)

    def test_resumes_from_store(self) -> None:
        """A client given a store with a sync token picks up where it left off."""
        self.expect_bootstrap()
        self.start_client()

        sync = self.transport.get_pending("GET", "/sync")
        self.assertEqual(
            sync.query_params, {"timeout": "30000", "since": "saved", "filter": "f1"}
        )
        self.assertIsNotNone(self.client.get_room("!saved:test"))


class SetupLoggingTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger("mxclient")
        self.old_level = self.logger.level
        self.old_handlers = list(self.logger.handlers)

    def tearDown(self) -> None:
        self.logger.setLevel(self.old_level)
        for handler in list(self.logger.handlers):
            if handler not in self.old_handlers:
                self.logger.removeHandler(handler)

    def test_setup_logging(self) -> None:
        config = ClientConfig()
        config.parse_config_dict(default_config("@alice:test"))

        handler = setup_logging(config.logging, "@alice:test")

        assert handler is not None
        self.assertIn(handler, self.logger.handlers)
        self.assertEqual(self.logger.level, logging.DEBUG)

        record = logging.LogRecord(
            "mxclient.sync", logging.INFO, __file__, 1, "hello", (), None
        )
        self.assertTrue(handler.filter(record))
        self.assertIn("@alice:test - hello", handler.format(record))
