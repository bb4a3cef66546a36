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

"""The client object, which owns the handlers and the state they share.

Everything belonging to one logged in session hangs off one `MatrixClient`, so
several clients can run side by side in one process.
"""

import functools
import logging
from typing import Callable, TypeVar, cast

from twisted.internet.interfaces import IReactorTime
from typing_extensions import TypeAlias

from mxclient.api.constants import Direction, UpdateDelayedEventAction
from mxclient.api.errors import NotLoggedInError
from mxclient.config import ClientConfig
from mxclient.crypto import IEncryptionBackend
from mxclient.events import MatrixEvent
from mxclient.handlers.account_data import AccountDataHandler
from mxclient.handlers.delayed_events import DelayedEventsHandler, DelayOpts
from mxclient.handlers.filtering import FilterHandler
from mxclient.handlers.notifications import NotificationsHandler, NotificationTimeline
from mxclient.handlers.push_rules import PushRulesHandler
from mxclient.handlers.room import RoomHandler
from mxclient.handlers.send import EventSendHandler
from mxclient.handlers.sync import (
    SYNC_STATE_SIGNAL,
    SyncHandler,
    SyncState,
    SyncStateListener,
)
from mxclient.handlers.versions import VersionsHandler
from mxclient.http import ITransport
from mxclient.rooms import Room
from mxclient.rooms.upgrades import get_room_upgrade_history, get_visible_rooms
from mxclient.storage import IStore
from mxclient.storage.memory import MemoryStore
from mxclient.types import JsonDict, StrCollection
from mxclient.util.clock import Clock
from mxclient.util.distributor import Distributor
from mxclient.util.stringutils import random_string

logger = logging.getLogger(__name__)

T: TypeAlias = object
F = TypeVar("F", bound=Callable[["MatrixClient"], T])


def cache_in_self(builder: F) -> F:
    """Wraps a function called e.g. `get_foo`, checking if `self.foo` exists and
    returning if so. If not, calls the given function and sets `self.foo` to it.

    Also ensures that dependency cycles throw an exception correctly, rather
    than overflowing the stack.
    """

    if not builder.__name__.startswith("get_"):
        raise Exception(
            "@cache_in_self can only be used on functions starting with `get_`"
        )

    # get_attr -> _attr
    depname = builder.__name__[len("get") :]

    building = [False]

    @functools.wraps(builder)
    def _get(self: "MatrixClient") -> T:
        try:
            dep = getattr(self, depname)
            return dep
        except AttributeError:
            pass

        # Prevent cyclic dependencies from deadlocking
        if building[0]:
            raise ValueError("Cyclic dependency while building %s" % (depname,))

        building[0] = True
        try:
            dep = builder(self)
            setattr(self, depname, dep)
        finally:
            building[0] = False

        return dep

    return cast(F, _get)


class MatrixClient:
    """A client for one session on a homeserver.

    Handlers are built lazily by the `get_*` methods and cached, each receiving
    the client so that it can reach the others.

    Args:
        config: the client configuration.
        transport: makes the HTTP requests to the homeserver.
        reactor: the Twisted reactor to schedule timers on. Defaults to the
            global reactor.
        store: holds the local model. Defaults to a `MemoryStore`.
        encryption_backend: encrypts events for encrypted rooms. Without one,
            events are always sent in the clear.
    """

    def __init__(
        self,
        config: ClientConfig,
        transport: ITransport,
        reactor: IReactorTime | None = None,
        store: IStore | None = None,
        encryption_backend: IEncryptionBackend | None = None,
    ):
        if reactor is None:
            from twisted.internet import reactor as _reactor

            reactor = cast(IReactorTime, _reactor)

        self.config = config
        self._reactor = reactor
        self._transport = transport
        self._store: IStore = store if store is not None else MemoryStore()
        self._encryption_backend = encryption_backend

        # Transaction IDs are `m<salt>.<counter>`; the salt keeps them unique
        # across client instances.
        self._txn_salt = random_string(10)
        self._txn_counter = 0

        self._started = False

    def get_transport(self) -> ITransport:
        return self._transport

    def get_store(self) -> IStore:
        return self._store

    def get_encryption_backend(self) -> IEncryptionBackend | None:
        return self._encryption_backend

    @cache_in_self
    def get_clock(self) -> Clock:
        return Clock(self._reactor)

    @cache_in_self
    def get_distributor(self) -> Distributor:
        return Distributor()

    @cache_in_self
    def get_sync_handler(self) -> SyncHandler:
        return SyncHandler(self)

    @cache_in_self
    def get_event_send_handler(self) -> EventSendHandler:
        return EventSendHandler(self)

    @cache_in_self
    def get_delayed_events_handler(self) -> DelayedEventsHandler:
        return DelayedEventsHandler(self)

    @cache_in_self
    def get_account_data_handler(self) -> AccountDataHandler:
        return AccountDataHandler(self)

    @cache_in_self
    def get_filter_handler(self) -> FilterHandler:
        return FilterHandler(self)

    @cache_in_self
    def get_push_rules_handler(self) -> PushRulesHandler:
        return PushRulesHandler(self)

    @cache_in_self
    def get_versions_handler(self) -> VersionsHandler:
        return VersionsHandler(self)

    @cache_in_self
    def get_room_handler(self) -> RoomHandler:
        return RoomHandler(self)

    @cache_in_self
    def get_notifications_handler(self) -> NotificationsHandler:
        return NotificationsHandler(self)

    # Session

    def get_user_id(self) -> str | None:
        return self.config.account.user_id

    def get_safe_user_id(self) -> str:
        """Get the logged in user's ID.

        Raises:
            NotLoggedInError: if there is no logged in user.
        """
        user_id = self.get_user_id()
        if not user_id:
            raise NotLoggedInError()
        return user_id

    def is_guest(self) -> bool:
        return self.config.account.guest

    def make_txn_id(self) -> str:
        """Make a transaction ID which is unique for this client."""
        txn_id = "m%s.%d" % (self._txn_salt, self._txn_counter)
        self._txn_counter += 1
        return txn_id

    # Lifecycle

    async def start(self) -> None:
        """Load the store and start syncing.

        Raises:
            RuntimeError: if the client has been started before.
        """
        if self._started:
            raise RuntimeError("Client has already been started")
        self._started = True

        await self._store.startup()

        try:
            await self.get_versions_handler().get_versions()
        except Exception as e:
            # We'll try again when we next need to know.
            logger.warning("Failed to fetch homeserver versions: %s", e)

        self.get_sync_handler().start()

    def stop(self) -> None:
        """Stop syncing and cancel every timer. The client can't be restarted."""
        self.get_sync_handler().stop()
        self.get_clock().shutdown()

    # Sync

    def add_sync_listener(self, listener: SyncStateListener) -> None:
        """Register a callback for sync state changes.

        It is called as `listener(new_state, old_state)`.
        """
        self.get_distributor().observe(SYNC_STATE_SIGNAL, listener)

    def remove_sync_listener(self, listener: SyncStateListener) -> None:
        self.get_distributor().unobserve(SYNC_STATE_SIGNAL, listener)

    def get_sync_state(self) -> SyncState:
        return self.get_sync_handler().get_sync_state()

    def retry_immediately(self) -> bool:
        return self.get_sync_handler().retry_immediately()

    # Rooms

    def get_room(self, room_id: str) -> Room | None:
        return self._store.get_room(room_id)

    def get_rooms(self) -> list[Room]:
        return self._store.get_rooms()

    def get_visible_rooms(self, use_dynamic_predecessor: bool = False) -> list[Room]:
        return get_visible_rooms(self._store, use_dynamic_predecessor)

    def get_room_upgrade_history(
        self,
        room_id: str,
        verify_links: bool = False,
        use_dynamic_predecessor: bool = False,
    ) -> list[Room]:
        return get_room_upgrade_history(
            self._store, room_id, verify_links, use_dynamic_predecessor
        )

    async def timestamp_to_event(
        self, room_id: str, timestamp: int, direction: Direction
    ) -> JsonDict:
        return await self.get_room_handler().timestamp_to_event(
            room_id, timestamp, direction
        )

    async def paginate_notifications(
        self, timeline: NotificationTimeline, backwards: bool = True
    ) -> bool:
        return await self.get_notifications_handler().paginate_notifications(
            timeline, backwards
        )

    # Sending

    async def send_event(
        self,
        room_id: str,
        thread_id: str | None,
        event_type: str,
        content: JsonDict,
        txn_id: str | None = None,
    ) -> JsonDict:
        return await self.get_event_send_handler().send_event(
            room_id, thread_id, event_type, content, txn_id
        )

    async def send_state_event(
        self, room_id: str, event_type: str, content: JsonDict, state_key: str = ""
    ) -> JsonDict:
        return await self.get_event_send_handler().send_state_event(
            room_id, event_type, content, state_key
        )

    async def redact_event(
        self,
        room_id: str,
        event_id: str,
        txn_id: str | None = None,
        thread_id: str | None = None,
        reason: str | None = None,
        with_rel_types: StrCollection | None = None,
    ) -> JsonDict:
        return await self.get_event_send_handler().redact_event(
            room_id, event_id, txn_id, thread_id, reason, with_rel_types
        )

    def cancel_pending_event(self, event: MatrixEvent) -> None:
        self.get_event_send_handler().cancel_pending_event(event)

    async def send_delayed_event(
        self,
        room_id: str,
        delay_opts: DelayOpts,
        thread_id: str | None,
        event_type: str,
        content: JsonDict,
        txn_id: str | None = None,
    ) -> JsonDict:
        return await self.get_delayed_events_handler().send_delayed_event(
            room_id, delay_opts, thread_id, event_type, content, txn_id
        )

    async def send_delayed_state_event(
        self,
        room_id: str,
        delay_opts: DelayOpts,
        event_type: str,
        content: JsonDict,
        state_key: str = "",
    ) -> JsonDict:
        return await self.get_delayed_events_handler().send_delayed_state_event(
            room_id, delay_opts, event_type, content, state_key
        )

    async def get_delayed_events(self, from_token: str | None = None) -> JsonDict:
        return await self.get_delayed_events_handler().get_delayed_events(from_token)

    async def update_delayed_event(
        self, delay_id: str, action: UpdateDelayedEventAction
    ) -> JsonDict:
        return await self.get_delayed_events_handler().update_delayed_event(
            delay_id, action
        )

    # Account data

    async def set_account_data(self, event_type: str, content: JsonDict) -> JsonDict:
        return await self.get_account_data_handler().set_account_data(
            event_type, content
        )

    async def delete_account_data(self, event_type: str) -> JsonDict:
        return await self.get_account_data_handler().delete_account_data(event_type)

    def get_account_data(self, event_type: str) -> MatrixEvent | None:
        return self.get_account_data_handler().get_account_data(event_type)

    # Capabilities

    async def get_versions(self) -> JsonDict:
        return await self.get_versions_handler().get_versions()

    async def does_server_support_unstable_feature(self, feature: str) -> bool:
        return await self.get_versions_handler().does_server_support_unstable_feature(
            feature
        )
