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

"""The user's global account data."""

import logging
from typing import TYPE_CHECKING, Final, Iterable

import attr
from twisted.internet import defer

from mxclient.api.features import Feature, ServerSupport
from mxclient.api.urls import CLIENT_V3_PREFIX, MSC3391_PREFIX, encode_path
from mxclient.events import MatrixEvent
from mxclient.http import Method
from mxclient.types import JsonDict
from mxclient.util.async_helpers import retry_network_operation
from mxclient.util.json import content_equal

if TYPE_CHECKING:
    from mxclient.client import MatrixClient

logger = logging.getLogger(__name__)

# Fired as (event, previous_event) when account data comes down sync.
ACCOUNT_DATA_SIGNAL: Final = "account_data"

# How many times to try a write which fails with a network error.
SET_ACCOUNT_DATA_ATTEMPTS: Final = 5


@attr.s(slots=True, auto_attribs=True)
class AccountDataEntry:
    event_type: str

    event: MatrixEvent | None = None
    """The last event we saw for this type, or wrote while not syncing."""

    waiters: list["defer.Deferred[None]"] = attr.Factory(list)
    """Writes waiting for the next echo of this type."""


class AccountDataHandler:
    """Caches the user's account data, and writes to it.

    While the sync loop is running, a write only completes once sync has
    echoed the new value back to us, so that `get_account_data` returns the
    new value as soon as the write completes.
    """

    def __init__(self, client: "MatrixClient"):
        self._client = client
        self._clock = client.get_clock()
        self._transport = client.get_transport()
        self._store = client.get_store()
        self._distributor = client.get_distributor()

        self._distributor.declare(ACCOUNT_DATA_SIGNAL)

        self._entries: dict[str, AccountDataEntry] = {}

    def _get_entry(self, event_type: str) -> AccountDataEntry:
        entry = self._entries.get(event_type)
        if entry is None:
            entry = AccountDataEntry(event_type)
            self._entries[event_type] = entry
        return entry

    def get_account_data(self, event_type: str) -> MatrixEvent | None:
        """Get the last value we have seen for a type of account data."""
        entry = self._entries.get(event_type)
        if entry is not None and entry.event is not None:
            return entry.event
        return self._store.get_account_data(event_type)

    async def set_account_data(self, event_type: str, content: JsonDict) -> JsonDict:
        """Write a piece of account data.

        If the sync loop is running and the content is unchanged, nothing is
        written.

        Returns:
            The homeserver's response, or an empty dict if nothing was written.
        """
        user_id = self._client.get_safe_user_id()
        path = encode_path("/user/%s/account_data/%s", user_id, event_type)

        if not self._client.get_sync_handler().is_running():
            logger.warning(
                "Calling `set_account_data` before the client is started: "
                "the write to %s will not be checked against sync",
                event_type,
            )
            response = await self._transport.request(Method.PUT, path, body=content)
            self._get_entry(event_type).event = MatrixEvent(
                {"type": event_type, "content": content}
            )
            return response

        current = self.get_account_data(event_type)
        if current is not None and content_equal(current.content, content):
            logger.debug("Not writing unchanged account data %s", event_type)
            return {}

        # Listen for the echo before writing, as it may arrive before the
        # response does.
        entry = self._get_entry(event_type)
        waiter: defer.Deferred[None] = defer.Deferred()
        entry.waiters.append(waiter)

        try:
            response = await retry_network_operation(
                self._clock,
                SET_ACCOUNT_DATA_ATTEMPTS,
                lambda: self._transport.request(Method.PUT, path, body=content),
            )
        except Exception:
            if waiter in entry.waiters:
                entry.waiters.remove(waiter)
            raise

        await waiter
        return response

    async def delete_account_data(self, event_type: str) -> JsonDict:
        """Delete a piece of account data.

        Homeservers which can't delete account data get it set to `{}`.
        """
        support = await self._client.get_versions_handler().get_feature_support(
            Feature.ACCOUNT_DATA_DELETION
        )
        if support == ServerSupport.UNSUPPORTED:
            return await self.set_account_data(event_type, {})

        prefix = CLIENT_V3_PREFIX if support == ServerSupport.STABLE else MSC3391_PREFIX
        user_id = self._client.get_safe_user_id()
        return await self._transport.request(
            Method.DELETE,
            encode_path("/user/%s/account_data/%s", user_id, event_type),
            prefix=prefix,
        )

    def on_sync_account_data(self, events: Iterable[MatrixEvent]) -> None:
        """Called with the global account data in each sync response."""
        events = list(events)
        self._store.store_account_data_events(events)

        for event in events:
            entry = self._get_entry(event.type)
            previous = entry.event
            entry.event = event

            # Every write waiting on this type completes, whichever of them
            # this echo is for.
            self._release(entry)

            self._distributor.fire(ACCOUNT_DATA_SIGNAL, event, previous)

    def release_waiters(self) -> None:
        """Complete every write waiting for a sync echo.

        Called when the sync loop stops, as the echoes will never come.
        """
        for entry in self._entries.values():
            self._release(entry)

    def _release(self, entry: AccountDataEntry) -> None:
        waiters = entry.waiters
        entry.waiters = []
        for waiter in waiters:
            if not waiter.called:
                waiter.callback(None)
