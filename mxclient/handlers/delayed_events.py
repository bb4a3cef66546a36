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

"""Scheduling events for the homeserver to send later (MSC4140)."""

import logging
from typing import TYPE_CHECKING

import attr

from mxclient.api.constants import (
    DelayedEventQueryParams,
    UnstableFeatures,
    UpdateDelayedEventAction,
)
from mxclient.api.errors import UnsupportedByServerError
from mxclient.api.urls import MSC4140_PREFIX, encode_path
from mxclient.handlers.send import add_thread_relation
from mxclient.http import Method
from mxclient.types import JsonDict

if TYPE_CHECKING:
    from mxclient.client import MatrixClient

logger = logging.getLogger(__name__)


@attr.s(slots=True, frozen=True, auto_attribs=True)
class DelayOpts:
    """When the homeserver should send a delayed event.

    Exactly one of the fields must be given.
    """

    delay: int | None = None
    """Send the event this many milliseconds from now."""

    parent_delay_id: str | None = None
    """Send the event when the delayed event with this delay ID is sent."""

    def __attrs_post_init__(self) -> None:
        if (self.delay is None) == (self.parent_delay_id is None):
            raise ValueError("Exactly one of delay or parent_delay_id must be given")
        if self.delay is not None and self.delay < 0:
            raise ValueError("delay must not be negative")

    def as_query_params(self) -> dict[str, str]:
        if self.delay is not None:
            return {DelayedEventQueryParams.DELAY: str(self.delay)}
        assert self.parent_delay_id is not None
        return {DelayedEventQueryParams.PARENT_DELAY_ID: self.parent_delay_id}


class DelayedEventsHandler:
    """Schedules delayed events, and manages the ones already scheduled.

    Delayed events have no local echo and are never encrypted. The homeserver
    answers with a `delay_id` rather than an event ID.
    """

    def __init__(self, client: "MatrixClient"):
        self._client = client
        self._transport = client.get_transport()

    async def _check_server_support(self) -> None:
        versions_handler = self._client.get_versions_handler()
        if not await versions_handler.does_server_support_unstable_feature(
            UnstableFeatures.MSC4140
        ):
            raise UnsupportedByServerError("Server does not support delayed events")

    async def send_delayed_event(
        self,
        room_id: str,
        delay_opts: DelayOpts,
        thread_id: str | None,
        event_type: str,
        content: JsonDict,
        txn_id: str | None = None,
    ) -> JsonDict:
        """Schedule an event to be sent to a room.

        Returns:
            The homeserver's response, containing the `delay_id`.

        Raises:
            UnsupportedByServerError: if the homeserver doesn't support delayed
                events.
        """
        await self._check_server_support()

        if txn_id is None:
            txn_id = self._client.make_txn_id()
        content = add_thread_relation(content, thread_id)

        path = encode_path("/rooms/%s/send/%s/%s", room_id, event_type, txn_id)
        return await self._transport.request(
            Method.PUT, path, delay_opts.as_query_params(), content
        )

    async def send_delayed_state_event(
        self,
        room_id: str,
        delay_opts: DelayOpts,
        event_type: str,
        content: JsonDict,
        state_key: str = "",
    ) -> JsonDict:
        """Schedule a state event to be sent to a room."""
        await self._check_server_support()

        path = encode_path("/rooms/%s/state/%s/%s", room_id, event_type, state_key)
        return await self._transport.request(
            Method.PUT, path, delay_opts.as_query_params(), content
        )

    async def get_delayed_events(self, from_token: str | None = None) -> JsonDict:
        """List the delayed events we have scheduled which haven't been sent."""
        await self._check_server_support()

        query_params = {"from": from_token} if from_token is not None else None
        return await self._transport.request(
            Method.GET, "/delayed_events", query_params, prefix=MSC4140_PREFIX
        )

    async def update_delayed_event(
        self, delay_id: str, action: UpdateDelayedEventAction
    ) -> JsonDict:
        """Send, restart the timer of or cancel a scheduled delayed event."""
        await self._check_server_support()

        logger.debug("Updating delayed event %s: %s", delay_id, action.value)
        return await self._transport.request(
            Method.POST,
            encode_path("/delayed_events/%s", delay_id),
            body={"action": action.value},
            prefix=MSC4140_PREFIX,
        )
