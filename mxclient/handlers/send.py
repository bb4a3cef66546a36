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

"""Sending events to rooms, with local echo."""

import logging
from typing import TYPE_CHECKING, Final

from twisted.internet import defer

from mxclient.api.constants import (
    LOCAL_ECHO_ID_PREFIX,
    EventContentFields,
    EventTypes,
    RedactionFields,
    RelationTypes,
)
from mxclient.api.errors import InvalidEventStateError, UnsupportedByServerError
from mxclient.api.features import Feature, ServerSupport
from mxclient.api.urls import encode_path
from mxclient.events import EventStatus, MatrixEvent
from mxclient.http import Method
from mxclient.metrics import sent_events_counter
from mxclient.rooms import Room, set_event_status
from mxclient.types import JsonDict, StrCollection

if TYPE_CHECKING:
    from mxclient.client import MatrixClient

logger = logging.getLogger(__name__)

# Fired as (event, room, old_status) whenever a local echo changes status.
LOCAL_ECHO_UPDATED_SIGNAL: Final = "local_echo_updated"

# The statuses from which a pending event may be cancelled.
CANCELLABLE_STATUSES: Final = frozenset(
    (EventStatus.QUEUED, EventStatus.ENCRYPTING, EventStatus.NOT_SENT)
)


def add_thread_relation(content: JsonDict, thread_id: str | None) -> JsonDict:
    """Put an event into a thread, unless it already has a relation.

    If the event is a reply, the reply is kept and marked as not being a
    fallback. Otherwise we add a fallback reply to the thread root, for the
    benefit of clients which don't support threads.

    Returns:
        The content to send. `content` is not modified.
    """
    relation = content.get(EventContentFields.RELATES_TO)
    if thread_id is None or (isinstance(relation, dict) and relation.get("rel_type")):
        return content

    relation = dict(relation) if isinstance(relation, dict) else {}
    is_reply = bool(relation.get(EventContentFields.IN_REPLY_TO))

    relation["rel_type"] = RelationTypes.THREAD
    relation["event_id"] = thread_id
    relation[EventContentFields.IS_FALLING_BACK] = not is_reply
    if not is_reply:
        relation[EventContentFields.IN_REPLY_TO] = {"event_id": thread_id}

    return {**content, EventContentFields.RELATES_TO: relation}


class EventSendHandler:
    """Sends events, keeping a local echo of each in the room's timeline.

    A send goes through the statuses QUEUED, (ENCRYPTING), SENDING and then
    SENT or NOT_SENT. Until it reaches SENDING, the caller may cancel it with
    `cancel_pending_event`.
    """

    def __init__(self, client: "MatrixClient"):
        self._client = client
        self._clock = client.get_clock()
        self._transport = client.get_transport()
        self._store = client.get_store()
        self._distributor = client.get_distributor()

        self._distributor.declare(LOCAL_ECHO_UPDATED_SIGNAL)

        # txn ID -> the wait of a send queued until the connection comes back
        self._queued_waits: dict[str, defer.Deferred[None]] = {}

    async def send_event(
        self,
        room_id: str,
        thread_id: str | None,
        event_type: str,
        content: JsonDict,
        txn_id: str | None = None,
    ) -> JsonDict:
        """Send an event to a room.

        Args:
            room_id: the room to send to.
            thread_id: the root of the thread to send into, if any.
            event_type: the type of the event.
            content: the content of the event.
            txn_id: the transaction ID to use. One is generated if not given.

        Returns:
            The homeserver's response, containing the new `event_id`. An empty
            dict if the send was cancelled.

        Raises:
            MatrixError, NetworkError: if the send failed. The local echo is
                left as NOT_SENT.
        """
        if txn_id is None:
            txn_id = self._client.make_txn_id()

        content = add_thread_relation(content, thread_id)
        event = self._make_local_echo(room_id, event_type, content, txn_id)
        return await self._send_local_echo(event)

    async def redact_event(
        self,
        room_id: str,
        event_id: str,
        txn_id: str | None = None,
        thread_id: str | None = None,
        reason: str | None = None,
        with_rel_types: StrCollection | None = None,
    ) -> JsonDict:
        """Redact an event.

        Redactions are never encrypted, so `reason` is visible to the
        homeserver even in encrypted rooms.

        Args:
            room_id: the room the event is in.
            event_id: the event to redact.
            txn_id: the transaction ID to use. One is generated if not given.
            thread_id: the thread the redacted event is in, if any. Only used
                in error messages.
            reason: why the event is being redacted.
            with_rel_types: also redact the events relating to `event_id` with
                these relation types.

        Raises:
            UnsupportedByServerError: if `with_rel_types` is given but the
                homeserver does not support relation based redactions.
        """
        if txn_id is None:
            txn_id = self._client.make_txn_id()

        content: JsonDict = {"redacts": event_id}
        if reason is not None:
            content[EventContentFields.REDACTION_REASON] = reason

        if with_rel_types is not None:
            support = self._client.get_versions_handler().get_cached_feature_support(
                Feature.RELATION_BASED_REDACTIONS
            )
            if support == ServerSupport.UNSUPPORTED:
                raise UnsupportedByServerError(
                    "Server does not support relation based redactions "
                    "roomId %s eventId %s txnId: %s threadId %s"
                    % (room_id, event_id, txn_id, thread_id)
                )
            key = (
                RedactionFields.WITH_REL_TYPES
                if support == ServerSupport.STABLE
                else RedactionFields.UNSTABLE_WITH_REL_TYPES
            )
            content[key] = list(with_rel_types)

        event = self._make_local_echo(room_id, EventTypes.Redaction, content, txn_id)
        return await self._send_local_echo(event)

    async def send_state_event(
        self,
        room_id: str,
        event_type: str,
        content: JsonDict,
        state_key: str = "",
    ) -> JsonDict:
        """Send a state event to a room.

        State events are sent as they are: there is no local echo, and they are
        never encrypted.
        """
        path = encode_path("/rooms/%s/state/%s/%s", room_id, event_type, state_key)
        return await self._transport.request(Method.PUT, path, body=content)

    def _make_local_echo(
        self, room_id: str, event_type: str, content: JsonDict, txn_id: str
    ) -> MatrixEvent:
        event = MatrixEvent(
            {
                "event_id": "%s%s:%s" % (LOCAL_ECHO_ID_PREFIX, room_id, txn_id),
                "room_id": room_id,
                "sender": self._client.get_user_id(),
                "type": event_type,
                "content": content,
                "origin_server_ts": self._clock.time_msec(),
            },
            txn_id=txn_id,
            status=EventStatus.QUEUED,
        )

        room = self._store.get_room(room_id)
        if room is not None:
            room.add_pending_event(event, txn_id)
        return event

    def _should_encrypt(self, room: Room | None, event: MatrixEvent) -> bool:
        if room is None or not room.has_encryption_state_event():
            return False
        if event.is_redaction():
            # Redactions are never encrypted: the homeserver needs to see them.
            return False
        if self._client.is_guest():
            return False
        return self._client.get_encryption_backend() is not None

    def _update_status(
        self,
        room: Room | None,
        event: MatrixEvent,
        new_status: EventStatus,
        new_event_id: str | None = None,
    ) -> None:
        old_status = event.status
        if room is not None:
            room.update_pending_event(event, new_status, new_event_id)
        else:
            set_event_status(event, new_status)
            if new_event_id is not None:
                event.replace_local_event_id(new_event_id)

        self._distributor.fire(LOCAL_ECHO_UPDATED_SIGNAL, event, room, old_status)

    async def _send_local_echo(self, event: MatrixEvent) -> JsonDict:
        assert event.txn_id is not None
        room = self._store.get_room(event.room_id)

        try:
            if not await self._wait_until_send_allowed(event):
                return {}

            if self._should_encrypt(room, event):
                assert room is not None
                self._update_status(room, event, EventStatus.ENCRYPTING)
                backend = self._client.get_encryption_backend()
                assert backend is not None
                try:
                    await backend.encrypt_event(event, room)
                except Exception:
                    if event.status == EventStatus.CANCELLED:
                        logger.info("Ignoring failed encryption of cancelled %r", event)
                        return {}
                    raise
                if event.status == EventStatus.CANCELLED:
                    logger.info("%r was cancelled while encrypting; not sending", event)
                    return {}

            self._update_status(room, event, EventStatus.SENDING)
            response = await self._send_request(event)
        except Exception as e:
            logger.warning("Error sending %r: %s", event, e)
            event.error = e
            if event.status in (
                EventStatus.QUEUED,
                EventStatus.ENCRYPTING,
                EventStatus.SENDING,
            ):
                self._update_status(room, event, EventStatus.NOT_SENT)
            sent_events_counter.labels(outcome="not_sent").inc()
            raise

        event_id = response.get("event_id")
        logger.debug("Sent %r as %s", event, event_id)
        sent_events_counter.labels(outcome="sent").inc()

        # The homeserver's copy may already have come down sync, in which case
        # the local echo has already been replaced by it.
        if event.status == EventStatus.SENDING:
            self._update_status(room, event, EventStatus.SENT, event_id)

        return response

    async def _wait_until_send_allowed(self, event: MatrixEvent) -> bool:
        """Hold a send at QUEUED while the connection is down.

        Returns:
            False if the send was cancelled while it waited.
        """
        assert event.txn_id is not None
        sync_handler = self._client.get_sync_handler()

        if not sync_handler.is_send_allowed():
            logger.info("Connection is down; queueing %r", event)
            wait = sync_handler.wait_until_send_allowed()
            self._queued_waits[event.txn_id] = wait
            try:
                await wait
            except defer.CancelledError:
                if event.status == EventStatus.CANCELLED:
                    return False
                raise
            finally:
                self._queued_waits.pop(event.txn_id, None)

        return event.status != EventStatus.CANCELLED

    async def _send_request(self, event: MatrixEvent) -> JsonDict:
        assert event.txn_id is not None

        if event.is_redaction():
            redacts = event.redacts
            assert redacts is not None
            path = encode_path(
                "/rooms/%s/redact/%s/%s", event.room_id, redacts, event.txn_id
            )
            body = {k: v for k, v in event.content.items() if k != "redacts"}
        else:
            path = encode_path(
                "/rooms/%s/send/%s/%s", event.room_id, event.wire_type, event.txn_id
            )
            body = event.wire_content

        return await self._transport.request(Method.PUT, path, body=body)

    def cancel_pending_event(self, event: MatrixEvent) -> None:
        """Cancel the sending of an event.

        Only events which are QUEUED, ENCRYPTING or NOT_SENT can be cancelled.
        An event being encrypted finishes encrypting, but is then not sent.

        Raises:
            InvalidEventStateError: if the event is in any other status.
        """
        if event.status not in CANCELLABLE_STATUSES:
            raise InvalidEventStateError(
                "cannot cancel an event with status %s"
                % (event.status.value if event.status else None,)
            )

        room = self._store.get_room(event.room_id)
        self._update_status(room, event, EventStatus.CANCELLED)
        sent_events_counter.labels(outcome="cancelled").inc()

        assert event.txn_id is not None
        wait = self._queued_waits.pop(event.txn_id, None)
        if wait is not None:
            wait.cancel()
