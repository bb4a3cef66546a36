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
from typing import Final, Iterable, Mapping

from mxclient.api.constants import EventContentFields, EventTypes
from mxclient.api.errors import InvalidEventStateError
from mxclient.events import EventStatus, MatrixEvent, make_event
from mxclient.rooms.timeline import TimelinePlacement, get_placement
from mxclient.types import JsonDict

logger = logging.getLogger(__name__)

# The send statuses a pending event may move to from each status.
ALLOWED_STATUS_TRANSITIONS: Final[Mapping[EventStatus, frozenset[EventStatus]]] = {
    EventStatus.QUEUED: frozenset(
        (
            EventStatus.ENCRYPTING,
            EventStatus.SENDING,
            EventStatus.NOT_SENT,
            EventStatus.CANCELLED,
        )
    ),
    EventStatus.ENCRYPTING: frozenset(
        (EventStatus.SENDING, EventStatus.NOT_SENT, EventStatus.CANCELLED)
    ),
    EventStatus.SENDING: frozenset((EventStatus.SENT, EventStatus.NOT_SENT)),
    EventStatus.SENT: frozenset(),
    EventStatus.NOT_SENT: frozenset((EventStatus.CANCELLED,)),
    EventStatus.CANCELLED: frozenset(),
}

# The statuses from which a pending event leaves the pending map.
_TERMINAL_STATUSES: Final = frozenset((EventStatus.SENT, EventStatus.CANCELLED))


def set_event_status(event: MatrixEvent, new_status: EventStatus) -> None:
    """Move a locally originated event on to its next send status.

    Raises:
        InvalidEventStateError: if the event may not move from its current
            status to `new_status`.
    """
    old_status = event.status
    if old_status is None or new_status not in ALLOWED_STATUS_TRANSITIONS[old_status]:
        raise InvalidEventStateError(
            "Invalid EventStatus transition %s->%s"
            % (old_status.value if old_status else None, new_status.value)
        )

    logger.debug(
        "Updating status of %r from %s to %s", event, old_status.value, new_status.value
    )
    event.status = new_status


class Room:
    """The local model of a room: its current state, its live timeline, the
    timelines of its threads and the events we are still sending to it.

    Args:
        room_id: the ID of the room.
        thread_support: whether thread events should be split off into their
            own timelines. If not, everything goes in the main timeline.
    """

    def __init__(self, room_id: str, thread_support: bool = True):
        self.room_id = room_id
        self.thread_support = thread_support

        self.membership: str | None = None

        # (event type, state key) -> current state event
        self._current_state: dict[tuple[str, str], MatrixEvent] = {}

        self._timeline: list[MatrixEvent] = []
        # thread root ID -> the thread's events, including the root itself
        self._threads: dict[str, list[MatrixEvent]] = {}
        # event ID -> event, for everything in any timeline
        self._events_by_id: dict[str, MatrixEvent] = {}

        # txn ID -> local echo, for events we have not finished sending
        self._pending_events: dict[str, MatrixEvent] = {}
        # txn ID -> event ID the homeserver gave the event
        self._txn_to_event_id: dict[str, str] = {}

        # event type -> room account data event
        self.account_data: dict[str, MatrixEvent] = {}

    def __repr__(self) -> str:
        return "<Room %s>" % (self.room_id,)

    # State

    def get_state_event(
        self, event_type: str, state_key: str = ""
    ) -> MatrixEvent | None:
        return self._current_state.get((event_type, state_key))

    def add_state_events(self, events: Iterable[JsonDict | MatrixEvent]) -> None:
        for event in events:
            ev = make_event(event, self.room_id)
            state_key = ev.get_state_key()
            if state_key is None:
                logger.warning(
                    "Ignoring state event %s in %s without a state key",
                    ev.get_dict().get("event_id"),
                    self.room_id,
                )
                continue
            self._current_state[(ev.type, state_key)] = ev

    def has_encryption_state_event(self) -> bool:
        return self.get_state_event(EventTypes.RoomEncryption) is not None

    def find_predecessor(self, use_dynamic_predecessor: bool = False) -> str | None:
        """Find the room this room was upgraded from.

        Args:
            use_dynamic_predecessor: if set, a dynamic predecessor state event
                takes precedence over the create event.

        Returns:
            The ID of the predecessor room, or None if there isn't one.
        """
        if use_dynamic_predecessor:
            override = self.get_state_event(EventTypes.MSC3946_RoomPredecessor)
            if override is not None:
                room_id = override.content.get(
                    EventContentFields.MSC3946_PREDECESSOR_ROOM_ID
                )
                if isinstance(room_id, str):
                    return room_id

        create = self.get_state_event(EventTypes.Create)
        if create is None:
            return None
        predecessor = create.content.get(EventContentFields.ROOM_PREDECESSOR)
        if not isinstance(predecessor, dict):
            return None
        room_id = predecessor.get("room_id")
        return room_id if isinstance(room_id, str) else None

    def get_tombstone_successor(self) -> str | None:
        """The ID of the room this room was upgraded to, if it has been."""
        tombstone = self.get_state_event(EventTypes.Tombstone)
        if tombstone is None:
            return None
        room_id = tombstone.content.get(EventContentFields.TOMBSTONE_SUCCESSOR_ROOM)
        return room_id if isinstance(room_id, str) else None

    # Timelines

    def get_live_timeline(self) -> list[MatrixEvent]:
        return list(self._timeline)

    def get_thread_timeline(self, thread_id: str) -> list[MatrixEvent]:
        return list(self._threads.get(thread_id, ()))

    def get_thread_ids(self) -> list[str]:
        return list(self._threads)

    def find_event_by_id(self, event_id: str) -> MatrixEvent | None:
        return self._events_by_id.get(event_id)

    def _insert_event(self, event: MatrixEvent) -> None:
        """Append an event to the timeline(s) its placement calls for."""
        placement = get_placement(event)
        thread_id = event.thread_root_id

        if (
            not self.thread_support
            or thread_id is None
            or placement in (TimelinePlacement.ROOM, TimelinePlacement.BOTH)
        ):
            self._timeline.append(event)
        if self.thread_support and thread_id is not None:
            self._threads.setdefault(thread_id, []).append(event)

        self._events_by_id[event.event_id] = event

    def add_live_events(self, events: Iterable[JsonDict | MatrixEvent]) -> None:
        """Add events which came down sync to the end of the live timeline.

        An event which confirms one of our local echoes replaces the echo in
        place rather than being added a second time. We recognise it by the
        transaction ID the homeserver echoes back to us, or by the event ID we
        were given when the send completed.

        State events in the timeline also update the room's current state.
        """
        for event in events:
            ev = make_event(event, self.room_id)

            local_echo = self._find_local_echo(ev)
            if local_echo is not None:
                logger.debug("Got remote echo for %r", local_echo)
                old_event_id = local_echo.event_id
                local_echo.handle_remote_echo(ev)
                self._events_by_id.pop(old_event_id, None)
                self._events_by_id[local_echo.event_id] = local_echo
                ev = local_echo
            elif ev.event_id in self._events_by_id:
                logger.debug("Ignoring duplicate event %s", ev.event_id)
                continue
            else:
                self._insert_event(ev)

            state_key = ev.get_state_key()
            if state_key is not None:
                self._current_state[(ev.type, state_key)] = ev

    def _find_local_echo(self, event: MatrixEvent) -> MatrixEvent | None:
        txn_id = event.unsigned_txn_id
        if txn_id is not None:
            local_echo = self._pending_events.pop(txn_id, None)
            if local_echo is not None:
                self._txn_to_event_id[txn_id] = event.event_id
                return local_echo

        existing = self._events_by_id.get(event.event_id)
        if existing is not None and existing.txn_id is not None:
            return existing
        return None

    # Pending events

    def add_pending_event(self, event: MatrixEvent, txn_id: str) -> None:
        """Show a locally originated event in the timeline straight away."""
        if event.status is None:
            raise ValueError("add_pending_event called on an event with no status")

        self._pending_events[txn_id] = event
        self._insert_event(event)

    def get_pending_events(self) -> list[MatrixEvent]:
        return list(self._pending_events.values())

    def get_event_id_for_txn_id(self, txn_id: str) -> str | None:
        return self._txn_to_event_id.get(txn_id)

    def update_pending_event(
        self,
        event: MatrixEvent,
        new_status: EventStatus,
        new_event_id: str | None = None,
    ) -> None:
        """Move a local echo on to its next send status.

        Args:
            event: the local echo.
            new_status: the status to move it to.
            new_event_id: the event ID from the homeserver, when the status is
                SENT.

        Raises:
            InvalidEventStateError: if the event may not move from its current
                status to `new_status`.
        """
        set_event_status(event, new_status)

        if new_status == EventStatus.SENT and new_event_id is not None:
            old_event_id = event.event_id
            event.replace_local_event_id(new_event_id)
            self._events_by_id.pop(old_event_id, None)
            self._events_by_id[new_event_id] = event
            if event.txn_id is not None:
                self._txn_to_event_id[event.txn_id] = new_event_id

        if new_status in _TERMINAL_STATUSES and event.txn_id is not None:
            self._pending_events.pop(event.txn_id, None)
