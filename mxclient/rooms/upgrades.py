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

"""Resolution of room upgrade chains.

A room upgrade links two rooms: the old room gets a tombstone naming the new
room, and the new room's create event (or, with dynamic predecessors, a
predecessor state event) names the old one. Either side may be missing, so
every lookup here tolerates rooms we don't know about.
"""

import logging

from mxclient.api.constants import EventTypes
from mxclient.rooms import Room
from mxclient.storage import IStore

logger = logging.getLogger(__name__)


def get_room_upgrade_history(
    store: IStore,
    room_id: str,
    verify_links: bool = False,
    use_dynamic_predecessor: bool = False,
) -> list[Room]:
    """Get the chain of rooms `room_id` belongs to, oldest first.

    Args:
        store: where to look up rooms.
        room_id: the room to start from. It is always included in the result
            if we know about it.
        verify_links: if set, only follow an upgrade link when both rooms
            agree on it: the old room's tombstone must name the new room and
            the new room's predecessor must name the old room.
        use_dynamic_predecessor: whether a dynamic predecessor state event
            overrides the predecessor given in a room's create event.

    Returns:
        The rooms in the chain, or an empty list if we don't know `room_id`.
    """
    current_room = store.get_room(room_id)
    if current_room is None:
        return []

    seen_room_ids = {current_room.room_id}
    before = _find_predecessor_rooms(
        store, current_room, seen_room_ids, verify_links, use_dynamic_predecessor
    )
    after = _find_successor_rooms(
        store, current_room, seen_room_ids, verify_links, use_dynamic_predecessor
    )
    return before + [current_room] + after


def _find_predecessor_rooms(
    store: IStore,
    room: Room,
    seen_room_ids: set[str],
    verify_links: bool,
    use_dynamic_predecessor: bool,
) -> list[Room]:
    ret: list[Room] = []

    predecessor_room_id = room.find_predecessor(use_dynamic_predecessor)
    while predecessor_room_id is not None:
        if predecessor_room_id in seen_room_ids:
            logger.debug("Loop in room upgrade chain at %s", predecessor_room_id)
            break
        seen_room_ids.add(predecessor_room_id)

        predecessor_room = store.get_room(predecessor_room_id)
        if predecessor_room is None:
            break
        if (
            verify_links
            and predecessor_room.get_tombstone_successor() != room.room_id
        ):
            break

        ret.insert(0, predecessor_room)
        room = predecessor_room
        predecessor_room_id = room.find_predecessor(use_dynamic_predecessor)

    return ret


def _find_successor_rooms(
    store: IStore,
    room: Room,
    seen_room_ids: set[str],
    verify_links: bool,
    use_dynamic_predecessor: bool,
) -> list[Room]:
    ret: list[Room] = []

    successor_room_id = room.get_tombstone_successor()
    while successor_room_id is not None:
        successor_room = store.get_room(successor_room_id)
        if successor_room is None:
            break
        # A tombstone pointing at its own room.
        if successor_room.room_id == room.room_id:
            break
        if (
            verify_links
            and successor_room.find_predecessor(use_dynamic_predecessor)
            != room.room_id
        ):
            break
        if successor_room.room_id in seen_room_ids:
            logger.debug("Loop in room upgrade chain at %s", successor_room_id)
            break
        seen_room_ids.add(successor_room.room_id)

        ret.append(successor_room)
        room = successor_room
        successor_room_id = room.get_tombstone_successor()

    return ret


def get_visible_rooms(
    store: IStore, use_dynamic_predecessor: bool = False
) -> list[Room]:
    """Get the rooms which haven't been replaced by an upgrade.

    A room is hidden if it has a tombstone and another room we know about
    names it as its predecessor.
    """
    all_rooms = store.get_rooms()

    replaced_room_ids = set()
    for room in all_rooms:
        predecessor = room.find_predecessor(use_dynamic_predecessor)
        if predecessor is not None and predecessor != room.room_id:
            replaced_room_ids.add(predecessor)

    return [
        room
        for room in all_rooms
        if not (
            room.get_state_event(EventTypes.Tombstone) is not None
            and room.room_id in replaced_room_ids
        )
    ]
