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

"""Splits events between a room's main timeline and its thread timelines."""

import enum
from typing import Iterable

from mxclient.events import MatrixEvent


class TimelinePlacement(enum.Enum):
    ROOM = "room"
    THREAD = "thread"
    # Thread roots are shown in the main timeline and head their own thread.
    BOTH = "both"


def get_placement(event: MatrixEvent) -> TimelinePlacement:
    if event.is_relation_to_thread():
        return TimelinePlacement.THREAD
    if event.is_thread_root():
        return TimelinePlacement.BOTH
    return TimelinePlacement.ROOM


def partition_threaded_events(
    events: Iterable[MatrixEvent],
) -> tuple[list[MatrixEvent], list[MatrixEvent]]:
    """Split events into those for the room timeline and those for threads.

    Both lists keep the relative order of the input. A thread root appears in
    both of them.

    Returns:
        A tuple of (room events, thread events).
    """
    room_events: list[MatrixEvent] = []
    thread_events: list[MatrixEvent] = []

    for event in events:
        placement = get_placement(event)
        if placement in (TimelinePlacement.ROOM, TimelinePlacement.BOTH):
            room_events.append(event)
        if placement in (TimelinePlacement.THREAD, TimelinePlacement.BOTH):
            thread_events.append(event)

    return room_events, thread_events
