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
from typing import TYPE_CHECKING

from mxclient.types import JsonDict

if TYPE_CHECKING:
    from mxclient.events import MatrixEvent
    from mxclient.rooms import Room

logger = logging.getLogger(__name__)


class MemoryStore:
    """A store which keeps everything in memory and persists nothing."""

    def __init__(self) -> None:
        self._sync_token: str | None = None
        self._rooms: dict[str, "Room"] = {}
        self._filter_ids_by_name: dict[str, str] = {}
        # user ID -> filter ID -> definition
        self._filters: dict[str, dict[str, JsonDict]] = {}
        self._account_data: dict[str, "MatrixEvent"] = {}
        self._presence: dict[str, JsonDict] = {}

    async def startup(self) -> None:
        pass

    async def save(self, force: bool = False) -> None:
        pass

    def get_sync_token(self) -> str | None:
        return self._sync_token

    def set_sync_token(self, token: str) -> None:
        self._sync_token = token

    def store_room(self, room: "Room") -> None:
        self._rooms[room.room_id] = room

    def get_room(self, room_id: str) -> "Room | None":
        return self._rooms.get(room_id)

    def get_rooms(self) -> list["Room"]:
        return list(self._rooms.values())

    def remove_room(self, room_id: str) -> None:
        self._rooms.pop(room_id, None)

    def get_filter_id_by_name(self, filter_name: str) -> str | None:
        return self._filter_ids_by_name.get(filter_name)

    def set_filter_id_by_name(self, filter_name: str, filter_id: str | None) -> None:
        if filter_id is None:
            self._filter_ids_by_name.pop(filter_name, None)
        else:
            self._filter_ids_by_name[filter_name] = filter_id

    def store_filter(self, user_id: str, filter_id: str, definition: JsonDict) -> None:
        self._filters.setdefault(user_id, {})[filter_id] = definition

    def get_filter(self, user_id: str, filter_id: str) -> JsonDict | None:
        return self._filters.get(user_id, {}).get(filter_id)

    def store_account_data_events(self, events: list["MatrixEvent"]) -> None:
        for event in events:
            self._account_data[event.type] = event

    def get_account_data(self, event_type: str) -> "MatrixEvent | None":
        return self._account_data.get(event_type)

    def store_presence(self, user_id: str, presence: JsonDict) -> None:
        self._presence[user_id] = presence

    def get_presence(self, user_id: str) -> JsonDict | None:
        return self._presence.get(user_id)
