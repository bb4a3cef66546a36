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

"""The interface of the store which holds the client's local model.

The store is where rooms, the sync token, filters and account data live between
sync responses. `MemoryStore` keeps everything in memory; persistent stores
implement `startup` and `save` to load and write back their data.
"""

from typing import TYPE_CHECKING, Protocol

from mxclient.types import JsonDict

if TYPE_CHECKING:
    from mxclient.events import MatrixEvent
    from mxclient.rooms import Room


class IStore(Protocol):
    """The interface that a store must implement."""

    async def startup(self) -> None:
        """Load any persisted data. Called once, before the first sync."""

    async def save(self, force: bool = False) -> None:
        """Persist the current data, if the store is persistent.

        Args:
            force: save even if the store would otherwise batch up writes.
        """

    def get_sync_token(self) -> str | None: ...

    def set_sync_token(self, token: str) -> None: ...

    def store_room(self, room: "Room") -> None: ...

    def get_room(self, room_id: str) -> "Room | None": ...

    def get_rooms(self) -> list["Room"]: ...

    def remove_room(self, room_id: str) -> None: ...

    def get_filter_id_by_name(self, filter_name: str) -> str | None: ...

    def set_filter_id_by_name(self, filter_name: str, filter_id: str | None) -> None:
        """Cache a filter ID under a name, or forget it if `filter_id` is None."""

    def store_filter(self, user_id: str, filter_id: str, definition: JsonDict) -> None:
        ...

    def get_filter(self, user_id: str, filter_id: str) -> JsonDict | None: ...

    def store_account_data_events(self, events: list["MatrixEvent"]) -> None: ...

    def get_account_data(self, event_type: str) -> "MatrixEvent | None": ...

    def store_presence(self, user_id: str, presence: JsonDict) -> None: ...

    def get_presence(self, user_id: str) -> JsonDict | None: ...
