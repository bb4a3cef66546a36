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

from mxclient.api.constants import Direction
from mxclient.api.errors import is_unsupported_endpoint_error
from mxclient.api.urls import CLIENT_V1_PREFIX, MSC3030_PREFIX, encode_path
from mxclient.http import Method
from mxclient.types import JsonDict

if TYPE_CHECKING:
    from mxclient.client import MatrixClient

logger = logging.getLogger(__name__)


class RoomHandler:
    def __init__(self, client: "MatrixClient"):
        self._transport = client.get_transport()

    async def timestamp_to_event(
        self, room_id: str, timestamp: int, direction: Direction
    ) -> JsonDict:
        """Find the event closest to a point in time.

        Uses the stable endpoint, falling back to the unstable MSC3030 one if
        the homeserver doesn't recognise it.

        Args:
            room_id: the room to look in.
            timestamp: the point in time, in milliseconds since the epoch.
            direction: whether to look for the closest event before or after
                `timestamp`.

        Returns:
            The homeserver's response: `event_id` and `origin_server_ts`.
        """
        path = encode_path("/rooms/%s/timestamp_to_event", room_id)
        query_params = {"ts": str(timestamp), "dir": direction.value}

        try:
            return await self._transport.request(
                Method.GET, path, query_params, prefix=CLIENT_V1_PREFIX
            )
        except Exception as e:
            if not is_unsupported_endpoint_error(e):
                raise
            logger.debug(
                "Stable timestamp_to_event not supported (%s); trying MSC3030", e
            )

        return await self._transport.request(
            Method.GET, path, query_params, prefix=MSC3030_PREFIX
        )
