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

"""Paginating the user's notifications."""

import logging
from typing import TYPE_CHECKING, Final

from mxclient.events import MatrixEvent, PushActions
from mxclient.http import Method

if TYPE_CHECKING:
    from mxclient.client import MatrixClient

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATIONS_LIMIT: Final = 30


class NotificationTimeline:
    """The events the user has been notified about, oldest first.

    Args:
        highlight_only: only include notifications which highlight the user.
    """

    def __init__(self, highlight_only: bool = False):
        self.highlight_only = highlight_only
        self.events: list[MatrixEvent] = []

        # Where the next page back starts. None before the first page.
        self.pagination_token: str | None = None
        # Whether we have paginated all the way back.
        self.at_start = False


class NotificationsHandler:
    def __init__(self, client: "MatrixClient"):
        self._transport = client.get_transport()

    async def paginate_notifications(
        self,
        timeline: NotificationTimeline,
        backwards: bool = True,
        limit: int = DEFAULT_NOTIFICATIONS_LIMIT,
    ) -> bool:
        """Fetch the next page of older notifications into a timeline.

        Returns:
            Whether there are more notifications to fetch.

        Raises:
            ValueError: if asked to paginate forwards.
        """
        if not backwards:
            raise ValueError("paginate_notifications can only paginate backwards")
        if timeline.at_start:
            return False

        query_params = {"limit": str(limit)}
        if timeline.highlight_only:
            query_params["only"] = "highlight"
        if timeline.pagination_token is not None:
            query_params["from"] = timeline.pagination_token

        response = await self._transport.request(
            Method.GET, "/notifications", query_params
        )

        for notification in response.get("notifications") or ():
            if not isinstance(notification, dict):
                continue
            room_id = notification.get("room_id")
            event_dict = notification.get("event")
            if (
                not isinstance(room_id, str)
                or not room_id.startswith("!")
                or not isinstance(event_dict, dict)
            ):
                logger.warning("Dropping malformed notification %r", notification)
                continue

            # The homeserver may leave the room ID out of the event itself.
            event = MatrixEvent({**event_dict, "room_id": room_id})
            actions = notification.get("actions")
            if isinstance(actions, list):
                event.push_actions = PushActions.from_actions(actions)

            timeline.events.insert(0, event)

        next_token = response.get("next_token")
        if isinstance(next_token, str) and next_token:
            timeline.pagination_token = next_token
            return True

        timeline.pagination_token = None
        timeline.at_start = True
        return False
