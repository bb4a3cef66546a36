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

from mxclient.api.constants import SYNC_FILTER_NAME_PREFIX
from mxclient.api.errors import Codes, MatrixError
from mxclient.api.urls import encode_path
from mxclient.http import Method
from mxclient.types import JsonDict
from mxclient.util.json import content_equal

if TYPE_CHECKING:
    from mxclient.client import MatrixClient

logger = logging.getLogger(__name__)


class FilterHandler:
    """Manages the filters we upload to the homeserver.

    Filter IDs are cached in the store under a name, so that a client which
    restarts with a persistent store can reuse the filter it created last time.
    """

    def __init__(self, client: "MatrixClient"):
        self._client = client
        self._transport = client.get_transport()
        self._store = client.get_store()

    @staticmethod
    def get_sync_filter_name(user_id: str) -> str:
        # Scoped on the user ID, as several accounts may share one store.
        return SYNC_FILTER_NAME_PREFIX + user_id

    async def get_filter(
        self, user_id: str, filter_id: str, allow_cached: bool = True
    ) -> JsonDict:
        """Get a filter definition, from the store if we have it.

        Raises:
            MatrixError: if the homeserver doesn't know the filter.
        """
        if allow_cached:
            definition = self._store.get_filter(user_id, filter_id)
            if definition is not None:
                return definition

        definition = await self._transport.request(
            Method.GET, encode_path("/user/%s/filter/%s", user_id, filter_id)
        )
        self._store.store_filter(user_id, filter_id, definition)
        return definition

    async def create_filter(self, definition: JsonDict) -> str:
        user_id = self._client.get_safe_user_id()
        response = await self._transport.request(
            Method.POST, encode_path("/user/%s/filter", user_id), body=definition
        )
        filter_id = response["filter_id"]
        self._store.store_filter(user_id, filter_id, definition)
        return filter_id

    async def get_or_create_filter(self, filter_name: str, definition: JsonDict) -> str:
        """Get the ID of a filter with the given definition, creating it if we
        need to.

        If we have a filter ID cached under `filter_name` and the filter it
        names still has the same definition, it is reused. Otherwise a new
        filter is uploaded and its ID cached under `filter_name`.

        Returns:
            The filter ID.
        """
        user_id = self._client.get_safe_user_id()

        filter_id = self._store.get_filter_id_by_name(filter_name)
        existing_id = None

        if filter_id is not None:
            try:
                existing = await self.get_filter(user_id, filter_id)
                if content_equal(existing, definition):
                    existing_id = filter_id
            except MatrixError as e:
                # A filter the homeserver has forgotten comes back as either
                # M_UNKNOWN or M_NOT_FOUND, depending on the implementation.
                if e.errcode not in (Codes.UNKNOWN, Codes.NOT_FOUND):
                    raise

            if existing_id is None:
                logger.info("Forgetting stale filter %s (%s)", filter_id, filter_name)
                self._store.set_filter_id_by_name(filter_name, None)

        if existing_id is not None:
            return existing_id

        filter_id = await self.create_filter(definition)
        self._store.set_filter_id_by_name(filter_name, filter_id)
        return filter_id
