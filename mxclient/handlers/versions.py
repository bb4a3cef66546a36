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

from mxclient.api.features import (
    Feature,
    ServerSupport,
    build_feature_support_map,
)
from mxclient.api.urls import CLIENT_API_PREFIX, VERSIONS_PATH
from mxclient.http import Method
from mxclient.types import JsonDict

if TYPE_CHECKING:
    from mxclient.client import MatrixClient

logger = logging.getLogger(__name__)


class VersionsHandler:
    """Fetches and caches what the homeserver tells us in `/versions`."""

    def __init__(self, client: "MatrixClient"):
        self._transport = client.get_transport()

        self._versions: JsonDict | None = None
        self._feature_support: dict[Feature, ServerSupport] = {}

    async def get_versions(self) -> JsonDict:
        """Get the homeserver's `/versions` response, fetching it if needed.

        The response is cached until `clear_cache` is called.
        """
        if self._versions is not None:
            return self._versions

        versions = await self._transport.request(
            Method.GET, VERSIONS_PATH, prefix=CLIENT_API_PREFIX, authed=False
        )
        self._versions = versions
        self._feature_support = build_feature_support_map(versions)
        logger.debug("Homeserver feature support: %s", self._feature_support)
        return versions

    def clear_cache(self) -> None:
        self._versions = None
        self._feature_support = {}

    async def does_server_support_unstable_feature(self, feature: str) -> bool:
        """Whether the homeserver advertises a flag in `unstable_features`."""
        versions = await self.get_versions()
        unstable_features = versions.get("unstable_features") or {}
        return bool(unstable_features.get(feature))

    async def get_feature_support(self, feature: Feature) -> ServerSupport:
        await self.get_versions()
        return self.get_cached_feature_support(feature)

    def get_cached_feature_support(self, feature: Feature) -> ServerSupport:
        """The support level for a feature, going by what we have already
        fetched.

        Features are unsupported until `/versions` has been fetched.
        """
        return self._feature_support.get(feature, ServerSupport.UNSUPPORTED)
