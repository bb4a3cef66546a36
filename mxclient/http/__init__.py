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

"""The interface of the HTTP transport the client talks to the homeserver over.

The transport owns everything below the client-server API: building URLs from
the base URL, authenticating requests, encoding bodies and decoding responses.
"""

import enum
from typing import Protocol

from mxclient.api.urls import CLIENT_V3_PREFIX
from mxclient.types import JsonDict, QueryParams


class Method(str, enum.Enum):
    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"


class ITransport(Protocol):
    """The interface that an HTTP transport must implement."""

    async def request(
        self,
        method: Method,
        path: str,
        query_params: QueryParams | None = None,
        body: JsonDict | None = None,
        *,
        prefix: str = CLIENT_V3_PREFIX,
        authed: bool = True,
        timeout_ms: int | None = None,
    ) -> JsonDict:
        """Make a request to the homeserver.

        Args:
            method: the HTTP method.
            path: the path below `prefix`, with its parameters already
                URL-encoded.
            query_params: the query string parameters, if any.
            body: the JSON body, if any.
            prefix: the API prefix `path` lives under.
            authed: whether to send the access token.
            timeout_ms: abandon the request after this long.

        Returns:
            The decoded JSON response.

        Raises:
            MatrixError: if the homeserver returned an error response.
            NetworkError: if no response was received. `RequestTimedOutError`
                if the request timed out.
        """
        ...
