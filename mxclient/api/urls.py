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

"""Contains the URL prefixes of the client-server API endpoints we consume."""

import urllib.parse

CLIENT_API_PREFIX = "/_matrix/client"
CLIENT_V1_PREFIX = CLIENT_API_PREFIX + "/v1"
CLIENT_V3_PREFIX = CLIENT_API_PREFIX + "/v3"
CLIENT_UNSTABLE_PREFIX = CLIENT_API_PREFIX + "/unstable"

# Prefixes of unstable endpoints, one per MSC.
MSC3030_PREFIX = CLIENT_UNSTABLE_PREFIX + "/org.matrix.msc3030"
MSC3391_PREFIX = CLIENT_UNSTABLE_PREFIX + "/org.matrix.msc3391"
MSC4140_PREFIX = CLIENT_UNSTABLE_PREFIX + "/org.matrix.msc4140"

# `/versions` lives directly under the client prefix, and doubles as our
# keepalive endpoint since it doesn't need authentication.
VERSIONS_PATH = "/versions"


def encode_path(template: str, *args: str) -> str:
    """Substitute URL-encoded path segments into a `%s` template.

    Example:
        >>> encode_path("/rooms/%s/send/%s/%s", "!a:b", "m.room.message", "m1.1")
        '/rooms/%21a%3Ab/send/m.room.message/m1.1'
    """
    return template % tuple(urllib.parse.quote(arg, safe="") for arg in args)
