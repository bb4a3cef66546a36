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

from typing import Any

from canonicaljson import encode_canonical_json


def content_equal(a: Any, b: Any) -> bool:
    """Compares two JSON values for equality, ignoring the order of object keys.

    Values which cannot be serialised to canonical JSON are never equal to
    anything.
    """
    try:
        return encode_canonical_json(a) == encode_canonical_json(b)
    except (TypeError, ValueError):
        return False
