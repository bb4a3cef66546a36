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
import secrets
import string

_string_with_digits = string.ascii_letters + string.digits


def random_string(length: int) -> str:
    """Generate a cryptographically secure string of random letters and digits.

    Drawn from the characters: `a-z`, `A-Z` and `0-9`.
    """
    return "".join(secrets.choice(_string_with_digits) for _ in range(length))
