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

from typing import (
    Any,
    Collection,
    Mapping,
    Sequence,
)

# JSON types. These could be made stronger, but will do for now.
# A JSON-serialisable dict.
JsonDict = dict[str, Any]
# A JSON-serialisable mapping; roughly speaking an immutable JSONDict.
# Useful when you have a TypedDict which isn't going to be mutated and you don't want
# to cast to JsonDict everywhere.
JsonMapping = Mapping[str, Any]
# Collection[str] that does not include str itself; str being a Sequence[str]
# is very misleading and results in bugs.
#
# Unfortunately there is no way to enforce this at the type level, so it is
# only a naming convention.
StrCollection = tuple[str, ...] | list[str] | Collection[str]
StrSequence = tuple[str, ...] | list[str] | Sequence[str]

# A query string dict, as passed to the transport.
QueryParams = Mapping[str, str | Sequence[str]]
