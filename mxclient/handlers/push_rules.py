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

from mxclient.types import JsonDict

if TYPE_CHECKING:
    from mxclient.client import MatrixClient

logger = logging.getLogger(__name__)


class PushRulesHandler:
    """Holds the user's push rules.

    Evaluating the rules is left to the caller; we only keep the latest copy,
    fetched when the sync loop starts and then updated from `m.push_rules`
    account data.
    """

    def __init__(self, client: "MatrixClient"):
        self.push_rules: JsonDict | None = None

    def on_push_rules(self, rules: JsonDict) -> None:
        logger.debug("Got new push rules")
        self.push_rules = rules
