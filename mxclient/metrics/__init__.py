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

from prometheus_client import Counter

sync_requests_counter = Counter(
    "mxclient_sync_requests",
    documentation="The number of `/sync` requests made, by outcome.",
    labelnames=["outcome"],
)
"""The number of `/sync` requests made, by outcome ("success", "transient", "fatal")."""

sync_state_transitions_counter = Counter(
    "mxclient_sync_state_transitions",
    documentation="The number of times the sync state machine entered each state.",
    labelnames=["state"],
)
"""The number of times the sync state machine entered each state."""

sent_events_counter = Counter(
    "mxclient_sent_events",
    documentation="The number of events we tried to send, by outcome.",
    labelnames=["outcome"],
)
"""The number of events we tried to send, by outcome ("sent", "not_sent", "cancelled")."""
