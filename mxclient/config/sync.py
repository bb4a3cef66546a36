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

from pydantic import Field, StrictBool, StrictInt, StrictStr, ValidationError

from mxclient.types import JsonDict
from mxclient.util.pydantic_models import ParseModel

from ._base import Config, ConfigError

Duration = StrictInt | StrictStr


class SyncConfigModel(ParseModel):
    poll_timeout: Duration = "30s"
    """How long the homeserver may hold a `/sync` request open."""

    initial_sync_limit: StrictInt = Field(default=8, ge=0)
    """How many timeline events to ask for per room on the first sync."""

    retry_initial_delay: Duration = "10s"
    """How long to wait before retrying the first failed request."""

    retry_max_delay: Duration = "5m"
    """The cap on the exponential backoff between retries."""

    keepalive_interval: Duration = "5s"
    """How often to probe the homeserver while waiting to retry."""

    thread_support: StrictBool = True
    """Whether to split threaded events off into their own timelines."""


class SyncConfig(Config):
    section = "sync"

    def read_config(self, config: JsonDict, **kwargs: Any) -> None:
        sync = config.get("sync")
        if sync is None:
            sync = {}

        try:
            parsed = SyncConfigModel(**sync)
        except (TypeError, ValidationError) as e:
            raise ConfigError("Could not validate sync config", ("sync",)) from e

        self.poll_timeout_ms = self._read_duration(parsed, "poll_timeout")
        self.retry_initial_delay_ms = self._read_duration(parsed, "retry_initial_delay")
        self.retry_max_delay_ms = self._read_duration(parsed, "retry_max_delay")
        self.keepalive_interval_ms = self._read_duration(parsed, "keepalive_interval")
        self.initial_sync_limit = parsed.initial_sync_limit
        self.thread_support = parsed.thread_support

        if self.retry_max_delay_ms < self.retry_initial_delay_ms:
            raise ConfigError(
                "Must not be less than `retry_initial_delay`",
                ("sync", "retry_max_delay"),
            )

    def _read_duration(self, parsed: SyncConfigModel, option: str) -> int:
        value = getattr(parsed, option)
        try:
            duration = self.parse_duration(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(
                "Could not parse duration %r" % (value,), ("sync", option)
            ) from e
        if duration < 0:
            raise ConfigError("Must not be negative", ("sync", option))
        return duration
