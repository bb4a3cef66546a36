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

from mxclient.types import JsonDict

from ._base import Config, ConfigError


class AccountConfig(Config):
    section = "account"

    def read_config(self, config: JsonDict, **kwargs: Any) -> None:
        account = config.get("account") or {}
        if not isinstance(account, dict):
            raise ConfigError("Must be a dictionary", ("account",))

        self.base_url = account.get("base_url")
        if not isinstance(self.base_url, str) or not self.base_url:
            raise ConfigError("A `base_url` must be given", ("account", "base_url"))
        self.base_url = self.base_url.rstrip("/")

        self.user_id: str | None = account.get("user_id")
        self.access_token: str | None = account.get("access_token")
        self.device_id: str | None = account.get("device_id")
        self.guest = account.get("guest", False)
        if not isinstance(self.guest, bool):
            raise ConfigError("Must be a boolean", ("account", "guest"))

        for option in ("user_id", "access_token", "device_id"):
            value = getattr(self, option)
            if value is not None and not isinstance(value, str):
                raise ConfigError("Must be a string", ("account", option))
