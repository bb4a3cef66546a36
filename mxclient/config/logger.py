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
from typing import Any

from mxclient.types import JsonDict

from ._base import Config, ConfigError


class LoggingConfig(Config):
    section = "logging"

    def read_config(self, config: JsonDict, **kwargs: Any) -> None:
        logging_config = config.get("logging") or {}
        if not isinstance(logging_config, dict):
            raise ConfigError("Must be a dictionary", ("logging",))

        level = logging_config.get("level", "INFO")
        if not isinstance(level, str) or not isinstance(
            logging.getLevelName(level.upper()), int
        ):
            raise ConfigError("Unknown log level %r" % (level,), ("logging", "level"))
        self.level = level.upper()

        # A full `logging.config.dictConfig` configuration, which takes
        # precedence over `level`.
        self.log_config: JsonDict | None = logging_config.get("log_config")
        if self.log_config is not None and not isinstance(self.log_config, dict):
            raise ConfigError("Must be a dictionary", ("logging", "log_config"))
