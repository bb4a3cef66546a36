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
import logging.config
import sys

from mxclient.config.logger import LoggingConfig
from mxclient.logging.filter import MetadataFilter
from mxclient.logging.formatter import LogFormatter

DEFAULT_LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(lineno)d - %(levelname)s - %(user_id)s - %(message)s"
)


def setup_logging(
    config: LoggingConfig, user_id: str | None
) -> logging.Handler | None:
    """Set up the python logging for the client's loggers.

    If the config has a `log_config` it is handed to `logging.config.dictConfig`
    as is. Otherwise a handler writing to stderr is added to the `mxclient`
    logger.

    Args:
        config: the logging section of the client config.
        user_id: the logged in user, stamped on every record.

    Returns:
        The handler we added, or None if `log_config` was used.
    """
    if config.log_config is not None:
        logging.config.dictConfig(config.log_config)
        return None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(LogFormatter(DEFAULT_LOG_FORMAT))
    handler.addFilter(MetadataFilter({"user_id": user_id or "-"}))

    logger = logging.getLogger("mxclient")
    logger.addHandler(handler)
    logger.setLevel(config.level)
    return handler
