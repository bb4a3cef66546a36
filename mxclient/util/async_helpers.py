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
from typing import Awaitable, Callable, TypeVar

from mxclient.api.errors import NetworkError
from mxclient.util.clock import Clock

logger = logging.getLogger(__name__)

R = TypeVar("R")


async def retry_network_operation(
    clock: Clock,
    attempts: int,
    callback: Callable[[], Awaitable[R]],
    base_delay_s: float = 1.0,
) -> R:
    """Call `callback`, retrying it if it fails with a `NetworkError`.

    Waits `base_delay_s * 2**n` seconds before the n-th retry. Any other
    exception is raised straight away.

    Args:
        clock: used to wait between attempts.
        attempts: the maximum number of times to call `callback`.
        callback: produces the operation to attempt.
        base_delay_s: the delay before the first retry.

    Raises:
        NetworkError: the last network failure, once all attempts are exhausted.
    """
    last_error: NetworkError | None = None
    for attempt in range(attempts):
        if attempt > 0:
            delay = base_delay_s * 2 ** (attempt - 1)
            logger.info(
                "Network operation failed (%s); retrying in %ss", last_error, delay
            )
            await clock.sleep(delay)
        try:
            return await callback()
        except NetworkError as e:
            last_error = e

    assert last_error is not None
    raise last_error
