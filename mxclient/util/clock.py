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

import itertools
import logging
from typing import Any, Callable

from twisted.internet import defer
from twisted.internet.interfaces import IDelayedCall, IReactorTime

logger = logging.getLogger(__name__)


class Clock:
    """Timers for a single client, on top of a Twisted reactor.

    Every call scheduled through `call_later` is remembered until it fires or
    is cancelled, so that `shutdown` can cancel whatever a stopped client left
    behind. Once shut down, the clock refuses to schedule anything new.

    Args:
        reactor: The Twisted reactor to use.
    """

    def __init__(self, reactor: IReactorTime) -> None:
        self._reactor = reactor
        self._call_ids = itertools.count()
        # Calls which have not yet fired or been cancelled, by ID.
        self._pending_calls: dict[int, "DelayedCallWrapper"] = {}
        self._is_shutdown = False

    def shutdown(self) -> None:
        self._is_shutdown = True
        self.cancel_all_delayed_calls()

    def time(self) -> float:
        """Returns the reactor's current time in seconds since the epoch."""
        return self._reactor.seconds()

    def time_msec(self) -> int:
        """Returns the reactor's current time in milliseconds since the epoch."""
        return int(self.time() * 1000)

    async def sleep(self, seconds: float) -> None:
        d: defer.Deferred[None] = defer.Deferred()
        call = self.call_later(seconds, d.callback, None)
        try:
            await d
        except defer.CancelledError:
            self.cancel_call_later(call, ignore_errs=True)
            raise

    def call_later(
        self, delay: float, callback: Callable, *args: Any, **kwargs: Any
    ) -> "DelayedCallWrapper":
        """Schedule `callback(*args, **kwargs)` to run after `delay` seconds.

        Raises:
            RuntimeError: if the clock has been shut down.
        """
        if self._is_shutdown:
            raise RuntimeError("Cannot schedule a call on a clock which is shut down")

        call_id = next(self._call_ids)

        def fire() -> None:
            self._pending_calls.pop(call_id, None)
            callback(*args, **kwargs)

        wrapped = DelayedCallWrapper(self._reactor.callLater(delay, fire), call_id, self)
        self._pending_calls[call_id] = wrapped
        logger.debug("Scheduled call %d in %ss", call_id, delay)
        return wrapped

    def cancel_call_later(
        self, wrapped_call: "DelayedCallWrapper", ignore_errs: bool = False
    ) -> None:
        try:
            wrapped_call.cancel()
        except Exception:
            if not ignore_errs:
                raise

    def cancel_all_delayed_calls(self) -> None:
        """Cancel every call which is still pending."""
        # Cancelling a call removes it from the map, so iterate over a copy.
        for call in list(self._pending_calls.values()):
            call.cancel()
        self._pending_calls.clear()


class DelayedCallWrapper:
    """A scheduled call, as returned by `Clock.call_later`."""

    def __init__(self, delayed_call: IDelayedCall, call_id: int, clock: Clock):
        self.delayed_call = delayed_call
        self.call_id = call_id
        self._clock = clock

    def active(self) -> bool:
        return self.delayed_call.active()

    def cancel(self) -> None:
        """Cancel the call, if it has not fired yet. Safe to call repeatedly."""
        self._clock._pending_calls.pop(self.call_id, None)
        if self.delayed_call.active():
            self.delayed_call.cancel()

    def getTime(self) -> float:
        return self.delayed_call.getTime()
