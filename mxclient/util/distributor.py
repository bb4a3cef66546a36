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
from typing import Any, Callable

logger = logging.getLogger(__name__)


class Distributor:
    """A central dispatch point for loosely-connected pieces of code to
    register, observe, and fire signals.

    Signals are named simply by strings.

    Observers are called synchronously, in the order they were registered. The
    set of observers is snapshotted at the start of each `fire`, so an observer
    which is removed (or added) while a signal is being dispatched only takes
    effect from the next `fire`.
    """

    def __init__(self) -> None:
        self.signals: dict[str, Signal] = {}
        self.pre_registration: dict[str, list[Callable]] = {}

    def declare(self, name: str) -> None:
        if name in self.signals:
            raise KeyError("%r already has a signal named %s" % (self, name))

        sig = Signal(name)
        self.signals[name] = sig

        if name in self.pre_registration:
            for observer in self.pre_registration.pop(name):
                sig.observe(observer)

    def observe(self, name: str, observer: Callable) -> None:
        if name in self.signals:
            self.signals[name].observe(observer)
        else:
            # Observers may register before the signal is declared.
            if name not in self.pre_registration:
                self.pre_registration[name] = []
            self.pre_registration[name].append(observer)

    def unobserve(self, name: str, observer: Callable) -> None:
        if name in self.signals:
            self.signals[name].unobserve(observer)
        elif observer in self.pre_registration.get(name, []):
            self.pre_registration[name].remove(observer)

    def fire(self, name: str, *args: Any, **kwargs: Any) -> None:
        """Dispatches the given signal to the registered observers.

        Raises:
            KeyError: if the signal has not been declared.
        """
        if name not in self.signals:
            raise KeyError("%r does not have a signal named %s" % (self, name))

        self.signals[name].fire(*args, **kwargs)


class Signal:
    """A Signal is a dispatch point that stores a list of callables as
    observers of it.

    Signals can be "fired", meaning that every callable observing it is
    invoked. Exceptions raised by observers are logged and do not stop the
    remaining observers from being called.
    """

    def __init__(self, name: str):
        self.name: str = name
        self.observers: list[Callable] = []

    def observe(self, observer: Callable) -> None:
        """Adds a new callable to the observer list which will be invoked by
        the 'fire' method.
        """
        self.observers.append(observer)

    def unobserve(self, observer: Callable) -> None:
        if observer in self.observers:
            self.observers.remove(observer)

    def fire(self, *args: Any, **kwargs: Any) -> None:
        """Invokes every callable in the observer list, passing in the args and
        kwargs.
        """
        for observer in list(self.observers):
            try:
                observer(*args, **kwargs)
            except Exception:
                logger.warning(
                    "%s signal observer %s failed", self.name, observer, exc_info=True
                )

    def __repr__(self) -> str:
        return "<Signal name=%r>" % (self.name,)
