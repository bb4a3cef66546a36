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
from typing import Any, ClassVar, Iterator

import yaml

from mxclient.types import JsonDict, StrSequence

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Represents a problem parsing the configuration

    Args:
        msg: A textual description of the error.
        path: Where appropriate, an indication of where in the configuration
           the problem lies.
    """

    def __init__(self, msg: str, path: StrSequence | None = None):
        self.msg = msg
        self.path = path


def format_config_error(e: ConfigError) -> Iterator[str]:
    """
    Formats a config error neatly

    The idea is to format the immediate error, plus the "causes" of those errors,
    hopefully in a way that makes sense to the user. For example:

        Error in configuration at 'sync.poll_timeout':
          Could not parse duration 'soon'
    """
    yield "Error in configuration"

    if e.path:
        yield " at '%s'" % (".".join(e.path),)

    yield ":\n  %s" % (e.msg,)

    parent_e = e.__cause__
    indent = 1
    while parent_e:
        indent += 1
        yield ":\n%s%s" % ("  " * indent, str(parent_e))
        parent_e = parent_e.__cause__


class Config:
    """
    A configuration section, containing configuration keys and values.

    Attributes:
        section: The section title of this config object, such as
            "sync" or "account". This is used as a parent key for the
            options of this section.
    """

    section: ClassVar[str]

    def __init__(self, root_config: "RootConfig | None" = None):
        self.root = root_config

    def read_config(self, config: JsonDict, **kwargs: Any) -> None:
        raise NotImplementedError()

    @staticmethod
    def parse_duration(value: int | str) -> int:
        """Convert a duration as a string or integer to a number of milliseconds.

        If an integer is provided it is treated as milliseconds and is unchanged.

        String durations can have a suffix of 'ms', 's', 'm', 'h', 'd', 'w', or 'y'.
        No suffix is treated as milliseconds.

        Args:
            value: The duration to parse.

        Returns:
            The number of milliseconds in the duration.

        Raises:
            TypeError, if given something other than an integer or a string
            ValueError, if given a string not of the form described above.
        """
        if isinstance(value, bool):
            raise TypeError(value)
        if isinstance(value, int):
            return value
        if not isinstance(value, str):
            raise TypeError(value)

        second = 1000
        minute = 60 * second
        hour = 60 * minute
        day = 24 * hour
        week = 7 * day
        year = 365 * day
        sizes = {
            "ms": 1,
            "s": second,
            "m": minute,
            "h": hour,
            "d": day,
            "w": week,
            "y": year,
        }
        size = 1
        suffix = value[-2:]
        if suffix in sizes:
            value = value[:-2]
            size = sizes[suffix]
        elif value[-1:] in sizes:
            size = sizes[value[-1]]
            value = value[:-1]
        return int(value) * size


class RootConfig:
    """
    Holder of an application's configuration.

    What configuration this object holds is defined by `config_classes`, a list
    of Config classes that will be instantiated and given the contents of a
    configuration file to read. They can then be accessed on this class by their
    section name, defined in the Config or dynamically set to be the name of the
    class, lower-cased and with "Config" removed.
    """

    config_classes: ClassVar[list[type[Config]]] = []

    def __init__(self) -> None:
        self._configs: dict[str, Config] = {}
        for config_class in self.config_classes:
            if getattr(config_class, "section", None) is None:
                raise ValueError("%r requires a section name" % (config_class,))

            self._configs[config_class.section] = config_class(self)

    def __getattr__(self, item: str) -> Any:
        """
        Redirect lookups on this object either to config objects, or values on
        config objects, so that `config.sync` and `config.sync.poll_timeout_ms`
        both work.
        """
        if item in ["_configs"]:
            raise AttributeError(item)
        if item in self._configs.keys():
            return self._configs[item]

        raise AttributeError(item)

    def invoke_all(self, func_name: str, *args: Any, **kwargs: Any) -> dict[str, Any]:
        """
        Invoke a function on all instantiated config objects this RootConfig is
        configured to use.

        Args:
            func_name: Name of function to invoke
            *args
            **kwargs

        Returns:
            ordered dictionary of config section name and the result of the
            function from it.
        """
        res = {}

        for name, config in self._configs.items():
            if hasattr(config, func_name):
                res[name] = getattr(config, func_name)(*args, **kwargs)

        return res

    def parse_config_dict(self, config_dict: JsonDict) -> None:
        """Read the information from the config dict into this Config object.

        Args:
            config_dict: Configuration data, as read from the yaml

        Raises:
            ConfigError: if the configuration is invalid.
        """
        if not isinstance(config_dict, dict):
            raise ConfigError("Config must be a YAML dictionary")

        self.invoke_all("read_config", config_dict)

    @classmethod
    def load_config(cls, config_path: str) -> "RootConfig":
        """Parse a YAML configuration file into a new config object.

        Raises:
            ConfigError: if the file can't be read or the configuration is
                invalid.
        """
        logger.debug("Loading config from %s", config_path)
        try:
            with open(config_path) as file_stream:
                config_dict = yaml.safe_load(file_stream)
        except OSError as e:
            raise ConfigError("Error accessing file %r" % (config_path,)) from e
        except yaml.YAMLError as e:
            raise ConfigError("Error parsing file %r" % (config_path,)) from e

        obj = cls()
        obj.parse_config_dict(config_dict if config_dict is not None else {})
        return obj
