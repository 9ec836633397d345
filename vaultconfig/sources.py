"""Layers read from the process: environment variables and command line."""

import os
import sys
from typing import AnyStr
from typing import Dict
from typing import Mapping
from typing import Optional
from typing import Sequence

from vaultconfig import config
from vaultconfig import exceptions
from vaultconfig import statics


ENVIRONMENT_SEPARATOR = "__"


class EnvironmentLayer(statics.MapLayer):
    """A snapshot of environment variables.

    A double underscore stands for the path separator, so
    Database__Password answers "Database:Password". With a prefix only the
    variables starting with it are kept, and the prefix is dropped.
    """

    def __init__(self, prefix: Optional[AnyStr] = None, environ: Optional[Mapping] = None):
        self.prefix = prefix or ""
        if environ is None:
            environ = os.environ
        data = {}
        for name, value in environ.items():
            if not config.fold(name).startswith(config.fold(self.prefix)):
                continue
            data[name[len(self.prefix):].replace(ENVIRONMENT_SEPARATOR, config.SEPARATOR)] = value
        super().__init__(data)


class CommandLineLayer(statics.MapLayer):
    def __init__(self, args: Optional[Sequence[AnyStr]] = None, switch_mappings: Optional[Mapping] = None):
        if args is None:
            args = sys.argv[1:]
        super().__init__(parse_args(args, switch_mappings))


def parse_args(args: Sequence[AnyStr], switch_mappings: Optional[Mapping] = None) -> Dict[AnyStr, AnyStr]:
    """Reads key/value pairs from command line arguments.

    Understands key=value, --key=value, /key=value, --key value and
    /key value. Short switches (-k value, -k=value) are only read when
    switch_mappings names the key they stand for. Anything else is skipped.
    """
    mappings = switch_mappings_index(switch_mappings)
    data = {}
    i = 0
    while i < len(args):
        arg = args[i]
        i += 1
        if arg.startswith("--"):
            switch, rest = "--", arg[2:]
        elif arg.startswith("-"):
            switch, rest = "-", arg[1:]
        elif arg.startswith("/"):
            switch, rest = "--", arg[1:]
        else:
            switch, rest = "", arg

        if "=" in rest:
            key, value = rest.split("=", 1)
        elif not switch or i >= len(args):
            continue
        else:
            key, value = rest, args[i]
            i += 1

        if switch:
            mapped = mappings.get(config.fold(switch + key))
            if mapped is not None:
                key = mapped
            elif switch == "-":
                continue
        if key:
            data[key] = value
    return data


def switch_mappings_index(switch_mappings: Optional[Mapping]) -> Dict[AnyStr, AnyStr]:
    index = {}
    for switch, key in (switch_mappings or {}).items():
        if not switch.startswith("-"):
            raise exceptions.ConfigurationError(
                "switch mapping {!r} must start with '-' or '--'".format(switch))
        folded = config.fold(switch)
        if folded in index:
            raise exceptions.ConfigurationError("duplicate switch mapping {!r}".format(switch))
        index[folded] = key
    return index
