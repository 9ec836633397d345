"""The high level interface for composing configuration."""

import logging
import os
import pathlib
from typing import Any
from typing import AnyStr
from typing import Iterable
from typing import Mapping
from typing import Optional
from typing import Union

from vaultconfig import config
from vaultconfig import exceptions
from vaultconfig import formats
from vaultconfig import loaders
from vaultconfig import sources
from vaultconfig import statics


logger = logging.getLogger(__name__)


ENVIRONMENT_KEY = "ENVIRONMENT"
DEFAULT_APP_SETTINGS = "appsettings.json"


class ConfigBuilder:
    """Collects configuration sources in order of increasing precedence.

    Each add_* method appends a source and returns the builder, so calls
    chain. When two sources hold the same key the one added last wins.

        cfg = (
            ConfigBuilder()
            .add_environment_variables()
            .add_json_file("appsettings.json", optional=True)
            .add_value("Db:Timeout", "30")
            .build()
        )

    """

    def __init__(self):
        self.sources = []

    def add(self, layer: config.Layer) -> "ConfigBuilder":
        self.sources.append(layer)
        return self

    def add_environment_variables(self, prefix=None, environ=None) -> "ConfigBuilder":
        return self.add(sources.EnvironmentLayer(prefix=prefix, environ=environ))

    def add_command_line(self, args=None, switch_mappings=None) -> "ConfigBuilder":
        return self.add(sources.CommandLineLayer(args=args, switch_mappings=switch_mappings))

    def add_file(
            self,
            path,
            optional=False,
            reload_on_change=False,
            format: Optional[formats.Format] = None,
            refresh_interval_s=10,
    ) -> "ConfigBuilder":
        if format is None:
            try:
                layer_constructor = formats.layer_constructor_for_filename(path)
            except KeyError as e:
                raise exceptions.ConfigurationError("unknown file format for {}".format(path)) from e
        else:
            layer_constructor = formats.layer_constructor_for_format(format)
        return self.add(loaders.AutoRefreshLayer(
            layer_constructor=layer_constructor,
            fetcher=loaders.FileFetcher(path),
            refresh_interval_s=refresh_interval_s if reload_on_change else None,
            optional=optional,
        ))

    def add_json_file(self, path, optional=False, reload_on_change=False) -> "ConfigBuilder":
        return self.add_file(path, optional=optional, reload_on_change=reload_on_change, format=formats.Format.Json)

    def add_values(self, values: Mapping[AnyStr, Any]) -> "ConfigBuilder":
        return self.add(statics.MapLayer(dict(values)))

    def add_value(self, key: AnyStr, value: Any) -> "ConfigBuilder":
        return self.add_values({key: value})

    def add_secrets(
            self,
            fetcher: loaders.SecretFetcher,
            secrets: Union[Iterable[AnyStr], Mapping[AnyStr, AnyStr]],
            suppress_not_found=True,
    ) -> "ConfigBuilder":
        """Fetches secrets now and adds the ones found as in-memory values.

        secrets is either a list of names, each stored under its own name,
        or a map of secret name to the key to store it under.
        """
        found = fetcher.fetch(secret_map(secrets), suppress_not_found=suppress_not_found)
        if found:
            self.add_values(found)
        return self

    def build(self) -> config.Config:
        for source in self.sources:
            if isinstance(source, loaders.AutoRefreshLayer):
                source.load()
        return config.layered_config(list(reversed(self.sources)))

    def get_value(self, key: AnyStr, default: Optional[Any] = None, transform=None) -> Optional[Any]:
        """Reads a value from the sources added so far."""
        return self.build().get(key, default=default, transform=transform)


def secret_map(secrets) -> dict:
    if isinstance(secrets, Mapping):
        return dict(secrets)
    return {name: name for name in secrets}


def environment_name(environ: Optional[Mapping] = None) -> Optional[AnyStr]:
    """Name of the deployment environment, from the ENVIRONMENT variable."""
    if environ is None:
        environ = os.environ
    name = environ.get(ENVIRONMENT_KEY, "").strip()
    return name or None


def environment_settings_path(app_settings_path, environment) -> pathlib.Path:
    """appsettings.json -> appsettings.{environment}.json, in the same directory."""
    p = pathlib.Path(app_settings_path)
    return p.with_name("{}.{}{}".format(p.stem, environment, p.suffix))


def use_default_configs(
        builder: ConfigBuilder,
        app_settings_path=DEFAULT_APP_SETTINGS,
        environment: Optional[AnyStr] = None,
        args=None,
) -> ConfigBuilder:
    """Adds the standard sources, lowest precedence first.

    1. environment variables
    2. command line arguments
    3. the app settings file (appsettings.json)
    4. the environment's app settings file (appsettings.{env}.json),
       reloaded when it changes

    Both files are optional. The environment comes from the ENVIRONMENT
    process variable unless one is passed in; an ENVIRONMENT key in the
    command line or app settings file does not select a file.
    """
    builder.add_environment_variables()
    builder.add_command_line(args)
    builder.add_json_file(app_settings_path, optional=True)

    env = environment or environment_name()
    if env:
        builder.add_json_file(
            environment_settings_path(app_settings_path, env),
            optional=True,
            reload_on_change=True,
        )
    else:
        logger.debug("No environment set, skipping environment app settings")
    return builder
