"""Configuration binding with secret store support."""

# TODO(vaultconfig): Bind frozen dataclasses by rebuilding them with dataclasses.replace

from vaultconfig.config import Config
from vaultconfig.config import Layer
from vaultconfig.config import layered_config
from vaultconfig.exceptions import ConfigurationError
from vaultconfig.exceptions import LoadFailure
from vaultconfig.exceptions import SecretFetchError
from vaultconfig.exceptions import SecretNotFoundError
from vaultconfig.statics import IniLayer
from vaultconfig.statics import MapLayer
from vaultconfig.statics import ObjLayer
from vaultconfig.builders import ConfigBuilder
from vaultconfig.builders import environment_name
from vaultconfig.builders import use_default_configs
from vaultconfig.keyvault import add_key_vault_secrets
from vaultconfig.keyvault import resolve_vault_url
from vaultconfig.binding import SecretMapping
from vaultconfig.binding import bind
from vaultconfig.binding import secret_field
from vaultconfig.binding import secret_mappings
from vaultconfig.naming import bind_base_section
