"""Azure Key Vault as a source of configuration secrets.

The vault is found from configuration: KEYVAULT_URL when set, otherwise
a URL built from KeyVaultInstanceName. Authentication goes through
DefaultAzureCredential, which picks up the managed identity when running
in Azure.
"""

import contextlib
import logging
import urllib.parse
from typing import AnyStr
from typing import Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.keyvault.secrets import SecretClient

from vaultconfig import builders
from vaultconfig import config
from vaultconfig import exceptions
from vaultconfig import helpers
from vaultconfig import loaders


logger = logging.getLogger(__name__)


KEY_VAULT_URL_KEY = "KEYVAULT_URL"
KEY_VAULT_INSTANCE_NAME_KEY = "KeyVaultInstanceName"
VAULT_URL_TEMPLATE = "https://{%s}.vault.azure.net" % KEY_VAULT_INSTANCE_NAME_KEY


def is_absolute_url(url: AnyStr) -> bool:
    if not isinstance(url, str):
        return False
    if any(c.isspace() for c in url):
        return False
    parsed = urllib.parse.urlparse(url)
    return bool(parsed.scheme and parsed.netloc)


def resolve_vault_url(cfg: config.Config) -> AnyStr:
    """Finds the vault URL in cfg.

    KEYVAULT_URL wins. Without it the URL is inferred from
    KeyVaultInstanceName. Raises ConfigurationError when neither is set or
    the result is not an absolute URL.
    """
    url = cfg.get(KEY_VAULT_URL_KEY)
    if not url:
        url = helpers.expand(VAULT_URL_TEMPLATE, cfg)
    if not url:
        raise exceptions.ConfigurationError(
            'Vault url must be set, ensure "{}" or "{}" have been set in config'.format(
                KEY_VAULT_URL_KEY, KEY_VAULT_INSTANCE_NAME_KEY))
    if not is_absolute_url(url):
        raise exceptions.ConfigurationError('Vault url "{}" is invalid'.format(url))
    logger.debug(f"Using Key Vault {url}")
    return url


class KeyVaultFetcher(loaders.SecretFetcher):
    """Reads secrets from one Azure Key Vault.

    Without an explicit client, each fetch opens its own credential and
    SecretClient and closes both when the batch ends, whether it succeeded
    or not. A client passed in belongs to the caller and is left open.
    """
    store_name = "Key Vault"

    def __init__(self, vault_url: AnyStr, client=None, credential=None):
        if not vault_url:
            raise exceptions.ConfigurationError("Vault url must be set")
        self.vault_url = vault_url
        self._client = client
        self._credential = credential

    @contextlib.contextmanager
    def client(self):
        if self._client is not None:
            yield self._client
            return
        with contextlib.ExitStack() as stack:
            credential = self._credential
            if credential is None:
                credential = stack.enter_context(DefaultAzureCredential())
            yield stack.enter_context(SecretClient(vault_url=self.vault_url, credential=credential))

    def read_secret(self, client, name):
        try:
            return client.get_secret(name).value
        except ResourceNotFoundError as e:
            raise exceptions.DataSourceMissing(str(e)) from e


def add_key_vault_secrets(
        builder: builders.ConfigBuilder,
        secrets,
        vault_url: Optional[AnyStr] = None,
        suppress_not_found=True,
        client=None,
        credential=None,
) -> builders.ConfigBuilder:
    """Adds Key Vault secrets to builder as in-memory values.

    secrets is a list of secret names, or a map of secret name to the
    configuration key it should appear under. Without vault_url the vault
    is resolved from the sources already in builder.
    """
    if vault_url is None:
        vault_url = resolve_vault_url(builder.build())
    elif not is_absolute_url(vault_url):
        raise exceptions.ConfigurationError('Vault url "{}" is invalid'.format(vault_url))
    secrets = builders.secret_map(secrets)
    if not secrets:
        return builder
    return builder.add_secrets(
        KeyVaultFetcher(vault_url, client=client, credential=credential),
        secrets,
        suppress_not_found=suppress_not_found,
    )
