import contextlib
import types

import pytest
from azure.core.exceptions import ResourceNotFoundError

from vaultconfig import exceptions
from vaultconfig import loaders


def is_expected_getitem(config, key, res):
    if res is KeyError:
        with pytest.raises(KeyError):
            _ = config[key]
        return True
    else:
        return config[key] == res


class FakeSecretClient:
    """Stands in for azure.keyvault.secrets.SecretClient."""

    def __init__(self, secrets=None, error=None, vault_url=None, credential=None):
        self.secrets = dict(secrets or {})
        self.error = error
        self.vault_url = vault_url
        self.credential = credential
        self.requested = []
        self.closed = False

    def get_secret(self, name):
        self.requested.append(name)
        if self.error is not None:
            raise self.error
        if name not in self.secrets:
            raise ResourceNotFoundError(
                "(SecretNotFound) A secret with (name/id) {} was not found in this key vault.".format(name))
        return types.SimpleNamespace(name=name, value=self.secrets[name])

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class FakeCredential:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class FakeVault:
    """Records the clients and credentials the Key Vault fetcher opens."""

    def __init__(self):
        self.secrets = {}
        self.error = None
        self.clients = []
        self.credentials = []

    def client(self, vault_url, credential):
        c = FakeSecretClient(self.secrets, error=self.error, vault_url=vault_url, credential=credential)
        self.clients.append(c)
        return c

    def credential(self):
        c = FakeCredential()
        self.credentials.append(c)
        return c

    @property
    def requested(self):
        return [name for c in self.clients for name in c.requested]


class StaticFetcher(loaders.SecretFetcher):
    """A secret store backed by a dict."""
    store_name = "test store"

    def __init__(self, secrets):
        self.secrets = secrets
        self.requested = []

    def client(self):
        return contextlib.nullcontext()

    def read_secret(self, client, name):
        self.requested.append(name)
        if name not in self.secrets:
            raise exceptions.DataSourceMissing(name)
        return self.secrets[name]
