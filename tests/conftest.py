import sys

import pytest

from vaultconfig import keyvault

from tests.helpers import FakeVault


@pytest.fixture(autouse=True)
def isolated_process(monkeypatch, tmp_path):
    for name in ("ENVIRONMENT", keyvault.KEY_VAULT_URL_KEY, keyvault.KEY_VAULT_INSTANCE_NAME_KEY):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(sys, "argv", ["app"])
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def aws_credentials(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def fake_vault(monkeypatch):
    vault = FakeVault()
    monkeypatch.setattr(keyvault, "SecretClient", vault.client)
    monkeypatch.setattr(keyvault, "DefaultAzureCredential", vault.credential)
    return vault
