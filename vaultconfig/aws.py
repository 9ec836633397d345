import contextlib

import boto3
from botocore.exceptions import ClientError

from vaultconfig import builders
from vaultconfig import converters
from vaultconfig import exceptions
from vaultconfig import loaders


class SecretsManagerFetcher(loaders.SecretFetcher):
    """Reads secrets from AWS Secrets Manager.

    String secrets are returned as is. Binary secrets go through
    binary_decoder (for example Decoders.base64) and are then read as
    utf-8 text.
    """
    store_name = "AWS Secrets Manager"

    def __init__(self, client=None, stage=None, binary_decoder=None, region_name=None):
        self._client = client
        self._stage = stage
        self._region_name = region_name
        self._binary_decoder = binary_decoder or (lambda x: x)

    @contextlib.contextmanager
    def client(self):
        if self._client is not None:
            yield self._client
            return
        with contextlib.closing(boto3.client("secretsmanager", region_name=self._region_name)) as client:
            yield client

    def read_secret(self, client, name):
        kwargs = {'SecretId': name}
        if self._stage is not None:
            kwargs['VersionStage'] = self._stage
        try:
            secret = client.get_secret_value(**kwargs)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
                raise exceptions.DataSourceMissing(name) from e
            raise
        return self.value_from_secret(secret)

    def value_from_secret(self, secret):
        if 'SecretString' in secret:
            return secret['SecretString']
        elif 'SecretBinary' in secret:
            return converters.string_from_bytes(self._binary_decoder(secret['SecretBinary']))
        else:
            raise exceptions.FetchFailure("cannot extract value: neither SecretString nor SecretBinary found")


def add_secrets_manager_secrets(
        builder: builders.ConfigBuilder,
        secrets,
        suppress_not_found=True,
        client=None,
        stage=None,
        binary_decoder=None,
        region_name=None,
) -> builders.ConfigBuilder:
    return builder.add_secrets(
        SecretsManagerFetcher(client=client, stage=stage, binary_decoder=binary_decoder, region_name=region_name),
        secrets,
        suppress_not_found=suppress_not_found,
    )


class Decoders:
    base64 = converters.bytes_from_base64
