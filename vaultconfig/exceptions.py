class ValueTransformException(Exception):
    """Propagates an error generated while converting a retrieved value.

    Raised when a configuration value cannot be turned into the type a
    caller asked for. Config and the binder turn it into a ValueError.
    """
    def __init__(self, key, raw_value, exception, *args):
        super().__init__(*args)
        self.key = key
        self.raw_value = raw_value
        self.exception = exception

    def as_value_error(self):
        return ValueError(
            "could not parse value {!r} for key {}: {}".format(self.raw_value, self.key, self.exception))


class ConfigurationError(Exception):
    """The configuration needed to do the job is missing or malformed."""


class FetchFailure(Exception):
    pass


class DataSourceMissing(Exception):
    pass


class LoadFailure(Exception):
    pass


class SecretFetchError(Exception):
    """Retrieving a batch of secrets failed; no partial result is kept."""


class SecretNotFoundError(SecretFetchError):
    def __init__(self, name, *args):
        super().__init__("secret {!r} not found".format(name), *args)
        self.name = name
