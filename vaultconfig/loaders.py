import contextlib
import logging
import os
import threading
import time
from typing import AnyStr
from typing import Dict
from typing import Mapping

from vaultconfig import config
from vaultconfig import exceptions


logger = logging.getLogger(__name__)


class AutoRefreshLayer(config.Layer):
    """Reloads a layer when the data source changes.

    Uses a fetcher to pull the raw bytes of a source, and then creates a
    Layer from them using a layer_constructor.

    load() performs the initial load and lets every error through, except
    a missing source when the layer is optional. After that, if
    refresh_interval_s is set, the first read after each interval checks
    the source again and rebuilds the layer if it changed. Refresh errors
    never reach readers: the previous data is kept, unless the source was
    removed and clear_on_removal is set, or it failed to parse and
    clear_on_load_failure is set.

    """
    def __init__(
            self,
            layer_constructor,
            fetcher,
            refresh_interval_s=None,
            optional=False,
            clear_on_removal=True,
            clear_on_load_failure=False,
    ):
        self.load_lock = threading.Lock()
        self.layer_constructor = layer_constructor
        self.fetcher = fetcher
        self.loaded_layer = config.NullLayer
        self.refresh_interval_s = refresh_interval_s
        self.optional = optional
        self.clear_on_removal = clear_on_removal
        self.clear_on_load_failure = clear_on_load_failure
        self.next_load_s = None

    def load(self):
        now = time.time()
        with self.load_lock:
            try:
                self._load()
            except exceptions.DataSourceMissing:
                if not self.optional:
                    raise exceptions.ConfigurationError(
                        "required configuration source {} not found".format(self.fetcher.name))
                logger.debug(f"Optional configuration source {self.fetcher.name} not found")
                self.loaded_layer = config.NullLayer
            self._schedule(now)
        return self

    def refresh(self):
        if self.next_load_s is None:
            return
        now = time.time()
        if self.next_load_s > now:
            return
        if not self.load_lock.acquire(blocking=False):
            return
        try:
            self._load()
        except exceptions.DataSourceMissing:
            if self.clear_on_removal:
                self.loaded_layer = config.NullLayer
        except (exceptions.FetchFailure, exceptions.LoadFailure):
            logger.exception(f"Failed to reload {self.fetcher.name}")
            if self.clear_on_load_failure:
                self.loaded_layer = config.NullLayer
        finally:
            self._schedule(now)
            self.load_lock.release()

    def get_item(self, key: AnyStr) -> config.Response:
        self.refresh()
        return self.loaded_layer.get_item(key)

    def keys(self):
        self.refresh()
        return self.loaded_layer.keys()

    def _load(self):
        with self.fetcher.load() as bin_data:
            if bin_data is not None:
                self.loaded_layer = self.layer_constructor(bin_data)
                logger.debug(f"Loaded configuration source {self.fetcher.name}")

    def _schedule(self, now):
        if self.refresh_interval_s is not None:
            self.next_load_s = now + self.refresh_interval_s


class AbstractFetcher:
    """Fetchers obtain read-only binary data from external sources."""
    name = None

    @contextlib.contextmanager
    def load(self):
        raise NotImplementedError


def simple_reader(filename):
    with open(filename, 'rb') as f:
        return f.read()


class FileFetcher(AbstractFetcher):
    def __init__(self, filename, reader=simple_reader):
        self.filename = os.fspath(filename)
        self.last_mtime = 0
        if reader is None:
            self.reader = simple_reader
        else:
            self.reader = reader

    @property
    def name(self):
        return self.filename

    def load_required(self):
        if not self.last_mtime:
            return True
        try:
            return os.stat(self.filename).st_mtime > self.last_mtime
        except FileNotFoundError:
            self.last_mtime = 0
            raise exceptions.DataSourceMissing(self.filename)

    @contextlib.contextmanager
    def load(self):
        if not self.load_required():
            yield None
            return
        try:
            # Stat first, so an update made during the read is seen as
            # out-of-date on the next load.
            s = os.stat(self.filename)
            data = self.reader(self.filename)
        except FileNotFoundError:
            raise exceptions.DataSourceMissing(self.filename)
        except OSError as e:
            raise exceptions.FetchFailure(e)
        yield data
        self.last_mtime = s.st_mtime


class SecretFetcher:
    """Reads named secrets from a secret store, one round trip per name.

    Subclasses provide client(), a context manager yielding a connected
    client, and read_secret(), which raises DataSourceMissing when the
    store has no such secret.
    """
    store_name = "secret store"

    def client(self):
        raise NotImplementedError

    def read_secret(self, client, name: AnyStr) -> AnyStr:
        raise NotImplementedError

    def fetch(self, secrets: Mapping[AnyStr, AnyStr], suppress_not_found=True) -> Dict[AnyStr, AnyStr]:
        """Fetches secrets, a map of secret name to the key it is stored under.

        A missing secret is logged and left out of the result when
        suppress_not_found is set, otherwise it fails the whole batch.
        Every other failure is wrapped in a SecretFetchError.
        """
        found = {}
        try:
            with self.client() as client:
                for name, key in secrets.items():
                    try:
                        found[key] = self.read_secret(client, name)
                    except exceptions.DataSourceMissing as e:
                        if not suppress_not_found:
                            raise exceptions.SecretNotFoundError(name) from e
                        logger.warning(f"Failed to find {self.store_name} secret {name!r}: {e}")
        except exceptions.SecretFetchError:
            raise
        except Exception as e:
            raise exceptions.SecretFetchError(
                f"Problem occurred retrieving secrets from {self.store_name}") from e
        logger.info(f"Retrieved {len(found)} of {len(secrets)} secrets from {self.store_name}")
        return found
