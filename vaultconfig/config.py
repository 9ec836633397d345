"""Layered configuration.

A Config is a view over a stack of layers. Keys are hierarchical paths
joined by ``SEPARATOR`` ("Database:Password") and are matched without
regard to case. The first layer holding a key wins.
"""

import itertools
from typing import Any
from typing import AnyStr
from typing import Iterable
from typing import List
from typing import NamedTuple
from typing import Optional

from vaultconfig import exceptions


SEPARATOR = ":"


def fold(key: AnyStr) -> AnyStr:
    return key.casefold()


def combine(*segments) -> str:
    return SEPARATOR.join(s for s in segments if s)


def split(path: AnyStr) -> List[AnyStr]:
    if not path:
        return []
    return path.split(SEPARATOR)


class Response(NamedTuple):
    is_found: bool
    value: Optional[Any]

    @classmethod
    def found(cls, value):
        return cls(is_found=True, value=value)


Response.not_found = Response(is_found=False, value=None)


class Layer:
    def get_item(self, key: AnyStr) -> Response:
        raise NotImplementedError()

    def keys(self) -> Iterable[AnyStr]:
        raise NotImplementedError()


class NullLayer(Layer):
    @classmethod
    def get_item(cls, key):
        return Response.not_found

    @classmethod
    def keys(cls):
        return iter(())


class LinkedLayer(Layer):
    def __init__(self, layer, sublayer):
        self.layer = layer
        self.sublayer = sublayer

    def get_item(self, key: AnyStr) -> Response:
        resp = self.layer.get_item(key)
        if resp.is_found:
            return resp
        return self.sublayer.get_item(key)

    def keys(self):
        seen = set()
        for k in itertools.chain(self.layer.keys(), self.sublayer.keys()):
            folded = fold(k)
            if folded in seen:
                continue
            seen.add(folded)
            yield k


class LayerCake(Layer):
    def __init__(self):
        self.layers = NullLayer

    def push(self, layer):
        self.layers = LinkedLayer(layer, self.layers)

    def get_item(self, key: AnyStr) -> Response:
        return self.layers.get_item(key)

    def keys(self):
        return self.layers.keys()


def layered_config(layers=None):
    return Config(layer_stack(layers or []))


def layer_stack(layers):
    stack = LayerCake()
    for layer in reversed(layers):
        stack.push(layer)
    return stack


def transformed(key, value, transform):
    # noinspection PyBroadException
    try:
        return transform(value)
    except Exception as e:
        raise exceptions.ValueTransformException(key, value, e)


class Config:
    """A section of layered configuration.

    The root section has an empty path. Sections share the layers of the
    config they were taken from, so they always see the same data.
    """

    def __init__(self, layer=None, path=""):
        self.layer = layer or NullLayer
        self.path = path

    @property
    def key(self) -> AnyStr:
        parts = split(self.path)
        return parts[-1] if parts else ""

    @property
    def value(self) -> Optional[Any]:
        if not self.path:
            return None
        return self.layer.get_item(self.path).value

    def __getitem__(self, key: AnyStr) -> Optional[Any]:
        resp = self._get_item(key)
        if resp.is_found:
            return resp.value
        else:
            raise KeyError("key {} not found".format(self.full_key(key)))

    def __contains__(self, key: AnyStr) -> bool:
        resp = self._get_item(key)
        return resp.is_found and resp.value is not None

    def get(self, key: AnyStr, default: Optional[Any] = None, transform=None) -> Optional[Any]:
        resp = self._get_item(key)
        if not resp.is_found or resp.value is None:
            return default
        if transform is None:
            return resp.value
        try:
            return transformed(self.full_key(key), resp.value, transform)
        except exceptions.ValueTransformException as e:
            raise e.as_value_error() from e.exception

    def get_section(self, key: AnyStr) -> "Config":
        return Config(self.layer, self.full_key(key))

    def keys(self):
        """Leaf keys under this section, relative to it."""
        if not self.path:
            yield from self.layer.keys()
            return
        # Compared by segment, casefold can change a key's length.
        path = [fold(s) for s in split(self.path)]
        n = len(path)
        for k in self.layer.keys():
            segments = split(k)
            if len(segments) > n and [fold(s) for s in segments[:n]] == path:
                yield combine(*segments[n:])

    def items(self):
        for k in self.keys():
            yield k, self.layer.get_item(self.full_key(k)).value

    def as_dict(self):
        return dict(self.items())

    def children(self) -> List["Config"]:
        heads = {}
        for k in self.keys():
            head = split(k)[0]
            heads.setdefault(fold(head), head)
        return [self.get_section(head) for head in heads.values()]

    def full_key(self, key: AnyStr) -> AnyStr:
        return combine(self.path, key)

    def _get_item(self, key):
        if not key:
            return Response.not_found
        return self.layer.get_item(self.full_key(key))

    def __repr__(self):
        return "Config(path={!r})".format(self.path)
