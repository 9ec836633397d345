import configparser
import json
from typing import Any
from typing import AnyStr
from typing import Dict

from vaultconfig import config
from vaultconfig.exceptions import LoadFailure


class MapLayer(config.Layer):
    """A flat mapping of full keys to values."""

    def __init__(self, data=None):
        self.index = {}
        for k, v in (data or {}).items():
            self.index[config.fold(k)] = (k, v)

    def get_item(self, key: AnyStr) -> config.Response:
        try:
            _, v = self.index[config.fold(key)]
        except KeyError:
            return config.Response.not_found
        return config.Response.found(v)

    def keys(self):
        return [k for k, _ in self.index.values()]


def flatten(data: Any, path: AnyStr = "") -> Dict[AnyStr, Any]:
    """Turns nested dicts and lists into a flat map of ':' joined paths."""
    if isinstance(data, dict):
        items = data.items()
    elif isinstance(data, list):
        items = enumerate(data)
    elif path:
        return {path: data}
    else:
        return {}
    flat = {}
    for k, v in items:
        flat.update(flatten(v, config.combine(path, str(k))))
    return flat


class ObjLayer(MapLayer):
    """Nested data such as a parsed JSON document.

    {"Db": {"Hosts": ["a", "b"]}} answers "Db:Hosts:0" and "Db:Hosts:1".
    """

    def __init__(self, data):
        super().__init__(flatten(data))

    @classmethod
    def from_bytes(cls, x, encoding="utf8"):
        try:
            return cls(json.loads(x.decode(encoding)))
        except ValueError as e:
            raise LoadFailure(e)


class IniLayer(MapLayer):
    """Sections become the first path segment: [Db] host -> Db:host."""

    def __init__(self, config_parser: configparser.ConfigParser):
        data = {}
        for section in config_parser.sections():
            for item, value in config_parser[section].items():
                data[config.combine(section, item)] = value
        super().__init__(data)

    @classmethod
    def from_string(cls, x):
        c = configparser.ConfigParser()
        try:
            c.read_string(x)
        except configparser.Error as e:
            raise LoadFailure(e)
        return cls(c)
