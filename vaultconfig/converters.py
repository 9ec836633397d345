"""Tools for turning raw source data into usable values.

File sources arrive as bytes and go through one of the obj_from_*
functions; see formats for the chains registered per file type. A JSON
document kept base64 encoded in a secret store reads as:

    ObjLayer(obj_from_json(string_from_bytes(bytes_from_base64(raw))))

convert() is used by the binder to turn configuration strings into the
types declared on the target fields.
"""

import base64
import binascii
import enum
import json
import types
import typing
from typing import Any
from typing import AnyStr

import toml
import yaml

from vaultconfig.exceptions import LoadFailure


try:
    from yaml import CSafeLoader as Loader
except ImportError:
    from yaml import SafeLoader as Loader


def obj_from_json(x: AnyStr) -> Any:
    try:
        return json.loads(x)
    except ValueError as e:
        raise LoadFailure(e)


def obj_from_toml(x: AnyStr) -> Any:
    # noinspection PyBroadException
    try:
        return toml.loads(x)
    except Exception as e:
        raise LoadFailure(e)


def obj_from_yaml(x: AnyStr) -> Any:
    try:
        return yaml.load(x, Loader=Loader)
    except yaml.YAMLError as e:
        raise LoadFailure(e)


def string_from_bytes(x: bytes, encoding='utf8') -> AnyStr:
    try:
        return x.decode(encoding)
    except UnicodeDecodeError as e:
        raise LoadFailure(e)


def bytes_from_base64(x: AnyStr) -> bytes:
    try:
        return base64.b64decode(x, validate=True)
    except binascii.Error:
        raise LoadFailure("characters outside base64")


def bool_from_string(x: Any) -> bool:
    if isinstance(x, bool):
        return x
    s = str(x).strip().lower()
    if s == "true":
        return True
    if s == "false":
        return False
    raise ValueError("{!r} is not a valid boolean".format(x))


def enum_from_string(x: Any, enum_type):
    if isinstance(x, enum_type):
        return x
    try:
        return enum_type[x]
    except KeyError:
        return enum_type(x)


def optional_inner_type(type_):
    """Returns T for Optional[T] or T | None, otherwise None."""
    if typing.get_origin(type_) not in (typing.Union, types.UnionType):
        return None
    args = [a for a in typing.get_args(type_) if a is not type(None)]
    if len(args) != 1:
        return None
    return args[0]


def convert(value: Any, type_) -> Any:
    """Converts a scalar configuration value to type_.

    Values which already have the right type are returned unchanged, as
    are values for annotations that are not plain classes.
    """
    if value is None or type_ is Any:
        return value
    inner = optional_inner_type(type_)
    if inner is not None:
        return convert(value, inner)
    if type_ is bool:
        return bool_from_string(value)
    if not isinstance(type_, type):
        return value
    if issubclass(type_, enum.Enum):
        return enum_from_string(value, type_)
    if isinstance(value, type_) and not isinstance(value, bool):
        return value
    return type_(value)
