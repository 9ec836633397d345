"""File formats understood by ConfigBuilder.add_file().

Each format is a member of the Format enum, a set of file suffixes and a
layer constructor taking the raw bytes of the file. More can be added at
runtime with register_format().
"""

import pathlib
from typing import AnyStr
from typing import Iterable

import aenum

from vaultconfig import converters
from vaultconfig import statics


@aenum.unique
class Format(aenum.Enum):
    pass


layer_constructor_by_format = {}
format_by_suffix = {}


def register_format(name: AnyStr, suffixes: Iterable[AnyStr], layer_constructor) -> Format:
    if name not in Format.__members__:
        aenum.extend_enum(Format, name, name.lower())
    format = Format[name]
    layer_constructor_by_format[format] = layer_constructor
    for suffix in suffixes:
        format_by_suffix[suffix.lower()] = format
    return format


def format_for_filename(filename) -> Format:
    suffix = pathlib.Path(filename).suffix.lower()
    try:
        return format_by_suffix[suffix]
    except KeyError:
        raise KeyError("suffix %r not known" % suffix)


def layer_constructor_for_filename(filename):
    return layer_constructor_for_format(format_for_filename(filename))


def layer_constructor_for_format(format: Format):
    return layer_constructor_by_format[format]


def obj_layer(parse, encoding='utf8'):
    return lambda x: statics.ObjLayer(parse(converters.string_from_bytes(x, encoding=encoding)))


# appsettings files written on Windows often start with a BOM
register_format("Json", [".json"], obj_layer(converters.obj_from_json, encoding='utf-8-sig'))
register_format("Yaml", [".yaml", ".yml"], obj_layer(converters.obj_from_yaml))
register_format("Toml", [".toml"], obj_layer(converters.obj_from_toml))
register_format(
    "Ini", [".ini"],
    lambda x: statics.IniLayer.from_string(converters.string_from_bytes(x, encoding='utf8')))
