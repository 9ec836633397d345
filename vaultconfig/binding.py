"""Binding configuration and secrets onto dataclasses.

Fields that should come from a secret store are declared with
secret_field():

    @dataclasses.dataclass
    class DbSettings:
        host: str = "localhost"
        port: int = 5432
        password: str = secret_field("db-password", default="")

    settings = bind(DbSettings, cfg, "Db")

bind() fills host and port from the "Db" section of cfg, then fetches
db-password from Key Vault and assigns it to password. Types that cannot
be annotated get the same treatment through a manual mapping:

    settings = bind(ThirdPartySettings, cfg, "Db", mappings={"password": "db-password"})

"""

import dataclasses
import logging
import typing
from typing import Any
from typing import AnyStr
from typing import Dict
from typing import List
from typing import Mapping
from typing import NamedTuple
from typing import Optional

from vaultconfig import builders
from vaultconfig import config
from vaultconfig import converters
from vaultconfig import exceptions
from vaultconfig import keyvault


logger = logging.getLogger(__name__)


SECRET_NAME = "vaultconfig.secret_name"


def secret_field(secret_name: AnyStr, **kwargs):
    """A dataclasses.field() whose value is the secret named secret_name."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[SECRET_NAME] = secret_name
    return dataclasses.field(metadata=metadata, **kwargs)


class SecretMapping(NamedTuple):
    field: AnyStr
    secret_name: AnyStr


def field_types(cls) -> Dict[AnyStr, Any]:
    hints = typing.get_type_hints(cls)
    if dataclasses.is_dataclass(cls):
        return {f.name: hints.get(f.name, Any) for f in dataclasses.fields(cls)}
    return {k: v for k, v in hints.items() if typing.get_origin(v) is not typing.ClassVar}


def secret_mappings(cls) -> List[SecretMapping]:
    if not dataclasses.is_dataclass(cls):
        return []
    return [
        SecretMapping(f.name, f.metadata[SECRET_NAME])
        for f in dataclasses.fields(cls)
        if SECRET_NAME in f.metadata
    ]


def manual_mappings(cls, mappings: Optional[Mapping[AnyStr, AnyStr]]) -> List[SecretMapping]:
    if not mappings:
        return []
    names = field_types(cls)
    result = []
    for field, secret_name in mappings.items():
        if field not in names and not hasattr(cls, field):
            raise ValueError("{} has no field {!r}".format(cls.__name__, field))
        result.append(SecretMapping(field, secret_name))
    return result


def match_name(name: AnyStr) -> AnyStr:
    return config.fold(name.replace("_", ""))


def bind_object(obj, section: config.Config):
    """Sets the fields of obj found in section; the others are untouched.

    Keys match field names regardless of case and underscores, so
    "DbPassword", "dbpassword" and "db_password" all set db_password.
    """
    children = {match_name(c.key): c for c in section.children()}
    for name, type_ in field_types(type(obj)).items():
        child = children.get(match_name(name))
        if child is None:
            continue
        setattr(obj, name, bind_value(child, type_, getattr(obj, name, None)))
    return obj


def index_order(section: config.Config):
    key = section.key
    if key.isdigit():
        return 0, int(key), key
    return 1, 0, key


def bind_value(section: config.Config, type_, current=None):
    inner = converters.optional_inner_type(type_)
    if inner is not None:
        type_ = inner
    origin = typing.get_origin(type_) or type_
    args = typing.get_args(type_)

    if dataclasses.is_dataclass(type_):
        return bind_object(current if current is not None else type_(), section)
    if origin is list:
        item_type = args[0] if args else Any
        return [bind_value(c, item_type) for c in sorted(section.children(), key=index_order)]
    if origin is dict:
        value_type = args[1] if len(args) == 2 else Any
        return {c.key: bind_value(c, value_type) for c in section.children()}

    value = section.value
    if value is None:
        return current
    try:
        return converters.convert(value, type_)
    except (TypeError, ValueError) as e:
        raise exceptions.ValueTransformException(section.path, value, e)


def bind(
        cls,
        cfg: config.Config,
        section: Optional[AnyStr] = None,
        mappings: Optional[Mapping[AnyStr, AnyStr]] = None,
        *,
        builder: Optional[builders.ConfigBuilder] = None,
        fetcher=None,
        suppress_not_found=True,
):
    """Creates a cls, binds it from section of cfg and fills in its secrets.

    The secrets are those named by secret_field() annotations on cls plus
    mappings, a map of field name to secret name. When there are none,
    nothing is fetched. Otherwise a second configuration view is composed
    from builder (the default sources when not given) and the fetched
    secrets, and each mapped field whose secret is found is set from it.

    fetcher selects the secret store; without one the Key Vault named in
    the configuration is used.
    """
    if cfg is None:
        raise ValueError("configuration must be set")
    obj = cls()
    try:
        if section and section.strip():
            bind_object(obj, cfg.get_section(section))

        all_mappings = list(dict.fromkeys(secret_mappings(cls) + manual_mappings(cls, mappings)))
        if not all_mappings:
            return obj

        load_secrets(obj, all_mappings, builder=builder, fetcher=fetcher, suppress_not_found=suppress_not_found)
    except exceptions.ValueTransformException as e:
        raise e.as_value_error() from e.exception
    return obj


def load_secrets(obj, mappings: List[SecretMapping], builder=None, fetcher=None, suppress_not_found=True):
    if builder is None:
        builder = builders.use_default_configs(builders.ConfigBuilder())
    names = list(dict.fromkeys(m.secret_name for m in mappings))
    logger.debug(f"Loading {len(names)} secrets for {type(obj).__name__}")
    if fetcher is None:
        keyvault.add_key_vault_secrets(builder, names, suppress_not_found=suppress_not_found)
    else:
        builder.add_secrets(fetcher, names, suppress_not_found=suppress_not_found)
    secrets = builder.build()

    types = field_types(type(obj))
    for mapping in mappings:
        value = secrets.get(mapping.secret_name)
        if value is None:
            continue
        converted = config.transformed(
            mapping.secret_name, value, lambda v: converters.convert(v, types.get(mapping.field, Any)))
        setattr(obj, mapping.field, converted)
    return obj
