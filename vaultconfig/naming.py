"""Translating secret store key names into configuration paths.

Secret stores such as Key Vault only allow letters, digits and dashes in
names, so "--" stands for the path separator and single dashes stand in
for punctuation a property name would not have. A flat secret called
"Db--Connection-String" is registered under both "Db:Connection-String"
and the condensed "Db:ConnectionString", so it binds whichever spelling
the target uses.
"""

from typing import AnyStr
from typing import Dict
from typing import Optional

from vaultconfig import binding
from vaultconfig import config
from vaultconfig import exceptions
from vaultconfig import statics


KEY_VAULT_SEPARATOR = "--"
BASE_SECTION = "base"


def hierarchical_key(raw: AnyStr) -> AnyStr:
    return raw.replace(KEY_VAULT_SEPARATOR, config.SEPARATOR)


def condensed_key(key: AnyStr) -> Optional[AnyStr]:
    """The key with its dashes removed, or None when it has none."""
    parts = key.split("-")
    if len(parts) < 2:
        return None
    return "".join(parts)


def normalized_items(cfg: config.Config, base: AnyStr = BASE_SECTION) -> Dict[AnyStr, AnyStr]:
    """Root values of cfg, keyed by their normalized paths under base.

    Every value is registered under its hierarchical key, and dashed keys
    also under their condensed alias. A real key always beats an alias
    that happens to spell the same path.
    """
    aliases = {}
    keys = {}
    for child in cfg.children():
        value = child.value
        if value is None:
            continue
        key = hierarchical_key(child.key)
        alias = condensed_key(key)
        if alias is not None:
            aliases[config.combine(base, alias)] = value
        keys[config.combine(base, key)] = value

    items = {}
    real = {config.fold(k) for k in keys}
    for k, v in aliases.items():
        if config.fold(k) not in real:
            items[k] = v
    items.update(keys)
    return items


def normalized_config(cfg: config.Config, base: AnyStr = BASE_SECTION) -> config.Config:
    return config.layered_config([statics.MapLayer(normalized_items(cfg, base))]).get_section(base)


def bind_base_section(cls, cfg: config.Config):
    """Binds the root values of cfg to a new cls, normalizing the keys first.

    "My-Key-1" binds to a field named MyKey1 (or my_key1), and
    "Db--Password" to the password field of a nested Db dataclass.
    """
    if cfg is None:
        raise ValueError("Configuration must be set")
    try:
        return binding.bind_object(cls(), normalized_config(cfg))
    except exceptions.ValueTransformException as e:
        raise e.as_value_error() from e.exception
