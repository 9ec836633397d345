import re
from typing import AnyStr
from typing import Optional
from typing import Set

from vaultconfig import config


expansions_ptrn = re.compile(r"\{([^}]+)}")


def expansions(tmpl: AnyStr) -> Set[AnyStr]:
    return set(expansions_ptrn.findall(tmpl))


def expand(tmpl: AnyStr, cfg: config.Config) -> Optional[AnyStr]:
    """Fills {Key} placeholders in tmpl with values from cfg.

    Returns None if any placeholder has no value.
    """
    t = tmpl
    for exp in expansions(tmpl):
        v = cfg.get(exp)
        if v is None or v == "":
            return None
        t = t.replace('{%s}' % exp, str(v))
    return t
