"""
This module provides some functions that may be useful in other modules.
"""
import functools
import json
import logging
import math
import time

import yaml

logger = logging.getLogger(__name__)


def _load_json_file(name):
    with open(name) as f:
        return json.load(f)


def _load_yaml_file(name):
    with open(name) as f:
        return yaml.load(f, Loader=yaml.FullLoader)


def load_config_file(name):
    """
    Load a model description file.

    :param name: File name. Either yml file or json file.
    :return: Dictionary read from the file.
    """
    if name.endswith("json"):
        return _load_json_file(name)
    if name.endswith("yml") or name.endswith("yaml"):
        return _load_yaml_file(name)
    return _load_yaml_file(name + ".yml")


def std_polar(rho, phi):
    """
    To standardize a polar variable. By standard form, it means :math:`\\rho>0, -\\pi<\\phi<\\pi`.

    >>> std_polar(-1.0, 0.0)
    (1.0, 3.141592653589793)

    :param rho: Real number
    :param phi: Real number
    :return: ``rho``, ``phi``
    """
    if rho < 0:
        rho = -rho
        phi += math.pi
    while phi < -math.pi:
        phi += 2 * math.pi
    while phi > math.pi:
        phi -= 2 * math.pi
    return rho, phi


def polar_to_complex(rho, phi):
    """
    >>> polar_to_complex(2.0, 0.0)
    (2+0j)
    """
    return complex(rho * math.cos(phi), rho * math.sin(phi))


def split_range(size, n):
    """
    Split ``range(size)`` into ``n`` contiguous (start, stop) pairs of nearly equal length.

    >>> split_range(10, 3)
    [(0, 4), (4, 7), (7, 10)]

    """
    n = max(1, min(n, size)) if size > 0 else 1
    base, extra = divmod(size, n)
    ret = []
    start = 0
    for i in range(n):
        stop = start + base + (1 if i < extra else 0)
        ret.append((start, stop))
        start = stop
    return ret


def time_print(f):
    """It provides a wrapper to log the time cost on a process."""

    @functools.wraps(f)
    def g(*args, **kwargs):
        now = time.time()
        ret = f(*args, **kwargs)
        logger.info("%s cost time: %s", f.__name__, time.time() - now)
        return ret

    return g


def tuple_table(fit_frac):
    """
    Square table from a dict with names and name-pair tuples as keys.

    >>> tuple_table({"a": 0.2, "b": 0.8, ("b", "a"): 0.0})
    [[None, 'a', 'b'], ['a', 0.2, None], ['b', 0.0, 0.8]]

    """
    names = []
    for i in fit_frac:
        if isinstance(i, str) and i != "sum_diag":
            names.append(i)
    n_items = len(names)
    table = [[None] * (n_items + 1) for i in range(n_items + 1)]

    for k, v in fit_frac.items():
        if isinstance(k, tuple):
            a, b = k
        elif k in names:
            a, b = k, k
        else:
            continue
        table[names.index(a) + 1][names.index(b) + 1] = v

    for i, name in enumerate(names):
        table[i + 1][0] = name
        table[0][i + 1] = name

    return table
