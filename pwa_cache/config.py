"""
Process-wide settings.

A setting is registered once with its default and then read or changed by
name; unknown names raise :class:`~pwa_cache.exceptions.ConfigurationError`::

    >>> with temp_config("n_partitions", 4):
    ...     get_config("n_partitions")
    4

"""
from contextlib import contextmanager

from .exceptions import ConfigurationError


class ConfigManager(object):
    """Named settings together with their registered defaults."""

    def __init__(self, default=None):
        self._values = dict(default or {})
        self._defaults = dict(self._values)

    def __contains__(self, name):
        return name in self._values

    def _check(self, name):
        if name not in self._values:
            raise ConfigurationError("no setting named {}".format(name))

    def set(self, name, value):
        self._check(name)
        self._values[name] = value

    def get(self, name, default=None):
        if name not in self._values and default is not None:
            return default
        self._check(name)
        return self._values[name]

    def regist(self, name, value=None):
        """
        Register ``name`` with default ``value``. Without a value this
        returns a decorator that registers the decorated function.
        """
        if name in self._values:
            raise ConfigurationError("setting {} is already registered".format(name))

        def add(v):
            self._values[name] = self._defaults[name] = v
            return v

        if value is None:
            return add
        return add(value)

    def reset(self, name=None):
        """Restore the default of ``name``, or of every setting."""
        for i in list(self._values) if name is None else [name]:
            self._check(i)
            self._values[i] = self._defaults[i]

    @contextmanager
    def temp(self, name, value):
        old = self.get(name)
        self.set(name, value)
        try:
            yield value
        finally:
            self.set(name, old)


def create_config(default=None):
    """``(set, get, regist)`` functions of a new :class:`ConfigManager`."""
    manager = ConfigManager(default)
    return manager.set, manager.get, manager.regist


_config = ConfigManager(
    {
        "dtype": "float64",
        "complex_dtype": "complex128",
        "partition_mode": "block",
        "n_partitions": 1,
        "max_workers": None,
    }
)

set_config = _config.set
get_config = _config.get
regist_config = _config.regist
reset_config = _config.reset
temp_config = _config.temp
