"""
Model and fit parameters.

A parameter carries its value and a :class:`~pwa_cache.status.VariableStatus`.
Writing a different value marks it ``changed``, so that every cached value that
depends on it is recalculated in the next pass. The orchestrator resets the flag
to ``unchanged`` once a pass has been completed.
"""
import logging
import warnings

import numpy as np

from .exceptions import ConfigurationError, ParameterIsFixed
from .status import VariableStatus

logger = logging.getLogger(__name__)


class Parameter(object):
    """Base class of real and complex parameters."""

    size = 1

    def __init__(self, value, name=None, fixed=False):
        self.name = name
        self._value = self._convert(value)
        self._variable_status = VariableStatus.changed
        if fixed:
            self.fix()

    def _convert(self, value):
        return value

    @property
    def value(self):
        return self._value

    def set_value(self, value):
        """
        Set a new value; the status is set to ``changed`` only if the value differs.
        """
        if self._variable_status == VariableStatus.fixed:
            raise ParameterIsFixed("{} is fixed".format(self))
        value = self._convert(value)
        if value != self._value:
            self._value = value
            self._variable_status = VariableStatus.changed

    def __call__(self):
        return self._value

    @property
    def variable_status(self):
        return self._variable_status

    @variable_status.setter
    def variable_status(self, status):
        if self._variable_status == VariableStatus.fixed:
            return
        status = VariableStatus(status)
        if status == VariableStatus.fixed:
            raise ConfigurationError("use fix() to fix {}".format(self))
        self._variable_status = status

    @property
    def fixed(self):
        return self._variable_status == VariableStatus.fixed

    def fix(self, value=None):
        """
        Fix the parameter, optionally at ``value``. Cached values depending on
        it are not invalidated, so a new value only reaches the data that is
        still uncalculated.
        """
        if self._variable_status == VariableStatus.fixed:
            warnings.warn("{} is already fixed".format(self))
        if value is not None:
            self._value = self._convert(value)
        self._variable_status = VariableStatus.fixed

    def unfix(self):
        if self._variable_status == VariableStatus.fixed:
            self._variable_status = VariableStatus.changed

    def as_reals(self):
        return [float(self._value)]

    def set_reals(self, vals):
        self.set_value(vals[0])

    def __repr__(self):
        name = self.name if self.name is not None else "_"
        return "{}({}={})".format(type(self).__name__, name, self._value)


class RealParameter(Parameter):
    def _convert(self, value):
        return float(value)


class NonnegativeRealParameter(RealParameter):
    def _convert(self, value):
        value = float(value)
        if value < 0:
            raise ConfigurationError(
                "value {} of {} is negative".format(value, self.name)
            )
        return value


class PositiveRealParameter(RealParameter):
    def _convert(self, value):
        value = float(value)
        if value <= 0:
            raise ConfigurationError(
                "value {} of {} is not positive".format(value, self.name)
            )
        return value


class ComplexParameter(Parameter):
    size = 2

    def _convert(self, value):
        return complex(value)

    def as_reals(self):
        return [self._value.real, self._value.imag]

    def set_reals(self, vals):
        self.set_value(complex(vals[0], vals[1]))

    @property
    def magnitude(self):
        return abs(self._value)

    @property
    def phase(self):
        return float(np.angle(self._value))


def set_values(parameters, values):
    """
    Set the values of a list of parameters from a flat list of reals.

    Complex parameters consume two entries (real, imaginary).
    """
    parameters = list(parameters)
    n = sum(p.size for p in parameters)
    values = list(values)
    if len(values) != n:
        raise ConfigurationError(
            "size mismatch: {} parameters need {} values, {} given".format(
                len(parameters), n, len(values)
            )
        )
    i = 0
    for p in parameters:
        p.set_reals(values[i : i + p.size])
        i += p.size


def variable_status(parameters):
    """
    Combined status of parameters: ``changed`` if any changed, ``fixed`` if all
    are fixed (or there are none), else ``unchanged``.
    """
    ret = VariableStatus.fixed
    for p in parameters:
        if p.variable_status == VariableStatus.changed:
            return VariableStatus.changed
        if p.variable_status == VariableStatus.unchanged:
            ret = VariableStatus.unchanged
    return ret
