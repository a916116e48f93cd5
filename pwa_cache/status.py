"""
Calculation and variable statuses of cached values and parameters.
"""
import enum


class CalculationStatus(enum.IntEnum):
    """Whether a cached value is valid for the current event and parameters."""

    uncalculated = 0
    calculated = 1


class VariableStatus(enum.IntEnum):
    """Whether a parameter or cached value changed since the last pass."""

    changed = -1
    fixed = 0
    unchanged = 1


class Status(object):
    """
    Status entry of one (component, slot, symmetrization index) triple.

    Assigning a variable status never overwrites ``fixed``.
    """

    __slots__ = ("calculation", "_variable")

    def __init__(
        self,
        calculation=CalculationStatus.uncalculated,
        variable=VariableStatus.changed,
    ):
        self.calculation = CalculationStatus(calculation)
        self._variable = VariableStatus(variable)

    @property
    def variable(self):
        return self._variable

    @variable.setter
    def variable(self, value):
        if self._variable != VariableStatus.fixed:
            self._variable = VariableStatus(value)

    def __eq__(self, other):
        if not isinstance(other, Status):
            return NotImplemented
        return (self.calculation, self._variable) == (
            other.calculation,
            other._variable,
        )

    def __repr__(self):
        return "({}, {})".format(self.calculation.name, self._variable.name)
