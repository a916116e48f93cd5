"""
Typed views into per-event storage.

A cached value (a slot) occupies ``size`` consecutive reals in the storage row
of its owner at a given symmetrization index::

    data_point.storage[owner.index][symmetrization_index][position:position + size]

Each slot knows its dependencies: parameters, other slots of the same or of a
different component, and slots of a daughter grouping. Its calculation status
is derived from its own stored status and one hop over those dependencies.
"""
import numpy as np

from .exceptions import ConfigurationError, IndexOutOfRange, LockedError
from .parameter import Parameter
from .status import CalculationStatus, VariableStatus


class DaughterCachedValue(object):
    """Dependency on ``cached_value`` evaluated for daughter ``daughter`` of the grouping."""

    def __init__(self, cached_value, daughter):
        self.cached_value = cached_value
        self.daughter = int(daughter)

    def __repr__(self):
        return "DaughterCachedValue({!r}, {})".format(
            self.cached_value, self.daughter
        )


class CachedValue(object):
    size = None

    def __init__(self, owner, dependencies=()):
        self.owner = owner
        self.index = None
        self.position = None
        self.parameter_dependencies = []
        self.cached_value_dependencies = []
        self.daughter_cached_value_dependencies = []
        owner.add_cached_value(self)
        for dep in dependencies:
            self.add_dependency(dep)

    @classmethod
    def create(cls, owner, dependencies=()):
        return cls(owner, dependencies)

    def add_dependency(self, dep):
        if self.owner.locked:
            raise LockedError(
                "cannot add dependency {!r} after lock".format(dep)
            )
        if isinstance(dep, Parameter):
            if dep not in self.parameter_dependencies:
                self.parameter_dependencies.append(dep)
        elif isinstance(dep, DaughterCachedValue):
            if dep.daughter < 0:
                raise ConfigurationError(
                    "negative daughter index in {!r}".format(dep)
                )
            self.daughter_cached_value_dependencies.append(dep)
        elif isinstance(dep, CachedValue):
            if dep is self:
                raise ConfigurationError("{!r} cannot depend on itself".format(self))
            if dep not in self.cached_value_dependencies:
                self.cached_value_dependencies.append(dep)
        else:
            raise ConfigurationError(
                "unsupported dependency type {}".format(type(dep).__name__)
            )

    def _row(self, data_point, symmetrization_index):
        da = self.owner.index
        if da is None:
            raise ConfigurationError(
                "{!r} has no storage index; lock the model first".format(self.owner)
            )
        storage = data_point.storage
        if da >= len(storage):
            raise IndexOutOfRange(
                "component index {} out of range {}".format(da, len(storage))
            )
        row = storage[da]
        if not 0 <= symmetrization_index < row.shape[0]:
            raise IndexOutOfRange(
                "symmetrization index {} out of range {} for {!r}".format(
                    symmetrization_index, row.shape[0], self.owner
                )
            )
        if self.position + self.size > row.shape[1]:
            raise IndexOutOfRange(
                "slot {} of {!r} is outside of the storage row".format(
                    self.index, self.owner
                )
            )
        return row[symmetrization_index]

    def _encode(self, value):
        return np.reshape(np.asarray(value, dtype=np.float64), (self.size,))

    def _decode(self, reals):
        raise NotImplementedError

    def value(self, data_point, symmetrization_index):
        row = self._row(data_point, symmetrization_index)
        return self._decode(row[self.position : self.position + self.size])

    def set_value(self, value, data_point, symmetrization_index, status_manager=None):
        """
        Write ``value``. With a status manager, the variable status becomes
        ``changed`` if the stored value differed, and the calculation status
        becomes ``calculated``.
        """
        row = self._row(data_point, symmetrization_index)
        new = self._encode(value)
        sl = slice(self.position, self.position + self.size)
        if status_manager is None:
            row[sl] = new
            return
        if not np.array_equal(row[sl], new):
            row[sl] = new
            status_manager.set_variable_status(
                self, symmetrization_index, VariableStatus.changed
            )
        status_manager.set_calculation_status(
            self, symmetrization_index, CalculationStatus.calculated
        )

    def set_component(self, i, value, data_point, symmetrization_index):
        """Write one real of the value. Statuses are left to the caller."""
        if not 0 <= i < self.size:
            raise IndexOutOfRange(
                "component {} out of range {}".format(i, self.size)
            )
        row = self._row(data_point, symmetrization_index)
        row[self.position + i] = value

    def _dependency_index(self, cached_value, pc, symmetrization_index):
        if cached_value.owner is self.owner:
            return symmetrization_index
        return cached_value.owner.symmetrization_index(pc)

    def calculation_status(self, status_manager, pc, symmetrization_index):
        """
        Stored status if already uncalculated; otherwise check the direct
        dependencies once and flip to uncalculated if any of them changed.
        """
        sm = status_manager
        if (
            sm.calculation_status(self, symmetrization_index)
            == CalculationStatus.uncalculated
        ):
            return CalculationStatus.uncalculated
        for p in self.parameter_dependencies:
            if p.variable_status == VariableStatus.changed:
                return self._invalidate(sm, symmetrization_index)
        for cv in self.cached_value_dependencies:
            idx = self._dependency_index(cv, pc, symmetrization_index)
            if self._dependency_changed(sm, cv, idx):
                return self._invalidate(sm, symmetrization_index)
        for dep in self.daughter_cached_value_dependencies:
            if dep.daughter >= len(pc.daughters):
                raise ConfigurationError(
                    "{!r} has no daughter {}".format(pc, dep.daughter)
                )
            cv = dep.cached_value
            idx = cv.owner.symmetrization_index(pc.daughters[dep.daughter])
            if self._dependency_changed(sm, cv, idx):
                return self._invalidate(sm, symmetrization_index)
        return CalculationStatus.calculated

    @staticmethod
    def _dependency_changed(sm, cv, idx):
        return (
            sm.calculation_status(cv, idx) == CalculationStatus.uncalculated
            or sm.variable_status(cv, idx) == VariableStatus.changed
        )

    def _invalidate(self, sm, symmetrization_index):
        sm.set_calculation_status(
            self, symmetrization_index, CalculationStatus.uncalculated
        )
        return CalculationStatus.uncalculated

    def variable_status(self, status_manager, symmetrization_index):
        return status_manager.variable_status(self, symmetrization_index)

    def set_calculation_status(self, status_manager, status):
        status_manager.set(self, CalculationStatus(status))

    def set_variable_status(self, status_manager, status):
        status_manager.set(self, VariableStatus(status))

    def __repr__(self):
        return "{}({!r}[{}])".format(type(self).__name__, self.owner, self.index)


class RealCachedValue(CachedValue):
    size = 1

    def _decode(self, reals):
        return float(reals[0])


class ComplexCachedValue(CachedValue):
    size = 2

    def _encode(self, value):
        value = complex(value)
        return np.array([value.real, value.imag], dtype=np.float64)

    def _decode(self, reals):
        return complex(reals[0], reals[1])


class FourVectorCachedValue(CachedValue):
    """(E, px, py, pz)"""

    size = 4

    def _decode(self, reals):
        return np.array(reals, dtype=np.float64)


SLOT_KINDS = {
    "real": RealCachedValue,
    "complex": ComplexCachedValue,
    "four_vector": FourVectorCachedValue,
}
