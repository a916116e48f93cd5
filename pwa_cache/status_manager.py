"""
Calculation and variable statuses of every slot in one event or partition context.

The table has shape ``(n_components, max_slots, max_symmetrization_indices)``.
Only the entries that exist for a component (its own slot and index counts)
may be addressed; anything else raises :class:`~pwa_cache.exceptions.IndexOutOfRange`.
"""
import numpy as np

from .cached_value import CachedValue
from .data_accessor import DataAccessor
from .exceptions import ConfigurationError, IndexOutOfRange
from .status import CalculationStatus, Status, VariableStatus


class StatusManager(object):
    def __init__(self, accessors):
        accessors = sorted(accessors, key=lambda a: a.index)
        if [a.index for a in accessors] != list(range(len(accessors))):
            raise ConfigurationError(
                "component indices {} are not dense".format(
                    [a.index for a in accessors]
                )
            )
        self._accessors = accessors
        self._extent = [
            (len(a.cached_values), a.n_symmetrization_indices()) for a in accessors
        ]
        n_cv = max([i for i, _ in self._extent], default=0)
        n_sym = max([j for _, j in self._extent], default=0)
        shape = (len(accessors), n_cv, n_sym)
        self._calculation = np.full(
            shape, int(CalculationStatus.uncalculated), dtype=np.int8
        )
        self._variable = np.full(shape, int(VariableStatus.changed), dtype=np.int8)

    @property
    def shape(self):
        return self._calculation.shape

    def _check(self, da, cv, sym):
        if not 0 <= da < len(self._extent):
            raise IndexOutOfRange(
                "component index {} out of range {}".format(da, len(self._extent))
            )
        n_cv, n_sym = self._extent[da]
        if not 0 <= cv < n_cv:
            raise IndexOutOfRange(
                "slot index {} out of range {} for component {}".format(cv, n_cv, da)
            )
        if not 0 <= sym < n_sym:
            raise IndexOutOfRange(
                "symmetrization index {} out of range {} for component {}".format(
                    sym, n_sym, da
                )
            )

    def _locate(self, cached_value, symmetrization_index):
        da = cached_value.owner.index
        if da is None or da >= len(self._accessors) or (
            self._accessors[da] is not cached_value.owner
        ):
            raise IndexOutOfRange(
                "{!r} is not part of this status table".format(cached_value)
            )
        self._check(da, cached_value.index, symmetrization_index)
        return da, cached_value.index, symmetrization_index

    def get(self, da, cv, sym):
        self._check(da, cv, sym)
        return Status(
            int(self._calculation[da, cv, sym]), int(self._variable[da, cv, sym])
        )

    def status(self, cached_value, symmetrization_index):
        """Copy of the status entry of ``cached_value``."""
        return self.get(*self._locate(cached_value, symmetrization_index))

    def calculation_status(self, cached_value, symmetrization_index):
        idx = self._locate(cached_value, symmetrization_index)
        return CalculationStatus(int(self._calculation[idx]))

    def variable_status(self, cached_value, symmetrization_index):
        idx = self._locate(cached_value, symmetrization_index)
        return VariableStatus(int(self._variable[idx]))

    def set_calculation_status(self, cached_value, symmetrization_index, status):
        idx = self._locate(cached_value, symmetrization_index)
        self._calculation[idx] = int(CalculationStatus(status))

    def set_variable_status(self, cached_value, symmetrization_index, status):
        """Set a variable status; a ``fixed`` entry is left unchanged."""
        idx = self._locate(cached_value, symmetrization_index)
        if self._variable[idx] != VariableStatus.fixed:
            self._variable[idx] = int(VariableStatus(status))

    def _block(self, target):
        if isinstance(target, DataAccessor):
            da = target.index
            if da is None or da >= len(self._accessors) or (
                self._accessors[da] is not target
            ):
                raise IndexOutOfRange(
                    "{!r} is not part of this status table".format(target)
                )
            n_cv, n_sym = self._extent[da]
            return (da, slice(0, n_cv), slice(0, n_sym))
        if isinstance(target, CachedValue):
            da, cv, _ = self._locate(target, 0)
            return (da, cv, slice(0, self._extent[da][1]))
        raise ConfigurationError(
            "cannot set status of {}".format(type(target).__name__)
        )

    @staticmethod
    def _assign(calculation, variable, block, status):
        if isinstance(status, CalculationStatus):
            calculation[block] = int(status)
        elif isinstance(status, VariableStatus):
            view = variable[block]
            view[view != VariableStatus.fixed] = int(status)
        else:
            raise ConfigurationError("unknown status {!r}".format(status))

    def set(self, target, status):
        """
        Set ``status`` (calculation or variable) for every symmetrization index
        of a component or of a single slot.
        """
        self._assign(self._calculation, self._variable, self._block(target), status)

    def set_all(self, status):
        self._assign(
            self._calculation,
            self._variable,
            (slice(None), slice(None), slice(None)),
            status,
        )

    def copy_calculation_statuses(self, other):
        """Copy calculation statuses (not variable statuses) from ``other``."""
        if other._extent != self._extent:
            raise ConfigurationError(
                "status tables have different layouts: {} vs {}".format(
                    other._extent, self._extent
                )
            )
        self._calculation[...] = other._calculation

    def __str__(self):
        lines = []
        for a, (n_cv, n_sym) in zip(self._accessors, self._extent):
            for cv in range(n_cv):
                entries = [str(self.get(a.index, cv, s)) for s in range(n_sym)]
                lines.append("{}[{}]: {}".format(a, cv, " ".join(entries)))
        return "\n".join(lines)
