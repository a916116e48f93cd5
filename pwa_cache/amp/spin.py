"""
Angular factors of two-body decays of spinless parents.
"""
import numpy as np

from ..cached_value import RealCachedValue
from ..data_accessor import RecalculableDataAccessor
from ..exceptions import ConfigurationError
from ..particle_combination import equal_up_and_down
from .core import SpinAmplitude, register_spin_amplitude


@register_spin_amplitude("unit")
class UnitSpinAmplitude(SpinAmplitude):
    """Constant 1 for every registered grouping; nothing is cached."""

    def __init__(self, name=None):
        super().__init__(name)
        self._pcs = set()

    def add_particle_combination(self, pc):
        self._pcs.add(pc)

    def valid_for(self, pc):
        return pc in self._pcs

    def value(self, data_point, pc):
        return 1.0


@register_spin_amplitude("legendre")
class LegendreSpinAmplitude(SpinAmplitude):
    r"""
    :math:`P_l(\cos\theta)` of the helicity angle of the first daughter, for
    a decay into a spin-``l`` and a spinless particle.
    """

    def __init__(self, l, name=None):
        super().__init__(name)
        if int(l) < 0:
            raise ConfigurationError("negative spin {}".format(l))
        self.l = int(l)
        self._coeff = [0.0] * self.l + [1.0]
        self.data_accessor = RecalculableDataAccessor(
            self._calculate, equal_up_and_down
        )
        self.A = RealCachedValue(self.data_accessor)
        self.helicity_angles = None

    def attach(self, model):
        if self.helicity_angles is model.helicity_angles:
            return
        if self.helicity_angles is not None:
            raise ConfigurationError("{!r} belongs to another model".format(self))
        self.helicity_angles = model.helicity_angles
        self.A.add_dependency(model.helicity_angles.theta)

    def add_particle_combination(self, pc):
        if len(pc.daughters) != 2:
            raise ConfigurationError(
                "{!r} needs a two-body grouping, not {}".format(self, pc)
            )
        return self.data_accessor.add_particle_combination(pc)

    def valid_for(self, pc):
        return len(pc.daughters) == 2 and self.data_accessor.has_particle_combination(
            pc
        )

    def value(self, data_point, pc):
        return self.A.value(data_point, self.data_accessor.symmetrization_index(pc))

    def _calculate(self, data_point, pc, symmetrization_index, status_manager):
        _, theta = self.helicity_angles.angles(data_point, pc)
        value = np.polynomial.legendre.legval(np.cos(theta), self._coeff)
        self.A.set_value(value, data_point, symmetrization_index, status_manager)
