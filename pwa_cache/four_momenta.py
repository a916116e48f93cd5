"""
Write-once kinematic components: four-momenta and invariant masses of every
grouping, and squared breakup momenta of two-body groupings.
"""
import numpy as np

from .angle import LorentzVector
from .cached_value import FourVectorCachedValue, RealCachedValue
from .data_accessor import StaticDataAccessor
from .particle_combination import (
    equal_by_orderless_content,
    equal_down_by_orderless_content,
)
from .phasespace import get_p2


class FourMomenta(StaticDataAccessor):
    """
    Four-momentum ``P`` and invariant mass ``M`` of every grouping.

    Groupings with the same particle content share one entry. Registering a
    grouping registers its daughters as well.
    """

    def __init__(self):
        super().__init__(equal_by_orderless_content)
        self.P = FourVectorCachedValue(self)
        self.M = RealCachedValue(self, [self.P])

    def add_particle_combination(self, pc):
        ret = super().add_particle_combination(pc)
        for d in pc.daughters:
            self.add_particle_combination(d)
        return ret

    def calculate(self, data_point, status_manager):
        p = data_point.final_state_momenta
        for pc, i in self.representatives():
            P = np.sum(p[list(pc.indices)], axis=0)
            self.P.set_value(P, data_point, i, status_manager)
            self.M.set_value(LorentzVector.M(P), data_point, i, status_manager)

    def p(self, data_point, pc):
        return self.P.value(data_point, self.symmetrization_index(pc))

    def mass(self, data_point, pc):
        return self.M.value(data_point, self.symmetrization_index(pc))


class MeasuredBreakupMomenta(StaticDataAccessor):
    """Squared breakup momentum ``Q2`` of every two-body grouping."""

    def __init__(self, four_momenta):
        super().__init__(equal_down_by_orderless_content)
        self.four_momenta = four_momenta
        self.depends_on = (four_momenta,)
        self.Q2 = RealCachedValue(self)

    def add_particle_combination(self, pc):
        ret = None
        if len(pc.daughters) == 2:
            ret = super().add_particle_combination(pc)
        for d in pc.daughters:
            self.add_particle_combination(d)
        return ret

    def calculate(self, data_point, status_manager):
        fm = self.four_momenta
        for pc, i in self.representatives():
            m = fm.mass(data_point, pc)
            ma = fm.mass(data_point, pc.daughters[0])
            mb = fm.mass(data_point, pc.daughters[1])
            self.Q2.set_value(get_p2(m * m, ma, mb), data_point, i, status_manager)

    def q2(self, data_point, pc):
        return self.Q2.value(data_point, self.symmetrization_index(pc))
