"""
Helicity angles of every composite grouping.

For a composite grouping the angles (phi, theta) of its first daughter are
measured in the rest frame of the grouping, with the z axis along the
grouping's direction in the rest frame of its parent. The boost and axes of
each frame are built recursively from the top of the decay tree and kept in an
:class:`EventCache` for the current event.
"""
import threading

import numpy as np

from .angle import LorentzVector, helicity_frame, polar_angles
from .cached_value import RealCachedValue
from .data_accessor import StaticDataAccessor
from .particle_combination import equal_up_and_down


class EventCache(object):
    """
    Capacity-1 cache keyed by a context token (the event being calculated).

    A lookup with a different token drops the stored entries. Both
    :meth:`get_or_compute` and :meth:`invalidate` hold one reentrant lock, so
    the cache may be shared by several consumers and workers, and a value may
    be computed from other entries of the same event.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._token = None
        self._entries = {}

    def get_or_compute(self, token, key, f):
        with self._lock:
            if token is not self._token:
                self._token = token
                self._entries = {}
            if key not in self._entries:
                self._entries[key] = f()
            return self._entries[key]

    def invalidate(self):
        with self._lock:
            self._token = None
            self._entries = {}

    @property
    def token(self):
        return self._token


class HelicityAngles(StaticDataAccessor):
    def __init__(self, four_momenta):
        super().__init__(equal_up_and_down)
        self.four_momenta = four_momenta
        self.depends_on = (four_momenta,)
        self.phi = RealCachedValue(self)
        self.theta = RealCachedValue(self)
        self._frames = EventCache()

    def add_particle_combination(self, pc):
        ret = None
        if not pc.is_final_state():
            ret = super().add_particle_combination(pc)
        for d in pc.daughters:
            self.add_particle_combination(d)
        return ret

    def frame(self, data_point, pc):
        """
        (boost, axes) of the helicity frame of ``pc`` for ``data_point``:
        a 4x4 matrix boosting data-frame momenta into the rest frame of
        ``pc`` and the 3x3 matrix of its x, y, z axes.
        """
        return self._frames.get_or_compute(
            data_point, pc.handle, lambda: self._compute_frame(data_point, pc)
        )

    def _compute_frame(self, data_point, pc):
        P = self.four_momenta.p(data_point, pc)
        if pc.parent is None:
            return LorentzVector.rest_matrix(P), np.eye(3)
        boost, axes = self.frame(data_point, pc.parent)
        p = boost @ P
        new_axes = helicity_frame(p, axes)
        return LorentzVector.rest_matrix(p) @ boost, new_axes

    def calculate(self, data_point, status_manager):
        for pc, i in self.representatives():
            boost, axes = self.frame(data_point, pc)
            q = boost @ self.four_momenta.p(data_point, pc.daughters[0])
            phi, theta = polar_angles(LorentzVector.vect(q), axes)
            self.phi.set_value(phi, data_point, i, status_manager)
            self.theta.set_value(theta, data_point, i, status_manager)

    def angles(self, data_point, pc):
        i = self.symmetrization_index(pc)
        return self.phi.value(data_point, i), self.theta.value(data_point, i)

    def invalidate(self):
        self._frames.invalidate()
