"""
Three-body kinematics for event generation.

Points outside of phase space are not errors: :func:`dalitz_point` returns an
empty list and callers reject the trial.
"""
import math
import threading

import numpy as np

from .angle import kine_min_max

_epsilon = 1e-12


def get_p(M, ma, mb):
    """
    Breakup momentum of M -> ma mb, zero below threshold.

    >>> float(get_p(5.0, 3.0, 0.0))
    1.6
    """
    m2 = M * M
    m_p = (ma + mb) ** 2
    m_m = (ma - mb) ** 2
    p2 = (m2 - m_p) * (m2 - m_m)
    p2 = np.where(p2 <= 0, 0.0, p2)
    return np.sqrt(p2) / (2.0 * M)


def get_p2(M2, ma, mb):
    """Squared breakup momentum; negative below threshold."""
    return (M2 - (ma + mb) ** 2) * (M2 - (ma - mb) ** 2) / (4.0 * M2)


def dalitz_point(m0, masses, m2_12, m2_23):
    """
    Final-state four-momenta of m0 -> 1 2 3 in the rest frame of m0 for the
    squared masses ``m2_12`` and ``m2_23``. Particle 3 moves along +z and
    particle 1 lies in the x-z plane.

    :return: list of three four-vectors, or ``[]`` outside of phase space.
    """
    m1, m2, m3 = masses
    if m2_12 < (m1 + m2) ** 2 or m2_12 > (m0 - m3) ** 2:
        return []
    s_min, s_max = kine_min_max(m2_12, m0, m1, m2, m3)
    if not s_min <= m2_23 <= s_max:
        return []
    m2_13 = m0 * m0 + m1 * m1 + m2 * m2 + m3 * m3 - m2_12 - m2_23
    E1 = (m0 * m0 + m1 * m1 - m2_23) / (2 * m0)
    E3 = (m0 * m0 + m3 * m3 - m2_12) / (2 * m0)
    p1 = math.sqrt(max(E1 * E1 - m1 * m1, 0.0))
    p3 = math.sqrt(max(E3 * E3 - m3 * m3, 0.0))
    if p1 < _epsilon or p3 < _epsilon:
        return []
    cos13 = (m1 * m1 + m3 * m3 + 2 * E1 * E3 - m2_13) / (2 * p1 * p3)
    if abs(cos13) > 1 + 1e-9:
        return []
    cos13 = min(1.0, max(-1.0, cos13))
    sin13 = math.sqrt(1 - cos13 * cos13)
    P1 = np.array([E1, p1 * sin13, 0.0, p1 * cos13])
    P3 = np.array([E3, 0.0, 0.0, p3])
    P0 = np.array([m0, 0.0, 0.0, 0.0])
    P2 = P0 - P1 - P3
    return [P1, P2, P3]


def random_rotation(rng):
    """Uniformly distributed 3x3 rotation matrix."""
    alpha, gamma = rng.uniform(-math.pi, math.pi, 2)
    beta = math.acos(rng.uniform(-1.0, 1.0))

    def rz(a):
        c, s = math.cos(a), math.sin(a)
        return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])

    c, s = math.cos(beta), math.sin(beta)
    ry = np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])
    return rz(alpha) @ ry @ rz(gamma)


class PhaseSpaceGenerator(object):
    """
    Flat Dalitz-plot generator for m0 -> 1 2 3.

    Each call draws one trial point uniformly in the (m2_12, m2_23) box and
    returns the randomly oriented four-momenta, or ``[]`` if the trial falls
    outside of phase space. Calls are serialized, so one generator may be
    shared by several workers.
    """

    def __init__(self, m0, masses, seed=None):
        if len(masses) != 3:
            raise ValueError("only three-body final states are supported")
        if m0 <= sum(masses):
            raise ValueError("{} is below threshold {}".format(m0, sum(masses)))
        self.m0 = m0
        self.masses = list(masses)
        m1, m2, m3 = masses
        self.range_12 = ((m1 + m2) ** 2, (m0 - m3) ** 2)
        self.range_23 = ((m2 + m3) ** 2, (m0 - m1) ** 2)
        self.rng = np.random.default_rng(seed)
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            m2_12 = self.rng.uniform(*self.range_12)
            m2_23 = self.rng.uniform(*self.range_23)
            rot = random_rotation(self.rng)
        p = dalitz_point(self.m0, self.masses, m2_12, m2_23)
        if not p:
            return p
        ret = []
        for i in p:
            q = i.copy()
            q[1:] = rot @ i[1:]
            ret.append(q)
        return ret

    def generate(self, n_iter):
        """
        generate `n_iter` accepted events

        :return: list of events, each a list of three four-vectors
        """
        ret = []
        while len(ret) < n_iter:
            p = self()
            if p:
                ret.append(p)
        return ret
