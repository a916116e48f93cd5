"""
This module implements helpers for 3-vectors **Vector3** and four-vectors **LorentzVector** (T,X,Y,Z) on numpy arrays.
"""
import numpy as np

_epsilon = 1.0e-14


class Vector3(object):
    """
    This class provides methods for 3-d vectors (X,Y,Z)
    """

    @staticmethod
    def norm2(v):
        """
        The norm square
        """
        return np.sum(v * v, axis=-1)

    @staticmethod
    def norm(v):
        return np.sqrt(Vector3.norm2(v))

    @staticmethod
    def dot(v, other):
        return np.sum(v * other, axis=-1)

    @staticmethod
    def unit(v):
        n = Vector3.norm(v)
        if n < _epsilon:
            return np.zeros_like(v)
        return v / n

    @staticmethod
    def cross_unit(v, other, fallback=None):
        """
        The unit vector of the cross product with another vector. If the two
        vectors are parallel, **fallback** is returned.
        """
        cro = np.cross(v, other)
        n = Vector3.norm(cro)
        if n < _epsilon:
            if fallback is None:
                raise ValueError("parallel vectors have no cross product direction")
            return fallback
        return cro / n

    @staticmethod
    def angle_from(v, x, y):
        """
        The angle from x-axis providing the x,y axis to define a 3-d coordinate.

        :param x: x-axis
        :param y: y-axis. It should be perpendicular to the x-axis.
        """
        return np.arctan2(Vector3.dot(v, y), Vector3.dot(v, x))

    @staticmethod
    def cos_theta(v, other):
        """
        cos theta of included angle
        """
        return Vector3.dot(v, other) / Vector3.norm(v) / Vector3.norm(other)


class LorentzVector(object):
    """
    This class provides methods for Lorentz vectors (T,X,Y,Z). The metric is (1,-1,-1,-1).
    """

    metric = np.array([1.0, -1.0, -1.0, -1.0])

    @staticmethod
    def vect(p):
        return p[..., 1:4]

    @staticmethod
    def M2(p):
        """
        The invariant mass squared
        """
        return np.sum(p * p * LorentzVector.metric, axis=-1)

    @staticmethod
    def M(p):
        """
        The invariant mass
        """
        return np.sqrt(np.abs(LorentzVector.M2(p)))

    @staticmethod
    def boost_vector(p):
        """
        :math:`\\beta=(X,Y,Z)/T`
        """
        return p[..., 1:4] / p[..., 0:1]

    @staticmethod
    def boost_matrix(beta):
        """
        4x4 matrix boosting four-vectors by the velocity **beta**.
        """
        beta = np.asarray(beta, dtype=np.float64)
        beta2 = Vector3.norm2(beta)
        if beta2 >= 1.0:
            raise ValueError("boost velocity {} is not below 1".format(beta))
        gamma = 1.0 / np.sqrt(1.0 - beta2)
        gamma2 = (gamma - 1.0) / beta2 if beta2 > _epsilon else 0.0
        ret = np.empty((4, 4))
        ret[0, 0] = gamma
        ret[0, 1:] = gamma * beta
        ret[1:, 0] = gamma * beta
        ret[1:, 1:] = np.eye(3) + gamma2 * np.outer(beta, beta)
        return ret

    @staticmethod
    def boost(p, beta):
        """
        Boost the Lorentz vector **p** into the frame indicated by the 3-d vector **beta**.
        """
        return LorentzVector.boost_matrix(beta) @ p

    @staticmethod
    def rest_matrix(p):
        """
        Matrix boosting four-vectors into the rest frame of **p**.
        """
        return LorentzVector.boost_matrix(-LorentzVector.boost_vector(p))

    @staticmethod
    def rest_vector(p, other):
        """
        Boost another Lorentz vector into the rest frame of **p**.
        """
        return LorentzVector.rest_matrix(p) @ other


def helicity_frame(p, axes):
    """
    Coordinate axes of the helicity frame of a particle with momentum **p**
    (in the rest frame of its parent), given the parent axes.

    :param p: four-momentum in the rest frame of the parent
    :param axes: 3x3 array, rows are the parent x, y, z axes
    :return: 3x3 array of the new x, y, z axes
    """
    z = Vector3.unit(LorentzVector.vect(p))
    if Vector3.norm2(z) < _epsilon:
        return np.array(axes)
    y = Vector3.cross_unit(axes[2], z, fallback=axes[1])
    x = np.cross(y, z)
    return np.stack([x, y, z])


def polar_angles(v, axes):
    """
    (phi, theta) of the 3-vector **v** in the coordinate system **axes**.
    """
    n = Vector3.norm(v)
    if n < _epsilon:
        return 0.0, 0.0
    cos_theta = np.clip(Vector3.dot(v, axes[2]) / n, -1.0, 1.0)
    phi = Vector3.angle_from(v, axes[0], axes[1])
    return float(phi), float(np.arccos(cos_theta))


def kine_min_max(s12, m0, m1, m2, m3):
    """min max s23 for s12 in p0 -> p1 p2 p3"""
    m12 = np.sqrt(s12)
    E2st = 0.5 * (m12 * m12 - m1 * m1 + m2 * m2) / m12
    E3st = 0.5 * (m0 * m0 - m12 * m12 - m3 * m3) / m12
    p2st = np.sqrt(np.abs(E2st * E2st - m2 * m2))
    p3st = np.sqrt(np.abs(E3st * E3st - m3 * m3))
    s_min = (E2st + E3st) ** 2 - (p2st + p3st) ** 2
    s_max = (E2st + E3st) ** 2 - (p2st - p3st) ** 2
    return s_min, s_max
