"""
Symbolic line shapes, lambdified to numpy by the mass shapes.
"""
import sympy

# coefficients of z^0, z^1, ... per orbital angular momentum
_BARRIER = {
    0: (1,),
    1: (1, 1),
    2: (9, 3, 1),
    3: (225, 45, 6, 1),
    4: (11025, 1575, 135, 10, 1),
}


def Bprime_polynomial(l, z):
    """Blatt-Weisskopf polynomial of ``z = (q d)^2``."""
    l = int(round(l))
    if l not in _BARRIER:
        raise NotImplementedError("barrier factor for l = {}".format(l))
    return sum(c * z**i for i, c in enumerate(_BARRIER[l]))


def _breakup_momentum(m, m1, m2):
    return sympy.sqrt((m**2 - (m1 + m2) ** 2) * (m**2 - (m1 - m2) ** 2)) / (2 * m)


def BW_dom(m, m0, g0):
    return m0**2 - m**2 - sympy.I * m0 * g0


def BWR_dom(m, m0, g0, l, m1, m2, d=3.0):
    """Breit-Wigner denominator with the width running with the breakup momentum into ``m1 m2``."""
    q = _breakup_momentum(m, m1, m2)
    q0 = _breakup_momentum(m0, m1, m2)
    barrier = Bprime_polynomial(l, (q0 * d) ** 2) / Bprime_polynomial(l, (q * d) ** 2)
    width = g0 * (q / q0) ** (2 * l + 1) * (m0 / m) * barrier
    return m0**2 - m**2 - sympy.I * m0 * width


def create_function(expr, var):
    """numpy function of ``var`` (list of symbols) evaluating ``expr``."""
    return sympy.lambdify(var, expr, "numpy")
