"""
Breit-Wigner line shapes and shapes built from a sympy expression.
"""
import sympy

from ..cached_value import DaughterCachedValue
from ..exceptions import ConfigurationError
from ..formula import BW_dom, BWR_dom, create_function
from .core import MassShape, register_mass_shape

_m, _m0, _g0, _m1, _m2 = sympy.symbols("m m0 g0 m1 m2", positive=True)

_bw = create_function(1 / BW_dom(_m, _m0, _g0), [_m, _m0, _g0])


@register_mass_shape("BW")
class BreitWigner(MassShape):
    r"""
    .. math::
        R(m) = \frac{1}{m_0^2 - m^2 - i m_0 \Gamma_0}

    """

    param_names = ("mass", "width")
    param_defaults = {"width": 0.05}

    def get_amp(self, m, data_point, pc):
        m0, g0 = self.param_values()
        return _bw(m, m0, g0)


@register_mass_shape("BWR")
class RelativisticBreitWigner(MassShape):
    r"""
    Breit-Wigner with mass-dependent width for a decay in orbital angular
    momentum ``l``,

    .. math::
        R(m) = \frac{1}{m_0^2 - m^2 - i m_0 \Gamma(m)}

    .. math::
        \Gamma(m) = \Gamma_0 \left(\frac{q}{q_0}\right)^{2l+1}\frac{m_0}{m} B_{l}'^2(q,q_0,d)

    The daughter masses are read from the four-momenta of the daughters.
    """

    param_names = ("mass", "width")
    param_defaults = {"width": 0.05}

    def __init__(self, name=None, fix=(), l=0, d=3.0, **kwargs):
        super().__init__(name, fix, **kwargs)
        self.l = int(l)
        self.d = d
        self._f = create_function(
            1 / BWR_dom(_m, _m0, _g0, self.l, _m1, _m2, d), [_m, _m0, _g0, _m1, _m2]
        )

    def attach(self, model):
        if self.four_momenta is model.four_momenta:
            return
        super().attach(model)
        for i in range(2):
            self.T.add_dependency(DaughterCachedValue(model.four_momenta.M, i))

    def add_particle_combination(self, pc):
        if len(pc.daughters) != 2:
            raise ConfigurationError(
                "{} needs a two-body grouping, not {}".format(self.name, pc)
            )
        return super().add_particle_combination(pc)

    def valid_for(self, pc):
        return len(pc.daughters) == 2 and super().valid_for(pc)

    def get_amp(self, m, data_point, pc):
        m0, g0 = self.param_values()
        m1 = self.four_momenta.mass(data_point, pc.daughters[0])
        m2 = self.four_momenta.mass(data_point, pc.daughters[1])
        return self._f(m, m0, g0, m1, m2)


@register_mass_shape("expr")
class ExpressionMassShape(MassShape):
    """
    Line shape given as an expression of the invariant mass ``m``. Every other
    symbol is a parameter and needs a value:

    >>> shape = ExpressionMassShape("1/(m0**2 - m**2 - I*m0*g0)", m0=1.0, g0=0.1)
    >>> shape.param_names
    ('g0', 'm0')
    >>> round(float(abs(shape.get_amp(1.0, None, None))), 6)
    10.0

    """

    def __init__(self, expr, name=None, fix=(), **kwargs):
        self.expr = sympy.sympify(expr)
        m = sympy.Symbol("m")
        params = sorted(
            (i for i in self.expr.free_symbols if i.name != "m"), key=lambda x: x.name
        )
        self.param_names = tuple(i.name for i in params)
        super().__init__(name, fix, **kwargs)
        self._f = create_function(self.expr, [m] + params)

    def get_amp(self, m, data_point, pc):
        return self._f(m, *self.param_values())
