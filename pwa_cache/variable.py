"""
This module implements the mapping between model parameters and the flat
list of real numbers a minimizer works on.
"""
import warnings

import numpy as np
import sympy

from .config import get_config, regist_config
from .exceptions import ConfigurationError, NotFoundError, ParameterIsFixed
from .parameter import ComplexParameter
from .utils import std_polar

regist_config("polar", True)


class ParameterManager(object):
    """
    Named real coordinates of a set of parameters.

    A real parameter named ``x`` is the coordinate ``x``. A complex parameter
    named ``z`` gives two coordinates ``zr`` and ``zi``: magnitude and phase if
    polar, real and imaginary part otherwise. The coordinates of fixed
    parameters are not trainable.

    Values are read from and written to the parameters directly, so the
    parameters keep track of which of them changed.
    """

    def __init__(self, parameters=(), polar=None):
        self.polar = get_config("polar") if polar is None else polar
        self.parameters = {}  # {name: Parameter}
        self.variables = {}  # {coordinate name: (Parameter name, part)}
        self.complex_vars = {}  # {name: polar(bool)}
        self.bnd_dic = {}  # {coordinate name: Bound}
        for p in parameters:
            self.add(p)

    def add(self, parameter, name=None):
        """Add ``parameter`` under ``name`` (its own name by default)."""
        name = parameter.name if name is None else name
        if name is None:
            raise ConfigurationError("{!r} has no name".format(parameter))
        if name in self.parameters:
            if self.parameters[name] is parameter:
                return parameter
            raise ConfigurationError("parameter {} already exists".format(name))
        self.parameters[name] = parameter
        if isinstance(parameter, ComplexParameter):
            self.complex_vars[name] = self.polar
            self.variables[name + "r"] = (name, "r")
            self.variables[name + "i"] = (name, "i")
        else:
            self.variables[name] = (name, None)
        return parameter

    def _param(self, name):
        if name in self.parameters:
            return self.parameters[name]
        if name in self.variables:
            return self.parameters[self.variables[name][0]]
        raise NotFoundError("{} not found".format(name))

    def _read(self, name):
        if name not in self.variables:
            raise NotFoundError("{} not found".format(name))
        pname, part = self.variables[name]
        value = self.parameters[pname].value
        if part is None:
            return float(value)
        if self.complex_vars[pname]:
            return float(abs(value)) if part == "r" else float(np.angle(value))
        return value.real if part == "r" else value.imag

    def _write(self, name, value):
        pname, part = self.variables[name]
        p = self.parameters[pname]
        if part is None:
            new = value
        elif self.complex_vars[pname]:
            rho, phi = abs(p.value), np.angle(p.value)
            if part == "r":
                rho = value
            else:
                phi = value
            rho, phi = std_polar(rho, phi)
            new = complex(rho * np.cos(phi), rho * np.sin(phi))
        elif part == "r":
            new = complex(value, p.value.imag)
        else:
            new = complex(p.value.real, value)
        if p.fixed:
            if not np.isclose(p.value, p._convert(new)):
                raise ParameterIsFixed("{} is fixed".format(name))
            return
        p.set_value(new)

    def get(self, name, val_in_fit=True):
        """
        Value of a real coordinate. If ``val_in_fit`` is True, this is the
        value used in fitting, before its boundary transformation.
        """
        value = self._read(name)
        if val_in_fit and name in self.bnd_dic:
            return self.bnd_dic[name].get_y2x(value)
        return value

    def set(self, name, value, val_in_fit=True):
        """
        Set a real coordinate. If ``val_in_fit`` is True, ``value`` is the
        value used in fitting and its boundary transformation is applied.
        """
        if name not in self.variables:
            warnings.warn("{} not found".format(name))
            return
        if val_in_fit and name in self.bnd_dic:
            value = self.bnd_dic[name].get_x2y(value)
        self._write(name, value)

    def set_fix(self, name, value=None, unfix=False):
        """
        Fix or free a parameter. Either coordinate of a complex parameter
        fixes the whole parameter.

        :param value: The fixed value of the coordinate ``name``. It's useless if **unfix=True**.
        """
        p = self._param(name)
        if unfix:
            if not p.fixed:
                warnings.warn("{} has been freed already!".format(name))
            p.unfix()
            return
        if p.fixed:
            warnings.warn("{} has been fixed already!".format(name))
            return
        if value is not None:
            self.set(name, value, val_in_fit=False)
        p.fix()

    def set_bound(self, bound_dic, func=None, overwrite=False):
        """
        Set boundaries, e.g. ``{"name1": (-1.0, 1.0), "name2": (None, 1.0)}``,
        where None means no limit.
        """
        for name in bound_dic:
            if name not in self.variables:
                raise NotFoundError("{} not found".format(name))
            if name in self.bnd_dic and not overwrite:
                warnings.warn("Overwrite bound of {}!".format(name))
            self.bnd_dic[name] = Bound(*bound_dic[name], func=func)

    def remove_bound(self):
        self.bnd_dic = {}

    @property
    def trainable_vars(self):
        return [i for i in self.variables if not self._param(i).fixed]

    def get_all_val(self, val_in_fit=False):
        return [self.get(name, val_in_fit) for name in self.trainable_vars]

    def get_all_dic(self, trainable_only=False):
        names = self.trainable_vars if trainable_only else self.variables
        return {i: self._read(i) for i in names}

    def set_all(self, vals, val_in_fit=False):
        """
        Set values from a dict, or from a list in the order of
        :attr:`trainable_vars`.
        """
        if isinstance(vals, dict):
            for name in vals:
                self.set(name, vals[name], val_in_fit=val_in_fit)
            return
        names = self.trainable_vars
        if len(vals) != len(names):
            raise ConfigurationError(
                "{} values given for {} trainable variables".format(
                    len(vals), len(names)
                )
            )
        for name, v in zip(names, vals):
            self.set(name, v, val_in_fit)

    def trans_params(self, polar):
        """Use polar (or Cartesian) coordinates for every complex parameter."""
        for name in self.complex_vars:
            self.complex_vars[name] = polar
        self.polar = polar

    def get_dydx_all(self, xvals):
        """:math:`dy/dx` of every trainable coordinate at the fit values ``xvals``."""
        ret = []
        for name, x in zip(self.trainable_vars, xvals):
            if name in self.bnd_dic:
                ret.append(self.bnd_dic[name].get_dydx(x))
            else:
                ret.append(1.0)
        return np.array(ret)


class Bound(object):
    """
    Boundary transformation of a variable. A fit variable *x* on the real line
    is mapped into the physical range *(a, b)* of *y* by **func**.

    By default **func** is ``"(b-a)*(sin(x)+1)/2+a"`` for two limits,
    ``"b+1-sqrt(x**2+1)"`` for only an upper limit, ``"a-1+sqrt(x**2+1)"`` for
    only a lower limit and ``"x"`` for none.

    >>> bnd = Bound(0.0, 2.0)
    >>> bnd.get_x2y(0.0)
    1.0
    >>> round(bnd.get_x2y(bnd.get_y2x(1.5)), 6)
    1.5

    """

    def __init__(self, a=None, b=None, func=None):
        if a is not None and b is not None and a > b:
            raise ConfigurationError("Lower bound is larger than upper bound!")
        self.lower = a
        self.upper = b
        if func:
            self.func = func
        elif a is None:
            self.func = "x" if b is None else "b+1-sqrt(x**2+1)"
        elif b is None:
            self.func = "a-1+sqrt(x**2+1)"
        else:
            self.func = "(b-a)*(sin(x)+1)/2+a"
        self.f, self.df, self.inv = self.get_func()
        x = sympy.Symbol("x")
        self._f = sympy.lambdify(x, self.f, "math")
        self._df = sympy.lambdify(x, self.df, "math")

    def __repr__(self):
        return "[{}, {}]".format(self.lower, self.upper)

    def __iter__(self):
        return iter((self.lower, self.upper))

    def get_func(self):
        """
        **sympy** expressions of the function, its derivative and its inverse.
        """
        x, y, a, b = sympy.symbols("x y a b")
        subs = {}
        if self.lower is not None:
            subs[a] = self.lower
        if self.upper is not None:
            subs[b] = self.upper
        f = sympy.sympify(self.func).subs(subs)
        df = sympy.diff(f, x)
        inv = sympy.solve(f - y, x)
        if isinstance(inv, (list, tuple)):
            inv = inv[-1]
        return f, df, inv

    def get_x2y(self, val):
        return float(self._f(val))

    def get_y2x(self, val):
        """*y* is clipped into *(a, b)* first."""
        if self.lower is not None and val < self.lower:
            val = self.lower
        elif self.upper is not None and val > self.upper:
            val = self.upper
        y = sympy.Symbol("y")
        return complex(self.inv.evalf(subs={y: val})).real

    def get_dydx(self, val):
        return float(self._df(val))
