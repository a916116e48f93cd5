"""
Interfaces and registries of amplitude components.

Mass shapes and spin amplitudes are registered by name, the way configuration
files refer to them::

    @register_mass_shape("BW")
    class BreitWigner(MassShape):
        ...

"""
import warnings

from ..cached_value import ComplexCachedValue
from ..config import get_config, regist_config
from ..data_accessor import RecalculableDataAccessor
from ..exceptions import ConfigurationError, NotFoundError
from ..parameter import RealParameter
from ..particle_combination import equal_by_orderless_content
from ..status import VariableStatus

MASS_SHAPE_MODEL = "mass_shape_model"
SPIN_AMPLITUDE_MODEL = "spin_amplitude_model"

regist_config(MASS_SHAPE_MODEL, {})
regist_config(SPIN_AMPLITUDE_MODEL, {})


def _register(config_name, name, f):
    def regist(g):
        my_name = g.__name__ if name is None else name
        config = get_config(config_name)
        if my_name in config:
            warnings.warn("Override model {}".format(my_name))
        config[my_name] = g
        g.model_name = my_name
        return g

    if f is None:
        return regist
    return regist(f)


def register_mass_shape(name=None, f=None):
    """register a mass shape

    :params name: model name used in configuration
    :params f: MassShape class
    """
    return _register(MASS_SHAPE_MODEL, name, f)


def register_spin_amplitude(name=None, f=None):
    """register a spin amplitude

    :params name: model name used in configuration
    :params f: SpinAmplitude class
    """
    return _register(SPIN_AMPLITUDE_MODEL, name, f)


def _get(config_name, name):
    all_model = get_config(config_name)
    if name not in all_model:
        raise NotFoundError(
            "unknown model {}, known models are {}".format(name, sorted(all_model))
        )
    return all_model[name]


def get_mass_shape(name):
    return _get(MASS_SHAPE_MODEL, name)


def get_spin_amplitude(name):
    return _get(SPIN_AMPLITUDE_MODEL, name)


class AmplitudeComponent(object):
    """
    Factor of a decay-tree amplitude for one grouping.

    A decay tree registers each of its groupings with
    :meth:`add_particle_combination`, checks :meth:`valid_for`, and multiplies
    :meth:`value` over its components. :attr:`data_accessor` is the component
    that owns the cached values, or ``None`` if nothing is cached.
    """

    data_accessor = None
    parameters = ()

    def attach(self, model):
        """Connect to the kinematic components of ``model``."""

    def add_particle_combination(self, pc):
        raise NotImplementedError

    def valid_for(self, pc):
        raise NotImplementedError

    def value(self, data_point, pc):
        raise NotImplementedError

    def variable_status(self):
        raise NotImplementedError


class MassShape(AmplitudeComponent):
    """
    Line shape of a resonance as a function of the invariant mass of its
    grouping.

    The complex slot ``T`` depends on the shape parameters and on the mass
    slot of the model's four-momenta. Groupings with the same particle content
    share one entry. Subclasses list their parameters in ``param_names`` with
    defaults in ``param_defaults`` and implement :meth:`get_amp`.
    """

    param_names = ()
    param_defaults = {}

    def __init__(self, name=None, fix=(), **kwargs):
        self.name = name
        unknown = set(kwargs) - set(self.param_names)
        if unknown:
            raise ConfigurationError(
                "{} has no parameters {}".format(type(self).__name__, sorted(unknown))
            )
        self.data_accessor = RecalculableDataAccessor(
            self._calculate, equal_by_orderless_content
        )
        self.T = ComplexCachedValue(self.data_accessor)
        self.parameters = []
        for i in self.param_names:
            if i in kwargs:
                value = kwargs[i]
            elif i in self.param_defaults:
                value = self.param_defaults[i]
            else:
                raise ConfigurationError(
                    "parameter {} of {} is required".format(i, self.name)
                )
            p = RealParameter(value, name="{}_{}".format(self.name, i))
            if i in fix:
                p.fix()
            self.parameters.append(p)
            self.data_accessor.add_parameter(p)
        self.four_momenta = None

    def attach(self, model):
        if self.four_momenta is model.four_momenta:
            return
        if self.four_momenta is not None:
            raise ConfigurationError("{} belongs to another model".format(self.name))
        self.four_momenta = model.four_momenta
        self.T.add_dependency(model.four_momenta.M)

    def param(self, name):
        return self.parameters[self.param_names.index(name)]

    def param_values(self):
        return [p.value for p in self.parameters]

    def add_particle_combination(self, pc):
        if pc.is_final_state():
            raise ConfigurationError(
                "mass shape {} needs a composite grouping, not {}".format(self.name, pc)
            )
        return self.data_accessor.add_particle_combination(pc)

    def valid_for(self, pc):
        return not pc.is_final_state() and self.data_accessor.has_particle_combination(
            pc
        )

    def value(self, data_point, pc):
        return self.T.value(data_point, self.data_accessor.symmetrization_index(pc))

    def variable_status(self):
        return self.data_accessor.variable_status()

    def _calculate(self, data_point, pc, symmetrization_index, status_manager):
        m = self.four_momenta.mass(data_point, pc)
        self.T.set_value(
            self.get_amp(m, data_point, pc),
            data_point,
            symmetrization_index,
            status_manager,
        )

    def get_amp(self, m, data_point, pc):
        raise NotImplementedError

    def __repr__(self):
        return "{}({})".format(type(self).__name__, self.name)


class SpinAmplitude(AmplitudeComponent):
    """Angular factor of a two-body decay."""

    def __init__(self, name=None):
        self.name = name

    def variable_status(self):
        return VariableStatus.fixed

    def __repr__(self):
        return "{}({})".format(type(self).__name__, self.name)
