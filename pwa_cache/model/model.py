"""
The model: decay trees, their components, and the calculation passes over
data partitions.

A model is open while decay trees are added and locked before any data is
created. Locking prunes groupings that do not belong to a full decay, assigns
dense storage indices and fixes the order in which components are calculated.

A calculation pass over a partition first updates the calculation statuses of
every recalculable component, then recalculates the ones that became
uncalculated, then marks every variable status of the partition unchanged.
Parameter flags are reset by the driver with
:meth:`Model.set_parameter_flags_to_unchanged` once every partition and
integral using the current parameters has been calculated.
"""
import logging
import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np

from .. import filters
from ..config import get_config
from ..data import DataPartition, DataSet
from ..data_accessor import DataAccessorRegistry
from ..decay_tree import ModelComponent
from ..exceptions import ConfigurationError, LockedError
from ..four_momenta import FourMomenta, MeasuredBreakupMomenta
from ..helicity_angles import HelicityAngles
from ..integration import ImportanceSampler, ModelIntegral
from ..particle_combination import ParticleCombinationCache
from ..status import CalculationStatus, VariableStatus
from ..status_manager import StatusManager
from ..variable import ParameterManager

logger = logging.getLogger(__name__)


def topological_order(accessors, requires):
    """
    Order ``accessors`` so that every accessor comes after the ones
    ``requires(accessor)`` returns. Raises ConfigurationError on a cycle.
    """
    accessors = list(accessors)
    ret = []
    state = {}

    def visit(a):
        s = state.get(id(a))
        if s == "done":
            return
        if s == "visiting":
            raise ConfigurationError("dependency cycle through {!r}".format(a))
        state[id(a)] = "visiting"
        for b in requires(a):
            if any(b is i for i in accessors):
                visit(b)
        state[id(a)] = "done"
        ret.append(a)

    for a in accessors:
        visit(a)
    return ret


def _slot_owners(accessor):
    ret = []
    for cv in accessor.cached_values:
        for dep in cv.cached_value_dependencies:
            ret.append(dep.owner)
        for dep in cv.daughter_cached_value_dependencies:
            ret.append(dep.cached_value.owner)
    return [i for i in ret if i is not accessor]


class Model(object):
    """
    :param final_state_masses: masses of the final-state particles, in the
        order of their indices
    """

    def __init__(self, final_state_masses, name=None):
        self.final_state_masses = list(final_state_masses)
        if len(self.final_state_masses) < 2:
            raise ConfigurationError("a final state needs at least two particles")
        self.name = name
        self.groupings = ParticleCombinationCache()
        self.registry = DataAccessorRegistry()
        self.four_momenta = self.registry.register(FourMomenta())
        self.measured_breakup_momenta = self.registry.register(
            MeasuredBreakupMomenta(self.four_momenta)
        )
        self.helicity_angles = self.registry.register(
            HelicityAngles(self.four_momenta)
        )
        self.components = []
        self._static = []
        self._recalculable = []

    @property
    def n_final_state(self):
        return len(self.final_state_masses)

    @property
    def locked(self):
        return self.registry.locked

    def _check_open(self, action):
        if self.locked:
            raise LockedError("cannot {} after lock".format(action))

    def add_decay_tree(self, dt):
        """
        Register the groupings of ``dt`` with the kinematic components and
        its amplitude components with the model, recursively through its
        daughter trees. Components must be added to ``dt`` first.
        """
        self._check_open("add a decay tree")
        for pc in dt.particle_combinations:
            if pc not in self.groupings:
                raise ConfigurationError(
                    "{!r} does not belong to the groupings of this model".format(pc)
                )
            if max(pc.indices) >= self.n_final_state:
                raise ConfigurationError(
                    "{!r} exceeds the {} final-state particles".format(
                        pc, self.n_final_state
                    )
                )
            self.four_momenta.add_particle_combination(pc)
            self.measured_breakup_momenta.add_particle_combination(pc)
            self.helicity_angles.add_particle_combination(pc)
        for ac in dt.amplitude_components:
            ac.attach(self)
            if ac.data_accessor is not None:
                self.registry.register(ac.data_accessor)
        for i in sorted(dt.daughter_decay_trees):
            self.add_decay_tree(dt.daughter_decay_trees[i])
        return dt

    def add_component(self, decay_trees, admixture=None, name=None):
        """Add a coherent sum of ``decay_trees``; returns the new component."""
        self._check_open("add a component")
        if name is None:
            name = "c{}".format(len(self.components))
        c = ModelComponent(decay_trees, admixture, name)
        for dt in c.decay_trees:
            self.add_decay_tree(dt)
        self.components.append(c)
        return c

    def lock(self):
        """
        Freeze registration and prepare the calculation order. Locking a
        locked model does nothing and returns False.
        """
        if self.locked:
            return False
        if not self.components:
            raise ConfigurationError("a model needs at least one component")
        self.registry.lock(self.n_final_state)
        self._static = topological_order(
            [a for a in self.registry.static_accessors() if a.index is not None],
            lambda a: a.depends_on,
        )
        self._recalculable = topological_order(
            [a for a in self.registry.recalculable_accessors() if a.index is not None],
            _slot_owners,
        )
        roots = [
            pc
            for c in self.components
            for dt in c.decay_trees
            for pc in dt.particle_combinations
        ]
        self.groupings.sweep(roots)
        logger.info(
            "locked model with %d static and %d recalculable components",
            len(self._static),
            len(self._recalculable),
        )
        return True

    def create_status_manager(self):
        if not self.locked:
            raise ConfigurationError("status tables need a locked model")
        return StatusManager(self.registry)

    def create_data_set(self):
        return DataSet(self)

    def set_final_state_momenta(self, data_point, momenta, status_manager):
        """Copy ``momenta`` into ``data_point`` and run the static components."""
        momenta = np.asarray(momenta, dtype=np.float64)
        if momenta.shape != (self.n_final_state, 4):
            raise ConfigurationError(
                "momenta of shape {} given for {} final-state particles".format(
                    momenta.shape, self.n_final_state
                )
            )
        data_point.final_state_momenta[...] = momenta
        self.helicity_angles.invalidate()
        for da in self._static:
            status_manager.set(da, CalculationStatus.uncalculated)
            da.calculate(data_point, status_manager)

    def _calculate(self, partition):
        sm = partition.status
        for da in self._recalculable:
            da.update_calculation_status(sm)
        n = 0
        for da in self._recalculable:
            n += da.calculate(partition)
        sm.set_all(VariableStatus.unchanged)
        return n

    def calculate(self, partitions):
        """
        Recalculate what changed for one partition, or for a list of
        partitions in parallel. Returns the number of recalculated entries.
        """
        if not self.locked:
            raise ConfigurationError("lock the model before calculating")
        if isinstance(partitions, DataPartition):
            return self._calculate(partitions)
        partitions = list(partitions)
        if len(partitions) == 1:
            return self._calculate(partitions[0])
        with ThreadPoolExecutor(max_workers=get_config("max_workers")) as executor:
            return sum(executor.map(self._calculate, partitions))

    def intensity(self, data_point):
        return sum(c.intensity(data_point) for c in self.components)

    def log_intensity(self, data_point):
        """log of the intensity; -inf where it is not positive."""
        value = self.intensity(data_point)
        if not value > 0:
            return -math.inf
        return math.log(value)

    def free_amplitudes(self):
        return filters.free_amplitudes(self)

    def parameters(self):
        return filters.parameters(self)

    def set_parameter_flags_to_unchanged(self):
        for p in self.parameters():
            if not p.fixed:
                p.variable_status = VariableStatus.unchanged

    def fix_solitary_free_amplitudes(self):
        """
        Fix every free amplitude that is the only one of its parent and spin
        projection; its phase and magnitude are not observable. Returns the
        newly fixed amplitudes.
        """
        groups = {}
        for fa in self.free_amplitudes():
            groups.setdefault((fa.parent, fa.spin_projection), []).append(fa)
        ret = []
        for fas in groups.values():
            if len(fas) == 1 and not fas[0].fixed:
                fas[0].fix()
                ret.append(fas[0])
                logger.info("fixed solitary free amplitude %s", fas[0].name)
        return ret

    def consistent(self):
        result = True
        if not self.locked:
            logger.error("model is not locked")
            result = False
        result &= self.groupings.consistent()
        for da in self.registry.alive():
            result &= da.consistent()
        for i, da in enumerate(self.registry):
            if da.index != i:
                logger.error("storage index of %r is not %d", da, i)
                result = False
        for dt in filters.decay_trees(self):
            result &= dt.consistent()
        return bool(result)

    def __repr__(self):
        return "Model({}, {} components)".format(self.name, len(self.components))


@filters.children.register(Model)
def _(node):
    return list(node.components)


def sum_of_log_intensity(model, partitions, ln_pedestal=0.0):
    """
    Sum of ``log(intensity) - ln_pedestal`` over every event of
    ``partitions``, one worker per partition.
    """
    if isinstance(partitions, DataPartition):
        partitions = [partitions]

    def work(partition):
        model.calculate(partition)
        return [model.log_intensity(d) - ln_pedestal for d in partition]

    with ThreadPoolExecutor(max_workers=get_config("max_workers")) as executor:
        results = list(executor.map(work, partitions))
    return math.fsum(i for r in results for i in r)


class FCN(object):
    """
    Negative log-likelihood of a data sample, normalized by the integral over
    a phase-space sample.

    :param data: partitions of the data
    :param phsp: partitions of the phase-space sample
    :param vm: :class:`~pwa_cache.variable.ParameterManager` that maps the
        fit vector onto the parameters. By default all parameters of the model.
    """

    def __init__(self, model, data, phsp, model_integral=None, vm=None):
        self.model = model
        self.data = [data] if isinstance(data, DataPartition) else list(data)
        self.phsp = [phsp] if isinstance(phsp, DataPartition) else list(phsp)
        if model_integral is None:
            model_integral = ModelIntegral(model)
        self.model_integral = model_integral
        if vm is None:
            vm = ParameterManager(model.parameters())
        self.vm = vm
        self.n_data = sum(len(p) for p in self.data)
        self.n_call = 0
        self.cached_nll = None

    def nll(self):
        """NLL at the current parameters."""
        ImportanceSampler.calculate(self.model_integral, self.phsp)
        norm = self.model_integral.integral()
        log_sum = sum_of_log_intensity(self.model, self.data)
        self.model.set_parameter_flags_to_unchanged()
        if not norm > 0:
            return math.inf
        return -(log_sum - self.n_data * math.log(norm))

    def __call__(self, x):
        """
        :param x: List. Values of the trainable variables (fit values).
        :return nll: Real number. The value of NLL.
        """
        self.vm.set_all(list(x), val_in_fit=True)
        nll = self.nll()
        self.cached_nll = nll
        self.n_call += 1
        return nll

    def grad(self, x, eps=1e-6):
        """Central-difference gradient of the NLL at ``x``."""
        x = np.array(x, dtype=np.float64)
        ret = np.zeros_like(x)
        for i in range(len(x)):
            xp, xm = x.copy(), x.copy()
            xp[i] += eps
            xm[i] -= eps
            ret[i] = (self(xp) - self(xm)) / (2 * eps)
        self(x)
        return ret
