"""
Components that own per-event cached data, and the registry that hands out
their storage indices.

A :class:`DataAccessor` maps every grouping registered with it to a
symmetrization index. Groupings that are equivalent under the accessor's
equivalence share one index, so one row of storage. The
:class:`DataAccessorRegistry` is owned by the model; at lock time it prunes
groupings that do not trace back to the full final state, drops components
that expired or need no storage, and numbers the rest densely from zero.
"""
import logging
import weakref

from .cached_value import SLOT_KINDS
from .exceptions import ConfigurationError, LockedError, NotFoundError
from .parameter import Parameter
from .parameter import variable_status as _parameters_status
from .particle_combination import equal_by_shared_pointer, traces_to_final_state
from .status import CalculationStatus

logger = logging.getLogger(__name__)


class DataAccessor(object):
    def __init__(self, equiv=equal_by_shared_pointer):
        self.equiv = equiv
        self._symmetrization_indices = {}
        self._key_index = {}
        self._n_indices = 0
        self.cached_values = []
        self.size = 0
        self.index = None
        self.registry = None
        self.parameters = []

    @property
    def locked(self):
        return self.registry is not None and self.registry.locked

    def _check_open(self, action):
        if self.locked:
            raise LockedError("cannot {} on {!r} after lock".format(action, self))

    def add_particle_combination(self, pc):
        """Register ``pc`` and return its symmetrization index."""
        self._check_open("register a grouping")
        if pc is None:
            raise ConfigurationError("grouping is None")
        if not pc.interned:
            raise ConfigurationError("{!r} is not interned".format(pc))
        if pc in self._symmetrization_indices:
            return self._symmetrization_indices[pc]
        key = self.equiv.key(pc)
        index = self._key_index.get(key)
        if index is None:
            index = self._n_indices
            self._n_indices += 1
            self._key_index[key] = index
        self._symmetrization_indices[pc] = index
        return index

    register_grouping = add_particle_combination

    def has_particle_combination(self, pc, equiv=None):
        if equiv is None:
            return (
                pc in self._symmetrization_indices
                or self.equiv.key(pc) in self._key_index
            )
        return any(equiv(pc, i) for i in self._symmetrization_indices)

    def symmetrization_index(self, pc):
        ret = self._symmetrization_indices.get(pc)
        if ret is None:
            ret = self._key_index.get(self.equiv.key(pc))
        if ret is None:
            raise NotFoundError("{!r} is not registered with {!r}".format(pc, self))
        return ret

    def n_symmetrization_indices(self):
        return self._n_indices

    def particle_combinations(self):
        return list(self._symmetrization_indices)

    def representatives(self):
        """One registered grouping per symmetrization index, by index."""
        ret = {}
        for pc, i in self._symmetrization_indices.items():
            ret.setdefault(i, pc)
        return [(ret[i], i) for i in sorted(ret)]

    def prune_symmetrization_indices(self, n_final_state):
        """
        Remove groupings that do not trace up to the full final state and
        renumber the remaining symmetrization indices densely.
        """
        self._check_open("prune groupings")
        kept = {
            pc: i
            for pc, i in self._symmetrization_indices.items()
            if traces_to_final_state(pc, n_final_state)
        }
        n_removed = len(self._symmetrization_indices) - len(kept)
        used = sorted(set(kept.values()))
        renumber = {old: new for new, old in enumerate(used)}
        self._symmetrization_indices = {pc: renumber[i] for pc, i in kept.items()}
        self._key_index = {
            k: renumber[i] for k, i in self._key_index.items() if i in renumber
        }
        self._n_indices = len(used)
        if n_removed:
            logger.debug("pruned %d groupings from %r", n_removed, self)
        return n_removed

    prune_to_final_state = prune_symmetrization_indices

    def add_cached_value(self, cv):
        self._check_open("add a cached value")
        cv.index = len(self.cached_values)
        cv.position = self.size
        self.size += cv.size
        self.cached_values.append(cv)

    def allocate_slot(self, kind, dependencies=()):
        """New cached value of ``kind`` ("real", "complex" or "four_vector")."""
        if kind not in SLOT_KINDS:
            raise ConfigurationError("unknown slot kind {}".format(kind))
        return SLOT_KINDS[kind](self, dependencies)

    def add_dependency(self, dep):
        """
        Add ``dep`` to every slot allocated so far. Parameters are also kept in
        :attr:`parameters`.
        """
        self._check_open("add a dependency")
        if isinstance(dep, Parameter) and dep not in self.parameters:
            self.parameters.append(dep)
        for cv in self.cached_values:
            cv.add_dependency(dep)

    def dependent_parameters(self):
        """Parameters of this component and of all of its slots."""
        ret = list(self.parameters)
        for cv in self.cached_values:
            for p in cv.parameter_dependencies:
                if p not in ret:
                    ret.append(p)
        return ret

    def requires_storage(self):
        return self.size > 0

    def consistent(self):
        result = True
        position = 0
        for i, cv in enumerate(self.cached_values):
            if cv.owner is not self or cv.index != i or cv.position != position:
                logger.error("cached value %d of %r is misplaced", i, self)
                result = False
            position += cv.size
        if position != self.size:
            logger.error("size of %r does not match its cached values", self)
            result = False
        if set(self._symmetrization_indices.values()) != set(range(self._n_indices)):
            logger.error("symmetrization indices of %r are not dense", self)
            result = False
        for pc in self._symmetrization_indices:
            if not pc.interned:
                logger.error("%r registered with %r was swept", pc, self)
                result = False
        return result

    def __repr__(self):
        return "{}[{}]".format(type(self).__name__, self.index)


class StaticDataAccessor(DataAccessor):
    """
    Written once per event when its final-state momenta are set.

    ``depends_on`` lists the static components that must run first.
    """

    depends_on = ()

    def calculate(self, data_point, status_manager):
        raise NotImplementedError


class RecalculableDataAccessor(DataAccessor):
    """
    Recalculated for a whole partition when its slots become uncalculated.

    :param calculator: ``f(data_point, pc, symmetrization_index, status_manager)``
        that writes every slot of this accessor for one event.
    """

    def __init__(self, calculator, equiv=equal_by_shared_pointer):
        super().__init__(equiv)
        self._calculator = calculator

    def add_parameter(self, parameter):
        self.add_dependency(parameter)

    def variable_status(self):
        return _parameters_status(self.dependent_parameters())

    def update_calculation_status(self, status_manager):
        for cv in self.cached_values:
            for pc, i in self.representatives():
                cv.calculation_status(status_manager, pc, i)

    def calculate(self, partition):
        sm = partition.status
        todo = [
            (pc, i)
            for pc, i in self.representatives()
            if any(
                sm.calculation_status(cv, i) == CalculationStatus.uncalculated
                for cv in self.cached_values
            )
        ]
        if not todo:
            return 0
        for d in partition:
            for pc, i in todo:
                self._calculator(d, pc, i, sm)
        for pc, i in todo:
            for cv in self.cached_values:
                sm.set_calculation_status(cv, i, CalculationStatus.calculated)
        return len(todo)


class DataAccessorRegistry(object):
    """
    Storage indices of the components of one model.

    Components are held by weak reference until lock; an expired component
    leaves a gap that the lock-time compaction removes.
    """

    def __init__(self):
        self._refs = []
        self._accessors = []
        self._all = []
        self.locked = False

    def register(self, accessor):
        if accessor.registry is self:
            return accessor
        if self.locked:
            raise LockedError("cannot register {!r} after lock".format(accessor))
        if accessor.registry is not None:
            raise ConfigurationError(
                "{!r} is already registered with another model".format(accessor)
            )
        accessor.registry = self
        self._refs.append(weakref.ref(accessor))
        return accessor

    def alive(self):
        if self.locked:
            return list(self._all)
        return [a for a in (r() for r in self._refs) if a is not None]

    def lock(self, n_final_state=None):
        """
        Freeze registration and assign dense storage indices. Returns False
        if already locked.
        """
        if self.locked:
            return False
        alive = self.alive()
        n_expired = len(self._refs) - len(alive)
        if n_final_state is not None:
            for a in alive:
                a.prune_symmetrization_indices(n_final_state)
        storage = [
            a
            for a in alive
            if a.requires_storage() and a.n_symmetrization_indices() > 0
        ]
        for i, a in enumerate(storage):
            a.index = i
        self._accessors = storage
        self._all = alive
        self._refs = []
        self.locked = True
        logger.info(
            "locked %d components (%d with storage, %d expired)",
            len(alive),
            len(storage),
            n_expired,
        )
        return True

    def __iter__(self):
        return iter(self._accessors)

    def __len__(self):
        return len(self._accessors)

    def __getitem__(self, index):
        return self._accessors[index]

    def static_accessors(self):
        return [a for a in self.alive() if isinstance(a, StaticDataAccessor)]

    def recalculable_accessors(self):
        return [a for a in self.alive() if isinstance(a, RecalculableDataAccessor)]
