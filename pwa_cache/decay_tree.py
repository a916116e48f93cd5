"""
Decay trees, their free amplitudes, and coherent sums of decay trees.

A :class:`DecayTree` describes one decay channel of a parent for a set of
symmetrized groupings. Its amplitude factorizes into a data-independent part,
the product of the free amplitudes of the tree and of its daughter trees, and
a data-dependent part, the sum over groupings of the product of the amplitude
components and of the daughter trees' data-dependent amplitudes.
"""
import logging

from .exceptions import ConfigurationError
from .parameter import ComplexParameter, NonnegativeRealParameter
from .particle_combination import to_string
from .status import VariableStatus

logger = logging.getLogger(__name__)


class FreeAmplitude(ComplexParameter):
    """
    Complex fit parameter of a decay channel.

    :param particle_combinations: the symmetrized groupings of the decaying
        particle this amplitude applies to
    :param parent: name of the decaying particle
    :param spin_projection: spin projection of the parent
    """

    def __init__(
        self,
        value=1.0,
        particle_combinations=(),
        name=None,
        parent=None,
        spin_projection=0,
        fixed=False,
    ):
        super().__init__(value, name=name, fixed=fixed)
        self.particle_combinations = list(particle_combinations)
        self.parent = parent
        self.spin_projection = spin_projection


def _combine_status(statuses):
    ret = VariableStatus.fixed
    for s in statuses:
        if s == VariableStatus.changed:
            return VariableStatus.changed
        if s == VariableStatus.unchanged:
            ret = VariableStatus.unchanged
    return ret


class DecayTree(object):
    def __init__(self, free_amplitude, name=None):
        if not free_amplitude.particle_combinations:
            raise ConfigurationError(
                "free amplitude {} has no groupings".format(free_amplitude.name)
            )
        self.free_amplitude = free_amplitude
        self.name = name if name is not None else free_amplitude.name
        self.amplitude_components = []
        self.daughter_decay_trees = {}

    @property
    def particle_combinations(self):
        return self.free_amplitude.particle_combinations

    def add_amplitude_component(self, ac):
        """Register every grouping of this tree with ``ac`` and append it."""
        for pc in self.particle_combinations:
            ac.add_particle_combination(pc)
        for pc in self.particle_combinations:
            if not ac.valid_for(pc):
                raise ConfigurationError(
                    "{!r} is not valid for {}".format(ac, to_string(pc))
                )
        self.amplitude_components.append(ac)
        return ac

    def set_daughter_decay_tree(self, i, dt):
        """Use ``dt`` for the decay of daughter ``i`` of every grouping."""
        for pc in self.particle_combinations:
            if not 0 <= i < len(pc.daughters):
                raise ConfigurationError("{} has no daughter {}".format(pc, i))
            if not any(pc.daughters[i] is j for j in dt.particle_combinations):
                raise ConfigurationError(
                    "daughter {} of {} is not a grouping of {}".format(
                        i, to_string(pc), dt.name
                    )
                )
        self.daughter_decay_trees[i] = dt

    def _amplitude(self, data_point, pc):
        ret = 1.0
        for ac in self.amplitude_components:
            ret *= ac.value(data_point, pc)
        for i, dt in self.daughter_decay_trees.items():
            ret *= dt._amplitude(data_point, pc.daughters[i])
        return ret

    def data_dependent_amplitude(self, data_point):
        return sum(
            complex(self._amplitude(data_point, pc))
            for pc in self.particle_combinations
        )

    def data_independent_amplitude(self):
        ret = self.free_amplitude.value
        for dt in self.daughter_decay_trees.values():
            ret *= dt.data_independent_amplitude()
        return ret

    def data_dependent_amplitude_status(self):
        """
        ``changed`` if any component of this tree or of a daughter tree
        changed, ``fixed`` if all of them are fixed, else ``unchanged``.
        """
        statuses = [ac.variable_status() for ac in self.amplitude_components]
        statuses += [
            dt.data_dependent_amplitude_status()
            for dt in self.daughter_decay_trees.values()
        ]
        return _combine_status(statuses)

    def amplitude(self, data_point):
        return self.data_independent_amplitude() * self.data_dependent_amplitude(
            data_point
        )

    def free_amplitudes(self):
        ret = [self.free_amplitude]
        for i in sorted(self.daughter_decay_trees):
            for fa in self.daughter_decay_trees[i].free_amplitudes():
                if fa not in ret:
                    ret.append(fa)
        return ret

    def depth(self):
        return 1 + max(
            [dt.depth() for dt in self.daughter_decay_trees.values()], default=0
        )

    def consistent(self):
        result = True
        for pc in self.particle_combinations:
            if not pc.interned:
                logger.error("grouping %s of %s is not interned", pc, self.name)
                result = False
            for ac in self.amplitude_components:
                if not ac.valid_for(pc):
                    logger.error("%r is not valid for %s", ac, pc)
                    result = False
        for i, dt in self.daughter_decay_trees.items():
            for pc in self.particle_combinations:
                if i >= len(pc.daughters) or not any(
                    pc.daughters[i] is j for j in dt.particle_combinations
                ):
                    logger.error("daughter tree %s does not match %s", dt.name, pc)
                    result = False
            result &= dt.consistent()
        return result

    def __str__(self):
        lines = ["{} [{}]".format(self.name, self.free_amplitude.value)]
        lines += ["  " + to_string(pc) for pc in self.particle_combinations]
        for i in sorted(self.daughter_decay_trees):
            sub = str(self.daughter_decay_trees[i]).split("\n")
            lines += ["  {}: {}".format(i, sub[0])] + ["    " + j for j in sub[1:]]
        return "\n".join(lines)

    def __repr__(self):
        return "DecayTree({})".format(self.name)


class ModelComponent(object):
    """
    Coherent sum of decay trees with one spin projection, added incoherently
    to the other components of a model with weight ``admixture``.
    """

    def __init__(self, decay_trees, admixture=None, name=None):
        self.decay_trees = list(decay_trees)
        if not self.decay_trees:
            raise ConfigurationError("a model component needs decay trees")
        projections = set(dt.free_amplitude.spin_projection for dt in self.decay_trees)
        if len(projections) != 1:
            raise ConfigurationError(
                "decay trees of one component have spin projections {}".format(
                    sorted(projections)
                )
            )
        if isinstance(admixture, NonnegativeRealParameter):
            self.admixture = admixture
        else:
            self.admixture = NonnegativeRealParameter(
                1.0 if admixture is None else admixture,
                name="{}_admixture".format(name) if name else "admixture",
                fixed=True,
            )
        self.name = name

    @property
    def spin_projection(self):
        return self.decay_trees[0].free_amplitude.spin_projection

    def amplitude(self, data_point):
        return sum(dt.amplitude(data_point) for dt in self.decay_trees)

    def intensity(self, data_point):
        return self.admixture.value * abs(self.amplitude(data_point)) ** 2

    def __repr__(self):
        return "ModelComponent({})".format(self.name)
