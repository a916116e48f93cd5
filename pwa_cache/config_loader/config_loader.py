"""
Build a locked model from a configuration file or dict, e.g.::

    top: {name: D, mass: 1.86965}
    final_state:
      - {name: pi, mass: 0.13957}
      - {name: pi, mass: 0.13957}
      - {name: K, mass: 0.49368}
    particle:
      f0:
        model: BW
        mass: 0.98
        width: 0.07
        fix: [width]
      Ks:
        model: BWR
        mass: 0.892
        width: 0.05
        l: 1
        spin: {model: legendre, l: 1}
    decay:
      - name: f0_K
        tree: [[f0, pi, pi], K]
        amplitude: [1.0, 0.0]
        fix: true
      - name: Ks_pi
        tree: [[Ks, pi, K], pi]
        amplitude: [0.5, 1.0]
    admixture:
      main: 1.0

A tree is a nested list: the top list holds the daughters of the top
particle, a nested list starts with the name of a resonance in ``particle``
followed by its daughters. Final-state particles with the same name are
identical, and every assignment of them to the tree gives one symmetrized
grouping of the decay, except for assignments that only swap identical
daughters of one node: ``f0 -> pi pi`` gets one grouping, ``Ks pi`` two.
"""
import copy
import itertools

from ..amp import UnitSpinAmplitude, get_mass_shape, get_spin_amplitude
from ..data import partition_data
from ..decay_tree import DecayTree, FreeAmplitude
from ..exceptions import ConfigurationError, NotFoundError
from ..fitfractions import fit_fractions_table
from ..integration import ImportanceSampler, ModelIntegral
from ..model import FCN, Model
from ..parameter import NonnegativeRealParameter
from ..phasespace import PhaseSpaceGenerator
from ..utils import load_config_file, polar_to_complex, time_print
from ..variable import ParameterManager


def load_config(file_name, share_dict=None):
    if share_dict is None:
        share_dict = {}
    if isinstance(file_name, dict):
        return copy.deepcopy(file_name)
    if isinstance(file_name, str):
        if file_name in share_dict:
            return load_config(share_dict[file_name])
        return load_config_file(file_name)
    raise TypeError("not support config {}".format(type(file_name)))


def _amplitude_value(value):
    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            raise ConfigurationError("polar amplitude {} needs [r, phi]".format(value))
        return polar_to_complex(*value)
    if isinstance(value, str):
        return complex(value.replace(" ", ""))
    return complex(value)


def _unique(pcs):
    ret = []
    for pc in pcs:
        if not any(pc is i for i in ret):
            ret.append(pc)
    return ret


def _swap_key(shape, pc):
    """
    Key of ``pc`` that does not change when identical daughters of one node
    are swapped: ``(01) -> 0 + 1`` and ``(10) -> 1 + 0`` of a resonance
    decaying to two identical particles get the same key.
    """
    if isinstance(shape, str):
        return pc.indices
    children = shape[1]
    keys = [_swap_key(s, d) for s, d in zip(children, pc.daughters)]
    done = set()
    for i, s in enumerate(children):
        if i in done:
            continue
        same = [j for j in range(i, len(children)) if children[j] == s]
        done.update(same)
        ordered = sorted(keys[j] for j in same)
        for j, k in zip(same, ordered):
            keys[j] = k
    return tuple(keys)


class ConfigLoader(object):
    """class for loading config.yml"""

    def __init__(self, file_name, share_dict=None):
        self.config = load_config(file_name, share_dict)
        if "final_state" not in self.config:
            raise ConfigurationError("no final_state in configuration")
        self.final_names = [str(i["name"]) for i in self.config["final_state"]]
        self.final_masses = [float(i["mass"]) for i in self.config["final_state"]]
        top = self.config.get("top", {})
        self.top_name = top.get("name", "top")
        self.top_mass = top.get("mass", None)
        self.particle_config = self.config.get("particle", {})
        self.decay_config = self.config.get("decay", [])
        self.model = None
        self.vm = None
        self.model_integral = None
        self._mass_shapes = {}
        self._spins = {}

    def __getitem__(self, key):
        return self.config[key]

    def get_model(self):
        if self.model is not None:
            return self.model
        if not self.decay_config:
            raise ConfigurationError("no decay in configuration")
        model = Model(self.final_masses, name=self.top_name)
        components = {}
        for i, dec in enumerate(self.decay_config):
            name = dec.get("name", "decay{}".format(i))
            dt = self._build_tree(model, dec, name)
            components.setdefault(dec.get("component", "main"), []).append(dt)
        admixture = self.config.get("admixture", {})
        for name, trees in components.items():
            model.add_component(
                trees, self._admixture(name, admixture.get(name)), name=name
            )
        model.lock()
        if self.config.get("fix_solitary", True):
            model.fix_solitary_free_amplitudes()
        self.model = model
        self.vm = ParameterManager(model.parameters())
        bound = self.config.get("bound", {})
        if bound:
            self.vm.set_bound(bound)
        self.model_integral = ModelIntegral(model)
        return model

    @staticmethod
    def _admixture(name, value):
        if value is None:
            value = {}
        if not isinstance(value, dict):
            value = {"value": value}
        return NonnegativeRealParameter(
            value.get("value", 1.0),
            name="{}_admixture".format(name),
            fixed=value.get("fix", True),
        )

    def _parse(self, node, leaves):
        if isinstance(node, str):
            if node not in self.final_names:
                raise NotFoundError("{} is not a final-state particle".format(node))
            leaves.append(node)
            return node
        node = list(node)
        if not node or not isinstance(node[0], str) or node[0] in self.final_names:
            raise ConfigurationError("{} does not start with a resonance".format(node))
        if node[0] not in self.particle_config:
            raise NotFoundError("particle {} is not configured".format(node[0]))
        if len(node) < 3:
            raise ConfigurationError("{} needs at least two daughters".format(node[0]))
        return (node[0], [self._parse(i, leaves) for i in node[1:]])

    def _composite(self, cache, shape, assign):
        if isinstance(shape, str):
            return assign[shape].pop(0)
        return cache.composite([self._composite(cache, i, assign) for i in shape[1]])

    def _groupings(self, model, shape, leaves):
        if sorted(leaves) != sorted(self.final_names):
            raise ConfigurationError(
                "tree {} does not use every final-state particle once".format(leaves)
            )
        by_name = {}
        for i, name in enumerate(self.final_names):
            by_name.setdefault(name, []).append(i)
        names = sorted(by_name)
        ret = []
        seen = set()
        for perms in itertools.product(
            *[itertools.permutations(by_name[i]) for i in names]
        ):
            assign = {n: list(p) for n, p in zip(names, perms)}
            pc = self._composite(model.groupings, shape, assign)
            key = _swap_key(shape, pc)
            if key not in seen:
                seen.add(key)
                ret.append(pc)
        return ret

    def _build_tree(self, model, dec, name):
        leaves = []
        shape = (None, [self._parse(i, leaves) for i in dec["tree"]])
        if len(shape[1]) < 2:
            raise ConfigurationError("decay {} needs at least two daughters".format(name))
        fa = FreeAmplitude(
            _amplitude_value(dec.get("amplitude", 1.0)),
            self._groupings(model, shape, leaves),
            name=name,
            parent=self.top_name,
            spin_projection=dec.get("spin_projection", 0),
            fixed=dec.get("fix", False),
        )
        dt = DecayTree(fa)
        dt.add_amplitude_component(self._spin_amplitude(dec.get("spin")))
        self._add_daughters(dt, shape, name)
        return dt

    def _add_daughters(self, dt, shape, prefix):
        for i, child in enumerate(shape[1]):
            if isinstance(child, str):
                continue
            rname = child[0]
            name = "{}/{}".format(prefix, rname)
            if [c[0] for c in shape[1] if not isinstance(c, str)].count(rname) > 1:
                name = "{}{}".format(name, i)
            fa = FreeAmplitude(
                1.0,
                _unique(pc.daughters[i] for pc in dt.particle_combinations),
                name=name,
                parent=rname,
                fixed=True,
            )
            sub = DecayTree(fa)
            sub.add_amplitude_component(self._mass_shape(rname))
            if rname not in self._spins:
                self._spins[rname] = self._spin_amplitude(
                    self.particle_config[rname].get("spin")
                )
            sub.add_amplitude_component(self._spins[rname])
            self._add_daughters(sub, child, fa.name)
            dt.set_daughter_decay_tree(i, sub)

    def _mass_shape(self, name):
        if name in self._mass_shapes:
            return self._mass_shapes[name]
        cfg = dict(self.particle_config[name])
        cls = get_mass_shape(cfg.pop("model", "BW"))
        cfg.pop("spin", None)
        fix = cfg.pop("fix", ())
        ret = cls(name=name, fix=() if fix is True else fix, **cfg)
        if fix is True:
            for p in ret.parameters:
                p.fix()
        self._mass_shapes[name] = ret
        return ret

    @staticmethod
    def _spin_amplitude(cfg):
        if cfg is None:
            return UnitSpinAmplitude()
        cfg = dict(cfg)
        return get_spin_amplitude(cfg.pop("model", "unit"))(**cfg)

    def get_params(self, trainable_only=False):
        self.get_model()
        return self.vm.get_all_dic(trainable_only)

    def set_params(self, params):
        """Set parameters from a dict or a yaml/json file of ``{name: value}``."""
        self.get_model()
        if isinstance(params, str):
            params = load_config_file(params)
        if "value" in params and isinstance(params["value"], dict):
            params = params["value"]
        self.vm.set_all(dict(params), val_in_fit=False)
        return True

    def get_data_set(self, momenta):
        """Data set of the events in ``momenta``; empty entries are rejected."""
        data = self.get_model().create_data_set()
        data.extend(momenta)
        return data

    def get_partitions(self, data, n=None, mode=None):
        return partition_data(data, n, mode)

    def get_phsp_generator(self, seed=None):
        if self.top_mass is None:
            raise ConfigurationError("no top mass in configuration")
        return PhaseSpaceGenerator(self.top_mass, self.final_masses, seed)

    def generate_phsp(self, n, seed=None):
        return self.get_data_set(self.get_phsp_generator(seed).generate(n))

    @time_print
    def get_fit_fractions(self, partitions):
        """Integrate over ``partitions`` and return the fit-fraction table."""
        model = self.get_model()
        ImportanceSampler.calculate(self.model_integral, partitions)
        model.set_parameter_flags_to_unchanged()
        return fit_fractions_table(self.model_integral)

    def get_fcn(self, data, phsp):
        """:class:`~pwa_cache.model.FCN` over partitions of data and phase space."""
        return FCN(self.get_model(), data, phsp, self.model_integral, self.vm)
