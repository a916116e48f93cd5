import contextlib
import os
import tempfile

from pwa_cache.amp import BreitWigner, LegendreSpinAmplitude, UnitSpinAmplitude
from pwa_cache.decay_tree import DecayTree, FreeAmplitude
from pwa_cache.model import Model
from pwa_cache.phasespace import PhaseSpaceGenerator

M0 = 2.0
MASSES = [0.5, 0.3, 0.2]


@contextlib.contextmanager
def write_temp_file(s, filename=None):
    if filename is None:
        a = tempfile.mktemp(suffix=".yml")
    else:
        a = filename
    with open(a, "w") as f:
        f.write(s)
    yield a
    os.remove(a)


def resonance_tree(model, pair, spectator, name, mass, width, a=1.0):
    """D -> [name -> pair] spectator, with a Breit-Wigner and a P-wave."""
    gc = model.groupings
    pc = gc.composite([gc.composite(pair), spectator])
    dt = DecayTree(FreeAmplitude(a, [pc], name="D->" + name, parent="D"))
    dt.add_amplitude_component(UnitSpinAmplitude())
    sub = DecayTree(
        FreeAmplitude(1.0, [pc.daughters[0]], name=name, parent=name, fixed=True)
    )
    sub.add_amplitude_component(BreitWigner(name, mass=mass, width=width))
    sub.add_amplitude_component(LegendreSpinAmplitude(1))
    dt.set_daughter_decay_tree(0, sub)
    return dt


def build_model(mass1=1.0, mass2=1.2, a2=0.5 + 0.5j, lock=True):
    """Three-body model with the resonances R1 -> (01) and R2 -> (12)."""
    model = Model(MASSES, name="D")
    dt1 = resonance_tree(model, [0, 1], 2, "R1", mass1, 0.1)
    dt2 = resonance_tree(model, [1, 2], 0, "R2", mass2, 0.15, a2)
    model.add_component([dt1, dt2], name="main")
    if lock:
        model.lock()
    return model


def mass_shape(model, name):
    for dt in model.components[0].decay_trees:
        sub = dt.daughter_decay_trees[0]
        if sub.name == name:
            return sub.amplitude_components[0]
    raise KeyError(name)


def generator(seed=1):
    return PhaseSpaceGenerator(M0, MASSES, seed)


def generate(n, seed=1):
    return generator(seed).generate(n)


def data_set(model, n, seed=1):
    data = model.create_data_set()
    data.extend(generate(n, seed))
    return data
