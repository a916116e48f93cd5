import numpy as np
import pytest
import sympy

from pwa_cache.amp import *
from pwa_cache.decay_tree import DecayTree, FreeAmplitude
from pwa_cache.exceptions import ConfigurationError, NotFoundError
from pwa_cache.formula import BW_dom, Bprime_polynomial, create_function
from pwa_cache.model import Model
from pwa_cache.particle_combination import ParticleCombinationCache

from .common import build_model, data_set


def test_registry():
    assert get_mass_shape("BW") is BreitWigner
    assert get_mass_shape("BWR") is RelativisticBreitWigner
    assert get_spin_amplitude("legendre") is LegendreSpinAmplitude
    with pytest.raises(NotFoundError):
        get_mass_shape("Flatte")

    @register_mass_shape("my_bw")
    class MyBW(BreitWigner):
        pass

    assert get_mass_shape("my_bw") is MyBW
    with pytest.warns(UserWarning):
        register_mass_shape("my_bw", MyBW)


def test_breit_wigner():
    bw = BreitWigner("R", mass=1.0, width=0.1, fix=["width"])
    assert [p.name for p in bw.parameters] == ["R_mass", "R_width"]
    assert bw.param("width").fixed
    assert abs(bw.get_amp(1.0, None, None)) == pytest.approx(10.0)
    assert BreitWigner("S", mass=1.0).param("width").value == 0.05
    with pytest.raises(ConfigurationError):
        BreitWigner("R", width=0.1)
    with pytest.raises(ConfigurationError):
        BreitWigner("R", mass=1.0, spin=1)


def test_expression():
    shape = ExpressionMassShape("exp(-(m - m0)**2/s)", name="G", m0=1.0, s=0.5)
    assert shape.param_names == ("m0", "s")
    assert shape.get_amp(1.0, None, None) == pytest.approx(1.0)


def test_formula():
    z = sympy.Symbol("z")
    assert sympy.expand(Bprime_polynomial(2, z)) == z**2 + 3 * z + 9
    with pytest.raises(NotImplementedError):
        Bprime_polynomial(5, z)
    m, m0, g0 = sympy.symbols("m m0 g0")
    f = create_function(BW_dom(m, m0, g0), [m, m0, g0])
    assert f(1.0, 1.0, 0.1) == pytest.approx(-0.1j)


def test_valid_for():
    cache = ParticleCombinationCache()
    pc = cache.composite([cache.composite([0, 1]), 2])
    bw = BreitWigner("R", mass=1.0)
    with pytest.raises(ConfigurationError):
        bw.add_particle_combination(pc.daughters[1])
    bw.add_particle_combination(pc.daughters[0])
    assert bw.valid_for(pc.daughters[0])
    assert not bw.valid_for(pc)
    legendre = LegendreSpinAmplitude(2)
    with pytest.raises(ConfigurationError):
        legendre.add_particle_combination(cache.composite([0, 1, 2]))
    with pytest.raises(ConfigurationError):
        LegendreSpinAmplitude(-1)


def test_legendre_values():
    model = build_model()
    data = data_set(model, 5)
    model.calculate(data)
    dt = model.components[0].decay_trees[0]
    sub = dt.daughter_decay_trees[0]
    legendre = sub.amplitude_components[1]
    pc = sub.particle_combinations[0]
    for d in data:
        _, theta = model.helicity_angles.angles(d, pc)
        assert legendre.value(d, pc) == pytest.approx(np.cos(theta))
        assert 0 <= theta <= np.pi


def test_relativistic_breit_wigner():
    model = Model([0.5, 0.3, 0.2])
    gc = model.groupings
    pc = gc.composite([gc.composite([0, 1]), 2])
    dt = DecayTree(FreeAmplitude(1.0, [pc], name="D->R", parent="D"))
    sub = DecayTree(FreeAmplitude(1.0, [pc.daughters[0]], name="R", fixed=True))
    bwr = sub.add_amplitude_component(RelativisticBreitWigner("R", mass=1.0, width=0.1, l=1))
    dt.set_daughter_decay_tree(0, sub)
    model.add_component([dt])
    model.lock()
    data = data_set(model, 5)
    model.calculate(data)
    for d in data:
        v = bwr.value(d, pc.daughters[0])
        assert np.isfinite(abs(v))
        assert v != 0
    # at the pole the width is the nominal one
    assert abs(bwr._f(1.0, 1.0, 0.1, 0.5, 0.3)) == pytest.approx(10.0)
