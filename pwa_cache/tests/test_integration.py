import math
import threading

import numpy as np
import pytest

from pwa_cache.data import partition_data
from pwa_cache.exceptions import CalculationCancelled, ConfigurationError
from pwa_cache.integration import *
from pwa_cache.utils import polar_to_complex

from .common import build_model, data_set, generator, mass_shape


class Tree(object):
    """Decay tree stand-in with a fixed free amplitude."""

    def __init__(self, name, a):
        self.name = name
        self.a = a

    def data_independent_amplitude(self):
        return self.a


def test_total_integral():
    trees = [Tree("a1", polar_to_complex(1.0, 0.0)), Tree("a2", 2j)]
    dtvi = DecayTreeVectorIntegral(trees)
    dtvi.diagonals[:] = [1.0, 1.0]
    dtvi.off_diagonals[0, 1] = 0.5
    dtvi.n_events = 1
    assert integral(dtvi) == pytest.approx(5.0)
    assert np.allclose(fit_fractions(dtvi), [0.2, 0.8])
    assert np.allclose(interference_terms(dtvi), 0.0)
    m = cached_integrals(dtvi)
    assert np.allclose(m, np.conj(m).T)
    assert m[1, 0] == 0.5


def random_amplitudes(n, size, seed=1):
    rng = np.random.default_rng(seed)
    return rng.normal(size=(n, size)) + 1j * rng.normal(size=(n, size))


def test_merge():
    trees = [Tree(str(i), 1.0) for i in range(3)]
    amps = random_amplitudes(1000, 3)
    whole = DecayTreeVectorIntegral(trees)
    for a in amps:
        whole.update(a)
    merged = DecayTreeVectorIntegral(trees)
    for i in range(4):
        part = DecayTreeVectorIntegral(trees)
        for a in amps[i * 250 : (i + 1) * 250]:
            part.update(a)
        merged.merge(part)
    assert merged.n_events == 1000
    assert np.allclose(merged.diagonals, whole.diagonals, rtol=1e-9, atol=0)
    assert np.allclose(merged.off_diagonals, whole.off_diagonals, rtol=1e-9, atol=1e-12)
    assert np.allclose(whole.diagonals, np.mean(np.abs(amps) ** 2, axis=0))
    assert np.isclose(
        whole.off_diagonals[0, 2], np.mean(np.conj(amps[:, 0]) * amps[:, 2])
    )


def test_merge_unequal():
    trees = [Tree("a", 1.0)]
    small, large = DecayTreeVectorIntegral(trees), DecayTreeVectorIntegral(trees)
    small.update([1.0])
    for _ in range(9):
        large.update([3.0])
    small.merge(large)
    assert small.diagonals[0] == pytest.approx(8.2)
    with pytest.raises(ConfigurationError):
        small.merge(DecayTreeVectorIntegral([Tree("b", 1.0)]))
    with pytest.raises(ConfigurationError):
        small.update([1.0, 2.0])


def test_importance_sampler():
    model = build_model()
    phsp = data_set(model, 40, seed=5)
    model_integral = ModelIntegral(model)
    assert ImportanceSampler.calculate(model_integral, partition_data(phsp, 2)) == 1
    assert model_integral.n_events == 40
    mean = np.mean([model.intensity(d) for d in phsp])
    assert model_integral.integral() == pytest.approx(mean, rel=1e-9)
    ff = model_integral.fit_fractions()[0]
    it = model_integral.interference_terms()[0]
    assert np.sum(ff) + np.sum(it) == pytest.approx(1.0)

    model.set_parameter_flags_to_unchanged()
    parts = partition_data(phsp, 4)
    assert ImportanceSampler.calculate(model_integral, parts) == 0
    model.free_amplitudes()[0].set_value(3.0)
    assert ImportanceSampler.calculate(model_integral, parts) == 0
    mass_shape(model, "R1").param("mass").set_value(1.05)
    assert ImportanceSampler.calculate(model_integral, parts) == 1
    assert model_integral.n_events == 40
    mean = np.mean([model.intensity(d) for d in phsp])
    assert model_integral.integral() == pytest.approx(mean, rel=1e-9)


def test_cancel():
    model = build_model()
    phsp = data_set(model, 10)
    model_integral = ModelIntegral(model)
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(CalculationCancelled):
        ImportanceSampler.calculate(model_integral, [phsp], cancel=cancel)
    assert model_integral.n_events == 0


def test_generated():
    model = build_model()
    model_integral = ModelIntegral(model)
    n = ImportanceSampler.calculate_generated(
        model_integral, generator(7), 50, batch_size=20, n_threads=2
    )
    assert n == 50
    assert model_integral.n_events == 50
    assert model_integral.integral() > 0
    assert math.isfinite(model_integral.integral())
