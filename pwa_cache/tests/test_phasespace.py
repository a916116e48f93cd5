import numpy as np
import pytest

from pwa_cache.angle import LorentzVector
from pwa_cache.phasespace import *

from .common import M0, MASSES


def test_phasespace():
    a = PhaseSpaceGenerator(M0, MASSES, seed=3)
    data = a.generate(100)
    assert len(data) == 100
    for event in data:
        assert len(event) == 3
        assert np.allclose([LorentzVector.M(p) for p in event], MASSES)
        total = np.sum(event, axis=0)
        assert np.allclose(total, [M0, 0.0, 0.0, 0.0])


def test_seed():
    a = PhaseSpaceGenerator(M0, MASSES, seed=4).generate(5)
    b = PhaseSpaceGenerator(M0, MASSES, seed=4).generate(5)
    assert np.allclose(a, b)


def test_out_of_phase_space():
    assert dalitz_point(M0, MASSES, 0.1, 1.0) == []
    assert dalitz_point(M0, MASSES, 1.0, 100.0) == []
    m2_12 = 1.0
    s_min, s_max = kine_min_max(m2_12, M0, *MASSES)
    p = dalitz_point(M0, MASSES, m2_12, (s_min + s_max) / 2)
    assert len(p) == 3
    assert np.isclose(LorentzVector.M2(p[0] + p[1]), m2_12)


def test_rejected_trials():
    a = PhaseSpaceGenerator(M0, MASSES, seed=1)
    results = [a() for _ in range(200)]
    assert any(len(i) == 0 for i in results)
    assert any(len(i) == 3 for i in results)


def test_error():
    with pytest.raises(ValueError):
        PhaseSpaceGenerator(1.0, [0.3, 0.4, 0.5])
    with pytest.raises(ValueError):
        PhaseSpaceGenerator(5.0, [1.0, 1.0])


def test_get_p():
    assert np.isclose(get_p(5.0, 3.0, 0.0), 1.6)
    assert get_p(1.0, 0.6, 0.6) == 0.0
    assert get_p2(1.0, 0.6, 0.6) < 0
