import math

import numpy as np
import pytest

from pwa_cache.data import partition_data
from pwa_cache.decay_tree import DecayTree, FreeAmplitude
from pwa_cache.exceptions import ConfigurationError, LockedError
from pwa_cache.model import FCN, Model, sum_of_log_intensity, topological_order
from pwa_cache.status import VariableStatus
from pwa_cache.variable import ParameterManager

from .common import build_model, data_set, generate, mass_shape, resonance_tree


def intensities(model, data):
    return np.array([model.intensity(d) for d in data])


def test_lock():
    model = build_model(lock=False)
    with pytest.raises(ConfigurationError):
        model.create_data_set()
    assert model.lock()
    assert not model.lock()
    assert model.consistent()
    with pytest.raises(LockedError):
        model.add_component(model.components[0].decay_trees)
    assert [c.name for c in model.components] == ["main"]
    assert len(model.free_amplitudes()) == 4
    names = [p.name for p in model.parameters()]
    assert "R1_mass" in names and "main_admixture" in names


def test_lock_empty():
    with pytest.raises(ConfigurationError):
        Model([0.1, 0.2, 0.3]).lock()
    with pytest.raises(ConfigurationError):
        Model([0.1])


def test_foreign_grouping():
    model = Model([0.5, 0.3, 0.2])
    other = Model([0.5, 0.3, 0.2])
    dt = resonance_tree(other, [0, 1], 2, "R1", 1.0, 0.1)
    with pytest.raises(ConfigurationError):
        model.add_component([dt])


def test_calculate_idempotent():
    model = build_model()
    data = data_set(model, 20)
    assert len(data) == 20
    assert model.calculate(data) > 0
    model.set_parameter_flags_to_unchanged()
    assert model.calculate(data) == 0
    values = intensities(model, data)
    assert np.all(values > 0)
    assert np.all(np.isfinite(values))


def test_dependency_propagation():
    model = build_model()
    data = data_set(model, 20)
    model.calculate(data)
    model.set_parameter_flags_to_unchanged()
    mass_shape(model, "R1").param("mass").set_value(1.1)
    assert model.calculate(data) == 1
    model.set_parameter_flags_to_unchanged()
    mass_shape(model, "R1").param("mass").set_value(1.1)
    assert model.calculate(data) == 0

    fresh = build_model(mass1=1.1)
    fresh_data = data_set(fresh, 20)
    fresh.calculate(fresh_data)
    assert np.allclose(intensities(model, data), intensities(fresh, fresh_data))


def test_free_amplitude_not_recalculated():
    model = build_model()
    data = data_set(model, 10)
    model.calculate(data)
    model.set_parameter_flags_to_unchanged()
    before = intensities(model, data)
    fa = model.free_amplitudes()[0]
    fa.set_value(2.0)
    assert model.calculate(data) == 0
    assert not np.allclose(intensities(model, data), before)


def test_partitions():
    model = build_model()
    data = data_set(model, 30)
    reference = data_set(model, 30)
    model.calculate(reference)
    parts = partition_data(data, 3)
    assert model.calculate(parts) > 0
    assert np.allclose(intensities(model, data), intensities(model, reference))
    model.set_parameter_flags_to_unchanged()
    mass_shape(model, "R2").param("width").set_value(0.2)
    assert model.calculate(parts) == 3
    model.calculate(reference)
    assert np.allclose(intensities(model, data), intensities(model, reference))


def test_add_event():
    model = build_model()
    data = model.create_data_set()
    assert not data.add([])
    assert len(data) == 0
    with pytest.raises(ConfigurationError):
        data.add(np.zeros((2, 4)))
    assert data.extend(generate(5)) == 5


def test_log_intensity():
    model = build_model()
    data = data_set(model, 5)
    model.calculate(data)
    for fa in model.components[0].decay_trees:
        fa.free_amplitude.set_value(0.0)
    assert model.log_intensity(data[0]) == -math.inf
    assert sum_of_log_intensity(model, data) == -math.inf


def test_fix_solitary():
    model = Model([0.5, 0.3, 0.2])
    dt = resonance_tree(model, [0, 1], 2, "R1", 1.0, 0.1)
    model.add_component([dt])
    model.lock()
    assert model.fix_solitary_free_amplitudes() == [dt.free_amplitude]
    assert dt.free_amplitude.fixed
    assert build_model().fix_solitary_free_amplitudes() == []


def test_topological_order():
    a, b, c = [object() for _ in range(3)]
    deps = {a: [b], b: [c], c: []}
    assert topological_order([a, b, c], deps.get) == [c, b, a]
    assert topological_order([a, b], deps.get) == [b, a]
    deps[c] = [a]
    with pytest.raises(ConfigurationError):
        topological_order([a, b, c], deps.get)


def test_fcn():
    model = build_model()
    data = partition_data(data_set(model, 20, seed=2), 2)
    phsp = partition_data(data_set(model, 50, seed=3), 2)
    vm = ParameterManager(model.free_amplitudes(), polar=False)
    fcn = FCN(model, data, phsp, vm=vm)
    x0 = vm.get_all_val()
    assert len(x0) == 4
    nll = fcn(x0)
    assert np.isfinite(nll)
    assert fcn(x0) == pytest.approx(nll, rel=1e-12)
    # the overall scale of the amplitudes cancels in the normalized likelihood
    assert fcn([2 * i for i in x0]) == pytest.approx(nll, rel=1e-9)
    g = fcn.grad(x0)
    assert g.shape == (4,)
    assert np.all(np.isfinite(g))
    assert fcn.n_call == 3 + 2 * 4 + 1


def test_fcn_zero_norm():
    model = build_model()
    data = partition_data(data_set(model, 20, seed=2), 2)
    phsp = partition_data(data_set(model, 50, seed=3), 2)
    mass = mass_shape(model, "R1").param("mass")
    vm = ParameterManager(model.free_amplitudes() + [mass], polar=False)
    fcn = FCN(model, data, phsp, vm=vm)
    x0 = vm.get_all_val()
    fcn(x0)
    assert fcn([0.0] * (len(x0) - 1) + [1.1]) == math.inf
    assert all(
        p.variable_status == VariableStatus.unchanged
        for p in model.parameters()
        if not p.fixed
    )
    # the zero-norm call has already recalculated the data with the new mass
    fresh = build_model(mass1=1.1)
    fresh_vm = ParameterManager(fresh.free_amplitudes(), polar=False)
    fresh_fcn = FCN(
        fresh,
        partition_data(data_set(fresh, 20, seed=2), 2),
        partition_data(data_set(fresh, 50, seed=3), 2),
        vm=fresh_vm,
    )
    expected = fresh_fcn(fresh_vm.get_all_val())
    assert fcn(x0[:-1] + [1.1]) == pytest.approx(expected, rel=1e-9)
