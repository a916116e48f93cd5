import gc

import numpy as np
import pytest

from pwa_cache.cached_value import ComplexCachedValue, RealCachedValue
from pwa_cache.data import DataPoint
from pwa_cache.data_accessor import (
    DataAccessor,
    DataAccessorRegistry,
    RecalculableDataAccessor,
)
from pwa_cache.exceptions import ConfigurationError, LockedError, NotFoundError
from pwa_cache.parameter import RealParameter
from pwa_cache.particle_combination import (
    ParticleCombination,
    ParticleCombinationCache,
    equal_by_orderless_content,
)


def test_register():
    cache = ParticleCombinationCache()
    a = DataAccessor()
    pc = cache.composite([0, 1])
    assert a.add_particle_combination(pc) == 0
    assert a.add_particle_combination(pc) == 0
    assert a.add_particle_combination(cache.composite([1, 2])) == 1
    assert a.symmetrization_index(pc) == 0
    assert a.has_particle_combination(pc)
    with pytest.raises(NotFoundError):
        a.symmetrization_index(cache.composite([0, 2]))
    with pytest.raises(ConfigurationError):
        a.add_particle_combination(ParticleCombination((0, 1)))
    with pytest.raises(ConfigurationError):
        a.add_particle_combination(None)


def test_slots():
    a = DataAccessor()
    r = RealCachedValue(a)
    c = a.allocate_slot("complex")
    assert isinstance(c, ComplexCachedValue)
    assert (r.index, r.position) == (0, 0)
    assert (c.index, c.position) == (1, 1)
    assert a.size == 3
    assert a.consistent()
    with pytest.raises(ConfigurationError):
        a.allocate_slot("matrix")
    with pytest.raises(ConfigurationError):
        r.add_dependency(r)
    with pytest.raises(ConfigurationError):
        r.add_dependency("mass")


def test_registry_lock():
    cache = ParticleCombinationCache()
    registry = DataAccessorRegistry()
    a = registry.register(DataAccessor())
    RealCachedValue(a)
    a.add_particle_combination(cache.composite([0, 1]))
    empty = registry.register(DataAccessor())
    assert a.index is None
    assert registry.lock()
    assert not registry.lock()
    assert a.index == 0
    assert empty.index is None
    assert len(registry) == 1
    assert registry[0] is a
    with pytest.raises(LockedError):
        registry.register(DataAccessor())
    with pytest.raises(LockedError):
        a.add_particle_combination(cache.composite([1, 2]))
    with pytest.raises(LockedError):
        RealCachedValue(a)


def test_registry_other_model():
    a = DataAccessor()
    DataAccessorRegistry().register(a)
    with pytest.raises(ConfigurationError):
        DataAccessorRegistry().register(a)


def test_registry_expired():
    cache = ParticleCombinationCache()
    registry = DataAccessorRegistry()
    for i in range(3):
        a = registry.register(DataAccessor())
        RealCachedValue(a)
        a.add_particle_combination(cache.composite([0, i + 1]))
        if i == 1:
            kept = a
    del a
    gc.collect()
    registry.lock()
    assert len(registry) == 1
    assert kept.index == 0


def test_prune():
    cache = ParticleCombinationCache()
    top = cache.composite([cache.composite([0, 1]), 2])
    free = cache.composite([0, 1])
    a = DataAccessor(equal_by_orderless_content)
    RealCachedValue(a)
    a.add_particle_combination(free)
    a.add_particle_combination(top)
    a.add_particle_combination(top.daughters[0])
    assert a.n_symmetrization_indices() == 2
    assert a.prune_symmetrization_indices(3) == 1
    assert a.n_symmetrization_indices() == 2
    assert a.symmetrization_index(top.daughters[0]) == 0
    assert a.symmetrization_index(top) == 1
    assert a.consistent()


def test_dependent_parameters():
    p = RealParameter(1.0, name="m")
    q = RealParameter(2.0, name="g")
    a = RecalculableDataAccessor(lambda *args: None)
    cv = RealCachedValue(a, [q])
    a.add_parameter(p)
    assert a.dependent_parameters() == [p, q]
    assert p in cv.parameter_dependencies


def test_storage_row():
    cache = ParticleCombinationCache()
    registry = DataAccessorRegistry()
    a = registry.register(DataAccessor())
    r = RealCachedValue(a)
    c = ComplexCachedValue(a)
    a.add_particle_combination(cache.composite([0, 1]))
    a.add_particle_combination(cache.composite([1, 2]))
    registry.lock()
    d = DataPoint(3, registry)
    assert d.storage[0].shape == (2, 3)
    c.set_value(1.0 - 2.0j, d, 1)
    r.set_value(0.5, d, 1)
    assert c.value(d, 1) == 1.0 - 2.0j
    assert r.value(d, 1) == 0.5
    assert np.all(d.storage[0][0] == 0)
