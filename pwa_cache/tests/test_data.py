import pytest

from pwa_cache.config import temp_config
from pwa_cache.data import *
from pwa_cache.exceptions import ConfigurationError
from pwa_cache.status import CalculationStatus

from .common import build_model, data_set


def test_block_partitions():
    model = build_model()
    data = data_set(model, 10)
    parts = create_block_partitions(data, 3)
    assert [len(p) for p in parts] == [4, 3, 3]
    points = [d for p in parts for d in p]
    assert all(a is b for a, b in zip(points, data))
    assert len(set(id(p.status) for p in parts)) == 3
    parts = create_block_partitions_by_size(data, 4)
    assert [len(p) for p in parts] == [4, 4, 2]


def test_weave_partitions():
    model = build_model()
    data = data_set(model, 7)
    parts = create_weave_partitions(data, 3)
    assert [len(p) for p in parts] == [3, 2, 2]
    assert list(parts[1])[1] is data[4]


def test_partition_data():
    model = build_model()
    data = data_set(model, 6)
    assert len(partition_data(data)) == 1
    with temp_config("partition_mode", "weave"):
        parts = partition_data(data, 2)
    assert isinstance(parts[0], DataPartitionWeave)
    with pytest.raises(ConfigurationError):
        partition_data(data, 2, mode="random")
    with pytest.raises(ConfigurationError):
        create_block_partitions(data, 0)


def test_seeded_status():
    model = build_model()
    data = data_set(model, 4)
    fm = model.four_momenta
    assert data.status.calculation_status(fm.M, 0) == CalculationStatus.calculated
    part = create_block_partitions(data, 2)[0]
    assert part.status.calculation_status(fm.M, 0) == CalculationStatus.calculated
    bw = model.registry.recalculable_accessors()[0]
    cv = bw.cached_values[0]
    assert part.status.calculation_status(cv, 0) == CalculationStatus.uncalculated


def test_clear():
    model = build_model()
    data = data_set(model, 4)
    model.calculate(data)
    data.clear()
    assert len(data) == 0
    bw = model.registry.recalculable_accessors()[0]
    cv = bw.cached_values[0]
    assert data.status.calculation_status(cv, 0) == CalculationStatus.uncalculated
