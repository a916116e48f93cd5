"""
Events, data sets and partitions.

A :class:`DataPoint` carries the final-state four-momenta of one event and one
storage array per component with storage, of shape
``(n_symmetrization_indices, size)``.

A :class:`DataSet` is the whole collection and is also its own partition.
:class:`DataPartitionBlock` (contiguous) and :class:`DataPartitionWeave`
(strided) split it into disjoint slices; every partition owns its own
:class:`~pwa_cache.status_manager.StatusManager`, so partitions can be
calculated by different workers.

>>> [list(range(*i)) for i in split_range(5, 2)]
[[0, 1, 2], [3, 4]]

"""
import math

import numpy as np

from .config import get_config
from .exceptions import ConfigurationError
from .status import CalculationStatus, VariableStatus
from .utils import split_range


class DataPoint(object):
    def __init__(self, n_final_state, accessors):
        dtype = get_config("dtype")
        self.final_state_momenta = np.zeros((n_final_state, 4), dtype=dtype)
        self.storage = [
            np.zeros((a.n_symmetrization_indices(), a.size), dtype=dtype)
            for a in accessors
        ]

    def __repr__(self):
        return "DataPoint({})".format(self.final_state_momenta.tolist())


class DataPartition(object):
    """Slice of a data set with its own status table."""

    def __init__(self, data_set, status):
        self.data_set = data_set
        self.status = status

    def _points(self):
        raise NotImplementedError

    def __iter__(self):
        return iter(self._points())

    def __len__(self):
        return len(self._points())


class DataSet(DataPartition):
    def __init__(self, model):
        if not model.locked:
            raise ConfigurationError("data sets need a locked model")
        self.model = model
        self.points = []
        super().__init__(self, model.create_status_manager())

    def _points(self):
        return self.points

    def __getitem__(self, index):
        return self.points[index]

    def add(self, momenta):
        """
        Add an event from its final-state four-momenta and run the static
        components on it. An empty list (outside of phase space) is rejected
        and False is returned.
        """
        if len(momenta) == 0:
            return False
        d = DataPoint(self.model.n_final_state, self.model.registry)
        self.model.set_final_state_momenta(d, momenta, self.status)
        self.points.append(d)
        return True

    def extend(self, momenta_list):
        """Add several events; returns the number accepted."""
        return sum(1 for p in momenta_list if self.add(p))

    def clear(self):
        self.points = []
        self.status.set_all(CalculationStatus.uncalculated)
        self.status.set_all(VariableStatus.changed)


class DataPartitionBlock(DataPartition):
    """Contiguous slice ``[start, stop)``."""

    def __init__(self, data_set, start, stop, status=None):
        if status is None:
            status = _seeded_status(data_set)
        super().__init__(data_set, status)
        self.start = start
        self.stop = stop

    def _points(self):
        return self.data_set.points[self.start : self.stop]

    def __repr__(self):
        return "DataPartitionBlock[{}:{}]".format(self.start, self.stop)


class DataPartitionWeave(DataPartition):
    """Every ``step``-th event starting from ``start``."""

    def __init__(self, data_set, start, step, status=None):
        if status is None:
            status = _seeded_status(data_set)
        super().__init__(data_set, status)
        self.start = start
        self.step = step

    def _points(self):
        return self.data_set.points[self.start :: self.step]

    def __repr__(self):
        return "DataPartitionWeave[{}::{}]".format(self.start, self.step)


def _seeded_status(data_set):
    status = data_set.model.create_status_manager()
    status.copy_calculation_statuses(data_set.status)
    return status


def create_block_partitions(data_set, n):
    """``n`` contiguous partitions of nearly equal size."""
    if n < 1:
        raise ConfigurationError("number of partitions must be positive")
    return [
        DataPartitionBlock(data_set, start, stop)
        for start, stop in split_range(len(data_set), n)
    ]


def create_block_partitions_by_size(data_set, size):
    """Contiguous partitions of at most ``size`` events."""
    if size < 1:
        raise ConfigurationError("partition size must be positive")
    n = max(1, math.ceil(len(data_set) / size))
    return [
        DataPartitionBlock(data_set, i * size, min((i + 1) * size, len(data_set)))
        for i in range(n)
    ]


def create_weave_partitions(data_set, n):
    """``n`` strided partitions."""
    if n < 1:
        raise ConfigurationError("number of partitions must be positive")
    n = max(1, min(n, len(data_set)))
    return [DataPartitionWeave(data_set, i, n) for i in range(n)]


def partition_data(data_set, n=None, mode=None):
    """
    Partitions of ``data_set`` following the ``n_partitions`` and
    ``partition_mode`` configurations unless given.
    """
    n = get_config("n_partitions") if n is None else n
    mode = get_config("partition_mode") if mode is None else mode
    if mode == "block":
        return create_block_partitions(data_set, n)
    if mode == "weave":
        return create_weave_partitions(data_set, n)
    raise ConfigurationError("unknown partition mode {}".format(mode))
