r"""
Monte-Carlo integrals of coherent sums of decay trees.

For decay trees with free amplitudes :math:`a_i` and data-dependent amplitudes
:math:`A_i`, the integral of :math:`|\sum_i a_i A_i|^2` over a sample is

.. math::
    I = \sum_{i,j} a_i^* a_j M_{ij}, \quad M_{ij} = \langle A_i^* A_j \rangle

:class:`DecayTreeVectorIntegral` keeps the running means of the diagonal and
of the upper triangle of :math:`M`, so a change of free amplitudes never needs
the data again. Partial integrals over disjoint partitions are merged with the
weighted parallel-mean rule.
"""
import logging
import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
from opt_einsum import contract

from .config import get_config
from .exceptions import CalculationCancelled, ConfigurationError
from .status import VariableStatus
from .utils import split_range

logger = logging.getLogger(__name__)


class DecayTreeVectorIntegral(object):
    def __init__(self, decay_trees):
        self.decay_trees = list(decay_trees)
        self.reset()

    def reset(self):
        n = len(self.decay_trees)
        self.diagonals = np.zeros((n,), dtype=np.float64)
        self.off_diagonals = np.zeros((n, n), dtype=np.complex128)
        self.n_events = 0

    def update(self, amplitudes):
        """Add one event with data-dependent amplitudes ``amplitudes``."""
        a = np.asarray(amplitudes, dtype=np.complex128)
        if a.shape != self.diagonals.shape:
            raise ConfigurationError(
                "{} amplitudes given for {} decay trees".format(
                    a.shape, len(self.decay_trees)
                )
            )
        self.n_events += 1
        n = self.n_events
        self.diagonals += (np.abs(a) ** 2 - self.diagonals) / n
        iu = np.triu_indices(len(a), 1)
        prod = np.conj(a)[iu[0]] * a[iu[1]]
        self.off_diagonals[iu] += (prod - self.off_diagonals[iu]) / n

    def update_data_point(self, data_point):
        self.update([dt.data_dependent_amplitude(data_point) for dt in self.decay_trees])

    def merge(self, other):
        """Merge the means of a disjoint sample in place."""
        if other.decay_trees != self.decay_trees:
            raise ConfigurationError("cannot merge integrals of different decay trees")
        if other.n_events == 0:
            return self
        n = self.n_events + other.n_events
        w = other.n_events / n
        self.diagonals += (other.diagonals - self.diagonals) * w
        self.off_diagonals += (other.off_diagonals - self.off_diagonals) * w
        self.n_events = n
        return self

    def copy(self):
        ret = DecayTreeVectorIntegral.__new__(DecayTreeVectorIntegral)
        ret.decay_trees = list(self.decay_trees)
        ret.diagonals = self.diagonals.copy()
        ret.off_diagonals = self.off_diagonals.copy()
        ret.n_events = self.n_events
        return ret

    def empty_copy(self):
        return DecayTreeVectorIntegral(self.decay_trees)

    def assign(self, other):
        """Take over the accumulators of ``other``."""
        self.diagonals = other.diagonals
        self.off_diagonals = other.off_diagonals
        self.n_events = other.n_events

    def changed(self):
        return any(
            dt.data_dependent_amplitude_status() == VariableStatus.changed
            for dt in self.decay_trees
        )

    def free_amplitudes(self):
        return np.array(
            [dt.data_independent_amplitude() for dt in self.decay_trees],
            dtype=np.complex128,
        )

    def __len__(self):
        return len(self.decay_trees)

    def __repr__(self):
        return "DecayTreeVectorIntegral({}, n_events={})".format(
            [dt.name for dt in self.decay_trees], self.n_events
        )


def cached_integrals(dtvi):
    """Hermitian matrix :math:`M_{ij}` without free amplitudes."""
    ret = np.diag(dtvi.diagonals).astype(np.complex128)
    upper = np.triu(dtvi.off_diagonals, 1)
    return ret + upper + np.conj(upper).T


def integrals(dtvi):
    """Hermitian matrix :math:`a_i^* a_j M_{ij}`."""
    a = dtvi.free_amplitudes()
    return np.conj(a)[:, None] * cached_integrals(dtvi) * a[None, :]


def integral(dtvi):
    a = dtvi.free_amplitudes()
    return float(np.real(contract("i,ij,j->", np.conj(a), cached_integrals(dtvi), a)))


def fit_fractions(dtvi):
    """:math:`|a_i|^2 M_{ii} / I` for every decay tree."""
    return np.real(np.diag(integrals(dtvi))) / integral(dtvi)


def interference_terms(dtvi):
    """:math:`2 Re(a_i^* a_j M_{ij}) / I` for ``i < j``, zero elsewhere."""
    return 2 * np.real(np.triu(integrals(dtvi), 1)) / integral(dtvi)


class ModelIntegral(object):
    """One :class:`DecayTreeVectorIntegral` per model component with its admixture."""

    def __init__(self, model):
        if not model.locked:
            raise ConfigurationError("integrals need a locked model")
        self.model = model
        self.integrals = [
            (DecayTreeVectorIntegral(c.decay_trees), c.admixture)
            for c in model.components
        ]

    def __iter__(self):
        return iter(self.integrals)

    def integral(self):
        return math.fsum(adm.value * integral(dtvi) for dtvi, adm in self.integrals)

    def fit_fractions(self):
        total = self.integral()
        return [
            adm.value * np.real(np.diag(integrals(dtvi))) / total
            for dtvi, adm in self.integrals
        ]

    def interference_terms(self):
        total = self.integral()
        return [
            adm.value * 2 * np.real(np.triu(integrals(dtvi), 1)) / total
            for dtvi, adm in self.integrals
        ]

    @property
    def n_events(self):
        return max([dtvi.n_events for dtvi, _ in self.integrals], default=0)


def _check_cancel(cancel):
    if cancel is not None and cancel.is_set():
        raise CalculationCancelled("integration cancelled")


class ImportanceSampler(object):
    """
    Integrates a model over phase-space samples.

    Only the component integrals whose decay trees changed (or that were never
    computed) are recomputed. Partial results are accumulated on fresh copies,
    merged once every worker has finished, and then swapped in. If a worker
    fails or ``cancel`` (a :class:`threading.Event`) is set, the previous
    integrals are kept.
    """

    @staticmethod
    def _todo(model_integral):
        return [
            dtvi
            for dtvi, _ in model_integral.integrals
            if dtvi.n_events == 0 or dtvi.changed()
        ]

    @staticmethod
    def _swap(todo, results):
        merged = [i.empty_copy() for i in todo]
        for res in results:
            for m, r in zip(merged, res):
                m.merge(r)
        for i, m in zip(todo, merged):
            i.assign(m)

    @staticmethod
    def calculate(model_integral, partitions, cancel=None, max_workers=None):
        """
        Integrate over ``partitions`` of a phase-space data set, one worker
        per partition. Returns the number of recomputed component integrals.
        """
        todo = ImportanceSampler._todo(model_integral)
        if not todo:
            return 0
        model = model_integral.model
        if max_workers is None:
            max_workers = get_config("max_workers")

        def work(partition):
            model.calculate(partition)
            ret = [i.empty_copy() for i in todo]
            for d in partition:
                _check_cancel(cancel)
                for r in ret:
                    r.update_data_point(d)
            return ret

        partitions = list(partitions)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(work, p) for p in partitions]
        results = [f.result() for f in futures]
        ImportanceSampler._swap(todo, results)
        logger.debug(
            "integrated %d components over %d partitions", len(todo), len(partitions)
        )
        return len(todo)

    @staticmethod
    def calculate_generated(
        model_integral, generator, n_events, batch_size=None, n_threads=1, cancel=None
    ):
        """
        Integrate over ``n_events`` events drawn from ``generator``. Each
        thread refills its own data set with at most ``batch_size`` events at a
        time; rejected trials (the empty list) are skipped.
        """
        model = model_integral.model
        todo = [dtvi for dtvi, _ in model_integral.integrals]
        n_threads = max(1, n_threads)
        if batch_size is None:
            batch_size = max(1, math.ceil(n_events / n_threads))

        def work(n):
            data = model.create_data_set()
            ret = [i.empty_copy() for i in todo]
            remaining = n
            while remaining > 0:
                _check_cancel(cancel)
                data.clear()
                size = min(batch_size, remaining)
                while len(data) < size:
                    data.add(generator())
                model.calculate(data)
                for d in data:
                    for r in ret:
                        r.update_data_point(d)
                remaining -= len(data)
            return ret

        with ThreadPoolExecutor(max_workers=n_threads) as executor:
            futures = [
                executor.submit(work, stop - start)
                for start, stop in split_range(n_events, n_threads)
            ]
        results = [f.result() for f in futures]
        ImportanceSampler._swap(todo, results)
        return n_events
