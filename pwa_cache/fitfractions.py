r"""
Fit-fraction tables of an integrated model.

defination:

.. math::
    FF_{i} = \frac{\int |A_i|^2 d\Omega }{ \int |\sum_{i}A_i|^2 d\Omega }
    \approx \frac{|a_i|^2 M_{ii}}{\sum_{k,l} a_k^* a_l M_{kl}}

interference fitfraction:

.. math::
    FF_{i,j} = \frac{\int 2Re(A_i A_j*) d\Omega }{ \int |\sum_{i}A_i|^2 d\Omega }
    = \frac{2 Re(a_i^* a_j M_{ij})}{\sum_{k,l} a_k^* a_l M_{kl}}

Diagonal entries are keyed by decay-tree name, interference entries by
``(name_i, name_j)`` with ``j`` before ``i``, as :func:`~pwa_cache.utils.tuple_table` expects.
"""
import numpy as np

from .variable import ParameterManager


def fit_fractions_table(model_integral, sum_diag=True):
    fit_frac = {}
    diag = []
    for (dtvi, _), ff, it in zip(
        model_integral.integrals,
        model_integral.fit_fractions(),
        model_integral.interference_terms(),
    ):
        names = [dt.name for dt in dtvi.decay_trees]
        for i, name in enumerate(names):
            fit_frac[name] = float(ff[i])
            diag.append(name)
            for j in range(i - 1, -1, -1):
                fit_frac[(name, names[j])] = float(it[j, i])
    if sum_diag:
        fit_frac["sum_diag"] = sum([fit_frac[i] for i in diag])
    return fit_frac


class FitFractions(object):
    """
    Fit fractions with errors propagated from the error matrix of the free
    amplitudes.

    The integrals only depend on the free amplitudes through the quadratic
    form, so the gradients are taken numerically on the cached integrals,
    without touching any data.

    :param model_integral: integrated :class:`~pwa_cache.integration.ModelIntegral`
    :param vm: parameter manager of the free amplitudes, in the order of
        the error matrix. By default all free amplitudes of the model.
    """

    def __init__(self, model_integral, vm=None):
        self.model_integral = model_integral
        if vm is None:
            vm = ParameterManager(model_integral.model.free_amplitudes())
        self.vm = vm

    def get_frac_grad(self, sum_diag=True, eps=1e-6):
        names = self.vm.trainable_vars
        x0 = self.vm.get_all_val()
        fit_frac = fit_fractions_table(self.model_integral, sum_diag)
        g_fit_frac = {k: np.zeros((len(names),)) for k in fit_frac}
        try:
            for i in range(len(names)):
                x = list(x0)
                x[i] = x0[i] + eps
                self.vm.set_all(x)
                up = fit_fractions_table(self.model_integral, sum_diag)
                x[i] = x0[i] - eps
                self.vm.set_all(x)
                down = fit_fractions_table(self.model_integral, sum_diag)
                for k in fit_frac:
                    g_fit_frac[k][i] = (up[k] - down[k]) / (2 * eps)
        finally:
            self.vm.set_all(x0)
        return fit_frac, g_fit_frac

    def get_frac(self, error_matrix=None, sum_diag=True):
        fit_frac, g_fit_frac = self.get_frac_grad(sum_diag=sum_diag)
        if error_matrix is None:
            return fit_frac, {}
        error_matrix = np.asarray(error_matrix)
        fit_frac_err = {}
        for k, v in g_fit_frac.items():
            fit_frac_err[k] = float(np.sqrt(np.dot(np.dot(error_matrix, v), v)))
        return fit_frac, fit_frac_err
