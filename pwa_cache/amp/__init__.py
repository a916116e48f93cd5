"""
Amplitude components: mass shapes and spin amplitudes.

Each component composes a
:class:`~pwa_cache.data_accessor.RecalculableDataAccessor` that owns its cached
values, and exposes ``valid_for``, ``value`` and ``variable_status`` to decay
trees.
"""
from .core import (
    AmplitudeComponent,
    MassShape,
    SpinAmplitude,
    get_mass_shape,
    get_spin_amplitude,
    register_mass_shape,
    register_spin_amplitude,
)
from .mass_shapes import BreitWigner, ExpressionMassShape, RelativisticBreitWigner
from .spin import LegendreSpinAmplitude, UnitSpinAmplitude
