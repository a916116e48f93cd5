import pytest

from pwa_cache.exceptions import ConfigurationError, ParameterIsFixed
from pwa_cache.parameter import *
from pwa_cache.status import VariableStatus


def test_set_value():
    p = RealParameter(1.0, name="m")
    assert p.variable_status == VariableStatus.changed
    p.variable_status = VariableStatus.unchanged
    p.set_value(1.0)
    assert p.variable_status == VariableStatus.unchanged
    p.set_value(2)
    assert p() == 2.0
    assert p.variable_status == VariableStatus.changed
    with pytest.raises(ConfigurationError):
        p.variable_status = VariableStatus.fixed


def test_fix():
    p = RealParameter(1.0, name="m")
    p.fix(3.0)
    assert p.fixed
    assert p.value == 3.0
    with pytest.raises(ParameterIsFixed):
        p.set_value(2.0)
    p.variable_status = VariableStatus.changed
    assert p.variable_status == VariableStatus.fixed
    with pytest.warns(UserWarning):
        p.fix()
    p.unfix()
    assert p.variable_status == VariableStatus.changed
    p.set_value(2.0)
    assert p.value == 2.0


def test_ranges():
    with pytest.raises(ConfigurationError):
        NonnegativeRealParameter(-1.0)
    assert NonnegativeRealParameter(0.0).value == 0.0
    with pytest.raises(ConfigurationError):
        PositiveRealParameter(0.0)


def test_complex():
    a = ComplexParameter(1.0)
    assert a.value == 1 + 0j
    a.set_reals([0.0, 2.0])
    assert a.value == 2j
    assert a.magnitude == 2.0
    assert a.phase == pytest.approx(1.5707963267948966)


def test_set_values():
    params = [RealParameter(1.0), ComplexParameter(1.0), RealParameter(2.0)]
    set_values(params, [3.0, 1.0, -1.0, 4.0])
    assert [p.value for p in params] == [3.0, 1 - 1j, 4.0]
    with pytest.raises(ConfigurationError):
        set_values(params, [1.0, 2.0])


def test_variable_status():
    a, b = RealParameter(1.0, fixed=True), RealParameter(1.0, fixed=True)
    assert variable_status([]) == VariableStatus.fixed
    assert variable_status([a, b]) == VariableStatus.fixed
    c = RealParameter(1.0)
    c.variable_status = VariableStatus.unchanged
    assert variable_status([a, c]) == VariableStatus.unchanged
    c.set_value(0.0)
    assert variable_status([a, c, b]) == VariableStatus.changed
