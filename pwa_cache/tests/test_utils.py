import json
import math

from pwa_cache.utils import *

from .common import write_temp_file


def test_load_config_file():
    with write_temp_file(json.dumps({"a": [1, 2]}), "temp_config_test.json") as f:
        assert load_config_file(f) == {"a": [1, 2]}
    with write_temp_file("a: [1, 2]\n", "temp_config_test.yml") as f:
        assert load_config_file(f) == {"a": [1, 2]}
        assert load_config_file("temp_config_test") == {"a": [1, 2]}


def test_std_polar():
    rho, phi = std_polar(2.0, 3 * math.pi)
    assert rho == 2.0
    assert abs(phi - math.pi) < 1e-12 or abs(phi + math.pi) < 1e-12
    assert std_polar(-1.0, 0.5) == (1.0, 0.5 + math.pi - 2 * math.pi)


def test_split_range():
    assert split_range(0, 3) == [(0, 0)]
    assert split_range(2, 5) == [(0, 1), (1, 2)]
    assert sum(b - a for a, b in split_range(101, 7)) == 101


def test_time_print():
    @time_print
    def f(x):
        return x + 1

    assert f(1) == 2
    assert f.__name__ == "f"
