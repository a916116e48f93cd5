import pytest

from pwa_cache.config import (
    create_config,
    get_config,
    reset_config,
    set_config,
    temp_config,
)
from pwa_cache.exceptions import ConfigurationError


def test_config():
    set_, get_, regist_ = create_config()
    regist_("a", 1)
    assert get_("a") == 1
    set_("a", 2)
    assert get_("a") == 2
    assert get_("b", 3) == 3
    with pytest.raises(ConfigurationError):
        get_("b")
    with pytest.raises(ConfigurationError):
        set_("b", 1)
    with pytest.raises(ConfigurationError):
        regist_("a", 1)

    @regist_("f")
    def f():
        return 4

    assert get_("f")() == 4


def test_temp_config():
    n = get_config("n_partitions")
    with temp_config("n_partitions", n + 3):
        assert get_config("n_partitions") == n + 3
    assert get_config("n_partitions") == n
    with pytest.raises(ConfigurationError):
        set_config("no_such_config", 1)


def test_reset_config():
    set_config("partition_mode", "weave")
    set_config("n_partitions", 5)
    reset_config("n_partitions")
    assert get_config("n_partitions") == 1
    assert get_config("partition_mode") == "weave"
    reset_config()
    assert get_config("partition_mode") == "block"
    with pytest.raises(ConfigurationError):
        reset_config("no_such_config")
