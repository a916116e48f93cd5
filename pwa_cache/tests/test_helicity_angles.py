import threading

from pwa_cache.helicity_angles import EventCache


def test_new_token_drops_entries():
    cache = EventCache()
    calls = []

    def f():
        calls.append(1)
        return len(calls)

    a, b = object(), object()
    assert cache.get_or_compute(a, "x", f) == 1
    assert cache.get_or_compute(a, "x", f) == 1
    assert cache.token is a
    assert cache.get_or_compute(b, "x", f) == 2
    assert cache.token is b
    assert cache.get_or_compute(a, "x", f) == 3


def test_invalidate():
    cache = EventCache()
    a = object()
    cache.get_or_compute(a, "x", lambda: 1.0)
    cache.invalidate()
    assert cache.token is None
    assert cache.get_or_compute(a, "x", lambda: 2.0) == 2.0


def test_recursive_compute():
    cache = EventCache()
    a = object()

    def frame(n):
        if n == 0:
            return 1
        return 2 * cache.get_or_compute(a, n - 1, lambda: frame(n - 1))

    assert cache.get_or_compute(a, 3, lambda: frame(3)) == 8
    assert cache.get_or_compute(a, 1, lambda: -1) == 2


def test_threads_alternating_tokens():
    cache = EventCache()
    tokens = [object() for i in range(2)]
    errors = []

    def work(i):
        for j in range(500):
            t = tokens[(i + j) % 2]
            value = cache.get_or_compute(t, "x", lambda: id(t))
            if value != id(t):
                errors.append((i, j))

    threads = [threading.Thread(target=work, args=(i,)) for i in range(2)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()
    assert errors == []
