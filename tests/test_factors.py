import pytest

from solver.factors import FactorCache, factors


def _brute_divisors(n):
    return tuple(d for d in range(1, n + 1) if n % d == 0)


def test_factors_small_values():
    assert factors(1) == (1,)
    assert factors(2) == (1, 2)
    assert factors(3) == (1, 3)
    assert factors(12) == (1, 2, 3, 4, 6, 12)
    assert factors(15) == (1, 3, 5, 15)
    assert factors(128) == (1, 2, 4, 8, 16, 32, 64, 128)


@pytest.mark.parametrize("n", range(1, 301))
def test_factors_match_every_divisor(n):
    fs = factors(n)
    assert fs == _brute_divisors(n)
    assert fs[0] == 1
    assert fs[-1] == n
    assert all(a < b for a, b in zip(fs, fs[1:]))


def test_factors_rejects_non_positive():
    with pytest.raises(ValueError):
        factors(0)
    with pytest.raises(ValueError):
        factors(-4)


def test_factor_cache_memoizes_per_instance():
    cache = FactorCache()
    first = cache.get(72)
    second = cache.get(72)
    assert first is second
    assert cache.hits == 1
    assert 72 in cache
    assert len(cache) == 1

    other = FactorCache()
    assert 72 not in other
