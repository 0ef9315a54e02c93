# solver/factors.py
from typing import Dict, Tuple


def factors(n: int) -> Tuple[int, ...]:
    """Return every positive divisor of ``n`` in ascending order.

    Trial division runs up to ``n // 2``; odd numbers only have odd divisors,
    so they are scanned from 3 with a step of 2.
    """
    n = int(n)
    if n < 1:
        raise ValueError(f"factors() needs a positive integer, got {n}")
    if n == 1:
        return (1,)

    out = [1]
    start, step = (2, 1) if n % 2 == 0 else (3, 2)
    for i in range(start, n // 2 + 1, step):
        if n % i == 0:
            out.append(i)
    out.append(n)
    return tuple(out)


class FactorCache:
    """Memoized :func:`factors`, owned by one run or one configuration task."""

    def __init__(self) -> None:
        self._cache: Dict[int, Tuple[int, ...]] = {}
        self.hits = 0

    def get(self, n: int) -> Tuple[int, ...]:
        cached = self._cache.get(n)
        if cached is not None:
            self.hits += 1
            return cached
        result = factors(n)
        self._cache[n] = result
        return result

    def __contains__(self, n: int) -> bool:
        return n in self._cache

    def __len__(self) -> int:
        return len(self._cache)


__all__ = ["FactorCache", "factors"]
