"""Random prime generation for the factor search inputs."""

from __future__ import annotations

import random

# Deterministic Miller-Rabin witnesses, valid for every n < 3.3e24
_WITNESSES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41)


def is_prime(n: int) -> bool:
    """Primality test, exact for n < 3.3e24."""
    if n < 2:
        return False
    for p in _WITNESSES:
        if n % p == 0:
            return n == p
    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for a in _WITNESSES:
        x = pow(a, d, n)
        if x in (1, n - 1):
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def random_prime(bits: int, rng: random.Random | None = None) -> int:
    """Random prime with exactly ``bits`` bits, i.e. in ``[2**(bits-1), 2**bits)``."""
    if not 2 <= bits <= 80:
        raise ValueError(f"bits must be in [2, 80], got {bits}")
    rng = rng or random.Random()
    low, high = 1 << (bits - 1), (1 << bits) - 1
    while True:
        candidate = rng.randint(low, high) | 1 if bits > 2 else rng.randint(low, high)
        if is_prime(candidate):
            return candidate
