""" Scalar arithmetic modulo the order ``q`` of the idemix pairing group.

Scalars are plain Python integers, always reduced into ``[0, q)``. Random
scalars are drawn from an explicit random source, so that tests may inject a
seeded generator; by default every thread uses its own ``SystemRandom``.

Example:
    >>> x = random_mod_order()
    >>> 0 < x < ORDER
    True
    >>> (x * mod_inverse(x)) % ORDER
    1
    >>> hash_mod_order(b"idemix") == hash_mod_order(b"idemix")
    True

"""

import threading
from hashlib import sha256
from random import Random, SystemRandom

from py_ecc.optimized_bn128 import curve_order

ORDER = curve_order

_thread_local = threading.local()


def get_rng():
    """ Returns the random source of the calling thread. """
    try:
        return _thread_local.rng
    except AttributeError:
        _thread_local.rng = SystemRandom()
        return _thread_local.rng


class LockedRandom(object):
    """ Serialises access to a random source that is shared between threads. """

    def __init__(self, rng):
        self._rng = rng
        self._lock = threading.Lock()

    def randrange(self, start, stop):
        with self._lock:
            return self._rng.randrange(start, stop)


def random_mod_order(rng=None):
    """ Returns a uniformly random scalar in ``[1, q)``.

    Args:
        rng: an object with a ``randrange`` method; defaults to the calling
            thread's cryptographically secure source.
    """
    if rng is None:
        rng = get_rng()
    return rng.randrange(1, ORDER)


def mod_inverse(x):
    """ Returns the inverse of ``x`` modulo the group order. """
    x %= ORDER
    if x == 0:
        raise ValueError("No inverse")
    return pow(x, -1, ORDER)


def hash_mod_order(data):
    """ Hashes bytes with SHA-256 into a scalar. """
    return int.from_bytes(sha256(data).digest(), "big") % ORDER


# --- TESTS ---

import pytest


def test_random_range():
    rng = Random(1)
    xs = [random_mod_order(rng) for _ in range(50)]
    assert all(0 < x < ORDER for x in xs)
    assert len(set(xs)) == 50


def test_seeded_rng_is_deterministic():
    assert random_mod_order(Random(7)) == random_mod_order(Random(7))


def test_mod_inverse():
    x = random_mod_order()
    assert (x * mod_inverse(x)) % ORDER == 1
    assert mod_inverse(x + ORDER) == mod_inverse(x)
    with pytest.raises(ValueError):
        mod_inverse(ORDER)


def test_hash_mod_order():
    h = hash_mod_order(b"credRequest")
    assert 0 <= h < ORDER
    assert h != hash_mod_order(b"credRequesu")


def test_thread_local_rng():
    seen = []

    def worker():
        seen.append(get_rng())

    threads = [threading.Thread(target=worker) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(map(id, seen))) == 3
    assert get_rng() is get_rng()


def test_locked_random():
    shared = LockedRandom(Random(3))
    results = []

    def worker():
        for _ in range(100):
            results.append(random_mod_order(shared))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 400
    assert len(set(results)) == 400
