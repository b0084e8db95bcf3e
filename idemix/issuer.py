""" Issuer keys.

An issuer key holds the secret ``isk`` and the public key ``ipk``. The public
key carries the generators used for the credential attributes, and a proof
that ``W = isk * g2`` and ``BarG2 = isk * BarG1`` share the same secret.

Example:
    >>> from random import Random
    >>> key = IssuerKey.generate(["age", "country"], rng=Random(1))
    >>> key.ipk.check()
    True
    >>> IssuerPublicKey.from_bytes(key.ipk.to_bytes()) == key.ipk
    True

"""

import logging
from collections import namedtuple
from hmac import compare_digest

from .bn import ORDER, random_mod_order, hash_mod_order, get_rng
from .bp import BpGroup
from .encode import bn_to_bytes, challenge
from .errors import DuplicateAttributeError, InvalidArgumentError, DecodeError
from .pack import Packable, register_struct

logger = logging.getLogger(__name__)


class IssuerPublicKey(Packable, namedtuple("IssuerPublicKey", [
        "attribute_names", "hsk", "h_rand", "h_attrs", "w",
        "bar_g1", "bar_g2", "proof_c", "proof_s", "hash"])):
    """ The public key of an issuer. """

    __slots__ = ()

    @property
    def group(self):
        return self.hsk.group

    def _well_formed(self):
        names = self.attribute_names
        return (len(set(names)) == len(names)
                and len(self.h_attrs) == len(names))

    def _checked(self):
        if not self._well_formed():
            raise DecodeError("Attribute names and generators do not match")
        return self

    def compute_hash(self):
        """ Returns the hash of the encoded key, with the hash field left empty. """
        return bn_to_bytes(hash_mod_order(self._replace(hash=b"").to_bytes()))

    def check(self):
        """ Checks the proof of the issuer secret and the hash of the key. """
        if any(field is None for field in self) or not self._well_formed():
            return False
        if self.bar_g1.isinf():
            logger.debug("Public key rejected: BarG1 is the point at infinity")
            return False

        G = self.group
        g2 = G.gen2()
        t1 = G.wsum([self.proof_s, -self.proof_c], [g2, self.w])
        t2 = self.bar_g1.mul2(self.proof_s, self.bar_g2, -self.proof_c)

        c = challenge(t1, t2, g2, self.bar_g1, self.w, self.bar_g2)
        if c != self.proof_c:
            logger.debug("Public key rejected: issuer secret proof does not verify")
            return False

        if not compare_digest(self.compute_hash(), self.hash):
            logger.debug("Public key rejected: hash mismatch")
            return False
        return True


class IssuerKey(Packable, namedtuple("IssuerKey", ["isk", "ipk"])):
    """ An issuer secret key together with its public key. """

    __slots__ = ()

    @classmethod
    def generate(cls, attribute_names, G=None, rng=None):
        """ Generates a fresh issuer key for the given attribute names.

        Args:
            attribute_names: the ordered, unique names of the attributes.
            G: the pairing group, defaults to ``BpGroup()``.
            rng: the random source, defaults to the thread's ``SystemRandom``.
        """
        names = tuple(attribute_names)
        if not all(isinstance(n, str) for n in names):
            raise InvalidArgumentError("Attribute names must be strings")
        if len(set(names)) != len(names):
            raise DuplicateAttributeError("Attribute names must be unique")

        if G is None:
            G = BpGroup()
        if rng is None:
            rng = get_rng()
        g1, g2 = G.gen1(), G.gen2()

        isk = random_mod_order(rng)
        w = g2.mul(isk)

        h_attrs = tuple(g1.mul(random_mod_order(rng)) for _ in names)
        hsk = g1.mul(random_mod_order(rng))
        h_rand = g1.mul(random_mod_order(rng))
        bar_g1 = g1.mul(random_mod_order(rng))
        bar_g2 = bar_g1.mul(isk)

        # Proof that W and BarG2 share the exponent isk
        r = random_mod_order(rng)
        t1 = g2.mul(r)
        t2 = bar_g1.mul(r)
        proof_c = challenge(t1, t2, g2, bar_g1, w, bar_g2)
        proof_s = (proof_c * isk + r) % ORDER

        ipk = IssuerPublicKey(names, hsk, h_rand, h_attrs, w, bar_g1, bar_g2,
                              proof_c, proof_s, b"")
        ipk = ipk._replace(hash=ipk.compute_hash())

        logger.debug("Generated issuer key for attributes %s", names)
        return cls(isk, ipk)

    def __repr__(self):
        return "IssuerKey(isk=<hidden>, ipk=%r)" % (self.ipk,)


register_struct(IssuerPublicKey, 10, [
    ["str"], "g1", "g1", ["g1"], "g2", "g1", "g1", "bn", "bn", "bytes"])
register_struct(IssuerKey, 11, ["bn", IssuerPublicKey])


# --- TESTS ---

import pytest
from random import Random


@pytest.fixture(scope="module")
def key():
    return IssuerKey.generate(["age", "country"], rng=Random(5))


def test_generate(key):
    ipk = key.ipk
    assert ipk.check()
    assert ipk.attribute_names == ("age", "country")
    assert len(ipk.h_attrs) == 2
    assert ipk.w == ipk.group.gen2().mul(key.isk)
    assert ipk.bar_g2 == ipk.bar_g1.mul(key.isk)
    assert ipk.hash == ipk.compute_hash()


def test_no_attributes():
    key = IssuerKey.generate([], rng=Random(2))
    assert key.ipk.check()


def test_seeded_generation():
    k1 = IssuerKey.generate(["a"], rng=Random(9))
    k2 = IssuerKey.generate(["a"], rng=Random(9))
    assert k1 == k2


def test_duplicate_names():
    with pytest.raises(DuplicateAttributeError):
        IssuerKey.generate(["age", "age"])
    with pytest.raises(InvalidArgumentError):
        IssuerKey.generate(["age", 5])


def test_repr_hides_secret(key):
    assert str(key.isk) not in repr(key)
    assert "<hidden>" in repr(key)


def test_encoding(key):
    ipk2 = IssuerPublicKey.from_bytes(key.ipk.to_bytes())
    assert ipk2 == key.ipk
    assert ipk2.check()

    key2 = IssuerKey.from_bytes(key.to_bytes())
    assert key2 == key
    assert isinstance(key2.ipk, IssuerPublicKey)


def test_decode_rejects_mismatch(key):
    short = key.ipk._replace(h_attrs=key.ipk.h_attrs[:1])
    with pytest.raises(DecodeError):
        IssuerPublicKey.from_bytes(short.to_bytes())

    dup = key.ipk._replace(attribute_names=("age", "age"))
    with pytest.raises(DecodeError):
        IssuerPublicKey.from_bytes(dup.to_bytes())


def test_check_failures(key):
    ipk = key.ipk
    G = ipk.group
    assert not ipk._replace(hash=b"\x00" * 32).check()
    assert not ipk._replace(proof_s=ipk.proof_s + 1).check()
    assert not ipk._replace(proof_c=ipk.proof_c + 1).check()
    assert not ipk._replace(w=ipk.w.double()).check()
    assert not ipk._replace(bar_g1=G.inf1()).check()
    assert not ipk._replace(hsk=G.gen1()).check()
    assert not ipk._replace(attribute_names=("age", "city")).check()
    assert not ipk._replace(h_rand=None).check()
    assert not ipk._replace(h_attrs=ipk.h_attrs[:1]).check()


def test_tampering(key):
    data = key.ipk.to_bytes()
    for i in range(0, len(data), 7):
        bad = data[:i] + bytes([data[i] ^ 0x01]) + data[i + 1:]
        try:
            assert not IssuerPublicKey.from_bytes(bad).check()
        except DecodeError:
            pass
