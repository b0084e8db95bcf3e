""" Pseudonyms and pseudonym signatures.

A pseudonym ``nym = sk * Hsk + r_nym * HRand`` commits to the user secret key
under fresh randomness, so that pseudonyms of the same key cannot be linked.
A ``NymSignature`` signs a message by proving knowledge of ``sk`` and
``r_nym`` for a pseudonym, without presenting a credential.

Example:
    >>> from random import Random
    >>> from idemix.issuer import IssuerKey
    >>> rng = Random(6)
    >>> ipk = IssuerKey.generate(["age"], rng=rng).ipk
    >>> sk = random_mod_order(rng)
    >>> pseudonym = Pseudonym.new(sk, ipk, rng)
    >>> sig = NymSignature.sign(sk, pseudonym, ipk, b"hello", rng)
    >>> sig.verify(pseudonym.nym, ipk, b"hello")
    True

"""

import logging
from collections import namedtuple

from .bn import ORDER, random_mod_order, get_rng
from .encode import challenge, nonced_challenge
from .pack import Packable, register_struct
from .signature import SIGN_LABEL

logger = logging.getLogger(__name__)


class Pseudonym(Packable, namedtuple("Pseudonym", ["nym", "r_nym"])):
    """ A pseudonym and the secret randomness that opens it. """

    __slots__ = ()

    @classmethod
    def new(cls, sk, ipk, rng=None):
        """ Returns a fresh pseudonym of ``sk``. """
        r_nym = random_mod_order(rng)
        return cls(ipk.hsk.mul2(sk, ipk.h_rand, r_nym), r_nym)

    def __repr__(self):
        return "Pseudonym(nym=%r, r_nym=<hidden>)" % (self.nym,)


class NymSignature(Packable, namedtuple("NymSignature", [
        "proof_c", "proof_s_sk", "proof_s_r_nym", "nonce"])):
    """ A signature on a message under a pseudonym. """

    __slots__ = ()

    @classmethod
    def sign(cls, sk, pseudonym, ipk, msg, rng=None):
        if rng is None:
            rng = get_rng()

        nonce = random_mod_order(rng)
        r_sk = random_mod_order(rng)
        r_r_nym = random_mod_order(rng)
        t = ipk.hsk.mul2(r_sk, ipk.h_rand, r_r_nym)

        c = challenge(SIGN_LABEL, t, pseudonym.nym, ipk.hash, msg)
        proof_c = nonced_challenge(c, nonce)

        logger.debug("Signed message under pseudonym")
        return cls(proof_c,
                   (r_sk + proof_c * sk) % ORDER,
                   (r_r_nym + proof_c * pseudonym.r_nym) % ORDER,
                   nonce)

    def verify(self, nym, ipk, msg):
        """ Verifies the signature on ``msg`` under the pseudonym ``nym``. """
        t = ipk.group.wsum([self.proof_s_sk, self.proof_s_r_nym, -self.proof_c],
                           [ipk.hsk, ipk.h_rand, nym])

        c = challenge(SIGN_LABEL, t, nym, ipk.hash, msg)
        if nonced_challenge(c, self.nonce) != self.proof_c:
            logger.debug("Pseudonym signature rejected: challenge mismatch")
            return False
        return True


register_struct(NymSignature, 16, ["bn", "bn", "bn", "bn"])
register_struct(Pseudonym, 17, ["g1", "bn"])


# --- TESTS ---

import pytest
from random import Random

from .errors import DecodeError
from .issuer import IssuerKey


@pytest.fixture(scope="module")
def user():
    rng = Random(41)
    ipk = IssuerKey.generate(["age"], rng=rng).ipk
    sk = random_mod_order(rng)
    return ipk, sk, Pseudonym.new(sk, ipk, rng)


def test_pseudonym(user):
    ipk, sk, pseudonym = user
    assert pseudonym.nym == ipk.hsk.mul(sk) + ipk.h_rand.mul(pseudonym.r_nym)
    assert "<hidden>" in repr(pseudonym)
    assert str(pseudonym.r_nym) not in repr(pseudonym)


def test_unlinkable_pseudonyms(user):
    ipk, sk, pseudonym = user
    other = Pseudonym.new(sk, ipk)
    assert other.nym != pseudonym.nym

    for p in [pseudonym, other]:
        sig = NymSignature.sign(sk, p, ipk, b"msg")
        assert sig.verify(p.nym, ipk, b"msg")


def test_sign_verify(user):
    ipk, sk, pseudonym = user
    sig = NymSignature.sign(sk, pseudonym, ipk, b"hello", Random(42))
    assert sig.verify(pseudonym.nym, ipk, b"hello")
    assert not sig.verify(pseudonym.nym, ipk, b"hellp")
    assert not sig.verify(Pseudonym.new(sk, ipk).nym, ipk, b"hello")
    assert not sig._replace(nonce=sig.nonce + 1).verify(pseudonym.nym, ipk, b"hello")
    assert not sig._replace(proof_s_sk=sig.proof_s_sk + 1).verify(pseudonym.nym, ipk, b"hello")

    other = IssuerKey.generate(["age"], rng=Random(43)).ipk
    assert not sig.verify(pseudonym.nym, other, b"hello")


def test_wrong_secret(user):
    ipk, sk, pseudonym = user
    sig = NymSignature.sign(sk + 1, pseudonym, ipk, b"hello")
    assert not sig.verify(pseudonym.nym, ipk, b"hello")


def test_fresh_signatures(user):
    ipk, sk, pseudonym = user
    sig1 = NymSignature.sign(sk, pseudonym, ipk, b"m")
    sig2 = NymSignature.sign(sk, pseudonym, ipk, b"m")
    assert sig1.nonce != sig2.nonce
    assert sig1.proof_c != sig2.proof_c


def test_encoding(user):
    ipk, sk, pseudonym = user
    sig = NymSignature.sign(sk, pseudonym, ipk, b"hello")
    sig2 = NymSignature.from_bytes(sig.to_bytes())
    assert sig2 == sig
    assert sig2.verify(pseudonym.nym, ipk, b"hello")
    assert Pseudonym.from_bytes(pseudonym.to_bytes()) == pseudonym

    with pytest.raises(DecodeError):
        NymSignature.from_bytes(pseudonym.to_bytes())


def test_tampering(user):
    ipk, sk, pseudonym = user
    data = NymSignature.sign(sk, pseudonym, ipk, b"hello").to_bytes()
    for i in range(len(data)):
        bad = data[:i] + bytes([data[i] ^ 0x01]) + data[i + 1:]
        try:
            assert not NymSignature.from_bytes(bad).verify(pseudonym.nym, ipk, b"hello")
        except DecodeError:
            pass
