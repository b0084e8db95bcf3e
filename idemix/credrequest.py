""" Credential requests.

A user asks for a credential by committing to their secret key ``sk`` with
a blinding scalar ``cred_s1``, as ``nym = sk * Hsk + cred_s1 * HRand``, and
proving knowledge of both. The proof is bound to a fresh nonce chosen by the
issuer, and to the hash of the issuer public key.
"""

import logging
from collections import namedtuple

from .bn import ORDER, random_mod_order, get_rng
from .encode import challenge
from .pack import Packable, register_struct

logger = logging.getLogger(__name__)

CREDREQUEST_LABEL = b"credRequest"


class CredRequest(Packable, namedtuple("CredRequest", [
        "nym", "issuer_nonce", "proof_c", "proof_s1", "proof_s2"])):
    """ A request for a credential, committing to the user secret key. """

    __slots__ = ()

    @classmethod
    def create(cls, sk, cred_s1, issuer_nonce, ipk, rng=None):
        """ Creates a request, proving knowledge of ``sk`` and ``cred_s1``.

        Example:
            >>> from random import Random
            >>> from idemix.issuer import IssuerKey
            >>> rng = Random(3)
            >>> ipk = IssuerKey.generate(["age"], rng=rng).ipk
            >>> sk, cred_s1, nonce = [random_mod_order(rng) for _ in range(3)]
            >>> CredRequest.create(sk, cred_s1, nonce, ipk, rng).check(ipk)
            True

        """
        if rng is None:
            rng = get_rng()

        nym = ipk.hsk.mul2(sk, ipk.h_rand, cred_s1)

        r_sk = random_mod_order(rng)
        r_rand = random_mod_order(rng)
        t = ipk.hsk.mul2(r_sk, ipk.h_rand, r_rand)

        proof_c = challenge(CREDREQUEST_LABEL, t, ipk.hsk, nym, issuer_nonce, ipk.hash)
        proof_s1 = (proof_c * sk + r_sk) % ORDER
        proof_s2 = (proof_c * cred_s1 + r_rand) % ORDER

        logger.debug("Created credential request")
        return cls(nym, issuer_nonce % ORDER, proof_c, proof_s1, proof_s2)

    def check(self, ipk):
        """ Verifies the proof of knowledge of the committed secrets. """
        t = ipk.group.wsum([self.proof_s1, self.proof_s2, -self.proof_c],
                           [ipk.hsk, ipk.h_rand, self.nym])

        c = challenge(CREDREQUEST_LABEL, t, ipk.hsk, self.nym, self.issuer_nonce, ipk.hash)
        if c != self.proof_c:
            logger.debug("Credential request rejected: challenge mismatch")
            return False
        return True


register_struct(CredRequest, 12, ["g1", "bn", "bn", "bn", "bn"])


# --- TESTS ---

import pytest
from random import Random

from .errors import DecodeError
from .issuer import IssuerKey


@pytest.fixture(scope="module")
def material():
    rng = Random(11)
    key = IssuerKey.generate(["age", "country"], rng=rng)
    sk = random_mod_order(rng)
    cred_s1 = random_mod_order(rng)
    nonce = random_mod_order(rng)
    request = CredRequest.create(sk, cred_s1, nonce, key.ipk, rng)
    return key, sk, cred_s1, nonce, request


def test_create_check(material):
    key, sk, cred_s1, nonce, request = material
    assert request.check(key.ipk)
    assert request.nym == key.ipk.hsk.mul(sk) + key.ipk.h_rand.mul(cred_s1)
    assert request.issuer_nonce == nonce


def test_fresh_proofs(material):
    key, sk, cred_s1, nonce, request = material
    other = CredRequest.create(sk, cred_s1, nonce, key.ipk, Random(12))
    assert other.check(key.ipk)
    assert other.nym == request.nym
    assert other.proof_c != request.proof_c


def test_bound_to_nonce(material):
    key, sk, cred_s1, nonce, request = material
    assert not request._replace(issuer_nonce=nonce + 1).check(key.ipk)


def test_bound_to_issuer(material):
    key, sk, cred_s1, nonce, request = material
    other = IssuerKey.generate(["age", "country"], rng=Random(13))
    assert not request.check(other.ipk)


def test_bad_proofs(material):
    key, sk, cred_s1, nonce, request = material
    ipk = key.ipk
    assert not request._replace(proof_s1=request.proof_s1 + 1).check(ipk)
    assert not request._replace(proof_s2=request.proof_s2 + 1).check(ipk)
    assert not request._replace(proof_c=request.proof_c + 1).check(ipk)
    assert not request._replace(nym=request.nym.double()).check(ipk)


def test_encoding(material):
    key, _, _, _, request = material
    request2 = CredRequest.from_bytes(request.to_bytes())
    assert request2 == request
    assert request2.check(key.ipk)


def test_tampering(material):
    key, _, _, _, request = material
    data = request.to_bytes()
    for i in range(len(data)):
        bad = data[:i] + bytes([data[i] ^ 0x01]) + data[i + 1:]
        try:
            assert not CredRequest.from_bytes(bad).check(key.ipk)
        except DecodeError:
            pass
