""" Presentation of a credential, with selective disclosure of its attributes.

A ``Signature`` proves possession of a credential issued by the holder of a
given public key, signs a message, and binds both to a pseudonym of the user
secret key. Attributes marked with a 1 in the disclosure mask are revealed to
the verifier, who supplies their values; the others stay hidden.

The credential ``(A, B, E, S)`` is first randomized:

    aPrime = r1 * A
    aBar   = r1 * B - E * aPrime
    bPrime = r1 * B - r2 * HRand

so that ``e(aPrime, W) == e(aBar, g2)``, and the proof shows knowledge of
``sk``, ``E``, ``r2``, ``r3 = 1/r1``, ``sPrime = S - r2 * r3`` and the hidden
attributes, consistent with the disclosed values and with the pseudonym.
"""

import logging
from collections import namedtuple

from .bn import ORDER, random_mod_order, mod_inverse, get_rng
from .credential import attribute_value
from .encode import challenge, nonced_challenge
from .errors import AttributeCountMismatch, InvalidArgumentError
from .pack import Packable, register_struct

logger = logging.getLogger(__name__)

SIGN_LABEL = b"sign"


def hidden_indices(disclosure):
    """ Returns the indices of the attributes that are not disclosed.

    >>> hidden_indices([1, 0, 1, 0])
    [1, 3]
    """
    return [i for i, d in enumerate(disclosure) if not d]


def _disclosure_bytes(disclosure):
    return bytes(1 if d else 0 for d in disclosure)


class Signature(Packable, namedtuple("Signature", [
        "a_prime", "a_bar", "b_prime", "proof_c", "proof_s_sk", "proof_s_e",
        "proof_s_r2", "proof_s_r3", "proof_s_s_prime", "proof_s_r_nym",
        "proof_s_attrs", "nonce", "nym"])):
    """ A proof of possession of a credential, signing a message. """

    __slots__ = ()

    @classmethod
    def present(cls, cred, sk, nym, r_nym, ipk, disclosure, msg, rng=None):
        """ Presents a credential under the pseudonym ``nym = sk * Hsk + r_nym * HRand``.

        Args:
            cred: the completed ``Credential``.
            sk: the user secret key.
            nym, r_nym: the pseudonym and its randomness.
            ipk: the issuer public key.
            disclosure: one flag per attribute, true to reveal it.
            msg: the message to sign, as bytes.
            rng: the random source.
        """
        disclosure = tuple(disclosure)
        n = len(ipk.attribute_names)
        if len(disclosure) != n or len(cred.attrs) != n:
            raise AttributeCountMismatch("Expected %d attributes" % n)
        if rng is None:
            rng = get_rng()

        hidden = hidden_indices(disclosure)
        values = cred.attribute_values()
        G = ipk.group

        r1 = random_mod_order(rng)
        r2 = random_mod_order(rng)
        r3 = mod_inverse(r1)
        nonce = random_mod_order(rng)

        a_prime = cred.a.mul(r1)
        a_bar = G.wsum([r1, -cred.e], [cred.b, a_prime])
        b_prime = G.wsum([r1, -r2], [cred.b, ipk.h_rand])
        s_prime = (cred.s - r2 * r3) % ORDER

        r_sk = random_mod_order(rng)
        r_e = random_mod_order(rng)
        r_r2 = random_mod_order(rng)
        r_r3 = random_mod_order(rng)
        r_s_prime = random_mod_order(rng)
        r_r_nym = random_mod_order(rng)
        r_attrs = [random_mod_order(rng) for _ in hidden]

        t1 = a_prime.mul2(r_e, ipk.h_rand, r_r2)
        t2 = G.wsum([r_s_prime, r_r3, r_sk] + r_attrs,
                    [ipk.h_rand, b_prime, ipk.hsk] + [ipk.h_attrs[i] for i in hidden])
        t3 = ipk.hsk.mul2(r_sk, ipk.h_rand, r_r_nym)

        c = challenge(SIGN_LABEL, t1, t2, t3, a_prime, a_bar, b_prime, nym,
                      ipk.hash, _disclosure_bytes(disclosure), msg)
        proof_c = nonced_challenge(c, nonce)

        logger.debug("Presented credential, disclosing %d of %d attributes",
                     n - len(hidden), n)
        return cls(
            a_prime, a_bar, b_prime, proof_c,
            (r_sk + proof_c * sk) % ORDER,
            (r_e - proof_c * cred.e) % ORDER,
            (r_r2 + proof_c * r2) % ORDER,
            (r_r3 - proof_c * r3) % ORDER,
            (r_s_prime + proof_c * s_prime) % ORDER,
            (r_r_nym + proof_c * r_nym) % ORDER,
            tuple((r + proof_c * values[i]) % ORDER for r, i in zip(r_attrs, hidden)),
            nonce, nym)

    def verify(self, disclosure, ipk, msg, attribute_values):
        """ Verifies the signature on ``msg``.

        ``attribute_values`` has one entry per attribute of the key: the value
        of each disclosed attribute, and anything, usually ``None``, for the
        hidden ones.
        """
        disclosure = tuple(disclosure)
        n = len(ipk.attribute_names)
        if len(disclosure) != n or len(attribute_values) != n:
            raise AttributeCountMismatch("Expected %d attributes" % n)

        hidden = hidden_indices(disclosure)
        disclosed = [i for i in range(n) if disclosure[i]]
        if any(attribute_values[i] is None for i in disclosed):
            raise InvalidArgumentError("A disclosed attribute has no value")

        if len(self.proof_s_attrs) != len(hidden):
            logger.debug("Signature rejected: wrong number of attribute proofs")
            return False
        if self.a_prime.isinf():
            logger.debug("Signature rejected: aPrime is the point at infinity")
            return False

        G = ipk.group
        g1, g2 = G.gen1(), G.gen2()
        if G.pair(self.a_prime, ipk.w) != G.pair(self.a_bar, g2):
            logger.debug("Signature rejected: pairing check failed")
            return False

        c = self.proof_c
        t1 = G.wsum([self.proof_s_e, self.proof_s_r2, -c, c],
                    [self.a_prime, ipk.h_rand, self.a_bar, self.b_prime])
        t2 = G.wsum(
            [self.proof_s_s_prime, self.proof_s_r3, self.proof_s_sk]
            + list(self.proof_s_attrs)
            + [c]
            + [c * attribute_value(attribute_values[i]) for i in disclosed],
            [ipk.h_rand, self.b_prime, ipk.hsk]
            + [ipk.h_attrs[i] for i in hidden]
            + [g1]
            + [ipk.h_attrs[i] for i in disclosed])
        t3 = G.wsum([self.proof_s_sk, self.proof_s_r_nym, -c],
                    [ipk.hsk, ipk.h_rand, self.nym])

        c0 = challenge(SIGN_LABEL, t1, t2, t3, self.a_prime, self.a_bar, self.b_prime,
                       self.nym, ipk.hash, _disclosure_bytes(disclosure), msg)
        if nonced_challenge(c0, self.nonce) != c:
            logger.debug("Signature rejected: challenge mismatch")
            return False
        return True


register_struct(Signature, 15, [
    "g1", "g1", "g1", "bn", "bn", "bn", "bn", "bn", "bn", "bn", ["bn"], "bn", "g1"])


# --- TESTS ---

import pytest
from random import Random

from .credential import BlindCredential
from .credrequest import CredRequest
from .errors import DecodeError
from .issuer import IssuerKey


def _credential(names, attrs, seed):
    rng = Random(seed)
    key = IssuerKey.generate(names, rng=rng)
    sk, cred_s1, nonce, r_nym = [random_mod_order(rng) for _ in range(4)]
    request = CredRequest.create(sk, cred_s1, nonce, key.ipk, rng)
    cred = BlindCredential.issue(key, request, attrs, rng).complete(cred_s1)
    nym = key.ipk.hsk.mul2(sk, key.ipk.h_rand, r_nym)
    return key.ipk, cred, sk, nym, r_nym


@pytest.fixture(scope="module")
def holder():
    return _credential(["age", "country"], [25, "US"], 31)


@pytest.fixture(scope="module")
def presented(holder):
    ipk, cred, sk, nym, r_nym = holder
    sig = Signature.present(cred, sk, nym, r_nym, ipk, [1, 0], b"hello", Random(32))
    return holder, sig


def test_hidden_indices():
    assert hidden_indices([]) == []
    assert hidden_indices([1, 1]) == []
    assert hidden_indices([0, 0, 0]) == [0, 1, 2]
    assert hidden_indices([True, False]) == [1]


def test_disclose_first(presented):
    (ipk, cred, sk, nym, r_nym), sig = presented
    assert len(sig.proof_s_attrs) == 1
    assert sig.verify([1, 0], ipk, b"hello", [25, None])
    assert sig.verify([1, 0], ipk, b"hello", [25, "ignored"])
    assert not sig.verify([1, 0], ipk, b"hello", [26, None])


def test_wrong_message(presented):
    (ipk, cred, sk, nym, r_nym), sig = presented
    assert not sig.verify([1, 0], ipk, b"hellp", [25, None])


def test_wrong_disclosure(presented):
    (ipk, cred, sk, nym, r_nym), sig = presented
    assert not sig.verify([0, 0], ipk, b"hello", [None, None])
    assert not sig.verify([0, 1], ipk, b"hello", [None, "US"])


def test_disclose_none_and_all(holder):
    ipk, cred, sk, nym, r_nym = holder
    sig = Signature.present(cred, sk, nym, r_nym, ipk, [0, 0], b"", Random(33))
    assert sig.verify([0, 0], ipk, b"", [None, None])

    sig = Signature.present(cred, sk, nym, r_nym, ipk, [1, 1], b"", Random(34))
    assert sig.proof_s_attrs == ()
    assert sig.verify([1, 1], ipk, b"", [25, "US"])
    assert not sig.verify([1, 1], ipk, b"", [25, "UK"])


def test_interleaved_disclosure():
    ipk, cred, sk, nym, r_nym = _credential(
        ["OU", "Role", "EnrollmentID", "RevocationHandle"], ["org1", 1, "alice", 7], 35)
    sig = Signature.present(cred, sk, nym, r_nym, ipk, [1, 0, 1, 0], b"msg", Random(36))
    assert len(sig.proof_s_attrs) == 2
    assert sig.verify([1, 0, 1, 0], ipk, b"msg", ["org1", None, "alice", None])
    assert not sig.verify([1, 0, 1, 0], ipk, b"msg", ["org1", None, "bob", None])


def test_fresh_presentations(holder):
    ipk, cred, sk, nym, r_nym = holder
    sig1 = Signature.present(cred, sk, nym, r_nym, ipk, [1, 0], b"m")
    sig2 = Signature.present(cred, sk, nym, r_nym, ipk, [1, 0], b"m")
    assert sig1.nonce != sig2.nonce
    assert sig1.proof_c != sig2.proof_c
    assert sig1.a_prime != sig2.a_prime


def test_nym_binding(presented):
    (ipk, cred, sk, nym, r_nym), sig = presented
    other = sig._replace(nym=ipk.hsk.mul2(sk, ipk.h_rand, r_nym + 1))
    assert not other.verify([1, 0], ipk, b"hello", [25, None])


def test_wrong_nym_secret(holder):
    ipk, cred, sk, nym, r_nym = holder
    sig = Signature.present(cred, sk, nym, r_nym + 1, ipk, [1, 0], b"m", Random(37))
    assert not sig.verify([1, 0], ipk, b"m", [25, None])


def test_degenerate_signature(presented):
    (ipk, cred, sk, nym, r_nym), sig = presented
    G = ipk.group
    bad = sig._replace(a_prime=G.inf1(), a_bar=G.inf1())
    assert not bad.verify([1, 0], ipk, b"hello", [25, None])


def test_argument_errors(presented):
    (ipk, cred, sk, nym, r_nym), sig = presented
    with pytest.raises(AttributeCountMismatch):
        Signature.present(cred, sk, nym, r_nym, ipk, [1], b"")
    with pytest.raises(AttributeCountMismatch):
        sig.verify([1, 0, 0], ipk, b"hello", [25, None, None])
    with pytest.raises(AttributeCountMismatch):
        sig.verify([1, 0], ipk, b"hello", [25])
    with pytest.raises(InvalidArgumentError):
        sig.verify([1, 0], ipk, b"hello", [None, None])


def test_encoding(presented):
    (ipk, cred, sk, nym, r_nym), sig = presented
    sig2 = Signature.from_bytes(sig.to_bytes())
    assert sig2 == sig
    assert sig2.verify([1, 0], ipk, b"hello", [25, None])


def test_tampering(presented):
    (ipk, cred, sk, nym, r_nym), sig = presented
    data = sig.to_bytes()
    for i in range(0, len(data), 31):
        bad = data[:i] + bytes([data[i] ^ 0x01]) + data[i + 1:]
        try:
            assert not Signature.from_bytes(bad).verify([1, 0], ipk, b"hello", [25, None])
        except DecodeError:
            pass
