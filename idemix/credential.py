""" Credentials: BBS+ signatures over a committed secret key and attributes.

The issuer signs the commitment ``nym`` of a credential request together with
the attribute values. The resulting ``BlindCredential`` still misses the
blinding scalar ``cred_s1`` of the request, which only the user knows;
completing it gives the ``Credential`` that the user can verify and present.

Example:
    >>> from random import Random
    >>> from idemix.issuer import IssuerKey
    >>> from idemix.credrequest import CredRequest
    >>> rng = Random(4)
    >>> key = IssuerKey.generate(["age", "country"], rng=rng)
    >>> sk, cred_s1, nonce = [random_mod_order(rng) for _ in range(3)]
    >>> request = CredRequest.create(sk, cred_s1, nonce, key.ipk, rng)
    >>> blind = BlindCredential.issue(key, request, [25, "US"], rng)
    >>> cred = blind.complete(cred_s1)
    >>> cred.ver(sk, key.ipk)
    True

"""

import logging
from collections import namedtuple

from .bn import ORDER, random_mod_order, mod_inverse, hash_mod_order, get_rng
from .encode import bn_to_bytes, bn_from_bytes
from .errors import AttributeCountMismatch, DegenerateKeyError, InvalidArgumentError
from .pack import Packable, register_struct

logger = logging.getLogger(__name__)


def attribute_value(v):
    """ Maps an attribute value to a scalar.

    Integers are reduced mod q, while text and byte strings are hashed.

    >>> attribute_value(25)
    25
    >>> attribute_value("US") == attribute_value(b"US")
    True
    """
    if isinstance(v, bool):
        raise InvalidArgumentError("Booleans are not attribute values")
    if isinstance(v, int):
        return v % ORDER
    if isinstance(v, str):
        v = v.encode("utf-8")
    if isinstance(v, (bytes, bytearray)):
        return hash_mod_order(bytes(v))
    raise InvalidArgumentError("Unsupported attribute value %r" % (type(v),))


_fields = ["a", "b", "e", "s", "attrs"]


class _CredentialFields(Packable):

    __slots__ = ()

    def _checked(self):
        for attr in self.attrs:
            bn_from_bytes(attr)
        return self

    def attribute_values(self):
        """ Returns the attribute values as scalars. """
        return [int.from_bytes(attr, "big") for attr in self.attrs]


class BlindCredential(_CredentialFields, namedtuple("BlindCredential", _fields)):
    """ A credential as issued, before the user adds their blinding scalar. """

    __slots__ = ()

    @classmethod
    def issue(cls, key, request, attrs, rng=None):
        """ Signs the commitment of a request along with the attribute values.

        The request is expected to have been checked by the caller.
        """
        ipk = key.ipk
        if len(attrs) != len(ipk.attribute_names):
            raise AttributeCountMismatch("Expected %d attribute values, got %d" % (
                len(ipk.attribute_names), len(attrs)))
        values = [attribute_value(v) for v in attrs]

        if rng is None:
            rng = get_rng()
        e = random_mod_order(rng)
        s = random_mod_order(rng)

        G = ipk.group
        b = G.wsum([1, 1, s] + values,
                   [G.gen1(), request.nym, ipk.h_rand] + list(ipk.h_attrs))

        exp = (key.isk + e) % ORDER
        if exp == 0:
            raise DegenerateKeyError("The issuer secret and E sum to zero")
        a = b.mul(mod_inverse(exp))

        logger.debug("Issued credential over %d attributes", len(values))
        return cls(a, b, e, s, tuple(bn_to_bytes(v) for v in values))

    def complete(self, cred_s1):
        """ Adds the blinding scalar of the request, returning the usable credential. """
        return Credential(self.a, self.b, self.e, (self.s + cred_s1) % ORDER, self.attrs)


class Credential(_CredentialFields, namedtuple("Credential", _fields)):
    """ A completed credential, held by the user. """

    __slots__ = ()

    def ver(self, sk, ipk):
        """ Checks that the credential is a valid signature on ``sk`` and the attributes. """
        if len(self.attrs) != len(ipk.h_attrs) or self.a.isinf():
            return False

        G = ipk.group
        g1, g2 = G.gen1(), G.gen2()
        b = G.wsum([1, sk, self.s] + self.attribute_values(),
                   [g1, ipk.hsk, ipk.h_rand] + list(ipk.h_attrs))
        if b != self.b:
            logger.debug("Credential rejected: B does not match")
            return False

        if G.pair(self.a, g2.mul(self.e) + ipk.w) != G.pair(self.b, g2):
            logger.debug("Credential rejected: pairing check failed")
            return False
        return True


register_struct(BlindCredential, 13, ["g1", "g1", "bn", "bn", ["bytes"]])
register_struct(Credential, 14, ["g1", "g1", "bn", "bn", ["bytes"]])


# --- TESTS ---

import pytest
from random import Random

from .credrequest import CredRequest
from .errors import DecodeError
from .issuer import IssuerKey


class _FixedRandom(object):
    """ Returns the given values first, then falls back to a seeded source. """

    def __init__(self, values):
        self.values = list(values)
        self.rng = Random(0)

    def randrange(self, start, stop):
        if self.values:
            return self.values.pop(0)
        return self.rng.randrange(start, stop)


@pytest.fixture(scope="module")
def issued():
    rng = Random(21)
    key = IssuerKey.generate(["age", "country"], rng=rng)
    sk, cred_s1, nonce = [random_mod_order(rng) for _ in range(3)]
    request = CredRequest.create(sk, cred_s1, nonce, key.ipk, rng)
    assert request.check(key.ipk)
    blind = BlindCredential.issue(key, request, [25, "US"], rng)
    return key, sk, cred_s1, blind, blind.complete(cred_s1)


def test_attribute_value():
    assert attribute_value(ORDER + 3) == 3
    assert attribute_value(-1) == ORDER - 1
    assert attribute_value(u"é") == hash_mod_order(u"é".encode("utf-8"))
    assert attribute_value(bytearray(b"x")) == attribute_value(b"x")
    with pytest.raises(InvalidArgumentError):
        attribute_value(True)
    with pytest.raises(InvalidArgumentError):
        attribute_value(1.5)


def test_issue_and_verify(issued):
    key, sk, cred_s1, blind, cred = issued
    assert isinstance(cred, Credential)
    assert cred.ver(sk, key.ipk)
    assert cred.attribute_values() == [25, attribute_value("US")]
    assert all(len(attr) == 32 for attr in cred.attrs)
    assert cred.a == cred.b.mul(mod_inverse(key.isk + cred.e))


def test_complete_returns_new_credential(issued):
    key, sk, cred_s1, blind, cred = issued
    assert not hasattr(blind, "ver")
    assert blind.s != cred.s
    assert blind.complete(cred_s1) == cred


def test_incomplete_credential_fails(issued):
    key, sk, cred_s1, blind, cred = issued
    assert not Credential(*blind).ver(sk, key.ipk)
    assert not cred._replace(s=(cred.s + cred_s1) % ORDER).ver(sk, key.ipk)


def test_verify_failures(issued):
    key, sk, cred_s1, blind, cred = issued
    ipk = key.ipk
    assert not cred.ver(sk + 1, ipk)
    assert not cred._replace(e=cred.e + 1).ver(sk, ipk)
    assert not cred._replace(a=cred.a.double()).ver(sk, ipk)
    assert not cred._replace(a=ipk.group.inf1()).ver(sk, ipk)
    assert not cred._replace(attrs=cred.attrs[:1]).ver(sk, ipk)
    assert not cred._replace(attrs=(bn_to_bytes(26), cred.attrs[1])).ver(sk, ipk)

    other = IssuerKey.generate(["age", "country"], rng=Random(22))
    assert not cred.ver(sk, other.ipk)


def test_attribute_count_mismatch(issued):
    key, sk, cred_s1, blind, cred = issued
    request = CredRequest.create(sk, cred_s1, 1, key.ipk, Random(23))
    with pytest.raises(AttributeCountMismatch):
        BlindCredential.issue(key, request, [25])
    with pytest.raises(AttributeCountMismatch):
        BlindCredential.issue(key, request, [25, "US", 3])


def test_degenerate_key(issued):
    key, sk, cred_s1, blind, cred = issued
    e = 12345
    bad_key = key._replace(isk=ORDER - e)
    request = CredRequest.create(sk, cred_s1, 1, key.ipk, Random(24))
    with pytest.raises(DegenerateKeyError):
        BlindCredential.issue(bad_key, request, [25, "US"], _FixedRandom([e]))


def test_encoding(issued):
    key, sk, cred_s1, blind, cred = issued
    cred2 = Credential.from_bytes(cred.to_bytes())
    assert cred2 == cred
    assert cred2.ver(sk, key.ipk)

    blind2 = BlindCredential.from_bytes(blind.to_bytes())
    assert blind2 == blind
    assert blind2.complete(cred_s1) == cred

    with pytest.raises(DecodeError):
        Credential.from_bytes(blind.to_bytes())
    with pytest.raises(DecodeError):
        Credential.from_bytes(cred._replace(attrs=(b"\x01",)).to_bytes())


def test_tampering(issued):
    key, sk, cred_s1, blind, cred = issued
    data = cred.to_bytes()
    for i in range(0, len(data), 5):
        bad = data[:i] + bytes([data[i] ^ 0x01]) + data[i + 1:]
        try:
            assert not Credential.from_bytes(bad).ver(sk, key.ipk)
        except DecodeError:
            pass
