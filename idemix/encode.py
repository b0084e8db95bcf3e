""" Fixed-width byte encodings of scalars and points, and Fiat-Shamir challenges.

The bytes produced here feed the challenge hashes of every proof, so their
layout must never change: scalars are 32 bytes big-endian, G1 points are
65 bytes and G2 points are 128 bytes.

Example:
    >>> bn_to_bytes(1).hex()[-4:]
    '0001'
    >>> bn_from_bytes(bn_to_bytes(12345))
    12345
    >>> challenge(b"sign", 1, 2) == challenge(b"sign", 1, 2)
    True

"""

from .bn import ORDER, hash_mod_order
from .bp import FIELD_BYTES, G1Elem, G2Elem
from .errors import DecodeError


def bn_to_bytes(x):
    """ Encodes a scalar, reduced mod q, as ``FIELD_BYTES`` big-endian bytes. """
    return (x % ORDER).to_bytes(FIELD_BYTES, "big")


def bn_from_bytes(data):
    """ Decodes a scalar, rejecting encodings of the wrong length or not reduced mod q. """
    if not isinstance(data, (bytes, bytearray)) or len(data) != FIELD_BYTES:
        raise DecodeError("A scalar is %d bytes" % FIELD_BYTES)
    x = int.from_bytes(data, "big")
    if x >= ORDER:
        raise DecodeError("Scalar is not reduced")
    return x


def proof_data(*parts):
    """ Concatenates the encodings of points, scalars and raw byte strings.

    Points are exported, integers encoded as scalars and byte strings
    appended as they are, without any length prefix.
    """
    buf = bytearray()
    for p in parts:
        if isinstance(p, (G1Elem, G2Elem)):
            buf += p.export()
        elif isinstance(p, (bytes, bytearray)):
            buf += p
        elif isinstance(p, int) and not isinstance(p, bool):
            buf += bn_to_bytes(p)
        else:
            raise TypeError("Cannot encode %r in a transcript" % (type(p),))
    return bytes(buf)


def challenge(*parts):
    """ Hashes a transcript to a scalar. """
    return hash_mod_order(proof_data(*parts))


def nonced_challenge(c, nonce):
    """ Binds an intermediate challenge to a single-use nonce. """
    return hash_mod_order(bn_to_bytes(c) + bn_to_bytes(nonce))


# --- TESTS ---

import pytest
from .bp import BpGroup, G1_BYTES, G2_BYTES


def test_scalar_encoding():
    assert bn_to_bytes(0) == b"\x00" * FIELD_BYTES
    assert bn_to_bytes(ORDER) == bn_to_bytes(0)
    assert bn_to_bytes(-1) == bn_to_bytes(ORDER - 1)
    assert bn_from_bytes(bn_to_bytes(ORDER - 1)) == ORDER - 1


def test_scalar_decode_errors():
    with pytest.raises(DecodeError):
        bn_from_bytes(b"\x01" * (FIELD_BYTES - 1))
    with pytest.raises(DecodeError):
        bn_from_bytes(ORDER.to_bytes(FIELD_BYTES, "big"))
    with pytest.raises(DecodeError):
        bn_from_bytes(None)


def test_proof_data():
    G = BpGroup()
    g1, g2 = G.gen1(), G.gen2()
    data = proof_data(b"sign", g1, g2, 5)
    assert len(data) == 4 + G1_BYTES + G2_BYTES + FIELD_BYTES
    assert data.startswith(b"sign" + g1.export())
    assert data.endswith(bn_to_bytes(5))

    with pytest.raises(TypeError):
        proof_data("text")
    with pytest.raises(TypeError):
        proof_data(True)


def test_challenge():
    G = BpGroup()
    c = challenge(b"credRequest", G.gen1(), 7)
    assert 0 <= c < ORDER
    assert c != challenge(b"credRequest", G.gen1(), 8)
    assert nonced_challenge(c, 1) != nonced_challenge(c, 2)
    assert nonced_challenge(c, 1) == hash_mod_order(bn_to_bytes(c) + bn_to_bytes(1))
