""" The bilinear pairing group used by the idemix protocols.

The group is the BN254 (alt_bn128) curve of ``py_ecc``. Points of G1 and G2
support addition, negation and multiplication with a scalar, and the pairing
maps a pair of them into GT.

Example:
    >>> G = BpGroup()
    >>> g1, g2 = G.gen1(), G.gen2()
    >>> (g1 + g1) == g1.mul(2)
    True
    >>> len(g1.export()), len(g2.export())
    (65, 128)
    >>> G1Elem.from_bytes(g1.export(), G) == g1
    True

"""

from py_ecc.optimized_bn128 import (
    FQ, FQ2, FQ12, G1, G2, Z1, Z2, b, b2,
    add, double, is_inf, is_on_curve, multiply, neg, normalize, eq,
    pairing, curve_order, field_modulus,
)

from .errors import DecodeError

FIELD_BYTES = 32
G1_BYTES = 2 * FIELD_BYTES + 1
G2_BYTES = 4 * FIELD_BYTES

_G1_UNCOMPRESSED = 0x04
_G1_INF = b"\x00" * G1_BYTES
_G2_INF = b"\x00" * G2_BYTES


def _fq_int(c):
    return int(getattr(c, "n", c))


def _read_coordinate(sbin, index):
    start = 1 + index * FIELD_BYTES if len(sbin) == G1_BYTES else index * FIELD_BYTES
    value = int.from_bytes(sbin[start:start + FIELD_BYTES], "big")
    if value >= field_modulus:
        raise DecodeError("Coordinate is not a field element")
    return value


def _wsum(zero, weights, pts):
    """ Interleaved double-and-add over all the (weight, point) pairs. """
    ws = [w % curve_order for w in weights]
    result = zero
    if not ws:
        return result

    for i in reversed(range(max(w.bit_length() for w in ws))):
        if not is_inf(result):
            result = double(result)
        for w, pt in zip(ws, pts):
            if (w >> i) & 1:
                result = add(result, pt)
    return result


class BpGroup(object):
    """ The BN254 pairing group, with fixed generators of G1 and G2. """

    name = "BN254"

    def __init__(self):
        self.g1 = G1Elem(self, G1)
        self.g2 = G2Elem(self, G2)

    def order(self):
        """Returns the prime order of G1, G2 and GT.

        Example:
            >>> G = BpGroup()
            >>> G.gen1().mul(G.order()).isinf()
            True

        """
        return curve_order

    def gen1(self):
        """ Returns the generator for G1. """
        return self.g1

    def gen2(self):
        """ Returns the generator for G2. """
        return self.g2

    def inf1(self):
        """ Returns the point at infinity of G1. """
        return G1Elem(self, Z1)

    def inf2(self):
        """ Returns the point at infinity of G2. """
        return G2Elem(self, Z2)

    def pair(self, g1, g2):
        """ The pairing operation e(G1, G2) -> GT.

            Example:
                >>> G = BpGroup()
                >>> g1, g2 = G.gen1(), G.gen2()
                >>> gt = G.pair(g1, g2)
                >>> gt6 = G.pair(g1.mul(2), g2.mul(3))
                >>> gt.exp(6) == gt6
                True

        """
        return GTElem(self, pairing(g2.pt, g1.pt))

    def wsum(self, weights, elems):
        """ Sum efficiently a number of points each multiplied by a scalar in weights.

        All points must belong to the same group; the empty sum is the G1
        point at infinity.
        """
        if len(weights) != len(elems):
            raise ValueError("Weights and points differ in length")
        if not elems:
            return self.inf1()

        cls = type(elems[0])
        if not all(type(e) is cls for e in elems):
            raise TypeError("Cannot sum points of different groups")

        return cls(self, _wsum(cls._zero, weights, [e.pt for e in elems]))

    def __eq__(self, other):
        return isinstance(other, BpGroup) and self.name == other.name

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash(self.name)

    def __repr__(self):
        return "BpGroup(%s)" % self.name


class _BpElem(object):
    """ A point of G1 or G2. """

    __slots__ = ["group", "pt"]
    _zero = None

    def __init__(self, group, pt):
        self.group = group
        self.pt = pt

    def add(self, other):
        """ Returns the sum of two points. """
        if type(other) is not type(self):
            raise TypeError("Cannot add points of different groups")
        return type(self)(self.group, add(self.pt, other.pt))

    def __add__(self, other):
        return self.add(other)

    def __sub__(self, other):
        return self.add(other.neg())

    def double(self):
        """ Returns the double of the point. """
        return type(self)(self.group, double(self.pt))

    def neg(self):
        """ Returns the inverse point. """
        return type(self)(self.group, neg(self.pt))

    def __neg__(self):
        return self.neg()

    def mul(self, scalar):
        """ Multiplies the point with a scalar. """
        return type(self)(self.group, _wsum(self._zero, [scalar], [self.pt]))

    def __rmul__(self, other):
        if isinstance(other, int):
            return self.mul(other)
        return NotImplemented

    def mul2(self, e1, other, e2):
        """ Returns ``e1 * self + e2 * other`` in a single pass. """
        return self.group.wsum([e1, e2], [self, other])

    def isinf(self):
        return is_inf(self.pt)

    def eq(self, other):
        """ Returns True if points are equal. """
        return type(other) is type(self) and eq(self.pt, other.pt)

    def __eq__(self, other):
        return self.eq(other)

    def __ne__(self, other):
        return not self.eq(other)

    def __hash__(self):
        return hash((type(self).__name__, self.export()))

    def export(self):
        raise NotImplementedError

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, self.export().hex())


class G1Elem(_BpElem):
    """ A point of G1, encoded as a format byte followed by X and Y. """

    __slots__ = []
    _zero = Z1

    def export(self):
        """ Export the point to its fixed-width byte representation. """
        if self.isinf():
            return _G1_INF
        x, y = normalize(self.pt)
        return (bytes([_G1_UNCOMPRESSED])
                + _fq_int(x).to_bytes(FIELD_BYTES, "big")
                + _fq_int(y).to_bytes(FIELD_BYTES, "big"))

    @staticmethod
    def from_bytes(sbin, group):
        """ Import a G1 point from bytes.

            Example:
                >>> G = BpGroup()
                >>> buf = G.gen1().mul(5).export()
                >>> G1Elem.from_bytes(buf, G) == G.gen1().mul(5)
                True
                >>> G1Elem.from_bytes(G.inf1().export(), G).isinf()
                True

        """
        if not isinstance(sbin, (bytes, bytearray)) or len(sbin) != G1_BYTES:
            raise DecodeError("A G1 point is %d bytes" % G1_BYTES)
        sbin = bytes(sbin)
        if sbin == _G1_INF:
            return group.inf1()
        if sbin[0] != _G1_UNCOMPRESSED:
            raise DecodeError("Unknown G1 point format %d" % sbin[0])

        pt = (FQ(_read_coordinate(sbin, 0)), FQ(_read_coordinate(sbin, 1)), FQ.one())
        if not is_on_curve(pt, b):
            raise DecodeError("Point is not on the curve")
        return G1Elem(group, pt)


class G2Elem(_BpElem):
    """ A point of G2, encoded as the coordinates X.a, X.b, Y.a, Y.b. """

    __slots__ = []
    _zero = Z2

    def export(self):
        """ Export the point to its fixed-width byte representation. """
        if self.isinf():
            return _G2_INF
        x, y = normalize(self.pt)
        coeffs = tuple(x.coeffs) + tuple(y.coeffs)
        return b"".join(_fq_int(c).to_bytes(FIELD_BYTES, "big") for c in coeffs)

    @staticmethod
    def from_bytes(sbin, group):
        """ Import a G2 point from bytes, checking it lies in the prime order subgroup.

            Example:
                >>> G = BpGroup()
                >>> buf = G.gen2().mul(7).export()
                >>> G2Elem.from_bytes(buf, G) == G.gen2().mul(7)
                True

        """
        if not isinstance(sbin, (bytes, bytearray)) or len(sbin) != G2_BYTES:
            raise DecodeError("A G2 point is %d bytes" % G2_BYTES)
        sbin = bytes(sbin)
        if sbin == _G2_INF:
            return group.inf2()

        xa, xb, ya, yb = [_read_coordinate(sbin, i) for i in range(4)]
        pt = (FQ2([xa, xb]), FQ2([ya, yb]), FQ2.one())
        if not is_on_curve(pt, b2):
            raise DecodeError("Point is not on the twisted curve")
        if not is_inf(multiply(pt, curve_order)):
            raise DecodeError("Point is not in the prime order subgroup")
        return G2Elem(group, pt)


class GTElem(object):
    """ An element of the target group GT. """

    __slots__ = ["group", "elem"]

    def __init__(self, group, elem):
        self.group = group
        self.elem = elem

    def isone(self):
        return self.elem == FQ12.one()

    def mul(self, other):
        """ Returns the product of two elements. """
        return GTElem(self.group, self.elem * other.elem)

    def __mul__(self, other):
        return self.mul(other)

    def inv(self):
        """ Returns the inverse element.

            Example:
                >>> G = BpGroup()
                >>> gt = G.pair(G.gen1(), G.gen2())
                >>> (gt * gt.inv()).isone()
                True

        """
        return GTElem(self.group, self.elem.inv())

    def exp(self, scalar):
        """ Exponentiates the element with a scalar. """
        return GTElem(self.group, self.elem ** (scalar % curve_order))

    def eq(self, other):
        """ Returns True if elements are equal. """
        return isinstance(other, GTElem) and self.elem == other.elem

    def __eq__(self, other):
        return self.eq(other)

    def __ne__(self, other):
        return not self.eq(other)

    __hash__ = None


# --- TESTS ---

import pytest


def test_bp_group():
    G = BpGroup()
    assert G == BpGroup()
    assert not G.gen1().isinf()
    assert G.inf1().isinf() and G.inf2().isinf()
    assert G.gen2().mul(G.order()).isinf()


def test_g1_arithmetic():
    G = BpGroup()
    g1 = G.gen1()
    assert g1 + g1 == g1.double()
    assert g1 + g1 == 2 * g1
    assert g1 + g1 != g1
    assert (g1 + (-g1)).isinf()
    assert 10 * g1 - 3 * g1 == 7 * g1
    assert (-5) * g1 == (G.order() - 5) * g1
    assert g1 + G.inf1() == g1
    assert 0 * g1 == G.inf1()

    d = {}
    d[2 * g1] = 2
    assert d[g1 + g1] == 2


def test_g2_arithmetic():
    G = BpGroup()
    g2 = G.gen2()
    assert g2 + g2 == 2 * g2
    assert (g2 - g2).isinf()
    assert 4 * g2 == g2.double().double()
    assert g2 != G.gen1()


def test_mixed_groups():
    G = BpGroup()
    with pytest.raises(TypeError):
        G.gen1() + G.gen2()
    with pytest.raises(TypeError):
        G.wsum([1, 2], [G.gen1(), G.gen2()])


def test_wsum():
    G = BpGroup()
    g1 = G.gen1()
    h = 1234567 * g1
    k = 7654321 * g1
    assert G.wsum([3, 5, 7], [g1, h, k]) == 3 * g1 + 5 * h + 7 * k
    assert g1.mul2(11, h, 13) == 11 * g1 + 13 * h
    assert G.wsum([0, G.order()], [g1, h]).isinf()
    assert G.wsum([], []).isinf()
    with pytest.raises(ValueError):
        G.wsum([1], [])


def test_g1_io():
    G = BpGroup()
    g1 = G.gen1()
    for pt in [g1, 99 * g1, G.inf1()]:
        buf = pt.export()
        assert len(buf) == G1_BYTES
        assert G1Elem.from_bytes(buf, G) == pt

    assert g1.export()[0] == 0x04
    assert G.inf1().export() == b"\x00" * G1_BYTES


def test_g1_decode_errors():
    G = BpGroup()
    buf = G.gen1().export()

    with pytest.raises(DecodeError):
        G1Elem.from_bytes(buf[:-1], G)

    with pytest.raises(DecodeError):
        G1Elem.from_bytes(b"\x02" + buf[1:], G)

    off_curve = buf[:-1] + bytes([buf[-1] ^ 1])
    with pytest.raises(DecodeError):
        G1Elem.from_bytes(off_curve, G)

    too_big = b"\x04" + b"\xff" * (2 * FIELD_BYTES)
    with pytest.raises(DecodeError):
        G1Elem.from_bytes(too_big, G)

    with pytest.raises(DecodeError):
        G1Elem.from_bytes("not bytes", G)


def test_g2_io():
    G = BpGroup()
    for pt in [G.gen2(), 5 * G.gen2(), G.inf2()]:
        buf = pt.export()
        assert len(buf) == G2_BYTES
        assert G2Elem.from_bytes(buf, G) == pt

    buf = G.gen2().export()
    with pytest.raises(DecodeError):
        G2Elem.from_bytes(buf[:-1] + bytes([buf[-1] ^ 1]), G)
    with pytest.raises(DecodeError):
        G2Elem.from_bytes(buf + b"\x00", G)


def test_pairing():
    G = BpGroup()
    g1, g2 = G.gen1(), G.gen2()
    gt = G.pair(g1, g2)
    assert not gt.isone()
    assert G.pair(3 * g1, 5 * g2) == G.pair(15 * g1, g2)
    assert G.pair(3 * g1, 5 * g2) == gt.exp(15)
    assert G.pair(g1, g2) != G.pair(2 * g1, g2)
    assert G.pair(G.inf1(), g2).isone()
