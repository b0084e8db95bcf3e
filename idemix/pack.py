"""The module provides functions to pack and unpack idemix points and structures.

Every structure is a msgpack extension type, whose payload is the list of its
fields in their fixed-width encodings: points are exported, scalars are
32-byte big-endian strings, and nested structures are extension types again.

Example:
    >>> # Define a custom class, encoder and decoder
    >>> class CustomType:
    ...     def __eq__(self, other):
    ...         return isinstance(other, CustomType)
    >>>
    >>> def enc_custom(obj):
    ...     return b''
    >>>
    >>> def dec_custom(data):
    ...     return CustomType()
    >>>
    >>> register_coders(CustomType, 64, enc_custom, dec_custom)
    >>>
    >>> # Define a structure
    >>> G = BpGroup()
    >>> custom_obj = CustomType()
    >>> test_data = [G.gen1(), G.gen2(), custom_obj]
    >>>
    >>> # Encode and decode custom structure
    >>> packed = encode(test_data)
    >>> x = decode(packed)
    >>> assert x == test_data

"""

import msgpack

from .bp import BpGroup, G1Elem, G2Elem
from .encode import bn_to_bytes, bn_from_bytes
from .errors import DecodeError

__all__ = ["encode", "decode", "register_coders", "register_struct", "Packable"]

_pack_reg = {}
_unpack_reg = {}

_group = BpGroup()


def register_coders(cls, num, enc_func, dec_func):
    """ Register a new type for encoding and decoding.
    Take a class type, a number, an encoding and a decoding function."""

    if num in _unpack_reg and _unpack_reg[num][0].__qualname__ != cls.__qualname__:
        raise ValueError("Number %d already in use." % num)
    if cls in _pack_reg and _pack_reg[cls][1] != num:
        raise ValueError("Class %s already in use." % cls.__name__)

    coders = (cls, num, enc_func, dec_func)
    _pack_reg[cls] = coders
    _unpack_reg[num] = coders


def _packb(structure):
    return msgpack.packb(structure, default=default, use_bin_type=True,
                         strict_types=True)


def _unpackb(packed_data):
    return msgpack.unpackb(packed_data, ext_hook=ext_hook, raw=False)


def _enc_field(kind, value):
    if isinstance(kind, list):
        return [_enc_field(kind[0], v) for v in value]
    if kind in ("g1", "g2"):
        return value.export()
    if kind == "bn":
        return bn_to_bytes(value)
    return value


def _dec_field(kind, value):
    if isinstance(kind, list):
        if not isinstance(value, list):
            raise DecodeError("Expected a list")
        return tuple(_dec_field(kind[0], v) for v in value)
    if kind == "g1":
        return G1Elem.from_bytes(value, _group)
    if kind == "g2":
        return G2Elem.from_bytes(value, _group)
    if kind == "bn":
        return bn_from_bytes(value)

    types = {"bytes": bytes, "str": str, "int": int}
    expected = types.get(kind, kind)
    if not isinstance(value, expected) or isinstance(value, bool):
        raise DecodeError("Expected %s, got %s" % (expected.__name__, type(value).__name__))
    return value


def register_struct(cls, num, kinds):
    """ Register a namedtuple structure, given the kind of each of its fields.

    A kind is one of ``"g1"``, ``"g2"``, ``"bn"``, ``"bytes"``, ``"str"``,
    ``"int"``, a registered class, or a one-element list of a kind for a
    sequence of them.
    """
    if len(kinds) != len(cls._fields):
        raise ValueError("%s has %d fields" % (cls.__name__, len(cls._fields)))

    def enc(obj):
        return _packb([_enc_field(k, v) for k, v in zip(kinds, obj)])

    def dec(data):
        fields = _unpackb(data)
        if not isinstance(fields, list) or len(fields) != len(kinds):
            raise DecodeError("A %s has %d fields" % (cls.__name__, len(kinds)))
        obj = cls._make(_dec_field(k, v) for k, v in zip(kinds, fields))
        return obj._checked()

    register_coders(cls, num, enc, dec)


def _init_coders():
    register_coders(G1Elem, 1, lambda pt: pt.export(),
                    lambda data: G1Elem.from_bytes(data, _group))
    register_coders(G2Elem, 2, lambda pt: pt.export(),
                    lambda data: G2Elem.from_bytes(data, _group))


# Register default coders
_init_coders()


def default(obj):
    coders = _pack_reg.get(type(obj))
    if coders is None:
        for T in _pack_reg:
            if isinstance(obj, T):
                coders = _pack_reg[T]
                break

    if coders is not None:
        _, num, enc, _ = coders
        return msgpack.ExtType(num, enc(obj))

    if isinstance(obj, tuple):
        return list(obj)
    if isinstance(obj, int):
        return int(obj)

    raise TypeError("Unknown type: %r" % (type(obj),))


def ext_hook(code, data):
    if code in _unpack_reg:
        _, _, _, dec = _unpack_reg[code]
        return dec(data)

    # Other
    return msgpack.ExtType(code, data)


def encode(structure):
    """ Encode a structure containing idemix objects to a binary format. """
    return _packb(structure)


def decode(packed_data, expected=None):
    """ Decode a binary byte sequence into a structure containing idemix objects.

    If ``expected`` is given, the decoded structure must be of that type.
    Any malformed input raises ``DecodeError``.
    """
    try:
        structure = _unpackb(packed_data)
    except DecodeError:
        raise
    except Exception as e:
        raise DecodeError("Malformed encoding: %s" % (e,))

    if expected is not None and not isinstance(structure, expected):
        raise DecodeError("Expected a %s" % expected.__name__)
    return structure


class Packable(object):
    """ Mixin for namedtuple structures registered with ``register_struct``. """

    __slots__ = ()

    def _checked(self):
        """ Hook to reject decoded structures that break an invariant. """
        return self

    def to_bytes(self):
        return encode(self)

    @classmethod
    def from_bytes(cls, data):
        return decode(data, expected=cls)


# --- TESTS ---

import pytest
from collections import namedtuple


class _Pair(Packable, namedtuple("_Pair", ["pt", "xs", "label", "points"])):
    __slots__ = ()


register_struct(_Pair, 100, ["g1", ["bn"], "str", ["g2"]])


def test_basic():
    x = [b'spam', u'egg']
    packed = msgpack.packb(x, use_bin_type=True)
    y = msgpack.unpackb(packed, raw=False)
    assert x == y


def test_points():
    G = BpGroup()
    test_data = [G.gen1(), G.gen2(), G.inf1(), 3 * G.gen1()]
    packed = encode(test_data)
    x = decode(packed)
    assert x == test_data


def test_tuples_as_lists():
    G = BpGroup()
    x = decode(encode((1, (G.gen1(), b"x"))))
    assert x == [1, [G.gen1(), b"x"]]


def test_enc_dec_dict():
    G = BpGroup()
    test_data = {"gens": [G.gen1(), G.gen2()]}
    x = decode(encode(test_data))
    assert x["gens"] == test_data["gens"]


def test_struct():
    G = BpGroup()
    obj = _Pair(G.gen1(), (1, 2, 3), u"label", (G.gen2(),))
    data = obj.to_bytes()
    obj2 = _Pair.from_bytes(data)
    assert obj2 == obj
    assert isinstance(obj2, _Pair)
    assert isinstance(obj2.xs, tuple)


def test_struct_wrong_type():
    G = BpGroup()
    with pytest.raises(DecodeError):
        _Pair.from_bytes(encode([G.gen1()]))
    with pytest.raises(DecodeError):
        G1Elem.from_bytes(encode(G.gen1()), G)


def test_struct_field_errors():
    bad_count = msgpack.ExtType(100, _packb([b"\x00" * 65]))
    with pytest.raises(DecodeError):
        decode(msgpack.packb(bad_count))

    bad_kind = msgpack.ExtType(100, _packb([b"\x00" * 65, [], 5, []]))
    with pytest.raises(DecodeError):
        decode(msgpack.packb(bad_kind))

    bad_scalar = msgpack.ExtType(100, _packb([b"\x00" * 65, [b"\xff" * 32], u"x", []]))
    with pytest.raises(DecodeError):
        decode(msgpack.packb(bad_scalar))


def test_malformed():
    G = BpGroup()
    data = encode([G.gen1(), 7])
    for bad in [data[:-1], data + b"\x00", b"", b"\xc1", None]:
        with pytest.raises(DecodeError):
            decode(bad)


def test_unknown_ext():
    x = decode(msgpack.packb(msgpack.ExtType(90, b"abc")))
    assert x == msgpack.ExtType(90, b"abc")


def test_register_conflicts():
    class Other:
        pass

    with pytest.raises(ValueError):
        register_coders(Other, 1, None, None)
    with pytest.raises(ValueError):
        register_coders(G1Elem, 3, None, None)

    # Registering the same class again is allowed
    _init_coders()
    assert _pack_reg[G1Elem][1] == 1


def test_streaming():
    G = BpGroup()
    test_data = [G.gen1(), G.gen2()]
    data = encode(test_data) + encode(test_data)

    Up = msgpack.Unpacker(ext_hook=ext_hook, raw=False)
    Up.feed(data)
    for o in Up:
        assert o == test_data
