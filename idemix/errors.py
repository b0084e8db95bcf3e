""" Exceptions raised by the idemix library.

Only malformed inputs and degenerate parameters raise. A proof, credential or
signature that is well-formed but cryptographically invalid is reported by
its ``check``, ``ver`` or ``verify`` method returning ``False``.
"""


class IdemixError(Exception):
    """ Base class of all idemix errors. """


class InvalidArgumentError(IdemixError, ValueError):
    """ An argument has the wrong shape for the operation. """


class DuplicateAttributeError(InvalidArgumentError):
    """ An attribute name appears more than once. """


class AttributeCountMismatch(InvalidArgumentError):
    """ The number of attribute values does not match the issuer public key. """


class DecodeError(IdemixError, ValueError):
    """ A byte encoding is malformed, truncated or not canonical. """


class DegenerateKeyError(IdemixError):
    """ The sampled randomness made the signing exponent zero; retry. """


class CryptoError(IdemixError):
    """ A key, credential or proof supplied to build an identity is not valid. """


# --- TESTS ---

def test_hierarchy():
    assert issubclass(DuplicateAttributeError, InvalidArgumentError)
    assert issubclass(AttributeCountMismatch, ValueError)
    assert issubclass(DecodeError, IdemixError)
    assert not issubclass(DegenerateKeyError, ValueError)
    assert not issubclass(CryptoError, InvalidArgumentError)
