""" Idemix identities of a membership service provider (MSP).

An identity credential has four attributes: the organizational unit and the
role, which are disclosed, and the enrollment id and revocation handle, which
stay hidden. A ``SigningIdentity`` holds the user secrets and presents the
credential once under a fresh pseudonym; the resulting public ``Identity``
can be checked by anyone holding the issuer public key, and messages are
then signed with pseudonym signatures.
"""

import logging
from collections import namedtuple

from .encode import bn_from_bytes
from .errors import InvalidArgumentError, AttributeCountMismatch, CryptoError, DecodeError
from .nym import Pseudonym, NymSignature
from .pack import Packable, register_struct
from .signature import Signature

logger = logging.getLogger(__name__)

ATTRIBUTE_NAMES = ("OU", "Role", "EnrollmentID", "RevocationHandle")
DISCLOSED_FLAGS = (1, 1, 0, 0)

_EMPTY_MSG = b""


class Identity(Packable, namedtuple("Identity", ["msp_id", "nym", "ou", "role", "proof"])):
    """ The public part of an identity: a pseudonym, the disclosed attributes and
    the proof tying them to a credential. """

    __slots__ = ()

    def _checked(self):
        if not self.msp_id:
            raise DecodeError("Empty MSP id")
        bn_from_bytes(self.ou)
        bn_from_bytes(self.role)
        return self

    def role_value(self):
        return int.from_bytes(self.role, "big")

    def verify(self, ipk):
        """ Checks the proof of the identity against the issuer public key. """
        if self.proof.nym != self.nym:
            logger.debug("Identity rejected: proof is for another pseudonym")
            return False

        values = [int.from_bytes(self.ou, "big"), self.role_value(), None, None]
        return self.proof.verify(DISCLOSED_FLAGS, ipk, _EMPTY_MSG, values)


register_struct(Identity, 18, ["str", "g1", "bytes", "bytes", Signature])


class SigningIdentity(object):
    """ An identity together with the secrets needed to sign under it.

    Args:
        ipk: the issuer public key.
        msp_id: the identifier of the MSP.
        sk: the user secret key.
        cred: the user credential, with the four identity attributes.
        pseudonym, proof: an existing pseudonym and presentation proof, given
            together; by default fresh ones are made.
        rng: the random source.
    """

    def __init__(self, ipk, msp_id, sk, cred, pseudonym=None, proof=None, rng=None):
        if (ipk is None or not msp_id or sk is None or cred is None
                or (pseudonym is None) != (proof is None)):
            raise InvalidArgumentError("Input must not be empty")

        logger.debug("Verifying public key")
        if not ipk.check():
            raise CryptoError("Issuer public key is not valid")

        if len(cred.attrs) != len(ATTRIBUTE_NAMES):
            raise AttributeCountMismatch("An identity credential has %d attributes" %
                                         len(ATTRIBUTE_NAMES))
        if not cred.ver(sk, ipk):
            raise CryptoError("Credential is not valid")

        if pseudonym is None:
            logger.debug("Generating fresh pseudonym and proof")
            pseudonym = Pseudonym.new(sk, ipk, rng)
            proof = Signature.present(cred, sk, pseudonym.nym, pseudonym.r_nym, ipk,
                                      DISCLOSED_FLAGS, _EMPTY_MSG, rng)

        if proof.nym != pseudonym.nym or not proof.verify(
                DISCLOSED_FLAGS, ipk, _EMPTY_MSG, cred.attribute_values()):
            raise CryptoError("Proof of identity is not valid")

        self.ipk = ipk
        self.pseudonym = pseudonym
        self.proof = proof
        self.identity = Identity(msp_id, pseudonym.nym, cred.attrs[0], cred.attrs[1], proof)
        self._sk = sk
        self._rng = rng

    def sign(self, msg):
        """ Signs a message under the pseudonym, returning the encoded signature. """
        if msg is None:
            raise InvalidArgumentError("Input must not be empty")
        return NymSignature.sign(self._sk, self.pseudonym, self.ipk, msg, self._rng).to_bytes()

    def verify_signature(self, msg, sig):
        """ Verifies an encoded signature made under this identity. """
        if msg is None or sig is None:
            raise InvalidArgumentError("Input must not be empty")
        return NymSignature.from_bytes(sig).verify(self.pseudonym.nym, self.ipk, msg)

    def __repr__(self):
        return "SigningIdentity(msp_id=%r, nym=%r)" % (self.identity.msp_id, self.pseudonym.nym)


# --- TESTS ---

import pytest
from random import Random

from .bn import random_mod_order
from .credential import BlindCredential, attribute_value
from .credrequest import CredRequest
from .issuer import IssuerKey
from .roles import Role, role_mask, check_role


def _enroll(names, attrs, seed):
    rng = Random(seed)
    key = IssuerKey.generate(names, rng=rng)
    sk, cred_s1, nonce = [random_mod_order(rng) for _ in range(3)]
    request = CredRequest.create(sk, cred_s1, nonce, key.ipk, rng)
    cred = BlindCredential.issue(key, request, attrs, rng).complete(cred_s1)
    return key.ipk, sk, cred


@pytest.fixture(scope="module")
def enrolled():
    ipk, sk, cred = _enroll(ATTRIBUTE_NAMES,
                            ["org1", role_mask([Role.MEMBER, Role.CLIENT]), "alice", 1234], 51)
    signer = SigningIdentity(ipk, "Org1IdemixMSP", sk, cred, rng=Random(52))
    return ipk, sk, cred, signer


def test_identity(enrolled):
    ipk, sk, cred, signer = enrolled
    identity = signer.identity
    assert identity.verify(ipk)
    assert identity.msp_id == "Org1IdemixMSP"
    assert identity.nym == signer.pseudonym.nym
    assert int.from_bytes(identity.ou, "big") == attribute_value("org1")
    assert check_role(identity.role_value(), Role.CLIENT)
    assert not check_role(identity.role_value(), Role.ADMIN)


def test_identity_encoding(enrolled):
    ipk, sk, cred, signer = enrolled
    identity = Identity.from_bytes(signer.identity.to_bytes())
    assert identity == signer.identity
    assert isinstance(identity.proof, Signature)

    with pytest.raises(DecodeError):
        Identity.from_bytes(identity._replace(msp_id="").to_bytes())


def test_identity_failures(enrolled):
    ipk, sk, cred, signer = enrolled
    identity = signer.identity
    assert not identity._replace(role=cred.attrs[2]).verify(ipk)
    assert not identity._replace(nym=identity.nym.double()).verify(ipk)


def test_sign(enrolled):
    ipk, sk, cred, signer = enrolled
    sig = signer.sign(b"tx")
    assert signer.verify_signature(b"tx", sig)
    assert not signer.verify_signature(b"ty", sig)

    with pytest.raises(DecodeError):
        signer.verify_signature(b"tx", sig[:-1])
    with pytest.raises(InvalidArgumentError):
        signer.sign(None)
    with pytest.raises(InvalidArgumentError):
        signer.verify_signature(b"tx", None)


def test_existing_pseudonym(enrolled):
    ipk, sk, cred, signer = enrolled
    again = SigningIdentity(ipk, "Org1IdemixMSP", sk, cred, signer.pseudonym, signer.proof)
    assert again.identity == signer.identity
    assert again.verify_signature(b"tx", signer.sign(b"tx"))


def test_invalid_arguments(enrolled):
    ipk, sk, cred, signer = enrolled
    with pytest.raises(InvalidArgumentError):
        SigningIdentity(ipk, "", sk, cred)
    with pytest.raises(InvalidArgumentError):
        SigningIdentity(None, "msp", sk, cred)
    with pytest.raises(InvalidArgumentError):
        SigningIdentity(ipk, "msp", sk, cred, pseudonym=signer.pseudonym)
    with pytest.raises(InvalidArgumentError):
        SigningIdentity(ipk, "msp", sk, cred, proof=signer.proof)


def test_crypto_errors(enrolled):
    ipk, sk, cred, signer = enrolled
    with pytest.raises(CryptoError):
        SigningIdentity(ipk._replace(hash=b"\x00" * 32), "msp", sk, cred)
    with pytest.raises(CryptoError):
        SigningIdentity(ipk, "msp", sk + 1, cred)

    other = Pseudonym.new(sk, ipk)
    with pytest.raises(CryptoError):
        SigningIdentity(ipk, "msp", sk, cred, other, signer.proof)


def test_attribute_count():
    ipk, sk, cred = _enroll(["OU", "Role"], ["org1", 1], 53)
    with pytest.raises(AttributeCountMismatch):
        SigningIdentity(ipk, "msp", sk, cred)
