# An end-to-end run of the idemix protocols between an issuer, a user and
# a verifier. All messages between the parties travel as bytes, encoded
# with idemix.pack, as they would over the network.

import logging

from idemix.bn import random_mod_order
from idemix.encode import bn_to_bytes, bn_from_bytes
from idemix.credential import BlindCredential, Credential
from idemix.credrequest import CredRequest
from idemix.identity import ATTRIBUTE_NAMES, DISCLOSED_FLAGS, Identity, SigningIdentity
from idemix.issuer import IssuerKey, IssuerPublicKey
from idemix.nym import Pseudonym
from idemix.roles import Role, role_mask
from idemix.signature import Signature

logger = logging.getLogger("idemix_demo")


class Issuer(object):
    """ Holds the issuer key, and the nonces handed out to users. """

    def __init__(self, names, rng=None):
        self.key = IssuerKey.generate(names, rng=rng)
        self.rng = rng
        self.nonces = set()

    def public_key(self):
        return self.key.ipk.to_bytes()

    def nonce(self):
        nonce = random_mod_order(self.rng)
        self.nonces.add(nonce)
        return bn_to_bytes(nonce)

    def issue(self, request_bytes, attrs):
        request = CredRequest.from_bytes(request_bytes)

        # Each nonce is good for a single request
        if request.issuer_nonce not in self.nonces:
            raise Exception("Error: Unknown issuer nonce")
        self.nonces.remove(request.issuer_nonce)

        if not request.check(self.key.ipk):
            raise Exception("Error: Credential request failed")

        return BlindCredential.issue(self.key, request, attrs, self.rng).to_bytes()


class User(object):
    """ Holds the user secret key and credential. """

    def __init__(self, ipk_bytes, rng=None):
        self.ipk = IssuerPublicKey.from_bytes(ipk_bytes)
        if not self.ipk.check():
            raise Exception("Error: Issuer public key is not valid")
        self.rng = rng
        self.sk = random_mod_order(rng)
        self.cred = None

    def request(self, nonce_bytes):
        self.cred_s1 = random_mod_order(self.rng)
        nonce = bn_from_bytes(nonce_bytes)
        return CredRequest.create(self.sk, self.cred_s1, nonce, self.ipk, self.rng).to_bytes()

    def receive(self, blind_bytes):
        cred = BlindCredential.from_bytes(blind_bytes).complete(self.cred_s1)
        if not cred.ver(self.sk, self.ipk):
            raise Exception("Error: Credential is not valid")
        self.cred = cred
        return cred

    def present(self, disclosure, msg):
        pseudonym = Pseudonym.new(self.sk, self.ipk, self.rng)
        sig = Signature.present(self.cred, self.sk, pseudonym.nym, pseudonym.r_nym,
                                self.ipk, disclosure, msg, self.rng)
        return sig.to_bytes()


def run(rng=None):
    """ Enrolls a user and checks a presentation and a signing identity. """
    names = list(ATTRIBUTE_NAMES)
    attrs = ["org1", role_mask([Role.MEMBER]), "alice", 42]

    issuer = Issuer(names, rng)
    user = User(issuer.public_key(), rng)

    logger.info("Issuing credential")
    request_bytes = user.request(issuer.nonce())
    user.receive(issuer.issue(request_bytes, attrs))

    logger.info("Presenting credential, disclosing %s", DISCLOSED_FLAGS)
    msg = b"Hello idemix"
    sig = Signature.from_bytes(user.present(DISCLOSED_FLAGS, msg))
    values = [attrs[0], attrs[1], None, None]
    assert sig.verify(DISCLOSED_FLAGS, user.ipk, msg, values)

    logger.info("Signing under an MSP identity")
    signer = SigningIdentity(user.ipk, "Org1IdemixMSP", user.sk, user.cred, rng=rng)
    identity = Identity.from_bytes(signer.identity.to_bytes())
    assert identity.verify(user.ipk)

    tx_sig = signer.sign(b"transaction")
    assert signer.verify_signature(b"transaction", tx_sig)
    return issuer, user


import pytest
from random import Random


def test_demo():
    issuer, user = run(Random(61))
    assert isinstance(user.cred, Credential)
    assert issuer.nonces == set()


def test_nonce_single_use():
    issuer = Issuer(["age"], Random(62))
    user = User(issuer.public_key(), Random(63))
    nonce = issuer.nonce()
    request_bytes = user.request(nonce)
    user.receive(issuer.issue(request_bytes, [25]))

    with pytest.raises(Exception):
        issuer.issue(request_bytes, [25])


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    run()
    print("Success")
