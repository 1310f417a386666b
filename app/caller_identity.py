import logging
import json
import base64
import hashlib
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization, hashes
from cryptography.hazmat.primitives.asymmetric import ec

# Use the ecdsa library for hex-encoded keys
from ecdsa import SigningKey, VerifyingKey, SECP256k1, BadSignatureError, util
from ecdsa.errors import MalformedPointError

from error_handling import IdentityError, Validator

logger = logging.getLogger('CallerIdentity')

UNSIGNED_FIELDS = ('signature', 'public_key')


def _canonicalize_nested(obj: Any) -> Any:
    """
    Recursively converts all scalar values to strings in nested dictionaries/lists.
    """
    if isinstance(obj, dict):
        return {k: _canonicalize_nested(obj[k]) for k in sorted(obj.keys())}
    elif isinstance(obj, list):
        return [_canonicalize_nested(item) for item in obj]
    else:
        return str(obj)


def address_from_public_key(public_key_str: str) -> str:
    """
    Derives the caller address: "0z" followed by the first 40 hex digits of
    the SHA-256 of the public key string.
    """
    return "0z" + hashlib.sha256(public_key_str.encode('utf-8')).hexdigest()[:40]


class CallerIdentity:
    """
    Establishes who is calling from a signed request payload.

    A request carries `sender`, `public_key` and `signature` (base64 DER
    ECDSA over the canonical JSON of every other field). Hex-encoded keys
    are secp256k1 keys verified with ecdsa; PEM keys are verified with
    cryptography. The sender must be the address derived from the key.
    """

    def __init__(self, chain_id: str, require_signatures: bool = True):
        self.chain_id = chain_id
        self.require_signatures = require_signatures

    def canonical_payload(self, payload: Dict[str, Any]) -> bytes:
        body = {k: v for k, v in payload.items() if k not in UNSIGNED_FIELDS}
        body.setdefault('chain_id', self.chain_id)
        canonical_str = json.dumps(_canonicalize_nested(body), sort_keys=True, separators=(',', ':'))
        return canonical_str.encode('utf-8')

    def resolve(self, payload: Dict[str, Any]) -> str:
        """Return the verified caller address or raise IdentityError"""
        sender = payload.get('sender')
        if not Validator.validate_address(sender):
            raise IdentityError(f"Invalid sender address: {sender}")

        if not self.require_signatures:
            return sender

        if payload.get('chain_id', self.chain_id) != self.chain_id:
            raise IdentityError(f"chain_id mismatch (expected={self.chain_id}, got={payload.get('chain_id')})")

        public_key = payload.get('public_key')
        signature = payload.get('signature')
        if not public_key or not signature:
            raise IdentityError("Signed requests require 'public_key' and 'signature'")
        if not isinstance(public_key, str) or not isinstance(signature, str):
            raise IdentityError("'public_key' and 'signature' must be strings")

        if address_from_public_key(public_key) != sender:
            raise IdentityError(f"Public key does not belong to {sender}")

        if not self._verify(public_key, signature, self.canonical_payload(payload)):
            raise IdentityError(f"Signature verification failed for {sender}")

        return sender

    def _verify(self, public_key: str, signature_b64: str, message: bytes) -> bool:
        try:
            signature = base64.b64decode(signature_b64, validate=True)
        except (ValueError, TypeError):
            logger.warning("Signature is not valid base64.")
            return False

        if public_key.startswith("-----BEGIN"):
            try:
                key = serialization.load_pem_public_key(public_key.encode('utf-8'))
            except ValueError as e:
                logger.warning(f"Could not load PEM public key: {e}")
                return False
            if not isinstance(key, ec.EllipticCurvePublicKey):
                logger.warning("PEM public key is not an EC key.")
                return False
            try:
                key.verify(signature, message, ec.ECDSA(hashes.SHA256()))
                return True
            except InvalidSignature:
                return False

        try:
            verifying_key = VerifyingKey.from_string(bytes.fromhex(public_key), curve=SECP256k1)
        except (ValueError, MalformedPointError) as e:
            logger.warning(f"Could not load hex public key: {e}")
            return False
        try:
            return verifying_key.verify(signature, message, hashfunc=hashlib.sha256,
                                        sigdecode=util.sigdecode_der)
        except BadSignatureError:
            return False

    def sign(self, private_key_hex: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Client-side helper: returns a copy of payload with sender, public_key
        and signature filled in for a hex-encoded secp256k1 private key.
        """
        signing_key = SigningKey.from_string(bytes.fromhex(private_key_hex), curve=SECP256k1)
        public_key = signing_key.get_verifying_key().to_string().hex()

        signed = dict(payload)
        signed['sender'] = address_from_public_key(public_key)
        signed['chain_id'] = self.chain_id
        signature_der = signing_key.sign(
            self.canonical_payload(signed),
            hashfunc=hashlib.sha256,
            sigencode=util.sigencode_der
        )
        signed['public_key'] = public_key
        signed['signature'] = base64.b64encode(signature_der).decode('utf-8')
        return signed
