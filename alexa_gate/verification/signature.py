"""
Body signature check.

The platform signs the SHA-1 digest of the raw body with RSA PKCS#1 v1.5.
SHA-1 is dictated by the platform's wire protocol and must stay as is.
"""

import base64
import binascii

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from alexa_gate.verification.errors import SignatureDecodeFailed, SignatureVerifyFailed


def decode_signature(signature: str | None) -> bytes:
    """Strict base64 decode of the Signature header."""
    if not signature:
        raise SignatureDecodeFailed("missing Signature header")
    try:
        decoded = base64.b64decode(signature.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureDecodeFailed(f"could not base64 decode signature: {e}") from e
    if not decoded:
        raise SignatureDecodeFailed("signature is empty")
    return decoded


def verify_signature(signature: str | None, public_key: rsa.RSAPublicKey, body: bytes) -> None:
    """
    Verify the base64 Signature header over the exact body bytes.

    Raises:
        SignatureDecodeFailed: header missing or not valid base64
        SignatureVerifyFailed: signature does not match body and key
    """
    raw_signature = decode_signature(signature)
    try:
        public_key.verify(raw_signature, body, padding.PKCS1v15(), hashes.SHA1())
    except InvalidSignature as e:
        raise SignatureVerifyFailed("signature does not match request body") from e
